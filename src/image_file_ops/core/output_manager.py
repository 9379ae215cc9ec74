"""批处理内的输出目录与命名管理。"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from image_file_ops.core.naming import ExistsProbe, next_output_path, path_exists
from image_file_ops.core.paths import PathLike, ensure_dir, resolve_output_dir

LOGGER = logging.getLogger(__name__)


class OutputManager:
    """负责解析输出目录并为批内每个文件分配不冲突的输出路径。

    同一批次内已分配的路径会被记录，即使尚未写入磁盘也不会被再次分配。
    跨批次（或跨进程）的探测与写入之间仍存在竞争窗口。
    """

    def __init__(self, output_dir: PathLike, *, exists: ExistsProbe = path_exists) -> None:
        self.output_dir = resolve_output_dir(output_dir)
        self._exists = exists
        self._reserved: set[Path] = set()
        self._lock = threading.Lock()

    def decide_destination(self, input_path: Path, tag: str, target_ext: Optional[str] = None) -> Path:
        """为输入文件生成带操作标记的输出路径，并确认其父目录仍然存在。"""

        with self._lock:
            destination = next_output_path(
                self.output_dir,
                input_path,
                tag,
                target_ext,
                exists=self._is_taken,
            )
            self._reserved.add(destination)

        ensure_dir(destination.parent)
        LOGGER.debug("准备写入文件: %s", destination)
        return destination

    def _is_taken(self, candidate: Path) -> bool:
        return candidate in self._reserved or self._exists(candidate)
