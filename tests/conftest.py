"""测试共用的夹具：生成真实图片与记录调用的假编解码器。"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable

import pytest
from PIL import Image

from image_file_ops.core.exceptions import CodecFailure
from image_file_ops.core.models import CropRect


class RecordingCodec:
    """记录每次调用并写入占位内容的编解码器。"""

    def __init__(self, size: tuple[int, int] = (200, 100), fail_on: tuple[str, ...] = ()) -> None:
        self.size = size
        self.fail_on = set(fail_on)
        self.calls: list[tuple[str, Path, Path, object]] = []
        self._lock = threading.Lock()

    def _record(self, operation: str, source: Path, destination: Path, argument: object) -> None:
        with self._lock:
            self.calls.append((operation, source, destination, argument))
        if source.name in self.fail_on:
            raise CodecFailure(f"模拟编码失败: {source.name}")
        destination.write_bytes(b"encoded")

    def read_size(self, path: Path) -> tuple[int, int]:
        return self.size

    def reencode(self, source: Path, destination: Path, quality: int) -> None:
        self._record("reencode", source, destination, quality)

    def convert(self, source: Path, destination: Path, quality: int) -> None:
        self._record("convert", source, destination, quality)

    def crop(self, source: Path, destination: Path, rect: CropRect) -> None:
        self._record("crop", source, destination, rect)

    def composite(self, source: Path, destination: Path, overlay) -> None:  # noqa: ANN001
        self._record("composite", source, destination, overlay)


@pytest.fixture()
def recording_codec() -> RecordingCodec:
    return RecordingCodec()


@pytest.fixture()
def make_image(tmp_path: Path) -> Callable[..., Path]:
    """在 tmp_path/input 下生成一张图片并返回路径。"""

    def factory(name: str, size: tuple[int, int] = (64, 48), color: str = "blue", mode: str = "RGB") -> Path:
        source_dir = tmp_path / "input"
        source_dir.mkdir(exist_ok=True)
        path = source_dir / name
        Image.new(mode, size, color).save(path)
        return path

    return factory


@pytest.fixture()
def codec_factory() -> Callable[..., RecordingCodec]:
    return RecordingCodec
