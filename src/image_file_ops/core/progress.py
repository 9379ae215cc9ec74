"""批处理进度的数据模型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(slots=True)
class ProgressUpdate:
    """每完成一项任务推送一次。"""

    total: int
    completed: int
    failed: int = 0
    message: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.completed >= self.total
