"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from image_file_ops.core.exceptions import ErrorKind


class FileItemType(str, Enum):
    """目录列表中的条目类型。"""

    FOLDER = "folder"
    IMAGE = "image"
    OTHER = "other"


class OperationKind(str, Enum):
    """批处理支持的操作类型。"""

    COMPRESS = "compress"
    CONVERT = "convert"
    CROP = "crop"
    WATERMARK = "watermark"
    RENAME = "rename"
    DELETE = "delete"


@dataclass(slots=True, frozen=True)
class FileItem:
    """目录列表服务返回的条目。"""

    name: str
    path: Path
    type: FileItemType


@dataclass(slots=True, frozen=True)
class CropRect:
    """裁剪区域，单位为像素。"""

    left: int
    top: int
    width: int
    height: int


@dataclass(slots=True, frozen=True)
class WatermarkOptions:
    """单次加水印调用的可选参数，缺省值见 WatermarkDefaults。"""

    font_size: Optional[float] = None
    color: Optional[str] = None
    position: Optional[str] = None
    padding: Optional[float] = None
    angle: Optional[float] = None
    x_ratio: Optional[float] = None
    y_ratio: Optional[float] = None


@dataclass(slots=True, frozen=True)
class CompressParams:
    quality: int


@dataclass(slots=True, frozen=True)
class ConvertParams:
    target_format: str
    source_type: Optional[FileItemType] = None


@dataclass(slots=True, frozen=True)
class CropParams:
    rect: CropRect


@dataclass(slots=True, frozen=True)
class WatermarkParams:
    text: str
    options: WatermarkOptions = field(default_factory=WatermarkOptions)
    source_type: Optional[FileItemType] = None


@dataclass(slots=True, frozen=True)
class RenameParams:
    new_name: str


OperationParams = Union[CompressParams, ConvertParams, CropParams, WatermarkParams, RenameParams]


@dataclass(slots=True, frozen=True)
class FileTask:
    """提交给批处理的单个文件任务，提交后不可变。"""

    input_path: Path
    operation: OperationKind
    params: Optional[OperationParams] = None


@dataclass(slots=True, frozen=True)
class ConvertRequest:
    """格式转换请求：条目（或未分类的路径）与目标格式。"""

    file: Union[FileItem, Path]
    target_format: str


@dataclass(slots=True)
class ItemResult:
    """记录单个文件的处理结果。失败时 output_path 为 None。"""

    input_path: Path
    output_path: Optional[Path] = None
    success: bool = False
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


@dataclass(slots=True)
class BatchResult:
    """批处理的汇总结果，results 与输入顺序一致。"""

    success: bool
    results: list[ItemResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ItemResult]:
        return [item for item in self.results if item.success]

    @property
    def failed(self) -> list[ItemResult]:
        return [item for item in self.results if not item.success]

    def summary(self) -> str:
        """返回形如 ``2/3`` 的成功计数。"""

        return f"{len(self.succeeded)}/{len(self.results)}"


@dataclass(slots=True)
class FileInfo:
    """文件详情。"""

    path: Path
    size: int
    created_at: datetime
    modified_at: datetime
    width: Optional[int] = None
    height: Optional[int] = None
