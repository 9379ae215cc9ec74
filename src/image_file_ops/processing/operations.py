"""图片变换操作：压缩、格式转换、裁剪、加水印。

每个操作只负责校验输入、分配输出路径并把像素处理交给编解码器；
批量执行与失败隔离由 ``run_batch`` 完成。输出目录在所有任务开始前解析一次，
解析失败（DirectoryResolutionError）会直接抛出，整个批次不执行。
"""

from __future__ import annotations

import logging
import math
import os
import stat
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

from image_file_ops.core.config import EngineConfig, normalize_quality
from image_file_ops.core.exceptions import (
    InvalidParameterError,
    NotAFileError,
    NotAnImageError,
    UnsupportedFormatError,
    wrap_os_error,
)
from image_file_ops.core.models import (
    BatchResult,
    CompressParams,
    ConvertParams,
    ConvertRequest,
    CropParams,
    CropRect,
    FileItem,
    FileItemType,
    FileTask,
    ItemResult,
    OperationKind,
    WatermarkOptions,
    WatermarkParams,
)
from image_file_ops.core.naming import OPERATION_TAGS
from image_file_ops.core.output_manager import OutputManager
from image_file_ops.core.paths import PathLike
from image_file_ops.processing.codec import FORMAT_BY_EXTENSION, ImageCodec, PillowCodec
from image_file_ops.processing.pipeline import ProgressCallback, run_batch
from image_file_ops.processing.watermark import build_overlay, validate_text

LOGGER = logging.getLogger(__name__)

COMPRESSIBLE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".tif", ".tiff", ".avif"}
CONVERT_TARGETS = {"jpg": ".jpg", "png": ".png", "bmp": ".bmp"}

SourceEntry = Union[FileItem, PathLike]


def _source(entry: SourceEntry) -> tuple[Path, Optional[FileItemType]]:
    if isinstance(entry, FileItem):
        return entry.path, entry.type
    return Path(os.fspath(entry)), None


def _require_image(path: Path, source_type: Optional[FileItemType]) -> None:
    if source_type is not None and source_type != FileItemType.IMAGE:
        raise NotAnImageError(f"不是图片: {path}")


def _require_regular_file(path: Path) -> None:
    try:
        info = path.stat()
    except OSError as exc:
        raise wrap_os_error(exc, f"源路径不存在或不可访问: {path}") from exc
    if not stat.S_ISREG(info.st_mode):
        raise NotAFileError(f"不是文件: {path}")


def _resolve(config: Optional[EngineConfig], codec: Optional[ImageCodec]) -> tuple[EngineConfig, ImageCodec]:
    config = config or EngineConfig()
    return config, codec or PillowCodec(config)


def compress_files(
    paths: Iterable[PathLike],
    output_dir: PathLike,
    quality: Optional[float] = None,
    *,
    config: Optional[EngineConfig] = None,
    codec: Optional[ImageCodec] = None,
    progress_callback: ProgressCallback = None,
) -> BatchResult:
    """批量压缩图片，输出格式与输入一致。

    质量缺失或不在 [1, 100] 内时使用默认值 80。非文件或不支持的格式记为失败项，
    不影响其他文件。输出命名为 ``原文件名_压缩``、``原文件名_压缩_序号``。
    """

    inputs = [Path(os.fspath(p)) for p in paths]
    if not inputs:
        return BatchResult(success=True, results=[])

    config, codec = _resolve(config, codec)
    params = CompressParams(quality=normalize_quality(quality, config))
    manager = OutputManager(output_dir)
    tag = OPERATION_TAGS[OperationKind.COMPRESS]

    def apply(task: FileTask) -> Path:
        source = task.input_path
        _require_regular_file(source)
        if source.suffix.lower() not in COMPRESSIBLE_EXTENSIONS:
            raise UnsupportedFormatError(f"不支持的图片格式: {source.suffix or source.name}")

        destination = manager.decide_destination(source, tag)
        codec.reencode(source, destination, task.params.quality)
        LOGGER.info("成功压缩文件: %s -> %s", source, destination)
        return destination

    tasks = [FileTask(input_path=p, operation=OperationKind.COMPRESS, params=params) for p in inputs]
    return run_batch(tasks, apply, max_workers=config.max_workers, progress_callback=progress_callback)


def convert_files(
    requests: Sequence[ConvertRequest],
    output_dir: PathLike,
    *,
    config: Optional[EngineConfig] = None,
    codec: Optional[ImageCodec] = None,
    progress_callback: ProgressCallback = None,
) -> BatchResult:
    """批量格式转换（jpg / png / bmp），不修改原文件。"""

    if not requests:
        return BatchResult(success=True, results=[])

    config, codec = _resolve(config, codec)
    manager = OutputManager(output_dir)
    tag = OPERATION_TAGS[OperationKind.CONVERT]

    def apply(task: FileTask) -> Path:
        source = task.input_path
        params: ConvertParams = task.params
        _require_image(source, params.source_type)
        _require_regular_file(source)

        target_ext = CONVERT_TARGETS.get(params.target_format)
        if target_ext is None:
            raise UnsupportedFormatError(f"不支持的目标格式: {params.target_format}")

        destination = manager.decide_destination(source, tag, target_ext)
        codec.convert(source, destination, config.default_quality)
        LOGGER.info("成功转换文件: %s -> %s", source, destination)
        return destination

    tasks = []
    for request in requests:
        path, source_type = _source(request.file)
        target_format = str(request.target_format).strip().lower().lstrip(".")
        tasks.append(
            FileTask(
                input_path=path,
                operation=OperationKind.CONVERT,
                params=ConvertParams(target_format=target_format, source_type=source_type),
            )
        )
    return run_batch(tasks, apply, max_workers=config.max_workers, progress_callback=progress_callback)


def validate_crop_rect(rect: CropRect) -> CropRect:
    """校验裁剪区域：left/top ≥ 0，width/height > 0，全部为有限数值。"""

    values = (rect.left, rect.top, rect.width, rect.height)
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidParameterError(f"裁剪参数必须为数值: {rect}")

    left, top, width, height = (int(round(value)) for value in values)
    if width <= 0 or height <= 0:
        raise InvalidParameterError("裁剪区域宽度和高度必须大于0")
    if left < 0 or top < 0:
        raise InvalidParameterError("裁剪区域的 left/top 不能为负数")
    return CropRect(left=left, top=top, width=width, height=height)


def crop_image(
    file: SourceEntry,
    output_dir: PathLike,
    rect: CropRect,
    *,
    config: Optional[EngineConfig] = None,
    codec: Optional[ImageCodec] = None,
) -> ItemResult:
    """裁剪单张图片。参数不合法时在调用编解码器之前返回失败结果。

    区域超出图片范围由编解码器报告，错误信息原样返回。
    """

    source, source_type = _source(file)
    try:
        validated = validate_crop_rect(rect)
    except InvalidParameterError as exc:
        LOGGER.error("裁剪参数不合法: %s (%s)", source, exc)
        return ItemResult(input_path=source, success=False, error=str(exc), error_kind=exc.kind)

    config, codec = _resolve(config, codec)
    manager = OutputManager(output_dir)
    tag = OPERATION_TAGS[OperationKind.CROP]

    def apply(task: FileTask) -> Path:
        _require_image(task.input_path, source_type)
        _require_regular_file(task.input_path)
        if task.input_path.suffix.lower() not in FORMAT_BY_EXTENSION:
            raise UnsupportedFormatError(f"不支持的图片格式: {task.input_path.suffix or task.input_path.name}")

        destination = manager.decide_destination(task.input_path, tag)
        codec.crop(task.input_path, destination, task.params.rect)
        LOGGER.info("成功裁剪图片: %s -> %s", task.input_path, destination)
        return destination

    task = FileTask(input_path=source, operation=OperationKind.CROP, params=CropParams(rect=validated))
    return run_batch([task], apply, max_workers=1).results[0]


def add_watermarks(
    files: Sequence[SourceEntry],
    text: Optional[str],
    output_dir: PathLike,
    options: Optional[WatermarkOptions] = None,
    *,
    config: Optional[EngineConfig] = None,
    codec: Optional[ImageCodec] = None,
    progress_callback: ProgressCallback = None,
) -> BatchResult:
    """为图片添加文字水印。

    文本是整批共享的参数：为空、超过 10 个字符，或一次传入多于一张图片时，
    所有条目统一失败且不写入任何文件。
    """

    if not files:
        return BatchResult(success=True, results=[])

    config, codec = _resolve(config, codec)
    options = options or WatermarkOptions()
    sources = [_source(entry) for entry in files]

    try:
        content = validate_text(text, config.watermark)
        if len(sources) > 1:
            raise InvalidParameterError("加水印一次只支持一张图片")
    except InvalidParameterError as exc:
        LOGGER.error("水印参数不合法: %s", exc)
        return BatchResult(
            success=False,
            results=[
                ItemResult(input_path=path, success=False, error=str(exc), error_kind=exc.kind)
                for path, _ in sources
            ],
        )

    manager = OutputManager(output_dir)
    tag = OPERATION_TAGS[OperationKind.WATERMARK]

    def apply(task: FileTask) -> Path:
        source = task.input_path
        params: WatermarkParams = task.params
        _require_image(source, params.source_type)
        _require_regular_file(source)

        width, height = codec.read_size(source)
        overlay = build_overlay(width, height, params.text, params.options, config.watermark)
        destination = manager.decide_destination(source, tag)
        codec.composite(source, destination, overlay)
        LOGGER.info("成功添加水印: %s -> %s", source, destination)
        return destination

    tasks = [
        FileTask(
            input_path=path,
            operation=OperationKind.WATERMARK,
            params=WatermarkParams(text=content, options=options, source_type=source_type),
        )
        for path, source_type in sources
    ]
    return run_batch(tasks, apply, max_workers=config.max_workers, progress_callback=progress_callback)
