"""目录列表、条目分类与文件详情。"""

from __future__ import annotations

import logging
import os
import stat
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from image_file_ops.core.exceptions import NotAnImageError, wrap_os_error
from image_file_ops.core.models import FileInfo, FileItem, FileItemType
from image_file_ops.core.paths import PathLike
from image_file_ops.processing.codec import ImageCodec, PillowCodec

LOGGER = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".bmp",
    ".webp",
    ".svg",
    ".ico",
    ".tiff",
    ".tif",
    ".raw",
    ".heic",
    ".heif",
}


def default_directory() -> Path:
    """macOS 默认桌面目录，其他系统使用主目录。"""

    home = Path.home()
    if sys.platform == "darwin":
        return home / "Desktop"
    return home


def is_image_name(name: str) -> bool:
    return os.path.splitext(name)[1].lower() in IMAGE_EXTENSIONS


def classify_path(path: PathLike) -> FileItem:
    """将路径分类为文件夹或图片条目，其余类型抛出 NotAnImageError。"""

    candidate = Path(os.fspath(path))
    try:
        info = candidate.stat()
    except OSError as exc:
        raise wrap_os_error(exc, f"源路径不存在或不可访问: {candidate}") from exc

    if stat.S_ISDIR(info.st_mode):
        return FileItem(name=candidate.name, path=candidate, type=FileItemType.FOLDER)
    if stat.S_ISREG(info.st_mode) and is_image_name(candidate.name):
        return FileItem(name=candidate.name, path=candidate, type=FileItemType.IMAGE)
    raise NotAnImageError(f"不是图片: {candidate}")


def list_directory(path: Optional[PathLike] = None) -> list[FileItem]:
    """列出目录中的文件夹与图片，文件夹在前，按名称排序。读取失败时返回空列表。"""

    target = Path(os.fspath(path)) if path else default_directory()
    collected: list[FileItem] = []

    try:
        entries = list(os.scandir(target))
    except OSError as exc:
        LOGGER.error("读取目录失败: %s (%s)", target, exc)
        return collected

    for entry in entries:
        try:
            if entry.is_dir():
                collected.append(FileItem(name=entry.name, path=Path(entry.path), type=FileItemType.FOLDER))
            elif entry.is_file() and is_image_name(entry.name):
                collected.append(FileItem(name=entry.name, path=Path(entry.path), type=FileItemType.IMAGE))
        except OSError as exc:
            LOGGER.debug("跳过无法访问的条目 %s: %s", entry.path, exc)

    collected.sort(key=lambda item: (item.type != FileItemType.FOLDER, item.name.casefold()))
    return collected


def get_file_info(path: PathLike, codec: Optional[ImageCodec] = None) -> FileInfo:
    """返回文件大小、创建/修改时间；图片额外返回像素尺寸（读取失败时为空）。"""

    target = Path(os.fspath(path))
    try:
        info = target.stat()
    except OSError as exc:
        raise wrap_os_error(exc, f"源路径不存在或不可访问: {target}") from exc

    created = getattr(info, "st_birthtime", info.st_ctime)
    details = FileInfo(
        path=target,
        size=info.st_size,
        created_at=datetime.fromtimestamp(created),
        modified_at=datetime.fromtimestamp(info.st_mtime),
    )

    if stat.S_ISREG(info.st_mode) and is_image_name(target.name):
        codec = codec or PillowCodec()
        try:
            details.width, details.height = codec.read_size(target)
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning("无法读取图片尺寸 %s: %s", target, exc)
    return details
