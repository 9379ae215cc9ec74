"""输出目录的解析与幂等创建。"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Union

from image_file_ops.core.exceptions import DirectoryResolutionError, InvalidParameterError

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def ensure_dir(directory: Path) -> None:
    """确保目录存在：不存在则递归创建，并发创建导致的“已存在”视为成功。"""

    try:
        if directory.is_dir():
            return
        if directory.exists():
            raise DirectoryResolutionError(f"路径已存在但不是目录: {directory}")
    except OSError as exc:
        raise DirectoryResolutionError(f"无法访问目录 {directory}: {exc}") from exc

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except FileExistsError as exc:
        # exist_ok 只接受目录；此处说明竞争者创建了同名文件
        if directory.is_dir():
            return
        raise DirectoryResolutionError(f"路径已存在但不是目录: {directory}") from exc
    except OSError as exc:
        raise DirectoryResolutionError(f"无法创建目录 {directory}: {exc}") from exc

    if not directory.is_dir():
        raise DirectoryResolutionError(f"创建后验证失败: {directory} 不是目录")
    LOGGER.debug("已创建目录: %s", directory)


def _canonical(directory: Path) -> Path:
    try:
        return Path(os.path.realpath(directory))
    except (OSError, RuntimeError, ValueError):
        return directory


def resolve_output_dir(raw_path: PathLike) -> Path:
    """将用户输入的输出路径解析为已存在的规范化绝对目录。

    - 空字符串或仅空白：调用方错误；
    - 已存在的目录：直接使用；
    - 已存在的文件：改用其父目录；
    - 不存在：递归创建。
    """

    text = os.fspath(raw_path)
    if not text or not text.strip():
        raise InvalidParameterError("输出目录路径不能为空")

    absolute = Path(os.path.abspath(os.path.expanduser(text.strip())))

    try:
        is_file = absolute.is_file()
    except OSError as exc:
        raise DirectoryResolutionError(f"无法访问路径 {absolute}: {exc}") from exc

    target = absolute.parent if is_file else absolute
    if is_file:
        LOGGER.info("输出路径是文件，改用其父目录: %s", target)

    ensure_dir(target)
    return _canonical(target)
