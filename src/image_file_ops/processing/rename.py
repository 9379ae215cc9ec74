"""文件或文件夹重命名。"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from image_file_ops.core.exceptions import AlreadyExistsError, InvalidParameterError, wrap_os_error
from image_file_ops.core.naming import path_exists, rename_target, validate_new_name
from image_file_ops.core.paths import PathLike

LOGGER = logging.getLogger(__name__)


def _is_case_only_change(source: Path, target: Path) -> bool:
    """大小写不敏感的文件系统上，仅大小写不同的目标指向源文件本身。"""

    if source.name == target.name or source.name.casefold() != target.name.casefold():
        return False
    try:
        return os.path.samefile(source, target)
    except OSError:
        return False


def rename_file(file_path: PathLike, new_name: str) -> bool:
    """在原目录内重命名，不自动编号。

    - 文件的新名称不含扩展名时沿用原扩展名；
    - 目标与源路径一致时直接返回 True，不做任何修改；
    - 目标已存在时抛出 AlreadyExistsError。
    """

    if not os.fspath(file_path):
        raise InvalidParameterError("文件路径不能为空")
    source = Path(os.fspath(file_path))
    validate_new_name(new_name)

    try:
        info = source.stat()
    except OSError as exc:
        raise wrap_os_error(exc, f"源路径不存在或不可访问: {source}") from exc

    target = rename_target(source, new_name, is_file=stat.S_ISREG(info.st_mode))
    if target == source:
        LOGGER.debug("新名称与原名称一致，无需重命名: %s", source)
        return True

    if path_exists(target) and not _is_case_only_change(source, target):
        raise AlreadyExistsError(f"同名文件或文件夹已存在: {target.name}")

    try:
        os.rename(source, target)
    except OSError as exc:
        raise wrap_os_error(exc, f"重命名失败: {source}") from exc

    LOGGER.info("重命名成功: %s -> %s", source, target)
    return True
