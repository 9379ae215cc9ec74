"""带权限修复的批量删除。

删除文件遇到权限错误时依次尝试：放宽父目录权限、放宽文件权限、清除扩展属性，
然后重试一次。每一步失败只记录日志，最终结果只取决于重试。
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import subprocess
import sys
from pathlib import Path
from typing import Iterable, Optional

from image_file_ops.core.exceptions import (
    ErrorKind,
    ImageFileOpsError,
    InvalidParameterError,
    PermissionDeniedError,
    classify_error,
    wrap_os_error,
)
from image_file_ops.core.models import BatchResult, FileTask, OperationKind
from image_file_ops.core.paths import PathLike
from image_file_ops.processing.pipeline import ProgressCallback, run_batch

LOGGER = logging.getLogger(__name__)

FRIENDLY_MESSAGES = {
    ErrorKind.PERMISSION_DENIED: "权限不足，无法删除文件。请检查文件权限或确保文件未被其他程序使用。",
    ErrorKind.BUSY: "文件正在被其他程序使用，无法删除。",
    ErrorKind.NOT_FOUND: "文件不存在或已被删除。",
}


def _delete_error(exc: OSError, path: Path) -> ImageFileOpsError:
    """将删除失败的 OSError 归类并附上面向用户的提示。"""

    hint = FRIENDLY_MESSAGES.get(classify_error(exc), "删除失败。")
    return wrap_os_error(exc, f"{hint} {path}")


def delete_path(raw_path: PathLike) -> None:
    """删除单个文件或目录，失败时抛出分类后的异常。"""

    try:
        path = Path(os.path.abspath(os.fspath(raw_path)))
    except (TypeError, ValueError) as exc:
        raise InvalidParameterError(f"路径解析失败: {raw_path!r}") from exc

    try:
        info = path.lstat()
    except OSError as exc:
        LOGGER.error("文件不存在或无法访问: %s (%s)", path, exc)
        raise _delete_error(exc, path) from exc

    if stat.S_ISDIR(info.st_mode):
        try:
            _remove_tree(path)
        except OSError as exc:
            LOGGER.error("删除文件夹失败: %s (%s)", path, exc)
            raise _delete_error(exc, path) from exc
        LOGGER.info("成功删除文件夹: %s", path)
        return

    try:
        os.unlink(path)
    except PermissionError:
        LOGGER.info("检测到权限错误，尝试修复文件权限: %s", path)
        _remediate_permissions(path)
        try:
            os.unlink(path)
        except OSError as retry_exc:
            LOGGER.error("修复权限后仍无法删除: %s (%s)", path, retry_exc)
            hint = FRIENDLY_MESSAGES[ErrorKind.PERMISSION_DENIED]
            raise PermissionDeniedError(f"{hint} {path}: {retry_exc.strerror or retry_exc}") from retry_exc
        LOGGER.info("成功删除文件（修复权限后）: %s", path)
        return
    except OSError as exc:
        LOGGER.error("删除文件失败: %s (%s)", path, exc)
        raise _delete_error(exc, path) from exc

    LOGGER.info("成功删除文件: %s", path)


def delete_many_detailed(
    paths: Iterable[PathLike],
    *,
    max_workers: Optional[int] = None,
    progress_callback: ProgressCallback = None,
) -> BatchResult:
    """逐个删除路径并返回逐项结果；单个失败不会中止其他路径。"""

    tasks = [FileTask(input_path=Path(os.fspath(p)), operation=OperationKind.DELETE) for p in paths]
    result = run_batch(tasks, _apply_delete, max_workers=max_workers, progress_callback=progress_callback)
    if not result.success:
        LOGGER.error("部分文件删除失败，成功: %s", result.summary())
    return result


def delete_many(paths: Iterable[PathLike], *, max_workers: Optional[int] = None) -> bool:
    """全部删除成功返回 True；空列表直接返回 True。"""

    return delete_many_detailed(paths, max_workers=max_workers).success


def _apply_delete(task: FileTask) -> None:
    delete_path(task.input_path)


def _remove_tree(path: Path) -> None:
    """递归删除目录，内部条目已不存在不视为错误。"""

    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_ignore_missing)
    else:
        shutil.rmtree(path, onerror=_ignore_missing_legacy)


def _ignore_missing(func, target, exc: BaseException) -> None:  # noqa: ANN001 - shutil callback signature
    if isinstance(exc, FileNotFoundError):
        return
    raise exc


def _ignore_missing_legacy(func, target, exc_info) -> None:  # noqa: ANN001 - shutil callback signature
    _ignore_missing(func, target, exc_info[1])


def _remediate_permissions(path: Path) -> None:
    parent = path.parent
    try:
        mode = parent.stat().st_mode
        os.chmod(parent, stat.S_IMODE(mode) | stat.S_IRWXU)
        LOGGER.info("已修改父目录权限: %s", parent)
    except OSError as exc:
        LOGGER.warning("修改父目录权限失败（继续尝试）: %s (%s)", parent, exc)

    try:
        mode = path.lstat().st_mode
        os.chmod(path, stat.S_IMODE(mode) | stat.S_IRUSR | stat.S_IWUSR)
        LOGGER.info("已修改文件权限: %s", path)
    except OSError as exc:
        LOGGER.warning("修改文件权限失败（继续尝试）: %s (%s)", path, exc)

    _strip_extended_attributes(path)


def _strip_extended_attributes(path: Path) -> None:
    if hasattr(os, "chflags"):
        try:
            os.chflags(path, 0, follow_symlinks=False)
        except (OSError, NotImplementedError) as exc:
            LOGGER.warning("无法清除文件标志（继续尝试）: %s (%s)", path, exc)

    if hasattr(os, "listxattr"):
        try:
            for name in os.listxattr(path, follow_symlinks=False):
                os.removexattr(path, name, follow_symlinks=False)
        except OSError as exc:
            LOGGER.warning("无法移除扩展属性（继续尝试）: %s (%s)", path, exc)
        return

    xattr_tool = shutil.which("xattr")
    if xattr_tool is None:
        LOGGER.debug("当前平台不支持扩展属性: %s", path)
        return
    completed = subprocess.run([xattr_tool, "-c", str(path)], capture_output=True, text=True, check=False)
    if completed.returncode != 0:
        LOGGER.warning("文件没有扩展属性或无法移除: %s (%s)", path, completed.stderr.strip())
