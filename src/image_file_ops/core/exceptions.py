"""项目内使用的自定义异常与错误分类。"""

from __future__ import annotations

import errno
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """面向用户的错误分类。"""

    NOT_A_FILE = "not-a-file"
    NOT_AN_IMAGE = "not-an-image"
    UNSUPPORTED_FORMAT = "unsupported-format"
    INVALID_PARAMETER = "invalid-parameter"
    ALREADY_EXISTS = "already-exists"
    PERMISSION_DENIED = "permission-denied"
    BUSY = "busy"
    NOT_FOUND = "not-found"
    DIRECTORY_RESOLUTION = "directory-resolution"
    CODEC_FAILURE = "codec-failure"
    OTHER = "other"


class ImageFileOpsError(Exception):
    """基础异常类型。"""

    kind: ErrorKind = ErrorKind.OTHER


class NotAFileError(ImageFileOpsError):
    """输入路径不是常规文件。"""

    kind = ErrorKind.NOT_A_FILE


class NotAnImageError(ImageFileOpsError):
    """输入条目不是图片。"""

    kind = ErrorKind.NOT_AN_IMAGE


class UnsupportedFormatError(ImageFileOpsError):
    """不支持的图片格式。"""

    kind = ErrorKind.UNSUPPORTED_FORMAT


class InvalidParameterError(ImageFileOpsError):
    """参数不合法（质量、裁剪区域、水印文本、重命名名称等）。"""

    kind = ErrorKind.INVALID_PARAMETER


class AlreadyExistsError(ImageFileOpsError):
    """重命名目标已存在。"""

    kind = ErrorKind.ALREADY_EXISTS


class PermissionDeniedError(ImageFileOpsError):
    """权限不足（修复尝试之后仍然失败）。"""

    kind = ErrorKind.PERMISSION_DENIED


class BusyError(ImageFileOpsError):
    """文件正被其他程序占用。"""

    kind = ErrorKind.BUSY


class NotFoundError(ImageFileOpsError):
    """路径不存在。"""

    kind = ErrorKind.NOT_FOUND


class DirectoryResolutionError(ImageFileOpsError):
    """无法解析或创建输出目录。"""

    kind = ErrorKind.DIRECTORY_RESOLUTION


class CodecFailure(ImageFileOpsError):
    """图像编解码失败，消息原样透传。"""

    kind = ErrorKind.CODEC_FAILURE


_PERMISSION_ERRNOS = {errno.EACCES, errno.EPERM}
_BUSY_ERRNOS = {errno.EBUSY, errno.ETXTBSY}
_NOT_FOUND_ERRNOS = {errno.ENOENT}

_KIND_TO_ERROR: dict[ErrorKind, type[ImageFileOpsError]] = {
    ErrorKind.PERMISSION_DENIED: PermissionDeniedError,
    ErrorKind.BUSY: BusyError,
    ErrorKind.NOT_FOUND: NotFoundError,
}


def classify_error(exc: BaseException) -> ErrorKind:
    """将任意异常归类到 ErrorKind。"""

    if isinstance(exc, ImageFileOpsError):
        return exc.kind
    if isinstance(exc, PermissionError):
        return ErrorKind.PERMISSION_DENIED
    if isinstance(exc, FileNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, OSError):
        code: Optional[int] = exc.errno
        if code in _PERMISSION_ERRNOS:
            return ErrorKind.PERMISSION_DENIED
        if code in _BUSY_ERRNOS:
            return ErrorKind.BUSY
        if code in _NOT_FOUND_ERRNOS:
            return ErrorKind.NOT_FOUND
    return ErrorKind.OTHER


def wrap_os_error(exc: OSError, message: str) -> ImageFileOpsError:
    """根据 OSError 的分类构造对应的项目异常，调用方负责 ``raise ... from exc``。"""

    error_cls = _KIND_TO_ERROR.get(classify_error(exc), ImageFileOpsError)
    return error_cls(f"{message}: {exc.strerror or exc}")
