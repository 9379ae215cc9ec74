"""输出文件命名规则。

生成的文件名形如 ``photo_压缩.jpg``、``photo_压缩_1.jpg``，重复执行同一操作时编号递增。
``next_output_path`` 是纯函数，存在性探测通过 ``exists`` 参数注入。

注意：探测与之后的写入不是原子的，两个并发批处理向同一目录写同名文件时可能选中同一候选名。
"""

from __future__ import annotations

import os
import re
from itertools import count
from pathlib import Path
from typing import Callable, Optional

from image_file_ops.core.exceptions import InvalidParameterError
from image_file_ops.core.models import OperationKind

ExistsProbe = Callable[[Path], bool]

OPERATION_TAGS = {
    OperationKind.COMPRESS: "压缩",
    OperationKind.CONVERT: "转换",
    OperationKind.CROP: "裁剪",
    OperationKind.WATERMARK: "水印",
}

_FORBIDDEN_NAMES = {".", ".."}


def path_exists(path: Path) -> bool:
    """文件、目录、悬空符号链接均视为已占用。"""

    return os.path.lexists(path)


def _split_name(input_path: Path) -> tuple[str, str]:
    base, ext = os.path.splitext(input_path.name)
    return base, ext


def next_output_path(
    directory: Path,
    input_path: Path,
    tag: str,
    target_ext: Optional[str] = None,
    *,
    exists: ExistsProbe = path_exists,
) -> Path:
    """返回 ``directory`` 下第一个未被占用的输出路径。"""

    base, ext = _split_name(Path(input_path))
    if target_ext is not None:
        ext = target_ext if not target_ext or target_ext.startswith(".") else f".{target_ext}"

    match = re.match(rf"^(?P<root>.*)_{re.escape(tag)}(?:_(?P<n>\d+))?$", base)
    if match:
        root = match.group("root")
        start = int(match.group("n")) + 1 if match.group("n") else 1
    else:
        root = base
        start = 0

    for n in count(start):
        stem = f"{root}_{tag}" if n == 0 else f"{root}_{tag}_{n}"
        candidate = directory / f"{stem}{ext}"
        if not exists(candidate):
            return candidate

    # 理论上不会执行到此处
    raise AssertionError("unreachable")


def validate_new_name(new_name: str) -> str:
    """去除首尾空白并校验重命名用的新名称。"""

    sanitized = (new_name or "").strip()
    if not sanitized:
        raise InvalidParameterError("新名称不能为空")
    if "/" in sanitized or "\\" in sanitized:
        raise InvalidParameterError("新名称不能包含路径分隔符")
    if "\x00" in sanitized:
        raise InvalidParameterError("新名称不能包含空字符")
    if sanitized in _FORBIDDEN_NAMES:
        raise InvalidParameterError(f"新名称不合法: {sanitized}")
    return sanitized


def rename_target(source: Path, new_name: str, *, is_file: bool) -> Path:
    """计算重命名后的完整路径（仅修改名称，不改变所在目录）。

    文件在新名称不含扩展名时沿用原扩展名；文件夹不追加扩展名。
    """

    name = validate_new_name(new_name)
    if is_file:
        _, old_ext = os.path.splitext(source.name)
        _, new_ext = os.path.splitext(name)
        if not new_ext and old_ext:
            name = f"{name}{old_ext}"

    return source.parent / name
