"""颜色工具函数。"""

from __future__ import annotations

import re
from typing import Tuple

from PIL import ImageColor

from image_file_ops.core.exceptions import InvalidParameterError

RGBA = Tuple[int, int, int, int]

HEX_COLOR_RE = re.compile(r"^#?([0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
RGB_FUNC_RE = re.compile(
    r"^rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})\s*(?:,\s*([0-9]*\.?[0-9]+)(%?)\s*)?\)$",
    re.IGNORECASE,
)


def parse_color(value: str) -> RGBA:
    """将颜色字符串解析为 RGBA 四元组。

    支持 ``#rgb``、``#rgba``、``#rrggbb``、``#rrggbbaa``、``rgb(r,g,b)``、
    ``rgba(r,g,b,a)``（a 为 0~1 或百分比）以及 Pillow 认识的颜色名称。
    """

    if not value or not value.strip():
        raise InvalidParameterError("颜色值不能为空")

    text = value.strip()

    match = HEX_COLOR_RE.match(text)
    if match:
        hex_value = match.group(1)
        if len(hex_value) in (3, 4):
            hex_value = "".join(ch * 2 for ch in hex_value)
        if len(hex_value) == 6:
            hex_value += "ff"
        r, g, b, a = (int(hex_value[i : i + 2], 16) for i in range(0, 8, 2))
        return r, g, b, a

    match = RGB_FUNC_RE.match(text)
    if match:
        r, g, b = (int(match.group(i)) for i in (1, 2, 3))
        if max(r, g, b) > 255:
            raise InvalidParameterError(f"无法解析颜色值: {value}")
        alpha = 255
        if match.group(4) is not None:
            fraction = float(match.group(4))
            if match.group(5):
                fraction /= 100.0
            alpha = int(round(max(0.0, min(fraction, 1.0)) * 255))
        return r, g, b, alpha

    try:
        return ImageColor.getcolor(text, "RGBA")  # type: ignore[return-value]
    except ValueError as exc:
        raise InvalidParameterError(f"无法解析颜色值: {value}") from exc
