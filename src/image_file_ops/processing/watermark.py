"""文字水印的布局计算。

字号、边距缺省时按图片短边比例计算；位置可以是五个命名锚点之一，
也可以是相对左上角的比例坐标 (x_ratio, y_ratio)。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional
from xml.sax.saxutils import escape

from image_file_ops.core.config import WATERMARK_POSITIONS, WatermarkDefaults
from image_file_ops.core.exceptions import InvalidParameterError
from image_file_ops.core.models import WatermarkOptions
from image_file_ops.utils.colors import RGBA, parse_color

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}

# (text-anchor, dominant-baseline) -> Pillow anchor
_PIL_ANCHORS = {
    ("start", "alphabetic"): "ls",
    ("end", "alphabetic"): "rs",
    ("middle", "alphabetic"): "ms",
    ("middle", "middle"): "mm",
}


@dataclass(slots=True, frozen=True)
class TextOverlay:
    """交给编解码器合成的水印描述。"""

    text: str
    markup: str
    x: int
    y: int
    text_anchor: str
    baseline: str
    font_size: int
    color: str
    fill: RGBA
    stroke_fill: RGBA
    stroke_width: int
    angle: int

    @property
    def pil_anchor(self) -> str:
        return _PIL_ANCHORS[(self.text_anchor, self.baseline)]


def round_half_up(value: float) -> int:
    """0.5 向上取整（内置 round 为银行家舍入）。"""

    return int(math.floor(value + 0.5))


def escape_markup(text: str) -> str:
    """转义文本以便安全嵌入 SVG/XML。"""

    return escape(text, _XML_ENTITIES)


def validate_text(text: Optional[str], defaults: WatermarkDefaults) -> str:
    """去除首尾空白后校验水印文本（按字符计数）。"""

    content = (text or "").strip()
    if not content:
        raise InvalidParameterError("水印文本不能为空")
    if len(content) > defaults.max_text_length:
        raise InvalidParameterError(f"水印文本过长（最多 {defaults.max_text_length} 个字符）")
    return content


def default_font_size(width: int, height: int, defaults: WatermarkDefaults) -> int:
    return max(defaults.min_font_size, round_half_up(min(width, height) * defaults.font_ratio))


def default_padding(width: int, height: int, defaults: WatermarkDefaults) -> int:
    return max(defaults.min_padding, round_half_up(min(width, height) * defaults.padding_ratio))


def _positive_or(value: Optional[float], fallback: int) -> int:
    if value is not None and math.isfinite(value) and value > 0:
        return round_half_up(value)
    return fallback


def _clamp_ratio(value: float) -> float:
    return max(0.0, min(1.0, value))


def build_overlay(
    width: int,
    height: int,
    text: str,
    options: WatermarkOptions,
    defaults: WatermarkDefaults,
) -> TextOverlay:
    """根据图片尺寸与选项计算水印的位置、字号、颜色与旋转角度。"""

    if width <= 0 or height <= 0:
        raise InvalidParameterError("无法读取图片尺寸")

    font_size = _positive_or(options.font_size, default_font_size(width, height, defaults))
    color = options.color.strip() if options.color and options.color.strip() else defaults.color
    angle_value = options.angle if options.angle is not None else defaults.angle
    angle = round_half_up(angle_value) if math.isfinite(angle_value) else 0

    if options.x_ratio is not None and options.y_ratio is not None:
        x = round_half_up(width * _clamp_ratio(options.x_ratio))
        y = round_half_up(height * _clamp_ratio(options.y_ratio))
        text_anchor, baseline = "middle", "middle"
    else:
        position = options.position or defaults.position
        if position not in WATERMARK_POSITIONS:
            raise InvalidParameterError(f"未知的水印位置: {position}")
        padding = _positive_or(options.padding, default_padding(width, height, defaults))
        x, y, text_anchor, baseline = _anchor_point(width, height, font_size, padding, position)

    safe_text = escape_markup(text)
    markup = (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}">'
        f'<text x="{x}" y="{y}" text-anchor="{text_anchor}" dominant-baseline="{baseline}" '
        f'font-family="sans-serif" font-size="{font_size}" fill="{escape_markup(color)}" '
        f'paint-order="stroke" stroke="{escape_markup(defaults.stroke_color)}" '
        f'stroke-width="{defaults.stroke_width}" transform="rotate({angle} {x} {y})">{safe_text}</text></svg>'
    )

    return TextOverlay(
        text=text,
        markup=markup,
        x=x,
        y=y,
        text_anchor=text_anchor,
        baseline=baseline,
        font_size=font_size,
        color=color,
        fill=parse_color(color),
        stroke_fill=parse_color(defaults.stroke_color),
        stroke_width=defaults.stroke_width,
        angle=angle,
    )


def _anchor_point(width: int, height: int, font_size: int, padding: int, position: str) -> tuple[int, int, str, str]:
    if position == "top-left":
        return padding, padding + font_size, "start", "alphabetic"
    if position == "top-right":
        return width - padding, padding + font_size, "end", "alphabetic"
    if position == "bottom-left":
        return padding, height - padding, "start", "alphabetic"
    if position == "center":
        return round_half_up(width / 2), round_half_up(height / 2), "middle", "middle"
    return width - padding, height - padding, "end", "alphabetic"
