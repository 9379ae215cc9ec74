"""引擎的集中配置模型。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

WatermarkPosition = str  # top-left | top-right | bottom-left | bottom-right | center

WATERMARK_POSITIONS = ("top-left", "top-right", "bottom-left", "bottom-right", "center")

MIN_QUALITY = 1
MAX_QUALITY = 100


@dataclass(slots=True)
class WatermarkDefaults:
    """水印默认值：字号与边距按图片短边比例计算。"""

    max_text_length: int = 10
    font_ratio: float = 0.05
    min_font_size: int = 16
    padding_ratio: float = 0.03
    min_padding: int = 10
    color: str = "rgba(255,255,255,0.75)"
    stroke_color: str = "rgba(0,0,0,0.5)"
    stroke_width: int = 2
    angle: float = 0.0
    position: WatermarkPosition = "bottom-right"
    font_path: Optional[Path] = None


@dataclass(slots=True)
class EngineConfig:
    """单次调用共享的配置集合。"""

    default_quality: int = 80
    max_workers: Optional[int] = None
    jpeg_optimize: bool = True
    png_palette: bool = True
    watermark: WatermarkDefaults = field(default_factory=WatermarkDefaults)


def normalize_quality(quality: Optional[float], config: EngineConfig) -> int:
    """质量不在 [1, 100] 内（或缺失）时回退到默认值。"""

    if quality is None or isinstance(quality, bool):
        return config.default_quality
    if not MIN_QUALITY <= quality <= MAX_QUALITY:
        return config.default_quality
    return int(round(quality))
