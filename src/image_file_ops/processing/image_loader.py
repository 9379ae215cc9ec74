"""图片加载与模式转换。"""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from image_file_ops.core.exceptions import CodecFailure

LOGGER = logging.getLogger(__name__)

# EXIF Orientation 取这些值时宽高互换
_TRANSPOSED_ORIENTATIONS = {5, 6, 7, 8}
_ORIENTATION_TAG = 274


def load_image(path: Path) -> Image.Image:
    """加载单张图片并执行 EXIF 旋转。

    返回值为新的 Image 对象，调用者负责关闭。保留原始颜色模式，模式转换在写入时按目标格式进行。
    """

    try:
        with Image.open(path) as img:
            img.load()
            transposed = ImageOps.exif_transpose(img)
            return transposed.copy() if transposed is img else transposed
    except (UnidentifiedImageError, OSError) as exc:
        LOGGER.debug("无法识别图像文件 %s: %s", path, exc)
        raise CodecFailure(f"无法加载图像: {path} ({exc})") from exc


def read_image_size(path: Path) -> tuple[int, int]:
    """只读取文件头获取宽高（已考虑 EXIF 方向）。"""

    try:
        with Image.open(path) as img:
            width, height = img.size
            orientation = img.getexif().get(_ORIENTATION_TAG)
    except (UnidentifiedImageError, OSError) as exc:
        raise CodecFailure(f"无法读取图片尺寸: {path} ({exc})") from exc

    if orientation in _TRANSPOSED_ORIENTATIONS:
        return height, width
    return width, height


def convert_to_rgb(img: Image.Image) -> Image.Image:
    """将任意模式图像转换为 RGB，透明区域以白色背景混合。"""

    if img.mode == "RGB":
        return img

    if img.mode in {"RGBA", "LA"} or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background

    return img.convert("RGB")
