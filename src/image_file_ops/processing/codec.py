"""图像编解码能力：协议定义与基于 Pillow 的实现。

所有写入先落到目标目录下的临时文件，成功后再 ``os.replace`` 到最终文件名，
失败时最终文件名下不会出现半成品。
"""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Protocol

from PIL import Image, ImageDraw, ImageFont

from image_file_ops.core.config import EngineConfig
from image_file_ops.core.exceptions import CodecFailure, UnsupportedFormatError
from image_file_ops.core.models import CropRect
from image_file_ops.processing.image_loader import convert_to_rgb, load_image, read_image_size

if TYPE_CHECKING:
    from image_file_ops.processing.watermark import TextOverlay

LOGGER = logging.getLogger(__name__)

_RESAMPLING = getattr(Image, "Resampling", Image)
_QUANTIZE = getattr(Image, "Quantize", Image)

FORMAT_BY_EXTENSION = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".webp": "WEBP",
    ".tif": "TIFF",
    ".tiff": "TIFF",
    ".avif": "AVIF",
    ".bmp": "BMP",
}

_SAVE_ERRORS = (OSError, ValueError, KeyError, TypeError)


class ImageCodec(Protocol):
    """引擎依赖的编解码能力，失败时抛出 CodecFailure。"""

    def read_size(self, path: Path) -> tuple[int, int]:
        ...

    def reencode(self, source: Path, destination: Path, quality: int) -> None:
        ...

    def convert(self, source: Path, destination: Path, quality: int) -> None:
        ...

    def crop(self, source: Path, destination: Path, rect: CropRect) -> None:
        ...

    def composite(self, source: Path, destination: Path, overlay: "TextOverlay") -> None:
        ...


class PillowCodec:
    """使用 Pillow 实现 ImageCodec，输出格式由目标文件扩展名决定。"""

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()

    def read_size(self, path: Path) -> tuple[int, int]:
        return read_image_size(path)

    def reencode(self, source: Path, destination: Path, quality: int) -> None:
        image = load_image(source)
        try:
            self._save(image, destination, quality=quality, compress=True)
        finally:
            image.close()

    def convert(self, source: Path, destination: Path, quality: int) -> None:
        image = load_image(source)
        try:
            self._save(image, destination, quality=quality)
        finally:
            image.close()

    def crop(self, source: Path, destination: Path, rect: CropRect) -> None:
        image = load_image(source)
        try:
            width, height = image.size
            if rect.left + rect.width > width or rect.top + rect.height > height:
                raise CodecFailure(
                    f"裁剪区域超出图片范围: ({rect.left}, {rect.top}, {rect.width}x{rect.height}) "
                    f"超出 {width}x{height}"
                )
            cropped = image.crop((rect.left, rect.top, rect.left + rect.width, rect.top + rect.height))
            try:
                self._save(cropped, destination, quality=self.config.default_quality)
            finally:
                cropped.close()
        finally:
            image.close()

    def composite(self, source: Path, destination: Path, overlay: "TextOverlay") -> None:
        image = load_image(source)
        try:
            layer = Image.new("RGBA", image.size, (0, 0, 0, 0))
            draw = ImageDraw.Draw(layer)
            try:
                draw.text(
                    (overlay.x, overlay.y),
                    overlay.text,
                    font=self._load_font(overlay.font_size),
                    fill=overlay.fill,
                    anchor=overlay.pil_anchor,
                    stroke_width=overlay.stroke_width,
                    stroke_fill=overlay.stroke_fill,
                )
            except (OSError, ValueError) as exc:
                raise CodecFailure(f"绘制水印失败: {exc}") from exc

            if overlay.angle:
                # 正角度为顺时针，Image.rotate 为逆时针
                layer = layer.rotate(-overlay.angle, resample=_RESAMPLING.BICUBIC, center=(overlay.x, overlay.y))

            composed = Image.alpha_composite(image.convert("RGBA"), layer)
            if "A" not in image.getbands():
                composed = composed.convert("RGB")
            self._save(composed, destination, quality=self.config.default_quality)
        finally:
            image.close()

    def _load_font(self, size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
        font_path = self.config.watermark.font_path
        if font_path is not None:
            try:
                return ImageFont.truetype(str(font_path), size)
            except OSError as exc:
                raise CodecFailure(f"无法加载字体: {font_path} ({exc})") from exc
        try:
            return ImageFont.truetype("DejaVuSans.ttf", size)
        except OSError:
            LOGGER.debug("未找到 DejaVuSans.ttf，使用 Pillow 默认字体")
            return ImageFont.load_default(size=size)

    def _save(
        self,
        image: Image.Image,
        destination: Path,
        *,
        quality: Optional[int],
        compress: bool = False,
    ) -> None:
        """按目标扩展名编码，经临时文件原子地写入 ``destination``。"""

        suffix = destination.suffix.lower()
        image_format = FORMAT_BY_EXTENSION.get(suffix)
        if not image_format:
            raise UnsupportedFormatError(f"不支持的输出格式: {suffix}")

        prepared, params = self._prepare(image, image_format, quality, compress)

        fd, temp_name = tempfile.mkstemp(prefix=f".{destination.stem}.", suffix=".partial", dir=destination.parent)
        os.close(fd)
        try:
            prepared.save(temp_name, format=image_format, **params)
            os.replace(temp_name, destination)
        except _SAVE_ERRORS as exc:
            with suppress(OSError):
                os.unlink(temp_name)
            raise CodecFailure(f"写入文件失败: {destination} ({exc})") from exc
        finally:
            if prepared is not image:
                prepared.close()

    def _prepare(
        self,
        image: Image.Image,
        image_format: str,
        quality: Optional[int],
        compress: bool,
    ) -> tuple[Image.Image, dict[str, Any]]:
        params: dict[str, Any] = {}
        has_alpha = "A" in image.getbands() or "transparency" in image.info

        if image_format == "JPEG":
            params.update(optimize=self.config.jpeg_optimize)
            if quality is not None:
                params.update(quality=quality)
            if image.mode not in {"RGB", "L", "CMYK"}:
                return convert_to_rgb(image), params
            return image, params

        if image_format == "PNG":
            params.update(optimize=True, compress_level=9)
            if compress and self.config.png_palette and image.mode in {"RGB", "RGBA"}:
                return image.quantize(colors=_palette_size(quality), method=_QUANTIZE.FASTOCTREE), params
            if image.mode not in {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}:
                return image.convert("RGBA" if has_alpha else "RGB"), params
            return image, params

        if image_format in {"WEBP", "AVIF"}:
            if quality is not None:
                params.update(quality=quality)
            if image.mode not in {"RGB", "RGBA"}:
                return image.convert("RGBA" if has_alpha else "RGB"), params
            return image, params

        if image_format == "TIFF":
            # JPEG 压缩只支持 RGB 与灰度
            if compress and quality is not None and image.mode in {"RGB", "L"}:
                params.update(compression="jpeg", quality=quality)
            else:
                params.update(compression="tiff_adobe_deflate")
            return image, params

        # BMP
        if image.mode not in {"1", "L", "P", "RGB"}:
            return convert_to_rgb(image), params
        return image, params


def _palette_size(quality: Optional[int]) -> int:
    """PNG 调色板颜色数随质量线性缩放，范围 [2, 256]。"""

    if quality is None:
        return 256
    return max(2, min(256, round(256 * quality / 100)))
