"""Image utilities: decoding, orientation and long-edge resizing."""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from .exceptions import ImageProcessingError
from .models import VariantInfo

EXIF_ORIENTATION_TAG = 0x0112

# Pillow can read these but writing them back needs a substitute encoder.
_SAVE_FORMAT_OVERRIDES = {"MPO": "JPEG"}
_SAVE_OPTIONS: Dict[str, Dict[str, Any]] = {
    "JPEG": {"quality": 90, "optimize": True},
    "WEBP": {"quality": 85, "method": 4},
    "PNG": {"optimize": True},
}
_DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    SyntaxError,
    ValueError,
)


@dataclass
class SourceImage:
    """Decoded facts about a downloaded original."""

    path: str
    width: int
    height: int
    format: str
    orientation: int = 1

    @property
    def needs_rotation(self) -> bool:
        return self.orientation not in (0, 1)


def compute_target_size(width: int, height: int, long_edge: int) -> Tuple[int, int]:
    """
    Fit (width, height) inside a long_edge square, keeping the aspect ratio.

    Never enlarges: an image whose long side is already within long_edge is
    returned unchanged.

    Args:
        width: Source width in pixels
        height: Source height in pixels
        long_edge: Maximum length of the longer side

    Returns:
        Target (width, height)
    """
    if long_edge <= 0:
        raise ValueError(f"long_edge must be positive, got {long_edge}")
    longest = max(width, height)
    if longest <= long_edge:
        return width, height
    scale = long_edge / longest
    if width >= height:
        return long_edge, max(1, round(height * scale))
    return max(1, round(width * scale)), long_edge


def _save_format(image_format: Optional[str]) -> str:
    fmt = (image_format or "JPEG").upper()
    return _SAVE_FORMAT_OVERRIDES.get(fmt, fmt)


def _save(img: "Image.Image", target_path: str, image_format: str, icc_profile: Optional[bytes]) -> None:
    if image_format == "JPEG" and img.mode not in ("RGB", "L", "CMYK"):
        img = img.convert("RGB")
    options = dict(_SAVE_OPTIONS.get(image_format, {}))
    if icc_profile:
        options["icc_profile"] = icc_profile
    img.save(target_path, format=image_format, **options)


def read_source_image(path: str) -> SourceImage:
    """
    Decode an original and report its display dimensions.

    Dimensions are reported after EXIF orientation is applied, so a portrait
    photo stored sideways reports width < height.

    Raises:
        ImageProcessingError: If the file cannot be decoded
    """
    try:
        with Image.open(path) as img:
            img.load()
            orientation = img.getexif().get(EXIF_ORIENTATION_TAG, 1)
            width, height = img.size
            if orientation in (5, 6, 7, 8):
                width, height = height, width
            return SourceImage(
                path=path,
                width=width,
                height=height,
                format=_save_format(img.format),
                orientation=orientation,
            )
    except _DECODE_ERRORS as err:
        raise ImageProcessingError(f"Failed to decode image {os.path.basename(path)}: {err}") from err


def orient_original(source: SourceImage, target_path: str) -> str:
    """
    Return the path of an orientation-corrected copy of the original.

    When the source carries no rotation the original file is returned
    untouched, so its bytes are republished exactly as uploaded.
    """
    if not source.needs_rotation:
        return source.path
    try:
        with Image.open(source.path) as img:
            icc_profile = img.info.get("icc_profile")
            oriented = ImageOps.exif_transpose(img)
            _save(oriented, target_path, source.format, icc_profile)
    except _DECODE_ERRORS as err:
        raise ImageProcessingError(f"Failed to orient image {os.path.basename(source.path)}: {err}") from err
    return target_path


def generate_variant(
    source_path: str,
    target_path: str,
    long_edge: int,
    image_format: Optional[str] = None,
) -> VariantInfo:
    """
    Write a resized copy of source_path to target_path.

    The output honors EXIF orientation, fits inside a long_edge square without
    cropping and is never larger than the source.

    Args:
        source_path: Local path of the original
        target_path: Local path to write the variant to
        long_edge: Target length of the longer side
        image_format: Output format; defaults to the source's format

    Returns:
        Actual width, height and byte size of the written file
    """
    try:
        with Image.open(source_path) as img:
            icc_profile = img.info.get("icc_profile")
            fmt = _save_format(image_format or img.format)
            oriented = ImageOps.exif_transpose(img)
            size = compute_target_size(oriented.width, oriented.height, long_edge)
            if size != oriented.size:
                resized = oriented.resize(size, Image.Resampling.LANCZOS)
            else:
                resized = oriented
            _save(resized, target_path, fmt, icc_profile)
            width, height = resized.size
    except _DECODE_ERRORS as err:
        raise ImageProcessingError(
            f"Failed to generate {long_edge}px variant of {os.path.basename(source_path)}: {err}"
        ) from err

    return VariantInfo(width=width, height=height, size_bytes=os.path.getsize(target_path))
