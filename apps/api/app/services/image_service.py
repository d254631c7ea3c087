"""Upload validation and privacy-preserving re-encoding of user images."""

import io

from PIL import Image, ImageOps, UnidentifiedImageError

from app.core.exceptions import ImageValidationError

ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png"})
ALLOWED_FORMATS = frozenset({"JPEG", "PNG"})
MAX_IMAGE_BYTES = 10 * 1024 * 1024  # 10 MiB
MAX_DIMENSION = 1024
JPEG_QUALITY = 85


def validate_image(data: bytes, content_type: str | None) -> None:
    """Reject anything that is not a JPEG or PNG of at most 10 MiB.

    Raises:
        ImageValidationError: On wrong type, empty or oversized upload, or
            bytes that do not decode as one of the allowed formats.
    """
    if (content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        raise ImageValidationError("Invalid file type. Only JPG and PNG are allowed.")
    if not data:
        raise ImageValidationError("Image is required")
    if len(data) > MAX_IMAGE_BYTES:
        raise ImageValidationError("File too large. Maximum size is 10MB.")

    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, Image.DecompressionBombError):
        raise ImageValidationError("Uploaded file is not a readable image")

    if image_format not in ALLOWED_FORMATS:
        raise ImageValidationError("Invalid file type. Only JPG and PNG are allowed.")

    # verify() leaves JPEG scan data untouched; decode the pixels to catch truncation
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError):
        raise ImageValidationError("Uploaded file is not a readable image")


def normalize_image(data: bytes, max_dimension: int = MAX_DIMENSION) -> bytes:
    """Re-encode an image as a metadata-free JPEG bounded to a square.

    EXIF orientation is applied to the pixels first, then every metadata
    block (EXIF incl. GPS, ICC, comments) is dropped by copying pixels into a
    fresh image. Images smaller than the bound are never enlarged.
    """
    with Image.open(io.BytesIO(data)) as img:
        oriented = ImageOps.exif_transpose(img)
        rgb = oriented.convert("RGB")

    rgb.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

    clean = Image.new("RGB", rgb.size)
    clean.paste(rgb)

    buffer = io.BytesIO()
    clean.save(buffer, format="JPEG", quality=JPEG_QUALITY, optimize=True)
    return buffer.getvalue()
