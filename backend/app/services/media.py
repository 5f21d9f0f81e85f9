from __future__ import annotations
import io
from PIL import Image, UnidentifiedImageError


ALLOWED_MIME = {"image/jpeg", "image/png", "image/webp"}
EXT_FOR_MIME = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp"}
_FORMAT_MIME = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}

def sniff_mime(data: bytes) -> str | None:
    # Use PIL to detect image format instead of deprecated imghdr
    try:
        with Image.open(io.BytesIO(data)) as img:
            return _FORMAT_MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError):
        return None

def analyze_image(data: bytes) -> str:
    """
    Validate an uploaded photo and return its detected content-type.
    Raises ValueError for anything that is not an intact JPEG/PNG/WebP.
    """
    if not data:
        raise ValueError("Empty image")
    mime = sniff_mime(data)
    if mime not in ALLOWED_MIME:
        raise ValueError("Unsupported image type")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()  # basic integrity
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValueError("Invalid image file")
    return mime

def ext_for_mime(mime: str) -> str:
    return EXT_FOR_MIME.get(mime, "bin")
