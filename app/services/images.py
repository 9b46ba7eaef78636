import base64
import binascii
import io
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

FORMAT_TO_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
}


def sniff_content_type(data: bytes, fallback: str = "image/jpeg") -> str:
    """Detect the image mime type from its bytes; ``fallback`` when Pillow cannot tell."""
    try:
        with Image.open(io.BytesIO(data)) as im:
            return FORMAT_TO_MIME.get(im.format or "", fallback)
    except (UnidentifiedImageError, OSError, ValueError):
        return fallback


def to_data_url(data: bytes, content_type: Optional[str] = None) -> str:
    mime = content_type or sniff_content_type(data)
    return f"data:{mime};base64,{base64.b64encode(data).decode()}"


def decode_data_url(url: str) -> Tuple[bytes, str]:
    """Split a base64 data URL into raw bytes and its mime type."""
    if not url.startswith("data:") or "," not in url:
        raise ValueError("not_a_data_url")
    header, payload = url[5:].split(",", 1)
    mime = header.split(";", 1)[0] or "application/octet-stream"
    if ";base64" not in header:
        raise ValueError("unsupported_data_url_encoding")
    try:
        return base64.b64decode(payload, validate=False), mime
    except binascii.Error as e:
        raise ValueError("invalid_base64") from e
