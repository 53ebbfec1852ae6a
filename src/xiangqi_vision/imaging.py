"""Helpers for turning an uploaded photograph into oracle input."""

from __future__ import annotations

import base64
import binascii
import io

from PIL import Image, UnidentifiedImageError


def sniff_mime_type(data: bytes, default: str = "image/jpeg") -> str:
    """MIME type of an encoded image, from its content rather than its filename."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
    except (UnidentifiedImageError, OSError):
        return default
    if fmt is None:
        return default
    return Image.MIME.get(fmt, default)


def unwrap_data_url(url: str) -> tuple[bytes, str]:
    """Split a ``data:<mime>;base64,<payload>`` URL into bytes and MIME type."""
    header, sep, payload = url.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("not a base64 data URL")
    mime = header[len("data:") : -len(";base64")] or "application/octet-stream"
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 payload: {e}") from e
    return data, mime
