"""Data-URI encoding and reference image plumbing."""

from __future__ import annotations

import base64
import binascii
import mimetypes
import re
from io import BytesIO
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from PIL import Image, UnidentifiedImageError

from .chat.schema import InlineDataPart

DEFAULT_MIME_TYPE = "image/jpeg"
FETCHED_FALLBACK_MIME_TYPE = "image/png"

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[^;,]*);base64,(?P<payload>.*)$", re.DOTALL)

# Cloudinary delivery URLs accept inline transformations after /upload/.
_CLOUDINARY_HOST = "res.cloudinary.com"
_CLOUDINARY_UPLOAD = "/upload/"
_CLOUDINARY_TRANSFORM = "/upload/w_1024,q_auto,f_auto/"

_USER_AGENT = "eve-engine/0.1"


class ReferenceImageError(RuntimeError):
    """A reference image could not be downloaded or decoded."""


def decode_data_uri(value: str) -> tuple[str, bytes]:
    """Split ``data:<mime>;base64,<payload>`` into (mime type, raw bytes).

    A bare base64 string (no ``data:`` prefix) is accepted and assumed to be
    JPEG. Raises ValueError when the payload is empty or not valid base64.
    """
    raw = str(value or "").strip()
    if not raw:
        raise ValueError("Empty data URI.")
    match = _DATA_URI_RE.match(raw)
    if match:
        mime_type = match.group("mime").strip() or DEFAULT_MIME_TYPE
        payload = match.group("payload")
    else:
        mime_type = DEFAULT_MIME_TYPE
        payload = raw
    payload = "".join(payload.split())
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"Invalid base64 payload in data URI: {exc}") from exc
    if not data:
        raise ValueError("Data URI carries no payload.")
    return mime_type, data


def encode_data_uri(data: bytes, mime_type: str | None = None) -> str:
    encoded = base64.b64encode(bytes(data)).decode("ascii")
    return f"data:{mime_type or FETCHED_FALLBACK_MIME_TYPE};base64,{encoded}"


def to_inline_part(value: str) -> InlineDataPart:
    mime_type, data = decode_data_uri(value)
    return InlineDataPart(mime_type=mime_type, data=data)


def optimize_reference_url(url: str) -> str:
    """Ask Cloudinary for a 1024px wide, auto quality/format variant."""
    if _CLOUDINARY_HOST in url and _CLOUDINARY_UPLOAD in url:
        return url.replace(_CLOUDINARY_UPLOAD, _CLOUDINARY_TRANSFORM, 1)
    return url


def fetch_image(url: str, *, timeout_s: float = 30.0) -> InlineDataPart:
    req = Request(url, headers={"User-Agent": _USER_AGENT}, method="GET")
    try:
        with urlopen(req, timeout=timeout_s) as response:
            data = response.read()
            header_mime = response.headers.get_content_type() if response.headers else None
    except HTTPError as exc:
        raise ReferenceImageError(f"Reference image request failed ({exc.code}): {url}") from exc
    except URLError as exc:
        raise ReferenceImageError(f"Reference image request failed: {exc}") from exc
    if not data:
        raise ReferenceImageError(f"Reference image is empty: {url}")
    sniffed_mime = sniff_image_mime(data)
    if sniffed_mime is None:
        raise ReferenceImageError(f"Reference image could not be decoded: {url}")
    mime_type = header_mime if header_mime and header_mime.startswith("image/") else sniffed_mime
    return InlineDataPart(mime_type=mime_type, data=data)


def sniff_image_mime(data: bytes) -> str | None:
    try:
        with Image.open(BytesIO(data)) as image:
            image.verify()
            image_format = image.format
    except (UnidentifiedImageError, OSError, SyntaxError):
        return None
    if not image_format:
        return FETCHED_FALLBACK_MIME_TYPE
    return Image.MIME.get(image_format.upper(), FETCHED_FALLBACK_MIME_TYPE)


def mime_type_for_path(path: Path) -> str:
    guessed, _ = mimetypes.guess_type(str(path))
    return guessed or DEFAULT_MIME_TYPE


def extension_for_mime(mime_type: str | None) -> str:
    lowered = str(mime_type or "").strip().lower()
    if lowered in {"image/jpeg", "image/jpg"}:
        return "jpg"
    if lowered == "image/webp":
        return "webp"
    if lowered == "image/gif":
        return "gif"
    return "png"
