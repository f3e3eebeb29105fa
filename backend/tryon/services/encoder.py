"""Image encoder: turn raw image input into transport-safe base64 payloads."""
from __future__ import annotations

import asyncio
import base64
import binascii
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

from ..exceptions import EncodingError
from ..models import EncodedImage
from ..utils.images import guess_mime_type

ImageSource = Union[bytes, bytearray, memoryview, str, Path, BinaryIO]

_DATA_URI_PREFIX = "data:"
_BASE64_MARKER = ";base64,"


def _is_data_uri(source: object) -> bool:
    # Anything else starting with "data:" is treated as a file path
    return isinstance(source, str) and source.startswith(_DATA_URI_PREFIX) and _BASE64_MARKER in source


def _split_data_uri(uri: str) -> Tuple[str, Optional[str]]:
    """Strip a `data:<mime>;base64,` envelope, returning (payload, mime)."""
    header, sep, payload = uri.partition(",")
    if not sep or ";base64" not in header:
        raise EncodingError("Unsupported data URI; expected base64 encoding")
    mime = header[len(_DATA_URI_PREFIX):].split(";", 1)[0] or None
    payload = payload.strip()
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise EncodingError("Data URI payload is not valid base64") from exc
    return payload, mime


def _read_bytes(source: ImageSource) -> Tuple[bytes, Optional[str]]:
    """Read raw bytes from a source, returning (data, name hint for mime guessing)."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source), None
    if isinstance(source, (str, Path)):
        p = Path(source)
        try:
            return p.read_bytes(), p.name
        except OSError as exc:
            raise EncodingError(f"Could not read image {p.name}") from exc
    if hasattr(source, "read"):
        name = getattr(source, "name", None)
        try:
            data = source.read()
        except OSError as exc:
            raise EncodingError("Could not read image stream") from exc
        if not isinstance(data, (bytes, bytearray)):
            raise EncodingError("Image stream must be opened in binary mode")
        return bytes(data), name if isinstance(name, str) else None
    raise EncodingError(f"Unsupported image source: {type(source).__name__}")


def encode_image(source: ImageSource, mime_type: Optional[str] = None) -> EncodedImage:
    """Encode an image source as base64 with its media type.

    Accepts raw bytes, a file path, a binary file object, or a base64 data URI
    (whose envelope is stripped so only the payload remains).
    """
    if _is_data_uri(source):
        payload, uri_mime = _split_data_uri(source)
        mime = mime_type or uri_mime
        if not payload:
            raise EncodingError("Image is empty")
        if not mime:
            raise EncodingError("Image media type is unknown")
        return EncodedImage(base64Payload=payload, mimeType=mime)

    data, name = _read_bytes(source)
    if not data:
        raise EncodingError(f"Image {name} is empty" if name else "Image is empty")
    mime = mime_type or (guess_mime_type(name) if name else None)
    if not mime:
        raise EncodingError("Image media type is unknown")
    return EncodedImage(base64Payload=base64.b64encode(data).decode("ascii"), mimeType=mime)


async def encode_image_async(source: ImageSource, mime_type: Optional[str] = None) -> EncodedImage:
    # File reads and base64 of multi-MB photos run off the event loop
    return await asyncio.to_thread(encode_image, source, mime_type)


async def encode_pair(
    user: ImageSource,
    outfit: ImageSource,
    *,
    user_mime: Optional[str] = None,
    outfit_mime: Optional[str] = None,
) -> Tuple[EncodedImage, EncodedImage]:
    """Encode both images concurrently; fails as soon as either fails."""
    user_enc, outfit_enc = await asyncio.gather(
        encode_image_async(user, user_mime),
        encode_image_async(outfit, outfit_mime),
    )
    return user_enc, outfit_enc
