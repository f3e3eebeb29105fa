from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Iterable, Optional

from ..exceptions import EncodingError

# Extensions accepted by the picker: .png, .jpg, .jpeg, .webp
DEFAULT_ACCEPTED_MIME = ("image/png", "image/jpeg", "image/webp")


def guess_mime_type(name: str | Path) -> Optional[str]:
    """Guess an image media type from a file name, or None if unknown."""
    mime, _ = mimetypes.guess_type(str(name))
    if mime is None and str(name).lower().endswith(".webp"):
        # Older mimetypes tables do not know webp
        return "image/webp"
    return mime


def validate_image_source(
    path: str | Path,
    mime_type: Optional[str] = None,
    accepted: Iterable[str] = DEFAULT_ACCEPTED_MIME,
) -> str:
    """Check that a picked file exists, is non-empty and has an accepted type.

    Returns the resolved media type. Raises EncodingError otherwise.
    """
    p = Path(path)
    if not p.is_file():
        raise EncodingError(f"Image not found: {p.name}")
    try:
        if p.stat().st_size == 0:
            raise EncodingError(f"Image {p.name} is empty")
    except OSError as exc:
        raise EncodingError(f"Image {p.name} is unreadable") from exc

    mime = (mime_type or guess_mime_type(p) or "").lower()
    allowed = {m.lower() for m in accepted}
    if mime not in allowed:
        raise EncodingError(f"Unsupported image type: {mime or 'unknown'}")
    return mime
