from __future__ import annotations

import base64
import binascii
import math
import re
from datetime import datetime, date, timezone
from typing import Any, Optional

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


def iso_today() -> str:
    return date.today().isoformat()


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def parse_iso_date(v: Any) -> Optional[date]:
    """Leading YYYY-MM-DD of a stored date (timestamps allowed); None when unreadable."""
    s = clean_text(v)
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def safe_div(n: float, d: float) -> float:
    return float(n) / float(d) if d else 0.0


def num(v: Any) -> float:
    """
    Lenient number coercion for calculations.
    None, blanks, non-numbers, NaN/inf and negatives all become 0.0.
    """
    if v is None or isinstance(v, bool):
        return 0.0
    try:
        f = float(v)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(f) or f < 0:
        return 0.0
    return f


def signed_num(v: Any) -> float:
    # Same as num() but keeps the sign (profit, prices already on file).
    if v is None or isinstance(v, bool):
        return 0.0
    try:
        f = float(v)
    except (TypeError, ValueError):
        return 0.0
    return f if math.isfinite(f) else 0.0


def clean_text(v: Optional[str]) -> str:
    if v is None:
        return ""
    return str(v).strip()


def sniff_image_mime(raw: bytes) -> str:
    if raw.startswith(b"\x89PNG"):
        return "image/png"
    if raw.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if raw[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    if raw[:4] == b"RIFF" and raw[8:12] == b"WEBP":
        return "image/webp"
    return "application/octet-stream"


def bytes_to_data_url(raw: bytes, mime: Optional[str] = None) -> str:
    mime = mime or sniff_image_mime(raw)
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


def data_url_to_bytes(value: str) -> bytes:
    """
    Decode a data URL (or a bare base64 string) back to bytes.
    Raises ValueError when the text is not decodable.
    """
    m = _DATA_URL_RE.match(value.strip())
    if m:
        if not m.group("b64"):
            raise ValueError("Only base64 data URLs are supported.")
        payload = m.group("data")
    else:
        payload = value.strip()
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 attachment: {e}") from e
