from __future__ import annotations

import base64
import binascii
import re

from app.errors import ApiError
from app.settings import get_settings

_DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>image/[A-Za-z0-9.+-]+);base64,(?P<payload>.*)$", re.DOTALL)


def validate_image_data_url(value: str | None, *, field: str) -> str | None:
    """Accept an inline ``data:image/...;base64,`` upload no larger than the configured cap."""
    if value is None:
        return None
    raw = value.strip()
    if not raw:
        return None

    match = _DATA_URL_PATTERN.match(raw)
    if match is None:
        raise ApiError(
            status_code=422,
            code="INVALID_UPLOAD",
            message=f"{field} must be an image data URL.",
        )

    try:
        decoded = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ApiError(
            status_code=422,
            code="INVALID_UPLOAD",
            message=f"{field} is not valid base64 image data.",
        ) from exc

    max_bytes = max(0, int(get_settings().max_upload_bytes))
    if len(decoded) > max_bytes:
        raise ApiError(
            status_code=413,
            code="UPLOAD_TOO_LARGE",
            message=f"{field} exceeds the {max_bytes} byte upload limit.",
        )
    return raw
