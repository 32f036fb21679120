from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Optional

from ..core.enums import RejectReason
from ..core.exceptions import ValidationError
from .datetime_utils import parse_client_timestamp


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required", reason=RejectReason.MISSING_FIELD)
    return str(value).strip()


def require_confidence(value: Any) -> float:
    """Coerce a face-match score into a float in [0, 1]."""
    if value is None or value == "":
        raise ValidationError("confidence is required", reason=RejectReason.MISSING_FIELD)
    if isinstance(value, bool):
        raise ValidationError("confidence must be a number", reason=RejectReason.INVALID_CONFIDENCE)
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        raise ValidationError("confidence must be a number", reason=RejectReason.INVALID_CONFIDENCE)
    if math.isnan(confidence) or confidence < 0.0 or confidence > 1.0:
        raise ValidationError("confidence must be between 0 and 1", reason=RejectReason.INVALID_CONFIDENCE)
    return confidence


def optional_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return parse_client_timestamp(str(value))
    except ValueError:
        raise ValidationError(f"invalid timestamp {value!r}", reason=RejectReason.INVALID_TIMESTAMP)
