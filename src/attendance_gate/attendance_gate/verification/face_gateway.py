from __future__ import annotations

import math

from ..core.constants import FACE_CONFIDENCE_THRESHOLD
from ..core.enums import RejectReason
from .base import Decision


class FaceGateway:
    """Admits a precomputed face-match score at or above a fixed threshold."""

    def __init__(self, threshold: float = FACE_CONFIDENCE_THRESHOLD):
        self._threshold = float(threshold)

    @property
    def threshold(self) -> float:
        return self._threshold

    def evaluate(self, confidence: float) -> Decision:
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            return Decision.reject(RejectReason.INVALID_CONFIDENCE)
        if math.isnan(confidence) or not 0.0 <= confidence <= 1.0:
            return Decision.reject(RejectReason.INVALID_CONFIDENCE)
        if confidence < self._threshold:
            return Decision.reject(RejectReason.LOW_CONFIDENCE)
        return Decision.admit()
