from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import RejectReason
from ..qr.model import QRToken
from .base import Decision


class QRGateway:
    """Decides whether a QR token may be redeemed right now.

    Only decides. Consumption is done by the engine through
    ``QRTokenStore.try_consume`` so the check is repeated at write time.

    Binding policy: a token bound to a user is only redeemable by that user.
    With ``require_bound_tokens`` on, unbound tokens are refused as well.
    """

    def __init__(self, *, require_bound_tokens: bool = False):
        self._require_bound_tokens = bool(require_bound_tokens)

    def evaluate(self, token: Optional[QRToken], now: datetime, user_id: Optional[str] = None) -> Decision:
        if token is None:
            return Decision.reject(RejectReason.QR_NOT_FOUND)
        if token.is_used:
            return Decision.reject(RejectReason.QR_ALREADY_USED)
        if not token.is_valid_at(now):
            return Decision.reject(RejectReason.QR_EXPIRED)

        if user_id is not None:
            if token.bound_user_id is None:
                if self._require_bound_tokens:
                    return Decision.reject(RejectReason.QR_WRONG_USER)
            elif str(token.bound_user_id) != str(user_id):
                return Decision.reject(RejectReason.QR_WRONG_USER)

        return Decision.admit()
