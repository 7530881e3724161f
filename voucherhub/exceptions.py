"""
Voucher engine errors.

Every business-rule rejection is terminal for the request. Only
StoreUnavailable is worth retrying (with backoff).
"""

from datetime import datetime
from typing import Optional


class VoucherError(Exception):
    """Base voucher engine error"""
    kind = "VoucherError"
    status_code = 400
    default_message = "Voucher operation failed."

    def __init__(self, message: Optional[str] = None, **context):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"detail": self.message, "error": self.kind}
        for key, value in self.context.items():
            payload[key] = value.isoformat() if isinstance(value, datetime) else value
        return payload


class ClaimsClosed(VoucherError):
    """Claiming is switched off in settings"""
    kind = "ClaimsClosed"
    status_code = 403
    default_message = "Voucher claims are currently closed."


class DailyQuotaExceeded(VoucherError):
    kind = "DailyQuotaExceeded"
    status_code = 429
    default_message = "Today's voucher quota has run out. Please try again tomorrow."


class DuplicateClaimant(VoucherError):
    """WhatsApp number already holds a digital voucher"""
    kind = "DuplicateClaimant"
    status_code = 409
    default_message = "This WhatsApp number has already claimed a voucher."


class PoolExhausted(VoucherError):
    kind = "PoolExhausted"
    status_code = 409
    default_message = "Digital voucher stock is currently exhausted."


class InvalidCode(VoucherError):
    """Physical code is not in the pool"""
    kind = "InvalidCode"
    status_code = 404
    default_message = "Physical voucher code is not valid."


class AlreadyUsed(VoucherError):
    kind = "AlreadyUsed"
    status_code = 409
    default_message = "This physical voucher has already been recorded."


class AlreadyRedeemed(VoucherError):
    """Carries redeemed_outlet / redeemed_date of the earlier redemption"""
    kind = "AlreadyRedeemed"
    status_code = 409
    default_message = "This voucher has already been redeemed."


class NotFound(VoucherError):
    kind = "NotFound"
    status_code = 404
    default_message = "Digital voucher not found."


class StoreUnavailable(VoucherError):
    """Store timed out or the connection failed; safe to retry"""
    kind = "StoreUnavailable"
    status_code = 503
    default_message = "Data store unavailable. Please retry."
