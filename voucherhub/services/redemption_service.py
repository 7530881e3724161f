from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Callable, Optional
from datetime import datetime
import logging

from voucherhub.database import store_errors
from voucherhub.exceptions import AlreadyRedeemed, AlreadyUsed, InvalidCode, NotFound
from voucherhub.models.voucher import Voucher
from voucherhub.models.voucher_code import VoucherType
from voucherhub.repositories.code_pool_repo import CodePoolRepository
from voucherhub.repositories.voucher_repo import VoucherRepository
from voucherhub.utils.clock import ensure_utc, utc_now
from voucherhub.utils.helpers import format_currency, format_phone_number, looks_like_phone_number, normalize_code

logger = logging.getLogger(__name__)


class RedemptionEngine:
    """Cashier-side operations: redeem a DIGITAL voucher, record a PHYSICAL one."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self.codes = CodePoolRepository(db)
        self.vouchers = VoucherRepository(db)

    def redeem_digital(self, identifier: str, outlet: str) -> Voucher:
        """
        Redeem by voucher code (any case) or by the claimant's WhatsApp number.
        Exactly one concurrent caller wins; the rest get AlreadyRedeemed.
        """
        now = ensure_utc(self.clock())

        with store_errors(self.db, "digital redemption"):
            # Letters mean a code; digits inside a code are never a phone number
            phone = format_phone_number(identifier) if looks_like_phone_number(identifier) else ""
            matches = self.vouchers.find_digital(normalize_code(identifier), phone)
            if not matches:
                self.db.rollback()
                raise NotFound()

            voucher = matches[0]
            if voucher.is_redeemed:
                error = self._already_redeemed(voucher)
                self.db.rollback()
                raise error

            if not self.vouchers.mark_redeemed(voucher.id, outlet, now):
                self.db.rollback()
                # Re-read the winner's outlet and date
                self.db.refresh(voucher)
                error = self._already_redeemed(voucher)
                self.db.rollback()
                raise error

            self.db.commit()
            self.db.refresh(voucher)

        logger.info(
            f"Voucher {voucher.voucher_code} redeemed at {outlet} "
            f"({format_currency(voucher.discount_amount or 0)})"
        )
        return voucher

    def record_physical(
        self,
        gender: str,
        whatsapp_number: str,
        outlet: str,
        voucher_code: str,
        notes: Optional[str] = None,
    ) -> Voucher:
        """Record a printed voucher as redeemed-on-input."""
        now = ensure_utc(self.clock())

        with store_errors(self.db, "physical record"):
            entry = self.codes.get_by_code(voucher_code, VoucherType.PHYSICAL)
            if entry is None:
                self.db.rollback()
                raise InvalidCode(voucher_code=voucher_code.strip())
            code = entry.code
            if entry.is_used:
                self.db.rollback()
                raise AlreadyUsed(voucher_code=code)

            try:
                if not self.codes.reserve(entry.id, now):
                    raise AlreadyUsed(voucher_code=code)

                voucher = self.vouchers.add(Voucher(
                    type=VoucherType.PHYSICAL,
                    voucher_code=code,
                    whatsapp_number=format_phone_number(whatsapp_number),
                    gender=gender,
                    outlet=outlet,
                    claim_date=now,
                    is_redeemed=True,
                    redeemed_date=now,
                    redeemed_outlet=outlet,
                    notes=notes,
                ))
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning(f"Physical code {code} already has a ledger row")
                raise AlreadyUsed(voucher_code=code)
            except Exception:
                self.db.rollback()
                raise

            self.db.refresh(voucher)

        logger.info(f"Physical voucher {voucher.voucher_code} recorded at {outlet}")
        return voucher

    @staticmethod
    def _already_redeemed(voucher: Voucher) -> AlreadyRedeemed:
        return AlreadyRedeemed(
            voucher_code=voucher.voucher_code,
            redeemed_outlet=voucher.redeemed_outlet,
            redeemed_date=ensure_utc(voucher.redeemed_date),
        )
