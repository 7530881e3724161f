"""
Digital voucher allocation.

A claim reserves one unused DIGITAL pool code, consumes one unit of the
day's quota and writes the ledger row, all in one transaction. Any failure
rolls the whole thing back, which also returns the code to the pool.
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Callable, Optional
from datetime import datetime
import logging

from voucherhub.config import settings as app_settings
from voucherhub.database import store_errors
from voucherhub.exceptions import ClaimsClosed, DailyQuotaExceeded, DuplicateClaimant, PoolExhausted
from voucherhub.models.voucher import Voucher
from voucherhub.models.voucher_code import VoucherCode, VoucherType
from voucherhub.repositories.code_pool_repo import CodePoolRepository
from voucherhub.repositories.quota_repo import QuotaRepository
from voucherhub.repositories.voucher_repo import VoucherRepository
from voucherhub.services.settings_service import SettingsService
from voucherhub.utils.clock import business_day, day_bounds, ensure_utc, get_business_tz, utc_now
from voucherhub.utils.helpers import format_phone_number, generate_voucher_code

logger = logging.getLogger(__name__)

FABRICATION_ATTEMPTS = 5


class AllocationEngine:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now, config=app_settings):
        self.db = db
        self.clock = clock
        self.config = config
        self.settings = SettingsService(db, config=config)
        self.codes = CodePoolRepository(db)
        self.vouchers = VoucherRepository(db)
        self.quota = QuotaRepository(db)

    def claim(
        self,
        full_name: str,
        birth_year: str,
        whatsapp_number: str,
        outlet: str,
        notes: Optional[str] = None,
    ) -> Voucher:
        phone = format_phone_number(whatsapp_number)
        now = ensure_utc(self.clock())
        tz = get_business_tz(self.config.BUSINESS_TIMEZONE)
        today = business_day(now, tz)

        if not self.settings.get_claim_enabled():
            self.db.rollback()
            raise ClaimsClosed()

        limit = self.settings.get_daily_limit()
        start, end = day_bounds(today, tz)
        with store_errors(self.db, "claim pre-check"):
            claimed_today = self.vouchers.count_claims_between(start, end, VoucherType.DIGITAL)
            if claimed_today >= limit:
                logger.warning(f"Daily quota reached for {today}: {claimed_today}/{limit}")
                self.db.rollback()
                raise DailyQuotaExceeded(claimed=claimed_today, limit=limit)

            if self.vouchers.get_digital_by_whatsapp(phone):
                self.db.rollback()
                raise DuplicateClaimant()

            self.quota.ensure_day(today, seed=claimed_today)

        with store_errors(self.db, "claim"):
            try:
                code = self._reserve_code(now)

                if not self.quota.try_consume(today, limit):
                    logger.warning(f"Quota counter refused claim for {today} (limit {limit})")
                    raise DailyQuotaExceeded(limit=limit)

                voucher = self.vouchers.add(Voucher(
                    type=VoucherType.DIGITAL,
                    voucher_code=code.code,
                    whatsapp_number=phone,
                    full_name=full_name,
                    birth_year=birth_year,
                    outlet=outlet,
                    claim_date=now,
                    is_redeemed=False,
                    discount_amount=code.discount_amount,
                    notes=notes,
                ))
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                duplicate = self.vouchers.get_digital_by_whatsapp(phone) is not None
                self.db.rollback()
                if duplicate:
                    logger.warning(f"Concurrent claim for {phone} lost on the unique index")
                    raise DuplicateClaimant()
                raise
            except Exception:
                self.db.rollback()
                raise

            self.db.refresh(voucher)

        logger.info(f"Voucher {voucher.voucher_code} claimed by {phone} at {outlet}")
        return voucher

    def _reserve_code(self, now: datetime) -> VoucherCode:
        """Win the conditional flip on some unused DIGITAL code, or give up."""
        tried = []
        for attempt in range(self.config.MAX_RESERVATION_ATTEMPTS):
            candidate = self.codes.pick_candidate(
                VoucherType.DIGITAL,
                exclude_ids=tried,
                policy=self.config.CODE_SELECTION_POLICY,
            )
            if candidate is None:
                break
            if self.codes.reserve(candidate.id, now):
                return candidate
            logger.warning(f"Lost race for code id {candidate.id} (attempt {attempt + 1}), retrying")
            tried.append(candidate.id)

        if not self.config.ALLOW_FABRICATED_CODES_ON_EXHAUSTION:
            raise PoolExhausted()

        return self._fabricate_code(now)

    def _fabricate_code(self, now: datetime) -> VoucherCode:
        """Generate a numeric code no pool entry or voucher uses yet."""
        for attempt in range(FABRICATION_ATTEMPTS):
            code = generate_voucher_code(self.config.FABRICATED_CODE_LENGTH)
            if self.codes.code_taken(code):
                logger.warning(f"Generated code {code} already exists (attempt {attempt + 1})")
                continue
            try:
                # A collision rolls back to here, not the whole claim
                with self.db.begin_nested():
                    entry = self.codes.add(
                        code,
                        VoucherType.DIGITAL,
                        discount_amount=self.config.DEFAULT_DISCOUNT_AMOUNT,
                        is_used=True,
                        used_at=now,
                        is_fabricated=True,
                    )
            except IntegrityError:
                logger.warning(f"Generated code {code} collided on insert (attempt {attempt + 1})")
                continue
            logger.warning(f"DIGITAL pool exhausted, issuing fabricated code {code}")
            return entry

        raise PoolExhausted("Digital voucher stock is exhausted and no free code could be generated.")
