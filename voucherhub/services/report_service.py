from sqlalchemy.orm import Session
from typing import Any, Callable, Dict
from datetime import datetime, timedelta
from collections import Counter

from voucherhub.config import settings as app_settings
from voucherhub.database import store_errors
from voucherhub.models.voucher_code import VoucherType
from voucherhub.repositories.code_pool_repo import CodePoolRepository
from voucherhub.repositories.voucher_repo import VoucherRepository
from voucherhub.utils.clock import business_day, day_bounds, get_business_tz, utc_now, ensure_utc
from voucherhub.utils.helpers import format_currency


class ReportService:
    """Dashboard aggregates. Snapshot reads, no locking."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now, config=app_settings):
        self.db = db
        self.clock = clock
        self.config = config
        self.vouchers = VoucherRepository(db)
        self.codes = CodePoolRepository(db)

    def get_stats(self, days: int = 30) -> Dict[str, Any]:
        tz = get_business_tz(self.config.BUSINESS_TIMEZONE)
        today = business_day(ensure_utc(self.clock()), tz)
        first_day = today - timedelta(days=days - 1)
        today_start, today_end = day_bounds(today, tz)
        window_start, _ = day_bounds(first_day, tz)

        with store_errors(self.db, "stats"):
            total_claims = self.vouchers.count()
            total_redeemed = self.vouchers.count(is_redeemed=True)
            claims_today = self.vouchers.count_claims_between(today_start, today_end)
            digital_today = self.vouchers.count_claims_between(today_start, today_end, VoucherType.DIGITAL)
            by_outlet = self.vouchers.count_by_outlet()
            claim_dates = self.vouchers.claim_dates_since(window_start)
            redeemed_digital = self.vouchers.count(VoucherType.DIGITAL, is_redeemed=True)
            redeemed_physical = self.vouchers.count(VoucherType.PHYSICAL, is_redeemed=True)
            reimbursement = self.vouchers.sum_redeemed_discount(VoucherType.DIGITAL)

            pool = {}
            for voucher_type in VoucherType:
                total = self.codes.count(voucher_type)
                remaining = self.codes.count(voucher_type, is_used=False)
                pool[voucher_type.value] = {"total": total, "remaining": remaining}
            self.db.rollback()

        buckets = Counter(business_day(moment, tz) for moment in claim_dates)
        claims_per_day = [
            {"date": (first_day + timedelta(days=offset)).isoformat(),
             "count": buckets.get(first_day + timedelta(days=offset), 0)}
            for offset in range(days)
        ]

        return {
            "total_claims": total_claims,
            "total_redeemed": total_redeemed,
            "claims_today": claims_today,
            "digital_claimed_today": digital_today,
            "claims_by_outlet": [{"outlet": outlet, "count": count} for outlet, count in by_outlet],
            "claims_per_day": claims_per_day,
            "pool": pool,
            "redeemed_digital": redeemed_digital,
            "redeemed_physical": redeemed_physical,
            "estimated_reimbursement": reimbursement,
            "estimated_reimbursement_display": format_currency(reimbursement),
        }
