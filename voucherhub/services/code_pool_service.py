from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Dict, Iterable, Optional, Union
import logging

from voucherhub.config import settings as app_settings
from voucherhub.database import store_errors
from voucherhub.models.voucher_code import VoucherType
from voucherhub.repositories.code_pool_repo import CodePoolRepository
from voucherhub.utils.helpers import normalize_code, parse_code_lines

logger = logging.getLogger(__name__)

UPLOAD_ATTEMPTS = 3


class CodePoolService:
    """Bulk upload and stock counts for the code pool"""

    def __init__(self, db: Session, config=app_settings):
        self.db = db
        self.config = config
        self.repo = CodePoolRepository(db)

    def upload_codes(
        self,
        codes: Union[str, Iterable[str]],
        voucher_type: VoucherType,
        discount_amount: Optional[int] = None,
        replace: bool = False,
    ) -> Dict[str, int]:
        """
        Add codes to the pool. Blank entries are ignored; codes already in the
        batch or in the pool (any case) are skipped. replace=True first removes
        the unused codes of this type.
        """
        voucher_type = VoucherType(voucher_type)
        entries = parse_code_lines(codes)

        if voucher_type == VoucherType.DIGITAL:
            discount = discount_amount if discount_amount is not None else self.config.DEFAULT_DISCOUNT_AMOUNT
        else:
            discount = None

        # First spelling wins inside the batch
        batch = {}
        for code in entries:
            batch.setdefault(normalize_code(code), code)

        last_error = None
        for attempt in range(UPLOAD_ATTEMPTS):
            with store_errors(self.db, "code upload"):
                try:
                    removed = self.repo.delete_unused(voucher_type) if replace else 0
                    existing = self.repo.existing_keys(batch.keys())
                    fresh = [code for key, code in batch.items() if key not in existing]
                    self.repo.bulk_add(fresh, voucher_type, discount)
                    self.db.commit()
                except IntegrityError as e:
                    # A concurrent upload inserted an overlapping code
                    self.db.rollback()
                    last_error = e
                    logger.warning(f"Code upload collided with a concurrent upload (attempt {attempt + 1})")
                    continue

            result = {
                "accepted": len(fresh),
                "skipped": len(entries) - len(fresh),
            }
            if replace:
                result["removed"] = removed
            logger.info(
                f"Uploaded {voucher_type.value} codes: {result['accepted']} accepted, "
                f"{result['skipped']} skipped"
            )
            return result

        raise last_error

    def get_pool_count(self, voucher_type: VoucherType) -> int:
        """Unused codes of a type"""
        with store_errors(self.db, "pool count"):
            return self.repo.count(VoucherType(voucher_type), is_used=False)

    def get_pool_summary(self) -> Dict[str, Dict[str, int]]:
        summary = {}
        with store_errors(self.db, "pool summary"):
            for voucher_type in VoucherType:
                total = self.repo.count(voucher_type)
                unused = self.repo.count(voucher_type, is_used=False)
                summary[voucher_type.value] = {"total": total, "unused": unused, "used": total - unused}
        return summary
