from sqlalchemy.orm import Session
from typing import Dict
import logging

from voucherhub.database import store_errors
from voucherhub.repositories.code_pool_repo import CodePoolRepository
from voucherhub.repositories.quota_repo import QuotaRepository
from voucherhub.repositories.voucher_repo import VoucherRepository

logger = logging.getLogger(__name__)


def reset_data(db: Session, purge_codes: bool = False) -> Dict[str, int]:
    """
    Wipe the ledger and the quota counters in one transaction.
    Uploaded codes go back to unused, or are deleted when purge_codes is set.
    Codes generated on exhaustion are always deleted.
    """
    with store_errors(db, "reset"):
        try:
            vouchers_deleted = VoucherRepository(db).delete_all()
            QuotaRepository(db).delete_all()
            codes = CodePoolRepository(db)
            if purge_codes:
                codes_affected = codes.delete_all()
                fabricated_deleted = 0
            else:
                # Generated codes were never stock
                fabricated_deleted = codes.delete_fabricated()
                codes_affected = codes.release_all()
            db.commit()
        except Exception:
            db.rollback()
            raise

    logger.warning(
        f"Data reset: {vouchers_deleted} vouchers deleted, "
        f"{codes_affected} codes {'purged' if purge_codes else 'released'}"
    )
    return {
        "vouchers_deleted": vouchers_deleted,
        "codes_purged": codes_affected if purge_codes else fabricated_deleted,
        "codes_released": 0 if purge_codes else codes_affected,
    }
