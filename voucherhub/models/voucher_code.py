from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Index
from sqlalchemy.sql import func
from voucherhub.database import Base
import enum


class VoucherType(str, enum.Enum):
    """Voucher kinds handled by the pool and the ledger"""
    DIGITAL = "DIGITAL"  # issued through the claim form
    PHYSICAL = "PHYSICAL"  # printed, recorded by a cashier on use


class VoucherCode(Base):
    """
    Preloaded pool entry. is_used flips false -> true exactly once, through a
    conditional UPDATE in CodePoolRepository.reserve().
    """
    __tablename__ = "voucher_codes"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, nullable=False)
    type = Column(Enum(VoucherType), nullable=False, index=True)
    discount_amount = Column(Integer)  # minor currency units, DIGITAL only
    is_used = Column(Boolean, nullable=False, default=False, index=True)
    is_fabricated = Column(Boolean, nullable=False, default=False)  # generated on exhaustion, never stock
    used_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())


# Codes are unique regardless of letter case
Index("uq_voucher_codes_code_lower", func.lower(VoucherCode.code), unique=True)
