from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, Text, Index, text
from voucherhub.database import Base
from voucherhub.models.voucher_code import VoucherType


class Voucher(Base):
    """Ledger row: one per digital claim or physical record."""
    __tablename__ = "vouchers"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(Enum(VoucherType), nullable=False, index=True)
    voucher_code = Column(String, unique=True, nullable=False, index=True)
    whatsapp_number = Column(String, nullable=False, index=True)  # digits only

    # Claimant details
    full_name = Column(String)
    birth_year = Column(String)
    gender = Column(String)

    outlet = Column(String, nullable=False, index=True)
    claim_date = Column(DateTime(timezone=True), nullable=False, index=True)

    # Redemption, set once
    is_redeemed = Column(Boolean, nullable=False, default=False)
    redeemed_date = Column(DateTime(timezone=True))
    redeemed_outlet = Column(String)

    discount_amount = Column(Integer)
    notes = Column(Text)


# One digital voucher per WhatsApp number, ever
Index(
    "uq_vouchers_digital_whatsapp",
    Voucher.whatsapp_number,
    unique=True,
    postgresql_where=text("type = 'DIGITAL'"),
    sqlite_where=text("type = 'DIGITAL'"),
)
