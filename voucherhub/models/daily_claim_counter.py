from sqlalchemy import Column, Integer, Date, DateTime
from sqlalchemy.sql import func
from voucherhub.database import Base


class DailyClaimCounter(Base):
    """
    Digital claims issued per business day. Incremented only through a
    conditional UPDATE (claimed < limit) inside the claim transaction.
    """
    __tablename__ = "daily_claim_counters"

    claim_day = Column(Date, primary_key=True)
    claimed = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
