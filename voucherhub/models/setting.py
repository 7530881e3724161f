from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from voucherhub.database import Base


class Setting(Base):
    """Key/value switches read before every claim (claim_enabled, daily_limit)."""
    __tablename__ = "settings"

    setting_key = Column(String, primary_key=True)
    setting_value = Column(String, nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
