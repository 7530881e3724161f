from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from datetime import date
from voucherhub.models.daily_claim_counter import DailyClaimCounter


class QuotaRepository:
    """Per-day DIGITAL claim counter. The conditional increment is the quota guard."""

    def __init__(self, db: Session):
        self.db = db

    def get_claimed(self, day: date) -> int:
        row = self.db.query(DailyClaimCounter.claimed).filter(DailyClaimCounter.claim_day == day).first()
        return row[0] if row else 0

    def ensure_day(self, day: date, seed: int) -> None:
        """
        Create the counter row for `day` in its own short transaction.
        Losing the insert race to another request is fine.
        """
        exists = self.db.query(DailyClaimCounter.claim_day).filter(DailyClaimCounter.claim_day == day).first()
        if exists:
            # close the read transaction so the claim starts fresh
            self.db.commit()
            return
        try:
            self.db.add(DailyClaimCounter(claim_day=day, claimed=seed))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()

    def try_consume(self, day: date, limit: int) -> bool:
        """claimed = claimed + 1 only while claimed < limit"""
        updated_rows = (
            self.db.query(DailyClaimCounter)
            .filter(DailyClaimCounter.claim_day == day, DailyClaimCounter.claimed < limit)
            .update({"claimed": DailyClaimCounter.claimed + 1}, synchronize_session=False)
        )
        return updated_rows == 1

    def delete_all(self) -> int:
        return self.db.query(DailyClaimCounter).delete(synchronize_session=False)
