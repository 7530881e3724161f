from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, Dict
from voucherhub.models.setting import Setting


class SettingsRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_value(self, key: str) -> Optional[str]:
        row = self.db.query(Setting.setting_value).filter(Setting.setting_key == key).first()
        return row[0] if row else None

    def get_all(self) -> Dict[str, str]:
        return {row.setting_key: row.setting_value for row in self.db.query(Setting).all()}

    def upsert(self, key: str, value: str) -> None:
        """UPDATE, INSERT on miss, UPDATE again if a concurrent INSERT won. Commits."""
        updated_rows = (
            self.db.query(Setting)
            .filter(Setting.setting_key == key)
            .update({"setting_value": value}, synchronize_session=False)
        )
        if updated_rows == 0:
            try:
                self.db.add(Setting(setting_key=key, setting_value=value))
                self.db.flush()
            except IntegrityError:
                self.db.rollback()
                self.db.query(Setting).filter(Setting.setting_key == key).update(
                    {"setting_value": value}, synchronize_session=False
                )
        self.db.commit()
