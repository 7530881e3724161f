from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from voucherhub.database import get_db
from voucherhub.middleware.auth import require_admin
from voucherhub.schemas.settings import SettingsResponse, SettingUpdate
from voucherhub.services.settings_service import SettingsService

router = APIRouter(prefix="/api/v1/settings", tags=["Settings"])


@router.get("", response_model=SettingsResponse)
def get_settings(db: Session = Depends(get_db)):
    """Current claim switch and daily limit"""
    return SettingsService(db).get_settings()


@router.put("/{key}", response_model=SettingsResponse, dependencies=[Depends(require_admin)])
def update_setting(
    key: str,
    update: SettingUpdate,
    db: Session = Depends(get_db)
):
    try:
        return SettingsService(db).set_setting(key, update.value)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
