from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from voucherhub.database import get_db
from voucherhub.middleware.auth import require_admin
from voucherhub.schemas.stats import ResetRequest, ResetResponse
from voucherhub.services.admin_service import reset_data

router = APIRouter(prefix="/api/v1/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.post("/reset", response_model=ResetResponse)
def reset(request: ResetRequest, db: Session = Depends(get_db)):
    """Delete every voucher and return codes to the pool (or purge them)"""
    return reset_data(db, purge_codes=request.purge_codes)
