from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from voucherhub.database import get_db
from voucherhub.middleware.auth import require_admin
from voucherhub.models.voucher_code import VoucherType
from voucherhub.schemas.code_pool import CodeUploadRequest, CodeUploadResponse, PoolCountResponse, PoolSummaryResponse
from voucherhub.services.code_pool_service import CodePoolService

router = APIRouter(prefix="/api/v1/codes", tags=["Code Pool"], dependencies=[Depends(require_admin)])


@router.post("/upload", response_model=CodeUploadResponse, response_model_exclude_none=True)
def upload_codes(
    upload: CodeUploadRequest,
    db: Session = Depends(get_db)
):
    """Add codes to the pool (list or one code per line)"""
    codes = upload.codes if upload.codes is not None else upload.text
    return CodePoolService(db).upload_codes(
        codes,
        upload.type,
        discount_amount=upload.discount_amount,
        replace=upload.replace,
    )


@router.get("/count", response_model=PoolCountResponse)
def get_pool_count(
    type: VoucherType = Query(VoucherType.DIGITAL),
    db: Session = Depends(get_db)
):
    """Unused codes left for a type"""
    return {"type": type, "unused": CodePoolService(db).get_pool_count(type)}


@router.get("/summary", response_model=PoolSummaryResponse)
def get_pool_summary(db: Session = Depends(get_db)):
    return {"pool": CodePoolService(db).get_pool_summary()}
