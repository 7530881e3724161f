from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from voucherhub.database import get_db, store_errors
from voucherhub.middleware.auth import require_admin
from voucherhub.models.voucher_code import VoucherType
from voucherhub.repositories.voucher_repo import VoucherRepository
from voucherhub.schemas.stats import StatsResponse
from voucherhub.schemas.voucher import VoucherListResponse
from voucherhub.services.report_service import ReportService
from voucherhub.utils.clock import get_clock

router = APIRouter(prefix="/api/v1", tags=["Reports"], dependencies=[Depends(require_admin)])


@router.get("/vouchers", response_model=VoucherListResponse)
def list_vouchers(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    type: Optional[VoucherType] = None,
    outlet: Optional[str] = None,
    is_redeemed: Optional[bool] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Ledger listing, newest first"""
    with store_errors(db, "voucher listing"):
        vouchers, total = VoucherRepository(db).list_vouchers(
            skip=skip,
            limit=limit,
            voucher_type=type,
            outlet=outlet,
            is_redeemed=is_redeemed,
            search=search,
        )
    return {"vouchers": vouchers, "total": total, "skip": skip, "limit": limit}


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    days: int = Query(30, ge=1, le=366),
    clock=Depends(get_clock),
    db: Session = Depends(get_db)
):
    """Dashboard aggregates"""
    return ReportService(db, clock=clock).get_stats(days=days)
