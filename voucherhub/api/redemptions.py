from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from voucherhub.database import get_db
from voucherhub.middleware.auth import require_cashier
from voucherhub.schemas.voucher import DigitalRedeemRequest, PhysicalRecordRequest, VoucherResponse
from voucherhub.services.redemption_service import RedemptionEngine
from voucherhub.utils.clock import get_clock

router = APIRouter(
    prefix="/api/v1/redemptions",
    tags=["Redemptions"],
    dependencies=[Depends(require_cashier)],
)


@router.post("/digital", response_model=VoucherResponse)
def redeem_digital(
    request: DigitalRedeemRequest,
    clock=Depends(get_clock),
    db: Session = Depends(get_db)
):
    """Redeem a digital voucher by code or WhatsApp number"""
    return RedemptionEngine(db, clock=clock).redeem_digital(request.identifier, request.outlet)


@router.post("/physical", response_model=VoucherResponse, status_code=status.HTTP_201_CREATED)
def record_physical(
    request: PhysicalRecordRequest,
    clock=Depends(get_clock),
    db: Session = Depends(get_db)
):
    """Record a printed voucher handed in at the till"""
    return RedemptionEngine(db, clock=clock).record_physical(
        gender=request.gender,
        whatsapp_number=request.whatsapp_number,
        outlet=request.outlet,
        voucher_code=request.voucher_code,
        notes=request.notes,
    )
