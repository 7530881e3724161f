from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from voucherhub.database import get_db
from voucherhub.schemas.voucher import ClaimRequest, VoucherResponse
from voucherhub.services.allocation_service import AllocationEngine
from voucherhub.utils.clock import get_clock

router = APIRouter(prefix="/api/v1/claims", tags=["Claims"])


@router.post("", response_model=VoucherResponse, status_code=status.HTTP_201_CREATED)
def claim_voucher(
    claim: ClaimRequest,
    clock=Depends(get_clock),
    db: Session = Depends(get_db)
):
    """Claim one digital voucher for a WhatsApp number"""
    engine = AllocationEngine(db, clock=clock)
    return engine.claim(
        full_name=claim.full_name,
        birth_year=claim.birth_year,
        whatsapp_number=claim.whatsapp_number,
        outlet=claim.outlet,
        notes=claim.notes,
    )
