from pydantic import BaseModel
from typing import Dict, List


class OutletCount(BaseModel):
    outlet: str
    count: int


class DayCount(BaseModel):
    date: str
    count: int


class StatsResponse(BaseModel):
    total_claims: int
    total_redeemed: int
    claims_today: int
    digital_claimed_today: int
    claims_by_outlet: List[OutletCount]
    claims_per_day: List[DayCount]
    pool: Dict[str, Dict[str, int]]
    redeemed_digital: int
    redeemed_physical: int
    estimated_reimbursement: int
    estimated_reimbursement_display: str


class ResetRequest(BaseModel):
    purge_codes: bool = False


class ResetResponse(BaseModel):
    vouchers_deleted: int
    codes_released: int
    codes_purged: int
