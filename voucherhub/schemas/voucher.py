from pydantic import BaseModel, Field, field_validator
from typing import Literal, List, Optional
from datetime import datetime
from voucherhub.models.voucher_code import VoucherType
from voucherhub.utils.helpers import format_phone_number, is_valid_phone_number

MIN_BIRTH_YEAR = 1920


def _check_whatsapp(value: str) -> str:
    if not is_valid_phone_number(value):
        raise ValueError("WhatsApp number must contain 10-14 digits")
    return format_phone_number(value)


class ClaimRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    birth_year: str
    whatsapp_number: str
    outlet: str = Field(..., min_length=1, max_length=200)
    notes: Optional[str] = None

    @field_validator("birth_year")
    @classmethod
    def check_birth_year(cls, value: str) -> str:
        value = value.strip()
        if len(value) != 4 or not value.isdigit():
            raise ValueError("birth_year must be a 4-digit year")
        if not MIN_BIRTH_YEAR <= int(value) <= datetime.now().year:
            raise ValueError(f"birth_year must be between {MIN_BIRTH_YEAR} and this year")
        return value

    @field_validator("whatsapp_number")
    @classmethod
    def check_whatsapp(cls, value: str) -> str:
        return _check_whatsapp(value)


class DigitalRedeemRequest(BaseModel):
    identifier: str = Field(..., min_length=1, description="Voucher code or WhatsApp number")
    outlet: str = Field(..., min_length=1, max_length=200)


class PhysicalRecordRequest(BaseModel):
    gender: Literal["Pria", "Wanita"]
    whatsapp_number: str
    outlet: str = Field(..., min_length=1, max_length=200)
    voucher_code: str = Field(..., min_length=1)
    notes: Optional[str] = None

    @field_validator("whatsapp_number")
    @classmethod
    def check_whatsapp(cls, value: str) -> str:
        return _check_whatsapp(value)


class VoucherResponse(BaseModel):
    id: int
    type: VoucherType
    voucher_code: str
    whatsapp_number: str
    full_name: Optional[str] = None
    birth_year: Optional[str] = None
    gender: Optional[str] = None
    outlet: str
    claim_date: datetime
    is_redeemed: bool
    redeemed_date: Optional[datetime] = None
    redeemed_outlet: Optional[str] = None
    discount_amount: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class VoucherListResponse(BaseModel):
    vouchers: List[VoucherResponse]
    total: int
    skip: int
    limit: int
