from pydantic import BaseModel, Field, model_validator
from typing import Dict, List, Optional
from voucherhub.models.voucher_code import VoucherType


class CodeUploadRequest(BaseModel):
    """Either a list of codes or newline-separated text (one code per line)"""
    type: VoucherType
    codes: Optional[List[str]] = None
    text: Optional[str] = None
    discount_amount: Optional[int] = Field(None, ge=0)
    replace: bool = False

    @model_validator(mode="after")
    def check_source(self):
        if self.codes is None and self.text is None:
            raise ValueError("Provide codes or text")
        return self


class CodeUploadResponse(BaseModel):
    accepted: int
    skipped: int
    removed: Optional[int] = None


class PoolCountResponse(BaseModel):
    type: VoucherType
    unused: int


class PoolSummaryResponse(BaseModel):
    pool: Dict[str, Dict[str, int]]
