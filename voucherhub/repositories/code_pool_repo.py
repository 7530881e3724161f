from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Optional, List, Iterable, Set
from datetime import datetime
from voucherhub.models.voucher import Voucher
from voucherhub.models.voucher_code import VoucherCode, VoucherType


class CodePoolRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_code(self, code: str, voucher_type: Optional[VoucherType] = None) -> Optional[VoucherCode]:
        """Case-insensitive lookup"""
        query = self.db.query(VoucherCode).filter(func.lower(VoucherCode.code) == code.strip().lower())
        if voucher_type is not None:
            query = query.filter(VoucherCode.type == voucher_type)
        return query.first()

    def pick_candidate(
        self,
        voucher_type: VoucherType,
        exclude_ids: Iterable[int] = (),
        policy: str = "random",
    ) -> Optional[VoucherCode]:
        """
        Return an unused code of the given type without taking it.
        The caller must still win reserve() before the code is theirs.
        """
        query = self.db.query(VoucherCode).filter(
            VoucherCode.type == voucher_type,
            VoucherCode.is_used == False,
        )
        exclude_ids = list(exclude_ids)
        if exclude_ids:
            query = query.filter(VoucherCode.id.not_in(exclude_ids))

        if policy == "first":
            query = query.order_by(VoucherCode.id)
        else:
            query = query.order_by(func.random())
        return query.first()

    def reserve(self, code_id: int, used_at: datetime) -> bool:
        """
        Flip is_used false -> true. Returns False when another transaction
        already took the code.
        """
        updated_rows = (
            self.db.query(VoucherCode)
            .filter(VoucherCode.id == code_id, VoucherCode.is_used == False)
            .update({"is_used": True, "used_at": used_at}, synchronize_session=False)
        )
        return updated_rows == 1

    def add(
        self,
        code: str,
        voucher_type: VoucherType,
        discount_amount: Optional[int] = None,
        is_used: bool = False,
        used_at: Optional[datetime] = None,
        is_fabricated: bool = False,
    ) -> VoucherCode:
        """Insert one code (flush only, caller commits)"""
        entry = VoucherCode(
            code=code,
            type=voucher_type,
            discount_amount=discount_amount,
            is_used=is_used,
            used_at=used_at,
            is_fabricated=is_fabricated,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def bulk_add(self, codes: List[str], voucher_type: VoucherType, discount_amount: Optional[int] = None) -> int:
        """Insert many unused codes (caller commits)"""
        self.db.add_all([
            VoucherCode(code=code, type=voucher_type, discount_amount=discount_amount, is_used=False)
            for code in codes
        ])
        self.db.flush()
        return len(codes)

    def existing_keys(self, keys: Iterable[str]) -> Set[str]:
        """Subset of lower-cased codes already in the pool"""
        keys = list(keys)
        found: Set[str] = set()
        # Keep IN lists bounded
        for start in range(0, len(keys), 500):
            chunk = keys[start:start + 500]
            rows = self.db.query(func.lower(VoucherCode.code)).filter(
                func.lower(VoucherCode.code).in_(chunk)
            ).all()
            found.update(row[0] for row in rows)
        return found

    def delete_unused(self, voucher_type: VoucherType) -> int:
        return (
            self.db.query(VoucherCode)
            .filter(VoucherCode.type == voucher_type, VoucherCode.is_used == False)
            .delete(synchronize_session=False)
        )

    def count(self, voucher_type: Optional[VoucherType] = None, is_used: Optional[bool] = None) -> int:
        query = self.db.query(func.count(VoucherCode.id))
        if voucher_type is not None:
            query = query.filter(VoucherCode.type == voucher_type)
        if is_used is not None:
            query = query.filter(VoucherCode.is_used == is_used)
        return query.scalar() or 0

    def code_taken(self, code: str) -> bool:
        """Code exists in the pool or in the ledger, any case"""
        key = code.strip().lower()
        if self.db.query(VoucherCode.id).filter(func.lower(VoucherCode.code) == key).first():
            return True
        return self.db.query(Voucher.id).filter(func.lower(Voucher.voucher_code) == key).first() is not None

    def delete_fabricated(self) -> int:
        return (
            self.db.query(VoucherCode)
            .filter(VoucherCode.is_fabricated == True)
            .delete(synchronize_session=False)
        )

    def release_all(self) -> int:
        """Return every uploaded code to the pool; generated codes are skipped"""
        return (
            self.db.query(VoucherCode)
            .filter(VoucherCode.is_used == True, VoucherCode.is_fabricated == False)
            .update({"is_used": False, "used_at": None}, synchronize_session=False)
        )

    def delete_all(self) -> int:
        return self.db.query(VoucherCode).delete(synchronize_session=False)
