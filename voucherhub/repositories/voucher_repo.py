from sqlalchemy.orm import Session
from sqlalchemy import case, func, or_
from typing import Optional, List, Tuple
from datetime import datetime
from voucherhub.models.voucher import Voucher
from voucherhub.models.voucher_code import VoucherType


class VoucherRepository:
    def __init__(self, db: Session):
        self.db = db

    def add(self, voucher: Voucher) -> Voucher:
        """Insert a ledger row (flush only, caller commits)"""
        self.db.add(voucher)
        self.db.flush()
        return voucher

    def get_by_id(self, voucher_id: int) -> Optional[Voucher]:
        return self.db.query(Voucher).filter(Voucher.id == voucher_id).first()

    def get_digital_by_whatsapp(self, whatsapp_number: str) -> Optional[Voucher]:
        return self.db.query(Voucher).filter(
            Voucher.type == VoucherType.DIGITAL,
            Voucher.whatsapp_number == whatsapp_number,
        ).first()

    def find_digital(self, code_key: str, phone_digits: str) -> List[Voucher]:
        """
        DIGITAL vouchers matching a code (case-insensitive) or a WhatsApp number.
        Code matches come before phone matches, then unredeemed before redeemed.
        """
        code_match = func.lower(Voucher.voucher_code) == code_key
        conditions = [code_match]
        if phone_digits:
            conditions.append(Voucher.whatsapp_number == phone_digits)
        return (
            self.db.query(Voucher)
            .filter(Voucher.type == VoucherType.DIGITAL, or_(*conditions))
            .order_by(case((code_match, 0), else_=1), Voucher.is_redeemed, Voucher.id)
            .all()
        )

    def count_claims_between(self, start: datetime, end: datetime, voucher_type: Optional[VoucherType] = None) -> int:
        query = self.db.query(func.count(Voucher.id)).filter(
            Voucher.claim_date >= start,
            Voucher.claim_date < end,
        )
        if voucher_type is not None:
            query = query.filter(Voucher.type == voucher_type)
        return query.scalar() or 0

    def mark_redeemed(self, voucher_id: int, outlet: str, redeemed_at: datetime) -> bool:
        """Conditional flip; False when someone redeemed it first"""
        updated_rows = (
            self.db.query(Voucher)
            .filter(Voucher.id == voucher_id, Voucher.is_redeemed == False)
            .update(
                {"is_redeemed": True, "redeemed_date": redeemed_at, "redeemed_outlet": outlet},
                synchronize_session=False,
            )
        )
        return updated_rows == 1

    def list_vouchers(
        self,
        skip: int = 0,
        limit: int = 100,
        voucher_type: Optional[VoucherType] = None,
        outlet: Optional[str] = None,
        is_redeemed: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Voucher], int]:
        """Ledger listing, newest first"""
        query = self.db.query(Voucher)

        if voucher_type is not None:
            query = query.filter(Voucher.type == voucher_type)
        if outlet:
            query = query.filter(Voucher.outlet == outlet)
        if is_redeemed is not None:
            query = query.filter(Voucher.is_redeemed == is_redeemed)
        if search:
            search_term = f"%{search}%"
            query = query.filter(
                Voucher.full_name.ilike(search_term) |
                Voucher.whatsapp_number.ilike(search_term) |
                Voucher.voucher_code.ilike(search_term)
            )

        total = query.count()
        vouchers = query.order_by(Voucher.claim_date.desc(), Voucher.id.desc()).offset(skip).limit(limit).all()
        return vouchers, total

    def count(self, voucher_type: Optional[VoucherType] = None, is_redeemed: Optional[bool] = None) -> int:
        query = self.db.query(func.count(Voucher.id))
        if voucher_type is not None:
            query = query.filter(Voucher.type == voucher_type)
        if is_redeemed is not None:
            query = query.filter(Voucher.is_redeemed == is_redeemed)
        return query.scalar() or 0

    def count_by_outlet(self) -> List[Tuple[str, int]]:
        return (
            self.db.query(Voucher.outlet, func.count(Voucher.id))
            .group_by(Voucher.outlet)
            .order_by(func.count(Voucher.id).desc(), Voucher.outlet)
            .all()
        )

    def claim_dates_since(self, start: datetime) -> List[datetime]:
        """Raw claim timestamps; bucketing happens in the business time zone"""
        return [row[0] for row in self.db.query(Voucher.claim_date).filter(Voucher.claim_date >= start).all()]

    def sum_redeemed_discount(self, voucher_type: VoucherType = VoucherType.DIGITAL) -> int:
        total = self.db.query(func.coalesce(func.sum(Voucher.discount_amount), 0)).filter(
            Voucher.type == voucher_type,
            Voucher.is_redeemed == True,
        ).scalar()
        return int(total or 0)

    def delete_all(self) -> int:
        return self.db.query(Voucher).delete(synchronize_session=False)
