import re
import pytest

from voucherhub.exceptions import ClaimsClosed, DailyQuotaExceeded, DuplicateClaimant, PoolExhausted
from voucherhub.models.daily_claim_counter import DailyClaimCounter
from voucherhub.models.voucher import Voucher
from voucherhub.models.voucher_code import VoucherCode, VoucherType
from voucherhub.repositories.code_pool_repo import CodePoolRepository
from voucherhub.services.allocation_service import AllocationEngine


def claim(engine, phone, name="Budi", outlet="Outlet A"):
    return engine.claim(full_name=name, birth_year="1990", whatsapp_number=phone, outlet=outlet)


def test_two_claims_drain_pool_then_exhausted(db, clock, config, seed):
    seed(digital=["A1", "A2"], discount_amount=10000)
    engine = AllocationEngine(db, clock=clock, config=config)

    first = claim(engine, "081100000001")
    second = claim(engine, "081100000002")

    assert {first.voucher_code, second.voucher_code} == {"A1", "A2"}
    assert first.discount_amount == 10000
    assert first.type == VoucherType.DIGITAL
    assert first.is_redeemed is False
    with pytest.raises(PoolExhausted):
        claim(engine, "081100000003")

    assert db.query(VoucherCode).filter(VoucherCode.is_used == False).count() == 0
    assert db.query(Voucher).count() == 2


def test_claims_closed_regardless_of_pool(db, clock, config, seed):
    seed(digital=["A1"], claim_enabled=False)

    with pytest.raises(ClaimsClosed):
        claim(AllocationEngine(db, clock=clock, config=config), "081100000001")

    assert db.query(Voucher).count() == 0
    assert db.query(VoucherCode).filter(VoucherCode.is_used == True).count() == 0


def test_same_number_claims_once(db, clock, config, seed):
    seed(digital=["A1", "A2"])
    engine = AllocationEngine(db, clock=clock, config=config)
    claim(engine, "0811-0000-0001")

    # Formatting differences do not make a new claimant
    with pytest.raises(DuplicateClaimant):
        claim(engine, "+08110000 0001")

    assert CodePoolRepository(db).count(VoucherType.DIGITAL, is_used=False) == 1


def test_whatsapp_number_stored_as_digits(db, clock, config, seed):
    seed(digital=["A1"])

    voucher = claim(AllocationEngine(db, clock=clock, config=config), "+62 811-2233-4455")

    assert voucher.whatsapp_number == "6281122334455"


def test_daily_limit_allows_exactly_limit_claims(db, clock, config, seed):
    seed(digital=["A1", "A2", "A3", "A4"], daily_limit=3)
    engine = AllocationEngine(db, clock=clock, config=config)

    for n in range(3):
        claim(engine, f"08110000000{n}")
    with pytest.raises(DailyQuotaExceeded):
        claim(engine, "081100000009")

    assert db.query(Voucher).count() == 3
    # The rejected claim did not take a code
    assert CodePoolRepository(db).count(VoucherType.DIGITAL, is_used=False) == 1


def test_quota_resets_on_next_business_day(db, clock, config, seed):
    seed(digital=["A1", "A2"], daily_limit=1)
    engine = AllocationEngine(db, clock=clock, config=config)
    claim(engine, "081100000001")
    with pytest.raises(DailyQuotaExceeded):
        claim(engine, "081100000002")

    clock.advance(days=1)
    voucher = claim(engine, "081100000002")

    assert voucher.voucher_code in {"A1", "A2"}
    counters = {row.claim_day.isoformat(): row.claimed for row in db.query(DailyClaimCounter).all()}
    assert counters == {"2024-05-01": 1, "2024-05-02": 1}


def test_day_boundary_follows_business_timezone(db, clock, config, seed):
    seed(digital=["A1", "A2"], daily_limit=1)
    jakarta = config.model_copy(update={"BUSINESS_TIMEZONE": "Asia/Jakarta"})
    engine = AllocationEngine(db, clock=clock, config=jakarta)

    clock.now = clock.now.replace(hour=16)  # 23:00 in Jakarta
    claim(engine, "081100000001")
    clock.now = clock.now.replace(hour=18)  # 01:00 the next day in Jakarta

    claim(engine, "081100000002")

    counters = {row.claim_day.isoformat(): row.claimed for row in db.query(DailyClaimCounter).all()}
    assert counters == {"2024-05-01": 1, "2024-05-02": 1}


def test_zero_limit_blocks_claims(db, clock, config, seed):
    seed(digital=["A1"], daily_limit=0)

    with pytest.raises(DailyQuotaExceeded):
        claim(AllocationEngine(db, clock=clock, config=config), "081100000001")


def test_quota_counter_is_authoritative(db, clock, config, seed):
    seed(digital=["A1", "A2"], daily_limit=1)
    # A counter already at the limit refuses even when the ledger looks empty
    db.add(DailyClaimCounter(claim_day=clock.now.date(), claimed=1))
    db.commit()

    with pytest.raises(DailyQuotaExceeded):
        claim(AllocationEngine(db, clock=clock, config=config), "081100000001")

    assert CodePoolRepository(db).count(VoucherType.DIGITAL, is_used=False) == 2


def test_lost_race_retries_with_another_code(db, clock, config, seed, monkeypatch):
    seed(digital=["STALE", "FRESH"])
    db.query(VoucherCode).filter(VoucherCode.code == "STALE").update({"is_used": True})
    db.commit()

    original = CodePoolRepository.pick_candidate
    calls = []

    def stale_first(self, voucher_type, exclude_ids=(), policy="random"):
        calls.append(list(exclude_ids))
        if len(calls) == 1:
            # Candidate another request has already taken
            return self.db.query(VoucherCode).filter(VoucherCode.code == "STALE").one()
        return original(self, voucher_type, exclude_ids=exclude_ids, policy=policy)

    monkeypatch.setattr(CodePoolRepository, "pick_candidate", stale_first)

    voucher = claim(AllocationEngine(db, clock=clock, config=config), "081100000001")

    assert voucher.voucher_code == "FRESH"
    assert len(calls) == 2
    assert len(calls[1]) == 1


def test_first_policy_issues_codes_in_upload_order(db, clock, config, seed):
    seed(digital=["A1", "A2", "A3"])
    ordered = config.model_copy(update={"CODE_SELECTION_POLICY": "first"})
    engine = AllocationEngine(db, clock=clock, config=ordered)

    codes = [claim(engine, f"08110000000{n}").voucher_code for n in range(3)]

    assert codes == ["A1", "A2", "A3"]


def test_no_fabricated_codes_by_default(db, clock, config):
    with pytest.raises(PoolExhausted):
        claim(AllocationEngine(db, clock=clock, config=config), "081100000001")

    assert db.query(VoucherCode).count() == 0


def test_fabricated_code_when_enabled(db, clock, config):
    fallback = config.model_copy(update={"ALLOW_FABRICATED_CODES_ON_EXHAUSTION": True})

    voucher = claim(AllocationEngine(db, clock=clock, config=fallback), "081100000001")

    assert re.fullmatch(r"\d{8}", voucher.voucher_code)
    assert voucher.discount_amount == 10000
    entry = db.query(VoucherCode).one()
    assert entry.code == voucher.voucher_code
    assert entry.is_used is True
    assert entry.is_fabricated is True


def test_insert_conflict_rolls_back_reservation(db, clock, config, seed, monkeypatch):
    seed(digital=["A1", "A2"])
    engine = AllocationEngine(db, clock=clock, config=config)
    claim(engine, "081100000001")

    # Pre-check misses the existing claim, the unique index catches it
    monkeypatch.setattr(engine.vouchers, "get_digital_by_whatsapp", _miss_once(engine.vouchers.get_digital_by_whatsapp))

    with pytest.raises(DuplicateClaimant):
        claim(engine, "081100000001")

    assert db.query(Voucher).count() == 1
    assert CodePoolRepository(db).count(VoucherType.DIGITAL, is_used=False) == 1
    assert db.query(DailyClaimCounter).one().claimed == 1


def _miss_once(lookup):
    state = {"missed": False}

    def wrapper(phone):
        if not state["missed"]:
            state["missed"] = True
            return None
        return lookup(phone)

    return wrapper


def _generated(monkeypatch, *codes):
    queue = list(codes)
    monkeypatch.setattr(
        "voucherhub.services.allocation_service.generate_voucher_code",
        lambda length: queue.pop(0) if len(queue) > 1 else queue[0],
    )


def test_fabricated_code_skips_existing_codes(db, clock, config, seed, monkeypatch):
    seed(digital=["11111111"])
    db.query(VoucherCode).update({"is_used": True})
    db.commit()
    _generated(monkeypatch, "11111111", "22222222")
    fallback = config.model_copy(update={"ALLOW_FABRICATED_CODES_ON_EXHAUSTION": True})

    voucher = claim(AllocationEngine(db, clock=clock, config=fallback), "081100000001")

    assert voucher.voucher_code == "22222222"


def test_fabricated_code_insert_collision_is_retried(db, clock, config, seed, monkeypatch):
    seed(digital=["11111111"])
    db.query(VoucherCode).update({"is_used": True})
    db.commit()
    _generated(monkeypatch, "11111111", "22222222")
    # Existence check misses the code, as when a concurrent claim inserts it first
    monkeypatch.setattr(CodePoolRepository, "code_taken", lambda self, code: False)
    fallback = config.model_copy(update={"ALLOW_FABRICATED_CODES_ON_EXHAUSTION": True})

    voucher = claim(AllocationEngine(db, clock=clock, config=fallback), "081100000001")

    assert voucher.voucher_code == "22222222"
    assert sorted(row.code for row in db.query(VoucherCode).all()) == ["11111111", "22222222"]
    assert db.query(DailyClaimCounter).one().claimed == 1


def test_fabrication_gives_up_after_repeated_collisions(db, clock, config, seed, monkeypatch):
    seed(digital=["11111111"])
    db.query(VoucherCode).update({"is_used": True})
    db.commit()
    _generated(monkeypatch, "11111111")
    fallback = config.model_copy(update={"ALLOW_FABRICATED_CODES_ON_EXHAUSTION": True})

    with pytest.raises(PoolExhausted):
        claim(AllocationEngine(db, clock=clock, config=fallback), "081100000001")

    assert db.query(Voucher).count() == 0
