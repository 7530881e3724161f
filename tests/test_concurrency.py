"""Many sessions racing on one SQLite file; each worker owns its session."""

from collections import Counter
from concurrent.futures import ThreadPoolExecutor

from voucherhub.models.voucher import Voucher
from voucherhub.models.voucher_code import VoucherCode, VoucherType
from voucherhub.services.allocation_service import AllocationEngine
from voucherhub.services.redemption_service import RedemptionEngine

WORKERS = 8


def run_parallel(session_factory, jobs):
    """Run job(session) callables concurrently; return the result or exception name of each."""

    def run(job):
        session = session_factory()
        try:
            return job(session)
        except Exception as e:
            return type(e).__name__
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        return list(pool.map(run, jobs))


def claim_job(clock, config, phone):
    def job(session):
        voucher = AllocationEngine(session, clock=clock, config=config).claim(
            full_name="Racer", birth_year="1990", whatsapp_number=phone, outlet="Outlet A"
        )
        return voucher.voucher_code
    return job


def test_concurrent_claims_never_share_a_code(session_factory, db, clock, config, seed):
    seed(digital=[f"C{n}" for n in range(5)])

    results = run_parallel(session_factory, [claim_job(clock, config, f"0811000000{n:02d}") for n in range(12)])

    issued = [r for r in results if r.startswith("C")]
    assert len(issued) == 5
    assert len(set(issued)) == 5
    assert Counter(r for r in results if not r.startswith("C")) == {"PoolExhausted": 7}
    assert db.query(VoucherCode).filter(VoucherCode.is_used == False).count() == 0


def test_concurrent_claims_same_number(session_factory, db, clock, config, seed):
    seed(digital=[f"C{n}" for n in range(10)])

    results = run_parallel(session_factory, [claim_job(clock, config, "081199999999") for _ in range(10)])

    assert len([r for r in results if r.startswith("C")]) == 1
    assert results.count("DuplicateClaimant") == 9
    assert db.query(Voucher).count() == 1
    assert db.query(VoucherCode).filter(VoucherCode.is_used == True).count() == 1


def test_concurrent_claims_respect_daily_limit(session_factory, db, clock, config, seed):
    seed(digital=[f"C{n}" for n in range(20)], daily_limit=4)

    results = run_parallel(session_factory, [claim_job(clock, config, f"0811000000{n:02d}") for n in range(12)])

    assert len([r for r in results if r.startswith("C")]) == 4
    assert results.count("DailyQuotaExceeded") == 8
    assert db.query(Voucher).count() == 4


def test_concurrent_redemptions_exactly_once(session_factory, db, clock, config, seed):
    seed(digital=["R1"])
    setup = session_factory()
    try:
        AllocationEngine(setup, clock=clock, config=config).claim(
            full_name="Sari", birth_year="1995", whatsapp_number="081234567890", outlet="Outlet A"
        )
    finally:
        setup.close()

    def redeem_job(outlet):
        def job(session):
            return RedemptionEngine(session, clock=clock).redeem_digital("R1", outlet).redeemed_outlet
        return job

    results = run_parallel(session_factory, [redeem_job(f"Outlet {n}") for n in range(10)])

    winners = [r for r in results if r.startswith("Outlet")]
    assert len(winners) == 1
    assert results.count("AlreadyRedeemed") == 9
    assert db.query(Voucher).one().redeemed_outlet == winners[0]


def test_concurrent_physical_records_single_use(session_factory, db, clock, seed):
    seed(physical=["PHY-1"])

    def record_job(session):
        return RedemptionEngine(session, clock=clock).record_physical(
            "Pria", "081234567890", "Outlet A", "PHY-1"
        ).voucher_code

    results = run_parallel(session_factory, [record_job] * 10)

    assert results.count("PHY-1") == 1
    assert results.count("AlreadyUsed") == 9
    assert db.query(Voucher).filter(Voucher.type == VoucherType.PHYSICAL).count() == 1
