"""Unit tests for AdminService delegation and the auto-close trigger."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from src.mk_admin.application.service import AdminService
from src.mk_common.enums import BalanceBucket
from src.mk_market.domain.models import ClosedMarket
from src.mk_scheduler.sweeper import SweepResult
from src.mk_settlement.application.schemas import DeclareResultRequest
from src.mk_wallet.application.schemas import AdjustBalanceRequest
from tests.factories import ist


def _admin():
    markets, settlement, wallets = MagicMock(), MagicMock(), MagicMock()
    return AdminService(markets, settlement, wallets), markets, settlement, wallets


async def test_declare_uses_strict_path() -> None:
    svc, _, settlement, _ = _admin()
    settlement.declare_result = AsyncMock(return_value="report")
    settlement.declare_result_override = AsyncMock()
    db = MagicMock()

    out = await svc.declare_result(db, "MKT-DELHI", DeclareResultRequest(jodi="27"), "a", ist(15, 20))

    assert out == "report"
    settlement.declare_result_override.assert_not_awaited()


async def test_declare_override_path() -> None:
    svc, _, settlement, _ = _admin()
    settlement.declare_result = AsyncMock()
    settlement.declare_result_override = AsyncMock(return_value="report")

    out = await svc.declare_result(
        MagicMock(), "MKT-DELHI", DeclareResultRequest(jodi="27"), "a", ist(12, 0), override=True
    )

    assert out == "report"
    settlement.declare_result.assert_not_awaited()


async def test_pending_results_uses_configured_delay() -> None:
    svc, markets, _, _ = _admin()
    markets.list_pending_results = AsyncMock(return_value="pending")

    await svc.pending_results(MagicMock(), ist(16, 0))

    assert markets.list_pending_results.call_args.args[2] == timedelta(hours=24)


async def test_trigger_auto_close_returns_sweep_dict() -> None:
    svc, _, _, _ = _admin()
    sweeper = MagicMock()
    sweeper.sweep_once = AsyncMock(return_value=SweepResult(
        run_at=ist(14, 41), closed=[ClosedMarket("MKT-DELHI", "Delhi Bazar", ist(14, 41))]
    ))

    out = await svc.trigger_auto_close(sweeper, "admin-1")

    assert out["closed"][0]["id"] == "MKT-DELHI"
    assert out["skipped"] is False


async def test_force_close_delegates_to_sweeper() -> None:
    svc, _, _, _ = _admin()
    sweeper = MagicMock()
    sweeper.force_close = AsyncMock(return_value="detail")
    db = MagicMock()

    assert await svc.force_close(db, sweeper, "MKT-DELHI", "admin-1") == "detail"
    sweeper.force_close.assert_awaited_once_with(db, "MKT-DELHI", "admin-1")


async def test_adjust_wallet_passes_bucket_column() -> None:
    svc, _, _, wallets = _admin()
    wallets.adjust_balance = AsyncMock(return_value="resp")
    db = MagicMock()
    req = AdjustBalanceRequest(
        bucket=BalanceBucket.BONUS, amount_paise=5000, description="diwali bonus"
    )

    await svc.adjust_wallet(db, "user-1", req, "admin-1")

    wallets.adjust_balance.assert_awaited_once_with(
        db, "user-1", "bonus_balance", 5000, "diwali bonus", "admin-1"
    )
