"""HTTP-level tests: routing, auth guards and the response envelope.

Services are patched at the router module level; the DB session and the
current user come from dependency overrides, so no database is needed.
"""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

from httpx import AsyncClient

from src.main import app
from src.mk_admin.api.router import get_auto_close_sweeper
from src.mk_betting.application.schemas import BetListResponse, PlaceBetResponse
from src.mk_common.database import get_db_session
from src.mk_common.errors import (
    BetNotFoundError,
    InsufficientBalanceError,
    MarketNotFoundError,
    MarketNotOpenError,
    ResultAlreadyDeclaredError,
)
from src.mk_gateway.auth.dependencies import get_current_user
from src.mk_gateway.user.db_models import UserModel
from src.mk_settlement.application.schemas import DeclareResultResponse, ReconcileResponse
from src.mk_settlement.application.service import SettlementService
from src.mk_settlement.domain.models import PublishedResult
from src.mk_wallet.application.schemas import BalanceResponse
from tests.factories import ist, make_market, make_wallet


def _login(is_admin: bool = False) -> UserModel:
    user = UserModel(id="user-1", username="ravi", is_active=True, is_admin=is_admin)

    async def _db():
        yield MagicMock()

    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_db_session] = _db
    return user


def _report(**kw) -> DeclareResultResponse:
    data = dict(
        market_id="MKT-DELHI", market_name="Delhi Bazar", cycle_date="2026-10-17",
        declared_result="27", result_jodi="27", result_haruf=None, result_crossing=None,
        method="MANUAL", total_bets=3, winning_bets=2, losing_bets=1, failed_bets=0,
        total_staked_paise=17000, total_paid_paise=995000, net_margin_paise=-978000,
        processed=True,
    )
    data.update(kw)
    return DeclareResultResponse(**data)


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_missing_token_is_401(client: AsyncClient) -> None:
    resp = await client.get("/api/v1/wallet/balance")
    assert resp.status_code == 401


class TestBets:
    async def test_place_bet(self, client: AsyncClient) -> None:
        _login()
        service = MagicMock()
        service.place_bet = AsyncMock(return_value=PlaceBetResponse(
            group_id="G1", bet_ids=["B1"], bets_count=1, stake_per_bet_paise=10000,
            charged_paise=10000, charged_display="₹100.00", remainder_paise=0,
            potential_payout_paise=950000, deposit_balance_paise=90000,
            stake_transaction_id=7,
        ))
        with patch("src.mk_betting.api.router._service", service):
            resp = await client.post("/api/v1/bets", json={
                "market_id": "MKT-DELHI", "bet_type": "JODI", "bet_number": "27",
                "stake_paise": 10000,
            })

        body = resp.json()
        assert resp.status_code == 200
        assert body["code"] == 0
        assert body["data"]["potential_payout_paise"] == 950000
        assert body["request_id"] == resp.headers["X-Request-ID"]
        assert service.place_bet.call_args.args[1] == "user-1"

    async def test_insufficient_balance_envelope(self, client: AsyncClient) -> None:
        _login()
        service = MagicMock()
        service.place_bet = AsyncMock(side_effect=InsufficientBalanceError(10000, 5000))
        with patch("src.mk_betting.api.router._service", service):
            resp = await client.post("/api/v1/bets", json={
                "market_id": "MKT-DELHI", "bet_type": "JODI", "bet_number": "27",
                "stake_paise": 10000,
            })

        body = resp.json()
        assert resp.status_code == 422
        assert body["code"] == 2001
        assert body["data"] == {"category": "insufficient_balance"}

    async def test_market_closed_envelope(self, client: AsyncClient) -> None:
        _login()
        service = MagicMock()
        service.place_bet = AsyncMock(side_effect=MarketNotOpenError("MKT-DELHI", "closed"))
        with patch("src.mk_betting.api.router._service", service):
            resp = await client.post("/api/v1/bets", json={
                "market_id": "MKT-DELHI", "bet_type": "JODI", "bet_number": "27",
                "stake_paise": 10000,
            })
        assert resp.status_code == 409
        assert resp.json()["data"]["category"] == "conflict"

    async def test_list_bets_passes_filters(self, client: AsyncClient) -> None:
        _login()
        service = MagicMock()
        service.list_bets = AsyncMock(return_value=BetListResponse(items=[]))
        with patch("src.mk_betting.api.router._service", service):
            resp = await client.get("/api/v1/bets?status=WON&limit=5")
        assert resp.status_code == 200
        assert service.list_bets.call_args.args[2:] == (None, "WON", 5)

    async def test_other_users_bet_is_404(self, client: AsyncClient) -> None:
        _login()
        service = MagicMock()
        service.get_bet = AsyncMock(side_effect=BetNotFoundError("B9"))
        with patch("src.mk_betting.api.router._service", service):
            resp = await client.get("/api/v1/bets/B9")
        assert resp.status_code == 404
        assert resp.json()["data"]["category"] == "not_found"
        assert service.get_bet.call_args.args[1:] == ("user-1", "B9")


class TestWallet:
    async def test_balance(self, client: AsyncClient) -> None:
        _login()
        service = MagicMock()
        service.get_balance = AsyncMock(
            return_value=BalanceResponse.from_wallet(make_wallet(winning_balance=950000))
        )
        with patch("src.mk_wallet.api.router._service", service):
            resp = await client.get("/api/v1/wallet/balance")
        assert resp.json()["data"]["total_balance_paise"] == 1050000


class TestAdmin:
    async def test_non_admin_is_forbidden(self, client: AsyncClient) -> None:
        _login(is_admin=False)
        resp = await client.post("/api/v1/admin/markets/MKT-DELHI/declare", json={"jodi": "27"})
        assert resp.status_code == 403
        assert resp.json()["code"] == 1006

    async def test_declare(self, client: AsyncClient) -> None:
        _login(is_admin=True)
        service = MagicMock()
        service.declare_result = AsyncMock(return_value=_report())
        with patch("src.mk_admin.api.router._service", service):
            resp = await client.post(
                "/api/v1/admin/markets/MKT-DELHI/declare", json={"jodi": "27"}
            )

        assert resp.status_code == 200
        assert resp.json()["data"]["total_paid_paise"] == 995000
        args, kwargs = service.declare_result.call_args
        assert args[1] == "MKT-DELHI"
        assert args[2].jodi == "27"
        assert args[3] == "user-1"
        assert kwargs == {}

    async def test_declare_override(self, client: AsyncClient) -> None:
        _login(is_admin=True)
        service = MagicMock()
        service.declare_result = AsyncMock(return_value=_report())
        with patch("src.mk_admin.api.router._service", service):
            await client.post(
                "/api/v1/admin/markets/MKT-DELHI/declare-override", json={"jodi": "27"}
            )
        assert service.declare_result.call_args.kwargs == {"override": True}

    async def test_second_declaration_is_409(self, client: AsyncClient) -> None:
        _login(is_admin=True)
        service = MagicMock()
        service.declare_result = AsyncMock(side_effect=ResultAlreadyDeclaredError("MKT-DELHI"))
        with patch("src.mk_admin.api.router._service", service):
            resp = await client.post(
                "/api/v1/admin/markets/MKT-DELHI/declare", json={"jodi": "13"}
            )
        assert resp.status_code == 409
        assert resp.json()["data"]["category"] == "conflict"

    async def test_malformed_result_is_422(self, client: AsyncClient) -> None:
        _login(is_admin=True)
        resp = await client.post("/api/v1/admin/markets/MKT-DELHI/declare", json={"jodi": "7"})
        assert resp.status_code == 422

    async def test_reconcile(self, client: AsyncClient) -> None:
        _login(is_admin=True)
        service = MagicMock()
        service.reconcile = AsyncMock(return_value=ReconcileResponse(
            market_id="MKT-DELHI", settled_now=1, still_pending=0, processed=True
        ))
        with patch("src.mk_admin.api.router._service", service):
            resp = await client.post("/api/v1/admin/markets/MKT-DELHI/reconcile")
        assert resp.json()["data"]["settled_now"] == 1

    async def test_auto_close_status(self, client: AsyncClient) -> None:
        _login(is_admin=True)
        sweeper = MagicMock()
        sweeper.status.return_value = {"running": True, "interval_seconds": 30}
        app.dependency_overrides[get_auto_close_sweeper] = lambda: sweeper

        resp = await client.get("/api/v1/admin/auto-close/status")

        assert resp.json()["data"]["interval_seconds"] == 30

    async def test_auto_close_without_sweeper_is_500(self, client: AsyncClient) -> None:
        _login(is_admin=True)
        resp = await client.get("/api/v1/admin/auto-close/status")
        assert resp.status_code == 500
        assert resp.json()["data"]["category"] == "internal"


def _published(market_id: str = "MKT-DELHI", name: str = "Delhi Bazar", day: int = 17,
               result: str = "27") -> PublishedResult:
    return PublishedResult(
        market_id=market_id, market_name=name, cycle_date=date(2026, 10, day),
        declared_result=result, result_jodi=result, result_haruf=None, result_crossing=None,
        method="MANUAL", declared_at=ist(15, 20, day=day),
    )


def _board_service(*published: PublishedResult, market=None) -> tuple[SettlementService, MagicMock]:
    summaries = MagicMock()
    summaries.list_published = AsyncMock(return_value=list(published))
    summaries.latest_published = AsyncMock(return_value=published[0] if published else None)
    markets = MagicMock()
    markets.get_market = AsyncMock(return_value=market)
    return SettlementService(market_repo=markets, summary_repo=summaries), summaries


def _anonymous() -> None:
    async def _db():
        yield MagicMock()

    app.dependency_overrides[get_db_session] = _db


class TestResultBoard:
    async def test_results_for_date_needs_no_token(self, client: AsyncClient) -> None:
        _anonymous()
        service, summaries = _board_service(_published(), _published("MKT-GALI", "Gali", result="05"))
        with patch("src.mk_settlement.api.router._service", service):
            resp = await client.get("/api/v1/results", params={"date": "2026-10-17"})

        data = resp.json()["data"]
        assert resp.status_code == 200
        assert data["cycle_date"] == "2026-10-17"
        assert data["total"] == 2
        assert [r["market_name"] for r in data["results"]] == ["Delhi Bazar", "Gali"]
        assert data["results"][1]["declared_result"] == "05"
        assert "total_paid_paise" not in data["results"][0]
        summaries.list_published.assert_awaited_once()
        assert summaries.list_published.call_args.args[1:] == (date(2026, 10, 17), date(2026, 10, 17))

    async def test_bad_date_is_422(self, client: AsyncClient) -> None:
        _anonymous()
        resp = await client.get("/api/v1/results", params={"date": "17-10-2026"})
        assert resp.status_code == 422

    async def test_history_groups_by_day_and_caps_at_30(self, client: AsyncClient) -> None:
        _anonymous()
        service, summaries = _board_service(
            _published(day=17), _published("MKT-GALI", "Gali", day=17), _published(day=15)
        )
        with patch("src.mk_settlement.api.router._service", service):
            resp = await client.get("/api/v1/results/history", params={"days": 90})

        data = resp.json()["data"]
        assert data["days"] == 30
        assert data["total_days"] == 2
        assert [d["cycle_date"] for d in data["history"]] == ["2026-10-17", "2026-10-15"]
        assert len(data["history"][0]["results"]) == 2
        date_from, date_to = summaries.list_published.call_args.args[1:]
        assert (date_to - date_from).days == 29

    async def test_latest_result(self, client: AsyncClient) -> None:
        _anonymous()
        service, _ = _board_service(_published(), market=make_market())
        with patch("src.mk_settlement.api.router._service", service):
            resp = await client.get("/api/v1/results/markets/MKT-DELHI/latest")

        data = resp.json()["data"]
        assert data["result_declared"] is True
        assert data["result"]["jodi"] == "27"

    async def test_latest_result_not_yet_declared(self, client: AsyncClient) -> None:
        _anonymous()
        service, _ = _board_service(market=make_market())
        with patch("src.mk_settlement.api.router._service", service):
            resp = await client.get("/api/v1/results/markets/MKT-DELHI/latest")

        data = resp.json()["data"]
        assert data["result_declared"] is False
        assert data["result"] is None

    async def test_latest_result_unknown_market_is_404(self, client: AsyncClient) -> None:
        _anonymous()
        service = MagicMock()
        service.latest_result = AsyncMock(side_effect=MarketNotFoundError("MKT-X"))
        with patch("src.mk_settlement.api.router._service", service):
            resp = await client.get("/api/v1/results/markets/MKT-X/latest")
        assert resp.status_code == 404
