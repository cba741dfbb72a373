from datetime import datetime

from src.mk_common.enums import MarketPhase
from src.mk_common.errors import (
    MarketInactiveError,
    MarketNotAcceptingError,
    MarketNotFoundError,
    MarketNotOpenError,
)
from src.mk_market.domain.lifecycle import compute_phase, is_accepting_bets
from src.mk_market.domain.models import Market

_NOT_OPEN_REASONS = {
    MarketPhase.WAITING: "not_started",
    MarketPhase.CLOSED: "closed",
    MarketPhase.RESULT_DECLARED: "result_declared",
}


def check_market_accepting(market: Market | None, market_id: str, now: datetime) -> Market:
    """Phase check first (409 with a reason), then the acceptance guard (403).

    The two are reported separately so clients can tell "come back later"
    from "an operator stopped this market".
    """
    if market is None:
        raise MarketNotFoundError(market_id)
    if not market.is_active:
        raise MarketInactiveError(market_id)
    if market.has_declared_result:
        raise MarketNotOpenError(market_id, "result_declared")
    phase = compute_phase(market, now)
    if phase is not MarketPhase.OPEN:
        raise MarketNotOpenError(market_id, _NOT_OPEN_REASONS[phase])
    if not is_accepting_bets(market, now, phase):
        raise MarketNotAcceptingError(market_id)
    return market
