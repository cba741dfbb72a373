from src.mk_common.errors import StakeOutOfRangeError
from src.mk_market.domain.models import Market


def check_stake_limit(stake: int, market: Market) -> None:
    """Stake (the total for crossing bets) must lie in [min_bet, max_bet]."""
    if stake <= 0 or not (market.min_bet <= stake <= market.max_bet):
        raise StakeOutOfRangeError(stake, market.min_bet, market.max_bet)
