"""BettingService — the bet intake path.

place_bet runs every guard, then performs the atomic unit in one DB
transaction:

    1. conditional debit of deposit_balance (+ total_bets)
    2. one BET_STAKE ledger row referencing the bet group
    3. one bet row per number (a crossing input becomes one row per combo)

Any failure rolls the whole unit back; the user is never charged for bets
that were not written.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_betting.application.schemas import (
    BetItem,
    BetListResponse,
    PlaceBetRequest,
    PlaceBetResponse,
)
from src.mk_betting.domain.models import Bet
from src.mk_betting.domain.repository import BetRepositoryProtocol
from src.mk_betting.infrastructure.persistence import BetRepository
from src.mk_common.enums import BetStatus, BetType
from src.mk_common.errors import BetNotFoundError, StakeOutOfRangeError
from src.mk_common.id_generator import generate_id
from src.mk_common.paise import paise_to_display, payout_for, split_stake
from src.mk_market.domain.repository import MarketRepositoryProtocol
from src.mk_market.infrastructure.persistence import MarketRepository
from src.mk_risk.rules.balance_check import check_and_debit
from src.mk_risk.rules.bet_number import parse_bet_type, validate_bet_number
from src.mk_risk.rules.market_status import check_market_accepting
from src.mk_risk.rules.stake_limit import check_stake_limit
from src.mk_wallet.domain.repository import WalletRepositoryProtocol
from src.mk_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


class BettingService:
    def __init__(
        self,
        bet_repo: BetRepositoryProtocol | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
    ) -> None:
        self._bet_repo: BetRepositoryProtocol = bet_repo or BetRepository()
        self._market_repo: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._wallet_repo: WalletRepositoryProtocol = wallet_repo or WalletRepository()

    async def place_bet(
        self, db: AsyncSession, user_id: str, req: PlaceBetRequest, now: datetime
    ) -> PlaceBetResponse:
        try:
            bet_type = parse_bet_type(req.bet_type)
            validated = validate_bet_number(bet_type, req.bet_number, req.position, req.joda_cut)

            market = check_market_accepting(
                await self._market_repo.get_market(db, req.market_id), req.market_id, now
            )
            check_stake_limit(req.stake_paise, market)

            if bet_type is BetType.CROSSING:
                numbers = validated.combinations
                per_bet, charged = split_stake(req.stake_paise, len(numbers))
                if per_bet <= 0:
                    # every combination needs at least one paisa
                    raise StakeOutOfRangeError(req.stake_paise, len(numbers), market.max_bet)
            else:
                numbers = [validated.bet_number]
                per_bet = charged = req.stake_paise

            multiplier = market.multiplier_for(bet_type)
            group_id = generate_id()

            wallet, stake_txn = await check_and_debit(
                self._wallet_repo,
                db,
                user_id,
                charged,
                market.id,
                group_id,
                f"{bet_type.value} bet on {market.name}: {validated.bet_number}",
            )

            base_data = dict(validated.bet_data, group_id=group_id)
            if bet_type is BetType.CROSSING:
                base_data.update(
                    generated_combos=numbers,
                    combos_count=len(numbers),
                    stake_per_combo=per_bet,
                    total_stake=charged,
                )

            bets: list[Bet] = []
            for number in numbers:
                bet = Bet(
                    id=generate_id(),
                    user_id=user_id,
                    market_id=market.id,
                    bet_type=bet_type.value,
                    bet_number=number,
                    stake=per_bet,
                    potential_payout=payout_for(per_bet, multiplier),
                    status=BetStatus.PENDING.value,
                    bet_data=dict(base_data),
                    stake_transaction_id=stake_txn.id,
                    cycle_date=market.cycle_date,
                )
                bets.append(await self._bet_repo.insert_bet(db, bet))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "User %s placed %d %s bet(s) on market %s, charged %s",
            user_id, len(bets), bet_type.value, market.id, paise_to_display(charged),
        )
        return PlaceBetResponse(
            group_id=group_id,
            bet_ids=[b.id for b in bets],
            bets_count=len(bets),
            stake_per_bet_paise=per_bet,
            charged_paise=charged,
            charged_display=paise_to_display(charged),
            remainder_paise=req.stake_paise - charged,
            potential_payout_paise=sum(b.potential_payout for b in bets),
            deposit_balance_paise=wallet.deposit_balance,
            stake_transaction_id=stake_txn.id,
        )

    async def list_bets(
        self,
        db: AsyncSession,
        user_id: str,
        market_id: str | None,
        status: str | None,
        limit: int,
    ) -> BetListResponse:
        bets = await self._bet_repo.list_user_bets(db, user_id, market_id, status, limit)
        return BetListResponse(items=[BetItem.from_domain(b) for b in bets])

    async def get_bet(self, db: AsyncSession, user_id: str, bet_id: str) -> BetItem:
        bet = await self._bet_repo.get_bet(db, bet_id)
        # another user's bet is reported as missing
        if bet is None or bet.user_id != user_id:
            raise BetNotFoundError(bet_id)
        return BetItem.from_domain(bet)
