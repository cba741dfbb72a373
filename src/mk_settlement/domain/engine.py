"""SettlementEngine — judges and pays out one market's pending bets.

Each bet is settled inside its own SAVEPOINT:

    claim (PENDING -> WON/LOST, guarded)  ->  credit winnings  ->  link WIN_CREDIT

If anything inside the savepoint fails (wallet row missing, constraint
violation) only that bet is rolled back; it stays PENDING and is picked up by
reconciliation. The rest of the market carries on.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_betting.domain.models import Bet
from src.mk_betting.domain.repository import BetRepositoryProtocol
from src.mk_betting.infrastructure.persistence import BetRepository
from src.mk_common.enums import CrossingMatchRule
from src.mk_market.domain.models import Market
from src.mk_settlement.domain.declared_result import DeclaredResult
from src.mk_settlement.domain.models import BetOutcome, BetOutcomeKind
from src.mk_settlement.domain.win_rules import is_winning_bet
from src.mk_wallet.domain.repository import WalletRepositoryProtocol
from src.mk_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


class SettlementEngine:
    def __init__(
        self,
        bet_repo: BetRepositoryProtocol | None = None,
        wallet_repo: WalletRepositoryProtocol | None = None,
    ) -> None:
        self._bet_repo: BetRepositoryProtocol = bet_repo or BetRepository()
        self._wallet_repo: WalletRepositoryProtocol = wallet_repo or WalletRepository()

    async def settle_bet(
        self,
        db: AsyncSession,
        market: Market,
        bet: Bet,
        result: DeclaredResult,
        now: datetime,
    ) -> BetOutcome:
        try:
            won = is_winning_bet(bet, result, CrossingMatchRule(market.crossing_rule))
            amount = bet.potential_payout if won else 0
            async with db.begin_nested():
                claimed = await self._bet_repo.claim_for_settlement(
                    db, bet.id, won, amount, result.canonical, now
                )
                if not claimed:
                    logger.info("Bet %s already settled, skipping", bet.id)
                    return BetOutcome(bet.id, bet.bet_type, bet.stake, BetOutcomeKind.SKIPPED)
                if won and amount > 0:
                    _, txn = await self._wallet_repo.credit_winnings(
                        db,
                        bet.user_id,
                        amount,
                        market.id,
                        bet.id,
                        f"Win on {market.name} {bet.bet_type} {bet.bet_number} (result {result.canonical})",
                    )
                    await self._bet_repo.attach_win_transaction(db, bet.id, txn.id)
        except Exception as exc:
            logger.exception(
                "Settlement failed for bet %s in market %s; left PENDING", bet.id, market.id
            )
            return BetOutcome(
                bet.id, bet.bet_type, bet.stake, BetOutcomeKind.FAILED, error=str(exc)
            )

        kind = BetOutcomeKind.WON if won else BetOutcomeKind.LOST
        return BetOutcome(bet.id, bet.bet_type, bet.stake, kind, winning_amount=amount)

    async def settle_bets(
        self,
        db: AsyncSession,
        market: Market,
        bets: list[Bet],
        result: DeclaredResult,
        now: datetime,
    ) -> list[BetOutcome]:
        # an AsyncSession cannot run statements concurrently
        return [await self.settle_bet(db, market, bet, result, now) for bet in bets]
