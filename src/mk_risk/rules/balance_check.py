from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_wallet.domain.models import Transaction, Wallet
from src.mk_wallet.domain.repository import WalletRepositoryProtocol


async def check_and_debit(
    wallet_repo: WalletRepositoryProtocol,
    db: AsyncSession,
    user_id: str,
    amount: int,
    market_id: str,
    reference_id: str,
    description: str,
) -> tuple[Wallet, Transaction]:
    """Debit the stake from deposit_balance atomically and write the BET_STAKE row.

    The conditional UPDATE inside the repository is the balance check.
    Raises InsufficientBalanceError when its guard fails. The amount has
    already passed check_stake_limit and the crossing split.
    """
    return await wallet_repo.debit_for_bet(
        db, user_id, amount, market_id, reference_id, description
    )
