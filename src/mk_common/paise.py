"""Integer arithmetic utilities for paise-denominated money.

All stakes, payouts and balances are int paise (1 rupee = 100 paise).
No float, no Decimal.
"""

PAISE_PER_RUPEE = 100


def rupees_to_paise(rupees: int) -> int:
    return rupees * PAISE_PER_RUPEE


def paise_to_display(paise: int) -> str:
    """Convert paise to display string: 950000 -> '₹9,500.00', -1250 -> '-₹12.50'."""
    if paise < 0:
        abs_paise = -paise
        return f"-₹{abs_paise // 100:,}.{abs_paise % 100:02d}"
    return f"₹{paise // 100:,}.{paise % 100:02d}"


def payout_for(stake: int, multiplier: int) -> int:
    """Gross payout for a winning bet. The stake is not returned on top."""
    return stake * multiplier


def split_stake(total: int, parts: int) -> tuple[int, int]:
    """Split a total stake evenly across `parts` bets, flooring to whole paise.

    Returns (per_part, charged) where charged = per_part * parts <= total.
    The remainder is never debited.
    """
    if parts <= 0:
        return 0, 0
    per_part = total // parts
    return per_part, per_part * parts
