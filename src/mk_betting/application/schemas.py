"""Pydantic schemas for mk_betting API."""

from pydantic import BaseModel, Field

from src.mk_betting.domain.models import Bet
from src.mk_common.paise import paise_to_display


class PlaceBetRequest(BaseModel):
    market_id: str = Field(..., min_length=1)
    bet_type: str = Field(..., description="JODI | HARUF | CROSSING")
    bet_number: str = Field(..., min_length=1, max_length=32)
    stake_paise: int = Field(..., gt=0, description="Total stake; split across combos for CROSSING")
    position: str | None = Field(
        None, description="HARUF only: leading/trailing (A/B, andhar/bahar, first/last...)"
    )
    joda_cut: bool = Field(False, description="CROSSING only: drop doubles such as 11, 22")


class BetItem(BaseModel):
    id: str
    market_id: str
    bet_type: str
    bet_number: str
    stake_paise: int
    stake_display: str
    potential_payout_paise: int
    status: str
    is_winning: bool | None
    winning_amount_paise: int
    judged_result: str | None
    group_id: str | None
    created_at: str | None

    @classmethod
    def from_domain(cls, bet: Bet) -> "BetItem":
        return cls(
            id=bet.id,
            market_id=bet.market_id,
            bet_type=bet.bet_type,
            bet_number=bet.bet_number,
            stake_paise=bet.stake,
            stake_display=paise_to_display(bet.stake),
            potential_payout_paise=bet.potential_payout,
            status=bet.status,
            is_winning=bet.is_winning,
            winning_amount_paise=bet.winning_amount,
            judged_result=bet.judged_result,
            group_id=bet.group_id,
            created_at=bet.created_at.isoformat() if bet.created_at else None,
        )


class PlaceBetResponse(BaseModel):
    group_id: str
    bet_ids: list[str]
    bets_count: int
    stake_per_bet_paise: int
    charged_paise: int
    charged_display: str
    remainder_paise: int
    potential_payout_paise: int
    deposit_balance_paise: int
    stake_transaction_id: int


class BetListResponse(BaseModel):
    items: list[BetItem]
