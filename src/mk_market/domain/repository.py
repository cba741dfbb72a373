"""Repository Protocol for markets."""

from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_market.domain.lifecycle import CycleInstants
from src.mk_market.domain.models import ClosedMarket, Market


class MarketRepositoryProtocol(Protocol):
    async def get_market(self, db: AsyncSession, market_id: str) -> Market | None: ...

    async def get_market_by_name(self, db: AsyncSession, name: str) -> Market | None: ...

    async def list_markets(self, db: AsyncSession, include_inactive: bool) -> list[Market]: ...

    async def create_market(self, db: AsyncSession, market: Market) -> Market: ...

    async def update_market(
        self, db: AsyncSession, market_id: str, fields: dict[str, Any]
    ) -> Market | None: ...

    async def delete_market(self, db: AsyncSession, market_id: str) -> bool: ...

    async def count_bets(self, db: AsyncSession, market_id: str) -> int: ...

    async def force_status(
        self,
        db: AsyncSession,
        market_id: str,
        status: str | None,
        now: datetime,
    ) -> Market | None: ...

    async def force_close(
        self, db: AsyncSession, market_id: str, now: datetime, closed_by: str
    ) -> Market | None: ...

    async def close_expired(self, db: AsyncSession, now: datetime) -> list[ClosedMarket]: ...

    async def open_started(self, db: AsyncSession, now: datetime) -> list[str]: ...

    async def claim_declaration(
        self,
        db: AsyncSession,
        market_id: str,
        values: dict[str, str | None],
        declared_by: str,
        method: str,
        now: datetime,
        enforce_closed: bool,
    ) -> Market | None: ...

    async def open_next_cycle(
        self, db: AsyncSession, market_id: str, instants: CycleInstants, now: datetime
    ) -> Market | None: ...

    async def list_awaiting_result(self, db: AsyncSession) -> list[Market]: ...

    async def list_declared(self, db: AsyncSession) -> list[Market]: ...
