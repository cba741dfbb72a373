"""Repository Protocol for result summaries."""

from datetime import date
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_settlement.domain.models import PublishedResult, ResultSummary


class ResultSummaryRepositoryProtocol(Protocol):
    async def insert_summary(self, db: AsyncSession, summary: ResultSummary) -> ResultSummary: ...

    async def update_counters(
        self, db: AsyncSession, summary: ResultSummary
    ) -> ResultSummary | None: ...

    async def get_unprocessed(self, db: AsyncSession, market_id: str) -> ResultSummary | None: ...

    async def list_for_market(
        self, db: AsyncSession, market_id: str, limit: int
    ) -> list[ResultSummary]: ...

    async def list_published(
        self, db: AsyncSession, date_from: date, date_to: date
    ) -> list[PublishedResult]: ...

    async def latest_published(
        self, db: AsyncSession, market_id: str
    ) -> PublishedResult | None: ...
