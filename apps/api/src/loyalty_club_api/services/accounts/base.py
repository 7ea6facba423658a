from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from .propagation import ConsistencyPropagator


class AccountUnitOfWorkService:
    """Shared plumbing for services whose writes must commit with recomputation."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._propagator = ConsistencyPropagator(session)

    @asynccontextmanager
    async def _atomic(self) -> AsyncIterator[AsyncSession]:
        """Commit the block's writes together, or roll all of them back."""

        try:
            yield self._session
        except Exception:
            await self._session.rollback()
            raise
        await self._session.commit()
