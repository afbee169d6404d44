from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository:
    """Shares one request-scoped ``AsyncSession`` between repositories.

    Repositories only flush; the service that owns the unit of work
    decides when to commit or roll back.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def commit(self) -> None:
        await self._db.commit()

    async def rollback(self) -> None:
        await self._db.rollback()
