"""
Favorite ledger: (user, article) edges plus the denormalized
``articles.favorites_count`` column.

The edge table is the source of truth.  The counter moves by exactly one
only when an edge was really inserted or deleted, using a single atomic
``UPDATE ... SET favorites_count = favorites_count +/- 1``.  Edge change and
counter change are two statements without a transaction of their own, so a
failure between them leaves the counter off by one until ``reconcile``
recounts it.
"""
import logging
from collections.abc import Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import insert_ignoring_conflicts
from conduit.models import Article, Favorite

logger = logging.getLogger(__name__)


class FavoriteLedger:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def favorite(self, user_id: int, article_id: int) -> bool:
        """
        Record the favorite.  Returns True for a first-time favorite and
        False when the edge already existed (the counter is left alone).
        """
        stmt = insert_ignoring_conflicts(self.db, Favorite.__table__).values(
            user_id=user_id, article_id=article_id
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            return False

        await self.db.execute(
            update(Article)
            .where(Article.id == article_id)
            .values(favorites_count=Article.favorites_count + 1)
            .execution_options(synchronize_session=False)
        )
        logger.debug("article %s favorited by user %s", article_id, user_id)
        return True

    async def unfavorite(self, user_id: int, article_id: int) -> bool:
        """Remove the favorite.  Returns False if the user had not favorited it."""
        result = await self.db.execute(
            delete(Favorite).where(
                Favorite.user_id == user_id, Favorite.article_id == article_id
            )
        )
        if result.rowcount == 0:
            return False

        await self.db.execute(
            update(Article)
            .where(Article.id == article_id, Article.favorites_count > 0)
            .values(favorites_count=Article.favorites_count - 1)
            .execution_options(synchronize_session=False)
        )
        logger.debug("article %s unfavorited by user %s", article_id, user_id)
        return True

    async def is_favorited(self, user_id: int, article_id: int) -> bool:
        result = await self.db.execute(
            select(Favorite.article_id).where(
                Favorite.user_id == user_id, Favorite.article_id == article_id
            )
        )
        return result.first() is not None

    async def favorited_among(self, user_id: int, article_ids: Iterable[int]) -> set[int]:
        """Return the subset of *article_ids* favorited by *user_id*, in one query."""
        ids = set(article_ids)
        if not ids:
            return set()
        result = await self.db.execute(
            select(Favorite.article_id).where(
                Favorite.user_id == user_id, Favorite.article_id.in_(ids)
            )
        )
        return set(result.scalars().all())

    async def count_edges(self, article_id: int) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Favorite).where(Favorite.article_id == article_id)
        )
        return result.scalar_one()

    async def reconcile(self, article_id: int) -> int:
        """Reset the article's counter to the live edge count and return it."""
        count = await self.count_edges(article_id)
        await self.db.execute(
            update(Article)
            .where(Article.id == article_id)
            .values(favorites_count=count)
            .execution_options(synchronize_session=False)
        )
        logger.info("favorites_count for article %s reconciled to %d", article_id, count)
        return count
