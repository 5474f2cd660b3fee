"""
Tag vocabulary and article-tag membership.

Tags are global, matched by exact (case-sensitive) name, and never
deleted, so orphaned tags stay in the vocabulary.
"""
import logging

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.cache import CacheManager, cache as default_cache
from conduit.database import insert_ignoring_conflicts
from conduit.models import Tag, article_tags

logger = logging.getLogger(__name__)


class TagCatalog:
    def __init__(self, db: AsyncSession, cache: CacheManager = default_cache) -> None:
        self.db = db
        self.cache = cache

    async def _find(self, name: str) -> Tag | None:
        result = await self.db.execute(select(Tag).where(Tag.name == name))
        return result.scalar_one_or_none()

    async def get_or_create(self, name: str) -> Tag:
        """
        Return the tag called *name*, creating it if needed.

        Two writers racing on a new name both issue a conflict-ignoring
        insert and then re-read, so each ends up with the single stored row
        instead of one of them failing on the unique constraint.
        """
        tag = await self._find(name)
        if tag is not None:
            return tag

        result = await self.db.execute(
            insert_ignoring_conflicts(self.db, Tag.__table__).values(name=name)
        )
        if result.rowcount == 1:
            logger.debug("created tag %r", name)
            await self.cache.invalidate_tags()
        tag = await self._find(name)
        if tag is None:  # pragma: no cover
            raise RuntimeError(f"tag {name!r} vanished after insert")
        return tag

    async def resolve(self, names: list[str]) -> list[Tag]:
        """get_or_create every name, skipping duplicates and keeping first-seen order."""
        tags: list[Tag] = []
        seen: set[str] = set()
        for name in names:
            if name in seen:
                continue
            seen.add(name)
            tags.append(await self.get_or_create(name))
        return tags

    async def replace_article_tags(self, article_id: int, tags: list[Tag]) -> None:
        """Replace the article's membership wholesale: delete all, insert the new set."""
        await self.db.execute(delete(article_tags).where(article_tags.c.article_id == article_id))
        if tags:
            await self.db.execute(
                insert(article_tags),
                [{"article_id": article_id, "tag_id": tag.id} for tag in tags],
            )

    async def list_all(self) -> list[str]:
        """All tag names, alphabetical, served from cache when possible."""
        cached = await self.cache.get_tags()
        if cached is not None:
            return cached

        result = await self.db.execute(select(Tag.name).order_by(Tag.name))
        names = list(result.scalars().all())
        await self.cache.set_tags(names)
        return names
