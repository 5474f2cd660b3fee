"""
Article service: business logic for the Article aggregate.

Design notes
------------
- Callers only ever get ``ArticleView`` projections, never ORM rows.  A
  projection joins four relations: the author (``joinedload``), the tag
  names (``selectinload``), the viewer's favorite flags and the viewer's
  follow flags.  The flags are fetched once per page with ``IN`` queries,
  so a page costs the same number of statements whatever its size.
- Page queries use ``populate_existing`` because the favorite counter is
  changed with bulk UPDATE statements that bypass the identity map.
- Slugs are probed before insert and the unique constraint decides.  A
  collision at insert time (another writer won the race) re-runs the probe
  inside a fresh SAVEPOINT, up to ``SLUG_INSERT_RETRIES`` attempts.
- Service methods flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency in the router layer.
"""
from __future__ import annotations

import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from conduit.cache import CacheManager, cache as default_cache
from conduit.config import settings
from conduit.errors import InternalError, NotFoundError, PermissionDeniedError
from conduit.models import Article, Comment, Favorite, Follow, Tag, User, article_tags, utcnow
from conduit.pagination import normalize_limit, normalize_offset
from conduit.schemas import ArticleUpdate, ArticleView, NewArticle, format_timestamp
from conduit.services.favorite_service import FavoriteLedger
from conduit.services.follow_service import FollowGraph
from conduit.services.profile_service import profile_view
from conduit.services.slug import ensure_unique, slugify
from conduit.services.tag_service import TagCatalog

logger = logging.getLogger(__name__)


class ArticleService:
    def __init__(self, db: AsyncSession, cache: CacheManager = default_cache) -> None:
        self.db = db
        self.tags = TagCatalog(db, cache)
        self.favorites = FavoriteLedger(db)
        self.graph = FollowGraph(db)

    # ------------------------------------------------------------------
    # Row access
    # ------------------------------------------------------------------

    async def _slug_exists(self, slug: str) -> bool:
        result = await self.db.execute(select(Article.id).where(Article.slug == slug))
        return result.first() is not None

    async def _get_row(self, slug: str) -> Article:
        result = await self.db.execute(select(Article).where(Article.slug == slug))
        article = result.scalar_one_or_none()
        if article is None:
            raise NotFoundError("article not found")
        return article

    async def _load(self, stmt) -> list[Article]:
        stmt = stmt.options(
            joinedload(Article.author), selectinload(Article.tags)
        ).execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return list(result.unique().scalars().all())

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    async def _project(self, articles: list[Article], viewer_id: int | None) -> list[ArticleView]:
        favorited: set[int] = set()
        followed: set[int] = set()
        if viewer_id is not None and articles:
            favorited = await self.favorites.favorited_among(viewer_id, (a.id for a in articles))
            followed = await self.graph.following_among(
                viewer_id, {a.author_id for a in articles} - {viewer_id}
            )

        views = []
        for article in articles:
            if article.author is None:
                raise InternalError("author not found")
            views.append(
                ArticleView(
                    slug=article.slug,
                    title=article.title,
                    description=article.description,
                    body=article.body,
                    tag_list=sorted(tag.name for tag in article.tags),
                    created_at=format_timestamp(article.created_at),
                    updated_at=format_timestamp(article.updated_at),
                    favorited=article.id in favorited,
                    favorites_count=article.favorites_count,
                    author=profile_view(article.author, article.author_id in followed),
                )
            )
        return views

    async def _project_one(self, article_id: int, viewer_id: int | None) -> ArticleView:
        articles = await self._load(select(Article).where(Article.id == article_id))
        if not articles:
            raise NotFoundError("article not found")
        return (await self._project(articles, viewer_id))[0]

    async def _page(
        self, criteria: list, limit, offset, viewer_id: int | None
    ) -> tuple[list[ArticleView], int]:
        """Run COUNT plus one newest-first window over the articles matching *criteria*."""
        total: int = (
            await self.db.execute(select(func.count()).select_from(Article).where(*criteria))
        ).scalar_one()

        articles = await self._load(
            select(Article)
            .where(*criteria)
            .order_by(Article.created_at.desc(), Article.id.desc())
            .offset(normalize_offset(offset))
            .limit(normalize_limit(limit))
        )
        return await self._project(articles, viewer_id), total

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, slug: str, viewer_id: int | None = None) -> ArticleView:
        articles = await self._load(select(Article).where(Article.slug == slug))
        if not articles:
            raise NotFoundError("article not found")
        return (await self._project(articles, viewer_id))[0]

    async def list(
        self,
        tag: str | None = None,
        author: str | None = None,
        favorited: str | None = None,
        limit=None,
        offset=None,
        viewer_id: int | None = None,
    ) -> tuple[list[ArticleView], int]:
        """
        Articles matching every supplied filter, newest first, plus the total
        match count ignoring the window.

        *tag* is a tag name, *author* the author's username and *favorited*
        the username of a user who favorited the article.  Empty strings
        count as not supplied.
        """
        criteria = []
        if tag:
            criteria.append(
                Article.id.in_(
                    select(article_tags.c.article_id)
                    .join(Tag, Tag.id == article_tags.c.tag_id)
                    .where(Tag.name == tag)
                )
            )
        if author:
            criteria.append(Article.author_id.in_(select(User.id).where(User.username == author)))
        if favorited:
            criteria.append(
                Article.id.in_(
                    select(Favorite.article_id)
                    .join(User, User.id == Favorite.user_id)
                    .where(User.username == favorited)
                )
            )
        return await self._page(criteria, limit, offset, viewer_id)

    async def feed(self, viewer_id: int, limit=None, offset=None) -> tuple[list[ArticleView], int]:
        """Articles written by authors *viewer_id* follows, newest first."""
        criteria = [
            Article.author_id.in_(
                select(Follow.followee_id).where(Follow.follower_id == viewer_id)
            )
        ]
        return await self._page(criteria, limit, offset, viewer_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, author_id: int, data: NewArticle) -> ArticleView:
        base = slugify(data.title)
        article: Article | None = None

        for attempt in range(1, settings.SLUG_INSERT_RETRIES + 1):
            slug = await ensure_unique(base, self._slug_exists)
            now = utcnow()
            candidate = Article(
                slug=slug,
                title=data.title,
                description=data.description,
                body=data.body,
                author_id=author_id,
                created_at=now,
                updated_at=now,
            )
            try:
                async with self.db.begin_nested():
                    self.db.add(candidate)
            except IntegrityError:
                if not await self._slug_exists(slug):
                    raise
                logger.info("slug %r taken concurrently, re-probing (attempt %d)", slug, attempt)
                continue
            article = candidate
            break

        if article is None:
            raise InternalError(f"could not allocate a unique slug for {data.title!r}")

        tags = await self.tags.resolve(data.tag_list)
        await self.tags.replace_article_tags(article.id, tags)
        return await self._project_one(article.id, author_id)

    async def update(self, slug: str, requester_id: int, data: ArticleUpdate) -> ArticleView:
        """
        Apply the supplied (non-null) fields.  A changed title regenerates
        the slug; the article's own current slug counts as free while
        probing, so a title that maps back to it keeps it.
        """
        article = await self._get_row(slug)
        if article.author_id != requester_id:
            raise PermissionDeniedError("permission denied")

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return await self._project_one(article.id, requester_id)

        article_id, current_slug, current_title = article.id, article.slug, article.title

        async def taken_by_other(candidate: str) -> bool:
            return candidate != current_slug and await self._slug_exists(candidate)

        for attempt in range(1, settings.SLUG_INSERT_RETRIES + 1):
            new_slug = None
            if "title" in changes and changes["title"] != current_title:
                new_slug = await ensure_unique(slugify(changes["title"]), taken_by_other)
            try:
                async with self.db.begin_nested():
                    for field, value in changes.items():
                        setattr(article, field, value)
                    if new_slug is not None:
                        article.slug = new_slug
                    article.updated_at = utcnow()
            except IntegrityError:
                await self.db.refresh(article)
                if new_slug is None or not await taken_by_other(new_slug):
                    raise
                logger.info("slug %r taken concurrently, re-probing (attempt %d)", new_slug, attempt)
                continue
            return await self._project_one(article_id, requester_id)

        raise InternalError(f"could not allocate a unique slug for {changes['title']!r}")

    async def delete(self, slug: str, requester_id: int) -> None:
        article = await self._get_row(slug)
        if article.author_id != requester_id:
            raise PermissionDeniedError("permission denied")

        article_id = article.id
        # Dependents first so no foreign key is left dangling.
        await self.db.execute(delete(Comment).where(Comment.article_id == article_id))
        await self.db.execute(delete(Favorite).where(Favorite.article_id == article_id))
        await self.db.execute(delete(article_tags).where(article_tags.c.article_id == article_id))
        await self.db.execute(delete(Article).where(Article.id == article_id))
        logger.info("article %r (id=%s) deleted by user %s", slug, article_id, requester_id)

    async def favorite(self, slug: str, viewer_id: int) -> ArticleView:
        article = await self._get_row(slug)
        await self.favorites.favorite(viewer_id, article.id)
        return await self._project_one(article.id, viewer_id)

    async def unfavorite(self, slug: str, viewer_id: int) -> ArticleView:
        article = await self._get_row(slug)
        await self.favorites.unfavorite(viewer_id, article.id)
        return await self._project_one(article.id, viewer_id)
