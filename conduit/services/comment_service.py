"""
Comment service: add, list and delete comments on an article.

Comments are immutable once written.  Only a comment's own author may
delete it; writing the article grants no rights over other people's
comments.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from conduit.errors import InternalError, NotFoundError, PermissionDeniedError
from conduit.models import Article, Comment, utcnow
from conduit.schemas import CommentView, format_timestamp
from conduit.services.follow_service import FollowGraph
from conduit.services.profile_service import profile_view

# Comment ids are 32-bit integer keys; anything outside that range cannot exist.
MAX_COMMENT_ID = 2**31 - 1


class CommentService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.graph = FollowGraph(db)

    async def _article_id(self, slug: str) -> int:
        result = await self.db.execute(select(Article.id).where(Article.slug == slug))
        article_id = result.scalar_one_or_none()
        if article_id is None:
            raise NotFoundError("article not found")
        return article_id

    async def _project(self, comments: list[Comment], viewer_id: int | None) -> list[CommentView]:
        followed: set[int] = set()
        if viewer_id is not None and comments:
            followed = await self.graph.following_among(
                viewer_id, {c.author_id for c in comments} - {viewer_id}
            )

        views = []
        for comment in comments:
            if comment.author is None:
                raise InternalError("author not found")
            views.append(
                CommentView(
                    id=comment.id,
                    body=comment.body,
                    created_at=format_timestamp(comment.created_at),
                    updated_at=format_timestamp(comment.updated_at),
                    author=profile_view(comment.author, comment.author_id in followed),
                )
            )
        return views

    async def add(self, slug: str, author_id: int, body: str) -> CommentView:
        article_id = await self._article_id(slug)
        now = utcnow()
        comment = Comment(
            article_id=article_id, author_id=author_id, body=body, created_at=now, updated_at=now
        )
        self.db.add(comment)
        await self.db.flush()

        result = await self.db.execute(
            select(Comment)
            .where(Comment.id == comment.id)
            .options(joinedload(Comment.author))
            .execution_options(populate_existing=True)
        )
        return (await self._project([result.scalar_one()], author_id))[0]

    async def list(self, slug: str, viewer_id: int | None = None) -> list[CommentView]:
        """The article's comments, newest first."""
        article_id = await self._article_id(slug)
        result = await self.db.execute(
            select(Comment)
            .where(Comment.article_id == article_id)
            .options(joinedload(Comment.author))
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
        return await self._project(list(result.scalars().all()), viewer_id)

    async def delete(self, slug: str, comment_id: int, requester_id: int) -> None:
        article_id = await self._article_id(slug)
        if not 1 <= comment_id <= MAX_COMMENT_ID:
            raise NotFoundError("comment not found")
        comment = await self.db.get(Comment, comment_id)
        if comment is None or comment.article_id != article_id:
            raise NotFoundError("comment not found")
        if comment.author_id != requester_id:
            raise PermissionDeniedError("permission denied")
        await self.db.delete(comment)
        await self.db.flush()
