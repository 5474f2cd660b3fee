"""
Follow graph: directed follower -> followee edges.

The graph stores whatever it is given.  Rejecting self-follows is the
caller's business rule (see ``ProfileService.follow``).
"""
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import insert_ignoring_conflicts
from conduit.models import Follow


class FollowGraph:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def follow(self, follower_id: int, followee_id: int) -> bool:
        """Create the edge; returns False if it already existed."""
        stmt = insert_ignoring_conflicts(self.db, Follow.__table__).values(
            follower_id=follower_id, followee_id=followee_id
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def unfollow(self, follower_id: int, followee_id: int) -> bool:
        """Remove the edge; returns False if there was nothing to remove."""
        result = await self.db.execute(
            delete(Follow).where(
                Follow.follower_id == follower_id, Follow.followee_id == followee_id
            )
        )
        return result.rowcount > 0

    async def is_following(self, follower_id: int, followee_id: int) -> bool:
        result = await self.db.execute(
            select(Follow.followee_id).where(
                Follow.follower_id == follower_id, Follow.followee_id == followee_id
            )
        )
        return result.first() is not None

    async def following_among(self, follower_id: int, user_ids: Iterable[int]) -> set[int]:
        """Return the subset of *user_ids* that *follower_id* follows, in one query."""
        ids = set(user_ids)
        if not ids:
            return set()
        result = await self.db.execute(
            select(Follow.followee_id).where(
                Follow.follower_id == follower_id, Follow.followee_id.in_(ids)
            )
        )
        return set(result.scalars().all())
