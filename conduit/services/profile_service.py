"""
Profile service: the viewer-scoped author sub-object and follow operations.

``following`` is always False for anonymous viewers and for a viewer
looking at their own profile.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.errors import InvalidInputError
from conduit.models import User
from conduit.schemas import ProfileView
from conduit.services.follow_service import FollowGraph
from conduit.services.user_service import UserService


def profile_view(user: User, following: bool = False) -> ProfileView:
    return ProfileView(
        username=user.username,
        bio=user.bio,
        image=user.image,
        following=following,
    )


class ProfileService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.users = UserService(db)
        self.graph = FollowGraph(db)

    async def build(
        self, user: User, viewer_id: int | None, following: bool | None = None
    ) -> ProfileView:
        """
        The author sub-object as *viewer_id* sees it.  Pass *following* when
        the flag is already known (e.g. from a batch lookup) to skip the query.
        """
        if viewer_id is None or viewer_id == user.id:
            return profile_view(user, False)
        if following is None:
            following = await self.graph.is_following(viewer_id, user.id)
        return profile_view(user, following)

    async def get(self, username: str, viewer_id: int | None = None) -> ProfileView:
        user = await self.users.get_by_username(username)
        return await self.build(user, viewer_id)

    async def follow(self, viewer_id: int, username: str) -> ProfileView:
        user = await self.users.get_by_username(username)
        if user.id == viewer_id:
            raise InvalidInputError("cannot follow yourself")
        await self.graph.follow(viewer_id, user.id)
        return profile_view(user, following=True)

    async def unfollow(self, viewer_id: int, username: str) -> ProfileView:
        user = await self.users.get_by_username(username)
        await self.graph.unfollow(viewer_id, user.id)
        return profile_view(user, following=False)
