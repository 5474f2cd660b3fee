"""
User service: identity lookup, registration, login and account updates.

Lookups raise NotFoundError instead of returning None so callers can let
the error propagate.  Username and email uniqueness is pre-checked for a
clear error message; the unique constraints remain the authority, and a
violation that slips past the pre-check is reported as the same
ConflictError.
"""
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.errors import AuthenticationError, ConflictError, NotFoundError
from conduit.models import User, utcnow
from conduit.schemas import LoginUser, NewUser, UserUpdate, UserView
from conduit.security import create_access_token, hash_password, verify_password


def user_to_view(user: User) -> UserView:
    return UserView(
        email=user.email,
        token=create_access_token(user.id),
        username=user.username,
        bio=user.bio,
        image=user.image,
    )


class UserService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _one(self, *criteria) -> User | None:
        result = await self.db.execute(select(User).where(*criteria))
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("user not found")
        return user

    async def get_by_username(self, username: str) -> User:
        user = await self._one(User.username == username)
        if user is None:
            raise NotFoundError("user not found")
        return user

    async def get_by_email(self, email: str) -> User:
        user = await self._one(User.email == email)
        if user is None:
            raise NotFoundError("user not found")
        return user

    async def _ensure_available(self, user_id: int | None, username=None, email=None) -> None:
        if email is not None:
            existing = await self._one(User.email == email)
            if existing is not None and existing.id != user_id:
                raise ConflictError("email already exists")
        if username is not None:
            existing = await self._one(User.username == username)
            if existing is not None and existing.id != user_id:
                raise ConflictError("username already exists")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, username: str, email: str, password: str) -> User:
        await self._ensure_available(None, username=username, email=email)
        user = User(username=username, email=email, password_hash=hash_password(password))
        try:
            async with self.db.begin_nested():
                self.db.add(user)
        except IntegrityError as exc:
            raise ConflictError("username or email already exists") from exc
        return user

    async def update(self, user_id: int, data: UserUpdate) -> User:
        """
        Apply the supplied fields to the user.  Fields that are absent or
        null are left unchanged.
        """
        user = await self.get_by_id(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return user

        await self._ensure_available(
            user_id, username=changes.get("username"), email=changes.get("email")
        )
        password = changes.pop("password", None)
        password_hash = hash_password(password) if password is not None else None

        # A unique violation rolls back only the changes made inside the savepoint.
        try:
            async with self.db.begin_nested():
                if password_hash is not None:
                    user.password_hash = password_hash
                for field, value in changes.items():
                    setattr(user, field, value)
                user.updated_at = utcnow()
        except IntegrityError as exc:
            raise ConflictError("username or email already exists") from exc
        return user

    # ------------------------------------------------------------------
    # Account endpoints
    # ------------------------------------------------------------------

    async def register(self, data: NewUser) -> UserView:
        user = await self.create(data.username, data.email, data.password)
        return user_to_view(user)

    async def login(self, data: LoginUser) -> UserView:
        user = await self._one(User.email == data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            raise AuthenticationError("invalid email or password")
        return user_to_view(user)

    async def current(self, user_id: int) -> UserView:
        return user_to_view(await self.get_by_id(user_id))

    async def update_current(self, user_id: int, data: UserUpdate) -> UserView:
        return user_to_view(await self.update(user_id, data))
