from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.database import get_db
from conduit.errors import AuthenticationError
from conduit.pagination import normalize_limit, normalize_offset
from conduit.security import decode_access_token
from conduit.services.article_service import ArticleService
from conduit.services.comment_service import CommentService
from conduit.services.profile_service import ProfileService
from conduit.services.tag_service import TagCatalog
from conduit.services.user_service import UserService


class PaginationParams:
    """
    Reusable FastAPI dependency for ``limit`` / ``offset`` query parameters.

    Both are taken as raw strings so that malformed values are normalised
    instead of rejected with a 422:

    limit:
        Clamped to ``settings.MAX_PAGE_SIZE``; missing, non-numeric or
        below 1 falls back to ``settings.DEFAULT_PAGE_SIZE``.
    offset:
        Missing, non-numeric or negative falls back to 0.
    """

    def __init__(
        self,
        limit: str | None = Query(None, description="Number of articles to return (max 100)."),
        offset: str | None = Query(None, description="Number of articles to skip."),
    ) -> None:
        self.limit = normalize_limit(limit)
        self.offset = normalize_offset(offset)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

def get_viewer_id(authorization: str | None = Header(None)) -> int | None:
    """
    Return the authenticated user id, or None for anonymous requests.

    A missing header is anonymous; a header that is present but not of the
    form ``Token <jwt>``, or carries an invalid token, is rejected.
    """
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme != "Token" or not token:
        raise AuthenticationError("invalid authorization header format")
    return decode_access_token(token.strip())


def require_viewer_id(viewer_id: int | None = Depends(get_viewer_id)) -> int:
    if viewer_id is None:
        raise AuthenticationError("authentication required")
    return viewer_id


# ---------------------------------------------------------------------------
# Services (one instance per request, bound to the request's session)
# ---------------------------------------------------------------------------

def get_article_service(db: AsyncSession = Depends(get_db)) -> ArticleService:
    return ArticleService(db)


def get_comment_service(db: AsyncSession = Depends(get_db)) -> CommentService:
    return CommentService(db)


def get_profile_service(db: AsyncSession = Depends(get_db)) -> ProfileService:
    return ProfileService(db)


def get_tag_catalog(db: AsyncSession = Depends(get_db)) -> TagCatalog:
    return TagCatalog(db)


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)
