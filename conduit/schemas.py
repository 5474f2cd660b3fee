from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def format_timestamp(value: datetime) -> str:
    """Render *value* as UTC with millisecond precision: ``2024-01-31T09:15:00.123Z``."""
    if value.tzinfo is None:
        # SQLite hands back naive values; they were stored as UTC.
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (``tagList``, ``favoritesCount``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Profile ---

class ProfileView(CamelModel):
    username: str
    bio: str | None = None
    image: str | None = None
    following: bool = False


class ProfileResponse(CamelModel):
    profile: ProfileView


# --- User ---

class NewUser(CamelModel):
    username: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=6)


class LoginUser(CamelModel):
    email: str
    password: str


class UserUpdate(CamelModel):
    email: str | None = Field(None, min_length=3, max_length=255)
    username: str | None = Field(None, min_length=1, max_length=100)
    password: str | None = Field(None, min_length=6)
    bio: str | None = None
    image: str | None = None


class UserView(CamelModel):
    email: str
    token: str
    username: str
    bio: str | None = None
    image: str | None = None


class NewUserRequest(CamelModel):
    user: NewUser


class LoginRequest(CamelModel):
    user: LoginUser


class UserUpdateRequest(CamelModel):
    user: UserUpdate


class UserResponse(CamelModel):
    user: UserView


# --- Article ---

class NewArticle(CamelModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = ""
    body: str
    tag_list: list[str] = []


class ArticleUpdate(CamelModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = None
    body: str | None = None


class ArticleView(CamelModel):
    slug: str
    title: str
    description: str
    body: str
    tag_list: list[str]
    created_at: str
    updated_at: str
    favorited: bool
    favorites_count: int
    author: ProfileView


class NewArticleRequest(CamelModel):
    article: NewArticle


class ArticleUpdateRequest(CamelModel):
    article: ArticleUpdate


class ArticleResponse(CamelModel):
    article: ArticleView


class ArticleListResponse(CamelModel):
    articles: list[ArticleView]
    articles_count: int


# --- Comment ---

class NewComment(CamelModel):
    body: str = Field(min_length=1)


class CommentView(CamelModel):
    id: int
    body: str
    created_at: str
    updated_at: str
    author: ProfileView


class NewCommentRequest(CamelModel):
    comment: NewComment


class CommentResponse(CamelModel):
    comment: CommentView


class CommentListResponse(CamelModel):
    comments: list[CommentView]


# --- Tag ---

class TagListResponse(CamelModel):
    tags: list[str]


# --- Health ---

class HealthResponse(BaseModel):
    status: str
    version: str
    cache_info: dict = {}
