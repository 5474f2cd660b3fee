"""Shared helpers for the endpoint and service tests."""
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.models import User
from conduit.security import hash_password


async def register(client: AsyncClient, username: str, password: str = "secret123") -> dict:
    """Register *username* through the API and return the ``user`` payload."""
    resp = await client.post("/api/users", json={
        "user": {"username": username, "email": f"{username}@example.com", "password": password},
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]


def auth(user: dict) -> dict:
    return {"Authorization": f"Token {user['token']}"}


async def post_article(client: AsyncClient, user: dict, title: str, tags=None, **fields) -> dict:
    payload = {"title": title, "description": fields.get("description", ""),
               "body": fields.get("body", "Body text"), "tagList": tags or []}
    resp = await client.post("/api/articles", json={"article": payload}, headers=auth(user))
    assert resp.status_code == 201, resp.text
    return resp.json()["article"]


async def create_user(db: AsyncSession, username: str) -> User:
    """Insert a user row directly, bypassing the HTTP layer."""
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password("secret123"),
    )
    db.add(user)
    await db.flush()
    return user
