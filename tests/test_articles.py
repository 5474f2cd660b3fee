"""
Article endpoint tests: create/read/update/delete, slug allocation, the
list filters, the feed, favorites and the tag vocabulary.
"""
import re

import pytest
from httpx import AsyncClient

from tests.helpers import auth, post_article, register

TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


# ---------------------------------------------------------------------------
# Create / read
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_article(async_client: AsyncClient):
    author = await register(async_client, "writer")
    resp = await async_client.post("/api/articles", headers=auth(author), json={
        "article": {
            "title": "How to train your dragon",
            "description": "Ever wonder how?",
            "body": "You have to believe",
            "tagList": ["reactjs", "angularjs", "dragons"],
        },
    })
    assert resp.status_code == 201
    article = resp.json()["article"]
    assert article["slug"] == "how-to-train-your-dragon"
    assert article["title"] == "How to train your dragon"
    assert article["description"] == "Ever wonder how?"
    assert article["body"] == "You have to believe"
    assert article["tagList"] == ["angularjs", "dragons", "reactjs"]
    assert article["favorited"] is False
    assert article["favoritesCount"] == 0
    assert TIMESTAMP_RE.match(article["createdAt"])
    assert TIMESTAMP_RE.match(article["updatedAt"])
    assert article["author"] == {
        "username": "writer", "bio": None, "image": None, "following": False,
    }


@pytest.mark.asyncio
async def test_create_article_requires_token(async_client: AsyncClient):
    resp = await async_client.post("/api/articles", json={
        "article": {"title": "Anon", "body": "Nope"},
    })
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_article_missing_body_returns_422(async_client: AsyncClient):
    author = await register(async_client, "forgetful")
    resp = await async_client.post("/api/articles", headers=auth(author), json={
        "article": {"title": "No body"},
    })
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_duplicate_tags_are_collapsed(async_client: AsyncClient):
    author = await register(async_client, "tagger")
    article = await post_article(async_client, author, "Tags", tags=["go", "go", "python"])
    assert article["tagList"] == ["go", "python"]


@pytest.mark.asyncio
async def test_same_title_gets_suffixed_slug(async_client: AsyncClient):
    author = await register(async_client, "repeater")
    first = await post_article(async_client, author, "Hello World!")
    second = await post_article(async_client, author, "Hello World!")
    third = await post_article(async_client, author, "hello world")
    assert first["slug"] == "hello-world"
    assert second["slug"] == "hello-world-1"
    assert third["slug"] == "hello-world-2"


@pytest.mark.asyncio
async def test_title_without_ascii_gets_fallback_slug(async_client: AsyncClient):
    author = await register(async_client, "poet")
    article = await post_article(async_client, author, "!!!")
    assert article["slug"] == "article"


@pytest.mark.asyncio
async def test_get_article(async_client: AsyncClient):
    author = await register(async_client, "reader_src")
    created = await post_article(async_client, author, "Readable", tags=["a"])
    resp = await async_client.get(f"/api/articles/{created['slug']}")
    assert resp.status_code == 200
    assert resp.json()["article"] == created


@pytest.mark.asyncio
async def test_get_missing_article_returns_404(async_client: AsyncClient):
    resp = await async_client.get("/api/articles/does-not-exist")
    assert resp.status_code == 404
    assert resp.json() == {"errors": {"body": ["article not found"]}}


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_title_regenerates_slug(async_client: AsyncClient):
    author = await register(async_client, "editor")
    created = await post_article(async_client, author, "Original Title", body="Keep me")
    resp = await async_client.put(f"/api/articles/{created['slug']}", headers=auth(author), json={
        "article": {"title": "Brand New Title"},
    })
    assert resp.status_code == 200
    updated = resp.json()["article"]
    assert updated["slug"] == "brand-new-title"
    assert updated["title"] == "Brand New Title"
    assert updated["body"] == "Keep me"
    assert updated["createdAt"] == created["createdAt"]
    assert updated["updatedAt"] >= created["updatedAt"]

    old = await async_client.get(f"/api/articles/{created['slug']}")
    assert old.status_code == 404


@pytest.mark.asyncio
async def test_update_body_keeps_slug(async_client: AsyncClient):
    author = await register(async_client, "tweaker")
    created = await post_article(async_client, author, "Stable Slug")
    resp = await async_client.put(f"/api/articles/{created['slug']}", headers=auth(author), json={
        "article": {"body": "New body", "description": "New description"},
    })
    assert resp.status_code == 200
    updated = resp.json()["article"]
    assert updated["slug"] == "stable-slug"
    assert updated["body"] == "New body"
    assert updated["description"] == "New description"


@pytest.mark.asyncio
async def test_update_title_case_only_keeps_own_slug(async_client: AsyncClient):
    author = await register(async_client, "caser")
    created = await post_article(async_client, author, "Case Study")
    resp = await async_client.put(f"/api/articles/{created['slug']}", headers=auth(author), json={
        "article": {"title": "CASE STUDY"},
    })
    assert resp.status_code == 200
    assert resp.json()["article"]["slug"] == "case-study"


@pytest.mark.asyncio
async def test_update_title_colliding_with_other_article(async_client: AsyncClient):
    author = await register(async_client, "collider")
    await post_article(async_client, author, "First Article")
    second = await post_article(async_client, author, "Second Article")
    resp = await async_client.put(f"/api/articles/{second['slug']}", headers=auth(author), json={
        "article": {"title": "First Article"},
    })
    assert resp.status_code == 200
    assert resp.json()["article"]["slug"] == "first-article-1"


@pytest.mark.asyncio
async def test_update_by_non_author_returns_403(async_client: AsyncClient):
    author = await register(async_client, "owner")
    intruder = await register(async_client, "intruder")
    created = await post_article(async_client, author, "Mine")
    resp = await async_client.put(f"/api/articles/{created['slug']}", headers=auth(intruder), json={
        "article": {"body": "Defaced"},
    })
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_delete_article(async_client: AsyncClient):
    author = await register(async_client, "deleter")
    fan = await register(async_client, "deleter_fan")
    created = await post_article(async_client, author, "Short Lived", tags=["tmp"])
    slug = created["slug"]
    await async_client.post(f"/api/articles/{slug}/favorite", headers=auth(fan))
    await async_client.post(f"/api/articles/{slug}/comments", headers=auth(fan), json={
        "comment": {"body": "First!"},
    })

    resp = await async_client.delete(f"/api/articles/{slug}", headers=auth(author))
    assert resp.status_code == 204

    assert (await async_client.get(f"/api/articles/{slug}")).status_code == 404
    listing = await async_client.get("/api/articles", params={"favorited": "deleter_fan"})
    assert listing.json()["articlesCount"] == 0
    # Tags outlive the articles that used them.
    tags = await async_client.get("/api/tags")
    assert "tmp" in tags.json()["tags"]


@pytest.mark.asyncio
async def test_delete_by_non_author_returns_403(async_client: AsyncClient):
    author = await register(async_client, "keeper")
    intruder = await register(async_client, "vandal")
    created = await post_article(async_client, author, "Protected")
    resp = await async_client.delete(f"/api/articles/{created['slug']}", headers=auth(intruder))
    assert resp.status_code == 403
    assert (await async_client.get(f"/api/articles/{created['slug']}")).status_code == 200


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_articles_newest_first(async_client: AsyncClient):
    author = await register(async_client, "prolific")
    for i in range(3):
        await post_article(async_client, author, f"Post {i}")
    resp = await async_client.get("/api/articles")
    assert resp.status_code == 200
    data = resp.json()
    assert data["articlesCount"] == 3
    assert [a["title"] for a in data["articles"]] == ["Post 2", "Post 1", "Post 0"]


@pytest.mark.asyncio
async def test_list_articles_window(async_client: AsyncClient):
    author = await register(async_client, "pager")
    for i in range(5):
        await post_article(async_client, author, f"Page {i}")
    resp = await async_client.get("/api/articles", params={"limit": 2, "offset": 1})
    data = resp.json()
    assert data["articlesCount"] == 5
    assert [a["title"] for a in data["articles"]] == ["Page 3", "Page 2"]


@pytest.mark.asyncio
async def test_list_articles_filters(async_client: AsyncClient):
    alice = await register(async_client, "alice")
    bob = await register(async_client, "bob")
    await post_article(async_client, alice, "Alice Go", tags=["go"])
    await post_article(async_client, alice, "Alice Py", tags=["python"])
    bob_go = await post_article(async_client, bob, "Bob Go", tags=["go"])
    await async_client.post(f"/api/articles/{bob_go['slug']}/favorite", headers=auth(alice))

    by_tag = (await async_client.get("/api/articles", params={"tag": "go"})).json()
    assert by_tag["articlesCount"] == 2
    assert {a["title"] for a in by_tag["articles"]} == {"Alice Go", "Bob Go"}

    by_author = (await async_client.get("/api/articles", params={"author": "alice"})).json()
    assert {a["title"] for a in by_author["articles"]} == {"Alice Go", "Alice Py"}

    combined = (await async_client.get(
        "/api/articles", params={"tag": "go", "author": "alice"},
    )).json()
    assert [a["title"] for a in combined["articles"]] == ["Alice Go"]

    favorited = (await async_client.get("/api/articles", params={"favorited": "alice"})).json()
    assert [a["title"] for a in favorited["articles"]] == ["Bob Go"]

    unknown = (await async_client.get("/api/articles", params={"author": "nobody"})).json()
    assert unknown == {"articles": [], "articlesCount": 0}


@pytest.mark.asyncio
async def test_list_articles_viewer_flags(async_client: AsyncClient):
    author = await register(async_client, "flagged_author")
    viewer = await register(async_client, "flag_viewer")
    article = await post_article(async_client, author, "Flags")
    await async_client.post(f"/api/articles/{article['slug']}/favorite", headers=auth(viewer))
    await async_client.post("/api/profiles/flagged_author/follow", headers=auth(viewer))

    as_viewer = (await async_client.get("/api/articles", headers=auth(viewer))).json()
    assert as_viewer["articles"][0]["favorited"] is True
    assert as_viewer["articles"][0]["author"]["following"] is True

    anonymous = (await async_client.get("/api/articles")).json()
    assert anonymous["articles"][0]["favorited"] is False
    assert anonymous["articles"][0]["author"]["following"] is False


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_feed_only_followed_authors(async_client: AsyncClient):
    reader = await register(async_client, "feedreader")
    followed = await register(async_client, "followed")
    stranger = await register(async_client, "stranger")
    await post_article(async_client, followed, "Followed Post")
    await post_article(async_client, stranger, "Stranger Post")
    await post_article(async_client, reader, "Own Post")

    empty = (await async_client.get("/api/articles/feed", headers=auth(reader))).json()
    assert empty == {"articles": [], "articlesCount": 0}

    await async_client.post("/api/profiles/followed/follow", headers=auth(reader))
    feed = (await async_client.get("/api/articles/feed", headers=auth(reader))).json()
    assert feed["articlesCount"] == 1
    assert feed["articles"][0]["title"] == "Followed Post"
    assert feed["articles"][0]["author"]["following"] is True


@pytest.mark.asyncio
async def test_feed_requires_token(async_client: AsyncClient):
    resp = await async_client.get("/api/articles/feed")
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_favorite_is_idempotent(async_client: AsyncClient):
    author = await register(async_client, "popular")
    fan = await register(async_client, "superfan")
    article = await post_article(async_client, author, "Likeable")
    url = f"/api/articles/{article['slug']}/favorite"

    first = (await async_client.post(url, headers=auth(fan))).json()["article"]
    assert first["favorited"] is True
    assert first["favoritesCount"] == 1

    second = (await async_client.post(url, headers=auth(fan))).json()["article"]
    assert second["favoritesCount"] == 1

    removed = (await async_client.delete(url, headers=auth(fan))).json()["article"]
    assert removed["favorited"] is False
    assert removed["favoritesCount"] == 0

    again = await async_client.delete(url, headers=auth(fan))
    assert again.status_code == 200
    assert again.json()["article"]["favoritesCount"] == 0


@pytest.mark.asyncio
async def test_favorite_counts_distinct_users(async_client: AsyncClient):
    author = await register(async_client, "counted")
    article = await post_article(async_client, author, "Counted")
    for name in ("fan_a", "fan_b", "fan_c"):
        fan = await register(async_client, name)
        await async_client.post(f"/api/articles/{article['slug']}/favorite", headers=auth(fan))
    resp = await async_client.get(f"/api/articles/{article['slug']}")
    assert resp.json()["article"]["favoritesCount"] == 3


@pytest.mark.asyncio
async def test_favorite_missing_article_returns_404(async_client: AsyncClient):
    fan = await register(async_client, "lost_fan")
    resp = await async_client.post("/api/articles/ghost/favorite", headers=auth(fan))
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_tags_sorted_and_distinct(async_client: AsyncClient):
    author = await register(async_client, "tagsmith")
    await post_article(async_client, author, "One", tags=["zeta", "alpha"])
    await post_article(async_client, author, "Two", tags=["alpha", "Mid"])
    resp = await async_client.get("/api/tags")
    assert resp.status_code == 200
    assert resp.json() == {"tags": ["Mid", "alpha", "zeta"]}


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_publish_follow_favorite_comment_flow(async_client: AsyncClient):
    author = await register(async_client, "author1")
    reader = await register(async_client, "reader1")

    article = await post_article(async_client, author, "Hello World!", tags=["intro", "hello"])
    assert article["slug"] == "hello-world"
    assert article["tagList"] == ["hello", "intro"]

    await async_client.post("/api/profiles/author1/follow", headers=auth(reader))
    feed = (await async_client.get("/api/articles/feed", headers=auth(reader))).json()
    assert [a["slug"] for a in feed["articles"]] == ["hello-world"]

    favorited = (await async_client.post(
        "/api/articles/hello-world/favorite", headers=auth(reader),
    )).json()["article"]
    assert favorited["favorited"] is True
    assert favorited["favoritesCount"] == 1
    assert favorited["author"]["following"] is True

    comment = (await async_client.post(
        "/api/articles/hello-world/comments",
        headers=auth(reader),
        json={"comment": {"body": "Great read"}},
    )).json()["comment"]
    assert comment["author"]["username"] == "reader1"

    comments = (await async_client.get(
        "/api/articles/hello-world/comments", headers=auth(author),
    )).json()["comments"]
    assert [c["body"] for c in comments] == ["Great read"]
