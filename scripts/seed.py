"""Database seeder for local development and benchmark runs."""
import asyncio
import argparse
import random
import time

from sqlalchemy import select

from conduit.database import engine, async_session, Base
from conduit.models import Article
from conduit.schemas import NewArticle
from conduit.services.article_service import ArticleService
from conduit.services.comment_service import CommentService
from conduit.services.favorite_service import FavoriteLedger
from conduit.services.follow_service import FollowGraph
from conduit.services.user_service import UserService

TAGS = ["python", "fastapi", "postgresql", "redis", "docker", "kubernetes",
        "react", "typescript", "aws", "devops", "testing", "performance",
        "security", "microservices", "graphql", "rest-api"]

async def seed(small: bool = False):
    num_users = 10 if small else 50
    num_articles = 100 if small else 2000
    max_comments_per_article = 2 if small else 5

    print(f"Seeding: {num_users} users, {num_articles} articles, up to {max_comments_per_article} comments each")
    start = time.perf_counter()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        users_service = UserService(session)
        graph = FollowGraph(session)

        # Create users; everyone shares the password "password" for manual testing
        users = []
        for i in range(num_users):
            user = await users_service.create(f"user_{i:04d}", f"user_{i:04d}@example.com", "password")
            user.bio = f"I am test user number {i}. I write about technology."
            users.append(user)
        await session.flush()
        print(f"  Created {len(users)} users")

        # Each user follows a handful of others
        follows = 0
        for user in users:
            for followee in random.sample(users, k=min(5, len(users))):
                if followee.id != user.id and await graph.follow(user.id, followee.id):
                    follows += 1
        print(f"  Created {follows} follow edges")

        # Articles go through the service so slugs, tags and counters stay consistent
        articles = ArticleService(session)
        comments = CommentService(session)
        ledger = FavoriteLedger(session)
        total_comments = 0
        total_favorites = 0
        batch_size = 100
        for batch_start in range(0, num_articles, batch_size):
            batch_end = min(batch_start + batch_size, num_articles)
            for i in range(batch_start, batch_end):
                topic = random.choice(TAGS)
                view = await articles.create(
                    random.choice(users).id,
                    NewArticle(
                        title=f"Article {i}: How to optimize {topic} applications",
                        description=f"A guide to optimizing {topic} applications for production.",
                        body=f"This is the full content of article {i}. " * 20,
                        tag_list=random.sample(TAGS, k=random.randint(1, 4)),
                    ),
                )
                for _ in range(random.randint(0, max_comments_per_article)):
                    commenter = random.choice(users)
                    await comments.add(
                        view.slug,
                        commenter.id,
                        f"Great article! Very helpful for understanding the topic. Comment by {commenter.username}.",
                    )
                    total_comments += 1

            # Favorites are applied per batch through the ledger so counters match the edges
            result = await session.execute(
                select(Article.id).order_by(Article.id.desc()).limit(batch_end - batch_start)
            )
            for article_id in result.scalars().all():
                for fan in random.sample(users, k=random.randint(0, min(3, len(users)))):
                    if await ledger.favorite(fan.id, article_id):
                        total_favorites += 1

            await session.flush()
            print(f"  Batch {batch_start}-{batch_end}: articles created")

        await session.commit()

    elapsed = time.perf_counter() - start
    print(f"\nSeeding complete in {elapsed:.1f}s")
    print(f"  Users: {num_users}")
    print(f"  Articles: {num_articles}")
    print(f"  Comments: {total_comments}")
    print(f"  Favorites: {total_favorites}")
    print(f"  Tags: {len(TAGS)}")


def main():
    parser = argparse.ArgumentParser(description="Seed the Conduit database")
    parser.add_argument("--small", action="store_true", help="Use small dataset (100 articles)")
    args = parser.parse_args()
    asyncio.run(seed(small=args.small))


if __name__ == "__main__":
    main()
