"""
Latency and query-count benchmark for the Conduit article endpoints.

Runs each endpoint anonymously and as a seeded user, and reports the
per-request SQL statement count from ``X-Query-Count`` next to latency.
The count should not grow with ``limit``.
"""
import argparse
import asyncio
import statistics
import time

import httpx

# Credentials created by scripts/seed.py
SEED_EMAIL = "user_0000@example.com"
SEED_PASSWORD = "password"

PATHS = [
    "/api/articles?limit=10",
    "/api/articles?limit=100",
    "/api/articles?tag=python",
    "/api/articles?author=user_0001",
    "/api/articles?favorited=user_0002",
    "/api/tags",
]
AUTH_ONLY_PATHS = ["/api/articles/feed?limit=100"]


def percentile(samples: list[float], fraction: float) -> float:
    ordered = sorted(samples)
    return ordered[min(len(ordered) - 1, int(len(ordered) * fraction))]


async def measure(client: httpx.AsyncClient, path: str, iterations: int) -> dict:
    times: list[float] = []
    queries: set[str] = set()
    failures = 0
    for _ in range(iterations):
        start = time.perf_counter()
        resp = await client.get(path)
        elapsed = (time.perf_counter() - start) * 1000
        if resp.status_code != 200:
            failures += 1
            continue
        times.append(elapsed)
        queries.add(resp.headers.get("X-Query-Count", "?"))
    return {"times": times, "queries": ",".join(sorted(queries)) or "-", "failures": failures}


async def login(client: httpx.AsyncClient) -> str | None:
    resp = await client.post(
        "/api/users/login", json={"user": {"email": SEED_EMAIL, "password": SEED_PASSWORD}}
    )
    if resp.status_code != 200:
        print(f"WARNING: login as {SEED_EMAIL} failed ({resp.status_code}); skipping viewer runs")
        return None
    return resp.json()["user"]["token"]


async def run(base_url: str, iterations: int) -> None:
    async with httpx.AsyncClient(base_url=base_url, timeout=10) as client:
        try:
            health = await client.get("/health")
        except httpx.HTTPError as exc:
            print(f"ERROR: cannot reach {base_url}: {exc}")
            return
        print(f"Health: {health.json()}")

        runs = [("anon", path, {}) for path in PATHS]
        token = await login(client)
        if token:
            headers = {"Authorization": f"Token {token}"}
            runs += [("user", path, headers) for path in PATHS + AUTH_ONLY_PATHS]

        print(f"\n{'Viewer':<6} {'Path':<38} {'Avg':>8} {'P50':>8} {'P95':>8} {'Queries':>8} {'Fail':>5}")
        print("-" * 86)
        for viewer, path, headers in runs:
            client.headers.update(headers)
            result = await measure(client, path, iterations)
            client.headers.pop("Authorization", None)
            times = result["times"]
            if not times:
                print(f"{viewer:<6} {path:<38} {'ERROR':>8}")
                continue
            print(
                f"{viewer:<6} {path:<38} "
                f"{statistics.mean(times):>6.1f}ms "
                f"{percentile(times, 0.5):>6.1f}ms "
                f"{percentile(times, 0.95):>6.1f}ms "
                f"{result['queries']:>8} {result['failures']:>5}"
            )


def main():
    parser = argparse.ArgumentParser(description="Benchmark the Conduit API")
    parser.add_argument("-n", "--iterations", type=int, default=50, help="Requests per endpoint")
    parser.add_argument("--base-url", default="http://localhost:8000", help="API base URL")
    args = parser.parse_args()
    asyncio.run(run(args.base_url, args.iterations))


if __name__ == "__main__":
    main()
