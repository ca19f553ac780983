"""Fire concurrent claims at one item of a running server and count outcomes.

Exactly one request should come back 200; the rest 409. The server's claim
rate limit applies per client, so keep ``--claims`` under
``RATE_LIMIT_CLAIM_REQUESTS`` or disable rate limiting on the target.
"""
import argparse
import asyncio
from collections import Counter
import random
import string
import time

import httpx


def _rand_email() -> str:
    return "race_" + "".join(random.choice(string.ascii_lowercase) for _ in range(8)) + "@example.com"


async def _prepare_item(client: httpx.AsyncClient) -> tuple[str, int]:
    email = _rand_email()
    res = await client.post(
        "/api/auth/register",
        json={"email": email, "password": "Test1234!", "name": "Race Owner"},
    )
    res.raise_for_status()
    res = await client.post("/api/wishlists", json={"title": "Claim Race"})
    res.raise_for_status()
    wishlist = res.json()
    res = await client.post(f"/api/wishlists/{wishlist['id']}/items", json={"name": "Contested gift"})
    res.raise_for_status()
    return wishlist["share_token"], res.json()["id"]


async def run(base_url: str, claims: int) -> Counter:
    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as owner:
        share_token, item_id = await _prepare_item(owner)

    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as gifters:

        async def claim(n: int) -> int:
            res = await gifters.post(
                f"/api/shared/{share_token}/claim/{item_id}",
                json={"gifter_name": f"Gifter {n}"},
            )
            return res.status_code

        start = time.perf_counter()
        statuses = await asyncio.gather(*[claim(n) for n in range(claims)])
        elapsed_ms = (time.perf_counter() - start) * 1000.0

    outcomes = Counter(statuses)
    summary = " ".join(f"{code}={count}" for code, count in sorted(outcomes.items()))
    print(f"claims={claims} token={share_token} item={item_id} elapsed_ms={elapsed_ms:.2f} {summary}")
    return outcomes


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--base-url", default="http://127.0.0.1:8000")
    parser.add_argument("--claims", type=int, default=10)
    args = parser.parse_args()
    outcomes = asyncio.run(run(args.base_url, args.claims))
    if outcomes.get(200, 0) != 1:
        raise SystemExit(f"expected exactly one winner, got {outcomes.get(200, 0)}")


if __name__ == "__main__":
    main()
