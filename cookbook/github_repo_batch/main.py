"""
Rate-Limited GitHub Batch Example
=================================

This example fetches details for a batch of repositories larger than the
upstream's primary quota, using ThrottledRequestBatchNode.

Usage:
    # Against the in-process mock (no token needed)
    python main.py

    # Bigger batch, smaller quota
    python main.py --repos 120 --quota 40

The example shows:
1. How the header throttle pauses *all* requests when the quota runs low
   and resumes at the reset time the server reported
2. How the admission semaphore caps requests in flight
3. That no request is rejected with a 403, because the threshold leaves
   room for everything already in flight
"""

import argparse
import asyncio
import logging
import time
from typing import List

from pocketflow import AsyncFlow

from httpx_throttled import RateLimitTransport, ThrottledRequestBatchNode
from utils import MockGitHub


# =============================================================================
# Throttled Fetch Node
# =============================================================================

class FetchRepoNode(ThrottledRequestBatchNode):
    """
    Fetch repository details with rate limiting.

    This node demonstrates:
    - Issuing requests through the node's throttled client
    - Processing many items in parallel
    - Leaving quota handling entirely to the transport
    """

    max_concurrent = 5
    base_url = "https://api.github.com"

    async def prep_async(self, shared) -> List[str]:
        return shared["repos"]

    async def exec_async(self, repo: str) -> dict:
        response = await self.client.get(f"/repos/{repo}")
        return {
            "repo": repo,
            "status": response.status_code,
            "stars": response.json().get("stargazers_count"),
        }

    async def post_async(self, shared, prep_res, exec_res_list) -> str:
        shared["results"] = exec_res_list
        return "default"


# =============================================================================
# Main Execution
# =============================================================================

async def run_batch(repo_count: int, quota: int, window: float):
    upstream = MockGitHub(quota=quota, window_seconds=window)
    transport = RateLimitTransport(upstream.transport(), max_concurrent=FetchRepoNode.max_concurrent)
    node = FetchRepoNode(transport=transport)
    flow = AsyncFlow(start=node)

    print("=" * 60)
    print("Rate-Limited GitHub Batch Demo")
    print("=" * 60)
    print(f"\nRepositories: {repo_count}")
    print(f"Upstream quota: {quota} requests per {window:.0f}s window")
    print(f"Max concurrent: {transport.max_concurrent}")
    print(f"Throttle threshold: remaining <= {transport.threshold}")

    shared = {"repos": [f"octo-org/repo-{i}" for i in range(repo_count)]}

    start = time.time()
    await flow.run_async(shared)
    elapsed = time.time() - start

    await transport.aclose()

    ok = sum(1 for r in shared["results"] if r["status"] == 200)
    print(f"\nCompleted in {elapsed:.2f}s")
    print(f"  - Successful: {ok}/{repo_count}")
    print(f"  - Rejected by upstream: {upstream.rejected}")
    print(f"  - Peak concurrency seen upstream: {upstream.max_active}")


def main():
    parser = argparse.ArgumentParser(description="Rate-limited GitHub batch demo")
    parser.add_argument("--repos", type=int, default=60, help="Number of repositories to fetch")
    parser.add_argument("--quota", type=int, default=30, help="Upstream requests per window")
    parser.add_argument("--window", type=float, default=3.0, help="Upstream window in seconds")
    parser.add_argument("--verbose", action="store_true", help="Show throttle log messages")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    asyncio.run(run_batch(args.repos, args.quota, args.window))


if __name__ == "__main__":
    main()
