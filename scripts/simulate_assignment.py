#!/usr/bin/env python
"""Walk one category assignment session against a running service.

Opens a session, searches the taxonomy, selects the first result and
either reuses the tenant category already mapped to it or creates one,
then assigns it to the item.

Usage:
    # Search and assign
    python scripts/simulate_assignment.py --item item-42 --query "digital cameras"

    # Only look, do not create or assign anything
    python scripts/simulate_assignment.py --item item-42 --query cameras --dry-run
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

import httpx


async def run_session(
    base_url: str,
    tenant_id: str,
    item_id: str,
    query: str,
    dry_run: bool = False,
) -> dict:
    """Drive one session end to end.

    Returns:
        Final session state JSON
    """
    headers = {"X-Tenant-Id": tenant_id}

    async with httpx.AsyncClient(base_url=base_url, headers=headers, timeout=30.0) as client:
        response = await client.post("/sessions", json={"item_id": item_id})
        response.raise_for_status()
        state = response.json()
        sid = state["session_id"]

        print(f"\n{'='*60}")
        print(f"Session:   {sid}")
        print(f"Tenant:    {tenant_id}")
        print(f"Item:      {item_id}")
        print(f"Known tenant categories: {len(state['tenant_categories'])}")
        print(f"{'='*60}\n")

        response = await client.post(f"/sessions/{sid}/search", params={"wait": "true"}, json={"query": query})
        state = response.json()
        if state["error"]:
            print(f"Search failed: {state['error']}")
            return state

        results = state["search_results"]
        print(f"Results for {query!r}: {len(results)}")
        for node in results[:10]:
            print(f"  [{node['id']}] {' > '.join(node['path'])}")
        if not results:
            return state

        response = await client.post(f"/sessions/{sid}/select", json={"node_id": results[0]["id"]})
        state = response.json()

        if state["candidates"]:
            print("Several tenant categories map to this node; choosing the first")
            response = await client.post(
                f"/sessions/{sid}/choose", json={"category_id": state["candidates"][0]["id"]}
            )
            state = response.json()

        if dry_run:
            print(f"Resolved tenant category: {state['selected_tenant_category_id']}")
            print(f"Create suggestion: {state['create_suggestion']}")
            await client.delete(f"/sessions/{sid}")
            return state

        if state["selected_tenant_category_id"] is None:
            print(f"Creating tenant category {state['create_suggestion']!r}")
            response = await client.post(
                f"/sessions/{sid}/create", json={"name": state["create_suggestion"] or ""}
            )
            state = response.json()
            if state["error"]:
                print(f"Create failed: {state['error']}")
                return state

        response = await client.post(f"/sessions/{sid}/assign")
        state = response.json()
        if state["error"]:
            print(f"Assign failed: {state['error']}")
        else:
            print(f"Assigned category: {state['assigned_category_id']}")
        return state


async def check_health(base_url: str) -> bool:
    """Check if the service is running and healthy."""
    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.get(f"{base_url}/health")
            return response.status_code == 200
    except httpx.HTTPError as e:
        print(f"Health check failed: {e}")
        return False


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Simulate a category assignment session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("--item", required=True, help="Catalog item id")
    parser.add_argument("--query", required=True, help="Taxonomy search query")
    parser.add_argument(
        "--url",
        default="http://localhost:8080",
        help="Service base URL (default: http://localhost:8080)",
    )
    parser.add_argument(
        "--tenant",
        default="test-tenant",
        help="Tenant ID (default: test-tenant)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve only; do not create or assign",
    )
    parser.add_argument(
        "--skip-health",
        action="store_true",
        help="Skip health check before starting",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Save final session state JSON to file",
    )

    return parser.parse_args()


async def main() -> int:
    """Main entry point."""
    args = parse_args()

    if not args.skip_health:
        print(f"Checking service health at {args.url}...")
        if not await check_health(args.url):
            print("Error: service is not healthy or not running")
            print("Make sure the server is running: uvicorn app.main:app --port 8080")
            return 1

    try:
        state = await run_session(
            base_url=args.url,
            tenant_id=args.tenant,
            item_id=args.item,
            query=args.query,
            dry_run=args.dry_run,
        )
    except httpx.HTTPStatusError as e:
        print(f"Request failed: {e.response.status_code} {e.response.text}")
        return 1

    if args.output:
        args.output.write_text(json.dumps(state, indent=2, default=str))
        print(f"\nState saved to: {args.output}")

    return 1 if state.get("error") else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
