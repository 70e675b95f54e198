"""
Order Rush Simulation Script

Fires a burst of QR orders at the public intake endpoint to exercise
repricing and the per-client rate limit. With the default limit of 10
orders per hour, everything past the tenth order from this machine
should come back as 429.

Run from project root: python scripts/simulate.py
"""

import asyncio
import sys
import os
import random
import time
import argparse
from collections import Counter
from datetime import datetime
from typing import Any

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 15

TABLE_NUMBERS = ["1", "2", "3", "4", "5", "T-12", "BAR_1", "PATIO-3"]
NOTES = [None, "No onions", "Extra spicy", "Birthday table", "Allergic to nuts"]


def generate_random_items(menu: list[dict]) -> list[dict]:
    """Pick 1-4 lines from the public menu. Client prices are deliberately wrong."""
    lines = []
    for item in random.sample(menu, k=min(len(menu), random.randint(1, 4))):
        lines.append({
            "menu_item_id": item["id"],
            "quantity": random.randint(1, 3),
            "price": 0.01,
            "notes": random.choice([None, "Well done", "On the side"]),
        })
    return lines


def generate_order_payload(menu: list[dict]) -> dict[str, Any]:
    return {
        "table_number": random.choice(TABLE_NUMBERS),
        "notes": random.choice(NOTES),
        "items": generate_random_items(menu),
    }


async def fetch_menu(client: httpx.AsyncClient) -> list[dict]:
    response = await client.get(f"{API_BASE_URL}/api/menu/public", timeout=10.0)
    response.raise_for_status()
    return response.json()


async def send_order(
    client: httpx.AsyncClient,
    menu: list[dict],
    order_num: int
) -> dict[str, Any]:
    """Submit one order and record the outcome."""
    payload = generate_order_payload(menu)
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=payload,
            timeout=30.0
        )
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "status": None,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }

    elapsed = round(time.time() - start_time, 3)
    data = response.json()
    if response.status_code == 200:
        order = data["order"]
        return {
            "order_num": order_num,
            "status": 200,
            "order_id": order["id"],
            "table": order["table_number"],
            "total": order["total"],
            "time": elapsed,
        }
    return {
        "order_num": order_num,
        "status": response.status_code,
        "error": data.get("error", response.text[:100]),
        "time": elapsed,
    }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, sequential: bool = False) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 ORDER RUSH SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🔧 Mode: {'sequential' if sequential else 'concurrent'}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        menu = await fetch_menu(client)
        if not menu:
            print("\n❌ The public menu is empty. Add available menu items first.")
            return {"total": num_orders, "results": []}

        print(f"\n🍽️  {len(menu)} available menu items\n")
        if sequential:
            results = [await send_order(client, menu, i + 1) for i in range(num_orders)]
        else:
            results = await asyncio.gather(
                *(send_order(client, menu, i + 1) for i in range(num_orders))
            )

    total_time = round(time.time() - start_time, 2)

    accepted = [r for r in results if r["status"] == 200]
    throttled = [r for r in results if r["status"] == 429]
    failed = [r for r in results if r["status"] not in (200, 429)]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Accepted: {len(accepted)}/{num_orders}")
    print(f"🛑 Rate limited (429): {len(throttled)}/{num_orders}")
    print(f"❌ Other failures: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if accepted:
        avg_time = round(sum(r["time"] for r in accepted) / len(accepted), 3)
        revenue = sum(r["total"] for r in accepted)
        by_table = Counter(r["table"] for r in accepted)
        print(f"\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   💰 Repriced Revenue: ${revenue:.2f}")
        print(f"   🪑 Orders per table: {dict(by_table)}")

    if failed:
        print(f"\n⚠️  Failure Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']} [{f['status']}]: {f.get('error', 'Unknown error')}")

    print("=" * 70)

    return {
        "total": num_orders,
        "accepted": len(accepted),
        "throttled": len(throttled),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


async def preflight() -> bool:
    print("\n1️⃣ Health Check...")
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health", timeout=10.0)
        except httpx.HTTPError as e:
            print(f"   ❌ Unreachable: {e}")
            return False

    if response.status_code != 200:
        print(f"   ❌ Failed: {response.text}")
        return False

    data = response.json()
    print(f"   ✅ Status: {data.get('status')}")
    print(f"   Database: {data.get('database')}")
    print(f"   Rate limiter: {data.get('rate_limiter')}")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Order Rush Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--sequential", action="store_true", help="Send orders one at a time")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    parser.add_argument("--skip-checks", action="store_true", help="Skip the health check")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")

    if not args.skip_checks and not asyncio.run(preflight()):
        print("\n❌ Pre-flight check failed. Is the API running?")
        sys.exit(1)

    asyncio.run(run_simulation(num_orders=args.orders, sequential=args.sequential))
