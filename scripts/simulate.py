"""
Checkout Simulation Script

Fires concurrent checkouts at a running server to exercise order creation,
cart pruning and the checkout-key retry path.
Run from project root: python scripts/simulate.py

Author: FoodHub Team
Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
import uuid
from datetime import datetime
from typing import Any, Optional

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:5000"
TOTAL_ORDERS = 50
PASSWORD = "simulate-123"

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
STREETS = ["Main St", "Broadway", "5th Avenue", "Park Ave", "Madison Ave", "Lexington Ave"]


# =============================================================================
# SETUP
# =============================================================================

async def register_customer(client: httpx.AsyncClient, num: int) -> Optional[str]:
    """Register a throwaway customer and return its bearer token."""
    name = random.choice(FIRST_NAMES)
    payload = {
        "name": f"{name} {num}",
        "email": f"sim-{uuid.uuid4().hex[:10]}@example.com",
        "password": PASSWORD,
        "userType": "customer",
        "address": f"{random.randint(1, 999)} {random.choice(STREETS)}",
    }
    response = await client.post(f"{API_BASE_URL}/api/register", json=payload, timeout=30.0)
    if response.status_code != 201:
        print(f"   Registration failed: {response.text[:100]}")
        return None
    return response.json()["token"]


async def load_menu(client: httpx.AsyncClient, token: str) -> dict[int, list[dict]]:
    """Food items grouped by restaurant id."""
    response = await client.get(
        f"{API_BASE_URL}/api/customer/food-items",
        headers={"Authorization": f"Bearer {token}"},
    )
    response.raise_for_status()

    menu: dict[int, list[dict]] = {}
    for item in response.json():
        menu.setdefault(item["restaurantId"], []).append(item)
    return menu


def generate_order_payload(menu: dict[int, list[dict]]) -> dict[str, Any]:
    restaurant_id = random.choice(list(menu))
    picks = random.sample(menu[restaurant_id], k=min(len(menu[restaurant_id]), random.randint(1, 3)))
    return {
        "restaurant": restaurant_id,
        "items": [
            {"foodItem": item["id"], "quantity": random.randint(1, 3), "price": item["price"]}
            for item in picks
        ],
        "paymentMethod": random.choice(["COD", "Card"]),
        "checkoutKey": uuid.uuid4().hex,
    }


# =============================================================================
# CHECKOUT
# =============================================================================

async def send_order(
    client: httpx.AsyncClient,
    token: str,
    payload: dict[str, Any],
    order_num: int,
    replay: bool = False,
) -> dict[str, Any]:
    """Place one order; with ``replay`` the same payload is posted twice."""
    headers = {"Authorization": f"Bearer {token}"}
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/customer/orders", json=payload, headers=headers, timeout=30.0
        )
        if replay and response.status_code == 201:
            second = await client.post(
                f"{API_BASE_URL}/api/customer/orders", json=payload, headers=headers, timeout=30.0
            )
            first_id = response.json()["order"]["id"]
            second_id = second.json().get("order", {}).get("id")
            if second.status_code != 200 or second_id != first_id:
                return {
                    "order_num": order_num,
                    "success": False,
                    "error": f"Replay created a second order ({second.status_code})",
                    "time": round(time.time() - start_time, 3),
                }

        elapsed = round(time.time() - start_time, 3)
        if response.status_code == 201:
            order = response.json()["order"]
            return {
                "order_num": order_num,
                "success": True,
                "order_id": order["id"],
                "total": order["totalAmount"],
                "time": elapsed,
                "replay": replay,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except Exception as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, customers: int = 5) -> dict[str, Any]:
    print("=" * 70)
    print("CHECKOUT SIMULATION - CONCURRENCY TEST")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Customers: {customers}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        tokens = [t for t in await asyncio.gather(
            *(register_customer(client, i + 1) for i in range(customers))
        ) if t]
        if not tokens:
            print("\nNo customers could be registered.")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        menu = await load_menu(client, tokens[0])
        if not menu:
            print("\nNo food items on the menu. Create a restaurant and items first.")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        start_time = time.time()
        tasks = [
            send_order(
                client,
                random.choice(tokens),
                generate_order_payload(menu),
                i + 1,
                replay=(i % 5 == 0),
            )
            for i in range(num_orders)
        ]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)
    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"\nSuccessful Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Replayed Checkouts: {len([r for r in successful if r.get('replay')])}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r.get("total", 0) for r in successful)
        print("\nPerformance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   Total Revenue: ${total_revenue:.2f}")

    if failed:
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("VERIFICATION STEPS")
    print("=" * 70)
    print("1. Check the Celery terminal - all export tasks should complete")
    print("2. Run: python scripts/verify.py")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


async def check_health() -> bool:
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"Server unreachable: {e}")
            return False
    data = response.json()
    print(f"Health: {data.get('status')} (database: {data.get('database')}, redis: {data.get('redis')})")
    return response.status_code == 200


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Checkout Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--customers", type=int, default=5, help="Number of simulated customers")
    parser.add_argument("--base-url", default=API_BASE_URL, help="Server base URL")
    args = parser.parse_args()

    API_BASE_URL = args.base_url.rstrip("/")

    if not asyncio.run(check_health()):
        sys.exit(1)

    asyncio.run(run_simulation(args.orders, args.customers))
