"""
Dinner Rush Simulation

Sets up a throwaway restaurant through the API, then fires concurrent
guest orders at the public ordering endpoints to exercise order numbering,
tax calculation and the staff workflow under load.

Run from project root with the API up: python scripts/simulate.py
"""

import argparse
import asyncio
import random
import sys
import time
import uuid
from datetime import datetime
from typing import Any

import httpx

if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

API_BASE_URL = "http://localhost:8000"
TOTAL_ORDERS = 50
TABLE_COUNT = 8

FIRST_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", "Chris", "Amy"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis", "Wilson", "Taylor"]
MENU = {
    "Pizza": [("Margherita", 14.99), ("Pepperoni", 16.99)],
    "Starters": [("Caesar Salad", 8.99), ("Garlic Bread", 5.99)],
    "Drinks": [("Coke", 2.99), ("Sparkling Water", 3.49)],
}
NOTES = [None, "No onions", "Extra spicy", "Allergic to nuts", "Birthday dinner"]


def random_guest() -> dict[str, str]:
    return {
        "customer_name": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "customer_phone": f"555-{random.randint(100, 999)}-{random.randint(1000, 9999)}",
    }


def random_items(item_ids: list[str]) -> list[dict[str, Any]]:
    picked = random.sample(item_ids, k=random.randint(1, min(4, len(item_ids))))
    return [{"menu_item_id": item_id, "quantity": random.randint(1, 3)} for item_id in picked]


# =============================================================================
# SETUP
# =============================================================================

async def setup_restaurant(client: httpx.AsyncClient) -> dict[str, Any]:
    """Register an owner and build an organization, venue, tables and menu."""
    suffix = uuid.uuid4().hex[:6]
    response = await client.post(
        "/api/users", json={"name": "Simulation Owner", "email": f"owner-{suffix}@example.com"}
    )
    response.raise_for_status()
    client.headers["Authorization"] = f"Bearer {response.json()['api_token']}"

    org = (await client.post("/api/organizations", json={"name": f"Rush Hour {suffix}"})).json()
    base = f"/api/organizations/{org['id']}"

    venue = (await client.post(f"{base}/venues", json={"name": "Main Dining Room"})).json()
    table_ids = []
    for n in range(1, TABLE_COUNT + 1):
        table = (
            await client.post(f"{base}/venues/{venue['id']}/tables", json={"name": f"T{n}", "capacity": 4})
        ).json()
        table_ids.append(table["id"])

    menu = (await client.post(f"{base}/menus", json={"name": "Dinner"})).json()
    item_ids = []
    for position, (category_name, dishes) in enumerate(MENU.items()):
        category = (
            await client.post(
                f"{base}/menus/{menu['id']}/categories",
                json={"name": category_name, "display_order": position},
            )
        ).json()
        for name, price in dishes:
            item = (
                await client.post(f"{base}/categories/{category['id']}/items", json={"name": name, "price": price})
            ).json()
            item_ids.append(item["id"])

    return {
        "base": base,
        "slug": org["slug"],
        "venue_id": venue["id"],
        "table_ids": table_ids,
        "item_ids": item_ids,
    }


# =============================================================================
# GUEST ORDERS
# =============================================================================

async def send_guest_order(
    client: httpx.AsyncClient,
    restaurant: dict[str, Any],
    order_num: int,
) -> dict[str, Any]:
    """Place one guest order, either from a table QR code or as a venue takeaway."""
    at_table = random.random() < 0.8
    payload = {
        **random_guest(),
        "items": random_items(restaurant["item_ids"]),
        "notes": random.choice(NOTES),
    }
    if at_table:
        payload["table_id"] = random.choice(restaurant["table_ids"])
        path = "/api/public/orders"
    else:
        payload["service_type"] = "TAKEAWAY"
        path = f"/api/public/venues/{restaurant['venue_id']}/orders"

    start_time = time.time()
    try:
        response = await client.post(path, json=payload, timeout=30.0)
    except httpx.HTTPError as e:
        return {"order_num": order_num, "success": False, "error": str(e)[:100], "time": None}

    elapsed = round(time.time() - start_time, 3)
    if response.status_code != 201:
        return {"order_num": order_num, "success": False, "error": response.text[:100], "time": elapsed}

    data = response.json()
    return {
        "order_num": order_num,
        "success": True,
        "order_id": data["id"],
        "order_number": data["order_number"],
        "total": data["total_amount"],
        "time": elapsed,
        "mode": "table" if at_table else "takeaway",
    }


async def settle_order(client: httpx.AsyncClient, restaurant: dict[str, Any], order_id: str) -> bool:
    """Walk an order through the kitchen and mark it paid."""
    base = f"{restaurant['base']}/orders/{order_id}"
    for status in ("CONFIRMED", "PREPARING", "READY", "SERVED", "COMPLETED"):
        response = await client.patch(f"{base}/status", json={"status": status})
        if response.status_code != 200:
            return False
    method = random.choice(["CASH", "CREDIT_CARD", "UPI"])
    response = await client.post(f"{base}/payment/paid", json={"payment_method": method})
    return response.status_code == 200


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, settle: bool = True, export: bool = False) -> dict:
    print("=" * 70)
    print("🔥 DINNER RUSH SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=API_BASE_URL) as client:
        restaurant = await setup_restaurant(client)
        print(f"\n🏠 Restaurant ready: {restaurant['slug']} ({len(restaurant['table_ids'])} tables)")

        print("\n🚀 Firing guest orders...\n")
        start_time = time.time()
        results = await asyncio.gather(
            *[send_guest_order(client, restaurant, i + 1) for i in range(num_orders)]
        )
        total_time = round(time.time() - start_time, 2)

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        settled = 0
        if settle and successful:
            print("👨‍🍳 Cooking and settling orders...")
            outcomes = await asyncio.gather(
                *[settle_order(client, restaurant, r["order_id"]) for r in successful]
            )
            settled = sum(outcomes)

        if export and settled:
            response = await client.post(f"{restaurant['base']}/reports/payments/export")
            print(f"📤 Export: {response.json().get('message')}")

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")
    if settle:
        print(f"💳 Settled: {settled}/{len(successful)}")

    numbers = [r["order_number"] for r in successful]
    if len(numbers) != len(set(numbers)):
        print("⚠️  Duplicate order numbers issued!")

    if successful:
        times = [r["time"] for r in successful]
        revenue = sum(r["total"] for r in successful)
        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {round(sum(times) / len(times), 3)}s")
        print(f"   Fastest: {min(times)}s")
        print(f"   Slowest: {max(times)}s")
        print(f"   💰 Total Revenue: ${revenue:.2f}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    if export and settled:
        print(f"\n🔍 Verify the report: python scripts/verify.py {restaurant['base'].rsplit('/', 1)[-1]}")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "settled": settled,
        "total_time": total_time,
        "results": results,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Dinner rush simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--no-settle", action="store_true", help="Leave orders pending and unpaid")
    parser.add_argument("--export", action="store_true", help="Queue the payment report export afterwards")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url
    asyncio.run(run_simulation(num_orders=args.orders, settle=not args.no_settle, export=args.export))
