"""
Concurrency Simulation Script

Fires many chat and web orders at once at a running server and checks
that every order got a distinct order number.
Run from project root: python scripts/simulate.py

Needs a development server (ENV_MODE=development) with the demo shop
from scripts/seed_demo.py.
"""

import asyncio
import sys
import os
import random
import re
import time
import argparse
from collections import Counter
from datetime import datetime
from typing import Any, Optional

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50
SHOP_CONTACT = "+919876500001"
SHOP_PINCODE = "560038"

ORDER_NUMBER = re.compile(r"Order placed: #(\d+)")
CHAT_TOKENS = ["A", "B", "C", "TEA", "COF", "Samosa"]


def random_customer_phone() -> str:
    return f"9{random.randint(100000000, 999999999)}"


def generate_chat_body() -> str:
    """Random 'order <shop> <token> <qty> ...' command."""
    pairs = []
    for token in random.sample(CHAT_TOKENS, random.randint(1, 3)):
        pairs.append(f"{token} {random.randint(1, 3)}")
    return f"order {SHOP_CONTACT} {' '.join(pairs)}"


# =============================================================================
# CHAT SIMULATION
# =============================================================================

async def send_chat_order(
    client: httpx.AsyncClient,
    order_num: int
) -> dict[str, Any]:
    """Send an order through the simulation webhook."""
    payload = {
        "from": f"whatsapp:+91{random_customer_phone()}",
        "body": generate_chat_body(),
    }
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/webhook/simulation",
            json=payload,
            timeout=30.0
        )
        elapsed = round(time.time() - start_time, 3)
        reply = response.json().get("reply", "") if response.status_code == 200 else response.text
        match = ORDER_NUMBER.search(reply)

        return {
            "order_num": order_num,
            "success": match is not None,
            "order_number": int(match.group(1)) if match else None,
            "error": None if match else reply[:100],
            "time": elapsed,
            "mode": "chat"
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
            "mode": "chat"
        }


# =============================================================================
# WEB SIMULATION
# =============================================================================

async def send_web_order(
    client: httpx.AsyncClient,
    order_num: int,
    shop_id: int,
    item_ids: list[int],
) -> dict[str, Any]:
    """Send an order through the web API."""
    payload = {
        "shop_id": shop_id,
        "customer_name": f"Customer {order_num}",
        "contact": random_customer_phone(),
        "items": [
            {"item_id": item_id, "quantity": random.randint(1, 3)}
            for item_id in random.sample(item_ids, min(len(item_ids), random.randint(1, 3)))
        ],
        "delivery_fee": "25.00",
        "address": {"label": "Home", "text": f"{order_num} MG Road", "pincode": SHOP_PINCODE},
    }
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_number": data["order_number"],
                "source": data["number_source"],
                "time": elapsed,
                "mode": "web"
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
            "mode": "web"
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
            "mode": "web"
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def find_demo_shop(client: httpx.AsyncClient, shop_id: int) -> Optional[list[int]]:
    response = await client.get(f"{API_BASE_URL}/api/shops/{shop_id}/menu")
    if response.status_code != 200:
        print(f"❌ Shop {shop_id} not found. Run scripts/seed_demo.py first.")
        return None
    return [item["id"] for item in response.json()["items"]]


async def run_simulation(
    mode: str = "both",
    num_orders: int = TOTAL_ORDERS,
    shop_id: int = 1,
) -> dict[str, Any]:
    """
    Run the simulation.

    Args:
        mode: "chat", "web", or "both"
        num_orders: Number of orders to fire concurrently
    """
    print("=" * 70)
    print("🔥 CONCURRENCY SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🔧 Mode: {mode}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        item_ids = await find_demo_shop(client, shop_id)
        if not item_ids:
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        tasks = []
        for i in range(num_orders):
            if mode == "chat" or (mode == "both" and i % 2):
                tasks.append(send_chat_order(client, i + 1))
            else:
                tasks.append(send_web_order(client, i + 1, shop_id, item_ids))
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"\n📈 Average Response: {avg_time}s")

    # Web responses carry the numbering space; chat replies only the number
    numbers = Counter(r["order_number"] for r in successful if r.get("source", "global") == "global")
    duplicates = {n: c for n, c in numbers.items() if c > 1}
    shop_local = [r for r in successful if r.get("source") == "shop"]

    print("\n" + "=" * 70)
    print("🔍 NUMBERING CHECK")
    print("=" * 70)
    if duplicates:
        print(f"❌ Duplicate order numbers: {duplicates}")
    else:
        print(f"✅ {len(numbers)} distinct order numbers, no duplicates")
    if shop_local:
        print(f"⚠️ {len(shop_local)} orders fell back to shop-local numbering")

    if failed:
        print(f"\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order {f['order_num']} [{f['mode']}]: {f.get('error', 'Unknown error')}")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "duplicates": duplicates,
        "total_time": total_time,
        "results": results
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrency Simulation Script")
    parser.add_argument("--chat", action="store_true", help="Chat orders only")
    parser.add_argument("--web", action="store_true", help="Web orders only")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--shop-id", type=int, default=1, help="Demo shop id")
    args = parser.parse_args()

    if args.chat:
        mode = "chat"
    elif args.web:
        mode = "web"
    else:
        mode = "both"

    summary = asyncio.run(run_simulation(mode=mode, num_orders=args.orders, shop_id=args.shop_id))
    sys.exit(1 if summary.get("duplicates") or summary["failed"] else 0)
