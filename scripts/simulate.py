"""
Multi-Waiter Simulation Script

Several waiters build orders for several tables at once, send them to the
kitchen, and reconcile. Submissions fail at the kitchen's configured rate;
failed batches stay pending and are retried by the waiter, as the UI would.

At the end every table's placed items in each waiter's ledger are compared
with what the kitchen holds.

Run from project root: python scripts/simulate.py
"""

import argparse
import asyncio
import os
import random
import sys
import time
from datetime import datetime
from typing import Any

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from waiter_orders.core.config import setup_logging
from waiter_orders.core.exceptions import SubmissionFailure
from waiter_orders.manager import LedgerManager
from waiter_orders.schemas import IdentityState, MenuProduct
from waiter_orders.services.kitchen import MockKitchenService
from waiter_orders.services.storage import MemoryStorageService

MENU = [
    MenuProduct(id=1, name="Soup of the Day", unit_price=4.5),
    MenuProduct(id=2, name="Caesar Salad", unit_price=8.99),
    MenuProduct(id=3, name="Pasta Carbonara", unit_price=13.99),
    MenuProduct(id=4, name="Grilled Salmon", unit_price=18.5),
    MenuProduct(id=5, name="Tiramisu", unit_price=7.99),
    MenuProduct(id=6, name="Sparkling Water", unit_price=3.49),
]
REMARKS = ["", "", "", "less salt", "no onions", "extra spicy"]
MAX_ATTEMPTS = 5


async def run_waiter(
    waiter_num: int,
    kitchen: MockKitchenService,
    storage: MemoryStorageService,
    tables: list[int],
    rounds: int,
) -> dict[str, Any]:
    """One waiter taking ``rounds`` orders spread over their tables."""
    manager = LedgerManager(kitchen=kitchen, storage=storage)
    await manager.on_identity_changed(IdentityState(token=f"waiter-{waiter_num}-token"))

    sent = failed_attempts = 0
    start_time = time.time()

    for _ in range(rounds):
        table_id = random.choice(tables)
        await manager.set_active_table(table_id)
        for _ in range(random.randint(1, 4)):
            await manager.add_item(
                random.choice(MENU),
                quantity=random.randint(1, 3),
                remarks=random.choice(REMARKS),
            )

        for _ in range(MAX_ATTEMPTS):
            try:
                await manager.send_order_to_kitchen()
                sent += 1
                break
            except SubmissionFailure:
                failed_attempts += 1
                await asyncio.sleep(0.05)

    # Final reconciliation of every table this waiter touched
    for table_id in tables:
        for _ in range(MAX_ATTEMPTS):
            if await manager.refresh_placed_items(table_id):
                break

    return {
        "waiter": waiter_num,
        "sent": sent,
        "failed_attempts": failed_attempts,
        "unsent_tables": [t for t in tables if manager.has_unsent_items(t)],
        "time": round(time.time() - start_time, 3),
        "manager": manager,
        "tables": tables,
    }


async def run_simulation(waiters: int, rounds: int, failure_rate: float) -> dict[str, Any]:
    """Run all waiters concurrently against one shared mock kitchen."""
    print("=" * 70)
    print("🍽️  MULTI-WAITER LEDGER SIMULATION")
    print("=" * 70)
    print(f"👥 Waiters: {waiters}")
    print(f"🔁 Rounds per waiter: {rounds}")
    print(f"💥 Kitchen failure rate: {failure_rate:.0%}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    kitchen = MockKitchenService(
        failure_rate=failure_rate, min_latency=0.01, max_latency=0.05, menu=MENU
    )
    storage = MemoryStorageService()

    # Each waiter owns three tables
    assignments = [[w * 3 + n for n in (1, 2, 3)] for w in range(waiters)]

    start_time = time.time()
    results = await asyncio.gather(*[
        run_waiter(w + 1, kitchen, storage, assignments[w], rounds)
        for w in range(waiters)
    ])
    total_time = round(time.time() - start_time, 2)

    mismatches = []
    for result in results:
        manager = result["manager"]
        for table_id in result["tables"]:
            fetched = await kitchen.fetch_placed_items(str(table_id))
            if fetched.success and list(manager.ledger.order_for(table_id).placed_items) != fetched.items:
                mismatches.append(table_id)

    total_sent = sum(r["sent"] for r in results)
    total_failed = sum(r["failed_attempts"] for r in results)

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Batches accepted: {total_sent}/{waiters * rounds}")
    print(f"🔁 Failed attempts (retried): {total_failed}")
    print(f"⏱️  Total Time: {total_time}s")
    for r in results:
        unsent = r["unsent_tables"] or "none"
        print(f"   Waiter {r['waiter']}: {r['sent']} sent, unsent tables: {unsent}, {r['time']}s")

    if mismatches:
        print(f"\n⚠️  Ledger and kitchen disagree for tables: {mismatches}")
    else:
        print("\n✅ Every reconciled table matches the kitchen")
    print("=" * 70)

    return {
        "sent": total_sent,
        "failed_attempts": total_failed,
        "mismatches": mismatches,
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Multi-waiter ledger simulation")
    parser.add_argument("--waiters", type=int, default=4, help="Number of waiters")
    parser.add_argument("--rounds", type=int, default=10, help="Orders per waiter")
    parser.add_argument("--failure-rate", type=float, default=0.2, help="Kitchen failure rate")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(run_simulation(args.waiters, args.rounds, args.failure_rate))
