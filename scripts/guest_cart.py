#!/usr/bin/env python3
"""
Guest Cart Inspection Script

Shows or clears the guest cart snapshot stored for a browsing device.
Useful when a customer reports items "stuck" after a failed merge.

Usage:
    python scripts/guest_cart.py show --device "DEVICE_ID"
    python scripts/guest_cart.py clear --device "DEVICE_ID"
"""
import argparse
import asyncio
import os
import sys

# Add parent to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storefront.cart.models import Cart  # noqa: E402
from storefront.cart.storage import LocalCartStore  # noqa: E402
from storefront.services.money import round_money  # noqa: E402


def describe(cart: Cart) -> str:
    """Human-readable listing of a guest cart."""
    if cart.is_empty:
        return "Guest cart is empty."
    rows = [
        f"  {line.product_ref:<24} x{line.quantity:<4} @ {line.unit_price}  = {line.line_total}"
        for line in cart.lines
    ]
    rows.append(f"Items: {cart.item_count}  Subtotal: {round_money(cart.subtotal)}")
    return "\n".join(rows)


async def main(command: str, device_id: str) -> int:
    store = LocalCartStore(device_id)
    if command == "show":
        print(describe(await store.load()))
    elif command == "clear":
        await store.clear()
        print(f"Guest cart for {device_id} cleared.")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Inspect the guest cart of a device")
    parser.add_argument("command", choices=["show", "clear"])
    parser.add_argument("--device", required=True, help="Browsing device id")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.command, args.device)))
