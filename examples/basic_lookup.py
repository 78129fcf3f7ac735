"""Basic hold-time lookup example.

This script demonstrates how to use hodlcheck to check how long a wallet
has held BTC without selling.
"""

import json
import subprocess
import sys


def main():
    """Look up one address and print a short summary."""
    address = sys.argv[1] if len(sys.argv) > 1 else "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
    print(f"Looking up {address}...")

    result = subprocess.run(
        ["hodlcheck", "lookup", address, "--format", "json"],
        capture_output=True,
        text=True
    )

    if result.returncode != 0:
        error = json.loads(result.stderr.strip().splitlines()[-1])
        print(f"Error ({error['status']}): {error['message']}")
        return

    data = json.loads(result.stdout)

    first = data["first_receive"][:10]
    if data["first_receive_approximate"]:
        first = f"on or before {first}"

    print(f"\nHolding since {first} ({data['hold_days']} days)")
    print(f"Balance: {data['current_balance']:.8f} BTC (${data['current_balance'] * data['btc_price']:,.0f})")
    if data["ever_sold"]:
        print(f"Has sent {data['total_sent']:.8f} BTC")
        if data["last_outgoing"]:
            print(f"Last outgoing: {data['last_outgoing'][:10]}")
    else:
        print("💎 Never sold")


if __name__ == "__main__":
    main()
