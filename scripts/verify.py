"""
Ledger Verification Script

Verifies data integrity of the exported order ledger.
Run from project root: python scripts/verify.py

Author: FoodHub Team
Version: 1.0.0
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from foodhub.core.config import get_settings
from foodhub.services.ledger import OrderLedger

settings = get_settings()
LEDGER_FILE = os.path.join(settings.data_directory, settings.ledger_filename)


def verify_ledger() -> bool:
    """Verify ledger integrity after a simulation run."""

    print("=" * 60)
    print("LEDGER VERIFICATION REPORT")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"File: {LEDGER_FILE}")
    print("=" * 60)

    if not os.path.exists(LEDGER_FILE):
        print("\nLedger file not found!")
        print("   Place some orders first: python scripts/simulate.py")
        return False

    try:
        df = pd.read_excel(LEDGER_FILE, engine="openpyxl")
        print("\nFile loaded successfully!")
    except Exception as e:
        print(f"\nCould not read ledger file: {e}")
        return False

    print("\nSTATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    missing = [col for col in OrderLedger.ORDER_COLUMNS if col not in df.columns]
    if missing:
        print(f"\nMissing Columns: {missing}")
    else:
        print("\nAll ledger columns present")

    ok = not missing
    if "order_id" in df.columns:
        duplicates = int(df["order_id"].duplicated().sum())
        if duplicates > 0:
            print(f"\n{duplicates} duplicate order IDs found!")
            ok = False
        else:
            print("No duplicate order IDs")

    if "total_amount" in df.columns and len(df) > 0:
        print("\nREVENUE:")
        print(f"   Total: ${df['total_amount'].sum():.2f}")
        print(f"   Average: ${df['total_amount'].mean():.2f}")

    if "restaurant_title" in df.columns and len(df) > 0:
        print("\nORDERS PER RESTAURANT:")
        print(df.groupby("restaurant_title")["order_id"].count().to_string())

    print("\nRECENT ORDERS:")
    print("-" * 60)
    if len(df) > 0:
        cols = [c for c in ["order_id", "customer_name", "total_amount", "order_status"] if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("VERIFICATION COMPLETE" if ok else "VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_ledger() else 1)
