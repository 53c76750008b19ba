"""
Payment Report Verification Script

Checks the Excel payment report of one organization after an export:
required columns, duplicate order numbers and revenue totals.

Run from project root: python scripts/verify.py <organization_id> [--clear]
"""

import argparse
import os
import sys
from datetime import datetime

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from tableserve.services.report_exporter import ReportExporter


def verify_report(organization_id: str) -> bool:
    """Print an integrity report; False when the file is missing or broken."""
    report = ReportExporter.report_path(organization_id)

    print("=" * 60)
    print("🔍 PAYMENT REPORT VERIFICATION")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {report}")
    print("=" * 60)

    if not report.exists():
        print("\n❌ Report not found!")
        print("   Run the simulation with --export first: python scripts/simulate.py --export")
        return False

    df = pd.DataFrame(ReportExporter.read_payments(organization_id))
    print("\n✅ File loaded successfully!")

    print("\n📊 STATISTICS:")
    print(f"   Paid Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    ok = True
    missing = [col for col in ReportExporter.COLUMNS if col not in df.columns]
    if missing:
        ok = False
        print(f"\n⚠️ Missing Columns: {missing}")
    else:
        print("\n✅ All required columns present")

    if df.empty:
        print("\n⚠️ Report has no rows")
        return ok

    duplicates = df["order_number"].duplicated().sum()
    if duplicates:
        ok = False
        print(f"\n⚠️ {duplicates} duplicate order numbers found!")
    else:
        print("✅ No duplicate order numbers")

    underpaid = df[df["paid_amount"] < df["total_amount"]]
    if len(underpaid):
        print(f"⚠️ {len(underpaid)} orders paid below their total")

    print("\n💰 REVENUE:")
    print(f"   Collected: ${df['paid_amount'].sum():.2f}")
    print(f"   Average Order: ${df['total_amount'].mean():.2f}")
    print(f"   Tax: ${df['tax'].sum():.2f}")
    print("\n💳 BY METHOD:")
    for method, amount in df.groupby("payment_method")["paid_amount"].sum().items():
        print(f"   {method}: ${amount:.2f}")

    print("\n📋 LATEST ORDERS:")
    print("-" * 60)
    cols = ["order_number", "table", "customer_name", "total_amount", "payment_method"]
    print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "❌ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)
    return ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Verify an organization's payment report")
    parser.add_argument("organization_id")
    parser.add_argument("--clear", action="store_true", help="Delete the report after verifying")
    args = parser.parse_args()

    passed = verify_report(args.organization_id)
    if args.clear and ReportExporter.clear(args.organization_id):
        print("🧹 Report cleared")
    sys.exit(0 if passed else 1)
