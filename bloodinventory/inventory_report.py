"""
Blood Inventory Report
======================
Command line entry point for the inventory ledger and donor eligibility.

    blood-inventory summary [--json]
    blood-inventory check O+ 4
    blood-inventory reserve O+ 4
    blood-inventory donate 17 --units 1
    blood-inventory chart --html inventory.html
"""

import argparse
import json
import sys
from typing import Dict, List, Optional

from .charts import generate_chart_html
from .config import BLOOD_TYPES
from .database import DatabaseConnection
from .eligibility import EligibilityEvaluator, days_since_last_donation, next_eligible_date
from .errors import InventoryError, user_message
from .inventory import InventoryLedger
from .repositories import DonorRepository, StockRepository
from .workflows import (
    approve_donation,
    approve_transfusion_request,
    complete_transfusion,
    issue_emergency_units,
)


def print_summary(summary: List[Dict]):
    """Print a formatted summary to console."""
    print("BLOOD INVENTORY")
    print("---------------")
    print(f"{'Type':<5}{'Total':>7}{'Avail':>7}{'Resv':>7}  Level")
    for row in summary:
        print(
            f"{row['blood_type']:<5}{row['total_units']:>7}{row['available_units']:>7}"
            f"{row['reserved_units']:>7}  {row['stock_level']}"
        )
    print(f"\nTotal Available: {sum(row['available_units'] for row in summary)}")


def _emit(result: Dict, as_json: bool) -> int:
    if as_json:
        print(json.dumps(result, indent=2, default=str))
    else:
        print(result.get('message', ''))
    return 0 if result.get('success') else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="blood-inventory", description="Blood Inventory Report")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("summary", help="Stock per blood type")

    for name, help_text in [
        ("check", "Check whether enough units are available"),
        ("add", "Add units to stock"),
        ("remove", "Issue units directly from available stock"),
        ("reserve", "Reserve units for an approved request"),
        ("fulfill", "Consume reserved units after transfusion"),
    ]:
        command = commands.add_parser(name, help=help_text)
        command.add_argument("blood_type", choices=BLOOD_TYPES)
        command.add_argument("units", type=int)

    eligibility = commands.add_parser("eligibility", help="Re-evaluate a donor's eligibility")
    eligibility.add_argument("donor_id")

    donate = commands.add_parser("donate", help="Approve a donation")
    donate.add_argument("donor_id")
    donate.add_argument("--units", type=int, default=1)

    chart = commands.add_parser("chart", help="Save the stock chart as HTML")
    chart.add_argument("--html", required=True, help="Output path")

    return parser


def run(args: argparse.Namespace, client) -> int:
    ledger = InventoryLedger(StockRepository(client))
    evaluator = EligibilityEvaluator(DonorRepository(client))

    if args.command == "summary":
        try:
            summary = ledger.summary()
        except InventoryError as e:
            return _emit({"success": False, "message": user_message(e)}, args.json)
        if args.json:
            print(json.dumps({"success": True, "data": summary}, indent=2))
        else:
            print_summary(summary)
        return 0

    if args.command == "check":
        try:
            availability = ledger.check_availability(args.blood_type, args.units)
        except InventoryError as e:
            return _emit({"success": False, "message": user_message(e)}, args.json)
        result = {"success": availability.available, **availability.to_dict()}
        result["message"] = (
            f"{args.blood_type}: {availability.current_units} available, "
            f"{availability.shortage} short" if availability.shortage
            else f"{args.blood_type}: {availability.current_units} available"
        )
        return _emit(result, args.json)

    if args.command == "add":
        try:
            stock = ledger.add_units(args.blood_type, args.units)
        except InventoryError as e:
            return _emit({"success": False, "message": user_message(e)}, args.json)
        return _emit({
            "success": True,
            "message": f"Added {args.units} unit(s) of {args.blood_type}",
            "stock": stock.to_dict(),
        }, args.json)

    if args.command == "remove":
        return _emit(issue_emergency_units(ledger, args.blood_type, args.units), args.json)

    if args.command == "reserve":
        return _emit(approve_transfusion_request(ledger, args.blood_type, args.units), args.json)

    if args.command == "fulfill":
        return _emit(complete_transfusion(ledger, args.blood_type, args.units), args.json)

    if args.command == "eligibility":
        try:
            donor = evaluator.refresh_donor_eligibility(args.donor_id)
        except InventoryError as e:
            return _emit({"success": False, "message": user_message(e)}, args.json)
        next_date = next_eligible_date(donor.last_donation_date)
        return _emit({
            "success": True,
            "message": f"Donor {args.donor_id} is {'eligible' if donor.is_eligible else 'not eligible'}",
            "donor_id": donor.donor_id,
            "blood_type": donor.blood_type,
            "is_eligible": donor.is_eligible,
            "days_since_last_donation": days_since_last_donation(donor.last_donation_date),
            "next_eligible_date": next_date.isoformat() if next_date else None,
        }, args.json)

    if args.command == "donate":
        return _emit(approve_donation(evaluator, ledger, args.donor_id, args.units), args.json)

    if args.command == "chart":
        try:
            generate_chart_html(ledger, args.html)
        except InventoryError as e:
            return _emit({"success": False, "message": user_message(e)}, args.json)
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None, client=None) -> int:
    args = build_parser().parse_args(argv)

    if client is not None:
        return run(args, client)

    try:
        connection = DatabaseConnection.from_config()
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    with connection:
        return run(args, connection)


if __name__ == "__main__":
    sys.exit(main())
