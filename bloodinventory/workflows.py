"""
Approval workflows called by the dashboard pages.

Each workflow returns a result dict ({"success": bool, "message": str, ...})
so the caller only has to render it.
"""

import sys
from typing import Dict

from .eligibility import next_eligible_date
from .errors import InventoryError, user_message


def _failure(error: Exception, **extra) -> Dict:
    print(f"ERROR: {type(error).__name__}: {error}", file=sys.stderr)
    return {'success': False, 'message': user_message(error), 'error': type(error).__name__, **extra}


def approve_donation(evaluator, ledger, donor_id, units: int = 1, now=None) -> Dict:
    """
    Approve a donation: the donor must currently be eligible. The donor's blood
    type gains the donated units and the donor's history is stamped.
    """
    try:
        donor = evaluator.refresh_donor_eligibility(donor_id, now)
        if not donor.is_eligible:
            return {
                'success': False,
                'message': f"Donor {donor_id} is not eligible to donate",
                'error': 'NotEligible',
                'next_eligible_date': (
                    next_eligible_date(donor.last_donation_date).isoformat()
                    if donor.last_donation_date else None
                ),
            }
        stock = ledger.add_units(donor.blood_type, units)
        donor = evaluator.record_donation(donor_id, now)
    except InventoryError as e:
        return _failure(e)

    return {
        'success': True,
        'message': f"Added {units} unit(s) of {donor.blood_type} to inventory",
        'stock': stock.to_dict(),
        'total_donations': donor.total_donations,
    }


def approve_transfusion_request(ledger, blood_type: str, units: int) -> Dict:
    """Reserve units for an approved request, or report the shortage."""
    try:
        availability = ledger.check_availability(blood_type, units)
        if not availability.available:
            return {
                'success': False,
                'message': (
                    f"Insufficient {blood_type} stock: {availability.current_units} available, "
                    f"{availability.shortage} short"
                ),
                'error': 'InsufficientStock',
                'availability': availability.to_dict(),
            }
        stock = ledger.reserve_units(blood_type, units)
    except InventoryError as e:
        return _failure(e)

    return {
        'success': True,
        'message': f"Reserved {units} unit(s) of {blood_type}",
        'stock': stock.to_dict(),
    }


def complete_transfusion(ledger, blood_type: str, units: int) -> Dict:
    try:
        stock = ledger.fulfill_reserved(blood_type, units)
    except InventoryError as e:
        return _failure(e)
    return {
        'success': True,
        'message': f"Transfused {units} reserved unit(s) of {blood_type}",
        'stock': stock.to_dict(),
    }


def issue_emergency_units(ledger, blood_type: str, units: int) -> Dict:
    """Hand out units directly without a reservation."""
    try:
        stock = ledger.remove_units(blood_type, units)
    except InventoryError as e:
        return _failure(e)
    return {
        'success': True,
        'message': f"Issued {units} unit(s) of {blood_type}",
        'stock': stock.to_dict(),
    }
