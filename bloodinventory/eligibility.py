"""
Donor Eligibility
=================
Decides whether a donor may donate today.

Rules (all must hold):
- Age between 18 and 65 inclusive, counted in whole calendar years
- Weight of at least 50 kg
- At least 90 whole days since the last donation (no previous donation passes)
"""

import sys
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from .config import (
    DONATION_INTERVAL_DAYS,
    MAX_DONOR_AGE,
    MIN_DONOR_AGE,
    MIN_DONOR_WEIGHT_KG,
)
from .errors import InvalidInput
from .models import DateLike, DonorRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_date(value: DateLike) -> Optional[datetime]:
    """
    Parse a date/datetime/ISO string into a naive UTC datetime.
    Empty values give None; anything unparseable raises InvalidInput.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if 'Z' in text:
            text = text.replace('Z', '+00:00')
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise InvalidInput(f"Invalid date: {value!r}") from e
    else:
        raise InvalidInput(f"Invalid date: {value!r}")

    # Remove timezone info for consistent comparison
    if parsed.tzinfo:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _as_date(value: DateLike) -> date:
    if value is None:
        return _utcnow().date()
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = parse_date(value)
    return parsed.date() if parsed else _utcnow().date()


def calculate_age(date_of_birth: DateLike, today: DateLike = None) -> int:
    """Age in whole years; not having had this year's birthday yet counts one less."""
    birth = parse_date(date_of_birth)
    if birth is None:
        raise InvalidInput("Date of birth is required")
    today = _as_date(today)

    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def validate_age(date_of_birth: DateLike, min_age: int = MIN_DONOR_AGE,
                 max_age: int = MAX_DONOR_AGE, today: DateLike = None) -> bool:
    age = calculate_age(date_of_birth, today)
    return min_age <= age <= max_age


def validate_weight(weight, min_weight: float = MIN_DONOR_WEIGHT_KG) -> bool:
    if weight is None or weight == '':
        return False
    try:
        return float(weight) >= min_weight
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Invalid weight: {weight!r}") from e


def days_since_last_donation(last_donation_date: DateLike, now: DateLike = None) -> Optional[int]:
    """Whole days elapsed, truncated (23h59m is still 0 days)."""
    last = parse_date(last_donation_date)
    if last is None:
        return None
    now = parse_date(now) or _utcnow()
    return (now - last) // timedelta(days=1)


def check_donation_interval(last_donation_date: DateLike, now: DateLike = None,
                            interval_days: int = DONATION_INTERVAL_DAYS) -> bool:
    days = days_since_last_donation(last_donation_date, now)
    if days is None:
        return True
    return days >= interval_days


def next_eligible_date(last_donation_date: DateLike,
                       interval_days: int = DONATION_INTERVAL_DAYS) -> Optional[date]:
    last = parse_date(last_donation_date)
    if last is None:
        return None
    return (last + timedelta(days=interval_days)).date()


def evaluate_eligibility(date_of_birth: DateLike, weight_kg, last_donation_date: DateLike,
                         now: DateLike = None) -> bool:
    """Pure decision: age, weight and donation interval must all pass."""
    now = parse_date(now) or _utcnow()

    is_age_valid = validate_age(date_of_birth, today=now)
    is_weight_valid = validate_weight(weight_kg)
    is_interval_valid = check_donation_interval(last_donation_date, now)

    return is_age_valid and is_weight_valid and is_interval_valid


class EligibilityEvaluator:
    """Applies the eligibility rule to stored donors and persists the flag."""

    def __init__(self, donors):
        self.donors = donors

    def evaluate(self, donor: DonorRecord, now: DateLike = None) -> bool:
        return evaluate_eligibility(
            donor.date_of_birth, donor.weight_kg, donor.last_donation_date, now
        )

    def refresh_donor_eligibility(self, donor_id, now: DateLike = None) -> DonorRecord:
        """Recompute a donor's eligibility, writing the flag only when it changed."""
        donor = self.donors.get_record(donor_id)
        is_eligible = self.evaluate(donor, now)

        if donor.is_eligible == is_eligible:
            return donor

        row = self.donors.update(donor_id, {'is_eligible': is_eligible})
        print(f"DEBUG: Donor {donor_id} eligibility -> {is_eligible}", file=sys.stderr)
        return DonorRecord.from_row(row)

    def record_donation(self, donor_id, today: DateLike = None) -> DonorRecord:
        """Stamp a completed donation; the donor is deferred until the interval passes."""
        donor = self.donors.get_record(donor_id)
        row = self.donors.update(donor_id, {
            'last_donation_date': _as_date(today).isoformat(),
            'total_donations': (donor.total_donations or 0) + 1,
            'is_eligible': False,
        })
        return DonorRecord.from_row(row)
