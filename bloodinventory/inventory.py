"""
Blood Inventory Ledger
======================
Moves units between the total, available and reserved pools of one blood type.

    add_units         total += n, available += n
    remove_units      available -= n                 (direct use, no reservation)
    reserve_units     available -= n, reserved += n  (approved request)
    fulfill_reserved  reserved -= n, total -= n      (transfusion done)

Every mutation reads the stock row, checks the precondition, then writes the
changed pools and a new timestamp in a single update. The update only applies
if the row still holds the pools that were read; otherwise the operation is
retried from a fresh read.
"""

import sys
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .config import BLOOD_TYPES, LOW_STOCK_ALERT_UNITS, MAX_WRITE_ATTEMPTS, STOCK_THRESHOLD_UNITS
from .errors import InsufficientStock, InvalidInput, NotFound, StaleWriteError
from .models import Availability, BloodStock


def stock_level(units: int, threshold: int = STOCK_THRESHOLD_UNITS) -> str:
    if units < LOW_STOCK_ALERT_UNITS:
        return 'Critical'
    if units < threshold:
        return 'Low'
    return 'Good'


def stock_level_class(units: int, threshold: int = STOCK_THRESHOLD_UNITS) -> str:
    return {'Critical': 'danger', 'Low': 'warning', 'Good': 'success'}[stock_level(units, threshold)]


def validate_blood_type(blood_type: str) -> str:
    if blood_type not in BLOOD_TYPES:
        raise InvalidInput(f"Unknown blood type: {blood_type!r} (expected one of {', '.join(BLOOD_TYPES)})")
    return blood_type


def validate_units(units, allow_zero: bool = False) -> int:
    if isinstance(units, bool) or not isinstance(units, int):
        raise InvalidInput(f"Unit count must be an integer, got {units!r}")
    if units < 0 or (units == 0 and not allow_zero):
        raise InvalidInput(f"Unit count must be positive, got {units}")
    return units


class InventoryLedger:
    """Unit accounting for the per blood type stock rows."""

    def __init__(self, stocks, max_attempts: int = MAX_WRITE_ATTEMPTS,
                 clock: Optional[Callable[[], datetime]] = None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.stocks = stocks
        self.max_attempts = max_attempts
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _apply(self, operation: str, blood_type: str, units: int,
               check: Callable[[BloodStock], None],
               transition: Callable[[BloodStock], BloodStock]) -> BloodStock:
        validate_blood_type(blood_type)
        validate_units(units)

        for attempt in range(1, self.max_attempts + 1):
            current = self.stocks.get_stock(blood_type)
            check(current)

            updated = transition(current)
            fields = {
                column: value
                for column, value in updated.pools().items()
                if current.pools()[column] != value or column in current.null_pools
            }
            fields['last_updated'] = self.clock().isoformat()

            try:
                return self.stocks.update_stock(blood_type, fields, expected=current)
            except NotFound:
                print(
                    f"WARNING: {operation} {blood_type} x{units}: stock changed during update "
                    f"(attempt {attempt}/{self.max_attempts})",
                    file=sys.stderr,
                )

        raise StaleWriteError(
            f"Could not {operation} {units} unit(s) of {blood_type}: "
            f"stock kept changing after {self.max_attempts} attempts"
        )

    @staticmethod
    def _require(pool: str, units: int) -> Callable[[BloodStock], None]:
        def check(stock: BloodStock):
            current = getattr(stock, f"{pool}_units")
            if current < units:
                print(
                    f"WARNING: Rejected {units} unit(s) of {stock.blood_type}: "
                    f"only {current} {pool}",
                    file=sys.stderr,
                )
                raise InsufficientStock(stock.blood_type, units, current, pool=pool)
        return check

    def add_units(self, blood_type: str, units: int) -> BloodStock:
        """Add units after a donation is approved."""
        return self._apply('add', blood_type, units,
                           lambda stock: None,
                           lambda stock: stock.added(units))

    def remove_units(self, blood_type: str, units: int) -> BloodStock:
        """Take units straight from available stock. Total is left as is."""
        return self._apply('remove', blood_type, units,
                           self._require('available', units),
                           lambda stock: stock.removed(units))

    def reserve_units(self, blood_type: str, units: int) -> BloodStock:
        """Hold units for an approved transfusion request."""
        return self._apply('reserve', blood_type, units,
                           self._require('available', units),
                           lambda stock: stock.reserved(units))

    def fulfill_reserved(self, blood_type: str, units: int) -> BloodStock:
        """Consume reserved units once the transfusion has happened."""
        return self._apply('fulfill', blood_type, units,
                           self._require('reserved', units),
                           lambda stock: stock.fulfilled(units))

    def check_availability(self, blood_type: str, units: int) -> Availability:
        validate_blood_type(blood_type)
        validate_units(units, allow_zero=True)

        stock = self.stocks.get_stock(blood_type)
        return Availability(
            available=stock.available_units >= units,
            current_units=stock.available_units,
            units_needed=units,
            shortage=max(0, units - stock.available_units),
        )

    def summary(self, threshold: int = STOCK_THRESHOLD_UNITS) -> List[Dict]:
        """One row per blood type; types without a stock row show as zero."""
        by_type = {stock.blood_type: stock for stock in self.stocks.list()}

        rows = []
        for blood_type in BLOOD_TYPES:
            stock = by_type.get(blood_type)
            if stock is None:
                print(f"WARNING: No stock row for {blood_type}", file=sys.stderr)
                stock = BloodStock.empty(blood_type)
            row = stock.to_dict()
            row['stock_level'] = stock_level(stock.available_units, threshold)
            row['stock_level_class'] = stock_level_class(stock.available_units, threshold)
            row['unaccounted_units'] = stock.unaccounted_units
            row['consistent'] = stock.is_consistent
            rows.append(row)
        return rows

    def low_stock_alerts(self, threshold: int = LOW_STOCK_ALERT_UNITS) -> List[BloodStock]:
        return [stock for stock in self.stocks.list() if stock.available_units < threshold]
