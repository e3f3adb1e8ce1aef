"""
Record types shared by the ledger, the eligibility evaluator and the repositories
"""

from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from typing import Dict, FrozenSet, Optional, Union

from .config import BLOOD_TYPES
from .errors import InvalidInput

DateLike = Union[date, datetime, str, None]

POOL_COLUMNS = ('total_units', 'available_units', 'reserved_units')


def split_blood_type(blood_type: str):
    """'AB+' -> ('AB', '+')"""
    if blood_type not in BLOOD_TYPES:
        raise InvalidInput(f"Unknown blood type: {blood_type!r}")
    return blood_type[:-1], blood_type[-1]


def _to_int(value) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"Expected an integer unit count, got {value!r}") from e


@dataclass(frozen=True)
class DonorRecord:
    donor_id: int
    date_of_birth: DateLike
    weight_kg: Optional[float]
    abo_group: str
    rh_factor: str
    last_donation_date: DateLike = None
    is_eligible: bool = False
    total_donations: int = 0

    @property
    def blood_type(self) -> str:
        return f"{self.abo_group}{self.rh_factor}"

    @classmethod
    def from_row(cls, row: Dict) -> 'DonorRecord':
        return cls(
            donor_id=row.get('donor_id'),
            date_of_birth=row.get('date_of_birth'),
            weight_kg=row.get('weight_kg'),
            abo_group=row.get('abo_group') or '',
            rh_factor=row.get('rh_factor') or '',
            last_donation_date=row.get('last_donation_date'),
            is_eligible=bool(row.get('is_eligible')),
            total_donations=row.get('total_donations') or 0,
        )


@dataclass(frozen=True)
class BloodStock:
    """
    Per blood type stock.

    Reserve and fulfil keep available + reserved equal to total; a direct
    removal lowers available only and leaves the difference in unaccounted_units.
    NULL pool columns read as 0 and are remembered in null_pools.
    """

    blood_type: str
    total_units: int
    available_units: int
    reserved_units: int
    last_updated: Optional[str] = None
    null_pools: FrozenSet[str] = field(default=frozenset(), compare=False, repr=False)

    @classmethod
    def from_row(cls, row: Dict) -> 'BloodStock':
        return cls(
            blood_type=row.get('blood_type'),
            total_units=_to_int(row.get('total_units')),
            available_units=_to_int(row.get('available_units')),
            reserved_units=_to_int(row.get('reserved_units')),
            last_updated=row.get('last_updated'),
            null_pools=frozenset(column for column in POOL_COLUMNS if row.get(column) is None),
        )

    @classmethod
    def empty(cls, blood_type: str) -> 'BloodStock':
        return cls(blood_type, 0, 0, 0)

    def to_dict(self) -> Dict:
        data = asdict(self)
        del data['null_pools']
        return data

    def pools(self) -> Dict[str, int]:
        return {
            'total_units': self.total_units,
            'available_units': self.available_units,
            'reserved_units': self.reserved_units,
        }

    def stored_pools(self) -> Dict[str, Optional[int]]:
        """Pools as the row holds them, None where the column is NULL"""
        return {
            column: None if column in self.null_pools else value
            for column, value in self.pools().items()
        }

    @property
    def unaccounted_units(self) -> int:
        """Units in total that are neither available nor reserved (direct removals)"""
        return self.total_units - self.available_units - self.reserved_units

    @property
    def is_consistent(self) -> bool:
        return (self.available_units >= 0 and self.reserved_units >= 0
                and self.unaccounted_units == 0)

    # Transitions. Preconditions are checked by the ledger.

    def added(self, units: int) -> 'BloodStock':
        return replace(self, total_units=self.total_units + units,
                       available_units=self.available_units + units)

    def removed(self, units: int) -> 'BloodStock':
        return replace(self, available_units=self.available_units - units)

    def reserved(self, units: int) -> 'BloodStock':
        return replace(self, available_units=self.available_units - units,
                       reserved_units=self.reserved_units + units)

    def fulfilled(self, units: int) -> 'BloodStock':
        return replace(self, reserved_units=self.reserved_units - units,
                       total_units=self.total_units - units)


@dataclass(frozen=True)
class Availability:
    available: bool
    current_units: int
    units_needed: int
    shortage: int

    def to_dict(self) -> Dict:
        return asdict(self)
