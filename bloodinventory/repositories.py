"""
Typed repositories, one per table.

Each repository knows its table, key column, filters and ordering, so callers
never pass table names around.
"""

from typing import Any, Dict, List, Optional

from .database import contains_text, eq, gte, ilike
from .errors import NotFound
from .models import BloodStock, DonorRecord, split_blood_type


class Repository:
    table = ''
    key_column = ''
    order = None
    select = '*'

    def __init__(self, client):
        self.client = client

    def get(self, key: Any) -> Dict:
        return self.client.read_one(self.table, self.key_column, key)

    def _list(self, filters: Dict[str, str], table: Optional[str] = None) -> List[Dict]:
        return self.client.read_filtered(
            table or self.table, filters, order=self.order, select=self.select
        )

    def create(self, data: Dict) -> Dict:
        return self.client.insert_record(self.table, data)

    def update(self, key: Any, fields: Dict) -> Dict:
        return self.client.write_fields(self.table, self.key_column, key, fields)

    def delete(self, key: Any) -> bool:
        return self.client.delete_record(self.table, self.key_column, key)


def _blood_type_filters(blood_type: Optional[str]) -> Dict[str, str]:
    if not blood_type:
        return {}
    abo_group, rh_factor = split_blood_type(blood_type)
    return {'abo_group': eq(abo_group), 'rh_factor': eq(rh_factor)}


class DonorRepository(Repository):
    table = 'donors'
    view = 'donors_with_eligibility'
    key_column = 'donor_id'
    order = 'created_at.desc'

    def get_record(self, donor_id: Any) -> DonorRecord:
        return DonorRecord.from_row(self.get(donor_id))

    def list(self, blood_type: Optional[str] = None, city: Optional[str] = None,
             is_eligible: Optional[bool] = None, search: Optional[str] = None) -> List[Dict]:
        filters = _blood_type_filters(blood_type)
        if city:
            filters['city'] = eq(city)
        if is_eligible is not None:
            filters['calculated_eligibility'] = eq('Eligible' if is_eligible else 'Deferred')
        if search:
            filters['or'] = contains_text(['first_name', 'last_name', 'phone_number'], search)

        return [self._reshape(row) for row in self._list(filters, table=self.view)]

    @staticmethod
    def _reshape(row: Dict) -> Dict:
        status = row.get('calculated_eligibility')
        return {
            **row,
            'full_name': f"{row.get('first_name', '')} {row.get('last_name', '')}".strip(),
            'blood_type': f"{row.get('abo_group', '')}{row.get('rh_factor', '')}",
            'phone': row.get('phone_number'),
            'is_eligible': status == 'Eligible',
            'eligibility_status': status,
            'last_donation': row.get('last_donation_date'),
        }


class StockRepository(Repository):
    table = 'blood_inventory'
    key_column = 'blood_type'
    order = 'blood_type.asc'

    def get_stock(self, blood_type: str) -> BloodStock:
        try:
            row = self.get(blood_type)
        except NotFound as e:
            raise NotFound(f"Blood type {blood_type} not found in inventory") from e
        return BloodStock.from_row(row)

    def list(self) -> List[BloodStock]:
        return [BloodStock.from_row(row) for row in self._list({})]

    def update_stock(self, blood_type: str, fields: Dict, expected: BloodStock) -> BloodStock:
        """Write fields only if the stored pools still equal `expected`."""
        row = self.client.write_fields(
            self.table, self.key_column, blood_type, fields, match=expected.stored_pools()
        )
        return BloodStock.from_row(row)


class HospitalRepository(Repository):
    table = 'hospitals'
    key_column = 'hospital_id'
    order = 'hospital_name.asc'

    def list(self, city: Optional[str] = None, is_active: Optional[bool] = None,
             search: Optional[str] = None) -> List[Dict]:
        filters = {}
        if city:
            filters['city'] = eq(city)
        if is_active is not None:
            filters['is_active'] = eq(is_active)
        if search:
            filters['or'] = contains_text(['hospital_name', 'phone'], search)
        return self._list(filters)


class PatientRepository(Repository):
    table = 'patients'
    key_column = 'patient_id'
    order = 'created_at.desc'
    select = '*,hospitals(name,phone)'

    def list(self, hospital_id: Any = None, blood_type: Optional[str] = None,
             search: Optional[str] = None) -> List[Dict]:
        filters = {}
        if hospital_id is not None:
            filters['hospital_id'] = eq(hospital_id)
        filters.update(_blood_type_filters(blood_type))
        if search:
            filters['or'] = contains_text(['first_name', 'last_name', 'case_no'], search)
        return self._list(filters)


class DonationRepository(Repository):
    table = 'donations'
    key_column = 'donation_id'
    order = 'donation_date.desc'
    select = '*,donors(first_name,last_name,phone_number,abo_group,rh_factor),campaigns(name)'

    def list(self, blood_type: Optional[str] = None, status: Optional[str] = None,
             donor_id: Any = None) -> List[Dict]:
        filters = {}
        if blood_type:
            split_blood_type(blood_type)
            filters['blood_type'] = eq(blood_type)
        if status:
            filters['status'] = eq(status)
        if donor_id is not None:
            filters['donor_id'] = eq(donor_id)
        return self._list(filters)


class CampaignRepository(Repository):
    table = 'campaigns'
    key_column = 'campaign_id'
    order = 'start_date.desc'
    select = '*,hospitals(name,phone)'

    def list(self, hospital_id: Any = None, search: Optional[str] = None) -> List[Dict]:
        filters = {}
        if hospital_id is not None:
            filters['hospital_id'] = eq(hospital_id)
        if search:
            filters['name'] = ilike(f"*{search}*")
        return self._list(filters)

    def count_upcoming(self, today) -> int:
        return self.client.count_records(self.table, {'start_date': gte(today)})
