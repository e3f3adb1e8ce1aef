"""Shared fixtures: an in-memory stand-in for DatabaseConnection."""

import copy
from datetime import datetime, timezone

import pytest

from bloodinventory.errors import NotFound, TransientIOError
from bloodinventory.inventory import InventoryLedger
from bloodinventory.repositories import DonorRepository, StockRepository

FIXED_NOW = datetime(2026, 10, 18, 12, 0, 0)


def _text(value):
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _matches(row, filters):
    for column, expression in (filters or {}).items():
        if column == 'or':
            continue
        op, _, value = expression.partition('.')
        stored = row.get(column)
        if op == 'eq' and _text(stored) != value:
            return False
        if op == 'gte' and (stored is None or str(stored) < value):
            return False
        if op == 'lt' and (stored is None or stored >= int(value)):
            return False
    return True


class FakeClient:
    """Same method surface as DatabaseConnection, backed by dicts."""

    def __init__(self, tables=None):
        self.tables = copy.deepcopy(tables or {})
        self.writes = []
        self.reads = []
        self.fail_writes = False
        self.before_write = None

    def _table(self, table):
        return self.tables.setdefault(table, [])

    def read_one(self, table, key_column, key, select='*'):
        self.reads.append((table, key))
        for row in self._table(table):
            if str(row.get(key_column)) == str(key):
                return dict(row)
        raise NotFound(f"{table} record {key_column}={key} not found")

    def read_filtered(self, table, filters=None, order=None, select='*', limit=None):
        self.reads.append((table, filters))
        rows = [dict(row) for row in self._table(table) if _matches(row, filters)]
        return rows[:limit] if limit is not None else rows

    def write_fields(self, table, key_column, key, updates, match=None):
        if self.before_write:
            hook, self.before_write = self.before_write, None
            hook(self)
        if self.fail_writes:
            raise TransientIOError("Supabase request failed with code 503: unavailable", status_code=503)
        self.writes.append((table, key, dict(updates), match))
        for row in self._table(table):
            if str(row.get(key_column)) != str(key):
                continue
            if any(row.get(column) != value for column, value in (match or {}).items()):
                break
            row.update(updates)
            return dict(row)
        raise NotFound(f"{table} record {key_column}={key} not found")

    def insert_record(self, table, data):
        self._table(table).append(dict(data))
        return dict(data)

    def delete_record(self, table, key_column, key):
        rows = self._table(table)
        self.tables[table] = [row for row in rows if str(row.get(key_column)) != str(key)]
        return True

    def count_records(self, table, filters=None):
        return len([row for row in self._table(table) if _matches(row, filters)])

    def stock(self, blood_type):
        row = self.read_one('blood_inventory', 'blood_type', blood_type)
        return (row['total_units'], row['available_units'], row['reserved_units'])


def stock_row(blood_type, total, available, reserved):
    return {
        'blood_type': blood_type,
        'total_units': total,
        'available_units': available,
        'reserved_units': reserved,
        'last_updated': '2026-10-01T08:00:00+00:00',
    }


@pytest.fixture
def client():
    return FakeClient({
        'blood_inventory': [
            stock_row('O+', 20, 20, 0),
            stock_row('A-', 10, 10, 0),
            stock_row('B+', 8, 5, 3),
        ],
        'donors': [],
    })


@pytest.fixture
def ledger(client):
    return InventoryLedger(
        StockRepository(client),
        clock=lambda: datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def donors(client):
    return DonorRepository(client)
