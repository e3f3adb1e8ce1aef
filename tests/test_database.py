import json

import pytest
import requests

from bloodinventory.database import (
    DatabaseConnection,
    contains_text,
    eq,
    gte,
    ilike,
    in_,
    lt,
    neq,
    or_,
)
from bloodinventory.errors import NotFound, TransientIOError
from bloodinventory.inventory import InventoryLedger
from bloodinventory.repositories import StockRepository


class StubResponse:
    def __init__(self, status_code=200, data=None, headers=None):
        self.status_code = status_code
        self._data = data
        self.headers = headers or {}
        self.content = b'' if data is None else json.dumps(data).encode()
        self.text = self.content.decode()

    def json(self):
        if self._data is None:
            raise ValueError('No JSON')
        return self._data


class StubSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.closed = False

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        self.calls.append({
            'method': method, 'url': url, 'params': params,
            'json': json, 'headers': headers, 'timeout': timeout,
        })
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, headers=None, timeout=None):
        return self.request('GET', url, headers=headers, timeout=timeout)

    def close(self):
        self.closed = True


def make_connection(*responses, **kwargs):
    session = StubSession(*responses)
    return DatabaseConnection('https://demo.supabase.co/', 'anon-key', session=session, **kwargs), session


def test_filter_expressions():
    assert eq('O+') == 'eq.O+'
    assert eq(True) == 'eq.true'
    assert eq(None) == 'is.null'
    assert neq(3) == 'neq.3'
    assert lt(5) == 'lt.5'
    assert gte('2026-10-18') == 'gte.2026-10-18'
    assert ilike('*ann*') == 'ilike.*ann*'
    assert in_(['A+', 'O-']) == 'in.("A+","O-")'
    assert or_('a.eq.1', 'b.eq.2') == '(a.eq.1,b.eq.2)'
    assert contains_text(['first_name', 'phone'], 'ann') == '(first_name.ilike.*ann*,phone.ilike.*ann*)'


def test_read_one_sends_key_filter_and_auth_headers():
    db, session = make_connection(StubResponse(data=[{'blood_type': 'O+', 'total_units': 4}]))

    row = db.read_one('blood_inventory', 'blood_type', 'O+')

    assert row == {'blood_type': 'O+', 'total_units': 4}
    call = session.calls[0]
    assert call['method'] == 'GET'
    assert call['url'] == 'https://demo.supabase.co/rest/v1/blood_inventory'
    assert ('blood_type', 'eq.O+') in call['params']
    assert ('limit', '1') in call['params']
    assert call['headers']['apikey'] == 'anon-key'
    assert call['headers']['Authorization'] == 'Bearer anon-key'


def test_read_one_missing_row_is_not_found():
    db, _ = make_connection(StubResponse(data=[]))
    with pytest.raises(NotFound):
        db.read_one('donors', 'donor_id', 7)


def test_read_filtered_paginates_until_short_page():
    db, session = make_connection(
        StubResponse(data=[{'id': 1}, {'id': 2}]),
        StubResponse(data=[{'id': 3}]),
        page_size=2,
    )

    rows = db.read_filtered('hospitals', {'city': eq('Manila')}, order='hospital_name.asc')

    assert [row['id'] for row in rows] == [1, 2, 3]
    first, second = session.calls
    assert ('city', 'eq.Manila') in first['params']
    assert ('order', 'hospital_name.asc') in first['params']
    assert ('offset', '0') in first['params']
    assert ('offset', '2') in second['params']


def test_read_filtered_with_limit_makes_one_request():
    db, session = make_connection(StubResponse(data=[{'id': 1}]))
    rows = db.read_filtered('donations', order=['created_at.desc', 'donation_id.asc'], limit=10)
    assert rows == [{'id': 1}]
    assert len(session.calls) == 1
    assert ('order', 'created_at.desc,donation_id.asc') in session.calls[0]['params']
    assert ('limit', '10') in session.calls[0]['params']


def test_write_fields_patches_with_match_conditions():
    db, session = make_connection(StubResponse(data=[{'blood_type': 'O+', 'available_units': 15}]))

    row = db.write_fields(
        'blood_inventory', 'blood_type', 'O+', {'available_units': 15},
        match={'available_units': 20},
    )

    assert row['available_units'] == 15
    call = session.calls[0]
    assert call['method'] == 'PATCH'
    assert call['json'] == {'available_units': 15}
    assert call['headers']['Prefer'] == 'return=representation'
    assert ('blood_type', 'eq.O+') in call['params']
    assert ('available_units', 'eq.20') in call['params']


def test_write_fields_without_matching_row_is_not_found():
    db, _ = make_connection(StubResponse(data=[]))
    with pytest.raises(NotFound):
        db.write_fields('blood_inventory', 'blood_type', 'O+', {'available_units': 1})


def test_server_error_becomes_transient_io_error():
    db, _ = make_connection(StubResponse(status_code=503, data={'message': 'upstream unavailable'}))
    with pytest.raises(TransientIOError) as excinfo:
        db.read_one('blood_inventory', 'blood_type', 'O+')
    assert excinfo.value.status_code == 503
    assert 'upstream unavailable' in str(excinfo.value)


def test_connection_error_becomes_transient_io_error():
    db, _ = make_connection(requests.ConnectionError('connection refused'))
    with pytest.raises(TransientIOError):
        db.write_fields('blood_inventory', 'blood_type', 'O+', {'available_units': 1})


def test_insert_and_delete():
    db, session = make_connection(
        StubResponse(status_code=201, data=[{'hospital_id': 5, 'hospital_name': 'General'}]),
        StubResponse(status_code=204),
    )
    assert db.insert_record('hospitals', {'hospital_name': 'General'})['hospital_id'] == 5
    assert db.delete_record('hospitals', 'hospital_id', 5) is True
    assert session.calls[0]['method'] == 'POST'
    assert session.calls[1]['method'] == 'DELETE'
    assert ('hospital_id', 'eq.5') in session.calls[1]['params']


def test_count_records_reads_content_range():
    db, session = make_connection(
        StubResponse(status_code=206, data=[{'donor_id': 1}], headers={'Content-Range': '0-0/42'})
    )
    assert db.count_records('donors') == 42
    assert session.calls[0]['headers']['Prefer'] == 'count=exact'


def test_connect_and_context_manager_close_session():
    db, session = make_connection(StubResponse(status_code=400, data={}))
    with db:
        assert db.connect()
        assert db.connection_active
    assert not db.connection_active
    assert session.closed


def test_from_config_prefers_service_key():
    db = DatabaseConnection.from_config(
        {'SUPABASE_URL': 'https://demo.supabase.co', 'SUPABASE_API_KEY': 'anon', 'SUPABASE_SERVICE_KEY': 'service'},
        session=StubSession(),
    )
    assert db.api_key == 'service'
    assert db.supabase_url == 'https://demo.supabase.co'


def test_missing_credentials_rejected():
    with pytest.raises(ValueError):
        DatabaseConnection('', 'key', session=StubSession())


def test_null_stock_pool_is_matched_with_is_null():
    stored = {'blood_type': 'O+', 'total_units': 10, 'available_units': 10,
              'reserved_units': None, 'last_updated': None}
    written = dict(stored, available_units=8, reserved_units=2)
    db, session = make_connection(StubResponse(data=[stored]), StubResponse(data=[written]))

    stock = InventoryLedger(StockRepository(db)).reserve_units('O+', 2)

    assert (stock.available_units, stock.reserved_units) == (8, 2)
    patch = session.calls[1]
    assert patch['method'] == 'PATCH'
    assert ('reserved_units', 'is.null') in patch['params']
    assert ('available_units', 'eq.10') in patch['params']
    assert patch['json']['reserved_units'] == 2
