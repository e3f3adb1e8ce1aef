"""
Database operations against the Supabase REST (PostgREST) endpoint
"""

import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import requests

from .config import PAGE_SIZE, REQUEST_TIMEOUT, get_config
from .errors import NotFound, TransientIOError

Filters = Dict[str, str]
Order = Union[str, Sequence[str], None]


# ----- Filter expressions -----

def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def eq(value: Any) -> str:
    if value is None:
        return 'is.null'
    return f"eq.{_format_value(value)}"


def neq(value: Any) -> str:
    if value is None:
        return 'not.is.null'
    return f"neq.{_format_value(value)}"


def lt(value: Any) -> str:
    return f"lt.{_format_value(value)}"


def lte(value: Any) -> str:
    return f"lte.{_format_value(value)}"


def gt(value: Any) -> str:
    return f"gt.{_format_value(value)}"


def gte(value: Any) -> str:
    return f"gte.{_format_value(value)}"


def ilike(pattern: str) -> str:
    return f"ilike.{pattern}"


def in_(values: Sequence[Any]) -> str:
    items = ','.join(f'"{_format_value(v)}"' for v in values)
    return f"in.({items})"


def or_(*conditions: str) -> str:
    """
    Build a disjunction, e.g. or_("first_name.ilike.*ann*", "last_name.ilike.*ann*")
    """
    return f"({','.join(conditions)})"


def contains_text(columns: Sequence[str], text: str) -> str:
    """Case-insensitive substring match over several columns"""
    term = text.replace(',', ' ').replace('(', ' ').replace(')', ' ').strip()
    return or_(*[f"{column}.ilike.*{term}*" for column in columns])


class DatabaseConnection:
    """Handles database connections and queries"""

    def __init__(self, supabase_url: str, api_key: str,
                 session: Optional[requests.Session] = None,
                 timeout: int = REQUEST_TIMEOUT,
                 page_size: int = PAGE_SIZE):
        if not supabase_url or not api_key:
            raise ValueError("supabase_url and api_key are required")
        self.supabase_url = supabase_url.rstrip('/')
        self.api_key = api_key
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.page_size = page_size
        self.connection_active = False

    @classmethod
    def from_config(cls, config: Optional[Dict] = None, **kwargs) -> 'DatabaseConnection':
        """Build a connection from get_config() values"""
        config = config or get_config()
        api_key = config.get('SUPABASE_SERVICE_KEY') or config['SUPABASE_API_KEY']
        return cls(config['SUPABASE_URL'], api_key, **kwargs)

    def __enter__(self) -> 'DatabaseConnection':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.disconnect()
        self.session.close()

    def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = {
            'apikey': self.api_key,
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
            'Cache-Control': 'no-cache',
        }
        if extra:
            headers.update(extra)
        return headers

    def _url(self, table: str) -> str:
        return f"{self.supabase_url}/rest/v1/{table}"

    def _request(self, method: str, table: str,
                 params: Optional[List[Tuple[str, str]]] = None,
                 json: Any = None,
                 headers: Optional[Dict[str, str]] = None) -> requests.Response:
        url = self._url(table)
        try:
            response = self.session.request(
                method, url,
                params=params,
                json=json,
                headers=self._headers(headers),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            print(f"ERROR: Supabase {method} {table} failed: {e}", file=sys.stderr)
            raise TransientIOError(f"{method} {table} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            message = response.text[:1000] if response.text else ''
            try:
                error_json = response.json()
                if isinstance(error_json, dict) and error_json.get('message'):
                    message = error_json['message']
            except ValueError:
                pass
            print(f"ERROR: Supabase request failed with code: {response.status_code}", file=sys.stderr)
            print(f"  - Table: {table}", file=sys.stderr)
            print(f"  - Error response: {message[:200]}", file=sys.stderr)
            raise TransientIOError(
                f"Supabase request failed with code {response.status_code}: {message[:200]}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _params(filters: Optional[Filters] = None, order: Order = None,
                select: Optional[str] = None) -> List[Tuple[str, str]]:
        params = []
        if select:
            params.append(('select', select))
        for column, expression in (filters or {}).items():
            params.append((column, expression))
        if order:
            if not isinstance(order, str):
                order = ','.join(order)
            params.append(('order', order))
        return params

    @staticmethod
    def _rows(response: requests.Response) -> List[Dict]:
        if not response.content:
            return []
        data = response.json()
        if isinstance(data, dict):
            return [data]
        if not isinstance(data, list):
            print(f"WARNING: Supabase returned non-list data: {type(data)}", file=sys.stderr)
            return []
        return data

    def connect(self) -> bool:
        """Connect to Supabase database"""
        try:
            response = self.session.get(
                f"{self.supabase_url}/rest/v1/", headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as e:
            print(f"Database connection error: {e}", file=sys.stderr)
            self.connection_active = False
            return False
        self.connection_active = response.status_code in (200, 400)
        return self.connection_active

    def disconnect(self):
        """Disconnect from database"""
        self.connection_active = False

    def supabase_request(self, table: str, params: Optional[List[Tuple[str, str]]] = None,
                         limit: Optional[int] = None) -> List[Dict]:
        """
        Make Supabase GET requests with pagination support.
        Pages are fetched until one comes back shorter than the page size.
        """
        page_size = limit or self.page_size
        all_data: List[Dict] = []
        offset = 0

        while True:
            page_params = list(params or []) + [('limit', str(page_size)), ('offset', str(offset))]
            data = self._rows(self._request('GET', table, params=page_params))
            all_data.extend(data)

            if len(data) < page_size:
                break
            offset += page_size

        return all_data

    def read_one(self, table: str, key_column: str, key: Any, select: str = '*') -> Dict:
        """Fetch a single row by key, raising NotFound when it does not exist"""
        params = self._params({key_column: eq(key)}, select=select) + [('limit', '1')]
        rows = self._rows(self._request('GET', table, params=params))
        if not rows:
            raise NotFound(f"{table} record {key_column}={key} not found")
        return rows[0]

    def read_filtered(self, table: str, filters: Optional[Filters] = None,
                      order: Order = None, select: str = '*',
                      limit: Optional[int] = None) -> List[Dict]:
        """Fetch every row matching the filters (or the first `limit` rows)"""
        params = self._params(filters, order, select)
        if limit is not None:
            params.append(('limit', str(limit)))
            return self._rows(self._request('GET', table, params=params))
        return self.supabase_request(table, params)

    def write_fields(self, table: str, key_column: str, key: Any, updates: Dict,
                     match: Optional[Dict[str, Any]] = None) -> Dict:
        """
        Update fields of the row identified by key and return the updated row.

        match adds equality conditions that must still hold on the stored row;
        when none of the rows match, NotFound is raised and nothing is written.
        """
        filters = {key_column: eq(key)}
        for column, value in (match or {}).items():
            filters[column] = eq(value)
        rows = self._rows(self._request(
            'PATCH', table,
            params=self._params(filters),
            json=updates,
            headers={'Prefer': 'return=representation'},
        ))
        if not rows:
            raise NotFound(f"{table} record {key_column}={key} not found")
        return rows[0]

    def insert_record(self, table: str, data: Dict) -> Dict:
        rows = self._rows(self._request(
            'POST', table, json=data, headers={'Prefer': 'return=representation'}
        ))
        return rows[0] if rows else {}

    def delete_record(self, table: str, key_column: str, key: Any) -> bool:
        self._request('DELETE', table, params=self._params({key_column: eq(key)}))
        return True

    def count_records(self, table: str, filters: Optional[Filters] = None) -> int:
        """Count rows using PostgREST's exact count (Content-Range header)"""
        params = self._params(filters) + [('limit', '1')]
        response = self._request('GET', table, params=params, headers={'Prefer': 'count=exact'})
        content_range = response.headers.get('Content-Range', '')
        total = content_range.rsplit('/', 1)[-1] if '/' in content_range else ''
        try:
            return int(total)
        except ValueError:
            print(f"WARNING: Missing count for {table}: {content_range!r}", file=sys.stderr)
            return len(self._rows(response))
