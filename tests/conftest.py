"""
Shared fixtures: an in-memory stand-in for the Supabase client and a Flask test client
"""
import copy
import itertools
import re
from types import SimpleNamespace

import pytest

from database.db import Database
from pricing.config_service import PriceConfigService


class FakeResponse:
    def __init__(self, data, count=None):
        self.data = data
        self.count = count


class FakeQuery:
    """Implements the subset of the postgrest query builder used by the models"""

    def __init__(self, db, table):
        self.db = db
        self.table = table
        self.operation = 'select'
        self.columns = '*'
        self.count = None
        self.payload = None
        self.filters = []
        self.orders = []
        self.window = None
        self.max_rows = None

    # operations
    def select(self, columns='*', count=None):
        self.operation = 'select'
        self.columns = columns
        self.count = count
        return self

    def insert(self, data):
        self.operation = 'insert'
        self.payload = data
        return self

    def update(self, data):
        self.operation = 'update'
        self.payload = data
        return self

    def delete(self):
        self.operation = 'delete'
        return self

    # filters
    def _add(self, column, predicate):
        self.filters.append(lambda row: predicate(row.get(column)))
        return self

    def eq(self, column, value):
        return self._add(column, lambda v: v == value)

    def neq(self, column, value):
        return self._add(column, lambda v: v != value)

    def gt(self, column, value):
        return self._add(column, lambda v: v is not None and v > value)

    def gte(self, column, value):
        return self._add(column, lambda v: v is not None and v >= value)

    def lt(self, column, value):
        return self._add(column, lambda v: v is not None and v < value)

    def lte(self, column, value):
        return self._add(column, lambda v: v is not None and v <= value)

    def in_(self, column, values):
        allowed = set(values)
        return self._add(column, lambda v: v in allowed)

    def ilike(self, column, pattern):
        regex = re.compile('^' + '.*'.join(re.escape(p) for p in pattern.split('%')) + '$', re.I)
        return self._add(column, lambda v: v is not None and bool(regex.match(str(v))))

    # modifiers
    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def range(self, start, end):
        self.window = (start, end)
        return self

    def limit(self, count):
        self.max_rows = count
        return self

    def _matches(self, row):
        return all(check(row) for check in self.filters)

    def execute(self):
        if (self.table, self.operation) in self.db.fail_on:
            raise Exception(f'{self.operation} on {self.table} failed')
        rows = self.db.tables.setdefault(self.table, [])

        if self.operation == 'insert':
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in items:
                row = dict(item)
                if self.table in self.db.generated_ids:
                    row.setdefault('id', f'{self.table}-{next(self.db.sequence)}')
                rows.append(row)
                inserted.append(copy.deepcopy(row))
            return FakeResponse(inserted)

        matched = [row for row in rows if self._matches(row)]
        if self.operation == 'update':
            for row in matched:
                row.update(self.payload)
            return FakeResponse(copy.deepcopy(matched))
        if self.operation == 'delete':
            self.db.tables[self.table] = [row for row in rows if not self._matches(row)]
            return FakeResponse(copy.deepcopy(matched))

        for column, desc in reversed(self.orders):
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=desc)
        total = len(matched)
        if self.window:
            matched = matched[self.window[0]:self.window[1] + 1]
        if self.max_rows is not None:
            matched = matched[:self.max_rows]
        if self.columns != '*':
            wanted = [c.strip() for c in self.columns.split(',')]
            matched = [{c: row.get(c) for c in wanted} for row in matched]
        return FakeResponse(copy.deepcopy(matched), total if self.count else None)


class FakeAuth:
    def __init__(self):
        self.tokens = {}

    def get_user(self, token):
        if token not in self.tokens:
            raise Exception('invalid JWT')
        return SimpleNamespace(user=SimpleNamespace(id=self.tokens[token]))


class FakeSupabase:
    generated_ids = {'projects', 'project_rooms', 'pricing_config'}

    def __init__(self):
        self.tables = {}
        self.fail_on = set()
        self.sequence = itertools.count(1)
        self.auth = FakeAuth()

    def table(self, name):
        return FakeQuery(self, name)


ROOMS = [
    {'room_id': 'R101', 'name': 'Hall', 'floor': '1F', 'capacity': 30, 'room_type': 'large',
     'room_rate': 20000, 'usage_type': 'shared', 'is_active': True},
    {'room_id': 'R201', 'name': 'Music Room', 'floor': '2F', 'capacity': 12, 'room_type': 'medium_a',
     'room_rate': 13000, 'usage_type': 'shared', 'is_active': True},
    {'room_id': 'R202', 'name': 'Art Room', 'floor': '2F', 'capacity': 8, 'room_type': 'medium_b',
     'room_rate': 8000, 'usage_type': 'shared', 'is_active': True},
    {'room_id': 'R301', 'name': 'Class 1-1', 'floor': '3F', 'capacity': 4, 'room_type': 'small_a',
     'room_rate': 7000, 'usage_type': 'private', 'is_active': True},
    {'room_id': 'R302', 'name': 'Class 1-2', 'floor': '3F', 'capacity': 3, 'room_type': 'small_b',
     'room_rate': 6000, 'usage_type': 'private', 'is_active': True},
    {'room_id': 'R303', 'name': 'Storage', 'floor': '3F', 'capacity': 2, 'room_type': 'small_c',
     'room_rate': 5000, 'usage_type': 'private', 'is_active': False},
]


def make_project(project_id, room_ids, start_date, end_date, status='confirmed',
                 guest_name='Tanaka Club', pax=10):
    project = {
        'id': project_id, 'status': status, 'start_date': start_date, 'end_date': end_date,
        'pax_total': pax, 'pax_adults': pax, 'pax_adult_leaders': 0, 'pax_students': 0,
        'pax_children': 0, 'pax_infants': 0, 'pax_babies': 0,
        'guest_name': guest_name, 'guest_email': 'club@example.com', 'total_amount': 100000,
    }
    assignments = [{'id': f'{project_id}-{room_id}', 'project_id': project_id, 'room_id': room_id,
                    'assigned_pax': pax, 'room_rate': 0, 'nights': 1} for room_id in room_ids]
    return project, assignments


@pytest.fixture
def rooms():
    return copy.deepcopy(ROOMS)


@pytest.fixture
def fake_db():
    db = FakeSupabase()
    db.tables['rooms'] = copy.deepcopy(ROOMS)
    db.tables['projects'] = []
    db.tables['project_rooms'] = []
    db.tables['add_ons'] = []
    db.tables['pricing_config'] = []
    db.tables['user_profiles'] = [
        {'id': 'user-admin', 'role': 'admin'},
        {'id': 'user-staff', 'role': 'staff'},
    ]
    db.auth.tokens = {'admin-token': 'user-admin', 'staff-token': 'user-staff'}
    Database.set_client(db)
    PriceConfigService.clear_cache()
    yield db
    Database.reset_client()
    PriceConfigService.clear_cache()


@pytest.fixture
def booked_db(fake_db):
    """Hall booked 2030-06-03 to 2030-06-06; Music Room held by a cancelled booking"""
    for project_id, room_ids, status in (('p1', ['R101'], 'confirmed'),
                                         ('p2', ['R201'], 'cancelled')):
        project, assignments = make_project(project_id, room_ids, '2030-06-03', '2030-06-06', status)
        fake_db.tables['projects'].append(project)
        fake_db.tables['project_rooms'].extend(assignments)
    return fake_db


@pytest.fixture
def app(fake_db):
    from lodging_app import create_app
    app = create_app()
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return {'Authorization': 'Bearer admin-token'}
