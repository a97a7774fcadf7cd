import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# Add project root so `import rbac` etc. work in tests (flat layout)
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class FakeQuery:
    """
    Records a supabase-py style query chain and returns canned rows on execute().
    """

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.calls = []
        self._negate = False

    def _add(self, name, *args, **kwargs):
        if self._negate:
            name = "not." + name
            self._negate = False
        self.calls.append((name, args, kwargs))
        return self

    def select(self, *args, **kwargs):
        return self._add("select", *args, **kwargs)

    def eq(self, *args):
        return self._add("eq", *args)

    def in_(self, *args):
        return self._add("in_", *args)

    def is_(self, *args):
        return self._add("is_", *args)

    @property
    def not_(self):
        self._negate = True
        return self

    def order(self, *args, **kwargs):
        return self._add("order", *args, **kwargs)

    def limit(self, *args):
        return self._add("limit", *args)

    def range(self, *args):
        return self._add("range", *args)

    def insert(self, *args):
        return self._add("insert", *args)

    def filters(self, name):
        return [args for n, args, _ in self.calls if n == name]

    def execute(self):
        self.client.executed.append(self)
        err = self.client.errors.get(self.table)
        if err is not None:
            raise err
        rows = self.client.rows.get(self.table, [])
        if callable(rows):
            rows = rows(self)
        count = self.client.counts.get(self.table, len(rows))
        return SimpleNamespace(data=list(rows), count=count)


class FakeClient:
    def __init__(self, rows=None, errors=None, counts=None):
        self.rows = rows or {}
        self.errors = errors or {}
        self.counts = counts or {}
        self.executed = []

    def table(self, name):
        return FakeQuery(self, name)

    def schema(self, name):
        return self

    def queries(self, table):
        return [q for q in self.executed if q.table == table]


@pytest.fixture
def fake_client():
    return FakeClient
