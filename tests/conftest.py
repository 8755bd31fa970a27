"""
Pytest configuration and shared fixtures.

Provides:
- FakePool / FakeConnection / FakeCursor: a psycopg2-shaped pool that
  records every statement, commit and rollback.
- ScriptedDatabase: answers statements from a queue of canned results.
- MemoryDatabase: a tiny in-memory order store that understands the
  statements the repositories issue, with transactional snapshots.
- store / memory_db fixtures wiring the above into a db.connection.Store.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import psycopg2
import pytest

from db.connection import Store
from repositories.order_repo import ORDER_SORTABLE


def normalize(sql: str) -> str:
    """Collapse whitespace so assertions don't depend on indentation."""
    return " ".join(sql.split())


@dataclass
class Result:
    rows: list = field(default_factory=list)
    rowcount: int | None = None


class FakeCursor:
    def __init__(self, conn: "FakeConnection", cursor_factory=None):
        self.conn = conn
        self.cursor_factory = cursor_factory
        self.rowcount = -1
        self._rows: list = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self.conn.executed.append((normalize(sql), params))
        result = self.conn.db.run(self.conn, normalize(sql), params)
        self._rows = list(result.rows)
        self.rowcount = len(self._rows) if result.rowcount is None else result.rowcount

    def executemany(self, sql, seq):
        total = 0
        for params in seq:
            self.execute(sql, params)
            total += self.rowcount
        self.rowcount = total

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows


class FakeConnection:
    def __init__(self, db):
        self.db = db
        self.closed = 0
        self.broken = False
        self.executed: list[tuple[str, Any]] = []
        self.events: list[str] = []

    def cursor(self, cursor_factory=None):
        return FakeCursor(self, cursor_factory)

    def commit(self):
        self.events.append("commit")
        self.db.commit(self)

    def rollback(self):
        if self.broken:
            raise psycopg2.InterfaceError("connection already closed")
        self.events.append("rollback")
        self.db.rollback(self)


class FakePool:
    def __init__(self, db):
        self.db = db
        self.connections: list[FakeConnection] = []
        self.checked_out = 0
        self.discarded = 0
        self.closed = False

    def getconn(self):
        conn = FakeConnection(self.db)
        self.connections.append(conn)
        self.checked_out += 1
        return conn

    def putconn(self, conn, close=False):
        self.checked_out -= 1
        self.discarded += int(close)

    def closeall(self):
        self.closed = True

    @property
    def executed(self) -> list[tuple[str, Any]]:
        return [stmt for conn in self.connections for stmt in conn.executed]


class ScriptedDatabase:
    """Answers each statement with the next queued result (rows, Result, or exception)."""

    def __init__(self, *results):
        self.results = list(results)

    def run(self, conn, sql, params):
        if not self.results:
            return Result()
        nxt = self.results.pop(0)
        if isinstance(nxt, BaseException):
            raise nxt
        if isinstance(nxt, Result):
            return nxt
        return Result(rows=list(nxt))

    def commit(self, conn):
        pass

    def rollback(self, conn):
        pass


_SORT_EXPR_TO_NAME = {expr: name for name, expr in ORDER_SORTABLE.items()}
_ORDER_BY = re.compile(r"ORDER BY (.+?) (ASC|DESC)(?:, co\.id ASC)? LIMIT %s OFFSET %s")


class MemoryDatabase:
    """
    In-memory stand-in for the order tables.

    Writes take a snapshot on the first statement of a transaction;
    rollback restores it, commit discards it.
    """

    def __init__(self):
        self.customers = {
            "ALFKI": {"id": "ALFKI", "companyname": "Alfreds Futterkiste", "contactname": "Maria Anders"},
            "BONAP": {"id": "BONAP", "companyname": "Bon app'", "contactname": "Laurence Lebihan"},
            "C1": {"id": "C1", "companyname": "Lima Imports", "contactname": "Rosa Quispe"},
        }
        self.employees = {
            1: {"id": 1, "firstname": "Nancy", "lastname": "Davolio"},
            7: {"id": 7, "firstname": "Robert", "lastname": "King"},
        }
        self.products = {
            1: {"id": 1, "productname": "Chai", "quantityperunit": "10 boxes x 20 bags"},
            2: {"id": 2, "productname": "Chang", "quantityperunit": "24 - 12 oz bottles"},
        }
        self.orders: dict[int, dict] = {}
        self.details: dict[tuple[int, int], dict] = {}
        self.next_order_id = 100
        self._snapshot = None

    # ── transactions ──

    def _begin(self):
        if self._snapshot is None:
            self._snapshot = copy.deepcopy((self.orders, self.details, self.next_order_id))

    def commit(self, conn):
        self._snapshot = None

    def rollback(self, conn):
        if self._snapshot is not None:
            self.orders, self.details, self.next_order_id = self._snapshot
            self._snapshot = None

    # ── seeding ──

    def add_order(self, customerid, employeeid, **fields) -> int:
        order_id = self.next_order_id
        self.next_order_id += 1
        row = {
            "id": order_id, "customerid": customerid, "employeeid": employeeid,
            "orderdate": date(2024, 1, 1), "requireddate": None, "shippeddate": None,
            "shipvia": None, "freight": 0, "shipname": None, "shipaddress": None,
            "shipcity": None, "shipregion": None, "shippostalcode": None, "shipcountry": None,
        }
        row.update(fields)
        self.orders[order_id] = row
        return order_id

    def add_detail(self, order_id, position, productid, unitprice, quantity, discount=0):
        self.details[(order_id, position)] = {
            "orderid": order_id, "position": position, "productid": productid,
            "unitprice": unitprice, "quantity": quantity, "discount": discount,
        }

    # ── statements ──

    def _denormalize(self, order: dict) -> dict:
        customer = self.customers.get(order["customerid"])
        employee = self.employees.get(order["employeeid"])
        row = dict(order)
        row["customername"] = customer["companyname"] if customer else None
        row["employeename"] = f"{employee['firstname']} {employee['lastname']}" if employee else None
        return row

    def run(self, conn, sql, params):
        if sql.startswith("INSERT INTO customerorder"):
            self._begin()
            (employeeid, customerid, shipcity, shipaddress, shipname, shipvia,
             shipregion, shipcountry, shippostalcode, requireddate, freight) = params
            if customerid not in self.customers or employeeid not in self.employees:
                raise psycopg2.IntegrityError("insert or update on table \"customerorder\" violates foreign key constraint")
            order_id = self.add_order(
                customerid, employeeid, shipcity=shipcity, shipaddress=shipaddress,
                shipname=shipname, shipvia=shipvia, shipregion=shipregion,
                shipcountry=shipcountry, shippostalcode=shippostalcode,
                requireddate=requireddate, freight=freight,
            )
            return Result(rows=[{"id": order_id}])

        if sql.startswith("INSERT INTO orderdetail"):
            self._begin()
            orderid, position, productid, unitprice, quantity, discount = params
            if productid not in self.products or orderid not in self.orders:
                raise psycopg2.IntegrityError("insert or update on table \"orderdetail\" violates foreign key constraint")
            if (orderid, position) in self.details:
                raise psycopg2.IntegrityError("duplicate key value violates unique constraint \"orderdetail_pkey\"")
            self.add_detail(orderid, position, productid, unitprice, quantity, discount)
            return Result(rowcount=1)

        if sql.startswith("DELETE FROM customerorder"):
            self._begin()
            (order_id,) = params
            if order_id not in self.orders:
                return Result(rowcount=0)
            del self.orders[order_id]
            for key in [k for k in self.details if k[0] == order_id]:
                del self.details[key]
            return Result(rowcount=1)

        if "FROM orderdetail AS od LEFT JOIN product" in sql:
            (order_id,) = params
            rows = []
            for (oid, _), detail in sorted(self.details.items()):
                if oid != order_id:
                    continue
                product = self.products[detail["productid"]]
                rows.append({**detail, "productname": product["productname"],
                             "quantityperunit": product["quantityperunit"]})
            return Result(rows=rows)

        if sql.endswith("WHERE co.id = %s;"):
            (order_id,) = params
            order = self.orders.get(order_id)
            if order is None:
                return Result(rows=[])
            row = self._denormalize(order)
            row["subtotal"] = sum(
                (1 - d["discount"]) * d["unitprice"] * d["quantity"]
                for (oid, _), d in self.details.items() if oid == order_id
            )
            return Result(rows=[row])

        if sql.startswith("SELECT") and "FROM customerorder AS co" in sql:
            return Result(rows=self._list_orders(sql, list(params)))

        raise AssertionError(f"MemoryDatabase cannot run: {sql}")

    def _list_orders(self, sql, params):
        limit, offset = params[-2:]
        rows = [self._denormalize(o) for o in self.orders.values()]
        if "WHERE co.customerid = %s" in sql:
            rows = [r for r in rows if r["customerid"] == params[0]]
        match = _ORDER_BY.search(sql)
        name, direction = _SORT_EXPR_TO_NAME[match.group(1)], match.group(2)
        rows.sort(key=lambda r: r["id"])
        present = [r for r in rows if r[name] is not None]
        missing = [r for r in rows if r[name] is None]
        present.sort(key=lambda r: r[name], reverse=(direction == "DESC"))
        # PostgreSQL puts NULLs last ascending, first descending.
        rows = missing + present if direction == "DESC" else present + missing
        return rows[offset:offset + limit]


@pytest.fixture
def memory_db() -> MemoryDatabase:
    return MemoryDatabase()


@pytest.fixture
def memory_pool(memory_db) -> FakePool:
    return FakePool(memory_db)


@pytest.fixture
def store(memory_pool) -> Store:
    return Store(memory_pool)


@pytest.fixture
def scripted():
    """Factory: a (Store, FakePool) whose statements are answered from `results` in order."""

    def _make(*results) -> tuple[Store, FakePool]:
        fake_pool = FakePool(ScriptedDatabase(*results))
        return Store(fake_pool), fake_pool

    return _make


class DroppingDatabase(ScriptedDatabase):
    """Breaks the connection on its first statement and raises OperationalError."""

    def __init__(self, mark_closed: bool):
        super().__init__()
        self.mark_closed = mark_closed

    def run(self, conn, sql, params):
        conn.broken = True
        if self.mark_closed:
            conn.closed = 2
        raise psycopg2.OperationalError("server closed the connection unexpectedly")


@pytest.fixture
def dropping():
    """Factory: a (Store, FakePool) whose connection dies on the first statement."""

    def _make(mark_closed: bool) -> tuple[Store, FakePool]:
        fake_pool = FakePool(DroppingDatabase(mark_closed))
        return Store(fake_pool), fake_pool

    return _make
