"""
repositories/order_repo.py
--------------------------
Data access layer for customer orders and their line items.
All SQL queries related to the `customerorder` and `orderdetail` tables live here.

OrderReader serves the denormalized reads; OrderWriter owns the
transactional creation and deletion of an order aggregate.
"""

from typing import Any, Iterable, Optional

import psycopg2

from db.connection import Store
from errors import (
    DataAccessError,
    NotFound,
    OperationNotImplemented,
    WriteError,
    translating_read_errors,
)
from models.options import OptionsLike, with_defaults
from models.order import LineItemKey, NewLineItem, NewOrder, Order, OrderLineItem
from repositories.query_builder import build_collection_query, build_equals_clause
from utils.logger import get_logger

logger = get_logger(__name__)

_ORDER_COLUMNS = """
    co.id, co.customerid, co.employeeid, co.orderdate, co.requireddate,
    co.shippeddate, co.shipvia, co.freight, co.shipname, co.shipaddress,
    co.shipcity, co.shipregion, co.shippostalcode, co.shipcountry,
    c.companyname AS customername,
    (e.firstname || ' ' || e.lastname) AS employeename"""

_ORDER_JOINS = """
FROM customerorder AS co
LEFT JOIN customer AS c ON co.customerid = c.id
LEFT JOIN employee AS e ON co.employeeid = e.id"""

# Public sort names -> SQL expressions. Nothing else may reach ORDER BY.
ORDER_SORTABLE = {
    "id": "co.id",
    "customerid": "co.customerid",
    "employeeid": "co.employeeid",
    "orderdate": "co.orderdate",
    "requireddate": "co.requireddate",
    "shippeddate": "co.shippeddate",
    "shipcity": "co.shipcity",
    "shipcountry": "co.shipcountry",
    "freight": "co.freight",
    "customername": "c.companyname",
    "employeename": "(e.firstname || ' ' || e.lastname)",
}

CUSTOMER_ORDER_DEFAULTS = {"sort": "shippeddate", "order": "asc"}

_ORDER_INSERT_FIELDS = (
    "employeeid",
    "customerid",
    "shipcity",
    "shipaddress",
    "shipname",
    "shipvia",
    "shipregion",
    "shipcountry",
    "shippostalcode",
    "requireddate",
    "freight",
)


class OrderReader:
    """Read-only queries over orders, their customers, employees and line items."""

    def __init__(self, store: Store):
        self.store = store

    # ── COLLECTIONS ───────────────────────────────────────

    def list_orders(
        self, options: OptionsLike = None, customer_id: Optional[str] = None
    ) -> list[Order]:
        """
        Fetch a page of orders with customer and employee names joined in.

        Args:
            options: Pagination/sort options (CollectionOptions or a partial dict).
            customer_id: If given, only this customer's orders are returned.

        Returns:
            At most `per_page` Order objects, sorted by the requested field
            and then by id ascending.

        Raises:
            InvalidOptions: Before any I/O, if the options are malformed.
        """
        opts = with_defaults(options)
        where = None
        if customer_id is not None:
            where = build_equals_clause("co.customerid", customer_id)
        sql, params = build_collection_query(
            f"SELECT {_ORDER_COLUMNS}{_ORDER_JOINS}", ORDER_SORTABLE, opts, where=where
        )
        with translating_read_errors("orders", {"customer_id": customer_id}):
            with self.store.cursor() as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
        return [self._row_to_order(r) for r in rows]

    def list_customer_orders(self, customer_id: str, options: OptionsLike = None) -> list[Order]:
        """Orders of one customer, by default oldest shipment first."""
        opts = with_defaults(options, **CUSTOMER_ORDER_DEFAULTS)
        return self.list_orders(opts, customer_id=customer_id)

    # ── SINGLE ORDER ──────────────────────────────────────

    def get_order(self, order_id: int) -> Order:
        """
        Fetch one order with its subtotal.

        The subtotal is aggregated in a sub-select, so the order row is
        never multiplied by its line items.

        Raises:
            NotFound: If no order has this id.
        """
        sql = f"""
            SELECT {_ORDER_COLUMNS},
                (SELECT COALESCE(SUM((1 - od.discount) * od.unitprice * od.quantity), 0)
                 FROM orderdetail AS od
                 WHERE od.orderid = co.id) AS subtotal
            {_ORDER_JOINS}
            WHERE co.id = %s;
        """
        with translating_read_errors(
            f"Order #{order_id}", {"order_id": order_id}, bad_key_is_missing=True
        ):
            with self.store.cursor() as cur:
                cur.execute(sql, (order_id,))
                row = cur.fetchone()
        if row is None:
            raise NotFound(f"Order #{order_id} not found", {"order_id": order_id})
        return self._row_to_order(row)

    def get_order_line_items(self, order_id: int) -> list[OrderLineItem]:
        """
        Fetch the line items of an order in position order.

        Returns:
            List of OrderLineItem; empty if the order has no items
            (or does not exist).
        """
        sql = """
            SELECT od.orderid, od.position, od.productid, od.unitprice,
                   od.quantity, od.discount, p.productname, p.quantityperunit
            FROM orderdetail AS od
            LEFT JOIN product AS p ON od.productid = p.id
            WHERE od.orderid = %s
            ORDER BY od.position ASC;
        """
        with translating_read_errors(f"line items of order #{order_id}", {"order_id": order_id}):
            with self.store.cursor() as cur:
                cur.execute(sql, (order_id,))
                rows = cur.fetchall()
        return [self._row_to_line_item(r) for r in rows]

    def get_order_with_line_items(self, order_id: int) -> tuple[Order, list[OrderLineItem]]:
        """
        Fetch an order and its line items.

        Raises:
            NotFound: If the order does not exist. An order without
                items is returned with an empty list.
        """
        order = self.get_order(order_id)
        items = self.get_order_line_items(order_id)
        return order, items

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_order(row: dict) -> Order:
        """Convert a database row mapping to an Order domain object."""
        subtotal = row.get("subtotal")
        return Order(
            id=row["id"],
            customerid=row["customerid"],
            employeeid=row["employeeid"],
            customername=row.get("customername"),
            employeename=row.get("employeename"),
            orderdate=row.get("orderdate"),
            requireddate=row.get("requireddate"),
            shippeddate=row.get("shippeddate"),
            shipvia=row.get("shipvia"),
            freight=float(row.get("freight") or 0),
            shipname=row.get("shipname"),
            shipaddress=row.get("shipaddress"),
            shipcity=row.get("shipcity"),
            shipregion=row.get("shipregion"),
            shippostalcode=row.get("shippostalcode"),
            shipcountry=row.get("shipcountry"),
            subtotal=float(subtotal) if subtotal is not None else None,
        )

    @staticmethod
    def _row_to_line_item(row: dict) -> OrderLineItem:
        """Convert a database row mapping to an OrderLineItem domain object."""
        return OrderLineItem(
            key=LineItemKey(row["orderid"], row["position"]),
            productid=row["productid"],
            unitprice=float(row["unitprice"]),
            quantity=row["quantity"],
            discount=float(row["discount"]),
            productname=row.get("productname"),
            quantityperunit=row.get("quantityperunit"),
        )


class OrderWriter:
    """Transactional writes of an order together with its line items."""

    def __init__(self, store: Store):
        self.store = store

    # ── CREATE ────────────────────────────────────────────

    def create_order(self, order: NewOrder, line_items: Iterable[NewLineItem] = ()) -> int:
        """
        Insert an order and all of its line items in one transaction.

        Line items get the keys ``(order_id, 1)`` .. ``(order_id, n)`` in
        the order they are given. Either the order and every item are
        committed, or nothing is.

        Args:
            order: Data for the new order.
            line_items: Data for the order's line items.

        Returns:
            The id generated for the new order.

        Raises:
            WriteError: If any insert fails; the transaction is rolled
                back before this is raised.
        """
        items = list(line_items)
        try:
            with self.store.transaction() as cur:
                order_id = self._insert_order(cur, order)
                self._insert_line_items(cur, order_id, items)
        except DataAccessError as e:
            logger.error(f"Failed to create order for customer {order.customerid}: {e}")
            raise
        except psycopg2.Error as e:
            logger.error(f"Failed to create order for customer {order.customerid}: {e}")
            raise WriteError(
                f"Order creation rolled back: {e}",
                {"customerid": order.customerid, "line_items": len(items)},
            ) from e
        logger.info(f"Created order #{order_id} with {len(items)} line item(s)")
        return order_id

    # ── UPDATE ────────────────────────────────────────────

    def update_order(
        self, order_id: int, data: Any, line_items: Iterable[Any] = ()
    ) -> Order:
        """Not built yet; always raises OperationNotImplemented."""
        raise OperationNotImplemented(
            "OrderWriter.update_order() is not implemented", {"order_id": order_id}
        )

    # ── DELETE ────────────────────────────────────────────

    def delete_order(self, order_id: int) -> None:
        """
        Delete an order; its line items go with it (ON DELETE CASCADE).

        Raises:
            NotFound: If no order has this id.
        """
        sql = "DELETE FROM customerorder WHERE id = %s;"
        try:
            with self.store.transaction() as cur:
                cur.execute(sql, (order_id,))
                deleted = cur.rowcount > 0
        except psycopg2.Error as e:
            logger.error(f"Failed to delete order #{order_id}: {e}")
            raise WriteError(f"Failed to delete order #{order_id}: {e}", {"order_id": order_id}) from e
        if not deleted:
            raise NotFound(f"Order #{order_id} not found", {"order_id": order_id})
        logger.info(f"Deleted order #{order_id}")

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _insert_order(cur, order: NewOrder) -> int:
        """Insert the parent row and return its generated id."""
        columns = ", ".join(_ORDER_INSERT_FIELDS)
        placeholders = ", ".join(["%s"] * len(_ORDER_INSERT_FIELDS))
        sql = f"INSERT INTO customerorder ({columns}) VALUES ({placeholders}) RETURNING id;"
        cur.execute(sql, tuple(getattr(order, f) for f in _ORDER_INSERT_FIELDS))
        row = cur.fetchone()
        if not row or row.get("id") is None:
            raise WriteError(
                "Order insertion did not return an id",
                {"customerid": order.customerid},
            )
        return row["id"]

    @staticmethod
    def _insert_line_items(cur, order_id: int, items: list[NewLineItem]) -> None:
        """Insert every line item of `order_id`, numbered from 1 in input order."""
        if not items:
            return
        sql = """
            INSERT INTO orderdetail (orderid, position, productid, unitprice, quantity, discount)
            VALUES (%s, %s, %s, %s, %s, %s);
        """
        rows = []
        for position, item in enumerate(items, start=1):
            key = LineItemKey(order_id, position)
            rows.append((
                key.order_id, key.position, item.productid,
                item.unitprice, item.quantity, item.discount,
            ))
        cur.executemany(sql, rows)
