"""
repositories/customer_repo.py
-----------------------------
Data access layer for customer records.
"""

from typing import Optional

from db.connection import Store
from errors import NotFound, translating_read_errors
from models.customer import Customer
from models.options import OptionsLike, with_defaults
from repositories.query_builder import build_collection_query, build_filter_clause

_CUSTOMER_COLUMNS = "c.id, c.companyname, c.contactname, c.contacttitle, c.city, c.country, c.phone"

CUSTOMER_SORTABLE = {
    "id": "c.id",
    "companyname": "c.companyname",
    "contactname": "c.contactname",
    "city": "c.city",
    "country": "c.country",
    "ordercount": "count(co.id)",
}

# Fields the free-text filter searches.
CUSTOMER_FILTER_FIELDS = ("c.contactname", "c.companyname")


class CustomerReader:
    """Read-only queries over the customer table."""

    def __init__(self, store: Store):
        self.store = store

    def list_customers(
        self, filter: Optional[str] = None, options: OptionsLike = None
    ) -> list[Customer]:
        """
        Fetch customers with the number of orders each has placed.

        Args:
            filter: Optional case-insensitive substring of the contact
                name or company name.
            options: Pagination/sort options.

        Returns:
            List of Customer objects with `ordercount` set.
        """
        opts = with_defaults(options)
        where = build_filter_clause(CUSTOMER_FILTER_FIELDS, filter) if filter else None
        sql, params = build_collection_query(
            f"""
            SELECT {_CUSTOMER_COLUMNS}, count(co.id) AS ordercount
            FROM customer AS c
            LEFT JOIN customerorder AS co ON co.customerid = c.id
            """,
            CUSTOMER_SORTABLE,
            opts,
            where=where,
            group_by="c.id",
        )
        with translating_read_errors("customers", {"filter": filter}):
            with self.store.cursor() as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
        return [self._row_to_customer(r) for r in rows]

    def get_customer(self, customer_id: str) -> Customer:
        """
        Fetch a single customer.

        Raises:
            NotFound: If no customer has this id.
        """
        sql = f"SELECT {_CUSTOMER_COLUMNS} FROM customer AS c WHERE c.id = %s;"
        with translating_read_errors(
            f"Customer {customer_id!r}", {"customer_id": customer_id}, bad_key_is_missing=True
        ):
            with self.store.cursor() as cur:
                cur.execute(sql, (customer_id,))
                row = cur.fetchone()
        if row is None:
            raise NotFound(f"Customer {customer_id!r} not found", {"customer_id": customer_id})
        return self._row_to_customer(row)

    @staticmethod
    def _row_to_customer(row: dict) -> Customer:
        """Convert a database row mapping to a Customer domain object."""
        ordercount = row.get("ordercount")
        return Customer(
            id=row["id"],
            companyname=row["companyname"],
            contactname=row.get("contactname"),
            contacttitle=row.get("contacttitle"),
            city=row.get("city"),
            country=row.get("country"),
            phone=row.get("phone"),
            ordercount=int(ordercount) if ordercount is not None else None,
        )
