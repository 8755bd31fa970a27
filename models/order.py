"""
models/order.py
---------------
Domain models for customer orders and their line items.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass(frozen=True, order=True)
class LineItemKey:
    """
    Composite identifier of a line item: its order plus a 1-based position.

    Kept as two typed parts so an order id can never be confused with
    the separator; ``str()`` gives the display form ``"<order_id>/<position>"``.
    """
    order_id: int
    position: int

    def __str__(self) -> str:
        return f"{self.order_id}/{self.position}"


@dataclass
class NewLineItem:
    """Data for a line item created together with its order."""
    productid: int
    unitprice: float
    quantity: int
    discount: float = 0.0


@dataclass
class NewOrder:
    """
    Data for a new order. The id is generated by the database.

    Attributes:
        customerid: Customer placing the order.
        employeeid: Employee handling the order.
        shipvia: Carrier (shipper) id.
        requireddate: Date the customer needs the order by.
        freight: Shipping cost.
    """
    customerid: str
    employeeid: int
    shipcity: Optional[str] = None
    shipaddress: Optional[str] = None
    shipname: Optional[str] = None
    shipvia: Optional[int] = None
    shipregion: Optional[str] = None
    shipcountry: Optional[str] = None
    shippostalcode: Optional[str] = None
    requireddate: Optional[date] = None
    freight: float = 0.0


@dataclass
class Order:
    """
    A denormalized order as read from the database.

    Attributes:
        id: Database primary key.
        customername: Company name of the customer (joined in).
        employeename: "<first> <last>" of the employee (joined in).
        shippeddate: None until the order has shipped.
        subtotal: Sum of discounted line prices; only set on single-order reads.
    """
    id: int
    customerid: str
    employeeid: int
    customername: Optional[str] = None
    employeename: Optional[str] = None
    orderdate: Optional[date] = None
    requireddate: Optional[date] = None
    shippeddate: Optional[date] = None
    shipvia: Optional[int] = None
    freight: float = 0.0
    shipname: Optional[str] = None
    shipaddress: Optional[str] = None
    shipcity: Optional[str] = None
    shipregion: Optional[str] = None
    shippostalcode: Optional[str] = None
    shipcountry: Optional[str] = None
    subtotal: Optional[float] = None


@dataclass
class OrderLineItem:
    """
    A line item of an order, with its product joined in.

    `price` is unitprice * quantity before discount.
    """
    key: LineItemKey
    productid: int
    unitprice: float
    quantity: int
    discount: float = 0.0
    productname: Optional[str] = None
    quantityperunit: Optional[str] = None
    price: float = field(init=False)

    def __post_init__(self):
        self.price = self.unitprice * self.quantity

    @property
    def id(self) -> str:
        return str(self.key)

    @property
    def orderid(self) -> int:
        return self.key.order_id
