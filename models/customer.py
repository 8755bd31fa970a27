"""
models/customer.py
------------------
Domain model for customers.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Customer:
    """
    A customer company.

    Attributes:
        id: Short customer code (e.g. 'ALFKI').
        ordercount: Number of orders placed; only set on list reads.
    """
    id: str
    companyname: str
    contactname: Optional[str] = None
    contacttitle: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    ordercount: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.id} | {self.companyname} | {self.contactname or '-'}"
