"""
db/init_db.py
-------------
Creates the database schema (tables) if they do not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db
"""

from db.connection import Store
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
-- Customers: companies that place orders
CREATE TABLE IF NOT EXISTS customer (
    id              VARCHAR(8) PRIMARY KEY,
    companyname     VARCHAR(100) NOT NULL,
    contactname     VARCHAR(100),
    contacttitle    VARCHAR(100),
    city            VARCHAR(60),
    country         VARCHAR(60),
    phone           VARCHAR(30)
);

-- Employees: staff members who take orders
CREATE TABLE IF NOT EXISTS employee (
    id              SERIAL PRIMARY KEY,
    firstname       VARCHAR(60) NOT NULL,
    lastname        VARCHAR(60) NOT NULL,
    title           VARCHAR(60)
);

-- Products: catalog entries referenced by order lines
CREATE TABLE IF NOT EXISTS product (
    id              SERIAL PRIMARY KEY,
    productname     VARCHAR(100) NOT NULL,
    quantityperunit VARCHAR(60),
    unitprice       NUMERIC(12,2) NOT NULL DEFAULT 0,
    discontinued    BOOLEAN DEFAULT FALSE
);

-- Orders placed by a customer and handled by an employee
CREATE TABLE IF NOT EXISTS customerorder (
    id              SERIAL PRIMARY KEY,
    customerid      VARCHAR(8) NOT NULL REFERENCES customer(id),
    employeeid      INT NOT NULL REFERENCES employee(id),
    orderdate       DATE NOT NULL DEFAULT CURRENT_DATE,
    requireddate    DATE,
    shippeddate     DATE,
    shipvia         INT,
    freight         NUMERIC(12,2) NOT NULL DEFAULT 0,
    shipname        VARCHAR(100),
    shipaddress     VARCHAR(200),
    shipcity        VARCHAR(60),
    shipregion      VARCHAR(60),
    shippostalcode  VARCHAR(20),
    shipcountry     VARCHAR(60)
);

-- Order lines: keyed by (order, 1-based position), owned by their order
CREATE TABLE IF NOT EXISTS orderdetail (
    orderid         INT NOT NULL REFERENCES customerorder(id) ON DELETE CASCADE,
    position        INT NOT NULL CHECK (position >= 1),
    productid       INT NOT NULL REFERENCES product(id),
    unitprice       NUMERIC(12,2) NOT NULL,
    quantity        INT NOT NULL CHECK (quantity > 0),
    discount        NUMERIC(4,3) NOT NULL DEFAULT 0 CHECK (discount >= 0 AND discount <= 1),
    PRIMARY KEY (orderid, position)
);

-- Indexes for faster queries
CREATE INDEX IF NOT EXISTS idx_customerorder_customer ON customerorder(customerid);
CREATE INDEX IF NOT EXISTS idx_customerorder_employee ON customerorder(employeeid);
CREATE INDEX IF NOT EXISTS idx_orderdetail_product ON orderdetail(productid);
"""


def create_tables(store: Store) -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    try:
        with store.transaction() as cur:
            cur.execute(SCHEMA_SQL)
    except Exception as e:
        logger.error(f"Failed to initialize schema: {e}")
        raise
    logger.info("Database schema initialized successfully.")


if __name__ == "__main__":
    store = Store.connect()
    try:
        create_tables(store)
    finally:
        store.close()
    print("Database schema created successfully.")
