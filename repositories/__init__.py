"""
repositories/ - Data Access Layer
==================================
Each repository encapsulates all SQL queries for a specific domain entity.
Repositories are constructed with a `db.connection.Store`, receive raw rows
from the database and return domain model objects.
"""
