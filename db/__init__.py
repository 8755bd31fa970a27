"""
db/ - Database Layer
====================
Handles PostgreSQL connection pooling, scoped sessions and transactions,
and schema initialization.
This layer is the lowest in the architecture and has no dependencies on other layers.
"""
