"""
Infrastructure adapters for the volume analytics bounded context.

Each adapter implements a domain port (ABC) and connects
to external systems: the transaction history API, the database,
and the in-process whale alert feed.
"""
