"""
Two-tier caching: an in-process volatile tier backed by an
arena-style expiring store, and a durable SQL tier.
"""
