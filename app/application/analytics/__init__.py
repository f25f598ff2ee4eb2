"""
Application layer for the volume analytics bounded context.

Use cases coordinate domain services and ports to fulfill
business operations. Data sources are reached only through domain
ports; the in-process caches shared between use cases are built on the
cache package's ExpiringStore.
"""
