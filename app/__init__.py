"""
Poolcast: volume prediction and pattern detection for liquidity pools.

Application package root. This is a modular monolith using
hexagonal architecture (ports & adapters) with domain-driven design.

Bounded contexts:
    - analytics: Volume forecasting, pattern detection, market regime,
      trading recommendations.

Layers:
    - domain: Pure business logic, entities, ports (ABCs), errors.
    - application: Use cases, DTOs, orchestration, maintenance jobs.
    - infrastructure: Adapters (HTTP, SQL, caches) implementing domain ports.
    - interfaces: FastAPI routers, Pydantic schemas.
    - shared: Cross-cutting concerns (errors, security, logging).
"""
