"""
Application layer package.

Contains use cases that orchestrate domain logic.
Each use case is a single class whose entry point is ``execute``.
External systems are reached through domain ports; the only concrete
infrastructure used here is the in-process cache package.
"""
