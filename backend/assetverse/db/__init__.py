"""Database Package — SQLAlchemy declarative Base.

Invariants:
    - Base is the single source of truth for table metadata
"""
