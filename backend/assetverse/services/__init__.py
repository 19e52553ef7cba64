"""Services Layer — the imperative shell around the pure core.

Invariants:
    - Component services (ledger, tracker, registry, gate) only flush
    - Orchestrators (request workflow, direct assignment, loan release,
      catalog, directory) own the transaction boundary

Design Decisions:
    - One service per concern; orchestrators compose components explicitly
"""
