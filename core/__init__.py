"""
Core business logic

This package holds every rule that changes ledger state:
- State machines: the only place table/player status flips
- Managers: table, player and group lifecycles
- Permissions: the group role resolver consulted by every manager
- Locks: row-level locking helpers
"""
