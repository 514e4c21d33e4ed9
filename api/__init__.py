"""
HTTP layer

Thin FastAPI routers: resolve identity, call a manager, translate
LedgerException into HTTP responses.
"""
