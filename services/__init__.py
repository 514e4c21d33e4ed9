"""
Service layer

Pure computation, no state transitions:
- money: amount coercion and aggregation
- ledger_service: table balance and closure validation
- food_rotation_service: whose turn it is to order food
- statistics_service: per-player results over closed tables
- notification_service: fire-and-forget group signals
"""
