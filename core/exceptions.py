"""
Ledger exceptions

Every business rule violation raised by the managers lives here so the API
layer can translate them in one place (see api/errors.py).
"""


class LedgerException(Exception):
    """Base class for all ledger exceptions"""
    pass


# ============ Lookup ============

class NotFound(LedgerException):
    """Resource does not exist, or the caller may not know that it exists"""
    pass


class GroupNotFound(NotFound):
    def __init__(self, group_id):
        self.group_id = group_id
        super().__init__(f"Group {group_id} not found")


class TableNotFound(NotFound):
    def __init__(self, table_id):
        self.table_id = table_id
        super().__init__(f"Table {table_id} not found")


class PlayerNotFound(NotFound):
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} not found")


class BuyInNotFound(NotFound):
    def __init__(self, buy_in_id):
        self.buy_in_id = buy_in_id
        super().__init__(f"Buy-in {buy_in_id} not found")


class MemberNotFound(NotFound):
    def __init__(self, group_id, user_id):
        self.group_id = group_id
        self.user_id = user_id
        super().__init__(f"User {user_id} is not a member of group {group_id}")


# ============ Permissions ============

class Forbidden(LedgerException):
    """Caller's role is not high enough for the operation"""
    def __init__(self, message="Forbidden"):
        super().__init__(message)


# ============ Amounts & settings ============

class InvalidInput(LedgerException):
    """Request data fails a business validation rule"""
    pass


class InvalidAmount(InvalidInput):
    """Amount is missing, not a number, or outside its allowed range"""
    pass


class InvalidTableSettings(InvalidInput):
    """Blind structure or minimum buy-in violates the table invariants"""
    pass


# ============ Lifecycle ============

class PlayerInactive(LedgerException):
    """Player has cashed out; reactivate before recording more money"""
    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} is not active")


class TableClosed(LedgerException):
    """Table is closed; reopen it before changing the ledger"""
    def __init__(self, table_id):
        self.table_id = table_id
        super().__init__(f"Table {table_id} is closed")


class UnbalancedTable(LedgerException):
    """
    Table cannot be closed

    Carries the computed balance so the operator can find the discrepancy.
    """
    def __init__(self, table_id, total_buy_ins, settled_out, difference, active_players=0):
        self.table_id = table_id
        self.total_buy_ins = total_buy_ins
        self.settled_out = settled_out
        self.difference = difference
        self.active_players = active_players
        if active_players:
            reason = f"{active_players} player(s) still active"
        else:
            reason = f"difference is {difference}"
        super().__init__(f"Table {table_id} cannot be closed: {reason}")


class InvalidStateTransition(LedgerException):
    """Illegal state machine transition"""
    pass


# ============ Conflicts ============

class DuplicateConflict(LedgerException):
    """An entity with the same identity already exists"""
    pass


class GroupHasTables(LedgerException):
    """Group still owns tables and cannot be deleted"""
    def __init__(self, group_id, table_count):
        self.group_id = group_id
        self.table_count = table_count
        super().__init__(
            f"Group {group_id} still has {table_count} table(s) assigned to it"
        )


class LastOwner(LedgerException):
    """Operation would leave the group without an owner"""
    pass
