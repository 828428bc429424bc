from __future__ import annotations


class LifeRPGError(Exception):
    """Base class for errors raised by the progression engine."""


class ValidationError(LifeRPGError):
    pass


class ItemNotFoundError(LifeRPGError):
    def __init__(self, kind: str, item_id: str) -> None:
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"Unknown {kind}: {item_id}")


class InsufficientFundsError(LifeRPGError):
    """Raised when a purchase would cost more than the current balance.

    Attributes:
        balance: Balance at the time of the attempt
        cost: Amount requested
        shortfall: How much more currency is needed
    """

    def __init__(self, balance: int, cost: int) -> None:
        self.balance = balance
        self.cost = cost
        self.shortfall = cost - balance
        super().__init__("Not enough coins")


class CooldownActiveError(LifeRPGError):
    def __init__(self, item_name: str, cooldown_days: int) -> None:
        self.item_name = item_name
        self.cooldown_days = cooldown_days
        super().__init__(f"{item_name} is on a {cooldown_days}-day cooldown")


class AlreadyCompletedError(LifeRPGError):
    pass


class RerollUnavailableError(LifeRPGError):
    pass


class CrossDayUndoError(LifeRPGError):
    def __init__(self, entry_day: str, today: str) -> None:
        self.entry_day = entry_day
        self.today = today
        super().__init__("Only today's completions can be undone")


class UndoNotSupportedError(LifeRPGError):
    pass


class ImportFailedError(LifeRPGError):
    pass


class StorageError(LifeRPGError):
    """Raised when the state store cannot load, save or clear.

    Never converted into a user message by the session layer; the action that
    triggered it is not durable.
    """


class UnsupportedSchemaError(StorageError):
    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"Stored state uses schema {version}, newer than this build can run")
