"""Exception types for the option ledger and pool engine.

Every failure aborts the whole call; engines never catch these themselves.
Errors carry the structured fields that caused them so callers can inspect
`err.market`, `err.required`, etc. instead of parsing messages.
"""

from __future__ import annotations

from typing import Any


class OptionPoolError(Exception):
    """Base class for every error raised by `optionpool`."""


# -- Input validation ---------------------------------------------------------

class InputError(OptionPoolError):
    """Rejected before any state is read."""


class ZeroInput(InputError):
    def __init__(self, name: str = "amount") -> None:
        self.name = name
        super().__init__(f"{name} must be non-zero")


class ZeroAddress(InputError):
    def __init__(self, name: str = "address") -> None:
        self.name = name
        super().__init__(f"{name} must be a non-empty address")


class InvalidMaturity(InputError):
    def __init__(self, maturity: Any) -> None:
        self.maturity = maturity
        super().__init__(f"maturity must fit in uint96: {maturity!r}")


class InvalidMode(InputError):
    def __init__(self, mode: Any, operation: str) -> None:
        self.mode = mode
        self.operation = operation
        super().__init__(f"invalid mode for {operation}: {mode!r}")


class InvalidChoice(InputError):
    """The choice resolver returned a split that does not satisfy the request."""

    def __init__(self, long0: int, long1: int, required: int, reason: str) -> None:
        self.long0 = long0
        self.long1 = long1
        self.required = required
        self.reason = reason
        super().__init__(f"invalid long split ({long0}, {long1}) for {required}: {reason}")


class NotOwner(InputError):
    def __init__(self, caller: str) -> None:
        self.caller = caller
        super().__init__(f"caller {caller!r} is not the protocol owner")


# -- Temporal -----------------------------------------------------------------

class TemporalError(OptionPoolError):
    """Operation attempted on the wrong side of maturity."""

    def __init__(self, maturity: int, now: int, message: str) -> None:
        self.maturity = maturity
        self.now = now
        super().__init__(message)


class AlreadyMatured(TemporalError):
    def __init__(self, maturity: int, now: int) -> None:
        super().__init__(maturity, now, f"market matured at {maturity} (now={now})")


class NotYetMatured(TemporalError):
    def __init__(self, maturity: int, now: int) -> None:
        super().__init__(maturity, now, f"market matures at {maturity} (now={now})")


# -- Arithmetic ---------------------------------------------------------------

class MathError(OptionPoolError):
    """Raised inside the math layer and propagated unmodified."""


class Overflow(MathError, OverflowError):
    def __init__(self, value: int | None = None, bits: int = 256) -> None:
        self.value = value
        self.bits = bits
        super().__init__(f"result does not fit in {bits} bits")


class Underflow(MathError, ArithmeticError):
    def __init__(self, minuend: int, subtrahend: int) -> None:
        self.minuend = minuend
        self.subtrahend = subtrahend
        super().__init__(f"underflow: {minuend} - {subtrahend}")


class DivideByZero(MathError, ZeroDivisionError):
    def __init__(self) -> None:
        super().__init__("division by zero")


class DivideOverflow(MathError, OverflowError):
    def __init__(self, divisor: int) -> None:
        self.divisor = divisor
        super().__init__(f"quotient exceeds 256 bits (divisor={divisor})")


# -- State --------------------------------------------------------------------

class StateError(OptionPoolError):
    """The request is well-formed but the current state cannot satisfy it."""


class PoolNotInitialized(StateError):
    def __init__(self, market: Any) -> None:
        self.market = market
        super().__init__(f"pool not initialized: {market}")


class PoolAlreadyInitialized(StateError):
    def __init__(self, market: Any) -> None:
        self.market = market
        super().__init__(f"pool already initialized: {market}")


class InsufficientPosition(StateError):
    def __init__(self, market: Any, owner: str, position: Any, balance: int, requested: int) -> None:
        self.market = market
        self.owner = owner
        self.position = position
        self.balance = balance
        self.requested = requested
        super().__init__(
            f"{owner!r} holds {balance} {getattr(position, 'name', position)}, needs {requested}"
        )


class InsufficientLiquidity(StateError):
    def __init__(self, market: Any, available: int, requested: int) -> None:
        self.market = market
        self.available = available
        self.requested = requested
        super().__init__(f"liquidity {available} cannot cover {requested}")


class InsufficientBalance(StateError):
    def __init__(self, holder: str, asset: Any, balance: int, requested: int) -> None:
        self.holder = holder
        self.asset = asset
        self.balance = balance
        self.requested = requested
        super().__init__(f"{holder!r} holds {balance} of {asset}, needs {requested}")


# -- Settlement ---------------------------------------------------------------

class NotEnoughReceived(OptionPoolError):
    """The settlement hook returned without delivering the required amount."""

    def __init__(self, asset: Any, required: int, received: int) -> None:
        self.asset = asset
        self.required = required
        self.received = received
        super().__init__(f"required {required} of {asset}, received {received}")


class InvariantViolation(OptionPoolError):
    """A post-state failed one of its invariants; the call is rolled back."""

    def __init__(self, market: Any, violated: list) -> None:
        self.market = market
        self.violated = list(violated)
        super().__init__(f"invariants violated for {market}: {', '.join(self.violated)}")
