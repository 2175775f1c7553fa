"""Value types shared across ``ledger_compose``.

- :class:`Amount`: a commodity symbol paired with an exact ``Decimal``.
- Operations (:class:`SimpleChange`, :class:`SplitChange`, :class:`Finalize`):
  the immutable results of parsing one change command. Each knows how to apply
  itself to a :class:`~ledger_compose.transaction.Transaction` and nothing else.
- :class:`DateOffset`: a validated ``(date, byte offset)`` pair as supplied by
  the oracle and consumed by the insertion engine.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from decimal import Context, Decimal, DivisionByZero, Inexact, InvalidOperation, Overflow
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .transaction import Transaction

_ZERO = Decimal(0)
_TWO = Decimal(2)

# Amounts are capped at MAX_AMOUNT_DIGITS by the parser, so sums and halves of
# them fit well inside this precision. Rounding would raise instead of
# silently changing a posting.
EXACT = Context(prec=1000, traps=[InvalidOperation, DivisionByZero, Overflow, Inexact])
MAX_AMOUNT_DIGITS = 64


@dataclass(frozen=True, slots=True, order=True)
class Amount:
    """A signed quantity of one commodity.

    Ordering compares ``commodity`` first and ``magnitude`` second, which is the
    order postings are kept in within an account.
    """

    commodity: str
    magnitude: Decimal

    def __neg__(self) -> Amount:
        # Subtract from zero instead of ``-x`` so negating zero never yields ``-0``.
        return Amount(self.commodity, EXACT.subtract(_ZERO, self.magnitude))

    def __str__(self) -> str:
        # Fixed-point always; ledger does not read exponent notation.
        return f"{self.commodity} {self.magnitude:f}"

    def half(self) -> Amount:
        return Amount(self.commodity, EXACT.divide(self.magnitude, _TWO))


@dataclass(frozen=True, slots=True)
class SimpleChange:
    account: str
    amount: Amount

    def apply(self, transaction: Transaction) -> None:
        transaction.add_change(self.account, self.amount)


@dataclass(frozen=True, slots=True)
class SplitChange:
    """One amount divided evenly between two accounts."""

    account: str
    split_account: str
    amount: Amount

    def apply(self, transaction: Transaction) -> None:
        transaction.add_split_change(self.account, self.split_account, self.amount)


@dataclass(frozen=True, slots=True)
class Finalize:
    """Post whatever is needed on ``account`` to bring the balance to zero."""

    account: str

    def apply(self, transaction: Transaction) -> None:
        transaction.finalize(self.account)


type Operation = SimpleChange | SplitChange | Finalize
"""Any operation the command parser can produce."""


def apply(transaction: Transaction, operation: Operation) -> None:
    """Apply ``operation`` to ``transaction`` in place."""

    operation.apply(transaction)


class DateOffset(BaseModel):
    """End offset of the last existing entry for ``date`` in the ledger file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    date: dt.date
    offset: int = Field(ge=0)


__all__ = [
    "Amount",
    "SimpleChange",
    "SplitChange",
    "Finalize",
    "Operation",
    "apply",
    "DateOffset",
]
