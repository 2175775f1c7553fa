"""Transaction accumulator: per-account, per-commodity balance changes.

A :class:`Transaction` starts empty (date + description) and is mutated by
operations in arrival order. Each account maps to a list of
:class:`~ledger_compose.models.Amount` kept sorted by commodity with at most
one entry per commodity; the merge is an explicit insert-or-merge step
(:func:`merge_amount`) so the invariant can be tested on its own.
"""

from __future__ import annotations

import bisect
import datetime as dt
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal

from .models import EXACT, Amount


def merge_amount(bucket: list[Amount], amount: Amount) -> None:
    """Add ``amount`` into ``bucket`` in place, keeping it sorted by commodity.

    An existing entry for the same commodity is summed. A sum of exactly zero
    removes the entry, so ``bucket`` never holds zero amounts.
    """

    keys = [a.commodity for a in bucket]
    i = bisect.bisect_left(keys, amount.commodity)
    if i < len(bucket) and bucket[i].commodity == amount.commodity:
        total = EXACT.add(bucket[i].magnitude, amount.magnitude)
        if total == 0:
            del bucket[i]
        else:
            bucket[i] = Amount(amount.commodity, total)
    elif amount.magnitude != 0:
        bucket.insert(i, amount)


@dataclass(slots=True)
class Transaction:
    date: dt.date
    description: str
    changes: dict[str, list[Amount]] = field(default_factory=dict)

    def add_change(self, account: str, amount: Amount) -> None:
        bucket = self.changes.setdefault(account, [])
        merge_amount(bucket, amount)
        if not bucket:
            del self.changes[account]

    def add_split_change(self, account: str, split_account: str, amount: Amount) -> None:
        half = amount.half()
        self.add_change(account, half)
        self.add_change(split_account, half)

    def balance_map(self) -> dict[str, Decimal]:
        totals: dict[str, Decimal] = defaultdict(Decimal)
        for amounts in self.changes.values():
            for amount in amounts:
                totals[amount.commodity] = EXACT.add(totals[amount.commodity], amount.magnitude)
        return dict(totals)

    def balance(self) -> list[Amount]:
        """Net change per commodity across all accounts, sorted by commodity.

        Commodities whose postings cancel out still appear, with a zero value.
        """

        return sorted(Amount(c, m) for c, m in self.balance_map().items())

    def is_balanced(self) -> bool:
        return all(a.magnitude == 0 for a in self.balance())

    def finalize(self, account: str) -> None:
        """Post the negated balance of every commodity on ``account``.

        Buckets that reach zero are dropped, so finalizing on an account that
        already carries the whole imbalance removes that account, and
        :meth:`balance` no longer lists the commodity at all.
        """

        for amount in self.balance():
            self.add_change(account, -amount)

    def postings(self) -> list[tuple[str, Amount]]:
        """Return ``(account, amount)`` pairs in rendering order.

        Non-negative amounts come first, then negative ones; each group is
        ordered by account name, keeping commodity order within an account.
        """

        pairs = [(acct, a) for acct, amounts in self.changes.items() for a in amounts]
        credits = sorted((p for p in pairs if p[1].magnitude >= 0), key=lambda p: p[0])
        debits = sorted((p for p in pairs if p[1].magnitude < 0), key=lambda p: p[0])
        return credits + debits

    def render(self) -> str:
        header = f"{self.date:%Y-%m-%d} {self.description}".rstrip()
        lines = [header]
        lines.extend(f"\t{account}\t{amount}" for account, amount in self.postings())
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.render()


def render(transaction: Transaction) -> str:
    """Canonical ledger text for ``transaction``, every line ``\\n``-terminated."""

    return transaction.render()


__all__ = ["Transaction", "merge_amount", "render"]
