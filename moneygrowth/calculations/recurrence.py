"""
Recurring Transactions

A transaction with a frequency stands for a series of payments. The
accounting views, reports and CSV export work on the EXPANDED list:
one instance per occurrence in the year being looked at.

Each instance carries an instance id so the user can exclude a single
occurrence (e.g. a skipped monthly payment) without touching the series.
"""

import calendar
from datetime import date
from typing import Iterable, Optional

from moneygrowth.models.finance import Frequency, Transaction

# 0-based months in which each frequency occurs
_FREQUENCY_MONTHS: dict[Frequency, tuple[int, ...]] = {
    Frequency.MONTHLY: tuple(range(12)),
    Frequency.QUARTERLY: (0, 3, 6, 9),
    Frequency.SEMIANNUALLY: (0, 6),
}

_MONTHS_PER_PERIOD: dict[Frequency, int] = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.SEMIANNUALLY: 6,
    Frequency.ANNUALLY: 12,
}


class TransactionInstance(Transaction):
    """One occurrence of a transaction inside a given year."""

    instance_id: str


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def instance_id_for(transaction_id: str, year: int, month_index: int) -> str:
    """Id of a recurring occurrence; month_index is 0-based."""
    return f"{transaction_id}|{year}-{month_index}"


def _make_instance(
    transaction: Transaction,
    on: date,
    instance_id: str,
    excluded: dict[str, bool],
) -> TransactionInstance:
    data = transaction.model_dump()
    data.update(
        date=on,
        instance_id=instance_id,
        is_excluded=bool(excluded.get(instance_id) or transaction.is_excluded),
    )
    return TransactionInstance(**data)


def occurrence_months(transaction: Transaction) -> tuple[int, ...]:
    """0-based months in which a recurring transaction falls."""
    if transaction.frequency == Frequency.ANNUALLY:
        return (transaction.date.month - 1,)
    return _FREQUENCY_MONTHS.get(transaction.frequency, ())


def expand_transactions_for_year(
    transactions: Iterable[Transaction],
    year: int,
    excluded: Optional[dict[str, bool]] = None,
) -> list[TransactionInstance]:
    """
    Expand transactions into the instances that fall in `year`.

    Recurring transactions occur on their own day of the month, moved
    to the last day in shorter months (the 31st falls on April 30th),
    and nothing is generated before the month the series starts.
    One-off transactions are kept only if dated in `year`, with the
    instance id "{id}|{date}".
    """
    excluded = excluded or {}
    instances: list[TransactionInstance] = []

    for tx in transactions:
        if tx.frequency is None:
            if tx.date.year == year:
                instance_id = f"{tx.id}|{tx.date.isoformat()}"
                instances.append(_make_instance(tx, tx.date, instance_id, excluded))
            continue

        if year < tx.date.year:
            continue

        for month_index in occurrence_months(tx):
            month = month_index + 1
            if (year, month) < (tx.date.year, tx.date.month):
                continue
            day = min(tx.date.day, calendar.monthrange(year, month)[1])
            instance_id = instance_id_for(tx.id, year, month_index)
            instances.append(
                _make_instance(tx, date(year, month, day), instance_id, excluded)
            )

    return instances


def instances_in_month(
    instances: Iterable[TransactionInstance],
    year: int,
    month: int,
    include_excluded: bool = False,
) -> list[TransactionInstance]:
    """Instances dated in the given month (1-based)."""
    return [
        i for i in instances
        if i.date.year == year
        and i.date.month == month
        and (include_excluded or not i.is_excluded)
    ]


def monthly_equivalent(
    amount: float,
    frequency: Optional[Frequency],
    prorate_over_months: Optional[int] = None,
) -> float:
    """
    Monthly share of a recurring amount.

    An annual payment split over N months ("fraccionado") counts as
    amount / N; otherwise the amount is spread over its period.
    """
    if frequency == Frequency.ANNUALLY and prorate_over_months and prorate_over_months > 1:
        return amount / prorate_over_months
    if frequency is None:
        return amount
    return amount / _MONTHS_PER_PERIOD[frequency]
