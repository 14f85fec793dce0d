"""Metrics engine: summary statistics over a list of denormalized transactions.

Sums, extremes and the balance are taken over integer cents and converted
to dollars once at the end, so exact-cent data gives exact results.
"""

from typing import Sequence

from ..schemas import TransactionMetrics, TransactionView
from .normalizer import from_cents, to_cents, to_date


def _day_count(first: TransactionView, last: TransactionView) -> int:
    """Inclusive day span between two transactions, taken as given (not sorted)."""
    return (to_date(last.date) - to_date(first.date)).days + 1


def _ratio(cents: int, divisor: int) -> float:
    return cents / divisor / 100


def compute_metrics(transactions: Sequence[TransactionView]) -> TransactionMetrics:
    """Summarise ``transactions``, which the caller must order by date.

    Only the first and last rows are used for ``day_count``. An empty input
    yields metrics with every field None, so "no data" stays distinct from
    data that nets to zero.
    """
    if not transactions:
        return TransactionMetrics()

    cents = [(to_cents(t.amount), t.category_multiplier) for t in transactions]
    positive = [c for c, mult in cents if mult > 0]
    negative = [c for c, mult in cents if mult < 0]

    net_positive = sum(positive)
    net_negative = sum(negative)
    day_count = _day_count(transactions[0], transactions[-1])

    return TransactionMetrics(
        transaction_count=len(transactions),
        positive_transaction_count=len(positive),
        negative_transaction_count=len(negative),
        merchant_count=len({t.merchant_name for t in transactions}),
        category_count=len({t.category_name for t in transactions}),
        day_count=day_count,
        balance=from_cents(sum(c * mult for c, mult in cents)),
        net_positive=from_cents(net_positive),
        net_negative=from_cents(net_negative),
        # No rows on a side means no meaningful average; never report 0
        average_positive=_ratio(net_positive, len(positive)) if positive else None,
        average_negative=_ratio(net_negative, len(negative)) if negative else None,
        maximum_negative=from_cents(max(negative)) if negative else None,
        minimum_negative=from_cents(min(negative)) if negative else None,
        # day_count < 1 only happens for input that is not in date order
        positive_per_day=_ratio(net_positive, day_count) if day_count > 0 else None,
        negative_per_day=_ratio(net_negative, day_count) if day_count > 0 else None,
    )
