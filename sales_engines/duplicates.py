"""
Duplicate-payment candidates.

Two payments on the same document are candidates when they share amount,
method and payment date truncated to the configured granularity.  The
result is advisory: nothing is ever deleted from it.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sales_kernel.domain.records import PaymentRecord
from sales_engines.tracer import traced_engine
from sales_engines.types import DuplicateGranularity, DuplicatePaymentGroup


def truncate_timestamp(moment: datetime, granularity: DuplicateGranularity) -> str:
    if granularity is DuplicateGranularity.MINUTE:
        return moment.strftime("%Y-%m-%dT%H:%M")
    if granularity is DuplicateGranularity.HOUR:
        return moment.strftime("%Y-%m-%dT%H")
    return moment.date().isoformat()


@traced_engine("duplicate_payments", "1.0", fingerprint_fields=("granularity",))
def find_duplicate_payments(
    *,
    payments: Iterable[PaymentRecord],
    granularity: DuplicateGranularity = DuplicateGranularity.DAY,
) -> tuple[DuplicatePaymentGroup, ...]:
    """
    Group payments by (document, amount, method, truncated date).

    Returns only groups of two or more, ordered by document, period and
    amount.  Amounts compare by value, so 100 and 100.00 match.
    """
    granularity = DuplicateGranularity(granularity)
    groups: dict[tuple[UUID, Decimal, str, str], list[PaymentRecord]] = defaultdict(list)
    for payment in payments:
        key = (
            payment.document_id,
            payment.amount.normalize(),
            payment.method,
            truncate_timestamp(payment.paid_at, granularity),
        )
        groups[key].append(payment)

    result = [
        DuplicatePaymentGroup(
            document_id=document_id,
            amount=members[0].amount,
            method=method,
            period=period,
            payment_ids=tuple(p.id for p in sorted(members, key=lambda p: (p.paid_at, str(p.id)))),
        )
        for (document_id, _amount, method, period), members in groups.items()
        if len(members) > 1
    ]
    result.sort(key=lambda g: (str(g.document_id), g.period, g.amount))
    return tuple(result)
