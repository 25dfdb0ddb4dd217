"""
Concurrent payments on one document.

Ten cashiers try to record 100 on a 500 document at the same moment.
Exactly five may succeed; the other five must be rejected as overpayments
and the stored balance must equal total minus the sum of the payments that
were actually recorded.

Runs on SQLite (writers serialized by BEGIN IMMEDIATE) and on PostgreSQL
(row lock on the document) when SALES_TEST_DATABASE_URL is set.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from sales_kernel.exceptions import ConcurrentModificationError, OverpaymentRejectedError
from sales_services import SalesLedgerApi

pytestmark = pytest.mark.slow_locks

WORKERS = 10


@pytest.fixture
def api(session_factory, deterministic_clock):
    return SalesLedgerApi(session_factory, clock=deterministic_clock)


class TestPaymentRace:
    def test_no_overpayment_under_contention(self, api, test_actor_id):
        doc = api.create_document("FAC-2024-0100", "FACTURE", "500", test_actor_id, center_id="C1")
        barrier = Barrier(WORKERS)

        def cashier(n):
            barrier.wait()
            try:
                api.apply_payment(doc.id, "100", "CASH", test_actor_id, reference=f"T{n}")
            except OverpaymentRejectedError:
                return "rejected"
            except ConcurrentModificationError:
                return "conflict"
            return "paid"

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            outcomes = list(pool.map(cashier, range(WORKERS)))

        assert outcomes.count("paid") == 5
        assert outcomes.count("rejected") == 5

        final = api.get_document(doc.id)
        payments = api.list_payments(doc.id)
        assert len(payments) == 5
        assert final.paid_to_date == Decimal("500")
        assert final.outstanding_balance == Decimal("0")
        assert final.status == "PAID"

    def test_concurrent_reversals_keep_balance_consistent(self, api, test_actor_id):
        doc = api.create_document("FAC-2024-0101", "FACTURE", "1000", test_actor_id, center_id="C1")
        payment_ids = [
            api.apply_payment(doc.id, "100", "CARD", test_actor_id).payment.id for _ in range(6)
        ]
        barrier = Barrier(len(payment_ids))

        def reverse(payment_id):
            barrier.wait()
            return api.reverse_payment(payment_id, test_actor_id)

        with ThreadPoolExecutor(max_workers=len(payment_ids)) as pool:
            list(pool.map(reverse, payment_ids))

        final = api.get_document(doc.id)
        assert final.payment_count == 0
        assert final.outstanding_balance == Decimal("1000")
        assert final.status == "VALIDATED"
