"""How far a trip is from being settled up."""
import math
from typing import Iterable

from tripsplit.schemas import SettlementProgress
from tripsplit.services.shares import PaymentRecord


def settlement_progress(total_expenses: float, payments: Iterable[PaymentRecord]) -> SettlementProgress:
    settled = math.fsum(p.amount for p in payments if p.counts)
    if total_expenses > 0:
        percentage = min(settled / total_expenses * 100, 100.0)
    else:
        percentage = 0.0
    return SettlementProgress(
        settled=round(settled, 2),
        total=round(total_expenses, 2),
        remaining=round(max(total_expenses - settled, 0.0), 2),
        percentage=round(percentage, 1),
        fully_settled=percentage >= 100,
    )
