"""Suggest a short list of payments so everyone in a trip ends up settled."""
from tripsplit.schemas import SettlementItem

# Anything within a cent counts as settled.
EPSILON = 0.01


def compute_settlements(balances: dict[int, float]) -> list[SettlementItem]:
    """
    balances: participant_id -> net balance (positive = is owed money, negative = owes money).

    Greedy matching of the largest remaining creditor with the largest
    remaining debtor. Not optimal in every case, but it never needs more than
    (creditors + debtors - 1) transfers and is exact for the usual few-people trip.

    Amounts are left unrounded so that applying every suggestion brings each
    balance to within EPSILON of zero; round with `round_settlements` for display.
    """
    creditors = [[pid, bal] for pid, bal in balances.items() if bal > EPSILON]
    debtors = [[pid, bal] for pid, bal in balances.items() if bal < -EPSILON]
    creditors.sort(key=lambda x: (-x[1], x[0]))
    debtors.sort(key=lambda x: (x[1], x[0]))

    out: list[SettlementItem] = []
    i, j = 0, 0
    while i < len(creditors) and j < len(debtors):
        creditor, debtor = creditors[i], debtors[j]
        transfer = min(creditor[1], -debtor[1])
        if transfer > EPSILON:
            out.append(SettlementItem(
                from_participant_id=debtor[0],
                to_participant_id=creditor[0],
                amount=transfer,
            ))
        creditor[1] -= transfer
        debtor[1] += transfer
        if creditor[1] <= EPSILON:
            i += 1
        if debtor[1] >= -EPSILON:
            j += 1
    return out


def round_settlements(items: list[SettlementItem]) -> list[SettlementItem]:
    """
    Round suggestions to cents per creditor on the running total, so the
    rounded payments into one creditor add up to their rounded credit.
    """
    raw_in: dict[int, float] = {}
    shown_in: dict[int, int] = {}
    out = []
    for item in items:
        to = item.to_participant_id
        raw_in[to] = raw_in.get(to, 0.0) + item.amount
        cents = round(raw_in[to] * 100) - shown_in.get(to, 0)
        shown_in[to] = shown_in.get(to, 0) + cents
        out.append(item.model_copy(update={"amount": cents / 100}))
    return out
