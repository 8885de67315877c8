"""Errors raised by the balance engine."""


class BalanceError(Exception):
    """Base class for everything the engine can refuse to compute."""


class InvalidExpenseError(BalanceError):
    def __init__(self, expense_id, reason: str):
        self.expense_id = expense_id
        self.reason = reason
        super().__init__(f"Expense {expense_id} is invalid: {reason}")


class UnknownParticipantError(BalanceError):
    def __init__(self, participant_id, context: str = ""):
        self.participant_id = participant_id
        self.context = context
        msg = f"Unknown participant {participant_id!r}"
        if context:
            msg += f" ({context})"
        super().__init__(msg)


class ZeroShareError(BalanceError):
    def __init__(self, expense_id):
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} has a split group with zero total shares")
