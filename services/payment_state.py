"""Payment result mapping: Daraja ResultCode -> (loan status, tracker state)."""

RESULT_SUCCESS = 0
RESULT_CANCELLED_BY_USER = 1032

# Loan statuses touched by the payment lifecycle
STATUS_PENDING = "PENDING"
STATUS_PAID = "PAID"
STATUS_CANCELLED = "CANCELLED"
STATUS_FAILED = "FAILED"

# Tracker states
STATE_PENDING = "pending"
STATE_SUCCESS = "success"
STATE_CANCELLED = "cancelled"
STATE_FAILED = "failed"

PAYMENT_OUTCOMES = {
    RESULT_SUCCESS: (STATUS_PAID, STATE_SUCCESS),
    RESULT_CANCELLED_BY_USER: (STATUS_CANCELLED, STATE_CANCELLED),
}


def payment_outcome(result_code: int) -> tuple[str, str]:
    return PAYMENT_OUTCOMES.get(result_code, (STATUS_FAILED, STATE_FAILED))
