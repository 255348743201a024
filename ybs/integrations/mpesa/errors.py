"""M-Pesa result code messages."""

MPESA_ERROR_MESSAGES = {
    "1": "Insufficient funds in your M-PESA account",
    "2": "Less than minimum transaction value",
    "3": "More than maximum transaction value",
    "4": "Would exceed daily transfer limit",
    "5": "Would exceed minimum balance",
    "6": "Unresolved primary party",
    "7": "Unresolved receiver party",
    "8": "Would exceed maximum balance",
    "11": "Debit account invalid",
    "12": "Credit account invalid",
    "13": "Unresolved debit account",
    "14": "Unresolved credit account",
    "15": "Duplicate detected",
    "17": "Internal failure",
    "20": "Unresolved initiator",
    "26": "Traffic blocked",
    "1001": "Balance would be below minimum",
    "1019": "Transaction failed",
    "9999": "Request timeout",
}


def get_mpesa_error_message(code: int | str | None) -> str:
    """User-facing message for a provider result code."""
    key = str(code) if code is not None else ""
    return MPESA_ERROR_MESSAGES.get(key, f"M-PESA error code: {key}")
