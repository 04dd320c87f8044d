import re

# Checked top to bottom. Wallets come before card rules so that
# "PAYPAL PAYMENT" is not read as a card, and direct debits before transfers.
PAYMENT_METHOD_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("PayPal", ("paypal",)),
    ("Apple Pay", ("apple pay",)),
    ("Google Pay", ("google pay",)),
    ("Credit Card", ("visa", "mastercard", "amex", "credit card")),
    ("Debit Card", ("debit card", "card payment")),
    ("Direct Debit", ("direct debit",)),
    ("Bank Transfer", ("bank transfer", "faster payment", "standing order", "bacs")),
    ("Cash", ("atm", "cash withdrawal")),
)

_RULE_PATTERNS = tuple(
    (method, re.compile(r"\b(?:" + "|".join(re.escape(k) for k in keywords) + r")\b"))
    for method, keywords in PAYMENT_METHOD_RULES
)


def extract_payment_method(description: str) -> str | None:
    lowered = (description or "").lower()
    for method, pattern in _RULE_PATTERNS:
        if pattern.search(lowered):
            return method
    return None
