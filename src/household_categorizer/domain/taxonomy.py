from household_categorizer.models import TransactionType

CATEGORIES: tuple[str, ...] = (
    "Essentials",
    "Lifestyle",
    "Savings",
    "Income",
)

SUB_CATEGORIES: dict[str, tuple[str, ...]] = {
    "Essentials": (
        "Rent/Mortgage", "Utilities", "Groceries", "Transport",
        "Insurance", "Healthcare", "Debt Repayment",
    ),
    "Lifestyle": (
        "Dining Out", "Entertainment", "Shopping", "Travel",
        "Gifts", "Subscriptions", "Hobbies",
    ),
    "Savings": (
        "Emergency Fund", "Retirement", "Investment", "Property",
        "Education", "Future Goals",
    ),
    "Income": (
        "Salary", "Side Hustle", "Investment Income", "Rental Income",
        "Benefits", "Gifts Received", "Tax Refund",
    ),
}

# Keywords used when a reviewer moves a row to another category and the
# subcategory has to follow. Order matters: first keyword hit wins.
SUBCATEGORY_KEYWORDS: dict[str, dict[str, tuple[str, ...]]] = {
    "Essentials": {
        "Rent/Mortgage": ("mortgage", "rent", "housing"),
        "Utilities": ("utility", "water", "electric", "gas", "internet", "phone", "council tax", "broadband"),
        "Groceries": ("grocery", "supermarket", "tesco", "sainsbury", "asda", "morrisons", "aldi", "lidl",
                      "waitrose", "food"),
        "Transport": ("transport", "train", "bus", "tube", "oyster", "fuel", "petrol", "parking", "car"),
        "Insurance": ("insurance", "protect", "cover"),
        "Healthcare": ("healthcare", "pharmacy", "doctor", "dental", "medical"),
        "Debt Repayment": ("loan", "repayment", "credit card", "debt"),
    },
    "Lifestyle": {
        "Dining Out": ("restaurant", "cafe", "coffee", "takeaway", "food", "dining", "meal"),
        "Entertainment": ("cinema", "theatre", "entertainment", "movie", "concert", "game"),
        "Shopping": ("shopping", "amazon", "ebay", "clothes", "purchase", "buy"),
        "Travel": ("travel", "holiday", "hotel", "flight", "booking", "vacation"),
        "Gifts": ("gift", "present", "charity", "donation"),
        "Subscriptions": ("subscription", "netflix", "spotify", "apple", "disney", "membership"),
        "Hobbies": ("hobby", "gym", "sport", "class", "activity", "leisure"),
    },
    "Savings": {
        "Emergency Fund": ("emergency", "rainy day", "backup"),
        "Retirement": ("retirement", "pension", "annuity"),
        "Investment": ("investment", "stock", "share", "fund", "portfolio", "trading"),
        "Property": ("property", "house", "deposit", "down payment"),
        "Education": ("education", "school", "tuition", "course", "learning"),
        "Future Goals": ("future", "goal", "target", "milestone"),
    },
    "Income": {
        "Salary": ("salary", "wage", "pay", "income", "employment"),
        "Side Hustle": ("freelance", "gig", "side", "extra work", "contract"),
        "Investment Income": ("dividend", "interest", "investment income", "return"),
        "Rental Income": ("rent received", "tenant", "rental"),
        "Benefits": ("benefit", "universal credit", "allowance", "credit", "support"),
        "Gifts Received": ("gift received", "money gift"),
        "Tax Refund": ("tax refund", "hmrc", "rebate"),
    },
}

FALLBACK_CATEGORY = "Essentials"
INVALID_ROW_SUBCATEGORY = "Miscellaneous"


def first_subcategory(category: str) -> str:
    subcategories = SUB_CATEGORIES.get(category, ())
    return subcategories[0] if subcategories else ""


def suggest_subcategory(category: str, description: str) -> str:
    if not SUB_CATEGORIES.get(category):
        return ""

    lowered = (description or "").lower()
    for subcategory, keywords in SUBCATEGORY_KEYWORDS.get(category, {}).items():
        for keyword in keywords:
            if keyword in lowered:
                return subcategory

    return first_subcategory(category)


def transaction_type(amount: float) -> TransactionType:
    return "income" if amount >= 0 else "expense"
