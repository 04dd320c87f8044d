from collections.abc import Sequence

from household_categorizer.domain.text import matches_patterns
from household_categorizer.models import CategorizationResult, Correction, MerchantMapping

from .base import Classifier


def _m(name: str, patterns: tuple[str, ...], category: str, subcategory: str, confidence: float) -> MerchantMapping:
    return MerchantMapping(
        name=name,
        patterns=patterns,
        category=category,
        subcategory=subcategory,
        confidence=confidence,
    )


MERCHANT_MAPPINGS: tuple[MerchantMapping, ...] = (
    # Income
    _m("Salary", ("salary", "wage", "payroll", "payment from employer"), "Income", "Salary", 0.95),
    _m("Freelance", ("freelance", "contract work", "client payment"), "Income", "Side Hustle", 0.85),
    _m("Dividends", ("dividend", "share", "investment income"), "Income", "Investment Income", 0.9),
    _m("Rental Income", ("rent received", "tenant", "property income"), "Income", "Rental Income", 0.9),
    _m("Benefits", ("universal credit", "benefit", "allowance", "hmrc", "gov.uk", "dwp"), "Income", "Benefits", 0.9),
    _m("Gift", ("gift received", "money gift"), "Income", "Gifts Received", 0.7),
    _m("Tax Refund", ("tax refund", "hmrc refund", "rebate"), "Income", "Tax Refund", 0.95),

    # Essentials - housing
    _m("Mortgage", ("mortgage", "home loan"), "Essentials", "Rent/Mortgage", 0.95),
    _m("Rent", ("rent", "landlord", "letting", "estate agent"), "Essentials", "Rent/Mortgage", 0.9),

    # Essentials - utilities
    _m("Electricity", ("electric", "electricity", "power", "eon", "edf", "bulb", "octopus energy"),
       "Essentials", "Utilities", 0.9),
    _m("Gas", ("gas", "british gas", "eon gas"), "Essentials", "Utilities", 0.9),
    _m("Water", ("water", "thames water", "severn trent", "anglian"), "Essentials", "Utilities", 0.9),
    _m("Council Tax", ("council tax", "council", "local authority"), "Essentials", "Utilities", 0.95),
    _m("Internet", ("internet", "broadband", "bt", "virgin media", "sky broadband", "plusnet", "talktalk"),
       "Essentials", "Utilities", 0.9),
    _m("Mobile Phone", ("mobile", "phone", "o2", "ee", "vodafone", "three", "giffgaff"),
       "Essentials", "Utilities", 0.8),

    # Essentials - groceries
    _m("Tesco", ("tesco",), "Essentials", "Groceries", 0.9),
    _m("Sainsbury's", ("sainsbury",), "Essentials", "Groceries", 0.9),
    _m("Asda", ("asda",), "Essentials", "Groceries", 0.9),
    _m("Morrisons", ("morrisons",), "Essentials", "Groceries", 0.9),
    _m("Aldi", ("aldi",), "Essentials", "Groceries", 0.9),
    _m("Lidl", ("lidl",), "Essentials", "Groceries", 0.9),
    _m("Waitrose", ("waitrose",), "Essentials", "Groceries", 0.9),
    _m("M&S Food", ("m&s food", "marks & spencer food", "marks and spencer food"), "Essentials", "Groceries", 0.9),
    _m("Co-op", ("co-op", "coop"), "Essentials", "Groceries", 0.9),
    _m("Iceland", ("iceland",), "Essentials", "Groceries", 0.9),
    _m("Grocery", ("grocery", "food", "supermarket"), "Essentials", "Groceries", 0.8),

    # Essentials - transport
    _m("Fuel", ("fuel", "petrol", "diesel", "shell", "bp", "esso", "texaco"), "Essentials", "Transport", 0.9),
    _m("Public Transport", ("transport", "train", "railway", "bus", "coach", "tube", "underground", "oyster", "tfl"),
       "Essentials", "Transport", 0.9),
    _m("Car Maintenance", ("mot", "service", "repair", "garage", "kwik fit", "halfords"),
       "Essentials", "Transport", 0.8),
    _m("Parking", ("parking", "ncp", "ringo"), "Essentials", "Transport", 0.9),
    _m("Taxi", ("taxi", "uber", "bolt", "gett", "cab"), "Essentials", "Transport", 0.8),

    # Essentials - insurance
    _m("Home Insurance", ("home insurance", "house insurance", "contents insurance"), "Essentials", "Insurance", 0.95),
    _m("Car Insurance", ("car insurance", "auto insurance", "vehicle insurance"), "Essentials", "Insurance", 0.95),
    _m("Health Insurance", ("health insurance", "medical insurance", "bupa", "axa"), "Essentials", "Insurance", 0.95),
    _m("Life Insurance", ("life insurance", "life cover", "life plan"), "Essentials", "Insurance", 0.95),
    _m("Travel Insurance", ("travel insurance",), "Essentials", "Insurance", 0.9),
    _m("Insurance", ("insurance", "aviva", "direct line", "churchill", "lv", "legal & general"),
       "Essentials", "Insurance", 0.9),

    # Essentials - healthcare
    _m("Pharmacy", ("pharmacy", "boots", "chemist", "superdrug", "prescription"), "Essentials", "Healthcare", 0.9),
    _m("Doctor", ("doctor", "gp", "medical", "hospital", "clinic", "nhs"), "Essentials", "Healthcare", 0.9),
    _m("Dental", ("dental", "dentist", "orthodontist"), "Essentials", "Healthcare", 0.9),
    _m("Optician", ("optician", "optometrist", "glasses", "contact lenses", "vision express", "specsavers"),
       "Essentials", "Healthcare", 0.9),

    # Essentials - debt repayment
    _m("Credit Card", ("credit card payment", "credit card", "amex payment", "visa payment"),
       "Essentials", "Debt Repayment", 0.9),
    _m("Loan", ("loan", "loan payment", "loan repayment"), "Essentials", "Debt Repayment", 0.9),
    _m("Student Loan", ("student loan", "slc", "student finance"), "Essentials", "Debt Repayment", 0.95),
    _m("Debt Consolidation", ("debt", "debt payment", "debt settlement", "debt repayment"),
       "Essentials", "Debt Repayment", 0.9),

    # Lifestyle - dining out
    _m("Restaurant", ("restaurant", "dining", "eatery"), "Lifestyle", "Dining Out", 0.9),
    _m("Fast Food", ("mcdonalds", "burger king", "kfc", "subway", "dominos", "pizza hut", "wendys", "taco bell"),
       "Lifestyle", "Dining Out", 0.9),
    _m("Coffee Shop", ("coffee", "costa", "starbucks", "caffe nero", "pret", "cafe"), "Lifestyle", "Dining Out", 0.9),
    _m("Takeaway", ("takeaway", "just eat", "deliveroo", "uber eats", "take out"), "Lifestyle", "Dining Out", 0.9),
    _m("Pub", ("pub", "bar", "tavern", "wetherspoons"), "Lifestyle", "Dining Out", 0.9),

    # Lifestyle - entertainment
    _m("Cinema", ("cinema", "odeon", "vue", "cineworld", "picturehouse", "showcase"),
       "Lifestyle", "Entertainment", 0.9),
    _m("Theatre", ("theatre", "theater", "play", "musical", "show"), "Lifestyle", "Entertainment", 0.9),
    _m("Concert", ("concert", "gig", "festival", "ticket master", "live music", "o2 arena"),
       "Lifestyle", "Entertainment", 0.9),
    _m("Sports Event", ("match", "game", "stadium", "sports event"), "Lifestyle", "Entertainment", 0.8),
    _m("Streaming", ("netflix", "disney+", "amazon prime", "apple tv", "now tv", "hulu", "hbo"),
       "Lifestyle", "Subscriptions", 0.95),
    _m("Music", ("spotify", "apple music", "tidal", "deezer", "youtube music"), "Lifestyle", "Subscriptions", 0.95),

    # Lifestyle - shopping
    _m("Amazon", ("amazon",), "Lifestyle", "Shopping", 0.9),
    _m("eBay", ("ebay",), "Lifestyle", "Shopping", 0.9),
    _m("Clothing", ("clothing", "fashion", "apparel", "h&m", "zara", "primark", "next", "asos", "tk maxx"),
       "Lifestyle", "Shopping", 0.9),
    _m("Electronics", ("electronics", "currys", "argos", "apple store", "samsung", "john lewis"),
       "Lifestyle", "Shopping", 0.9),
    _m("Home Goods", ("home goods", "furniture", "ikea", "dunelm", "home sense", "wilko", "the range"),
       "Lifestyle", "Shopping", 0.9),
    _m("Beauty", ("beauty", "cosmetics", "makeup", "skincare", "sephora", "boots beauty"),
       "Lifestyle", "Shopping", 0.9),
    _m("Books", ("books", "waterstones", "barnes", "kindle"), "Lifestyle", "Shopping", 0.9),

    # Lifestyle - travel
    _m("Hotel", ("hotel", "accommodation", "lodging", "airbnb", "booking.com", "hotels.com", "expedia",
                 "holiday inn", "premier inn", "travelodge"), "Lifestyle", "Travel", 0.9),
    _m("Flight", ("flight", "airline", "british airways", "easyjet", "ryanair", "jet2", "virgin atlantic", "emirates"),
       "Lifestyle", "Travel", 0.95),
    _m("Holiday", ("holiday", "vacation", "resort", "package holiday", "all inclusive", "tui", "thomas cook"),
       "Lifestyle", "Travel", 0.9),
    _m("Car Rental", ("car rental", "car hire", "hertz", "avis", "enterprise", "europcar", "sixt"),
       "Lifestyle", "Travel", 0.9),
    _m("Travel Agency", ("travel agent", "travel agency", "tour", "expedia", "lastminute"), "Lifestyle", "Travel", 0.9),

    # Lifestyle - gifts
    _m("Gift", ("gift", "present", "gift shop"), "Lifestyle", "Gifts", 0.8),
    _m("Charity", ("charity", "donation", "oxfam", "red cross", "cancer research", "save the children"),
       "Lifestyle", "Gifts", 0.9),
    _m("Greeting Cards", ("card", "card shop", "card factory", "clintons"), "Lifestyle", "Gifts", 0.9),

    # Lifestyle - subscriptions beyond streaming
    _m("Software", ("software", "subscription", "microsoft", "adobe", "app store", "google play", "apple store"),
       "Lifestyle", "Subscriptions", 0.9),
    _m("Magazine", ("magazine", "publication", "subscription"), "Lifestyle", "Subscriptions", 0.9),
    _m("Membership", ("membership", "subscription"), "Lifestyle", "Subscriptions", 0.8),

    # Lifestyle - hobbies
    _m("Gym", ("gym", "fitness", "exercise", "pure gym", "virgin active", "david lloyd", "leisure centre"),
       "Lifestyle", "Hobbies", 0.9),
    _m("Sports", ("sports", "sporting goods", "decathlon", "sports direct"), "Lifestyle", "Hobbies", 0.9),
    _m("Arts", ("art", "craft", "hobby", "hobbycraft"), "Lifestyle", "Hobbies", 0.9),
    _m("Gaming", ("game", "playstation", "xbox", "nintendo", "steam", "gaming"), "Lifestyle", "Hobbies", 0.9),

    # Savings
    _m("Emergency Fund", ("emergency fund", "rainy day", "emergency savings"), "Savings", "Emergency Fund", 0.95),
    _m("Retirement", ("retirement", "pension", "sipp", "annuity"), "Savings", "Retirement", 0.95),
    _m("Investment", ("investment", "investing", "vanguard", "fidelity", "stocks", "shares", "bond", "fund", "isa"),
       "Savings", "Investment", 0.95),
    _m("Property", ("property investment", "real estate", "house deposit", "down payment"),
       "Savings", "Property", 0.9),
    _m("Education", ("education", "tuition", "school", "university", "course", "learning"),
       "Savings", "Education", 0.9),
    _m("Goal", ("goal", "target", "milestone", "future"), "Savings", "Future Goals", 0.8),
)


class MerchantMatcher(Classifier):
    def __init__(self, mappings: Sequence[MerchantMapping] = MERCHANT_MAPPINGS):
        self.mappings = tuple(mappings)

    def best_mapping(self, description: str) -> MerchantMapping | None:
        best: MerchantMapping | None = None
        best_confidence = 0.0
        for mapping in self.mappings:
            # Strict comparison: the earliest mapping keeps a confidence tie
            if mapping.confidence > best_confidence and matches_patterns(description, mapping.patterns):
                best = mapping
                best_confidence = mapping.confidence
        return best

    def classify(self, description: str, amount: float = 0.0) -> CategorizationResult | None:
        mapping = self.best_mapping(description)
        if mapping is None:
            return None
        return CategorizationResult(
            category=mapping.category,
            subcategory=mapping.subcategory,
            confidence=mapping.confidence,
            source="merchant",
        )

    def mappings_for(self, category: str, subcategory: str) -> list[MerchantMapping]:
        return [m for m in self.mappings if m.category == category and m.subcategory == subcategory]

    def learn(self, correction: Correction) -> bool:
        # The merchant table is static.
        return False
