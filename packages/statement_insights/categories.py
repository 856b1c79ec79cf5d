"""Keyword rules for categories and merchant display names.

The rule table is flat ordered data: ``(code, label, keywords)``. Matching is
lower-cased substring containment and the *first* rule with any hit wins, so
declaration order matters (e.g. ``"gas"`` under transport shadows
``"gas bill"`` under utilities). Substring false positives are an accepted
trade-off of the keyword approach.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from .models import Category, Severity


class CategoryRule(NamedTuple):
    code: Category
    label: str
    keywords: tuple[str, ...]


CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        Category.DINING,
        "Dining & Restaurants",
        (
            "restaurant", "cafe", "coffee", "starbucks", "mcdonald", "burger", "pizza",
            "sushi", "doordash", "grubhub", "uber eats", "ubereats", "chipotle", "subway",
            "wendy", "taco bell", "dunkin", "panera", "chick-fil-a", "panda express",
            "dine", "eatery", "bistro", "grill", "bakery", "deli",
        ),
    ),
    CategoryRule(
        Category.GROCERIES,
        "Groceries",
        (
            "grocery", "whole foods", "trader joe", "kroger", "safeway", "costco",
            "walmart", "target", "aldi", "publix", "wegmans", "heb", "market", "fresh",
            "food lion", "instacart", "sam's club",
        ),
    ),
    CategoryRule(
        Category.TRANSPORT,
        "Transportation",
        (
            "uber", "lyft", "gas", "fuel", "shell", "chevron", "exxon", "bp", "parking",
            "toll", "transit", "metro", "train", "airline", "flight", "delta", "united",
            "american air", "southwest", "jetblue", "amtrak",
        ),
    ),
    CategoryRule(
        Category.SHOPPING,
        "Shopping",
        (
            "amazon", "ebay", "etsy", "nike", "adidas", "zara", "h&m", "gap", "nordstrom",
            "macy", "best buy", "apple store", "ikea", "home depot", "lowes", "wayfair",
            "clothing", "apparel", "shoe",
        ),
    ),
    CategoryRule(
        Category.SUBSCRIPTIONS,
        "Subscriptions",
        (
            "netflix", "spotify", "hulu", "disney+", "hbo", "apple music",
            "youtube premium", "adobe", "microsoft 365", "dropbox", "icloud", "notion",
            "figma", "github", "aws", "heroku", "vercel", "membership", "subscription",
            "monthly",
        ),
    ),
    CategoryRule(
        Category.UTILITIES,
        "Utilities & Bills",
        (
            "electric", "water", "gas bill", "internet", "comcast", "verizon", "at&t",
            "t-mobile", "sprint", "phone bill", "utility", "power", "energy", "sewage",
        ),
    ),
    CategoryRule(
        Category.HEALTH,
        "Health & Wellness",
        (
            "pharmacy", "cvs", "walgreens", "doctor", "hospital", "medical", "dental",
            "vision", "gym", "fitness", "yoga", "peloton", "health", "therapy", "clinic",
            "urgent care",
        ),
    ),
    CategoryRule(
        Category.ENTERTAINMENT,
        "Entertainment",
        (
            "movie", "cinema", "theater", "concert", "ticket", "game", "steam",
            "playstation", "xbox", "nintendo", "amusement", "museum", "bowling", "arcade",
            "event",
        ),
    ),
    CategoryRule(
        Category.TRAVEL,
        "Travel & Hotels",
        (
            "hotel", "airbnb", "booking.com", "expedia", "marriott", "hilton", "hyatt",
            "resort", "vacation", "rental car", "hertz", "enterprise", "avis",
        ),
    ),
    CategoryRule(
        Category.EDUCATION,
        "Education",
        (
            "tuition", "university", "college", "school", "course", "udemy", "coursera",
            "textbook", "education", "learning", "student",
        ),
    ),
    CategoryRule(
        Category.INSURANCE,
        "Insurance",
        ("insurance", "geico", "state farm", "allstate", "progressive", "premium", "policy"),
    ),
    CategoryRule(
        Category.TRANSFERS,
        "Transfers & Payments",
        ("venmo", "zelle", "paypal", "cashapp", "cash app", "transfer", "payment", "wire"),
    ),
)

CATEGORY_LABELS: dict[Category, str] = {rule.code: rule.label for rule in CATEGORY_RULES}
CATEGORY_LABELS[Category.UNCATEGORIZED] = "Other"

CATEGORY_COLORS: dict[Category, str] = {
    Category.DINING: "#FF6B6B",
    Category.GROCERIES: "#4ECDC4",
    Category.TRANSPORT: "#45B7D1",
    Category.SHOPPING: "#96CEB4",
    Category.SUBSCRIPTIONS: "#A78BFA",
    Category.UTILITIES: "#F9CA24",
    Category.HEALTH: "#FF8A80",
    Category.ENTERTAINMENT: "#69DB7C",
    Category.TRAVEL: "#74B9FF",
    Category.EDUCATION: "#FD79A8",
    Category.INSURANCE: "#FDCB6E",
    Category.TRANSFERS: "#81ECEC",
    Category.UNCATEGORIZED: "#636E72",
}


def categorize(description: str) -> Category:
    """Return the category of the first rule with a keyword in ``description``."""

    lower = description.lower()
    for rule in CATEGORY_RULES:
        if any(keyword in lower for keyword in rule.keywords):
            return rule.code
    return Category.UNCATEGORIZED


def category_label(category: Category | str) -> str:
    try:
        return CATEGORY_LABELS[Category(category)]
    except ValueError:
        return str(category)


def severity_color(severity: Severity) -> str:
    match severity:
        case Severity.INFO:
            return "#74B9FF"
        case Severity.WARNING:
            return "#F9CA24"
        case Severity.ALERT:
            return "#FF6B6B"
        case Severity.POSITIVE:
            return "#69DB7C"
    raise ValueError(f"unknown severity: {severity!r}")


# ---------------------------------------------------------------------------
# Merchant extraction
# ---------------------------------------------------------------------------

# One leading processor prefix plus the separators after it; applied until
# stable so stacked prefixes like "POS DEBIT - " disappear together.
_PREFIX_RE = re.compile(r"^(?:pos|ach|debit|credit|purchase|sale|payment)\b[\s\-*:#]*", re.I)
# Everything from the first reference-like token onwards.
_REFERENCE_TAIL_RE = re.compile(r"\s*(?:#\d+|ref\s*#?\d+|\d{4,}|xx\d+).*$", re.I)
_TRAILING_SEPARATORS_RE = re.compile(r"[\s\-*:#]+$")


def _title_word(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def extract_merchant(description: str) -> str:
    """Derive a display name from a raw statement description.

    ``"POS DEBIT - STARBUCKS #12847"`` → ``"Starbucks"``. Falls back to the
    original description when cleaning leaves nothing.
    """

    s = description.strip()
    while True:
        stripped = _PREFIX_RE.sub("", s, count=1)
        if stripped == s:
            break
        s = stripped
    s = _REFERENCE_TAIL_RE.sub("", s)
    s = _TRAILING_SEPARATORS_RE.sub("", s)
    words = s.split()
    if not words:
        return description
    return " ".join(_title_word(w) for w in words)


__all__ = [
    "CATEGORY_COLORS",
    "CATEGORY_LABELS",
    "CATEGORY_RULES",
    "CategoryRule",
    "categorize",
    "category_label",
    "extract_merchant",
    "severity_color",
]
