"""Category normalization for scope matching."""
import enum
import re
import unicodedata
from typing import Optional


class Category(str, enum.Enum):
    """Canonical product categories."""
    DRINK = "DRINK"
    CAKE = "CAKE"
    TOPPING = "TOPPING"
    MERCHANDISE = "MERCHANDISE"
    PCTC = "PCTC"
    UNKNOWN = "UNKNOWN"


# Exact spellings seen in legacy data, after accent stripping and
# separator folding (spaces and hyphens become underscores).
_SYNONYMS = {
    Category.DRINK: {"DRINK", "DRINKS", "DRK", "DO_UONG", "DOUONG", "NUOC", "NUOC_UONG"},
    Category.CAKE: {"CAKE", "CAKES", "BANH", "BANH_NGOT"},
    Category.TOPPING: {"TOPPING", "TOPPINGS", "TOP"},
    Category.MERCHANDISE: {"MERCHANDISE", "MERCH", "MER"},
    Category.PCTC: {"PCTC"},
}

# Prefixes of longer legacy codes, e.g. "DRINK_SIGNATURE"
_PREFIXES = (
    ("DRINK", Category.DRINK),
    ("CAKE", Category.CAKE),
    ("TOPPING", Category.TOPPING),
    ("MERCHANDISE", Category.MERCHANDISE),
    ("PCTC", Category.PCTC),
)

_SEPARATORS = re.compile(r"[\s\-]+")


def strip_diacritics(value: str) -> str:
    """Remove accents; Đ/đ do not decompose under NFD so they are mapped first."""
    value = value.replace("Đ", "D").replace("đ", "d")
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold(raw: str) -> str:
    """Uppercase, accent-free, underscore-separated form of a raw category."""
    return _SEPARATORS.sub("_", strip_diacritics(raw.strip()).upper()).strip("_")


def normalize_category(raw: Optional[str]) -> Category:
    """
    Map a raw or legacy category spelling to its canonical category.

    Null and unrecognized input map to Category.UNKNOWN, which never matches
    a category include so unclassified products cannot slip into broad
    category promotions.
    """
    if raw is None:
        return Category.UNKNOWN
    token = fold(str(raw))
    if not token:
        return Category.UNKNOWN

    for category, spellings in _SYNONYMS.items():
        if token in spellings:
            return category
    for prefix, category in _PREFIXES:
        if token.startswith(prefix):
            return category
    return Category.UNKNOWN
