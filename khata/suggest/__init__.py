"""Smart categorization package."""

from khata.suggest.keywords import KEYWORD_MAP
from khata.suggest.lookup import (
    SmartLookup,
    find_historical_match,
    match_keyword_category,
)

__all__ = [
    "KEYWORD_MAP",
    "SmartLookup",
    "find_historical_match",
    "match_keyword_category",
]
