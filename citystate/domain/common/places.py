# citystate/domain/common/places.py
from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable

from citystate.domain.common.types import Category

logger = logging.getLogger(__name__)


def _lower_set(names: Iterable[str]) -> frozenset[str]:
    return frozenset(n.strip().lower() for n in names if isinstance(n, str) and n.strip())


class WordValidator:
    """
    Exact-match lookup of a normalised word against three place lists.
    A name present in several lists is reported once, with priority
    CITY > COUNTRY > STATE.
    """

    def __init__(self, cities: Iterable[str], countries: Iterable[str], states: Iterable[str]) -> None:
        self.cities = _lower_set(cities)
        self.countries = _lower_set(countries)
        self.states = _lower_set(states)

    def classify(self, word: str) -> Category:
        w = (word or "").strip().lower()
        if not w:
            return "UNKNOWN"
        if w in self.cities:
            return "CITY"
        if w in self.countries:
            return "COUNTRY"
        if w in self.states:
            return "STATE"
        return "UNKNOWN"

    def is_place(self, word: str) -> bool:
        return self.classify(word) != "UNKNOWN"

    def counts(self) -> Dict[str, int]:
        return {
            "cities": len(self.cities),
            "countries": len(self.countries),
            "states": len(self.states),
        }


@lru_cache(maxsize=4)
def load_validator(path: str) -> WordValidator:
    """Load the bundled place lists once per path."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    validator = WordValidator(
        cities=data.get("cities") or [],
        countries=data.get("countries") or [],
        states=data.get("states") or [],
    )
    logger.info("Loaded place data from %s: %s", path, validator.counts())
    return validator
