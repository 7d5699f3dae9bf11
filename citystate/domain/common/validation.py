# citystate/domain/common/validation.py
from __future__ import annotations

import random
from typing import AbstractSet, Optional

from citystate.domain.common.models import GuessOutcome
from citystate.domain.common.places import WordValidator

DEFAULT_LETTERS = "ABCDEFGHIJKLMNOPRSTUVWZ"


def normalize_guess(s: Optional[str]) -> str:
    """Trim, lowercase and collapse inner whitespace."""
    return " ".join((s or "").strip().lower().split())


def normalize_letter(letter: Optional[str]) -> str:
    letter = (letter or "").strip().upper()
    return letter[:1]


def random_letter(rng: Optional[random.Random] = None, alphabet: str = DEFAULT_LETTERS) -> str:
    return (rng or random).choice(alphabet or DEFAULT_LETTERS)


def reject(code: str, kind: str, message: str, word: str = "") -> GuessOutcome:
    return GuessOutcome(accepted=False, code=code, kind=kind, message=message, word=word)


def check_guess(
    raw: Optional[str],
    *,
    letter: str,
    used_words: AbstractSet[str],
    validator: WordValidator,
) -> GuessOutcome:
    """
    Run the guess chain: empty -> wrong letter -> already used -> unknown place -> accept.
    Never mutates `used_words`; the caller records accepted words.
    """
    word = normalize_guess(raw)
    if not word:
        return reject("EMPTY_INPUT", "INVALID_INPUT", "Please enter a word.")

    if not word.startswith(letter.lower()):
        return reject("WRONG_LETTER", "RULE_VIOLATION", f"Hmm... doesn't start with {letter}", word)

    if word in used_words:
        return reject("ALREADY_USED", "RULE_VIOLATION", "That word was already used.", word)

    category = validator.classify(word)
    if category == "UNKNOWN":
        return reject("UNKNOWN_PLACE", "UNKNOWN_PLACE", "We don't know this one!", word)

    return GuessOutcome(accepted=True, word=word, category=category, message="+1")
