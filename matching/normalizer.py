"""
matching/normalizer.py

Canonicalization of free-text manufacturer / model / variant strings.

Every function here is pure: output depends only on the input strings and
the static tables below.
"""

from __future__ import annotations

import hashlib
import re

from unidecode import unidecode

MANUFACTURER_ALIASES: dict[str, str] = {
    "MERCEDES-BENZ": "MERCEDES",
    "MERCEDES BENZ": "MERCEDES",
    "VW": "VOLKSWAGEN",
    "LAND ROVER": "LANDROVER",
    "ALFA ROMEO": "ALFAROMEO",
    "ROLLS-ROYCE": "ROLLSROYCE",
    "ROLLS ROYCE": "ROLLSROYCE",
    "ASTON MARTIN": "ASTONMARTIN",
    "BMW ALPINA": "ALPINA",
}

# Keyword -> canonical body type. Order matters: the first keyword found wins.
BODY_TYPE_KEYWORDS: dict[str, str] = {
    "HATCHBACK": "HATCHBACK",
    "HATCH": "HATCHBACK",
    "SALOON": "SALOON",
    "SEDAN": "SALOON",
    "ESTATE": "ESTATE",
    "TOURING": "ESTATE",
    "WAGON": "ESTATE",
    "SUV": "SUV",
    "CROSSOVER": "SUV",
    "COUPE": "COUPE",
    "CONVERTIBLE": "CONVERTIBLE",
    "CABRIO": "CONVERTIBLE",
    "CABRIOLET": "CONVERTIBLE",
    "ROADSTER": "CONVERTIBLE",
    "MPV": "MPV",
    "VAN": "VAN",
    "PICKUP": "PICKUP",
    "TRUCK": "PICKUP",
}

_NON_ALNUM_OR_SPACE = re.compile(r"[^A-Z0-9\s]")
_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_WHITESPACE = re.compile(r"\s+")


def _fold(text: str | None) -> str:
    return unidecode(text or "").upper().strip()


def normalize_manufacturer(name: str | None) -> str:
    """
    Fold a manufacturer name onto one token, e.g. "Mercedes-Benz" -> "MERCEDES".
    """

    upper = _fold(name)
    alias = MANUFACTURER_ALIASES.get(_WHITESPACE.sub(" ", upper))
    if alias is not None:
        return alias
    return _NON_ALNUM.sub("", upper)


def normalize_model_name(name: str | None) -> str:
    """
    Uppercase, strip punctuation (spaces kept) and collapse whitespace.
    """

    stripped = _NON_ALNUM_OR_SPACE.sub("", _fold(name))
    return _WHITESPACE.sub(" ", stripped).strip()


def generate_source_key(manufacturer: str | None, model: str | None, variant: str | None) -> str:
    """
    Stable hash identifying one distinct vehicle description.
    """

    normalized = "_".join(
        (
            normalize_manufacturer(manufacturer),
            normalize_model_name(model),
            normalize_model_name(variant),
        )
    )
    return hashlib.md5(normalized.encode("utf-8")).hexdigest()


def extract_body_type(text: str | None) -> str | None:
    """
    Return the canonical body type mentioned in ``text``, if any.

    Keywords are matched as whole words so "VANTAGE" is not a van.
    """

    tokens = set(normalize_model_name(text).split())
    if not tokens:
        return None
    for keyword, body_type in BODY_TYPE_KEYWORDS.items():
        if keyword in tokens:
            return body_type
    return None


def extract_base_model(model_name: str | None) -> str:
    """
    Strip trailing body-type words: "Duster Estate" -> "DUSTER".
    """

    tokens = normalize_model_name(model_name).split()
    while tokens and tokens[-1] in BODY_TYPE_KEYWORDS:
        tokens.pop()
    return " ".join(tokens)


def combined_name(model: str | None, variant: str | None) -> str:
    return f"{model or ''} {variant or ''}".strip()


def name_for_similarity(model: str | None, variant: str | None) -> str:
    """
    Combined model + variant with body-type words removed.

    Providers put the body style in either field (or leave it out); the
    body-type gate already compares it, so it is dropped before scoring.
    """

    tokens = normalize_model_name(combined_name(model, variant)).split()
    return " ".join(token for token in tokens if token not in BODY_TYPE_KEYWORDS)
