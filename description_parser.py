# -*- coding: utf-8 -*-
"""
Description Parser

Turns a free-text vehicle description (e.g. a classified-ad title) into the
structured attributes the matcher scores on. Everything is token lookup
against the tables in normalizers.py: the first recognized token wins for
each field, and anything unrecognized is simply left unset.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from normalizers import (
    KNOWN_MODELS, FUEL_TOKENS, TRANSMISSION_TOKENS, DRIVE_SYNONYMS,
    is_make_token, is_badge_boundary, clean_badge_token,
    normalize_make, normalize_fuel, normalize_drive, strip_noise
)


@dataclass(frozen=True)
class ExtractedAttributes:
    """
    Attributes recovered from a description.

    Strings are lowercase, except drive_type which is in catalog display
    form ("Four Wheel Drive"). Any field may be None.
    """
    make: Optional[str] = None
    model: Optional[str] = None
    badge: Optional[str] = None
    fuel_type: Optional[str] = None
    transmission_type: Optional[str] = None
    drive_type: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {
            'make': self.make,
            'model': self.model,
            'badge': self.badge,
            'fuelType': self.fuel_type,
            'transmissionType': self.transmission_type,
            'driveType': self.drive_type,
        }


def tokenize(description: str) -> List[str]:
    """Lowercase, drop trailing noise, split on whitespace."""
    return strip_noise(description.lower()).split()


def _first_index(tokens: List[str], predicate, start: int = 0) -> int:
    for i in range(start, len(tokens)):
        if predicate(tokens[i]):
            return i
    return -1


def _first(tokens: List[str], predicate) -> Optional[str]:
    idx = _first_index(tokens, predicate)
    return tokens[idx] if idx >= 0 else None


def extract_badge(tokens: List[str], model_idx: int) -> Optional[str]:
    """
    Extract the badge/trim between the model token and the next known attribute.

    Args:
        tokens: Description tokens
        model_idx: Position of the model token

    Returns:
        Badge such as "highline tdi 4motion", or None if nothing sits between
        the model and the boundary
    """
    end_idx = _first_index(tokens, is_badge_boundary, start=model_idx + 1)
    if end_idx < 0:
        end_idx = len(tokens)

    badge = ' '.join(clean_badge_token(t) for t in tokens[model_idx + 1:end_idx]).strip()
    return badge or None


def parse_description(raw: str) -> ExtractedAttributes:
    """
    Extract make, model, badge, fuel, transmission and drive from a description.

    Args:
        raw: Free-text description, any case

    Returns:
        ExtractedAttributes with unrecognized fields left as None
    """
    tokens = tokenize(raw)

    make = normalize_make(_first(tokens, is_make_token))

    model_idx = _first_index(tokens, lambda t: t in KNOWN_MODELS)
    model = tokens[model_idx] if model_idx >= 0 else None

    # Badge only makes sense relative to a model
    badge = extract_badge(tokens, model_idx) if model is not None else None

    fuel_type = normalize_fuel(_first(tokens, lambda t: t in FUEL_TOKENS))
    transmission_type = _first(tokens, lambda t: t in TRANSMISSION_TOKENS)
    drive_type = normalize_drive(_first(tokens, lambda t: t in DRIVE_SYNONYMS))

    return ExtractedAttributes(
        make=make,
        model=model,
        badge=badge,
        fuel_type=fuel_type,
        transmission_type=transmission_type,
        drive_type=drive_type,
    )
