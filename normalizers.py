# -*- coding: utf-8 -*-
"""
Normalizers

Static vocabulary and synonym tables used to pull vehicle attributes out of
free-text descriptions. Every recognized token lives in one of the tables
below; supporting a new make, model or alias means adding it here, not
touching the parser.
"""

from types import MappingProxyType
from typing import Optional


# =============================================================================
# MAKE NORMALIZATION
# =============================================================================

# Alias token -> canonical make (lowercase)
MAKE_SYNONYMS = MappingProxyType({
    'vw': 'volkswagen',
})

# Makes recognized as-is
KNOWN_MAKES = frozenset([
    'volkswagen',
    'toyota',
])


def is_make_token(token: str) -> bool:
    """True if the token names a make directly or through an alias."""
    return token in MAKE_SYNONYMS or token in KNOWN_MAKES


def normalize_make(token: Optional[str]) -> Optional[str]:
    """
    Resolve a make token to its canonical name.

    Args:
        token: Lowercase token already known to be a make

    Returns:
        Canonical make, or None if no token was given
    """
    if not token:
        return None
    return MAKE_SYNONYMS.get(token, token)


# =============================================================================
# MODEL VOCABULARY
# =============================================================================

KNOWN_MODELS = frozenset([
    'golf',
    'amarok',
    'tiguan',
    'rav4',
    'camry',
    'kluger',
    '86',
])


# =============================================================================
# FUEL TYPE NORMALIZATION
# =============================================================================

FUEL_SYNONYMS = MappingProxyType({
    'hybrid': 'hybrid-petrol',
})

FUEL_TOKENS = frozenset([
    'petrol',
    'diesel',
    'hybrid',
])


def normalize_fuel(token: Optional[str]) -> Optional[str]:
    """Resolve a fuel token ("hybrid" -> "hybrid-petrol")."""
    if not token:
        return None
    return FUEL_SYNONYMS.get(token, token)


# =============================================================================
# TRANSMISSION VOCABULARY
# =============================================================================

TRANSMISSION_TOKENS = frozenset([
    'automatic',
    'manual',
])


# =============================================================================
# DRIVE TYPE NORMALIZATION
# =============================================================================

# Catalog records store drive type in display form, so aliases map straight to it
DRIVE_SYNONYMS = MappingProxyType({
    '4x4': 'Four Wheel Drive',
    '4wd': 'Four Wheel Drive',
    'fwd': 'Front Wheel Drive',
    'rwd': 'Rear Wheel Drive',
})


def normalize_drive(token: Optional[str]) -> Optional[str]:
    """
    Resolve a drive token to its canonical display string.

    Args:
        token: Lowercase token, e.g. "4x4"

    Returns:
        Display string such as "Four Wheel Drive", or None if not a drive alias
    """
    if not token:
        return None
    return DRIVE_SYNONYMS.get(token)


# =============================================================================
# BADGE BOUNDARIES
# =============================================================================

# Tokens that end a badge/trim run. Drive aliases end it too (see is_badge_boundary).
BADGE_BOUNDARY_TOKENS = frozenset([
    'petrol',
    'diesel',
    'automatic',
    'manual',
])

# Characters inside badge tokens that are treated as word separators
BADGE_SEPARATORS = ('-', '/')


def is_badge_boundary(token: str) -> bool:
    """True if the token marks the end of a badge/trim run."""
    return token in BADGE_BOUNDARY_TOKENS or token in DRIVE_SYNONYMS


def clean_badge_token(token: str) -> str:
    """Replace hyphens and slashes with spaces ("gti-performance" -> "gti performance")."""
    for sep in BADGE_SEPARATORS:
        token = token.replace(sep, ' ')
    return token


# =============================================================================
# NOISE TRUNCATION
# =============================================================================

# Start of trailing text that never describes the vehicle itself.
# Order matters only for readability: the leftmost match in the text wins.
NOISE_MARKERS = (
    ' with ',
    ' engine swap',
    ' swap engine',
    ' swap ',
    ' for sale',
    ' owned',
    ' kms',
)


def strip_noise(text: str) -> str:
    """
    Cut text at the first noise marker.

    The marker and everything after it are discarded. Markers are lowercase
    literals, so callers lower-case the text first.

    Args:
        text: Lowercased description

    Returns:
        Text before the leftmost noise marker (unchanged if none is present)
    """
    cut = -1
    for marker in NOISE_MARKERS:
        pos = text.find(marker)
        if pos != -1 and (cut == -1 or pos < cut):
            cut = pos

    if cut == -1:
        return text
    return text[:cut]
