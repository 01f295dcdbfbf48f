# -*- coding: utf-8 -*-
"""
Matcher - weighted attribute scoring over the catalog snapshot

Every vehicle in the snapshot is scored against the attributes parsed from a
description. Each attribute that is present and agrees with the vehicle adds
its weight; weights sum to 10, so the winning score doubles as confidence.

Ties on score go to the vehicle with more active listings. If listing counts
are equal too, the vehicle seen first in catalog order keeps the spot.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from catalog import CatalogSnapshot, VehicleRecord
from description_parser import ExtractedAttributes

logger = logging.getLogger(__name__)


# =============================================================================
# SCORING WEIGHTS
# =============================================================================

WEIGHTS = {
    'make': 2,
    'model': 2,
    'badge': 3,
    'fuel_type': 1,
    'transmission_type': 1,
    'drive_type': 1,
}

MAX_SCORE = sum(WEIGHTS.values())  # 10
MIN_SCORE = 0


@dataclass(frozen=True)
class MatchResult:
    vehicle_id: Optional[str]
    confidence: int

    def as_dict(self) -> Dict[str, Any]:
        return {'vehicleId': self.vehicle_id, 'confidence': self.confidence}


# =============================================================================
# CANDIDATE PRE-FILTER
# =============================================================================

def _same(extracted: Optional[str], value: Optional[str]) -> bool:
    """Case-insensitive equality; a missing value on either side never matches."""
    if not extracted or not value:
        return False
    return value.lower() == extracted.lower()


def find_candidates(attrs: ExtractedAttributes, vehicles: Sequence[VehicleRecord]) -> Sequence[VehicleRecord]:
    """
    Narrow the catalog to vehicles with the extracted make and model.

    Only applied when both make and model were extracted. Falls back to the
    whole catalog when nothing matches.

    Args:
        attrs: Parsed description attributes
        vehicles: Full catalog in order

    Returns:
        Matching vehicles, or `vehicles` itself when the filter finds nothing
    """
    candidates: Sequence[VehicleRecord] = vehicles
    if attrs.make and attrs.model:
        candidates = [
            v for v in vehicles
            if _same(attrs.make, v.make) and _same(attrs.model, v.model)
        ]

    if not candidates:
        candidates = vehicles

    return candidates


# =============================================================================
# SCORING FUNCTIONS
# =============================================================================

def badge_matches(badge: Optional[str], vehicle_badge: Optional[str]) -> bool:
    """
    Whole-word containment of the extracted badge in the vehicle badge.

    The badge is checked as one phrase: "gti 4motion" matches "golf gti 4motion
    dsg" but not "gti performance 4motion", and "gt" does not match "gti".
    """
    if not badge or not vehicle_badge:
        return False
    pattern = r'\b' + re.escape(badge.lower()) + r'\b'
    return re.search(pattern, vehicle_badge.lower()) is not None


def score_vehicle(
    attrs: ExtractedAttributes,
    vehicle: VehicleRecord,
    weights=None
) -> Tuple[int, Dict[str, int]]:
    """
    Score one vehicle against the parsed attributes.

    Args:
        attrs: Parsed description attributes
        vehicle: Catalog vehicle
        weights: Optional weights dict (defaults to WEIGHTS)

    Returns:
        Tuple of (total_score, breakdown_dict)
    """
    w = weights or WEIGHTS
    breakdown = {}

    breakdown['make'] = w['make'] if _same(attrs.make, vehicle.make) else 0
    breakdown['model'] = w['model'] if _same(attrs.model, vehicle.model) else 0
    breakdown['badge'] = w['badge'] if badge_matches(attrs.badge, vehicle.badge) else 0
    breakdown['fuel_type'] = w['fuel_type'] if _same(attrs.fuel_type, vehicle.fuel_type) else 0
    breakdown['transmission_type'] = (
        w['transmission_type'] if _same(attrs.transmission_type, vehicle.transmission_type) else 0
    )

    # Drive type is already in display form on both sides
    drive_hit = attrs.drive_type is not None and attrs.drive_type == vehicle.drive_type
    breakdown['drive_type'] = w['drive_type'] if drive_hit else 0

    return sum(breakdown.values()), breakdown


def clamp_confidence(score: Optional[int]) -> int:
    if score is None:
        return MIN_SCORE
    return max(MIN_SCORE, min(MAX_SCORE, score))


# =============================================================================
# BEST MATCH
# =============================================================================

def find_best_match(attrs: ExtractedAttributes, snapshot: CatalogSnapshot) -> MatchResult:
    """
    Pick the best-scoring vehicle in the snapshot.

    Args:
        attrs: Parsed description attributes
        snapshot: Catalog snapshot to score against (read once, not re-fetched)

    Returns:
        MatchResult; vehicle_id is None and confidence 0 for an empty catalog
    """
    vehicles = snapshot.vehicles

    # TODO: score only `candidates` once it is confirmed that vehicles outside
    # the make+model filter should never win.
    candidates = find_candidates(attrs, vehicles)
    logger.debug(f"Pre-filter kept {len(candidates)} of {len(vehicles)} vehicles")

    best_vehicle: Optional[VehicleRecord] = None
    best_score: Optional[int] = None

    for vehicle in vehicles:
        score, _ = score_vehicle(attrs, vehicle)

        if best_score is None or score > best_score:
            best_score = score
            best_vehicle = vehicle
        elif score == best_score:
            # Tie: more active listings wins, otherwise first seen stays
            if snapshot.listing_count(vehicle.id) > snapshot.listing_count(best_vehicle.id):
                best_vehicle = vehicle

    return MatchResult(
        vehicle_id=best_vehicle.id if best_vehicle else None,
        confidence=clamp_confidence(best_score),
    )


def rank_vehicles(attrs: ExtractedAttributes, snapshot: CatalogSnapshot, limit: int = 10) -> List[Dict[str, Any]]:
    """
    Score every vehicle and return the top `limit`, highest first.

    Ordering follows the same rules as find_best_match (score, then listing
    count, then catalog order), so the first entry is always the best match.
    """
    scored = []
    for position, vehicle in enumerate(snapshot.vehicles):
        score, breakdown = score_vehicle(attrs, vehicle)
        scored.append({
            'vehicleId': vehicle.id,
            'score': score,
            'listingCount': snapshot.listing_count(vehicle.id),
            'breakdown': breakdown,
            '_position': position,
        })

    scored.sort(key=lambda x: (-x['score'], -x['listingCount'], x['_position']))

    for entry in scored:
        entry.pop('_position')
    return scored[:limit]


def get_confidence_label(confidence: int) -> str:
    """
    Describe a confidence score.

    - EXACT:   >= 9
    - STRONG:  >= 7
    - PARTIAL: >= 4
    - WEAK:    < 4
    """
    if confidence >= 9:
        return 'EXACT'
    elif confidence >= 7:
        return 'STRONG'
    elif confidence >= 4:
        return 'PARTIAL'
    return 'WEAK'
