# -*- coding: utf-8 -*-
"""
Catalog snapshot and cache.

The catalog is held as an immutable CatalogSnapshot (vehicle records plus
listing counts from the same load). CatalogCache is the only place a new
snapshot gets published: a refresh reads everything from the source, builds
the next snapshot off to the side and swaps the reference in one assignment.
Readers grab current() once and keep using that snapshot for the whole match.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Protocol, Sequence, Tuple

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class CatalogError(Exception):
    """Base class for catalog errors."""


class CatalogDataError(CatalogError):
    """Source returned data that cannot form a snapshot."""


class CatalogRefreshError(CatalogError):
    """Refresh was abandoned; the previous snapshot is still live."""


class RefreshInProgressError(CatalogError):
    """Another refresh is already running."""


# =============================================================================
# DATA MODEL
# =============================================================================

@dataclass(frozen=True)
class VehicleRecord:
    """One distinct vehicle configuration in the catalog."""
    id: str
    make: Optional[str] = None
    model: Optional[str] = None
    badge: Optional[str] = None
    fuel_type: Optional[str] = None
    transmission_type: Optional[str] = None
    drive_type: Optional[str] = None  # display form, e.g. "Four Wheel Drive"


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    Point-in-time catalog: vehicles and listing counts from the same load.

    Use CatalogSnapshot.build() rather than the constructor so the inputs are
    copied into read-only containers.
    """
    vehicles: Tuple[VehicleRecord, ...] = ()
    listing_counts: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    generation: int = 0
    loaded_at: Optional[float] = None

    @classmethod
    def build(
        cls,
        vehicles: Iterable[VehicleRecord],
        listing_counts: Optional[Mapping[str, int]] = None,
        generation: int = 0,
        loaded_at: Optional[float] = None,
    ) -> 'CatalogSnapshot':
        """
        Build a snapshot from source data.

        Args:
            vehicles: Vehicle records in catalog order
            listing_counts: vehicle id -> active listing count
            generation: Refresh number that produced this snapshot
            loaded_at: Unix time of the load

        Returns:
            New immutable snapshot

        Raises:
            CatalogDataError: if two vehicles share an id
        """
        records = tuple(vehicles)

        seen = set()
        for rec in records:
            if rec.id in seen:
                raise CatalogDataError(f"Duplicate vehicle id in catalog: {rec.id}")
            seen.add(rec.id)

        counts = {str(k): int(v) for k, v in (listing_counts or {}).items()}

        return cls(
            vehicles=records,
            listing_counts=MappingProxyType(counts),
            generation=generation,
            loaded_at=loaded_at,
        )

    def listing_count(self, vehicle_id: str) -> int:
        """Active listings for a vehicle (0 when absent)."""
        return self.listing_counts.get(vehicle_id, 0)

    def __len__(self) -> int:
        return len(self.vehicles)


EMPTY_SNAPSHOT = CatalogSnapshot()


# =============================================================================
# SOURCE CONTRACT
# =============================================================================

class CatalogSource(Protocol):
    """Where a refresh reads the catalog from (e.g. MongoDB)."""

    def fetch_all_vehicles(self) -> Sequence[VehicleRecord]:
        ...

    def fetch_listing_counts(self) -> Mapping[str, int]:
        ...


# =============================================================================
# CACHE
# =============================================================================

class CatalogCache:
    """
    Holds the live catalog snapshot and refreshes it from a source.

    - current() is a plain attribute read, safe from any thread
    - refresh() is non-reentrant: a second caller gets RefreshInProgressError
    - a failed refresh never replaces the live snapshot
    """

    def __init__(self, source: CatalogSource, snapshot: CatalogSnapshot = EMPTY_SNAPSHOT):
        self.source = source
        self._snapshot = snapshot
        self._refresh_lock = threading.Lock()

        self.refresh_count = 0
        self.last_refresh_time: Optional[float] = None
        self.last_error: Optional[str] = None

    def current(self) -> CatalogSnapshot:
        """Snapshot visible to readers right now."""
        return self._snapshot

    def publish(self, snapshot: CatalogSnapshot) -> None:
        """Replace the live snapshot wholesale."""
        self._snapshot = snapshot

    @property
    def refreshing(self) -> bool:
        return self._refresh_lock.locked()

    def refresh(self) -> CatalogSnapshot:
        """
        Reload vehicles and listing counts and publish them together.

        Both source calls must succeed before anything is published.

        Returns:
            The newly published snapshot

        Raises:
            RefreshInProgressError: if a refresh is already running
            CatalogRefreshError: if the source failed (previous snapshot kept)
        """
        if not self._refresh_lock.acquire(blocking=False):
            raise RefreshInProgressError("Catalog refresh already in progress")

        try:
            logger.info("Loading catalog...")
            start = time.time()
            try:
                vehicles = self.source.fetch_all_vehicles()
                counts = self.source.fetch_listing_counts()
                snapshot = CatalogSnapshot.build(
                    vehicles,
                    counts,
                    generation=self._snapshot.generation + 1,
                    loaded_at=time.time(),
                )
            except Exception as e:
                self.last_error = str(e)
                logger.error(f"Catalog refresh failed, keeping generation "
                             f"{self._snapshot.generation}: {e}")
                raise CatalogRefreshError(str(e)) from e

            self.publish(snapshot)
            self.refresh_count += 1
            self.last_refresh_time = snapshot.loaded_at
            self.last_error = None

            logger.info(
                f"Catalog loaded: {len(snapshot.vehicles):,} vehicles, counts for "
                f"{len(snapshot.listing_counts):,} keys (generation {snapshot.generation}, "
                f"{time.time() - start:.2f}s)"
            )
            return snapshot
        finally:
            self._refresh_lock.release()


# =============================================================================
# PERIODIC REFRESH
# =============================================================================

def refresh_periodically(cache: CatalogCache, interval: float, stop_event: threading.Event) -> None:
    """
    Background loop: refresh the cache every `interval` seconds until stopped.

    Failures are logged and the loop carries on with the previous snapshot.
    """
    while not stop_event.wait(interval):
        logger.info("[Auto-refresh] Refreshing catalog...")
        try:
            cache.refresh()
        except RefreshInProgressError:
            logger.warning("[Auto-refresh] Skipped, a refresh is already running")
        except CatalogRefreshError as e:
            logger.error(f"[Auto-refresh] Cache reload failed: {e}")
        else:
            logger.info("[Auto-refresh] Complete")
