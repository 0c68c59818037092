"""Durable, geospatially indexed log of emission points.

The log is append-only. Each flight cycle appends its batch in a single
transaction, a retention job deletes rows by age, and the heatmap query
snaps rows onto a lat/lon grid and counts them per cell.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
import math
from typing import Sequence

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from noisemap.db import SessionLocal
from noisemap.db_models import EmissionRecord
from noisemap.errors import PersistenceFailure
from noisemap.models.geo import BoundingBox
from noisemap.models.noise import DensityCell, EmissionPoint

logger = logging.getLogger("noisemap.snapshot_store")

FLIGHT_SOURCE = "flight"
DEFAULT_MAX_AGE = timedelta(days=7)
DEFAULT_WINDOW = timedelta(hours=24)


def _utc_naive(value: datetime) -> datetime:
    """Store timestamps as naive UTC so SQLite and Postgres compare alike."""

    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _validate(point: EmissionPoint) -> None:
    if not (math.isfinite(point.lat) and -90.0 <= point.lat <= 90.0):
        raise ValueError(f"invalid latitude {point.lat!r} for {point.id}")
    if not (math.isfinite(point.lng) and -180.0 <= point.lng <= 180.0):
        raise ValueError(f"invalid longitude {point.lng!r} for {point.id}")
    if not math.isfinite(point.noise_level):
        raise ValueError(f"invalid noise level for {point.id}")


def _to_row(point: EmissionPoint) -> dict:
    return {
        "emitter_id": point.id,
        "latitude": point.lat,
        "longitude": point.lng,
        "noise_level": point.noise_level,
        "source": point.source,
        "region": point.region,
        "observed_at": _utc_naive(point.timestamp),
        "altitude_m": point.altitude,
        "speed_kmh": point.speed_kmh,
    }


class SnapshotStore:
    """Append, prune and aggregate emission points."""

    def __init__(self, session_factory: sessionmaker | None = None) -> None:
        self.session_factory = session_factory or SessionLocal

    def append(self, points: Sequence[EmissionPoint]) -> int:
        """Persist a batch atomically.

        The batch is the unit of durability: if any point is invalid or the
        insert fails, nothing from the batch is kept and PersistenceFailure
        is raised.
        """

        if not points:
            return 0

        try:
            for point in points:
                _validate(point)
        except ValueError as exc:
            logger.warning("Rejecting batch of %s points: %s", len(points), exc)
            raise PersistenceFailure(f"batch rejected: {exc}") from exc

        rows = [_to_row(point) for point in points]
        session: Session = self.session_factory()
        try:
            session.execute(insert(EmissionRecord), rows)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Failed to append %s emission points: %s", len(rows), exc)
            raise PersistenceFailure("emission batch append failed") from exc
        finally:
            session.close()

        logger.debug("Appended %s emission points", len(rows))
        return len(rows)

    def prune(self, max_age: timedelta = DEFAULT_MAX_AGE) -> int:
        """Delete every point observed before ``now - max_age``."""

        cutoff = _utcnow() - max_age
        session: Session = self.session_factory()
        try:
            result = session.execute(
                delete(EmissionRecord).where(EmissionRecord.observed_at < cutoff)
            )
            removed = result.rowcount or 0
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Retention prune failed: %s", exc)
            raise PersistenceFailure("retention prune failed") from exc
        finally:
            session.close()

        logger.info("Pruned %s emission points older than %s", removed, cutoff)
        return removed

    def aggregate(
        self,
        bbox: BoundingBox,
        window: timedelta = DEFAULT_WINDOW,
        grid_size: float = 0.01,
        min_count: int = 2,
        capacity: int = 50,
    ) -> list[DensityCell]:
        """Count recent flight points per grid cell inside ``bbox``.

        Cells with fewer than ``min_count`` points are dropped. Density is
        ``min(count / capacity, 1)`` and the noise estimate is
        ``40 + density * 50``. Cells come back busiest first.
        """

        if grid_size <= 0:
            raise ValueError("grid_size must be positive")
        if capacity <= 0:
            raise ValueError("capacity must be positive")

        cutoff = _utcnow() - window
        snapped = (
            select(
                (func.round(EmissionRecord.latitude / grid_size) * grid_size).label("cell_lat"),
                (func.round(EmissionRecord.longitude / grid_size) * grid_size).label("cell_lon"),
            )
            .where(
                EmissionRecord.source == FLIGHT_SOURCE,
                EmissionRecord.observed_at >= cutoff,
                EmissionRecord.latitude.between(bbox.lat_min, bbox.lat_max),
                EmissionRecord.longitude.between(bbox.lon_min, bbox.lon_max),
            )
            .subquery()
        )
        point_count = func.count().label("point_count")
        query = (
            select(snapped.c.cell_lat, snapped.c.cell_lon, point_count)
            .group_by(snapped.c.cell_lat, snapped.c.cell_lon)
            .having(func.count() >= min_count)
            .order_by(point_count.desc())
        )

        with self.session_factory() as session:
            rows = session.execute(query).all()

        cells: list[DensityCell] = []
        for row in rows:
            density = min(row.point_count / capacity, 1.0)
            cells.append(
                DensityCell(
                    lat=round(float(row.cell_lat), 6),
                    lng=round(float(row.cell_lon), 6),
                    count=int(row.point_count),
                    density=round(density, 4),
                    noise_level=round(40 + density * 50, 2),
                )
            )
        return cells

    def count(self) -> int:
        with self.session_factory() as session:
            return session.scalar(select(func.count(EmissionRecord.id))) or 0


__all__ = ["DEFAULT_MAX_AGE", "DEFAULT_WINDOW", "SnapshotStore"]
