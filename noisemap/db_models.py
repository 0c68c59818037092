"""SQLAlchemy ORM models for the noise monitor backend."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from noisemap.db import Base


class EmissionRecord(Base):
    """Append-only log of observed emission points."""

    __tablename__ = "emission_points"
    __table_args__ = (
        Index("ix_emission_points_source_observed_at", "source", "observed_at"),
        Index("ix_emission_points_lat_lon", "latitude", "longitude"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    emitter_id: Mapped[str] = mapped_column(String(32), nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    noise_level: Mapped[float] = mapped_column(Float, nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False)
    region: Mapped[str | None] = mapped_column(String(64), nullable=True)
    observed_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    altitude_m: Mapped[int | None] = mapped_column(Integer, nullable=True)
    speed_kmh: Mapped[int | None] = mapped_column(Integer, nullable=True)
