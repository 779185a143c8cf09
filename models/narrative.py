# models/narrative.py
from __future__ import annotations

from datetime import datetime
from typing import Any, List

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from database import Base

# JSONB / text[] on Postgres, plain JSON everywhere else (sqlite in tests)
JsonColumn = JSON().with_variant(JSONB, "postgresql")
TextList = JSON().with_variant(ARRAY(Text), "postgresql")


class Narrative(Base):
    __tablename__ = "narratives"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)

    confidence_score: Mapped[int] = mapped_column(
        Integer, nullable=False, default=50, server_default="50", index=True
    )
    confidence_trend: Mapped[str] = mapped_column(String(8), nullable=False, default="flat", server_default="flat")
    confidence_last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    assumptions: Mapped[Any] = mapped_column(JsonColumn, nullable=False, default=list)
    supporting_evidence: Mapped[Any] = mapped_column(JsonColumn, nullable=False, default=list)
    contradicting_evidence: Mapped[Any] = mapped_column(JsonColumn, nullable=False, default=list)

    decay_half_life_days: Mapped[int] = mapped_column(Integer, nullable=False, default=30, server_default="30")
    decay_last_reinforced: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    related_reinforces: Mapped[List[str]] = mapped_column(TextList, nullable=False, default=list)
    related_conflicts: Mapped[List[str]] = mapped_column(TextList, nullable=False, default=list)
    related_overlaps: Mapped[List[str]] = mapped_column(TextList, nullable=False, default=list)

    affected_assets: Mapped[Any] = mapped_column(JsonColumn, nullable=False, default=list)
    history: Mapped[Any] = mapped_column(JsonColumn, nullable=False, default=list)
    tags: Mapped[List[str]] = mapped_column(TextList, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class BeliefEdge(Base):
    __tablename__ = "belief_edges"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    from_narrative_id: Mapped[str] = mapped_column(
        String, ForeignKey("narratives.id", ondelete="CASCADE"), nullable=False, index=True
    )
    to_narrative_id: Mapped[str] = mapped_column(
        String, ForeignKey("narratives.id", ondelete="CASCADE"), nullable=False, index=True
    )
    relationship: Mapped[str] = mapped_column(String(16), nullable=False)
    strength: Mapped[float] = mapped_column(Float, nullable=False, default=0.5, server_default="0.5")
