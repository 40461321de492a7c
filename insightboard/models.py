from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class EmployeeInsight(Base):
    """
    Raw, pre-classified feedback record. Immutable once ingested; the sentiment label is
    stored exactly as received and validated only when the summary is recomputed.
    """

    __tablename__ = "employee_insights"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    source_data: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    employee_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    date: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    witel: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)  # region
    kota: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)  # city

    original_insight: Mapped[str | None] = mapped_column(Text, nullable=True)
    sentence_insight: Mapped[str | None] = mapped_column(Text, nullable=True)
    word_insight: Mapped[str | None] = mapped_column(String(256), nullable=True, index=True)
    sentiment: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)


class SurveyDashboardSummary(Base):
    """
    One aggregated row per keyword. Owned by the aggregation run: fully rebuilt, never patched.
    """

    __tablename__ = "survey_dashboard_summary"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    word_insight: Mapped[str] = mapped_column(String(256), nullable=False)

    total_count: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    positive_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    negative_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    neutral_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    positive_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    negative_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    neutral_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("word_insight", name="uq_summary_word_insight"),)


class SummaryRun(Base):
    __tablename__ = "summary_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="running", index=True)
    started_at: Mapped[dt.datetime] = mapped_column(DateTime, default=_utcnow, nullable=False)
    finished_at: Mapped[dt.datetime | None] = mapped_column(DateTime, nullable=True)

    record_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    skipped_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    keyword_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    error: Mapped[str | None] = mapped_column(Text, nullable=True)
