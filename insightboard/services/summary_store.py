from __future__ import annotations

from typing import Iterable, Protocol

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from insightboard.errors import StoreUnavailableError
from insightboard.models import EmployeeInsight, SurveyDashboardSummary
from insightboard.services.aggregation import RawRecord, SummaryRowData


class RawInsightSource(Protocol):
    def fetch_all(self) -> list[RawRecord]: ...

    def distinct_keywords(self) -> list[str]: ...


class SummaryStore(Protocol):
    def replace_all(self, rows: Iterable[SummaryRowData]) -> int: ...

    def read_all(self) -> list[SummaryRowData]: ...

    def read_top(self, n: int) -> list[SummaryRowData]: ...

    def count(self) -> int: ...


def _to_row(m: SurveyDashboardSummary) -> SummaryRowData:
    return SummaryRowData(
        word_insight=m.word_insight,
        total_count=int(m.total_count),
        positive_count=int(m.positive_count),
        negative_count=int(m.negative_count),
        neutral_count=int(m.neutral_count),
        positive_percentage=int(m.positive_percentage),
        negative_percentage=int(m.negative_percentage),
        neutral_percentage=int(m.neutral_percentage),
        updated_at=m.updated_at,
    )


class SqlRawInsightSource:
    """Read-only view over employee_insights. Does not lock the table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def fetch_all(self) -> list[RawRecord]:
        try:
            rows = self.db.execute(
                select(EmployeeInsight.id, EmployeeInsight.word_insight, EmployeeInsight.sentiment).order_by(
                    EmployeeInsight.id
                )
            ).all()
        except SQLAlchemyError as e:
            raise StoreUnavailableError(str(e), operation="fetch raw records") from e
        return [RawRecord(id=r.id, word_insight=r.word_insight, sentiment=r.sentiment) for r in rows]

    def distinct_keywords(self) -> list[str]:
        try:
            rows = self.db.execute(
                select(EmployeeInsight.word_insight)
                .where(EmployeeInsight.word_insight.is_not(None), EmployeeInsight.word_insight != "")
                .distinct()
                .order_by(EmployeeInsight.word_insight)
            ).scalars()
            return list(rows)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(str(e), operation="fetch distinct keywords") from e

    def count(self) -> int:
        try:
            return int(self.db.execute(select(func.count()).select_from(EmployeeInsight)).scalar_one() or 0)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(str(e), operation="count raw records") from e


class SqlSummaryStore:
    """
    survey_dashboard_summary access. `replace_all` deletes and re-inserts inside one
    transaction: readers see the previous full set until commit, never a partial one.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def replace_all(self, rows: Iterable[SummaryRowData]) -> int:
        payload = [
            {
                "word_insight": r.word_insight,
                "total_count": r.total_count,
                "positive_count": r.positive_count,
                "negative_count": r.negative_count,
                "neutral_count": r.neutral_count,
                "positive_percentage": r.positive_percentage,
                "negative_percentage": r.negative_percentage,
                "neutral_percentage": r.neutral_percentage,
                "updated_at": r.updated_at,
            }
            for r in rows
        ]
        try:
            self.db.execute(delete(SurveyDashboardSummary))
            self._insert_rows(payload)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreUnavailableError(str(e), operation="replace summary rows") from e
        except Exception:
            self.db.rollback()
            raise
        return len(payload)

    def _insert_rows(self, payload: list[dict]) -> None:
        if payload:
            self.db.execute(insert(SurveyDashboardSummary), payload)

    def read_all(self) -> list[SummaryRowData]:
        try:
            rows = self.db.execute(select(SurveyDashboardSummary).order_by(SurveyDashboardSummary.word_insight)).scalars()
            return [_to_row(m) for m in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailableError(str(e), operation="read summary rows") from e

    def read_top(self, n: int) -> list[SummaryRowData]:
        if n <= 0:
            return []
        try:
            rows = self.db.execute(
                select(SurveyDashboardSummary)
                .order_by(SurveyDashboardSummary.total_count.desc(), SurveyDashboardSummary.word_insight.asc())
                .limit(int(n))
            ).scalars()
            return [_to_row(m) for m in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailableError(str(e), operation="read top keywords") from e

    def count(self) -> int:
        try:
            return int(self.db.execute(select(func.count()).select_from(SurveyDashboardSummary)).scalar_one() or 0)
        except SQLAlchemyError as e:
            raise StoreUnavailableError(str(e), operation="count summary rows") from e
