from __future__ import annotations

import datetime as dt
import logging
import time
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from insightboard.config import settings
from insightboard.errors import DataIntegrityError, StoreUnavailableError
from insightboard.models import SummaryRun
from insightboard.services.aggregation import (
    SENTIMENT_CLASSES,
    aggregate_records,
    category_buckets,
)
from insightboard.services.summary_store import (
    RawInsightSource,
    SqlRawInsightSource,
    SqlSummaryStore,
    SummaryStore,
)

logger = logging.getLogger(__name__)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class RecomputeResult:
    run_id: str
    keyword_count: int
    record_count: int
    skipped_count: int
    elapsed_s: float

    def as_dict(self) -> dict:
        return {
            "status": "completed",
            "run_id": self.run_id,
            "keyword_count": self.keyword_count,
            "record_count": self.record_count,
            "skipped_count": self.skipped_count,
            "elapsed_s": self.elapsed_s,
        }


def run_to_dict(run: SummaryRun) -> dict:
    return {
        "run_id": run.run_id,
        "status": run.status,
        "started_at": run.started_at.isoformat() if run.started_at else None,
        "finished_at": run.finished_at.isoformat() if run.finished_at else None,
        "record_count": run.record_count,
        "skipped_count": run.skipped_count,
        "keyword_count": run.keyword_count,
        "error": run.error,
    }


class SummaryService:
    """
    Full-rebuild of survey_dashboard_summary from employee_insights.

    Collaborators are injectable so the same run works from the HTTP trigger, the CLI
    and tests. Without overrides the SQL source/store bound to `db` are used.
    """

    def __init__(
        self,
        *,
        source: RawInsightSource | None = None,
        store: SummaryStore | None = None,
        accept_aliases: bool | None = None,
    ) -> None:
        self._source = source
        self._store = store
        self.accept_aliases = settings.accept_label_aliases if accept_aliases is None else bool(accept_aliases)

    def source(self, db: Session) -> RawInsightSource:
        return self._source or SqlRawInsightSource(db)

    def store(self, db: Session) -> SummaryStore:
        return self._store or SqlSummaryStore(db)

    def recompute(self, db: Session) -> RecomputeResult:
        t0 = time.time()
        run_id = uuid.uuid4().hex
        run = SummaryRun(run_id=run_id, status="running")
        try:
            db.add(run)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreUnavailableError(str(e), operation="start summary run") from e

        logger.info("Summary recompute started run_id=%s", run_id)
        try:
            records = self.source(db).fetch_all()
            agg = aggregate_records(records, accept_aliases=self.accept_aliases)
            self.store(db).replace_all(agg.rows)
        except (DataIntegrityError, StoreUnavailableError) as e:
            logger.error("Summary recompute failed run_id=%s: %s", run_id, e)
            self._finish(db, run, status="failed", error=f"{type(e).__name__}: {e}")
            raise
        except Exception as e:
            logger.exception("Summary recompute crashed run_id=%s", run_id)
            db.rollback()
            self._finish(db, run, status="failed", error=f"{type(e).__name__}: {e}")
            raise

        self._finish(
            db,
            run,
            status="completed",
            record_count=agg.record_count,
            skipped_count=agg.skipped_count,
            keyword_count=len(agg.rows),
        )
        elapsed = round(time.time() - t0, 3)
        logger.info(
            "Summary recompute completed run_id=%s keywords=%d records=%d skipped=%d in %.3fs",
            run_id,
            len(agg.rows),
            agg.record_count,
            agg.skipped_count,
            elapsed,
        )
        return RecomputeResult(
            run_id=run_id,
            keyword_count=len(agg.rows),
            record_count=agg.record_count,
            skipped_count=agg.skipped_count,
            elapsed_s=elapsed,
        )

    def _finish(self, db: Session, run: SummaryRun, *, status: str, error: str | None = None, **counts: int) -> None:
        try:
            run.status = status
            run.error = error
            run.finished_at = _utcnow()
            for k, v in counts.items():
                setattr(run, k, int(v))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            # Run bookkeeping must not mask the outcome of the recompute itself.
            logger.warning("Could not record summary run as %s: %s", status, e)

    def list_summary(self, db: Session) -> list[dict]:
        return [r.as_dict() for r in self.store(db).read_all()]

    def top_keywords(self, db: Session, n: int | None = None) -> list[dict]:
        n = settings.top_keywords_default if n is None else int(n)
        return [r.as_dict() for r in self.store(db).read_top(n)]

    def category_insights(self, db: Session, *, per_category: int = 5) -> dict:
        buckets = category_buckets(self.store(db).read_all(), per_category=per_category)
        return {cls: [r.as_dict() for r in buckets[cls]] for cls in SENTIMENT_CLASSES}

    def verify(self, db: Session) -> dict:
        """
        Recompute in memory and diff against what is stored. Never writes.
        """
        expected = {
            r.word_insight: r
            for r in aggregate_records(self.source(db).fetch_all(), accept_aliases=self.accept_aliases).rows
        }
        stored = {r.word_insight: r for r in self.store(db).read_all()}

        missing = sorted(k for k in expected if k not in stored)
        extra = sorted(k for k in stored if k not in expected)
        stale = []
        for k in sorted(expected.keys() & stored.keys()):
            if expected[k] != stored[k]:
                stale.append({"word_insight": k, "stored": stored[k].as_dict(), "expected": expected[k].as_dict()})
        bad_sum = sorted(
            r.word_insight for r in stored.values() if r.total_count > 0 and sum(r.percentages()) != 100
        )

        ok = not (missing or extra or stale or bad_sum)
        if not ok:
            logger.warning(
                "Summary verify found drift: missing=%d extra=%d stale=%d bad_sum=%d",
                len(missing),
                len(extra),
                len(stale),
                len(bad_sum),
            )
        return {
            "ok": ok,
            "expected_keywords": len(expected),
            "stored_keywords": len(stored),
            "missing": missing,
            "extra": extra,
            "stale": stale,
            "percentage_sum_mismatch": bad_sum,
        }

    def latest_run(self, db: Session) -> SummaryRun | None:
        return db.execute(select(SummaryRun).order_by(SummaryRun.id.desc()).limit(1)).scalars().first()

    def list_runs(self, db: Session, limit: int = 20) -> list[SummaryRun]:
        return list(db.execute(select(SummaryRun).order_by(SummaryRun.id.desc()).limit(limit)).scalars().all())
