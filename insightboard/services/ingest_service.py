from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from insightboard.errors import StoreUnavailableError
from insightboard.models import EmployeeInsight

logger = logging.getLogger(__name__)

SUPPORTED_SUFFIXES = (".csv", ".json", ".xlsx")

# target column -> accepted header spellings (after _norm_col)
COLUMN_CANDIDATES: dict[str, tuple[str, ...]] = {
    "source_data": ("source_data", "sourcedata", "source"),
    "employee_name": ("employee_name", "employeename", "employee", "name"),
    "date": ("date", "created_date", "tanggal"),
    "witel": ("witel", "region", "location"),
    "kota": ("kota", "city"),
    "original_insight": ("original_insight", "originalinsight", "feedback", "text"),
    "sentence_insight": ("sentence_insight", "sentenceinsight", "sentence"),
    "word_insight": ("word_insight", "wordinsight", "keyword", "word"),
    "sentiment": ("sentiment", "sentimen", "label"),
}


def _norm_col(c: Any) -> str:
    s = str(c or "").strip()
    # camelCase -> snake_case so exports like `wordInsight` line up with `word_insight`.
    s = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", s)
    s = re.sub(r"[^\w]+", "_", s.lower())
    return re.sub(r"_+", "_", s).strip("_")


def _clean(v: Any) -> Any:
    if v is None:
        return None
    try:
        if pd.isna(v):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(v, str):
        s = re.sub(r"[\r\n\t]+", " ", v).strip()
        return s or None
    return v


@dataclass(frozen=True)
class IngestResult:
    path: str
    inserted: int
    skipped_blank: int

    def as_dict(self) -> dict:
        return {"path": self.path, "inserted": self.inserted, "skipped_blank": self.skipped_blank}


class IngestService:
    """
    Raw export (csv/json/xlsx) -> employee_insights. Labels are stored as received;
    they are validated when the summary is recomputed.
    """

    def load_raw_dataframe(self, path: str) -> pd.DataFrame:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(path)
        suffix = p.suffix.lower()
        if suffix not in SUPPORTED_SUFFIXES:
            raise ValueError(f"Unsupported file type {suffix!r}; expected one of {', '.join(SUPPORTED_SUFFIXES)}")
        if suffix == ".xlsx":
            return pd.read_excel(p)
        if suffix == ".json":
            return pd.read_json(p, orient="records", dtype=False)
        return pd.read_csv(p, dtype=str, keep_default_na=True)

    def _map_columns(self, df: pd.DataFrame) -> dict[str, str]:
        by_norm = {_norm_col(c): c for c in df.columns}
        mapping: dict[str, str] = {}
        for target, candidates in COLUMN_CANDIDATES.items():
            for cand in candidates:
                if cand in by_norm:
                    mapping[target] = by_norm[cand]
                    break
        if "sentiment" not in mapping or "word_insight" not in mapping:
            raise ValueError(
                "Input must include a keyword (word_insight) and a sentiment column. "
                f"Found columns: {list(df.columns)[:30]}"
            )
        return mapping

    def dataframe_to_rows(self, df: pd.DataFrame) -> tuple[list[dict], int]:
        mapping = self._map_columns(df)
        rows: list[dict] = []
        skipped = 0
        for rec in df.to_dict(orient="records"):
            row = {target: _clean(rec.get(col)) for target, col in mapping.items()}
            if row.get("sentiment") is None and row.get("word_insight") is None:
                skipped += 1
                continue
            if row.get("sentiment") is None:
                # Missing label is kept visible as an integrity problem, not dropped.
                row["sentiment"] = ""
            else:
                row["sentiment"] = str(row["sentiment"])
            if row.get("word_insight") is not None:
                row["word_insight"] = str(row["word_insight"])
            if "date" in row:
                ts = pd.to_datetime(row["date"], errors="coerce")
                row["date"] = None if pd.isna(ts) else ts.to_pydatetime().replace(tzinfo=None)
            rows.append(row)
        return rows, skipped

    def ingest_file(self, db: Session, path: str) -> IngestResult:
        df = self.load_raw_dataframe(path)
        rows, skipped = self.dataframe_to_rows(df)
        try:
            if rows:
                db.execute(insert(EmployeeInsight), rows)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreUnavailableError(str(e), operation="insert raw records") from e
        logger.info("Ingested %d raw records from %s (skipped %d blank rows)", len(rows), path, skipped)
        return IngestResult(path=str(path), inserted=len(rows), skipped_blank=skipped)

    def has_any_data(self, db: Session) -> bool:
        return db.scalar(select(EmployeeInsight.id).limit(1)) is not None
