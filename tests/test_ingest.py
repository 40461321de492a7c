"""
Tests for loading raw exports into employee_insights.
"""

import json

import pandas as pd
import pytest
from sqlalchemy import select

from insightboard.errors import DataIntegrityError
from insightboard.models import EmployeeInsight
from insightboard.services.ingest_service import IngestService, _norm_col
from insightboard.services.summary_service import SummaryService


class TestNormCol:
    def test_camel_case(self):
        assert _norm_col("wordInsight") == "word_insight"
        assert _norm_col("sourceData") == "source_data"

    def test_spaces_and_case(self):
        assert _norm_col(" Word Insight ") == "word_insight"
        assert _norm_col("WITEL") == "witel"


class TestDataframeToRows:
    def test_maps_header_variants(self):
        df = pd.DataFrame(
            [{"Employee": "Ayu", "Keyword": "bonus", "Label": "positif", "City": "Bandung"}]
        )
        rows, skipped = IngestService().dataframe_to_rows(df)
        assert skipped == 0
        assert rows == [{"employee_name": "Ayu", "kota": "Bandung", "word_insight": "bonus", "sentiment": "positif"}]

    def test_missing_required_columns(self):
        df = pd.DataFrame([{"employee": "Ayu", "sentiment": "positive"}])
        with pytest.raises(ValueError, match="keyword"):
            IngestService().dataframe_to_rows(df)

    def test_blank_rows_skipped(self):
        df = pd.DataFrame(
            [
                {"word_insight": None, "sentiment": None},
                {"word_insight": "pay", "sentiment": "neutral"},
            ]
        )
        rows, skipped = IngestService().dataframe_to_rows(df)
        assert skipped == 1
        assert [r["word_insight"] for r in rows] == ["pay"]

    def test_missing_label_kept_as_empty(self):
        df = pd.DataFrame([{"word_insight": "pay", "sentiment": None}])
        rows, _ = IngestService().dataframe_to_rows(df)
        assert rows[0]["sentiment"] == ""


class TestIngestFile:
    def test_csv_sample_then_recompute(self, db, tmp_path):
        path = tmp_path / "export.csv"
        path.write_text(
            "sourceData,employeeName,date,witel,kota,wordInsight,sentimen\n"
            "Survey,Ayu,2025-01-06,JAKARTA,Jakarta,wellness,positif\n"
            "Survey,Budi,2025-01-07,JAKARTA,Jakarta,wellness,negatif\n"
            "Survey,Citra,not-a-date,BANDUNG,Bandung,wellness,netral\n"
            "Survey,Dedi,2025-01-09,SURABAYA,Surabaya,,netral\n",
            encoding="utf-8",
        )
        res = IngestService().ingest_file(db, str(path))
        assert res.inserted == 4
        assert res.skipped_blank == 0

        recs = db.execute(select(EmployeeInsight).order_by(EmployeeInsight.id)).scalars().all()
        assert recs[0].witel == "JAKARTA"
        assert recs[0].date is not None and recs[0].date.year == 2025
        assert recs[2].date is None
        assert recs[3].word_insight is None

        out = SummaryService().recompute(db)
        assert out.keyword_count == 1
        assert out.skipped_count == 1

    def test_json_records(self, db, tmp_path):
        path = tmp_path / "export.json"
        path.write_text(
            json.dumps(
                [
                    {"wordInsight": "bonus", "sentimen": "positive", "employeeName": "Eka"},
                    {"wordInsight": "bonus", "sentimen": "positive", "employeeName": "Fajar"},
                ]
            ),
            encoding="utf-8",
        )
        res = IngestService().ingest_file(db, str(path))
        assert res.inserted == 2
        assert IngestService().has_any_data(db)

    def test_bad_label_stored_then_rejected_by_recompute(self, db, tmp_path):
        path = tmp_path / "dirty.csv"
        path.write_text("word_insight,sentiment\nbonus,positive\nbonus,mixed\n", encoding="utf-8")
        IngestService().ingest_file(db, str(path))
        with pytest.raises(DataIntegrityError) as ei:
            SummaryService().recompute(db)
        assert ei.value.offenders[0].sentiment == "mixed"

    def test_unsupported_suffix(self, db, tmp_path):
        path = tmp_path / "export.txt"
        path.write_text("x", encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported"):
            IngestService().ingest_file(db, str(path))

    def test_legacy_xls_not_accepted(self, db, tmp_path):
        path = tmp_path / "export.xls"
        path.write_bytes(b"\xd0\xcf\x11\xe0")
        with pytest.raises(ValueError, match="Unsupported"):
            IngestService().ingest_file(db, str(path))

    def test_missing_file(self, db, tmp_path):
        with pytest.raises(FileNotFoundError):
            IngestService().ingest_file(db, str(tmp_path / "nope.csv"))

    def test_empty_db_has_no_data(self, db):
        assert IngestService().has_any_data(db) is False
