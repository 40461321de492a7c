"""
Rebuild the keyword summary from the command line (scheduled jobs, manual fixes).

Usage:
    insightboard-recompute
    insightboard-recompute --import data/export.json --top 10
    insightboard-recompute --database-url sqlite:///./other.db --debug

Exit codes: 0 success, 1 bad sentiment labels in raw data, 2 store failure,
3 unreadable import file.
"""

from __future__ import annotations

import argparse
import sys

from insightboard import database
from insightboard.config import settings
from insightboard.errors import DataIntegrityError, StoreUnavailableError
from insightboard.logging_setup import configure_logging
from insightboard.models import Base
from insightboard.services.ingest_service import IngestService
from insightboard.services.summary_service import SummaryService


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recompute the keyword sentiment summary")
    parser.add_argument(
        "--import",
        dest="imports",
        action="append",
        default=[],
        metavar="PATH",
        help="Raw export (csv/json/xlsx) to load before recomputing; repeatable",
    )
    parser.add_argument(
        "--top",
        type=int,
        default=settings.top_keywords_default,
        help="How many top keywords to print (default: %(default)s)",
    )
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging("DEBUG" if args.debug else settings.log_level)
    if args.database_url:
        database.configure(args.database_url)
    Base.metadata.create_all(bind=database.engine)

    svc = SummaryService()
    try:
        with database.session_scope() as db:
            for path in args.imports:
                res = IngestService().ingest_file(db, path)
                print(f"imported={res.inserted} skipped_blank={res.skipped_blank} file={res.path}")
            res = svc.recompute(db)
            print(
                f"run_id={res.run_id} keywords={res.keyword_count} records={res.record_count} "
                f"skipped={res.skipped_count} elapsed={res.elapsed_s}s"
            )
            for i, row in enumerate(svc.top_keywords(db, args.top), start=1):
                print(
                    f"  {i}. {row['word_insight']} ({row['total_count']}) "
                    f"+{row['positive_percentage']}% -{row['negative_percentage']}% ={row['neutral_percentage']}%"
                )
    except DataIntegrityError as e:
        print(f"data integrity error: {e}", file=sys.stderr)
        return 1
    except StoreUnavailableError as e:
        print(f"store unavailable: {e}", file=sys.stderr)
        return 2
    except (FileNotFoundError, ValueError) as e:
        print(f"cannot import: {e}", file=sys.stderr)
        return 3
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
