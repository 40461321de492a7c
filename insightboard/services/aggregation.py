"""
Sentiment aggregation: raw labeled records -> one summary row per keyword.

Everything here is pure (no DB, no clock unless `now` is omitted) so a run can be
recomputed and compared against what is stored.
"""

from __future__ import annotations

import datetime as dt
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Iterable, Protocol, Sequence

from insightboard.errors import DataIntegrityError, InvalidSentimentRecord

# Order matters: it is the tie-break priority when normalizing percentages
# and when picking a dominant sentiment.
SENTIMENT_CLASSES: tuple[str, str, str] = ("positive", "negative", "neutral")

# Labels written by the upstream (Indonesian) classifier.
SENTIMENT_ALIASES: dict[str, str] = {
    "positif": "positive",
    "negatif": "negative",
    "netral": "neutral",
}


class RawInsightLike(Protocol):
    id: Any
    word_insight: str | None
    sentiment: str | None


@dataclass(frozen=True)
class RawRecord:
    id: Any
    word_insight: str | None
    sentiment: str | None


@dataclass(frozen=True)
class SummaryRowData:
    word_insight: str
    total_count: int
    positive_count: int
    negative_count: int
    neutral_count: int
    positive_percentage: int
    negative_percentage: int
    neutral_percentage: int
    updated_at: dt.datetime | None = field(default=None, compare=False)

    def counts(self) -> tuple[int, int, int]:
        return (self.positive_count, self.negative_count, self.neutral_count)

    def percentages(self) -> tuple[int, int, int]:
        return (self.positive_percentage, self.negative_percentage, self.neutral_percentage)

    def as_dict(self) -> dict:
        return {
            "word_insight": self.word_insight,
            "total_count": self.total_count,
            "positive_count": self.positive_count,
            "negative_count": self.negative_count,
            "neutral_count": self.neutral_count,
            "positive_percentage": self.positive_percentage,
            "negative_percentage": self.negative_percentage,
            "neutral_percentage": self.neutral_percentage,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class Aggregation:
    rows: list[SummaryRowData]
    record_count: int  # records that made it into a group
    skipped_count: int  # records with a null or empty keyword


def canonical_sentiment(label: str | None, *, accept_aliases: bool = True) -> str | None:
    """
    Map a stored label onto one of SENTIMENT_CLASSES, or None if it is not recognized.

    Strict mode only accepts the canonical spelling. Alias mode also accepts the exact
    Indonesian labels. Labels are compared verbatim, with no case or whitespace folding.
    """
    if label is None:
        return None
    if not accept_aliases:
        return label if label in SENTIMENT_CLASSES else None
    if label in SENTIMENT_CLASSES:
        return label
    return SENTIMENT_ALIASES.get(label)


def round_half_up_pct(count: int, total: int) -> int:
    """round(count / total * 100) with halves rounded up, in integer arithmetic."""
    if total <= 0:
        return 0
    return (200 * count + total) // (2 * total)


def normalize_percentages(pcts: Sequence[int]) -> tuple[int, int, int]:
    """
    Force three rounded percentages to sum to 100 by moving the whole difference onto the
    single largest value. Ties go positive > negative > neutral.
    """
    out = [int(p) for p in pcts]
    if len(out) != 3:
        raise ValueError("expected exactly three percentages")
    diff = 100 - sum(out)
    if diff:
        # max() returns the first maximal index, which encodes the tie-break order.
        idx = max(range(3), key=lambda i: out[i])
        out[idx] += diff
    return out[0], out[1], out[2]


def compute_percentages(positive: int, negative: int, neutral: int) -> tuple[int, int, int]:
    total = positive + negative + neutral
    if total == 0:
        return 0, 0, 0
    return normalize_percentages([round_half_up_pct(c, total) for c in (positive, negative, neutral)])


def _has_keyword(keyword: str | None) -> bool:
    return keyword is not None and keyword != ""


def aggregate_records(
    records: Iterable[RawInsightLike],
    *,
    accept_aliases: bool = True,
    now: dt.datetime | None = None,
) -> Aggregation:
    counts: dict[str, list[int]] = defaultdict(lambda: [0, 0, 0])
    offenders: list[InvalidSentimentRecord] = []
    skipped = 0
    aggregated = 0

    for r in records:
        keyword = r.word_insight
        if not _has_keyword(keyword):
            skipped += 1
            continue
        cls = canonical_sentiment(r.sentiment, accept_aliases=accept_aliases)
        if cls is None:
            offenders.append(InvalidSentimentRecord(record_id=r.id, sentiment=r.sentiment))
            continue
        counts[keyword][SENTIMENT_CLASSES.index(cls)] += 1
        aggregated += 1

    if offenders:
        raise DataIntegrityError(offenders)

    stamp = now or dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)
    rows: list[SummaryRowData] = []
    for keyword in sorted(counts):
        pos, neg, neu = counts[keyword]
        p_pos, p_neg, p_neu = compute_percentages(pos, neg, neu)
        rows.append(
            SummaryRowData(
                word_insight=keyword,
                total_count=pos + neg + neu,
                positive_count=pos,
                negative_count=neg,
                neutral_count=neu,
                positive_percentage=p_pos,
                negative_percentage=p_neg,
                neutral_percentage=p_neu,
                updated_at=stamp,
            )
        )
    return Aggregation(rows=rows, record_count=aggregated, skipped_count=skipped)


def recompute_summary(
    records: Iterable[RawInsightLike],
    *,
    accept_aliases: bool = True,
    now: dt.datetime | None = None,
) -> list[SummaryRowData]:
    return aggregate_records(records, accept_aliases=accept_aliases, now=now).rows


def top_keywords(rows: Iterable[Any], n: int) -> list[Any]:
    """Highest total_count first; equal counts ordered by keyword ascending."""
    if n <= 0:
        return []
    return sorted(rows, key=lambda r: (-r.total_count, r.word_insight))[:n]


def dominant_sentiment(row: Any) -> str | None:
    counts = (row.positive_count, row.negative_count, row.neutral_count)
    if sum(counts) == 0:
        return None
    return SENTIMENT_CLASSES[max(range(3), key=lambda i: counts[i])]


def category_buckets(rows: Iterable[Any], *, per_category: int = 5) -> dict[str, list[Any]]:
    """
    Category cards: each keyword lands in the bucket of its dominant sentiment, strongest first.
    """
    buckets: dict[str, list[Any]] = {c: [] for c in SENTIMENT_CLASSES}
    for r in rows:
        cls = dominant_sentiment(r)
        if cls:
            buckets[cls].append(r)
    for cls, items in buckets.items():
        attr = f"{cls}_percentage"
        items.sort(key=lambda r: (-getattr(r, attr), -r.total_count, r.word_insight))
        buckets[cls] = items[: max(0, int(per_category))]
    return buckets
