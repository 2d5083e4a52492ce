"""Search ranking pipeline: filter → score → sort → highlight.

Every stage is a pure function over a list of :class:`SearchResult` and
returns a new list; models are immutable so inputs are never modified.
"""

from __future__ import annotations

import locale
import logging
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from dashstate._constants import DESCRIPTION_WEIGHT, HIGHLIGHT_CLOSE, HIGHLIGHT_OPEN, TAG_WEIGHT, TITLE_WEIGHT
from dashstate.models.search import SearchFilters, SearchResult, SortCriteria, SortDirection, SortField

_logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=UTC)

Predicate = Callable[[SearchResult], bool]


def _normalize_query(query: str | None) -> str:
    return (query or "").strip().lower()


# ------------------------------------------------------------------
# 1) Filter
# ------------------------------------------------------------------


def build_predicates(filters: SearchFilters, *, include_min_score: bool = True) -> list[Predicate]:
    """Translate *filters* into predicates; absent fields add none."""
    predicates: list[Predicate] = []

    if filters.kinds:
        kinds = {k.lower() for k in filters.kinds}
        predicates.append(lambda r: r.kind.lower() in kinds)

    if filters.tags:
        wanted = {t.lower() for t in filters.tags}
        predicates.append(lambda r: any(tag.lower() in wanted for tag in r.tags))

    if filters.status:
        statuses = {s.lower() for s in filters.status}
        predicates.append(lambda r: r.status is not None and r.status.lower() in statuses)

    if filters.date_range is not None:
        date_range = filters.date_range
        predicates.append(lambda r: date_range.contains(r.metadata.last_modified))

    if include_min_score and filters.min_score is not None:
        min_score = filters.min_score
        predicates.append(lambda r: r.score >= min_score)

    return predicates


def filter_results(
    results: Iterable[SearchResult],
    filters: SearchFilters | None,
    *,
    include_min_score: bool = True,
) -> list[SearchResult]:
    """Keep results satisfying every supplied filter (AND semantics)."""
    if filters is None or filters.is_empty:
        return list(results)
    predicates = build_predicates(filters, include_min_score=include_min_score)
    return [r for r in results if all(p(r) for p in predicates)]


# ------------------------------------------------------------------
# 2) Score
# ------------------------------------------------------------------


def score_result(result: SearchResult, query: str | None) -> int:
    """Relevance of *result* for *query*.

    Title substring match +5, description +3, +2 for each matching tag.
    A blank query carries no ranking signal and scores 0.
    """
    q = _normalize_query(query)
    if not q:
        return 0

    score = 0
    if q in result.title.lower():
        score += TITLE_WEIGHT
    if result.description and q in result.description.lower():
        score += DESCRIPTION_WEIGHT
    for tag in result.tags:
        if q in tag.lower():
            score += TAG_WEIGHT
    return score


def apply_scoring(results: Iterable[SearchResult], query: str | None) -> list[SearchResult]:
    return [r.model_copy(update={"score": float(score_result(r, query))}) for r in results]


# ------------------------------------------------------------------
# 3) Sort
# ------------------------------------------------------------------


def _title_key(result: SearchResult) -> str:
    return locale.strxfrm(result.title)


def _date_key(result: SearchResult) -> datetime:
    return result.metadata.last_modified or _OLDEST


def _score_key(result: SearchResult) -> float:
    return result.score


_SORT_KEYS: dict[SortField, Callable[[SearchResult], object]] = {
    SortField.RELEVANCE: _score_key,
    SortField.DATE: _date_key,
    SortField.TITLE: _title_key,
}


def sort_results(results: Iterable[SearchResult], criteria: SortCriteria | None) -> list[SearchResult]:
    """Stable sort by *criteria*; ties keep their input order in both directions."""
    items = list(results)
    if criteria is None:
        return items
    key = _SORT_KEYS.get(criteria.field)
    if key is None:
        return items
    return sorted(items, key=key, reverse=criteria.direction == SortDirection.DESC)  # type: ignore[arg-type]


# ------------------------------------------------------------------
# 4) Highlight
# ------------------------------------------------------------------


def _pattern(query: str | None) -> re.Pattern[str] | None:
    q = (query or "").strip()
    if not q:
        return None
    return re.compile(re.escape(q), re.IGNORECASE)


def highlight(text: str, query: str | None) -> str:
    """Wrap every case-insensitive occurrence of *query* in a marker.

    Pass the source value, never a previously highlighted string.
    """
    pattern = _pattern(query)
    if pattern is None or not text:
        return text
    return pattern.sub(lambda m: f"{HIGHLIGHT_OPEN}{m.group(0)}{HIGHLIGHT_CLOSE}", text)


def highlight_result(result: SearchResult, query: str | None) -> SearchResult:
    pattern = _pattern(query)
    if pattern is None:
        return result if result.highlight is None else result.model_copy(update={"highlight": None})

    marked: dict[str, object] = {}
    if pattern.search(result.title):
        marked["title"] = highlight(result.title, query)
    if result.description and pattern.search(result.description):
        marked["description"] = highlight(result.description, query)
    tags = [highlight(tag, query) for tag in result.tags if pattern.search(tag)]
    if tags:
        marked["tags"] = tags
    return result.model_copy(update={"highlight": marked or None})


def apply_highlighting(results: Iterable[SearchResult], query: str | None) -> list[SearchResult]:
    return [highlight_result(r, query) for r in results]


# ------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------


def rank(
    candidates: Iterable[SearchResult],
    query: str | None = "",
    filters: SearchFilters | None = None,
    sort: SortCriteria | None = None,
) -> list[SearchResult]:
    """Run filter → score → sort → highlight.

    ``min_score`` is checked against the freshly computed scores; the other
    filters run before scoring.
    """
    items = list(candidates)
    filtered = filter_results(items, filters, include_min_score=False)
    scored = apply_scoring(filtered, query)
    if filters is not None and filters.min_score is not None:
        scored = [r for r in scored if r.score >= filters.min_score]
    ordered = sort_results(scored, sort or SortCriteria())
    ranked = apply_highlighting(ordered, query)
    _logger.debug(
        "Ranked %d/%d candidates for query=%r",
        len(ranked),
        len(items),
        (query or "").strip(),
    )
    return ranked


# ------------------------------------------------------------------
# Filter discovery
# ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class AvailableFilters:
    kinds: tuple[str, ...]
    tags: tuple[str, ...]
    statuses: tuple[str, ...]
    earliest: datetime | None
    latest: datetime | None


def extract_available_filters(results: Sequence[SearchResult]) -> AvailableFilters:
    """Collect the filter values present in *results* (sorted, de-duplicated)."""
    kinds: set[str] = set()
    tags: set[str] = set()
    statuses: set[str] = set()
    dates: list[datetime] = []
    for result in results:
        kinds.add(result.kind)
        tags.update(result.tags)
        if result.status:
            statuses.add(result.status)
        if result.metadata.last_modified is not None:
            dates.append(result.metadata.last_modified)
    return AvailableFilters(
        kinds=tuple(sorted(kinds)),
        tags=tuple(sorted(tags)),
        statuses=tuple(sorted(statuses)),
        earliest=min(dates) if dates else None,
        latest=max(dates) if dates else None,
    )
