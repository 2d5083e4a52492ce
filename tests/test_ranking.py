from __future__ import annotations

from datetime import UTC, datetime

from dashstate.models import SearchFilters, SearchResult, SortCriteria, SortDirection, SortField
from dashstate.search import ranking


def _result(
    result_id: str,
    title: str,
    *,
    description: str | None = None,
    tags: tuple[str, ...] = (),
    kind: str = "asset",
    status: str | None = None,
    modified: datetime | None = None,
) -> SearchResult:
    return SearchResult(
        id=result_id,
        title=title,
        description=description,
        tags=tags,
        kind=kind,
        status=status,
        metadata={"last_modified": modified},
    )


def _candidates() -> list[SearchResult]:
    return [
        _result(
            "1",
            "Pump Station",
            description="Main pump for the water loop",
            tags=("pump", "water"),
            status="active",
            modified=datetime(2026, 3, 1, tzinfo=UTC),
        ),
        _result("2", "Boiler", description="Has a backup pump", kind="device", status="maintenance"),
        _result(
            "3",
            "Cooling tower",
            tags=("pumped",),
            status="active",
            modified=datetime(2025, 6, 1, tzinfo=UTC),
        ),
        _result("4", "Chiller", kind="device"),
    ]


# ------------------------------------------------------------------
# scoring
# ------------------------------------------------------------------


def test_score_weights_title_description_and_tags() -> None:
    pump, boiler, tower, chiller = _candidates()

    assert ranking.score_result(pump, "pump") == 10
    assert ranking.score_result(boiler, "PUMP") == 3
    assert ranking.score_result(tower, " pump ") == 2
    assert ranking.score_result(chiller, "pump") == 0


def test_blank_query_scores_zero() -> None:
    assert ranking.score_result(_candidates()[0], "   ") == 0
    assert ranking.score_result(_candidates()[0], None) == 0


def test_scoring_is_idempotent() -> None:
    once = ranking.apply_scoring(_candidates(), "pump")
    twice = ranking.apply_scoring(once, "pump")

    assert [r.score for r in once] == [r.score for r in twice]


# ------------------------------------------------------------------
# filtering
# ------------------------------------------------------------------


def test_absent_filters_keep_everything() -> None:
    assert len(ranking.filter_results(_candidates(), SearchFilters())) == 4
    assert len(ranking.filter_results(_candidates(), None)) == 4


def test_filters_are_anded() -> None:
    filters = SearchFilters(kinds=("asset",), status=("active",), tags=("pump",))

    kept = ranking.filter_results(_candidates(), filters)

    assert [r.id for r in kept] == ["1"]


def test_kind_filter_is_case_insensitive() -> None:
    kept = ranking.filter_results(_candidates(), SearchFilters(kinds="DEVICE"))

    assert [r.id for r in kept] == ["2", "4"]


def test_date_range_excludes_undated_results() -> None:
    filters = SearchFilters.model_validate({"dateRange": {"from": "2026-01-01T00:00:00Z"}})

    kept = ranking.filter_results(_candidates(), filters)

    assert [r.id for r in kept] == ["1"]


def test_min_score_applies_to_computed_scores() -> None:
    ranked = ranking.rank(_candidates(), "pump", SearchFilters(min_score=3))

    assert [r.id for r in ranked] == ["1", "2"]
    assert all(r.score >= 3 for r in ranked)


# ------------------------------------------------------------------
# sorting
# ------------------------------------------------------------------


def test_relevance_sort_is_default_and_descending() -> None:
    ranked = ranking.rank(_candidates(), "pump")

    assert [r.id for r in ranked] == ["1", "2", "3", "4"]
    assert [r.score for r in ranked] == [10.0, 3.0, 2.0, 0.0]


def test_title_sort_ascending() -> None:
    ranked = ranking.rank(_candidates(), "", sort=SortCriteria(field=SortField.TITLE, direction=SortDirection.ASC))

    assert [r.title for r in ranked] == ["Boiler", "Chiller", "Cooling tower", "Pump Station"]


def test_date_sort_places_undated_last_when_descending() -> None:
    ranked = ranking.sort_results(_candidates(), SortCriteria(field="date", direction="desc"))

    assert [r.id for r in ranked] == ["1", "3", "2", "4"]


def test_sort_is_stable_for_ties() -> None:
    ties = [_result(str(i), "Same") for i in range(5)]

    for direction in (SortDirection.ASC, SortDirection.DESC):
        ranked = ranking.sort_results(ties, SortCriteria(field=SortField.RELEVANCE, direction=direction))
        assert [r.id for r in ranked] == ["0", "1", "2", "3", "4"]


# ------------------------------------------------------------------
# highlighting
# ------------------------------------------------------------------


def test_highlight_marks_every_occurrence_preserving_case() -> None:
    assert ranking.highlight("Pump and pump", "PUMP") == "<mark>Pump</mark> and <mark>pump</mark>"


def test_highlight_escapes_regex_characters() -> None:
    assert ranking.highlight("cost (net)", "(net)") == "cost <mark>(net)</mark>"


def test_rank_populates_highlight_without_touching_title() -> None:
    ranked = ranking.rank(_candidates(), "pump")
    top = ranked[0]

    assert top.title == "Pump Station"
    assert top.highlight is not None
    assert top.highlight["title"] == "<mark>Pump</mark> Station"
    assert top.highlight["tags"] == ["<mark>pump</mark>"]
    assert ranked[-1].highlight is None


def test_rank_does_not_mutate_candidates() -> None:
    candidates = _candidates()
    before = [r.model_dump() for r in candidates]

    ranking.rank(candidates, "pump", SearchFilters(kinds=("asset",)))

    assert [r.model_dump() for r in candidates] == before


# ------------------------------------------------------------------
# filter discovery
# ------------------------------------------------------------------


def test_extract_available_filters() -> None:
    available = ranking.extract_available_filters(_candidates())

    assert available.kinds == ("asset", "device")
    assert available.tags == ("pump", "pumped", "water")
    assert available.statuses == ("active", "maintenance")
    assert available.earliest == datetime(2025, 6, 1, tzinfo=UTC)
    assert available.latest == datetime(2026, 3, 1, tzinfo=UTC)
