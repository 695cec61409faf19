"""
SWOT Planning Workshop Platform
Tests — consolidation engine, group responses, final classification seeding.
"""

from datetime import datetime, timedelta, timezone

from swotplan.core.consolidation import (
    CertaintyMark,
    GroupSnapshot,
    PlanSnapshot,
    consolidate,
    fill_progress,
    is_editable,
    parse_certainty_map,
    responses_for,
    seed_final_classification,
)
from swotplan.core.quadrants import Quadrant
from swotplan.core.risk import OpportunityStrategy, RiskClassificationSet, ThreatStrategy

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def _filled_set(opportunities=(), threats=(), classify=None):
    cset = RiskClassificationSet.seed(list(opportunities), list(threats))
    for text, strategy in (classify or {}).items():
        cset.classify(text, strategy)
    cset.filled_at = NOW
    return cset


def _group(gid, name, lines, certainty=None, classification=None, filled=True):
    if classification is None and filled:
        classification = _filled_set(
            [t for t in (lines.get("opportunities") or "").split("\n") if t.strip()],
            [t for t in (lines.get("threats") or "").split("\n") if t.strip()],
        )
    return GroupSnapshot.from_lines(
        gid, name, lines, certainty or {},
        classification=classification,
        swot_filled_at=NOW if filled else None,
    )


def _all_certain(lines):
    return {q: {str(i): "C" for i in range(len(v.split("\n")))} for q, v in lines.items()}


class TestCertainty:
    def test_parse_map(self):
        marks = parse_certainty_map({"0": "C", "1": "i", "2": "maybe", "x": "C"})
        assert marks == {0: CertaintyMark.CERTAIN, 1: CertaintyMark.UNCERTAIN}

    def test_only_certain_items_count(self):
        g = _group(1, "A", {"threats": "Rates\nRival\nTax"}, {"threats": {"0": "C", "1": "I"}})
        assert g.certain_items(Quadrant.THREATS) == ["Rates"]


class TestConsolidate:
    def test_cap_of_five_from_three_groups_of_four(self):
        groups = []
        for gid in range(1, 4):
            lines = {"opportunities": "\n".join(f"G{gid} item {n}" for n in range(4))}
            groups.append(_group(gid, f"Group {gid}", lines, _all_certain(lines)))
        result = consolidate(groups)
        assert len(result.items(Quadrant.OPPORTUNITIES)) == 5
        assert result.items(Quadrant.OPPORTUNITIES)[:4] == [f"G1 item {n}" for n in range(4)]
        assert result.items(Quadrant.OPPORTUNITIES)[4] == "G2 item 0"

    def test_duplicates_fold_to_first_spelling(self):
        a_lines = {"strengths": "Skilled team"}
        b_lines = {"strengths": " skilled TEAM\nCash"}
        result = consolidate([
            _group(1, "A", a_lines, _all_certain(a_lines)),
            _group(2, "B", b_lines, _all_certain(b_lines)),
        ])
        items = result.quadrants[Quadrant.STRENGTHS]
        assert [i.text for i in items] == ["Skilled team", "Cash"]
        assert items[0].sources == ["A", "B"]

    def test_unfilled_groups_and_uncertain_items_excluded(self):
        a_lines = {"threats": "Rates\nRival"}
        b_lines = {"threats": "Tax"}
        result = consolidate([
            _group(1, "A", a_lines, {"threats": {"0": "C", "1": "I"}}),
            _group(2, "B", b_lines, _all_certain(b_lines), filled=False),
        ])
        assert result.items(Quadrant.THREATS) == ["Rates"]
        assert result.filled_count == 1
        assert result.complete is False

    def test_swot_only_filled_group_is_not_filled(self):
        lines = {"threats": "Rates"}
        g = _group(1, "A", lines, _all_certain(lines), classification=RiskClassificationSet.seed([], ["Rates"]))
        assert g.swot_filled is True
        assert g.is_filled is False
        assert consolidate([g]).items(Quadrant.THREATS) == []

    def test_no_groups(self):
        result = consolidate([])
        assert all(result.items(q) == [] for q in Quadrant)
        assert result.to_lines()["strengths"] == ""


class TestResponsesFor:
    def _groups(self):
        return [
            _group(1, "Finance", {"opportunities": "novo mercado"},
                   classification=_filled_set(["novo mercado"], [], {"novo mercado": OpportunityStrategy.EXPLORE})),
            _group(2, "Operations", {"opportunities": "Other"},
                   classification=_filled_set(["Other"], [])),
            _group(3, "Sales", {"opportunities": "Novo Mercado"}, classification=None, filled=False),
        ]

    def test_matches_trimmed_case_insensitive(self):
        responses = responses_for("Novo Mercado ", self._groups())
        assert len(responses) == 1
        assert responses[0].group_name == "Finance"
        assert responses[0].classification is OpportunityStrategy.EXPLORE
        assert responses[0].to_dict()["classification"] == "explore"

    def test_quadrant_filter(self):
        assert responses_for("novo mercado", self._groups(), Quadrant.THREATS) == []


class TestSeedFinalClassification:
    def test_majority_vote_and_ties(self):
        groups = [
            _group(1, "A", {"threats": "Rates"},
                   classification=_filled_set([], ["Rates", "Tax"], {"Rates": ThreatStrategy.MITIGATE, "Tax": ThreatStrategy.AVOID})),
            _group(2, "B", {"threats": "rates"},
                   classification=_filled_set([], ["rates", "tax"], {"rates": ThreatStrategy.ACCEPT, "tax": ThreatStrategy.TRANSFER})),
            _group(3, "C", {"threats": "Rates"},
                   classification=_filled_set([], ["Rates"], {"Rates": ThreatStrategy.ACCEPT})),
        ]
        final = seed_final_classification({"threats": "Rates\nTax\nNew"}, groups)
        by_item = {e.item: e.classification for e in final.threats}
        assert by_item["Rates"] is ThreatStrategy.ACCEPT
        assert by_item["Tax"] is ThreatStrategy.AVOID
        assert by_item["New"] is None
        assert all(e.treatment == "" for e in final.threats)

    def test_existing_classification_wins(self):
        groups = [
            _group(1, "A", {"threats": "Rates"},
                   classification=_filled_set([], ["Rates"], {"Rates": ThreatStrategy.MITIGATE})),
        ]
        existing = RiskClassificationSet.seed([], ["Rates"])
        existing.classify("Rates", ThreatStrategy.AVOID)
        final = seed_final_classification({"threats": ["Rates"]}, groups, existing=existing)
        assert final.threats[0].classification is ThreatStrategy.AVOID

    def test_no_auto_seed(self):
        groups = [
            _group(1, "A", {"threats": "Rates"},
                   classification=_filled_set([], ["Rates"], {"Rates": ThreatStrategy.MITIGATE})),
        ]
        final = seed_final_classification({"threats": "Rates"}, groups, auto_seed=False)
        assert final.threats[0].classification is None


class TestProgressAndDeadline:
    def test_fill_progress(self):
        groups = [
            _group(1, "A", {"threats": "x"}),
            _group(2, "B", {"threats": "y"}, filled=False),
            _group(3, "C", {"threats": "z"}, classification=RiskClassificationSet()),
        ]
        assert fill_progress(groups) == 67
        assert fill_progress(groups, classification=True) == 33
        assert fill_progress([]) == 0

    def test_is_editable(self):
        deadline = NOW
        assert is_editable(None, NOW) is True
        assert is_editable(deadline, NOW) is True
        assert is_editable(deadline, NOW + timedelta(seconds=1)) is False
        assert PlanSnapshot(id=1, deadline=deadline.replace(tzinfo=None)).is_editable(
            NOW - timedelta(days=1)
        ) is True
