"""Tests for couchify/design/differ.py.

Covers the three-way split, internal-document protection, view-only
equivalence and the helper functions.
"""

from __future__ import annotations

import copy

from couchify.design.differ import design_id, design_name, diff, is_internal, views_equal
from couchify.models import DesignDocument, DesignDocumentView

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_MAP = "function(doc){}"


def _doc(name: str, rev: str = "", **views: DesignDocumentView) -> DesignDocument:
    if not views:
        views = {"byName": DesignDocumentView(map=_MAP)}
    return DesignDocument(id=f"_design/{name}", rev=rev, views=dict(views))


def _ids(docs: list[DesignDocument]) -> list[str]:
    return [d.id for d in docs]


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

class TestDiffScenarios:
    def test_orphan_user_is_deleted_and_matching_player_kept(self):
        desired = [_doc("player")]
        observed = [
            _doc("player", rev="1-abc"),
            _doc("user", rev="1-def", byToken=DesignDocumentView(map=_MAP)),
        ]

        result = diff(desired, observed)

        assert result.additions == []
        assert result.changes == []
        assert _ids(result.deletions) == ["_design/user"]
        assert result.deletions[0].rev == "1-def"

    def test_changed_map_is_a_change(self):
        desired = [_doc("player")]
        observed = [
            _doc("player", rev="1-abc", byName=DesignDocumentView(map="function(doc){ emit(doc.name) }")),
        ]

        result = diff(desired, observed)

        assert _ids(result.changes) == ["_design/player"]
        assert result.additions == []
        assert result.deletions == []

    def test_change_reports_desired_copy(self):
        desired = [_doc("player")]
        observed = [_doc("player", rev="3-x", byName=DesignDocumentView(map="other"))]

        result = diff(desired, observed)

        assert result.changes[0] is desired[0]
        assert result.changes[0].rev == ""

    def test_internal_document_is_never_deleted(self):
        result = diff([], [_doc("_auth", rev="1-aaa")])

        assert result.is_empty
        assert len(result) == 0

    def test_internal_document_mixed_with_orphans(self):
        observed = [_doc("_auth", rev="1-a"), _doc("stats", rev="2-b")]

        result = diff([], observed)

        assert _ids(result.deletions) == ["_design/stats"]

    def test_desired_internal_document_can_still_be_changed(self):
        desired = [_doc("_auth", byName=DesignDocumentView(map="new"))]
        observed = [_doc("_auth", rev="1-a")]

        result = diff(desired, observed)

        assert _ids(result.changes) == ["_design/_auth"]

    def test_missing_document_is_an_addition(self):
        result = diff([_doc("player")], [_doc("user", rev="1-a")])

        assert _ids(result.additions) == ["_design/player"]
        assert _ids(result.deletions) == ["_design/user"]
        assert result.changes == []


class TestEmptyInputs:
    def test_both_empty(self):
        assert diff([], []).is_empty

    def test_empty_observed_yields_only_additions(self):
        desired = [_doc("a"), _doc("b"), _doc("c")]

        result = diff(desired, [])

        assert result.additions == desired
        assert result.changes == []
        assert result.deletions == []

    def test_empty_desired_yields_only_deletions(self):
        observed = [_doc("a", rev="1-a"), _doc("b", rev="1-b")]

        result = diff([], observed)

        assert result.deletions == observed
        assert result.additions == []
        assert result.changes == []


class TestEquivalence:
    def test_revision_difference_alone_is_not_a_change(self):
        result = diff([_doc("player", rev="")], [_doc("player", rev="7-zzz")])
        assert result.is_empty

    def test_filter_difference_is_not_detected(self):
        desired = _doc("player")
        desired.filters = {"mine": "function(doc, req){ return true }"}
        observed = _doc("player", rev="1-a")

        assert diff([desired], [observed]).is_empty

    def test_language_difference_is_not_detected(self):
        desired = _doc("player")
        desired.language = "erlang"

        assert diff([desired], [_doc("player", rev="1-a")]).is_empty

    def test_reduce_presence_matters(self):
        desired = [_doc("player", byName=DesignDocumentView(map=_MAP, reduce="_count"))]
        observed = [_doc("player", rev="1-a")]

        assert _ids(diff(desired, observed).changes) == ["_design/player"]

    def test_empty_reduce_equals_missing_reduce(self):
        desired = [_doc("player", byName=DesignDocumentView(map=_MAP, reduce=""))]
        observed = [_doc("player", rev="1-a")]

        assert diff(desired, observed).changes == []

    def test_empty_reduce_from_server_equals_missing_reduce(self):
        stored = DesignDocument.from_dict({
            "_id": "_design/player",
            "_rev": "1-a",
            "views": {"byName": {"map": _MAP, "reduce": ""}},
        })

        assert diff([_doc("player")], [stored]).is_empty

    def test_whitespace_in_map_matters(self):
        desired = [_doc("player", byName=DesignDocumentView(map="function(doc){ }"))]
        observed = [_doc("player", rev="1-a")]

        assert _ids(diff(desired, observed).changes) == ["_design/player"]

    def test_extra_view_is_a_change(self):
        desired = [_doc(
            "player",
            byName=DesignDocumentView(map=_MAP),
            byScore=DesignDocumentView(map=_MAP),
        )]
        observed = [_doc("player", rev="1-a")]

        assert _ids(diff(desired, observed).changes) == ["_design/player"]

    def test_view_order_is_irrelevant(self):
        a = {"x": DesignDocumentView(map="1"), "y": DesignDocumentView(map="2")}
        b = {"y": DesignDocumentView(map="2"), "x": DesignDocumentView(map="1")}
        assert views_equal(a, b)


class TestOrderingAndPurity:
    def test_bucket_order_follows_input_order(self):
        desired = [_doc("c"), _doc("a"), _doc("b")]
        observed = [_doc("z", rev="1"), _doc("y", rev="1")]

        result = diff(desired, observed)

        assert _ids(result.additions) == ["_design/c", "_design/a", "_design/b"]
        assert _ids(result.deletions) == ["_design/z", "_design/y"]

    def test_inputs_are_not_mutated(self):
        desired = [_doc("a"), _doc("b", byName=DesignDocumentView(map="x"))]
        observed = [_doc("b", rev="1-b"), _doc("c", rev="1-c")]
        desired_before = copy.deepcopy(desired)
        observed_before = copy.deepcopy(observed)

        diff(desired, observed)

        assert desired == desired_before
        assert observed == observed_before

    def test_accepts_generators(self):
        result = diff((d for d in [_doc("a")]), iter([]))
        assert _ids(result.additions) == ["_design/a"]

    def test_summary_lists_ids(self):
        result = diff([_doc("a")], [_doc("b", rev="1")])
        assert result.summary() == {
            "additions": ["_design/a"],
            "changes": [],
            "deletions": ["_design/b"],
        }


class TestNamingHelpers:
    def test_design_id_adds_prefix(self):
        assert design_id("player") == "_design/player"

    def test_design_id_is_idempotent(self):
        assert design_id("_design/player") == "_design/player"

    def test_design_name_strips_prefix(self):
        assert design_name("_design/player") == "player"

    def test_design_name_without_prefix_is_unchanged(self):
        assert design_name("player") == "player"

    def test_is_internal(self):
        assert is_internal("_design/_auth")
        assert not is_internal("_design/auth")
