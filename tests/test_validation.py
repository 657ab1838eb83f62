"""Tests for diagram validation."""

from diagram_core.models import Diagram, Edge
from diagram_core.validation import IssueSeverity, validate_diagram, validation_summary

from conftest import build_diagram


def messages(issues, severity):
    return [i.message for i in issues if i.severity == severity]


class TestValidateDiagram:

    def test_clean_tree_is_valid(self, sample_tree):
        issues = validate_diagram(sample_tree)
        assert issues == []
        assert validation_summary(issues)["valid"]

    def test_empty_diagram(self):
        issues = validate_diagram(Diagram())
        assert [i.severity for i in issues] == [IssueSeverity.INFO]

    def test_missing_references(self, sample_tree):
        sample_tree.edges.append(Edge(id="bad", source="ghost", target="phantom"))
        errors = [i for i in validate_diagram(sample_tree) if i.severity == IssueSeverity.ERROR]
        assert len(errors) == 2
        assert all(i.edge_id == "bad" for i in errors)

    def test_visibility_mismatch(self, sample_tree):
        sample_tree.get_node("A1").data.visible = False
        issues = validate_diagram(sample_tree)
        mismatch = [i for i in issues if i.severity == IssueSeverity.ERROR]
        assert len(mismatch) == 1
        assert mismatch[0].edge_id == "A-A1"
        assert not validation_summary(issues)["valid"]

    def test_self_loop_and_duplicate(self):
        diagram = build_diagram([("a", "a"), ("a", "b"), ("a", "b")])
        warnings = messages(validate_diagram(diagram), IssueSeverity.WARNING)
        assert any("Self-referencing" in m for m in warnings)
        assert any("Duplicate" in m for m in warnings)

    def test_cycle_is_info(self):
        diagram = build_diagram([("a", "b"), ("b", "a")])
        info = messages(validate_diagram(diagram), IssueSeverity.INFO)
        assert any("cycle" in m for m in info)

    def test_non_positive_size(self, sample_tree):
        sample_tree.get_node("B").width = 0
        issues = validate_diagram(sample_tree)
        assert [i.node_id for i in issues if i.severity == IssueSeverity.ERROR] == ["B"]

    def test_summary_counts(self):
        diagram = build_diagram([("a", "a"), ("a", "b")])
        summary = validation_summary(validate_diagram(diagram))
        assert summary["warnings"] == 1
        assert summary["info"] == 1
        assert summary["total"] == 2

    def test_issue_to_dict(self, sample_tree):
        sample_tree.get_node("A1").data.visible = False
        payload = validate_diagram(sample_tree)[0].to_dict()
        assert payload["type"] == "error"
        assert payload["edge_id"] == "A-A1"
        assert payload["node_id"] == "A1"
