"""
Diagram validation - Check diagrams for structural and visibility issues.

Provides validation that can be used by both the backend and the CLI to
check diagram integrity before or after layout and collapse operations.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .hierarchy import build_adjacency

if TYPE_CHECKING:
    from .models import Diagram


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Invalid state, must be fixed
    WARNING = "warning"  # Potential problem, should review
    INFO = "info"        # Informational, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a diagram."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    edge_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.edge_id:
            result["edge_id"] = self.edge_id
        return result


def _has_cycle(diagram: "Diagram") -> bool:
    """Kahn's algorithm: a cycle exists if some node never reaches in-degree 0."""
    hierarchy = build_adjacency((n.id for n in diagram.nodes), diagram.edges)
    in_degree = {nid: len(entry.parent_ids) for nid, entry in hierarchy.items()}
    ready = [nid for nid, degree in in_degree.items() if degree == 0]
    seen = 0
    while ready:
        current = ready.pop()
        seen += 1
        for child_id in hierarchy[current].child_ids:
            in_degree[child_id] -= 1
            if in_degree[child_id] == 0:
                ready.append(child_id)
    return seen < len(hierarchy)


def validate_diagram(diagram: "Diagram") -> list[ValidationIssue]:
    """
    Validate a diagram and return a list of issues.

    Checks for:
    - Empty diagram - INFO
    - Invalid edge references (source/target doesn't exist) - ERROR
    - Non-positive node size - ERROR
    - Edge visibility differing from its target's visibility - ERROR
    - Self-referencing edges - WARNING
    - Duplicate edges (same source->target) - WARNING
    - Cycles (layout ranks back-edges as already visited) - INFO

    Args:
        diagram: The diagram to validate

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    nodes = diagram.nodes
    edges = diagram.edges
    node_map = {n.id: n for n in nodes}

    if not nodes:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Diagram has no nodes"
        ))
        return issues

    for node in nodes:
        if node.width <= 0 or node.height <= 0:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Node has non-positive size {node.width}x{node.height}",
                node_id=node.id
            ))

    for edge in edges:
        if edge.source not in node_map:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Edge references non-existent source node: {edge.source}",
                edge_id=edge.id
            ))
        target = node_map.get(edge.target)
        if target is None:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Edge references non-existent target node: {edge.target}",
                edge_id=edge.id
            ))
        elif edge.visible != target.data.visible:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Edge visibility ({edge.visible}) differs from target node visibility ({target.data.visible})",
                edge_id=edge.id,
                node_id=target.id
            ))

    for edge in edges:
        if edge.source == edge.target:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Self-referencing edge (node points to itself)",
                edge_id=edge.id,
                node_id=edge.source
            ))

    seen_pairs: set[tuple[str, str]] = set()
    for edge in edges:
        pair = (edge.source, edge.target)
        if pair in seen_pairs:
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message=f"Duplicate edge from {edge.source} to {edge.target}",
                edge_id=edge.id
            ))
        else:
            seen_pairs.add(pair)

    if _has_cycle(diagram):
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Diagram contains a cycle; back-edges are ranked as already visited"
        ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    errors = len([i for i in issues if i.severity == IssueSeverity.ERROR])
    return {
        "total": len(issues),
        "errors": errors,
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": errors == 0
    }
