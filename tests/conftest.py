"""Shared builders for diagram tests."""

import pytest

from diagram_core.models import Diagram, Edge, Node


def build_diagram(edges, nodes=None, sizes=None, diagram_type="flowchart"):
    """
    Build a diagram from (source, target) pairs.

    Node ids come from `nodes` when given, otherwise from the edges in order
    of first appearance. Edge ids are "<source>-<target>".
    """
    sizes = sizes or {}
    if nodes is None:
        nodes = []
        for source, target in edges:
            for node_id in (source, target):
                if node_id not in nodes:
                    nodes.append(node_id)

    diagram = Diagram(name="test", diagram_type=diagram_type)
    for node_id in nodes:
        width, height = sizes.get(node_id, (120, 50))
        diagram.nodes.append(Node(id=node_id, label=node_id, width=width, height=height))
    for source, target in edges:
        diagram.edges.append(Edge(id=f"{source}-{target}", source=source, target=target))
    return diagram


def boxes_overlap(a, b):
    """True when two nodes' bounding boxes intersect with positive area."""
    ax1, ay1, ax2, ay2 = a.bounds()
    bx1, by1, bx2, by2 = b.bounds()
    return ax1 < bx2 and bx1 < ax2 and ay1 < by2 and by1 < ay2


def overlapping_pairs(nodes):
    pairs = []
    for i, a in enumerate(nodes):
        for b in nodes[i + 1:]:
            if boxes_overlap(a, b):
                pairs.append((a.id, b.id))
    return pairs


@pytest.fixture
def make_diagram():
    return build_diagram


@pytest.fixture
def find_overlaps():
    return overlapping_pairs


@pytest.fixture
def sample_tree():
    """R with children A and B; A has child A1."""
    return build_diagram([("R", "A"), ("R", "B"), ("A", "A1")])
