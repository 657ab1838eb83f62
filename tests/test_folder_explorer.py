"""Tests for file-system scanning and generated mind-map branches."""

import pytest

from diagram_core.folder_explorer import (
    FileSystemNode, generate_child_nodes, generate_folder_mindmap,
    generate_node_id, remove_descendants, scan_directory,
)
from diagram_core.collapse import toggle_collapse
from diagram_core.models import Diagram, Edge, Node, NodeData


@pytest.fixture
def project_dir(tmp_path):
    root = tmp_path / "project"
    (root / "src").mkdir(parents=True)
    (root / "src" / "main.py").write_text("print('hi')\n")
    (root / "docs").mkdir()
    (root / "README.md").write_text("# readme\n")
    (root / ".git").mkdir()
    return root


@pytest.fixture
def deep_dir(tmp_path):
    path = tmp_path / "l0"
    current = path
    for level in range(1, 7):
        current = current / f"l{level}"
    current.mkdir(parents=True)
    return path


class TestScanDirectory:

    def test_directories_first_then_files(self, project_dir):
        tree = scan_directory(project_dir)
        assert [c.name for c in tree.children] == ["docs", "src", "README.md"]
        assert tree.is_directory

    def test_hidden_entries_skipped(self, project_dir):
        names = [c.name for c in scan_directory(project_dir).children]
        assert ".git" not in names
        hidden = [c.name for c in scan_directory(project_dir, include_hidden=True).children]
        assert ".git" in hidden

    def test_max_depth(self, deep_dir):
        tree = scan_directory(deep_dir, max_depth=2)
        assert tree.children[0].children[0].name == "l2"
        assert tree.children[0].children[0].children == []

    def test_missing_folder(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            scan_directory(tmp_path / "absent")


class TestGenerateFolderMindmap:

    def test_nodes_edges_and_tags(self, project_dir):
        diagram, root = generate_folder_mindmap(scan_directory(project_dir))
        assert diagram.diagram_type == "mindmap"
        assert root.id == generate_node_id(str(project_dir))
        assert root.data.level == 0
        assert len(diagram.nodes) == 5
        assert len(diagram.edges) == 4
        assert all(n.data.is_generated for n in diagram.nodes)

        main = next(n for n in diagram.nodes if n.label == "main.py")
        assert main.data.level == 2
        assert main.data.folder_explorer.is_directory is False

    def test_sizes_shrink_with_depth(self, project_dir):
        diagram, root = generate_folder_mindmap(scan_directory(project_dir))
        main = next(n for n in diagram.nodes if n.label == "main.py")
        assert (root.width, root.height) == (160, 60)
        assert (main.width, main.height) == (140, 50)

    def test_sequential_mm_order(self, project_dir):
        diagram, _ = generate_folder_mindmap(scan_directory(project_dir))
        assert [n.data.mm_order for n in diagram.nodes] == list(range(len(diagram.nodes)))

    def test_auto_collapse_past_default_depth(self, deep_dir):
        diagram, _ = generate_folder_mindmap(scan_directory(deep_dir))
        by_level = {n.data.level: n for n in diagram.nodes}
        assert by_level[0].data.visible is True
        assert by_level[4].data.collapsed is False
        assert by_level[5].data.collapsed is True
        assert by_level[5].data.visible is True
        assert by_level[6].data.visible is False

    def test_custom_auto_collapse_depth(self, deep_dir):
        diagram, _ = generate_folder_mindmap(scan_directory(deep_dir), auto_collapse_depth=1)
        by_level = {n.data.level: n for n in diagram.nodes}
        assert by_level[2].data.collapsed is True
        assert by_level[3].data.visible is False

    def test_linked_nodes_are_read_only(self, project_dir):
        diagram, root = generate_folder_mindmap(scan_directory(project_dir), explorer_type="linked")
        assert root.data.folder_explorer.is_read_only
        assert root.data.folder_explorer.last_refreshed is not None

    def test_adds_to_existing_diagram(self, project_dir):
        diagram = Diagram(nodes=[Node(id="existing")])
        result, _ = generate_folder_mindmap(scan_directory(project_dir), diagram=diagram)
        assert result is diagram
        assert diagram.get_node("existing") is not None

    def test_node_id_sanitized(self):
        assert generate_node_id("/a b/c.txt") == "folder-node--a-b-c-txt"


class TestChildNodes:

    def test_children_of_collapsed_parent_start_hidden(self):
        diagram = Diagram()
        parent = Node(id="parent", data=NodeData(level=1, collapsed=True))
        diagram.nodes.append(parent)
        tree = FileSystemNode(name="parent", path="/p", is_directory=True, children=[
            FileSystemNode(name="a.txt", path="/p/a.txt"),
        ])
        created = generate_child_nodes(diagram, parent, tree)
        assert [n.data.level for n in created] == [2]
        assert created[0].data.visible is False
        assert diagram.edges[0].visible is False

    def test_remove_descendants(self):
        diagram = Diagram(
            nodes=[Node(id="r"), Node(id="a"), Node(id="b")],
            edges=[Edge(source="r", target="a"), Edge(source="a", target="b")],
        )
        removed = remove_descendants(diagram, diagram.get_node("r"))
        assert removed == ["a", "b"]
        assert [n.id for n in diagram.nodes] == ["r"]
        assert diagram.edges == []

    def test_later_import_keeps_expanded_nodes(self, deep_dir, tmp_path):
        diagram, _ = generate_folder_mindmap(scan_directory(deep_dir))
        level5 = next(n for n in diagram.nodes if n.data.level == 5)
        toggle_collapse(diagram, level5, False)

        other = tmp_path / "other"
        other.mkdir()
        (other / "notes.txt").write_text("")
        generate_folder_mindmap(scan_directory(other), diagram=diagram)

        assert level5.data.collapsed is False
        assert all(n.data.visible for n in diagram.nodes)

    def test_refresh_keeps_expanded_nodes_elsewhere(self, deep_dir):
        diagram, root = generate_folder_mindmap(scan_directory(deep_dir))
        level5 = next(n for n in diagram.nodes if n.data.level == 5)
        toggle_collapse(diagram, level5, False)

        extra = FileSystemNode(name="l0", path=str(deep_dir), is_directory=True, children=[
            FileSystemNode(name="new.txt", path=str(deep_dir / "new.txt")),
        ])
        generate_child_nodes(diagram, root, extra)
        assert level5.data.collapsed is False
