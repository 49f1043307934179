import numpy as np
import pytest

from arborsplit.core import SkeletonNode, Tree
from arborsplit.exceptions import MalformedTreeError

from .builders import make_tree, random_tree


def test_root_leaves_and_branch_points(forked_tree):
    assert forked_tree.root == 1
    assert sorted(forked_tree.leaves) == [5, 7]
    assert forked_tree.branch_points == [3]
    assert forked_tree.children(3) == [4, 6]
    assert forked_tree.parent(1) is None
    assert forked_tree.parent(6) == 3


def test_depth_and_paths(forked_tree):
    assert forked_tree.depth(1) == 0
    assert forked_tree.depth(7) == 4
    assert forked_tree.path_to_root(7) == [7, 6, 3, 2, 1]
    assert sorted(forked_tree.subtree(3)) == [3, 4, 5, 6, 7]


def test_segments_of_forked_tree(forked_tree):
    segments = {tuple(s.nodes): s.anchor for s in forked_tree.segments}
    assert segments == {(5, 4): 3, (7, 6): 3, (3, 2): 1}


def test_chain_is_one_segment(chain_tree):
    (segment,) = chain_tree.segments
    assert segment.nodes == [5, 4, 3, 2]
    assert segment.anchor == 1


def test_single_node_tree_has_no_segments():
    tree = make_tree({7: None})
    assert tree.root == 7
    assert tree.segments == []
    assert tree.leaves == [7]


@pytest.mark.parametrize("seed", range(5))
def test_segments_partition_non_root_nodes(seed):
    tree = random_tree(60, seed=seed)
    members = [idx for segment in tree.segments for idx in segment.nodes]
    assert len(members) == len(set(members))
    assert set(members) == set(tree.nodes) - {tree.root}
    for segment in tree.segments:
        anchor = tree.nodes[segment.anchor]
        assert anchor.is_root or anchor.is_branch_point
        assert tree.parent(segment.nodes[-1]) == segment.anchor


def test_graph_edges_point_away_from_root(forked_tree):
    graph = forked_tree.graph
    assert graph.number_of_nodes() == 7
    assert graph.has_edge(3, 6)
    assert not graph.has_edge(6, 3)


def test_positions_array(chain_tree):
    positions = chain_tree.positions([1, 3])
    np.testing.assert_allclose(positions, [[1.0, 0.0, 0.0], [3.0, 0.0, 0.0]])


def test_minus_one_parent_marks_root():
    tree = Tree.from_records([(1, -1, 0, 0, 0, 1), (2, 1, 1, 0, 0, 1)])
    assert tree.root == 1


def test_multiple_roots_rejected():
    with pytest.raises(MalformedTreeError, match="Multiple root"):
        make_tree({1: None, 2: None, 3: 1})


def test_dangling_parent_rejected():
    with pytest.raises(MalformedTreeError, match="missing parent"):
        make_tree({1: None, 2: 1, 3: 99})


def test_cycle_rejected():
    with pytest.raises(MalformedTreeError, match="Cycle"):
        make_tree({1: None, 2: 1, 3: 4, 4: 3})


def test_self_parent_rejected():
    with pytest.raises(MalformedTreeError):
        make_tree({1: None, 2: 2})


def test_no_root_rejected():
    with pytest.raises(MalformedTreeError, match="No root"):
        make_tree({1: 2, 2: 1})


def test_duplicate_ids_rejected():
    nodes = [SkeletonNode(1, 0, 0, 0, 1, -1), SkeletonNode(1, 1, 0, 0, 1, -1)]
    with pytest.raises(MalformedTreeError, match="Duplicate"):
        Tree(nodes)


def test_caller_nodes_left_untouched():
    nodes = [SkeletonNode(1, 0, 0, 0, 1, -1), SkeletonNode(2, 1, 0, 0, 1, 1), SkeletonNode(3, 2, 0, 0, 1, 2)]
    first = Tree(nodes)
    second = Tree(nodes)

    assert all(node.children == [] for node in nodes)
    assert first.nodes[1] is not nodes[0]
    assert first.nodes[1] is not second.nodes[1]
    assert first.children(1) == [2]
    assert second.children(1) == [2]
    assert second.children(2) == [3]
