"""
Core data structures for representing a neuron skeleton as a rooted tree.
"""

import logging
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence

import networkx as nx
import numpy as np

from .exceptions import MalformedTreeError

logger = logging.getLogger(__name__)

ROOT_PARENT = -1


@dataclass
class SkeletonNode:
    """Represents a single point of a skeleton."""
    index: int
    x: float
    y: float
    z: float
    radius: float
    parent: int
    children: List[int] = field(default_factory=list)

    @property
    def position(self) -> np.ndarray:
        """Get 3D position as numpy array."""
        return np.array([self.x, self.y, self.z])

    @property
    def is_root(self) -> bool:
        return self.parent == ROOT_PARENT

    @property
    def is_terminal(self) -> bool:
        """Check if this node is a terminal (leaf) node."""
        return len(self.children) == 0

    @property
    def is_branch_point(self) -> bool:
        """Check if this node is a branch point."""
        return len(self.children) > 1


@dataclass
class Segment:
    """
    Unbranched run of nodes between a leaf or branch point and the next
    branch point (or root) towards the soma.

    ``nodes`` is ordered distal to proximal. ``anchor`` is the branch point or
    root the segment hangs from; it is not itself part of the segment.
    """
    nodes: List[int]
    anchor: int

    @property
    def head(self) -> int:
        return self.nodes[0]

    def __len__(self) -> int:
        return len(self.nodes)


class Tree:
    """
    Rooted skeleton tree with derived adjacency.

    The tree is validated on construction; anything that is not a single
    rooted, acyclic tree raises :class:`MalformedTreeError`.
    """

    def __init__(self, nodes: Iterable[SkeletonNode], metadata: Optional[Dict] = None):
        """
        Initialize tree from skeleton nodes.

        Args:
            nodes: SkeletonNode objects, in any order
            metadata: Optional metadata dictionary
        """
        self.nodes: Dict[int, SkeletonNode] = {}
        for node in nodes:
            if node.index in self.nodes:
                raise MalformedTreeError(f"Duplicate node id {node.index}")
            node = replace(node, children=[])
            self.nodes[node.index] = node
        self.metadata = metadata or {}
        self._graph = None
        self._segments = None
        self._depth: Dict[int, int] = {}
        self.root = self._build_relationships()
        self._check_reachable()

    @classmethod
    def from_records(cls, rows: Iterable[Sequence], metadata: Optional[Dict] = None) -> "Tree":
        """
        Build a tree from ``(id, parent, x, y, z, radius)`` tuples.

        A parent of ``None`` or ``-1`` marks the root.
        """
        nodes = []
        for row in rows:
            index, parent, x, y, z, radius = row
            nodes.append(SkeletonNode(
                index=int(index),
                x=float(x),
                y=float(y),
                z=float(z),
                radius=float(radius),
                parent=ROOT_PARENT if parent is None else int(parent),
            ))
        return cls(nodes, metadata)

    def _build_relationships(self) -> int:
        """Link children to parents and return the root id."""
        if not self.nodes:
            raise MalformedTreeError("Tree has no nodes")

        roots = []
        for node in self.nodes.values():
            if node.is_root:
                roots.append(node.index)
            elif node.parent == node.index:
                raise MalformedTreeError(f"Node {node.index} is its own parent")
            elif node.parent not in self.nodes:
                raise MalformedTreeError(
                    f"Node {node.index} references missing parent {node.parent}"
                )
            else:
                self.nodes[node.parent].children.append(node.index)

        if not roots:
            raise MalformedTreeError("No root node found (every node has a parent)")
        if len(roots) > 1:
            raise MalformedTreeError(f"Multiple root nodes found: {sorted(roots)}")

        for node in self.nodes.values():
            node.children.sort()
        return roots[0]

    def _check_reachable(self) -> None:
        """Breadth-first walk from the root; records depth of every node."""
        depth = {self.root: 0}
        queue = deque([self.root])
        while queue:
            current = queue.popleft()
            for child in self.nodes[current].children:
                depth[child] = depth[current] + 1
                queue.append(child)

        if len(depth) != len(self.nodes):
            unreachable = sorted(set(self.nodes) - set(depth))
            raise MalformedTreeError(
                f"Cycle detected: {len(unreachable)} node(s) not reachable from root "
                f"{self.root} (e.g. {unreachable[:5]})"
            )
        self._depth = depth

    @property
    def graph(self) -> nx.DiGraph:
        """Get NetworkX directed graph (edges point from parent to child)."""
        if self._graph is None:
            self._graph = nx.DiGraph()
            for node in self.nodes.values():
                self._graph.add_node(node.index, position=node.position, radius=node.radius)
            for node in self.nodes.values():
                if not node.is_root:
                    self._graph.add_edge(node.parent, node.index)
        return self._graph

    @property
    def leaves(self) -> List[int]:
        """Ids of all terminal nodes."""
        return [idx for idx, node in self.nodes.items() if node.is_terminal]

    @property
    def branch_points(self) -> List[int]:
        """Ids of all nodes with more than one child."""
        return [idx for idx, node in self.nodes.items() if node.is_branch_point]

    @property
    def segments(self) -> List[Segment]:
        """
        Decompose the tree into segments.

        Every leaf and every non-root branch point starts a segment; the walk
        proceeds towards the root and stops before the next branch point or
        the root, which becomes the segment's anchor.
        """
        if self._segments is None:
            segments = []
            for start in self.nodes.values():
                if start.is_root or not (start.is_terminal or start.is_branch_point):
                    continue
                run = [start.index]
                current = start
                while True:
                    parent = self.nodes[current.parent]
                    if parent.is_root or parent.is_branch_point:
                        break
                    run.append(parent.index)
                    current = parent
                segments.append(Segment(nodes=run, anchor=current.parent))
            self._segments = segments
            logger.debug(f"Decomposed {len(self.nodes)} nodes into {len(segments)} segments")
        return self._segments

    def children(self, node_index: int) -> List[int]:
        return self.nodes[node_index].children

    def parent(self, node_index: int) -> Optional[int]:
        """Get parent id of a node, None for the root."""
        parent = self.nodes[node_index].parent
        return None if parent == ROOT_PARENT else parent

    def depth(self, node_index: int) -> int:
        """Number of edges between a node and the root."""
        return self._depth[node_index]

    def path_to_root(self, node_index: int) -> List[int]:
        """Get ids from node to root, both inclusive."""
        path = []
        current = node_index
        while current != ROOT_PARENT:
            path.append(current)
            current = self.nodes[current].parent
        return path

    def subtree(self, root_index: int) -> List[int]:
        """Get ids of all nodes in the subtree rooted at the given node."""
        subtree = []
        to_visit = [root_index]
        while to_visit:
            current = to_visit.pop()
            subtree.append(current)
            to_visit.extend(self.nodes[current].children)
        return subtree

    def positions(self, node_indices: Optional[Iterable[int]] = None) -> np.ndarray:
        """Stack node positions into an (n, 3) array."""
        if node_indices is None:
            node_indices = self.nodes.keys()
        positions = [self.nodes[idx].position for idx in node_indices]
        if not positions:
            return np.empty((0, 3))
        return np.vstack(positions)

    def __contains__(self, node_index: int) -> bool:
        return node_index in self.nodes

    def __len__(self) -> int:
        """Return number of nodes in tree."""
        return len(self.nodes)

    def __repr__(self) -> str:
        return (f"Tree(nodes={len(self.nodes)}, root={self.root}, "
                f"terminals={len(self.leaves)}, branch_points={len(self.branch_points)})")
