"""
Synapse records and their assignment to skeleton nodes.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .core import Tree

logger = logging.getLogger(__name__)


class SynapseSide(Enum):
    INPUT = "input"
    OUTPUT = "output"

    @classmethod
    def from_flag(cls, flag) -> "SynapseSide":
        """
        Convert a connector direction flag.

        1 marks a postsynaptic site on this neuron (an input), 0 a presynaptic
        site (an output). String names are accepted as well.
        """
        if isinstance(flag, SynapseSide):
            return flag
        if isinstance(flag, str):
            lowered = flag.strip().lower()
            if lowered in ("input", "post", "postsynaptic", "1"):
                return cls.INPUT
            if lowered in ("output", "pre", "presynaptic", "0"):
                return cls.OUTPUT
            raise ValueError(f"Unknown synapse direction: {flag!r}")
        value = int(flag)
        if value == 1:
            return cls.INPUT
        if value == 0:
            return cls.OUTPUT
        raise ValueError(f"Unknown synapse direction flag: {flag!r}")


@dataclass
class Synapse:
    """A synaptic site attached to a skeleton node."""
    connector_id: int
    node_id: int
    side: SynapseSide
    partners: int = 1
    position: Optional[Tuple[float, float, float]] = None

    @classmethod
    def from_record(cls, record: Sequence) -> "Synapse":
        """Build from a ``(connector id, node id, direction flag, partner multiplicity)`` tuple."""
        connector_id, node_id, flag = record[:3]
        partners = record[3] if len(record) > 3 and record[3] is not None else 1
        return cls(
            connector_id=int(connector_id),
            node_id=int(node_id),
            side=SynapseSide.from_flag(flag),
            partners=int(partners),
        )

    @property
    def is_input(self) -> bool:
        return self.side is SynapseSide.INPUT

    @property
    def is_output(self) -> bool:
        return self.side is SynapseSide.OUTPUT


@dataclass
class NodeRecord:
    """Per-node state filled in progressively by the classification stages."""
    post: int = 0
    pre: int = 0
    up_in: int = 0
    up_out: int = 0
    flow: int = 0
    compartment: Optional[str] = None


def synapse_weight(synapse: Synapse, polypre: bool,
                   partner_counts: Optional[Dict[int, int]] = None) -> int:
    """
    Number of units a synapse adds to its node's count.

    Inputs always count once. With polyadic weighting an output counts once
    per downstream partner; ``partner_counts`` (keyed by connector id) takes
    precedence over the multiplicity carried on the synapse itself.
    """
    if synapse.is_input or not polypre:
        return 1
    if partner_counts is not None and synapse.connector_id in partner_counts:
        return int(partner_counts[synapse.connector_id])
    return int(synapse.partners)


def map_synapses(tree: Tree, synapses: Iterable[Synapse], polypre: bool = True,
                 partner_counts: Optional[Dict[int, int]] = None) -> Dict[int, NodeRecord]:
    """
    Count synapses onto the nodes of a tree.

    Args:
        tree: Validated skeleton tree
        synapses: Synapses referencing node ids of ``tree``
        polypre: Weight output synapses by their number of partners
        partner_counts: Optional pre-fetched ``{connector_id: n_partners}`` table

    Returns:
        Mapping of node id to a fresh NodeRecord with ``post``/``pre`` set
    """
    records = {idx: NodeRecord() for idx in tree.nodes}
    unmatched = Counter()

    for synapse in synapses:
        record = records.get(synapse.node_id)
        if record is None:
            unmatched[synapse.side] += 1
            continue
        if synapse.is_input:
            record.post += 1
        else:
            record.pre += synapse_weight(synapse, polypre, partner_counts)

    for side, count in unmatched.items():
        logger.warning(f"Skipped {count} {side.value} synapse(s) referencing nodes not in the tree")

    return records


def synapse_totals(records: Dict[int, NodeRecord]) -> Tuple[int, int]:
    """Whole-tree (input, output) counts."""
    total_in = sum(record.post for record in records.values())
    total_out = sum(record.pre for record in records.values())
    return total_in, total_out


def synapse_positions(tree: Tree, synapses: Iterable[Synapse]) -> Dict[str, np.ndarray]:
    """
    Split synapse positions by side for overlay rendering.

    Synapses without an explicit position are drawn at their node.
    """
    points: Dict[str, List[np.ndarray]] = {SynapseSide.INPUT.value: [], SynapseSide.OUTPUT.value: []}
    for synapse in synapses:
        if synapse.position is not None:
            point = np.asarray(synapse.position, dtype=float)
        elif synapse.node_id in tree:
            point = tree.nodes[synapse.node_id].position
        else:
            continue
        points[synapse.side.value].append(point)

    return {
        side: np.vstack(values) if values else np.empty((0, 3))
        for side, values in points.items()
    }
