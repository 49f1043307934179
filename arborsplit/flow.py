"""
Synapse flow propagation and flow centrality (Schneider-Mizell et al., 2016).
"""

import logging
from enum import Enum
from typing import Dict, List, Tuple, Union

import numpy as np

from .core import Tree
from .synapses import NodeRecord, synapse_totals

logger = logging.getLogger(__name__)


class FlowMode(Enum):
    CENTRIFUGAL = "centrifugal"
    CENTRIPETAL = "centripetal"
    AVERAGE = "average"

    @classmethod
    def parse(cls, mode: Union[str, "FlowMode"]) -> "FlowMode":
        if isinstance(mode, FlowMode):
            return mode
        try:
            return cls(str(mode).strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown flow centrality mode {mode!r} (expected one of: {choices})")


def propagate_flow(tree: Tree, records: Dict[int, NodeRecord]) -> Tuple[int, int]:
    """
    Count the synapses in every node's subtree.

    Each segment is summed from its distal end towards its anchor; the
    segment total is carried into the anchor, which folds it into the
    segment it belongs to. Segments are visited deepest first, so every
    carry is complete before its branch point is summed.

    Args:
        tree: Validated skeleton tree
        records: Node records with ``post``/``pre`` filled in

    Returns:
        Whole-tree (input, output) totals, also stored on the root record
    """
    carry_in: Dict[int, int] = {}
    carry_out: Dict[int, int] = {}

    for segment in sorted(tree.segments, key=lambda s: tree.depth(s.head), reverse=True):
        running_in = carry_in.get(segment.head, 0)
        running_out = carry_out.get(segment.head, 0)
        for idx in segment.nodes:
            record = records[idx]
            running_in += record.post
            running_out += record.pre
            record.up_in = running_in
            record.up_out = running_out
        carry_in[segment.anchor] = carry_in.get(segment.anchor, 0) + running_in
        carry_out[segment.anchor] = carry_out.get(segment.anchor, 0) + running_out

    total_in, total_out = synapse_totals(records)
    root = records[tree.root]
    root.up_in = total_in
    root.up_out = total_out

    logger.debug(f"Propagated flow over {len(tree.segments)} segments: "
                 f"{total_in} inputs, {total_out} outputs")
    return total_in, total_out


def flow_centrality(up_in, up_out, total_in, total_out, mode: Union[str, FlowMode] = FlowMode.AVERAGE):
    """
    Flow centrality of a node (or arrays of nodes).

    Centrifugal flow counts paths from inputs proximal to a node to outputs
    distal to it; centripetal flow counts paths from distal inputs to
    proximal outputs; average is their sum.
    """
    mode = FlowMode.parse(mode)
    centrifugal = (total_in - up_in) * up_out
    centripetal = (total_out - up_out) * up_in
    if mode is FlowMode.CENTRIFUGAL:
        return centrifugal
    if mode is FlowMode.CENTRIPETAL:
        return centripetal
    return centrifugal + centripetal


def score_flow(records: Dict[int, NodeRecord], totals: Tuple[int, int],
               mode: Union[str, FlowMode] = FlowMode.AVERAGE) -> Dict[int, int]:
    """Store the flow centrality of every node on its record."""
    mode = FlowMode.parse(mode)
    total_in, total_out = totals
    ids = list(records)
    up_in = np.array([records[idx].up_in for idx in ids], dtype=np.int64)
    up_out = np.array([records[idx].up_out for idx in ids], dtype=np.int64)
    scores = flow_centrality(up_in, up_out, total_in, total_out, mode)

    for idx, score in zip(ids, scores.tolist()):
        records[idx].flow = score
    return {idx: records[idx].flow for idx in ids}


def high_flow_nodes(scores: Dict[int, float]) -> List[int]:
    """
    Nodes scoring above the maximum minus one sample standard deviation.

    These trace the main flow path between dendrite and axon. Empty when no
    node carries any flow or there are too few nodes for a sample deviation.
    """
    if len(scores) < 2:
        return []
    values = np.array(list(scores.values()), dtype=float)
    highest = values.max()
    if highest <= 0:
        return []
    cutoff = highest - values.std(ddof=1)
    return sorted(idx for idx, score in scores.items() if score > cutoff)
