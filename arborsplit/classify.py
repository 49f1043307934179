"""
Axon/dendrite compartment classification by flow centrality.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

import networkx as nx
import numpy as np
import pandas as pd

from .config import ClassifierConfig
from .core import Tree
from .exceptions import NoSynapseDataError
from .flow import high_flow_nodes, propagate_flow, score_flow
from .segregation import neuron_type, segregation_index
from .synapses import NodeRecord, Synapse, map_synapses, synapse_positions

logger = logging.getLogger(__name__)


class Compartment(Enum):
    DENDRITE = "dendrite"
    AXON = "axon"
    PRIMARY_NEURITE = "primary neurite"
    PRIMARY_DENDRITE = "primary dendrite"
    NULL = "null"


def find_axon_initiation_site(tree: Tree, records: Dict[int, NodeRecord]) -> int:
    """
    Node of maximum flow centrality.

    Ties go to the node closest to the root, then to the lowest node id.

    A neuron without synapses scores zero everywhere, so every node ties; the
    root, being shallowest, is then the initiation site by convention.
    """
    best = max(record.flow for record in records.values())
    candidates = [idx for idx, record in records.items() if record.flow == best]
    return min(candidates, key=lambda idx: (tree.depth(idx), idx))


def split_at(tree: Tree, ais: int) -> Tuple[Set[int], Set[int]]:
    """Partition into (downstream, upstream); downstream includes ``ais``."""
    downstream = nx.descendants(tree.graph, ais) | {ais}
    upstream = set(tree.nodes) - downstream
    return downstream, upstream


def assign_axon(records: Dict[int, NodeRecord], downstream: Set[int], upstream: Set[int]) -> Set[int]:
    """
    Label the side holding more outputs as axon; the other stays dendrite.

    Returns:
        Ids labeled axon
    """
    downstream_pre = sum(records[idx].pre for idx in downstream)
    upstream_pre = sum(records[idx].pre for idx in upstream)
    axon = downstream if downstream_pre > upstream_pre else upstream
    for idx in axon:
        records[idx].compartment = Compartment.AXON.value
    logger.debug(f"Outputs downstream={downstream_pre} upstream={upstream_pre}; "
                 f"{len(axon)} axon nodes")
    return axon


def assign_primary_neurite(tree: Tree, records: Dict[int, NodeRecord]) -> Set[int]:
    """
    Label the zero-flow component containing the root as primary neurite.

    Zero-flow nodes cut off from the root (twigs beyond the last synapse) are
    labeled null.
    """
    zeros = [idx for idx, record in records.items() if record.flow == 0]
    remainder = tree.graph.subgraph(zeros).to_undirected()
    primary = nx.node_connected_component(remainder, tree.root) if tree.root in remainder else set()

    for idx in zeros:
        if idx in primary:
            records[idx].compartment = Compartment.PRIMARY_NEURITE.value
        else:
            records[idx].compartment = Compartment.NULL.value
    return set(primary)


def assign_primary_dendrite(records: Dict[int, NodeRecord], threshold: Optional[float]) -> Set[int]:
    """Label nodes scoring at least ``threshold`` times the maximum as primary dendrite."""
    if threshold is None:
        return set()
    highest = max(record.flow for record in records.values())
    if highest <= 0:
        return set()
    cutoff = threshold * highest
    highs = {idx for idx, record in records.items() if record.flow >= cutoff}
    for idx in highs:
        records[idx].compartment = Compartment.PRIMARY_DENDRITE.value
    return highs


def label_compartments(tree: Tree, records: Dict[int, NodeRecord],
                       primary_dendrite_threshold: Optional[float] = 0.9) -> int:
    """
    Run every labeling step in order over scored records.

    Later steps override earlier ones: axon/dendrite, then primary neurite
    and null, then primary dendrite.

    Returns:
        The axon initiation site
    """
    for record in records.values():
        record.compartment = Compartment.DENDRITE.value

    ais = find_axon_initiation_site(tree, records)
    downstream, upstream = split_at(tree, ais)
    assign_axon(records, downstream, upstream)
    assign_primary_neurite(tree, records)
    assign_primary_dendrite(records, primary_dendrite_threshold)
    return ais


@dataclass
class ClassificationResult:
    """Outcome of classifying one neuron, keyed by original node ids."""
    tree: Tree
    records: Dict[int, NodeRecord]
    axon_initiation_site: int
    segregation_index: float
    neuron_type: str
    mode: str
    totals: Tuple[int, int]
    entropy_score: float = 0.0
    control_score: float = 0.0
    synapses: List[Synapse] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def compartment_of(self, node_index: int) -> str:
        return self.records[node_index].compartment

    def labels(self) -> Dict[int, str]:
        return {idx: record.compartment for idx, record in self.records.items()}

    def scores(self) -> Dict[int, int]:
        return {idx: record.flow for idx, record in self.records.items()}

    def nodes_in(self, compartment: Union[str, Compartment]) -> List[int]:
        """Sorted ids of nodes carrying a label."""
        if isinstance(compartment, Compartment):
            compartment = compartment.value
        return sorted(idx for idx, record in self.records.items() if record.compartment == compartment)

    def high_flow_nodes(self) -> List[int]:
        return high_flow_nodes(self.scores())

    def synapse_positions(self) -> Dict[str, np.ndarray]:
        """Synapse coordinates split into ``input``/``output`` arrays."""
        return synapse_positions(self.tree, self.synapses)

    def compartment_counts(self) -> Dict[str, int]:
        counts = {c.value: 0 for c in Compartment}
        for record in self.records.values():
            counts[record.compartment] += 1
        return counts

    def summary(self) -> Dict[str, Any]:
        """Scalar results, ready for JSON/CSV export."""
        summary = {
            "n_nodes": len(self.records),
            "mode": self.mode,
            "n_inputs": self.totals[0],
            "n_outputs": self.totals[1],
            "axon_initiation_site": self.axon_initiation_site,
            "max_flow_centrality": max(self.scores().values()),
            "entropy_score": self.entropy_score,
            "control_score": self.control_score,
            "segregation_index": self.segregation_index,
            "neuron_type": self.neuron_type,
        }
        for label, count in self.compartment_counts().items():
            summary[f"n_{label.replace(' ', '_')}_nodes"] = count
        return summary

    def to_dict(self) -> Dict[str, Any]:
        data = self.summary()
        data["warnings"] = list(self.warnings)
        data["nodes"] = [
            {
                "node_id": idx,
                "parent_id": self.tree.parent(idx),
                "post": record.post,
                "pre": record.pre,
                "up_syns_in": record.up_in,
                "up_syns_out": record.up_out,
                "flow_centrality": record.flow,
                "compartment": record.compartment,
            }
            for idx, record in sorted(self.records.items())
        ]
        return data

    def to_dataframe(self) -> pd.DataFrame:
        """Per-node table with coordinates, counts, scores and labels."""
        rows = []
        for idx, record in sorted(self.records.items()):
            node = self.tree.nodes[idx]
            rows.append({
                "node_id": idx,
                "parent_id": node.parent,
                "x": node.x,
                "y": node.y,
                "z": node.z,
                "radius": node.radius,
                "post": record.post,
                "pre": record.pre,
                "up_syns_in": record.up_in,
                "up_syns_out": record.up_out,
                "flow_centrality": record.flow,
                "compartment": record.compartment,
            })
        return pd.DataFrame(rows).set_index("node_id")


class FlowCentralityClassifier:
    """
    Splits a neuron into axon and dendrite by synaptic flow centrality and
    scores how well inputs and outputs segregate between the two.
    """

    def __init__(self, tree: Tree, synapses: Iterable[Synapse],
                 config: Optional[ClassifierConfig] = None,
                 partner_counts: Optional[Dict[int, int]] = None):
        self.tree = tree
        self.synapses = list(synapses)
        self.config = config or ClassifierConfig()
        self.partner_counts = partner_counts

    def classify(self) -> ClassificationResult:
        """Run all stages on fresh per-node records."""
        config = self.config
        warnings = []

        records = map_synapses(self.tree, self.synapses, config.polypre, self.partner_counts)
        totals = propagate_flow(self.tree, records)

        missing = [side for side, total in zip(("input", "output"), totals) if total == 0]
        if missing:
            message = f"Neuron has no {' or '.join(missing)} synapses; flow centrality is degenerate"
            if config.strict:
                raise NoSynapseDataError(message)
            logger.warning(message)
            warnings.append(message)

        score_flow(records, totals, config.flow_mode)
        ais = label_compartments(self.tree, records, config.primary_dendrite_threshold)
        segregation = segregation_index(records)
        kind = neuron_type(segregation.index, config.interneuron_threshold)

        logger.debug(f"AIS at node {ais}; segregation index {segregation.index:.4f} ({kind})")

        return ClassificationResult(
            tree=self.tree,
            records=records,
            axon_initiation_site=ais,
            segregation_index=segregation.index,
            neuron_type=kind,
            mode=config.mode,
            totals=totals,
            entropy_score=segregation.entropy_score,
            control_score=segregation.control_score,
            synapses=self.synapses,
            warnings=warnings,
        )


def classify_neuron(nodes: Union[Tree, Iterable[Sequence]], synapses: Iterable[Union[Synapse, Sequence]],
                    config: Optional[ClassifierConfig] = None,
                    partner_counts: Optional[Dict[int, int]] = None,
                    **overrides) -> ClassificationResult:
    """
    Classify one neuron from plain records.

    Args:
        nodes: A Tree, or ``(node id, parent id, x, y, z, radius)`` tuples
        synapses: Synapse objects, or ``(connector id, node id, direction flag,
            partner multiplicity)`` tuples
        config: Classifier options; keyword overrides are applied on top
        partner_counts: Optional ``{connector_id: n_partners}`` table

    Returns:
        ClassificationResult
    """
    if config is None:
        config = ClassifierConfig(**overrides)
    elif overrides:
        options = {**config.__dict__, **overrides}
        config = ClassifierConfig(**options)

    tree = nodes if isinstance(nodes, Tree) else Tree.from_records(nodes)
    synapses = [s if isinstance(s, Synapse) else Synapse.from_record(s) for s in synapses]
    return FlowCentralityClassifier(tree, synapses, config, partner_counts).classify()
