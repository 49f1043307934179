"""
arborsplit: axon/dendrite classification of neuron skeletons by synaptic flow.

This library provides tools for:
- Representing a reconstructed neuron as a rooted skeleton tree
- Mapping input and output synapses onto skeleton nodes
- Computing synaptic flow centrality (Schneider-Mizell et al., 2016)
- Splitting a neuron into axon, dendrite, primary neurite and primary dendrite
- Scoring the segregation of inputs and outputs between axon and dendrite
"""

from .core import Tree, SkeletonNode, Segment
from .synapses import Synapse, SynapseSide, NodeRecord, map_synapses
from .flow import FlowMode, propagate_flow, flow_centrality, score_flow
from .classify import (
    Compartment,
    ClassificationResult,
    FlowCentralityClassifier,
    classify_neuron,
)
from .segregation import segregation_index, neuron_type
from .config import AnalysisConfig, ClassifierConfig
from .exceptions import (
    ArborSplitError,
    ConfigError,
    MalformedTreeError,
    NoSynapseDataError,
    SWCParseError,
)
from .io import load_swc, load_synapses

__version__ = "0.1.0"
__author__ = "Arborsplit Team"

__all__ = [
    "Tree",
    "SkeletonNode",
    "Segment",
    "Synapse",
    "SynapseSide",
    "NodeRecord",
    "map_synapses",
    "FlowMode",
    "propagate_flow",
    "flow_centrality",
    "score_flow",
    "Compartment",
    "ClassificationResult",
    "FlowCentralityClassifier",
    "classify_neuron",
    "segregation_index",
    "neuron_type",
    "AnalysisConfig",
    "ClassifierConfig",
    "ArborSplitError",
    "ConfigError",
    "MalformedTreeError",
    "NoSynapseDataError",
    "SWCParseError",
    "load_swc",
    "load_synapses",
]
