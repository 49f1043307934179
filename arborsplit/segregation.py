"""
Entropy-based segregation of inputs and outputs between axon and dendrite.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, Tuple

from scipy.stats import entropy

from .synapses import NodeRecord

logger = logging.getLogger(__name__)

INTERNEURON = "interneuron"
PROJECTION_NEURON = "projection neuron"

DEFAULT_INTERNEURON_THRESHOLD = 0.05


@dataclass
class SegregationScore:
    entropy_score: float
    control_score: float
    index: float


def binary_entropy(p: float) -> float:
    """Shannon entropy (nats) of a two-outcome distribution; 0 when degenerate."""
    if p is None or math.isnan(p) or p <= 0.0 or p >= 1.0:
        return 0.0
    return float(entropy([p, 1.0 - p]))


def compartment_entropy(post: int, pre: int) -> Tuple[float, int]:
    """
    Entropy of the input/output mix within one compartment.

    Returns:
        Tuple of (entropy, total synapse count)
    """
    total = post + pre
    if total <= 0:
        return 0.0, 0
    return binary_entropy(post / total), total


def compartment_counts(records: Dict[int, NodeRecord], compartment: str) -> Tuple[int, int]:
    """Summed (post, pre) over nodes with the given label."""
    post = pre = 0
    for record in records.values():
        if record.compartment == compartment:
            post += max(record.post, 0)
            pre += max(record.pre, 0)
    return post, pre


def segregation_index(records: Dict[int, NodeRecord],
                      compartments: Iterable[str] = ("dendrite", "axon")) -> SegregationScore:
    """
    Segregation index of a classified neuron.

    The synapse-weighted mean entropy of the compartments is compared to the
    entropy of the same synapses pooled together. 1 means each compartment
    holds a single synapse type; 0 means the split explains nothing.
    """
    weighted = 0.0
    grand_total = 0
    grand_pre = 0
    for compartment in compartments:
        post, pre = compartment_counts(records, compartment)
        h, total = compartment_entropy(post, pre)
        weighted += h * total
        grand_total += total
        grand_pre += pre

    if grand_total == 0:
        logger.debug("No synapses on axon or dendrite; segregation index is 0")
        return SegregationScore(entropy_score=0.0, control_score=0.0, index=0.0)

    entropy_score = weighted / grand_total
    control_score = binary_entropy(grand_pre / grand_total)
    if control_score == 0.0:
        index = 0.0
    else:
        index = 1.0 - entropy_score / control_score
    if math.isnan(index):
        index = 0.0

    return SegregationScore(entropy_score=entropy_score, control_score=control_score, index=index)


def neuron_type(index: float, threshold: float = DEFAULT_INTERNEURON_THRESHOLD) -> str:
    """Coarse type from the segregation index."""
    return INTERNEURON if index > threshold else PROJECTION_NEURON
