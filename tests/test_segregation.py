import math

import pytest

from arborsplit.segregation import (
    binary_entropy,
    compartment_entropy,
    neuron_type,
    segregation_index,
)
from arborsplit.synapses import NodeRecord


def labelled(rows):
    return {i: NodeRecord(post=post, pre=pre, compartment=label)
            for i, (label, post, pre) in enumerate(rows, 1)}


def test_binary_entropy_conventions():
    assert binary_entropy(0.0) == 0.0
    assert binary_entropy(1.0) == 0.0
    assert binary_entropy(float("nan")) == 0.0
    assert binary_entropy(0.5) == pytest.approx(math.log(2))


def test_empty_compartment():
    assert compartment_entropy(0, 0) == (0.0, 0)


def test_mixed_compartments():
    records = labelled([("dendrite", 3, 1), ("axon", 1, 3)])
    score = segregation_index(records)
    h = -(0.75 * math.log(0.75) + 0.25 * math.log(0.25))
    assert score.entropy_score == pytest.approx(h)
    assert score.control_score == pytest.approx(math.log(2))
    assert score.index == pytest.approx(1 - h / math.log(2))


def test_perfect_segregation():
    records = labelled([("dendrite", 5, 0), ("axon", 0, 4)])
    assert segregation_index(records).index == pytest.approx(1.0)


def test_other_labels_are_ignored():
    records = labelled([
        ("dendrite", 5, 0),
        ("axon", 0, 4),
        ("primary neurite", 7, 7),
        ("primary dendrite", 2, 9),
        ("null", 1, 0),
    ])
    assert segregation_index(records).index == pytest.approx(1.0)


def test_index_invariant_to_scaling():
    rows = [("dendrite", 6, 2), ("dendrite", 1, 0), ("axon", 2, 7), ("axon", 0, 1)]
    base = segregation_index(labelled(rows)).index
    scaled = segregation_index(labelled([(c, 4 * post, 4 * pre) for c, post, pre in rows])).index
    assert scaled == pytest.approx(base)


def test_single_synapse_type_gives_zero():
    records = labelled([("dendrite", 3, 0), ("axon", 2, 0)])
    assert segregation_index(records).index == 0.0


def test_no_synapses_gives_zero():
    assert segregation_index(labelled([("dendrite", 0, 0)])).index == 0.0


def test_neuron_type_threshold():
    assert neuron_type(0.3) == "interneuron"
    assert neuron_type(0.05) == "projection neuron"
    assert neuron_type(0.0) == "projection neuron"
