import json

import pytest

from arborsplit.classify import classify_neuron
from arborsplit.exceptions import MalformedTreeError, SWCParseError
from arborsplit.io import (
    load_swc,
    load_synapses,
    save_labeled_swc,
    save_labels,
    save_results,
    save_swc,
)
from arborsplit.synapses import SynapseSide

from .builders import SWC, SYNAPSES


@pytest.fixture
def neuron_files(tmp_path):
    swc = tmp_path / "cell.swc"
    swc.write_text(SWC)
    synapses = tmp_path / "cell.synapses.csv"
    synapses.write_text(SYNAPSES)
    return swc, synapses


def test_load_swc(neuron_files):
    tree = load_swc(neuron_files[0])
    assert len(tree) == 7
    assert tree.root == 1
    assert tree.metadata["source"] == "test"
    assert tree.nodes[4].y == 1.0


def test_load_swc_skips_bad_lines(tmp_path):
    path = tmp_path / "bad.swc"
    path.write_text("1 1 0 0 0 1 -1\n2 3 x 0 0 1 1\n3 3 1 0 0 1 1\n")
    assert sorted(load_swc(path).nodes) == [1, 3]
    with pytest.raises(SWCParseError):
        load_swc(path, strict=True)


def test_load_swc_rejects_forest(tmp_path):
    path = tmp_path / "forest.swc"
    path.write_text("1 1 0 0 0 1 -1\n2 1 5 0 0 1 -1\n")
    with pytest.raises(MalformedTreeError):
        load_swc(path)


def test_load_empty_swc(tmp_path):
    path = tmp_path / "empty.swc"
    path.write_text("# nothing here\n")
    with pytest.raises(SWCParseError):
        load_swc(path)


def test_load_synapses(neuron_files):
    synapses = load_synapses(neuron_files[1])
    assert len(synapses) == 5
    assert synapses[0].side is SynapseSide.INPUT
    assert synapses[0].partners == 1
    assert synapses[4].partners == 3
    assert synapses[4].position == (4.0, -1.0, 0.0)


def test_load_synapses_requires_columns(tmp_path):
    path = tmp_path / "syn.csv"
    path.write_text("connector_id,node_id\n1,2\n")
    with pytest.raises(ValueError, match="prepost"):
        load_synapses(path)


def test_swc_round_trip(neuron_files, tmp_path):
    tree = load_swc(neuron_files[0])
    out = tmp_path / "copy.swc"
    save_swc(tree, out)
    again = load_swc(out)
    assert {i: n.parent for i, n in again.nodes.items()} == {i: n.parent for i, n in tree.nodes.items()}


def test_result_files(neuron_files, tmp_path):
    result = classify_neuron(load_swc(neuron_files[0]), load_synapses(neuron_files[1]))

    labels_path = tmp_path / "labels.csv"
    save_labels(result, labels_path)
    assert labels_path.read_text().startswith("node_id,")

    swc_path = tmp_path / "labeled.swc"
    save_labeled_swc(result, swc_path)
    types = {int(line.split()[0]): int(line.split()[1])
             for line in swc_path.read_text().splitlines() if not line.startswith("#")}
    assert types[7] == 2
    assert types[5] == 3

    json_path = tmp_path / "results.json"
    save_results([{"analysis_successful": True, **result.to_dict()}], json_path)
    assert json.loads(json_path.read_text())[0]["n_nodes"] == 7

    with pytest.raises(ValueError):
        save_results([], tmp_path / "results.xml", format="xml")
