import pytest

from arborsplit.synapses import (
    Synapse,
    SynapseSide,
    map_synapses,
    synapse_positions,
    synapse_totals,
)

from .builders import inputs_at, outputs_at


def test_direction_flags():
    assert SynapseSide.from_flag(1) is SynapseSide.INPUT
    assert SynapseSide.from_flag(0) is SynapseSide.OUTPUT
    assert SynapseSide.from_flag("pre") is SynapseSide.OUTPUT
    with pytest.raises(ValueError):
        SynapseSide.from_flag(2)


def test_from_record_defaults_to_single_partner():
    synapse = Synapse.from_record((10, 3, 0))
    assert synapse.side is SynapseSide.OUTPUT
    assert synapse.partners == 1
    assert Synapse.from_record((10, 3, 0, 4)).partners == 4


def test_counts_without_polyadic_weighting(forked_tree, forked_synapses):
    records = map_synapses(forked_tree, forked_synapses, polypre=False)
    assert records[5].post == 2
    assert records[4].post == 1
    assert records[6].pre == 1
    assert records[7].pre == 1
    assert synapse_totals(records) == (3, 2)


def test_polyadic_weighting_counts_partners(forked_tree, forked_synapses):
    records = map_synapses(forked_tree, forked_synapses, polypre=True)
    assert records[7].pre == 3
    assert records[6].pre == 1
    # inputs are never weighted
    assert records[5].post == 2


def test_partner_table_overrides_record(forked_tree, forked_synapses):
    records = map_synapses(forked_tree, forked_synapses, polypre=True, partner_counts={300: 5})
    assert records[6].pre == 5
    assert records[7].pre == 3


def test_output_without_partners_counts_zero_when_weighted(chain_tree):
    records = map_synapses(chain_tree, outputs_at(3, partners=0), polypre=True)
    assert records[3].pre == 0
    records = map_synapses(chain_tree, outputs_at(3, partners=0), polypre=False)
    assert records[3].pre == 1


def test_unknown_nodes_are_skipped(chain_tree, caplog):
    records = map_synapses(chain_tree, inputs_at(2, 42))
    assert synapse_totals(records) == (1, 0)
    assert "Skipped 1 input synapse" in caplog.text


def test_records_start_empty(chain_tree):
    records = map_synapses(chain_tree, [])
    assert set(records) == {1, 2, 3, 4, 5}
    for record in records.values():
        assert (record.up_in, record.up_out, record.flow) == (0, 0, 0)


def test_positions_split_by_side(chain_tree):
    synapses = inputs_at(2) + outputs_at(4)
    synapses.append(Synapse(1, 3, SynapseSide.OUTPUT, position=(9.0, 9.0, 9.0)))
    positions = synapse_positions(chain_tree, synapses)
    assert positions["input"].tolist() == [[2.0, 0.0, 0.0]]
    assert positions["output"].tolist() == [[4.0, 0.0, 0.0], [9.0, 9.0, 9.0]]
