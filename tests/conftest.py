import pytest

from arborsplit.synapses import Synapse, SynapseSide

from .builders import inputs_at, make_tree


@pytest.fixture
def chain_tree():
    # 1 <- 2 <- 3 <- 4 <- 5
    return make_tree({1: None, 2: 1, 3: 2, 4: 3, 5: 4})


@pytest.fixture
def forked_tree():
    #        4 - 5
    # 1 - 2 - 3
    #        6 - 7
    return make_tree({1: None, 2: 1, 3: 2, 4: 3, 5: 4, 6: 3, 7: 6})


@pytest.fixture
def forked_synapses():
    # two inputs at 5, one at 4; outputs at 6 (1 partner) and 7 (3 partners)
    synapses = inputs_at(5, 5, 4)
    synapses += [
        Synapse(connector_id=300, node_id=6, side=SynapseSide.OUTPUT, partners=1),
        Synapse(connector_id=301, node_id=7, side=SynapseSide.OUTPUT, partners=3),
    ]
    return synapses
