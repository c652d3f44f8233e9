"""Shared fixtures for the rollup engine tests."""

import logging

import pytest

from rollup_engine.common.node import Node
from rollup_engine.core.node_set import NodeSet


def make_nodes(rows):
    """rows: (id, parent, name, unit_cost, count) tuples."""
    return [Node(id=i, parent=p, name=n, unit_cost=u, count=c) for i, p, n, u, c in rows]


@pytest.fixture
def logger():
    return logging.getLogger("rollup_engine.tests")


@pytest.fixture
def two_child_rows():
    """Root with two priced children: A = 10 x 1, B = 5 x 2."""
    return [
        (1, None, "Root", None, 1.0),
        (2, 1, "A", 10.0, 1.0),
        (3, 1, "B", 5.0, 2.0),
    ]


@pytest.fixture
def three_level_rows():
    """root -> mid -> leaf, leaf 2 x 3, mid x 4."""
    return [
        (1, None, "Root", None, 1.0),
        (2, 1, "Mid", None, 4.0),
        (3, 2, "Leaf", 2.0, 3.0),
    ]


@pytest.fixture
def two_child_set(two_child_rows):
    return NodeSet(make_nodes(two_child_rows))


@pytest.fixture
def three_level_set(three_level_rows):
    return NodeSet(make_nodes(three_level_rows))


@pytest.fixture
def pbs_csv(tmp_path):
    """A small breakdown on disk in the positional column layout."""
    path = tmp_path / "input" / "pbs.csv"
    path.parent.mkdir()
    path.write_text(
        "ID,Parent,Name,Unit Cost,Count\n"
        "1,,Vehicle,,1\n"
        "2,1,Chassis,,1\n"
        "3,1,Wheels,250000,4\n"
        "4,2,Frame,1500000,1\n"
        "5,2,Bolts,10,200\n"
    )
    return path
