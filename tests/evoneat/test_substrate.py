from __future__ import annotations

import pytest
from evoneat.errors import StructuralError
from evoneat.genes import ConnectionGene, NodeGene, NodeType, Position
from evoneat.substrate import Substrate

IN_A = Position(0.0, 0.0)
IN_B = Position(0.0, 1.0)
HIDDEN = Position(0.5, 0.5)
OUT = Position(1.0, 0.5)


def _nodes() -> list[NodeGene]:
    return [
        NodeGene(OUT, NodeType.OUTPUT),
        NodeGene(HIDDEN, NodeType.HIDDEN),
        NodeGene(IN_B, NodeType.INPUT),
        NodeGene(IN_A, NodeType.INPUT),
    ]


def test_build_sorts_nodes_and_connections() -> None:
    substrate = Substrate.build(
        _nodes(),
        [
            ConnectionGene(HIDDEN, OUT, 1.0),
            ConnectionGene(IN_B, HIDDEN, 1.0),
            ConnectionGene(IN_A, OUT, 1.0),
        ],
    )
    assert [node.position for node in substrate.nodes] == [IN_A, IN_B, HIDDEN, OUT]
    assert [conn.key for conn in substrate.conns] == [
        (IN_A, OUT),
        (IN_B, HIDDEN),
        (HIDDEN, OUT),
    ]
    assert substrate.complexity == 7
    substrate.validate()


def test_validate_rejects_duplicates_and_dangling_connections() -> None:
    duplicated = Substrate(nodes=[NodeGene(IN_A, NodeType.INPUT)] * 2)
    with pytest.raises(StructuralError):
        duplicated.validate()

    dangling = Substrate.build(
        [NodeGene(IN_A, NodeType.INPUT), NodeGene(OUT, NodeType.OUTPUT)],
        [ConnectionGene(IN_A, HIDDEN, 1.0)],
    )
    with pytest.raises(StructuralError):
        dangling.validate()


def test_validate_rejects_output_sources_and_input_targets() -> None:
    output_source = Substrate.build(
        [NodeGene(HIDDEN, NodeType.OUTPUT), NodeGene(OUT, NodeType.OUTPUT)],
        [ConnectionGene(HIDDEN, OUT, 1.0)],
    )
    with pytest.raises(StructuralError):
        output_source.validate()

    input_target = Substrate.build(
        [NodeGene(IN_A, NodeType.INPUT), NodeGene(HIDDEN, NodeType.INPUT)],
        [ConnectionGene(IN_A, HIDDEN, 1.0)],
    )
    with pytest.raises(StructuralError):
        input_target.validate()


def test_copy_is_independent() -> None:
    substrate = Substrate.build(_nodes(), [ConnectionGene(IN_A, OUT, 1.0)])
    clone = substrate.copy()
    clone.conns[0] = clone.conns[0].copy(weight=5.0)
    clone.nodes.pop()
    assert substrate.conns[0].weight == 1.0
    assert len(substrate.nodes) == 4
