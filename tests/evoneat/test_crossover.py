from __future__ import annotations

from random import Random

import pytest
from evoneat.crossover import Crosser, CrosserConfig
from evoneat.errors import ConfigError, VariationError
from evoneat.genes import ConnectionGene, NodeGene, NodeType, Position
from evoneat.genome import Comparison, Genome
from evoneat.substrate import Substrate

A = Position(0.0, 0.0)
B = Position(0.5, 0.2)
C = Position(0.5, 0.4)
E = Position(0.5, 0.6)
D = Position(1.0, 0.5)

_TYPES = {A: NodeType.INPUT, D: NodeType.OUTPUT}


def build_genome(
    genome_id: int,
    positions: list[Position],
    conns: list[ConnectionGene] | None = None,
    fitness: float = 1.0,
    traits: list[float] | None = None,
) -> Genome:
    nodes = [NodeGene(position, _TYPES.get(position, NodeType.HIDDEN)) for position in positions]
    return Genome(
        id=genome_id,
        encoded=Substrate.build(nodes, conns or []),
        traits=traits or [],
        fitness=fitness,
    )


def test_equal_parents_produce_union_of_nodes() -> None:
    first = build_genome(1, [A, B, C, D])
    second = build_genome(2, [A, C, E, D])

    child = Crosser().cross([first, second], Random(0))

    assert [node.position for node in child.encoded.nodes] == [A, B, C, E, D]
    assert child.id == 0


def test_fitter_parent_contributes_its_genes_only() -> None:
    first = build_genome(1, [A, B, C, D], fitness=2.0)
    second = build_genome(2, [A, C, E, D], fitness=1.0)

    for seed in range(5):
        child = Crosser().cross([second, first], Random(seed))
        assert [node.position for node in child.encoded.nodes] == [A, B, C, D]


def test_equal_parent_check_can_be_disabled() -> None:
    first = build_genome(1, [A, B, C, D])
    second = build_genome(2, [A, C, E, D])
    crosser = Crosser(CrosserConfig(disable_equal_parent_check=True))

    child = crosser.cross([first, second], Random(0))

    assert [node.position for node in child.encoded.nodes] == [A, B, C, D]


def test_matched_connection_disabled_in_one_parent_stays_disabled() -> None:
    enabled = ConnectionGene(A, D, 1.0)
    disabled = ConnectionGene(A, D, -1.0, enabled=False)
    first = build_genome(1, [A, D], [enabled], fitness=2.0)
    second = build_genome(2, [A, D], [disabled], fitness=1.0)
    crosser = Crosser(CrosserConfig(enable_probability=0.0))

    for seed in range(10):
        child = crosser.cross([first, second], Random(seed))
        assert len(child.encoded.conns) == 1
        assert not child.encoded.conns[0].enabled


def test_disabled_connections_can_be_reenabled() -> None:
    disabled = ConnectionGene(A, D, 1.0, enabled=False)
    first = build_genome(1, [A, D], [disabled], fitness=2.0)
    second = build_genome(2, [A, D], [disabled], fitness=1.0)
    crosser = Crosser(CrosserConfig(enable_probability=1.0))

    child = crosser.cross([first, second], Random(3))

    assert child.encoded.conns[0].enabled


def test_child_connections_reference_child_nodes() -> None:
    first = build_genome(1, [A, B, D], [ConnectionGene(A, B, 1.0), ConnectionGene(B, D, 1.0)])
    second = build_genome(2, [A, E, D], [ConnectionGene(A, E, 1.0), ConnectionGene(E, D, 1.0)])

    child = Crosser().cross([first, second], Random(1))

    child.encoded.validate()
    assert {conn.key for conn in child.encoded.conns} == {(A, B), (B, D), (A, E), (E, D)}


def test_single_parent_is_copied_and_traits_come_from_parents() -> None:
    parent = build_genome(5, [A, D], [ConnectionGene(A, D, 0.5)], traits=[0.1, 0.9])
    clone = Crosser().cross([parent], Random(0))
    assert clone.encoded == parent.encoded
    assert clone.encoded is not parent.encoded
    assert clone.traits == [0.1, 0.9]

    other = build_genome(6, [A, D], traits=[0.5, 0.5])
    child = Crosser().cross([parent, other], Random(0))
    assert all(trait in (0.1, 0.9, 0.5) for trait in child.traits)
    assert len(child.traits) == 2


def test_novelty_comparison_picks_the_more_novel_parent() -> None:
    first = build_genome(1, [A, B, D], fitness=5.0)
    second = build_genome(2, [A, E, D], fitness=1.0)
    second.novelty = 3.0
    crosser = Crosser(CrosserConfig(comparison="novelty"))

    child = crosser.cross([first, second], Random(0))

    assert crosser.config.comparison is Comparison.NOVELTY
    assert [node.position for node in child.encoded.nodes] == [A, E, D]


def test_crossover_rejects_parent_counts() -> None:
    genome = build_genome(1, [A, D])
    with pytest.raises(VariationError):
        Crosser().cross([], Random(0))
    with pytest.raises(VariationError):
        Crosser().cross([genome, genome, genome], Random(0))
    with pytest.raises(ConfigError):
        CrosserConfig(enable_probability=1.5)
