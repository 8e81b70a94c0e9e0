from __future__ import annotations

from random import Random

import pytest
from evoneat.errors import ConfigError
from evoneat.genes import NodeGene, NodeType, Position
from evoneat.genome import Comparison, Genome, Population, Species, sort_and_rank
from evoneat.reproduction import Selector, SelectorConfig, allocate_offspring
from evoneat.substrate import Substrate


def build_genome(genome_id: int, fitness: float, species_id: int = 1) -> Genome:
    encoded = Substrate.build(
        [NodeGene(Position(0.0, 0.0), NodeType.INPUT), NodeGene(Position(1.0, 0.5), NodeType.OUTPUT)]
    )
    return Genome(id=genome_id, encoded=encoded, species_id=species_id, fitness=fitness)


def build_population(fitness_by_species: dict[int, list[float]]) -> Population:
    genomes = []
    species = []
    for species_id, values in fitness_by_species.items():
        members = []
        for fitness in values:
            members.append(build_genome(len(genomes) + len(members) + 1, fitness, species_id))
        genomes.extend(members)
        species.append(Species(id=species_id, example=members[0].copy()))
    return Population(generation=3, genomes=genomes, species=species)


def test_sort_and_rank_shares_rank_between_ties() -> None:
    genomes = [build_genome(1, 3.0), build_genome(2, 1.0), build_genome(3, 3.0), build_genome(4, 2.0)]

    ordered, ranks = sort_and_rank(genomes, Comparison.FITNESS)

    assert [genome.id for genome in ordered] == [1, 3, 4, 2]
    assert ranks == {1: 4, 3: 4, 4: 2, 2: 1}
    assert sort_and_rank(genomes, Comparison.FITNESS)[1] == ranks


def test_solved_genomes_outrank_fitter_ones() -> None:
    solved = build_genome(1, 1.0)
    solved.solved = True
    fitter = build_genome(2, 9.0)

    ordered, ranks = sort_and_rank([fitter, solved], Comparison.FITNESS)

    assert ordered[0] is solved
    assert ranks[1] > ranks[2]


def test_simpler_genome_wins_ties() -> None:
    complex_genome = build_genome(1, 2.0)
    complex_genome.encoded.nodes.append(NodeGene(Position(0.5, 0.5), NodeType.HIDDEN))
    simple = build_genome(2, 2.0)

    ordered, _ = sort_and_rank([complex_genome, simple], Comparison.FITNESS)

    assert ordered[0] is simple


def test_allocate_offspring_distributes_proportionally() -> None:
    assert allocate_offspring({1: 3.0, 2: 1.0}, 8) == {1: 6, 2: 2}
    assert allocate_offspring({1: 1.0, 2: 1.0, 3: 1.0}, 10) == {1: 4, 2: 3, 3: 3}
    assert allocate_offspring({1: 1.0, 2: 1.0, 3: 1.0}, 2) == {1: 0, 2: 1, 3: 1}
    assert allocate_offspring({1: 1.0}, 0) == {1: 0}


def test_selection_conserves_population_size() -> None:
    population = build_population({1: [5.0, 4.0, 3.0, 1.0], 2: [2.0, 2.5, 0.5], 3: [0.1, 0.2, 0.3]})
    selector = Selector(SelectorConfig(population_size=10))

    for seed in range(5):
        selection = selector.select(population, Random(seed))
        assert len(selection.continuing) + len(selection.parents) == 10
        assert [genome.id for genome in selection.continuing] == [1, 6, 10]
        assert all(1 <= len(parents) <= 2 for parents in selection.parents)


def test_selection_without_elitism_only_breeds() -> None:
    population = build_population({1: [5.0, 4.0], 2: [2.0, 1.0]})
    selector = Selector(SelectorConfig(population_size=6, elitism=False))

    selection = selector.select(population, Random(0))

    assert selection.continuing == []
    assert len(selection.parents) == 6


def test_stagnant_species_get_no_offspring_but_best_survives() -> None:
    population = build_population({1: [5.0, 4.0], 2: [2.0, 1.0]})
    population.species[0].decay = 1.0
    selector = Selector(SelectorConfig(population_size=6, interspecies_mate_probability=0.0))

    selection = selector.select(population, Random(0))

    assert [genome.id for genome in selection.continuing] == [3, 1]
    assert all(parent.species_id == 2 for parents in selection.parents for parent in parents)
    assert len(selection.parents) == 4


def test_all_species_stagnant_restarts_from_best() -> None:
    population = build_population({1: [5.0, 4.0], 2: [2.0, 7.0]})
    for species in population.species:
        species.decay = 1.0
        species.champion = 1

    selection = Selector(SelectorConfig(population_size=5)).select(population, Random(0))

    assert [genome.id for genome in selection.continuing] == [4]
    assert selection.parents == [(selection.continuing[0],)] * 4
    assert all(species.decay == 0.0 for species in population.species)
    assert all(species.champion is None for species in population.species)


def test_mutate_only_toggle_forces_single_parents_and_restores() -> None:
    population = build_population({1: [5.0, 4.0, 3.0]})
    selector = Selector(SelectorConfig(population_size=8, mutate_only_probability=0.0))

    selector.set_mutate_only(True)
    selector.set_mutate_only(True)
    selection = selector.select(population, Random(0))
    assert all(len(parents) == 1 for parents in selection.parents)

    selector.set_mutate_only(False)
    assert selector.mutate_only_probability == 0.0
    selection = selector.select(population, Random(0))
    assert all(len(parents) == 2 for parents in selection.parents)


def test_interspecies_mating_draws_partner_from_other_species() -> None:
    population = build_population({1: [5.0, 4.0], 2: [3.0, 2.0]})
    selector = Selector(
        SelectorConfig(
            population_size=6,
            mutate_only_probability=0.0,
            interspecies_mate_probability=1.0,
        )
    )

    selection = selector.select(population, Random(2))

    assert selection.parents
    for first, second in selection.parents:
        assert first.species_id != second.species_id


def test_survival_rate_limits_parent_pool() -> None:
    population = build_population({1: [8.0, 7.0, 2.0, 1.0]})
    selector = Selector(SelectorConfig(population_size=12, survival_rate=0.5))

    selection = selector.select(population, Random(5))

    assert {parent.id for parents in selection.parents for parent in parents} <= {1, 2}


def test_selector_config_validates() -> None:
    with pytest.raises(ConfigError):
        SelectorConfig(population_size=0)
    with pytest.raises(ConfigError):
        SelectorConfig(population_size=4, survival_rate=0.0)
    with pytest.raises(ConfigError):
        SelectorConfig(population_size=4, mutate_only_probability=2.0)
