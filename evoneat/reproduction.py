"""Selection of continuing genomes and parents for the next generation."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from random import Random

from .errors import ConfigError
from .genome import Comparison, Genome, Population, sort_and_rank


@dataclass(frozen=True, slots=True)
class SelectorConfig:
    """Configuration controlling offspring allocation and parent sampling."""

    population_size: int
    mutate_only_probability: float = 0.25
    interspecies_mate_probability: float = 0.001
    elitism: bool = True
    survival_rate: float = 1.0
    comparison: Comparison = Comparison.FITNESS

    def __post_init__(self) -> None:
        if self.population_size <= 0:
            msg = "population_size must be positive."
            raise ConfigError(msg)
        for label in ("mutate_only_probability", "interspecies_mate_probability"):
            if not 0.0 <= getattr(self, label) <= 1.0:
                msg = f"{label} must be in [0, 1]."
                raise ConfigError(msg)
        if not 0.0 < self.survival_rate <= 1.0:
            msg = "survival_rate must be in (0, 1]."
            raise ConfigError(msg)
        object.__setattr__(self, "comparison", Comparison.coerce(self.comparison))


@dataclass(slots=True)
class Selection:
    """Genomes carried over unchanged and the parent groups of each child."""

    continuing: list[Genome]
    parents: list[tuple[Genome, ...]]


def allocate_offspring(averages: Mapping[int, float], target: int) -> dict[int, int]:
    """Split ``target`` offspring proportionally to each species' average rank.

    Every species receives at least one offspring before rounding is
    corrected one offspring at a time.
    """
    if target <= 0 or not averages:
        return {species_id: 0 for species_id in averages}
    total = sum(averages.values())
    counts: dict[int, int] = {}
    for species_id, average in averages.items():
        share = target * average / total if total > 0 else target / len(averages)
        counts[species_id] = max(1, math.floor(share))

    step = 1 if sum(counts.values()) < target else -1
    floor = 1
    while sum(counts.values()) != target:
        changed = False
        for species_id in sorted(counts):
            if counts[species_id] + step < floor:
                continue
            counts[species_id] += step
            changed = True
            if sum(counts.values()) == target:
                break
        if not changed:
            # more species than offspring: allow some to receive none
            floor = 0
    return counts


def _roulette(rng: Random, genomes: Sequence[Genome], ranks: Mapping[int, int]) -> Genome:
    total = sum(ranks[genome.id] for genome in genomes)
    spin = rng.random() * total
    running = 0.0
    for genome in genomes:
        running += ranks[genome.id]
        if running >= spin:
            return genome
    return genomes[-1]


@dataclass(slots=True)
class Selector:
    """Rank-based NEAT selector with species decay and elitism."""

    config: SelectorConfig
    mutate_only_probability: float = field(init=False)
    _saved_probability: float | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        self.mutate_only_probability = self.config.mutate_only_probability

    def set_mutate_only(self, enabled: bool) -> None:
        """Force single-parent offspring while enabled; restore the configured rate after."""
        if enabled:
            if self._saved_probability is None:
                self._saved_probability = self.mutate_only_probability
            self.mutate_only_probability = 1.0
        elif self._saved_probability is not None:
            self.mutate_only_probability = self._saved_probability
            self._saved_probability = None

    def select(self, population: Population, rng: Random) -> Selection:
        config = self.config
        ordered, ranks = sort_and_rank(population.genomes, config.comparison)
        if not ordered:
            return Selection(continuing=[], parents=[])
        best = ordered[0]

        if population.species and all(species.stagnant for species in population.species):
            for species in population.species:
                species.decay = 0.0
                species.champion = None
            parents = [(best,)] * (config.population_size - 1)
            return Selection(continuing=[best], parents=parents)

        members: dict[int, list[Genome]] = {species.id: [] for species in population.species}
        for genome in ordered:
            members.setdefault(genome.species_id, []).append(genome)
        decays = {species.id: species.decay for species in population.species}

        averages: dict[int, float] = {}
        for species_id, genomes in members.items():
            if not genomes:
                continue
            factor = 1.0 - decays.get(species_id, 0.0)
            averages[species_id] = sum(ranks[genome.id] for genome in genomes) * factor / len(genomes)
        active = {species_id: average for species_id, average in averages.items() if average > 0.0}

        continuing: list[Genome] = []
        if config.elitism:
            continuing = [members[species_id][0] for species_id in active]
            tied = any(config.comparison.compare(best, genome) == 0 for genome in continuing)
            if best.species_id not in active and not tied:
                continuing.append(best)
            if len(continuing) > config.population_size:
                continuing.sort(key=lambda genome: ranks[genome.id], reverse=True)
                del continuing[config.population_size :]

        counts = allocate_offspring(active, config.population_size - len(continuing))
        pools = {
            species_id: genomes[: max(1, math.ceil(len(genomes) * config.survival_rate))]
            for species_id, genomes in members.items()
            if genomes
        }
        parents: list[tuple[Genome, ...]] = []
        for species_id in sorted(counts):
            for _ in range(counts[species_id]):
                first = _roulette(rng, pools[species_id], ranks)
                if rng.random() < self.mutate_only_probability:
                    parents.append((first,))
                    continue
                partner_species = species_id
                others = [other for other in sorted(pools) if other != species_id]
                if others and rng.random() < config.interspecies_mate_probability:
                    partner_species = rng.choice(others)
                parents.append((first, _roulette(rng, pools[partner_species], ranks)))
        return Selection(continuing=continuing, parents=parents)


__all__ = ["Selection", "Selector", "SelectorConfig", "allocate_offspring"]
