"""Genomes, species, populations and the results that flow between them."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from .substrate import Substrate

if TYPE_CHECKING:
    from .network import FeedForwardNetwork

MIN_FITNESS = 0.0


@dataclass(slots=True)
class Genome:
    """An individual: the encoded substrate plus its evaluation outcome."""

    id: int
    encoded: Substrate
    traits: list[float] = field(default_factory=list)
    species_id: int | None = None
    fitness: float = MIN_FITNESS
    novelty: float = 0.0
    solved: bool = False
    decoded: Substrate = field(default_factory=Substrate)

    @property
    def complexity(self) -> int:
        return self.encoded.complexity

    def copy(self) -> Genome:
        """Return a deep copy of the genome."""
        return Genome(
            id=self.id,
            encoded=self.encoded.copy(),
            traits=list(self.traits),
            species_id=self.species_id,
            fitness=self.fitness,
            novelty=self.novelty,
            solved=self.solved,
            decoded=self.decoded.copy(),
        )


@dataclass(slots=True)
class Species:
    """Tracks a group of genetically similar genomes through one example."""

    id: int
    example: Genome
    champion: int | None = None
    decay: float = 0.0
    best_fitness: float = MIN_FITNESS
    stagnation: int = 0

    @property
    def stagnant(self) -> bool:
        return self.decay >= 1.0

    def copy(self) -> Species:
        return Species(
            id=self.id,
            example=self.example.copy(),
            champion=self.champion,
            decay=self.decay,
            best_fitness=self.best_fitness,
            stagnation=self.stagnation,
        )


@dataclass(slots=True)
class Population:
    """Genomes and species of one generation."""

    generation: int = 0
    genomes: list[Genome] = field(default_factory=list)
    species: list[Species] = field(default_factory=list)

    def copy(self) -> Population:
        return Population(
            generation=self.generation,
            genomes=[genome.copy() for genome in self.genomes],
            species=[species.copy() for species in self.species],
        )

    def members(self, species_id: int) -> list[Genome]:
        return [genome for genome in self.genomes if genome.species_id == species_id]

    @property
    def mean_complexity(self) -> float:
        if not self.genomes:
            return 0.0
        return sum(genome.complexity for genome in self.genomes) / len(self.genomes)


@dataclass(frozen=True, slots=True)
class Result:
    """Outcome of evaluating one phenome; ``error`` describes a failed evaluation."""

    id: int
    fitness: float = MIN_FITNESS
    novelty: float = 0.0
    solved: bool = False
    error: str | None = None

    def __post_init__(self) -> None:
        if self.error is None and not (self.fitness >= 0.0 and self.novelty >= 0.0):
            msg = f"Result for genome {self.id} must have non-negative fitness and novelty."
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class Phenome:
    """Translated network paired with its genome's id and traits."""

    id: int
    traits: tuple[float, ...]
    network: FeedForwardNetwork


class Comparison(str, Enum):
    """Primary ordering used to rank genomes."""

    FITNESS = "fitness"
    NOVELTY = "novelty"

    @classmethod
    def coerce(cls, value: Comparison | str) -> Comparison:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as error:
            valid = ", ".join(member.value for member in cls)
            msg = f"Invalid comparison {value!r}. Expected one of: {valid}"
            raise ValueError(msg) from error

    def primary(self, genome: Genome) -> tuple[bool, float]:
        """Return the key that decides which genome is better; solved wins first."""
        score = genome.fitness if self is Comparison.FITNESS else genome.novelty
        return (genome.solved, score)

    def compare(self, left: Genome, right: Genome) -> int:
        """Return -1, 0 or 1 as ``left`` is worse than, tied with or better than ``right``."""
        a, b = self.primary(left), self.primary(right)
        return (a > b) - (a < b)

    def sort_key(self, genome: Genome) -> tuple[bool, float, int, int]:
        # lower complexity, then lower id, win ties
        solved, score = self.primary(genome)
        return (solved, score, -genome.complexity, -genome.id)


def sort_and_rank(
    genomes: Sequence[Genome],
    comparison: Comparison,
) -> tuple[list[Genome], dict[int, int]]:
    """Sort genomes best first and rank them ``n`` down to ``1``.

    Genomes whose primary comparison ties share the higher rank.
    """
    ordered = sorted(genomes, key=comparison.sort_key, reverse=True)
    ranks: dict[int, int] = {}
    total = len(ordered)
    for index, genome in enumerate(ordered):
        if index and comparison.compare(genome, ordered[index - 1]) == 0:
            ranks[genome.id] = ranks[ordered[index - 1].id]
        else:
            ranks[genome.id] = total - index
    return ordered, ranks


__all__ = [
    "MIN_FITNESS",
    "Comparison",
    "Genome",
    "Phenome",
    "Population",
    "Result",
    "Species",
    "sort_and_rank",
]
