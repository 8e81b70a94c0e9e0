"""Seeding of the prototype genome and creation of the initial population."""

from __future__ import annotations

from dataclasses import dataclass
from random import Random
from typing import Protocol

from .activations import Activation
from .errors import ConfigError
from .genes import ConnectionGene, NodeGene, NodeType, Position
from .genome import Genome, Population
from .substrate import Substrate


class Seeder(Protocol):
    def seed(self, rng: Random) -> Genome: ...


def _spread(index: int, count: int) -> float:
    return 0.5 if count == 1 else index / (count - 1)


@dataclass(frozen=True, slots=True)
class SeederConfig:
    """Shape of the prototype genome."""

    num_inputs: int
    num_outputs: int
    num_traits: int = 0
    output_activation: Activation = Activation.SIGMOID
    disconnect_rate: float = 0.0

    def __post_init__(self) -> None:
        if self.num_inputs <= 0:
            msg = "num_inputs must be positive."
            raise ConfigError(msg)
        if self.num_outputs <= 0:
            msg = "num_outputs must be positive."
            raise ConfigError(msg)
        if self.num_traits < 0:
            msg = "num_traits must be >= 0."
            raise ConfigError(msg)
        if not 0.0 <= self.disconnect_rate < 1.0:
            msg = "disconnect_rate must be in [0, 1)."
            raise ConfigError(msg)
        object.__setattr__(
            self, "output_activation", Activation.coerce(self.output_activation)
        )


@dataclass(frozen=True, slots=True)
class NEATSeeder:
    """Creates a genome with every input connected to every output."""

    config: SeederConfig

    def seed(self, rng: Random) -> Genome:
        config = self.config
        inputs = [
            NodeGene(Position(0.0, _spread(index, config.num_inputs)), NodeType.INPUT)
            for index in range(config.num_inputs)
        ]
        outputs = [
            NodeGene(
                Position(1.0, _spread(index, config.num_outputs)),
                NodeType.OUTPUT,
                activation=config.output_activation,
            )
            for index in range(config.num_outputs)
        ]
        conns = [
            ConnectionGene(source.position, target.position, 0.0)
            for source in inputs
            for target in outputs
            if rng.random() >= config.disconnect_rate
        ]
        return Genome(
            id=0,
            encoded=Substrate.build(inputs + outputs, conns),
            traits=[0.0] * config.num_traits,
        )


@dataclass(frozen=True, slots=True)
class PopulatorConfig:
    """Size of the population and ranges for randomised initial values."""

    population_size: int
    weight_power: float = 2.5
    max_weight: float = 8.0
    bias_power: float = 2.5
    max_bias: float = 8.0

    def __post_init__(self) -> None:
        if self.population_size <= 0:
            msg = "population_size must be positive."
            raise ConfigError(msg)
        for label in ("weight_power", "max_weight", "bias_power", "max_bias"):
            if getattr(self, label) <= 0:
                msg = f"{label} must be positive."
                raise ConfigError(msg)


@dataclass(frozen=True, slots=True)
class Populator:
    """Expands a seeded prototype into a randomised population."""

    config: PopulatorConfig

    def populate(self, seeder: Seeder, rng: Random) -> Population:
        """Return generation 0 with genome ids ``1..population_size`` and no species."""
        config = self.config
        prototype = seeder.seed(rng)
        genomes = []
        for genome_id in range(1, config.population_size + 1):
            encoded = prototype.encoded.copy()
            encoded.nodes = [
                node
                if node.type is NodeType.INPUT
                else node.copy(bias=_clipped(rng, config.bias_power, config.max_bias))
                for node in encoded.nodes
            ]
            encoded.conns = [
                conn
                if conn.locked
                else conn.copy(weight=_clipped(rng, config.weight_power, config.max_weight))
                for conn in encoded.conns
            ]
            traits = [rng.random() for _ in prototype.traits]
            genomes.append(Genome(id=genome_id, encoded=encoded, traits=traits))
        return Population(generation=0, genomes=genomes, species=[])


def _clipped(rng: Random, power: float, limit: float) -> float:
    return min(limit, max(-limit, rng.gauss(0.0, 1.0) * power))


__all__ = [
    "NEATSeeder",
    "Populator",
    "PopulatorConfig",
    "Seeder",
    "SeederConfig",
]
