"""Compatibility distance and speciation with adaptive threshold control."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from .errors import ConfigError
from .genome import Population, Species
from .substrate import Substrate

Distancer = Callable[[Substrate, Substrate], float]


@dataclass(frozen=True, slots=True)
class CompatibilityConfig:
    """Coefficients of the compatibility distance terms."""

    nodes_coefficient: float = 1.0
    activation_coefficient: float = 0.0
    conns_coefficient: float = 1.0
    weight_coefficient: float = 0.4
    bias_coefficient: float = 0.0

    def __post_init__(self) -> None:
        for label in (
            "nodes_coefficient",
            "activation_coefficient",
            "conns_coefficient",
            "weight_coefficient",
            "bias_coefficient",
        ):
            if getattr(self, label) < 0:
                msg = f"{label} must be non-negative."
                raise ConfigError(msg)

    def __call__(self, left: Substrate, right: Substrate) -> float:
        return compatibility_distance(left, right, self)


def compatibility_distance(
    left: Substrate,
    right: Substrate,
    config: CompatibilityConfig,
) -> float:
    """Compute the compatibility distance between two encoded substrates."""
    index_left = 0
    index_right = 0
    unmatched_nodes = 0
    matched_nodes = 0
    activation_diffs = 0
    bias_diff_sum = 0.0
    while index_left < len(left.nodes) and index_right < len(right.nodes):
        node_left = left.nodes[index_left]
        node_right = right.nodes[index_right]
        if node_left.position == node_right.position:
            matched_nodes += 1
            if node_left.activation is not node_right.activation:
                activation_diffs += 1
            bias_diff_sum += abs(node_left.bias - node_right.bias)
            index_left += 1
            index_right += 1
        elif node_left.position < node_right.position:
            unmatched_nodes += 1
            index_left += 1
        else:
            unmatched_nodes += 1
            index_right += 1
    unmatched_nodes += len(left.nodes) - index_left
    unmatched_nodes += len(right.nodes) - index_right

    index_left = 0
    index_right = 0
    unmatched_conns = 0
    matched_conns = 0
    weight_diff_sum = 0.0
    while index_left < len(left.conns) and index_right < len(right.conns):
        conn_left = left.conns[index_left]
        conn_right = right.conns[index_right]
        if conn_left.key == conn_right.key:
            matched_conns += 1
            weight_diff_sum += abs(conn_left.weight - conn_right.weight)
            index_left += 1
            index_right += 1
        elif conn_left.key < conn_right.key:
            unmatched_conns += 1
            index_left += 1
        else:
            unmatched_conns += 1
            index_right += 1
    unmatched_conns += len(left.conns) - index_left
    unmatched_conns += len(right.conns) - index_right

    activation_fraction = activation_diffs / matched_nodes if matched_nodes else 0.0
    average_bias_diff = bias_diff_sum / matched_nodes if matched_nodes else 0.0
    average_weight_diff = weight_diff_sum / matched_conns if matched_conns else 0.0

    return (
        config.nodes_coefficient * unmatched_nodes
        + config.activation_coefficient * activation_fraction
        + config.conns_coefficient * unmatched_conns
        + config.weight_coefficient * average_weight_diff
        + config.bias_coefficient * average_bias_diff
    )


@dataclass(frozen=True, slots=True)
class SpeciatorConfig:
    """Configuration parameters controlling speciation behaviour."""

    compatibility_threshold: float = 3.0
    compatibility_modifier: float = 0.3
    target_species: int = 10

    def __post_init__(self) -> None:
        if self.compatibility_threshold < 0:
            msg = "compatibility_threshold must be non-negative."
            raise ConfigError(msg)
        if self.compatibility_modifier < 0:
            msg = "compatibility_modifier must be non-negative."
            raise ConfigError(msg)
        if self.target_species <= 0:
            msg = "target_species must be positive."
            raise ConfigError(msg)


@dataclass(slots=True)
class Speciator:
    """Partitions a population into species and adapts the threshold."""

    config: SpeciatorConfig
    distancer: Distancer | None
    threshold: float = field(init=False)

    def __post_init__(self) -> None:
        if self.distancer is None:
            msg = "Speciator requires a distancer."
            raise ConfigError(msg)
        self.threshold = self.config.compatibility_threshold

    def speciate(self, population: Population, last_species_id: int) -> int:
        """Assign every genome to a species and return the last issued species id."""
        species_list = list(population.species)
        known = {species.id for species in species_list}
        buckets: dict[int, int] = {species.id: 0 for species in species_list}
        receiving: set[int] = set()

        for genome in population.genomes:
            if genome.species_id in known:
                buckets[genome.species_id] += 1
                continue
            chosen: Species | None = None
            for species in species_list:
                if self.distancer(genome.encoded, species.example.encoded) < self.threshold:
                    chosen = species
                    break
            if chosen is None:
                last_species_id += 1
                chosen = Species(id=last_species_id, example=genome.copy())
                species_list.append(chosen)
                known.add(chosen.id)
                buckets[chosen.id] = 0
            genome.species_id = chosen.id
            buckets[chosen.id] += 1
            receiving.add(chosen.id)

        population.species = [species for species in species_list if buckets[species.id]]

        if len(receiving) > self.config.target_species:
            self.threshold += self.config.compatibility_modifier
        elif len(receiving) < self.config.target_species:
            self.threshold = max(
                self.config.compatibility_modifier,
                self.threshold - self.config.compatibility_modifier,
            )
        return last_species_id


__all__ = [
    "CompatibilityConfig",
    "Distancer",
    "Speciator",
    "SpeciatorConfig",
    "compatibility_distance",
]
