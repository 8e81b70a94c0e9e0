"""Mutation operators applied to a genome's encoded substrate in place.

Every mutator returns ``True`` when it changed the structure of the genome
(added or removed a node or connection). :class:`MutatorPipeline` stops at the
first structural change so a genome receives at most one per generation.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from random import Random
from typing import Protocol

from .activations import Activation
from .errors import ConfigError, VariationError
from .genes import ConnectionGene, NodeGene, NodeType, Position, midpoint
from .genome import Comparison, Genome, Population
from .substrate import Substrate


class Mutator(Protocol):
    def mutate(self, genome: Genome, rng: Random) -> bool: ...


class MutateOnlyToggle(Protocol):
    def set_mutate_only(self, enabled: bool) -> None: ...


def _check_probabilities(config: object, *labels: str) -> None:
    for label in labels:
        if not 0.0 <= getattr(config, label) <= 1.0:
            msg = f"{label} must be in [0, 1]."
            raise ConfigError(msg)


def _check_positive(config: object, *labels: str) -> None:
    for label in labels:
        if getattr(config, label) <= 0.0:
            msg = f"{label} must be positive."
            raise ConfigError(msg)


def _clip(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def _sample(rng: Random, power: float, limit: float) -> float:
    return _clip(rng.gauss(0.0, 1.0) * power, -limit, limit)


@dataclass(frozen=True, slots=True)
class ComplexifyConfig:
    """Probabilities and ranges for structural growth."""

    add_node_probability: float = 0.03
    add_conn_probability: float = 0.05
    weight_power: float = 2.5
    max_weight: float = 8.0
    bias_power: float = 2.5
    max_bias: float = 8.0
    hidden_activation: Activation = Activation.STEEPENED_SIGMOID

    def __post_init__(self) -> None:
        _check_probabilities(self, "add_node_probability", "add_conn_probability")
        _check_positive(self, "weight_power", "max_weight", "bias_power", "max_bias")
        object.__setattr__(
            self, "hidden_activation", Activation.coerce(self.hidden_activation)
        )


@dataclass(frozen=True, slots=True)
class Complexify:
    """Grows the topology by splitting a connection or adding a new one."""

    config: ComplexifyConfig = ComplexifyConfig()

    def mutate(self, genome: Genome, rng: Random) -> bool:
        if rng.random() < self.config.add_node_probability and self.add_node(
            genome.encoded, rng
        ):
            return True
        if rng.random() < self.config.add_conn_probability:
            return self.add_conn(genome.encoded, rng)
        return False

    def add_node(self, substrate: Substrate, rng: Random) -> bool:
        """Split a random enabled connection; no-op when no new hidden node fits at its midpoint."""
        candidates = [
            index
            for index, conn in enumerate(substrate.conns)
            if conn.enabled and not conn.locked
        ]
        if not candidates:
            return False
        index = rng.choice(candidates)
        original = substrate.conns[index]
        position = midpoint(original.source, original.target)
        if not original.source.layer < position.layer < original.target.layer:
            # layers too close to split in floating point
            return False
        if any(node.position == position for node in substrate.nodes):
            return False

        incoming = ConnectionGene(original.source, position, 1.0)
        outgoing = ConnectionGene(position, original.target, original.weight)
        node = NodeGene(
            position=position,
            type=NodeType.HIDDEN,
            activation=self.config.hidden_activation,
            bias=_sample(rng, self.config.bias_power, self.config.max_bias),
        )
        substrate.nodes.append(node)
        substrate.conns[index] = original.copy(enabled=False)
        substrate.conns.extend((incoming, outgoing))
        substrate.sort()
        return True

    def add_conn(self, substrate: Substrate, rng: Random) -> bool:
        """Connect a random valid pair of unconnected nodes."""
        existing = {conn.key for conn in substrate.conns}
        candidates = [
            (source.position, target.position)
            for source in substrate.nodes
            if source.type is not NodeType.OUTPUT
            for target in substrate.nodes
            if target.type is not NodeType.INPUT
            and target.position.layer > source.position.layer
            and (source.position, target.position) not in existing
        ]
        if not candidates:
            return False
        source, target = rng.choice(candidates)
        weight = _sample(rng, self.config.weight_power, self.config.max_weight)
        substrate.conns.append(ConnectionGene(source, target, weight))
        substrate.sort()
        return True


@dataclass(frozen=True, slots=True)
class WeightConfig:
    mutate_weight_probability: float = 0.8
    replace_weight_probability: float = 0.1
    weight_power: float = 2.5
    max_weight: float = 8.0

    def __post_init__(self) -> None:
        _check_probabilities(
            self, "mutate_weight_probability", "replace_weight_probability"
        )
        _check_positive(self, "weight_power", "max_weight")


@dataclass(frozen=True, slots=True)
class WeightMutator:
    """Perturbs or replaces connection weights."""

    config: WeightConfig = WeightConfig()

    def mutate(self, genome: Genome, rng: Random) -> bool:
        config = self.config
        conns = genome.encoded.conns
        for index, conn in enumerate(conns):
            if conn.locked:
                continue
            if rng.random() >= config.mutate_weight_probability:
                continue
            delta = rng.gauss(0.0, 1.0) * config.weight_power
            if rng.random() < config.replace_weight_probability:
                weight = delta
            else:
                weight = conn.weight + delta
            conns[index] = conn.copy(
                weight=_clip(weight, -config.max_weight, config.max_weight)
            )
        return False


@dataclass(frozen=True, slots=True)
class BiasConfig:
    mutate_bias_probability: float = 0.8
    replace_bias_probability: float = 0.1
    bias_power: float = 2.5
    max_bias: float = 8.0

    def __post_init__(self) -> None:
        _check_probabilities(self, "mutate_bias_probability", "replace_bias_probability")
        _check_positive(self, "bias_power", "max_bias")


@dataclass(frozen=True, slots=True)
class BiasMutator:
    """Perturbs or replaces the bias of non-input nodes."""

    config: BiasConfig = BiasConfig()

    def mutate(self, genome: Genome, rng: Random) -> bool:
        config = self.config
        nodes = genome.encoded.nodes
        for index, node in enumerate(nodes):
            if node.type is NodeType.INPUT:
                continue
            if rng.random() >= config.mutate_bias_probability:
                continue
            delta = rng.gauss(0.0, 1.0) * config.bias_power
            if rng.random() < config.replace_bias_probability:
                bias = delta
            else:
                bias = node.bias + delta
            nodes[index] = node.copy(bias=_clip(bias, -config.max_bias, config.max_bias))
        return False


@dataclass(frozen=True, slots=True)
class TraitConfig:
    mutate_trait_probability: float = 0.1
    replace_trait_probability: float = 0.2

    def __post_init__(self) -> None:
        _check_probabilities(self, "mutate_trait_probability", "replace_trait_probability")


@dataclass(frozen=True, slots=True)
class TraitMutator:
    """Perturbs or resamples trait values, keeping them within [0, 1]."""

    config: TraitConfig = TraitConfig()

    def mutate(self, genome: Genome, rng: Random) -> bool:
        traits = genome.traits
        for index, trait in enumerate(traits):
            if rng.random() >= self.config.mutate_trait_probability:
                continue
            if rng.random() < self.config.replace_trait_probability:
                traits[index] = rng.random()
            else:
                traits[index] = _clip(trait + rng.gauss(0.0, 1.0), 0.0, 1.0)
        return False


@dataclass(frozen=True, slots=True)
class ActivationConfig:
    replace_activation_probability: float = 0.05
    activations: tuple[Activation, ...] = ()

    def __post_init__(self) -> None:
        _check_probabilities(self, "replace_activation_probability")
        object.__setattr__(
            self,
            "activations",
            tuple(Activation.coerce(value) for value in self.activations),
        )


@dataclass(frozen=True, slots=True)
class ActivationMutator:
    """Replaces hidden-node activations with one from the allowed set."""

    config: ActivationConfig = ActivationConfig()

    def mutate(self, genome: Genome, rng: Random) -> bool:
        if not self.config.activations:
            msg = "No activations configured for the activation mutator."
            raise VariationError(msg)
        nodes = genome.encoded.nodes
        for index, node in enumerate(nodes):
            if node.type is not NodeType.HIDDEN:
                continue
            if rng.random() < self.config.replace_activation_probability:
                nodes[index] = node.copy(activation=rng.choice(self.config.activations))
        return False


def _remove_node(substrate: Substrate, position: Position) -> bool:
    """Remove an unlocked hidden node and every connection touching it."""
    node = substrate.node_map().get(position)
    if node is None or node.type is not NodeType.HIDDEN or node.locked:
        return False
    substrate.nodes = [item for item in substrate.nodes if item.position != position]
    touching = [
        conn for conn in substrate.conns if position in (conn.source, conn.target)
    ]
    for conn in touching:
        _remove_conn(substrate, conn)
    return True


def _remove_conn(substrate: Substrate, conn: ConnectionGene) -> None:
    """Remove a connection and any hidden endpoint it leaves stranded."""
    substrate.conns = [item for item in substrate.conns if item.key != conn.key]
    for position in conn.key:
        stranded = not any(
            position in (item.source, item.target) for item in substrate.conns
        )
        if stranded:
            _remove_node(substrate, position)


@dataclass(frozen=True, slots=True)
class SimplifyConfig:
    del_node_probability: float = 0.01
    del_conn_probability: float = 0.02

    def __post_init__(self) -> None:
        _check_probabilities(self, "del_node_probability", "del_conn_probability")


@dataclass(frozen=True, slots=True)
class Simplify:
    """Shrinks the topology by deleting a hidden node or a connection."""

    config: SimplifyConfig = SimplifyConfig()

    def mutate(self, genome: Genome, rng: Random) -> bool:
        if rng.random() < self.config.del_node_probability:
            return self.del_node(genome.encoded, rng)
        if rng.random() < self.config.del_conn_probability:
            return self.del_conn(genome.encoded, rng)
        return False

    def del_conn(self, substrate: Substrate, rng: Random) -> bool:
        candidates = [conn for conn in substrate.conns if not conn.locked]
        if not candidates:
            return False
        _remove_conn(substrate, rng.choice(candidates))
        return True

    def del_node(self, substrate: Substrate, rng: Random) -> bool:
        """Remove a hidden node with at most one input or output, splicing around it."""
        hidden = [
            node for node in substrate.nodes if node.type is NodeType.HIDDEN and not node.locked
        ]
        rng.shuffle(hidden)
        for node in hidden:
            incoming = [conn for conn in substrate.conns if conn.target == node.position]
            outgoing = [conn for conn in substrate.conns if conn.source == node.position]
            if len(incoming) > 1 and len(outgoing) > 1:
                continue
            existing = {conn.key for conn in substrate.conns}
            spliced = []
            for conn_in in incoming:
                for conn_out in outgoing:
                    key = (conn_in.source, conn_out.target)
                    if key in existing:
                        continue
                    # the side with several connections keeps its weights
                    weight = conn_out.weight if len(incoming) == 1 else conn_in.weight
                    spliced.append(
                        ConnectionGene(
                            key[0],
                            key[1],
                            weight,
                            enabled=conn_in.enabled and conn_out.enabled,
                        )
                    )
                    existing.add(key)
            substrate.conns.extend(spliced)
            _remove_node(substrate, node.position)
            substrate.sort()
            return True
        return False


@dataclass(frozen=True, slots=True)
class PruningConfig:
    disable_probability: float = 0.0
    prune_probability: float = 0.0

    def __post_init__(self) -> None:
        _check_probabilities(self, "disable_probability", "prune_probability")


@dataclass(frozen=True, slots=True)
class Pruning:
    """Disables a random enabled connection or prunes one outright.

    Pruning removes nodes stranded by the deleted connection but leaves
    dead-end paths in place.
    """

    config: PruningConfig = PruningConfig()

    def mutate(self, genome: Genome, rng: Random) -> bool:
        if rng.random() >= self.config.disable_probability:
            return False
        substrate = genome.encoded
        candidates = [conn for conn in substrate.conns if not conn.locked]
        if rng.random() < self.config.prune_probability:
            if not candidates:
                return False
            _remove_conn(substrate, rng.choice(candidates))
            return True
        enabled = [index for index, conn in enumerate(substrate.conns) if conn.enabled and not conn.locked]
        if enabled:
            index = rng.choice(enabled)
            substrate.conns[index] = substrate.conns[index].copy(enabled=False)
        return False


@dataclass(frozen=True, slots=True)
class PhasedConfig:
    phase_threshold: float = 10.0
    hold_phase: int = 5

    def __post_init__(self) -> None:
        if self.phase_threshold <= 0:
            msg = "phase_threshold must be positive."
            raise ConfigError(msg)
        if self.hold_phase < 0:
            msg = "hold_phase must be >= 0."
            raise ConfigError(msg)


@dataclass(slots=True)
class Phased:
    """Alternates between complexifying and simplifying phases.

    :meth:`update` is subscribed to the evaluated event and watches the mean
    population complexity. The phase switches to simplifying once complexity
    passes the threshold while the champion is stagnant, and back once
    simplification stops lowering the complexity for ``hold_phase``
    generations.
    """

    config: PhasedConfig
    complexify: Complexify
    simplify: Simplify
    comparison: Comparison = Comparison.FITNESS
    toggle: MutateOnlyToggle | None = None
    simplifying: bool = field(init=False, default=False)
    threshold: float | None = field(init=False, default=None)
    champion: int | None = field(init=False, default=None)
    stagnant: int = field(init=False, default=0)
    stuck: int = field(init=False, default=0)
    min_complexity: float = field(init=False, default=0.0)
    last_generation: int | None = field(init=False, default=None)

    def mutate(self, genome: Genome, rng: Random) -> bool:
        if self.simplifying:
            return self.simplify.mutate(genome, rng)
        return self.complexify.mutate(genome, rng)

    def update(self, population: Population) -> None:
        if population.generation == self.last_generation or not population.genomes:
            return
        self.last_generation = population.generation
        mpc = population.mean_complexity

        if self.threshold is None:
            self.threshold = mpc + self.config.phase_threshold
            return

        best = max(population.genomes, key=self.comparison.sort_key)
        if best.id == self.champion:
            self.stagnant += 1
        else:
            self.champion = best.id
            self.stagnant = 0

        if self.simplifying:
            if mpc < self.min_complexity:
                self.min_complexity = mpc
                self.stuck = 0
            else:
                self.stuck += 1
            if self.stuck > self.config.hold_phase:
                self.simplifying = False
                self.threshold = self.min_complexity + self.config.phase_threshold
                if self.toggle is not None:
                    self.toggle.set_mutate_only(False)
        elif mpc >= self.threshold and self.stagnant > self.config.hold_phase:
            self.simplifying = True
            self.stuck = 0
            self.min_complexity = mpc
            if self.toggle is not None:
                self.toggle.set_mutate_only(True)


@dataclass(frozen=True, slots=True)
class MutatorPipeline:
    """Runs mutators in order, stopping after the first structural change."""

    mutators: Sequence[Mutator] = ()

    def mutate(self, genome: Genome, rng: Random) -> bool:
        for mutator in self.mutators:
            if mutator.mutate(genome, rng):
                return True
        return False


__all__ = [
    "ActivationConfig",
    "ActivationMutator",
    "BiasConfig",
    "BiasMutator",
    "Complexify",
    "ComplexifyConfig",
    "MutateOnlyToggle",
    "Mutator",
    "MutatorPipeline",
    "Phased",
    "PhasedConfig",
    "Pruning",
    "PruningConfig",
    "Simplify",
    "SimplifyConfig",
    "TraitConfig",
    "TraitMutator",
    "WeightConfig",
    "WeightMutator",
]
