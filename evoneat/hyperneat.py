"""HyperNEAT: generating a template network's weights with an evolved CPPN."""

from __future__ import annotations

from dataclasses import dataclass, field
from random import Random
from typing import Protocol

import numpy as np

from .activations import Activation
from .errors import ConfigError, StructuralError
from .genes import ConnectionGene, NodeGene, NodeType, Position, midpoint
from .genome import Genome
from .network import Translator
from .population import NEATSeeder, SeederConfig
from .substrate import Substrate
from .transcriber import Transcriber

# CPPN output columns
WEIGHT = 0
BIAS = 1
LEO = 2

CPPN_INPUTS = 8
CPPN_OUTPUTS = 3


class Inspector(Protocol):
    def weights_and_expression(
        self, outputs: np.ndarray, weight_power: float
    ) -> tuple[np.ndarray, np.ndarray]: ...


@dataclass(frozen=True, slots=True)
class LinkExpressionOutput:
    """Reads the weight column and gates expression with the LEO column."""

    def weights_and_expression(
        self, outputs: np.ndarray, weight_power: float
    ) -> tuple[np.ndarray, np.ndarray]:
        return outputs[:, WEIGHT] * weight_power, outputs[:, LEO]


@dataclass(frozen=True, slots=True)
class ConstantThreshold:
    """Expresses links whose weight magnitude exceeds ``threshold``."""

    threshold: float = 0.2

    def __post_init__(self) -> None:
        if not 0.0 < self.threshold < 1.0:
            msg = "threshold must be in (0, 1)."
            raise ConfigError(msg)

    def weights_and_expression(
        self, outputs: np.ndarray, weight_power: float
    ) -> tuple[np.ndarray, np.ndarray]:
        raw = outputs[:, WEIGHT]
        magnitude = np.abs(raw)
        expressed = magnitude > self.threshold
        scaled = np.sign(raw) * (magnitude - self.threshold) / self.threshold * weight_power
        weights = np.where(expressed, scaled, 0.0)
        return weights, expressed.astype(float)


@dataclass(frozen=True, slots=True)
class HyperNEATTranscriberConfig:
    weight_power: float = 3.0
    bias_power: float = 1.0

    def __post_init__(self) -> None:
        if self.weight_power == 0.0:
            msg = "weight_power cannot be zero."
            raise ConfigError(msg)


@dataclass(slots=True)
class HyperNEATTranscriber:
    """Decodes a CPPN genome into a template substrate with generated connections.

    The template holds nodes only. Candidate edges run between each pair of
    adjacent template layers and are queried from the CPPN as rows of
    ``(src.layer, src.x, src.y, src.z, tgt.layer, tgt.x, tgt.y, tgt.z)``.
    """

    template: Substrate
    config: HyperNEATTranscriberConfig = HyperNEATTranscriberConfig()
    inspector: Inspector = LinkExpressionOutput()
    cppn_transcriber: Transcriber = field(default_factory=Transcriber)
    cppn_translator: Translator = field(default_factory=Translator)
    layers: list[list[NodeGene]] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        if self.template.conns:
            msg = "HyperNEAT template must not contain connections."
            raise StructuralError(msg)
        if not self.template.nodes_of(NodeType.INPUT):
            msg = "HyperNEAT template has no input nodes."
            raise StructuralError(msg)
        if not self.template.nodes_of(NodeType.OUTPUT):
            msg = "HyperNEAT template has no output nodes."
            raise StructuralError(msg)
        self.template = Substrate.build(self.template.nodes)
        self.template.validate()
        for node in self.template.nodes:
            if not self.layers or self.layers[-1][0].position.layer < node.position.layer:
                self.layers.append([])
            self.layers[-1].append(node)

    def transcribe(self, encoded: Substrate) -> Substrate:
        cppn = self.cppn_translator.translate(self.cppn_transcriber.transcribe(encoded))
        if cppn.input_count != CPPN_INPUTS or cppn.output_count < CPPN_OUTPUTS:
            msg = (
                f"CPPN must have {CPPN_INPUTS} inputs and {CPPN_OUTPUTS} outputs, "
                f"got {cppn.input_count} and {cppn.output_count}."
            )
            raise StructuralError(msg)

        conns: list[ConnectionGene] = []
        for sources, targets in zip(self.layers, self.layers[1:]):
            rows = np.array(
                [
                    source.position.as_tuple() + target.position.as_tuple()
                    for source in sources
                    for target in targets
                ]
            )
            weights, expression = self.inspector.weights_and_expression(
                cppn.activate(rows), self.config.weight_power
            )
            pairs = [(source, target) for source in sources for target in targets]
            for (source, target), weight, expressed in zip(pairs, weights, expression):
                if expressed <= 0:
                    continue
                if source.type is NodeType.OUTPUT or target.type is NodeType.INPUT:
                    continue
                conns.append(
                    ConnectionGene(source.position, target.position, float(weight))
                )

        nodes = list(self.template.nodes)
        biased = [index for index, node in enumerate(nodes) if node.type is not NodeType.INPUT]
        if biased:
            rows = np.array(
                [nodes[index].position.as_tuple() + (0.0, 0.0, 0.0, 0.0) for index in biased]
            )
            biases = cppn.activate(rows)[:, BIAS] * self.config.bias_power
            for index, bias in zip(biased, biases):
                nodes[index] = nodes[index].copy(bias=float(bias))
        return Substrate.build(nodes, conns)


@dataclass(frozen=True, slots=True)
class HyperNEATSeederConfig:
    num_traits: int = 0
    disconnect_rate: float = 0.0
    seed_locality_layer: bool = False
    seed_locality_x: bool = False
    seed_locality_y: bool = False
    seed_locality_z: bool = False


@dataclass(frozen=True, slots=True)
class HyperNEATSeeder:
    """Seeds a CPPN with 8 coordinate inputs and weight, bias and LEO outputs.

    Each seed-locality flag adds a locked Gauss node that compares the source
    and target coordinate of one dimension and feeds the LEO output, biasing
    early CPPNs towards expressing local connections.
    """

    config: HyperNEATSeederConfig = HyperNEATSeederConfig()

    def seed(self, rng: Random) -> Genome:
        genome = NEATSeeder(
            SeederConfig(
                num_inputs=CPPN_INPUTS,
                num_outputs=CPPN_OUTPUTS,
                num_traits=self.config.num_traits,
                output_activation=Activation.INVERSE_ABS,
                disconnect_rate=self.config.disconnect_rate,
            )
        ).seed(rng)

        flags = (
            self.config.seed_locality_layer,
            self.config.seed_locality_x,
            self.config.seed_locality_y,
            self.config.seed_locality_z,
        )
        encoded = genome.encoded
        leo = Position(1.0, LEO / (CPPN_OUTPUTS - 1))
        for dimension, enabled in enumerate(flags):
            if not enabled:
                continue
            source = Position(0.0, dimension / (CPPN_INPUTS - 1))
            target = Position(0.0, (dimension + 4) / (CPPN_INPUTS - 1))
            position = midpoint(midpoint(source, target), leo)
            encoded.nodes.append(
                NodeGene(position, NodeType.HIDDEN, Activation.GAUSS, locked=True)
            )
            encoded.conns.extend(
                [
                    ConnectionGene(source, position, 1.0, locked=True),
                    ConnectionGene(target, position, -1.0, locked=True),
                    ConnectionGene(position, leo, 1.0, locked=True),
                ]
            )
        encoded.sort()
        return genome


__all__ = [
    "BIAS",
    "LEO",
    "WEIGHT",
    "ConstantThreshold",
    "HyperNEATSeeder",
    "HyperNEATSeederConfig",
    "HyperNEATTranscriber",
    "HyperNEATTranscriberConfig",
    "Inspector",
    "LinkExpressionOutput",
]
