"""Layered feed-forward network construction and batch evaluation."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from .activations import Activation
from .errors import StructuralError
from .genes import NodeType, Position
from .substrate import Substrate


@dataclass(frozen=True, slots=True, eq=False)
class Layer:
    """Nodes sharing one ``layer`` coordinate.

    ``weights[k]`` is the ``|layer sources[k]| x |this layer|`` matrix of
    connection weights drawn from source layer ``sources[k]``.
    """

    positions: tuple[Position, ...]
    activations: tuple[Activation, ...]
    biases: np.ndarray
    sources: tuple[int, ...] = ()
    weights: tuple[np.ndarray, ...] = ()

    @property
    def size(self) -> int:
        return len(self.positions)

    def activate(self, values: np.ndarray) -> np.ndarray:
        """Apply each column's activation function in place and return ``values``."""
        groups: dict[Activation, list[int]] = {}
        for column, activation in enumerate(self.activations):
            groups.setdefault(activation, []).append(column)
        for activation, columns in groups.items():
            values[:, columns] = activation(values[:, columns])
        return values


@dataclass(frozen=True, slots=True, eq=False)
class FeedForwardNetwork:
    """Executable feed-forward network made of dense inter-layer matrices."""

    layers: tuple[Layer, ...]

    @property
    def input_count(self) -> int:
        return self.layers[0].size

    @property
    def output_count(self) -> int:
        return self.layers[-1].size

    def activate(self, inputs: Sequence[Sequence[float]] | np.ndarray) -> np.ndarray:
        """Evaluate an ``N x d_in`` input matrix and return the final layer's ``N x d_out`` values."""
        matrix = np.atleast_2d(np.asarray(inputs, dtype=float))
        if matrix.shape[1] != self.input_count:
            msg = (
                f"Expected {self.input_count} input columns "
                f"but received {matrix.shape[1]}."
            )
            raise ValueError(msg)

        rows = matrix.shape[0]
        values: list[np.ndarray] = [matrix]
        for layer in self.layers[1:]:
            current = np.tile(layer.biases, (rows, 1))
            for source, weights in zip(layer.sources, layer.weights):
                current += values[source] @ weights
            values.append(layer.activate(current))
        return values[-1]


class Translator:
    """Turns a decoded substrate into a :class:`FeedForwardNetwork`."""

    def translate(self, substrate: Substrate) -> FeedForwardNetwork:
        return translate(substrate)


def translate(substrate: Substrate) -> FeedForwardNetwork:
    """Group nodes by exact layer value and build the weight matrices between them."""
    nodes = sorted(substrate.nodes, key=lambda node: node.position)
    if not any(node.type is NodeType.INPUT for node in nodes):
        msg = "Network requires at least one input node."
        raise StructuralError(msg)
    if not any(node.type is NodeType.OUTPUT for node in nodes):
        msg = "Network requires at least one output node."
        raise StructuralError(msg)

    grouped: list[list] = []
    for node in nodes:
        if not grouped or grouped[-1][0].position.layer < node.position.layer:
            grouped.append([])
        grouped[-1].append(node)

    # position -> (layer index, column)
    index: dict[Position, tuple[int, int]] = {}
    for layer_index, members in enumerate(grouped):
        for column, node in enumerate(members):
            index[node.position] = (layer_index, column)

    matrices: list[dict[int, np.ndarray]] = [{} for _ in grouped]
    for conn in substrate.conns:
        if not conn.enabled:
            continue
        try:
            source_layer, source_column = index[conn.source]
            target_layer, target_column = index[conn.target]
        except KeyError as error:
            msg = f"Connection {conn.source} -> {conn.target} references a missing node."
            raise StructuralError(msg) from error
        incoming = matrices[target_layer]
        if source_layer not in incoming:
            incoming[source_layer] = np.zeros(
                (len(grouped[source_layer]), len(grouped[target_layer]))
            )
        incoming[source_layer][source_column, target_column] = conn.weight

    layers = []
    for layer_index, members in enumerate(grouped):
        sources = tuple(sorted(matrices[layer_index]))
        layers.append(
            Layer(
                positions=tuple(node.position for node in members),
                activations=tuple(node.activation for node in members),
                biases=np.array(
                    [0.0 if layer_index == 0 else node.bias for node in members]
                ),
                sources=sources,
                weights=tuple(matrices[layer_index][source] for source in sources),
            )
        )
    return FeedForwardNetwork(layers=tuple(layers))


__all__ = ["FeedForwardNetwork", "Layer", "Translator", "translate"]
