"""Gene primitives (positions, nodes and connections) for evolved substrates."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from .activations import Activation
from .errors import StructuralError


@dataclass(frozen=True, slots=True, order=True)
class Position:
    """Location of a node; ordered lexicographically by ``(layer, x, y, z)``."""

    layer: float
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __post_init__(self) -> None:
        for field_name in ("layer", "x", "y", "z"):
            value = float(getattr(self, field_name))
            if not math.isfinite(value):
                msg = f"Position {field_name} must be finite, got {value!r}"
                raise StructuralError(msg)
            object.__setattr__(self, field_name, value)
        if not 0.0 <= self.layer <= 1.0:
            msg = f"Position layer must be within [0, 1], got {self.layer}"
            raise StructuralError(msg)
        for field_name in ("x", "y", "z"):
            if not -1.0 <= getattr(self, field_name) <= 1.0:
                msg = f"Position {field_name} must be within [-1, 1]."
                raise StructuralError(msg)

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.layer, self.x, self.y, self.z)


def midpoint(left: Position, right: Position) -> Position:
    """Return the component-wise average of two positions."""
    return Position(
        layer=(left.layer + right.layer) / 2.0,
        x=(left.x + right.x) / 2.0,
        y=(left.y + right.y) / 2.0,
        z=(left.z + right.z) / 2.0,
    )


class NodeType(str, Enum):
    """Enumeration of supported node categories."""

    INPUT = "input"
    HIDDEN = "hidden"
    OUTPUT = "output"

    @classmethod
    def coerce(cls, value: NodeType | str) -> NodeType:
        """Coerce a string or NodeType into a NodeType instance."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            msg = f"Unsupported node type value: {value!r}"
            raise TypeError(msg)
        try:
            return cls(value.lower())
        except ValueError as error:
            valid = ", ".join(member.value for member in cls)
            msg = f"Invalid node type {value!r}. Expected one of: {valid}"
            raise ValueError(msg) from error


def _finite(name: str, value: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as error:
        msg = f"{name} must be convertible to float, got {value!r}"
        raise StructuralError(msg) from error
    if not math.isfinite(number):
        msg = f"{name} must be a finite number."
        raise StructuralError(msg)
    return number


@dataclass(frozen=True, slots=True)
class NodeGene:
    """Represents a node; its identity is its position."""

    position: Position
    type: NodeType
    activation: Activation = Activation.DIRECT
    bias: float = 0.0
    locked: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", NodeType.coerce(self.type))
        object.__setattr__(self, "activation", Activation.coerce(self.activation))
        object.__setattr__(self, "bias", _finite("bias", self.bias))

    def copy(
        self,
        *,
        activation: Activation | None = None,
        bias: float | None = None,
    ) -> NodeGene:
        """Return a copy of the node with optional overrides."""
        return NodeGene(
            position=self.position,
            type=self.type,
            activation=self.activation if activation is None else activation,
            bias=self.bias if bias is None else bias,
            locked=self.locked,
        )


@dataclass(frozen=True, slots=True)
class ConnectionGene:
    """Represents a feed-forward connection keyed by ``(source, target)``."""

    source: Position
    target: Position
    weight: float
    enabled: bool = True
    locked: bool = False

    def __post_init__(self) -> None:
        if self.source == self.target:
            msg = f"Self-loop at {self.source} is not allowed."
            raise StructuralError(msg)
        if self.target.layer <= self.source.layer:
            msg = (
                f"Connection {self.source} -> {self.target} must point to a "
                "strictly higher layer."
            )
            raise StructuralError(msg)
        object.__setattr__(self, "weight", _finite("weight", self.weight))

    @property
    def key(self) -> tuple[Position, Position]:
        return (self.source, self.target)

    def copy(
        self,
        *,
        weight: float | None = None,
        enabled: bool | None = None,
    ) -> ConnectionGene:
        """Return a copy with optional field overrides."""
        return ConnectionGene(
            source=self.source,
            target=self.target,
            weight=self.weight if weight is None else weight,
            enabled=self.enabled if enabled is None else enabled,
            locked=self.locked,
        )


__all__ = ["ConnectionGene", "NodeGene", "NodeType", "Position", "midpoint"]
