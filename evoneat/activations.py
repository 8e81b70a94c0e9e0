"""Activation functions applied element-wise by translated networks."""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

import numpy as np

from .errors import InvalidActivation

ActivationFunction = Callable[[np.ndarray], np.ndarray]


def _direct(z: np.ndarray) -> np.ndarray:
    return z


def _sigmoid(z: np.ndarray) -> np.ndarray:
    # keeps exp within float64 range
    return 1.0 / (1.0 + np.exp(-np.clip(z, -500.0, 500.0)))


def _steepened_sigmoid(z: np.ndarray) -> np.ndarray:
    return _sigmoid(4.9 * z)


def _inverse_abs(z: np.ndarray) -> np.ndarray:
    return z / (1.0 + np.abs(z))


def _gauss(z: np.ndarray) -> np.ndarray:
    return np.exp(-2.0 * np.square(z))


def _relu(z: np.ndarray) -> np.ndarray:
    return np.maximum(0.0, z)


class Activation(str, Enum):
    """Closed set of activation functions a node may carry."""

    DIRECT = "direct"
    SIGMOID = "sigmoid"
    STEEPENED_SIGMOID = "steepened-sigmoid"
    TANH = "tanh"
    INVERSE_ABS = "inverse-abs"
    SIN = "sin"
    GAUSS = "gauss"
    RELU = "relu"

    @classmethod
    def coerce(cls, value: Activation | str) -> Activation:
        """Coerce a name such as ``"SteepenedSigmoid"`` or ``"steepened-sigmoid"``."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            msg = f"Unsupported activation value: {value!r}"
            raise InvalidActivation(msg)
        key = "".join(ch for ch in value.lower() if ch.isalnum())
        for member in cls:
            if member.value.replace("-", "") == key:
                return member
        valid = ", ".join(member.value for member in cls)
        msg = f"Invalid activation {value!r}. Expected one of: {valid}"
        raise InvalidActivation(msg)

    def __call__(self, z: np.ndarray) -> np.ndarray:
        return _FUNCTIONS[self](np.asarray(z, dtype=float))


_FUNCTIONS: dict[Activation, ActivationFunction] = {
    Activation.DIRECT: _direct,
    Activation.SIGMOID: _sigmoid,
    Activation.STEEPENED_SIGMOID: _steepened_sigmoid,
    Activation.TANH: np.tanh,
    Activation.INVERSE_ABS: _inverse_abs,
    Activation.SIN: np.sin,
    Activation.GAUSS: _gauss,
    Activation.RELU: _relu,
}


__all__ = ["Activation", "ActivationFunction"]
