"""Experiment events, subscriptions and cancellation helpers."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from .genome import Population

Callback = Callable[[Population], None]


class Event(str, Enum):
    """Points in the generational loop at which callbacks are published."""

    STARTED = "started"
    DECODED = "decoded"
    EVALUATED = "evaluated"
    ADVANCED = "advanced"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class Subscription:
    """Pairs a callback with the event it listens to."""

    event: Event
    callback: Callback


class CancellationToken:
    """Thread-safe flag polled by the driver between stages."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def publish(
    subscriptions: Iterable[Subscription],
    event: Event,
    population: Population,
) -> None:
    """Call every callback subscribed to ``event`` with its own copy of the population.

    All callbacks run even if one fails; the first failure is re-raised afterwards.
    """
    failures: list[Exception] = []
    for subscription in subscriptions:
        if subscription.event is not event:
            continue
        try:
            subscription.callback(population.copy())
        except Exception as error:
            failures.append(error)
    if failures:
        raise failures[0]


def with_iterations(
    iterations: int,
    token: CancellationToken | None = None,
) -> tuple[CancellationToken, Subscription]:
    """Cancel once ``iterations`` generations have been evaluated."""
    if iterations <= 0:
        msg = "iterations must be positive."
        raise ValueError(msg)
    token = token or CancellationToken()
    completed = 0

    def count(_population: Population) -> None:
        nonlocal completed
        completed += 1
        if completed >= iterations:
            token.cancel()

    return token, Subscription(Event.EVALUATED, count)


def with_solution(
    token: CancellationToken | None = None,
) -> tuple[CancellationToken, Subscription]:
    """Cancel as soon as any evaluated genome is solved."""
    token = token or CancellationToken()

    def check(population: Population) -> None:
        if any(genome.solved for genome in population.genomes):
            token.cancel()

    return token, Subscription(Event.EVALUATED, check)


__all__ = [
    "Callback",
    "CancellationToken",
    "Event",
    "Subscription",
    "publish",
    "with_iterations",
    "with_solution",
]
