"""Logging of experiment progress to an append-only text file."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from .events import Event, Subscription
from .genome import Comparison, Population


class EventLogger:
    """Append-only experiment log.

    Every line starts with a UTC ISO timestamp. Messages that belong to a
    generation carry a ``gen=N`` tag after the timestamp so a run can be
    filtered by generation.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self._path.open("a", encoding="utf-8")

    def __enter__(self) -> EventLogger:
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.close()

    def log(self, message: str, *, generation: int | None = None) -> None:
        """Append a timestamped message, tagged with its generation if given."""
        timestamp = datetime.now(timezone.utc).isoformat()
        if generation is not None:
            message = f"gen={generation} {message}"
        self._handle.write(f"{timestamp} {message}\n")
        self._handle.flush()

    def close(self) -> None:
        """Flush pending lines and close the log file."""
        if not self._handle.closed:
            self._handle.close()

    @property
    def path(self) -> Path:
        """Location of the log file."""
        return self._path


def summarize(population: Population, comparison: Comparison = Comparison.FITNESS) -> str:
    """Describe a population in one line."""
    if not population.genomes:
        return f"generation={population.generation} genomes=0"
    best = max(population.genomes, key=comparison.sort_key)
    return (
        f"generation={population.generation} "
        f"genomes={len(population.genomes)} "
        f"species={len(population.species)} "
        f"best={best.id} fitness={best.fitness:.4f} solved={best.solved} "
        f"mean_complexity={population.mean_complexity:.2f}"
    )


class EventReporter:
    """Writes one log line for every published experiment event."""

    def __init__(self, logger: EventLogger, comparison: Comparison = Comparison.FITNESS) -> None:
        self.logger = logger
        self.comparison = comparison

    def subscriptions(self) -> list[Subscription]:
        return [
            Subscription(event, self._reporter(event))
            for event in Event
        ]

    def _reporter(self, event: Event):
        def report(population: Population) -> None:
            self.logger.log(f"[{event.value}] {summarize(population, self.comparison)}")

        return report


__all__ = ["EventLogger", "EventReporter", "summarize"]
