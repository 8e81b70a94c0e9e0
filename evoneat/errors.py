"""Exception hierarchy shared by the evolution engine."""

from __future__ import annotations

from collections.abc import Sequence


class ConfigError(ValueError):
    """Raised when an option is missing or holds an invalid value."""


class StructuralError(ValueError):
    """Raised when a substrate violates one of its invariants."""


class VariationError(ValueError):
    """Raised when a crosser or mutator cannot operate on its inputs."""


class EvaluationError(RuntimeError):
    """Raised inside user evaluators; carried on results rather than thrown."""


class SearchError(RuntimeError):
    """Raised when a searcher cannot complete a batch of evaluations."""


class CancelledError(RuntimeError):
    """Raised when the driver observes a cancelled token."""


class InvalidActivation(LookupError):
    """Raised for an activation name outside the supported set."""


def error_kind(error: BaseException) -> str:
    """Return the short kind label used in error messages."""
    for kind, label in (
        (ConfigError, "config error"),
        (StructuralError, "structural error"),
        (VariationError, "variation error"),
        (EvaluationError, "evaluation error"),
        (CancelledError, "cancellation"),
        (InvalidActivation, "programming error"),
    ):
        if isinstance(error, kind):
            return label
    return "unexpected error"


class GenomeError(Exception):
    """Failure of a single genome in one stage of a generation."""

    def __init__(self, stage: str, genome_id: int | None, error: BaseException) -> None:
        self.stage = stage
        self.genome_id = genome_id
        self.error = error
        target = "" if genome_id is None else f" for genome {genome_id}"
        super().__init__(f"{error_kind(error)} in stage '{stage}'{target}: {error}")


class GenerationError(RuntimeError):
    """Composite of the per-genome failures collected during a generation."""

    def __init__(self, generation: int, errors: Sequence[GenomeError]) -> None:
        self.generation = generation
        self.errors = tuple(errors)
        lines = "; ".join(str(error) for error in self.errors)
        super().__init__(
            f"generation {generation} had {len(self.errors)} failed genome(s): {lines}"
        )


__all__ = [
    "CancelledError",
    "ConfigError",
    "EvaluationError",
    "GenerationError",
    "GenomeError",
    "InvalidActivation",
    "SearchError",
    "StructuralError",
    "VariationError",
    "error_kind",
]
