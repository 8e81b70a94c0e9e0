"""Searchers that evaluate phenomes with a user-supplied evaluator."""

from __future__ import annotations

import multiprocessing
import os
import queue
import time
from collections.abc import Sequence
from typing import Any, Protocol

from .errors import SearchError
from .genome import MIN_FITNESS, Phenome, Result

_POLL_INTERVAL_S = 0.1


class Evaluator(Protocol):
    def evaluate(self, phenome: Phenome) -> Result: ...


class Searcher(Protocol):
    def search(self, evaluator: Evaluator, phenomes: Sequence[Phenome]) -> list[Result]: ...


def _evaluate_phenome(evaluator: Evaluator, phenome: Phenome) -> Result:
    """Run the evaluator, turning its failure into a result that carries the error."""
    try:
        result = evaluator.evaluate(phenome)
    except Exception as error:
        return Result(
            id=phenome.id,
            fitness=MIN_FITNESS,
            error=f"evaluation error in stage 'evaluate' for genome {phenome.id}: {error!r}",
        )
    if result.id != phenome.id:
        msg = f"Evaluator returned result for genome {result.id} while evaluating {phenome.id}."
        return Result(id=phenome.id, fitness=MIN_FITNESS, error=msg)
    return result


class SerialSearcher:
    """Single-process searcher that evaluates phenomes sequentially."""

    def search(self, evaluator: Evaluator, phenomes: Sequence[Phenome]) -> list[Result]:
        return [_evaluate_phenome(evaluator, phenome) for phenome in phenomes]


def _worker_loop(
    worker_id: int,
    evaluator: Evaluator,
    task_queue: multiprocessing.queues.Queue[Any],
    result_queue: multiprocessing.queues.Queue[Any],
) -> None:
    try:
        while True:
            phenome = task_queue.get()
            if phenome is None:
                break
            result_queue.put(_evaluate_phenome(evaluator, phenome))
    except BaseException:  # pragma: no cover - propagated to parent
        result_queue.put(("__error__", worker_id))
        raise


class ParallelSearcher:
    """Multiprocessing searcher that fans phenomes out to worker processes.

    Results arrive in completion order and are matched back to phenomes by id.
    While waiting, the searcher polls its workers and aborts with
    :class:`SearchError` as soon as one of them dies.
    """

    def __init__(self, *, workers: int | None = None, timeout_s: float | None = None) -> None:
        if workers is not None and workers <= 0:
            msg = "workers must be positive."
            raise ValueError(msg)
        if timeout_s is not None and timeout_s <= 0.0:
            msg = "timeout_s must be positive when provided."
            raise ValueError(msg)
        self.workers = workers or os.cpu_count() or 1
        self.timeout_s = timeout_s

    def search(self, evaluator: Evaluator, phenomes: Sequence[Phenome]) -> list[Result]:
        if not phenomes:
            return []

        ctx = multiprocessing.get_context("spawn")
        task_queue: multiprocessing.queues.Queue[Any] = ctx.Queue()
        result_queue: multiprocessing.queues.Queue[Any] = ctx.Queue()

        processes = [
            ctx.Process(
                target=_worker_loop,
                args=(worker_id, evaluator, task_queue, result_queue),
            )
            for worker_id in range(min(self.workers, len(phenomes)))
        ]
        for proc in processes:
            proc.start()

        success = False
        try:
            for phenome in phenomes:
                task_queue.put(phenome)
            for _ in processes:
                task_queue.put(None)

            results = self._collect(processes, result_queue, len(phenomes))
            success = True
            return [results[phenome.id] for phenome in phenomes]
        finally:
            for proc in processes:
                if not success and proc.is_alive():
                    proc.terminate()
                proc.join()
                if success and proc.exitcode not in (0, None):
                    msg = f"Worker process exited with code {proc.exitcode}"
                    raise SearchError(msg)

    def _collect(
        self,
        processes: Sequence[multiprocessing.process.BaseProcess],
        result_queue: multiprocessing.queues.Queue[Any],
        expected: int,
    ) -> dict[int, Result]:
        deadline = None if self.timeout_s is None else time.monotonic() + self.timeout_s
        results: dict[int, Result] = {}
        while len(results) < expected:
            try:
                item = result_queue.get(timeout=_POLL_INTERVAL_S)
            except queue.Empty as error:
                missing = expected - len(results)
                if deadline is not None and time.monotonic() >= deadline:
                    msg = f"Timed out waiting for {missing} evaluation result(s)."
                    raise SearchError(msg) from error
                for worker_id, proc in enumerate(processes):
                    if proc.exitcode not in (None, 0):
                        msg = (
                            f"Worker {worker_id} died with exit code {proc.exitcode} "
                            f"while {missing} evaluation result(s) were missing."
                        )
                        raise SearchError(msg) from error
                # exited workers have already flushed their results
                if all(proc.exitcode is not None for proc in processes) and result_queue.empty():
                    msg = f"All workers exited while {missing} evaluation result(s) were missing."
                    raise SearchError(msg) from error
                continue
            if isinstance(item, tuple) and item[0] == "__error__":
                msg = f"Worker {item[1]} failed during evaluation."
                raise SearchError(msg)
            results[item.id] = item
        return results


__all__ = ["Evaluator", "ParallelSearcher", "Searcher", "SerialSearcher"]
