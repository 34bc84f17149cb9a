"""
Scoped process pools for fanning out independent kernel evaluations.

A pool is acquired for one Gram matrix computation and released on every
exit path. Tasks are module-level functions applied to picklable task
descriptors, and results are returned in task order regardless of which
worker finishes first.
"""

import logging
import os
import warnings
from concurrent import futures
from concurrent.futures.process import BrokenProcessPool
from typing import Any, Callable, List, Optional, Sequence

import numpy as np
from tqdm import tqdm

from .config import PARALLEL
from .exceptions import ComputationError, ParameterError, PersistenceKernelError, ResourceError
from .validation import check_param

logger = logging.getLogger(__name__)


def available_cores() -> int:
    """Number of CPUs this process may run on."""
    try:
        return len(os.sched_getaffinity(0))
    except (AttributeError, OSError):
        pass
    return os.cpu_count() or 1


def default_num_workers() -> int:
    """One less than the available cores, or the value of the environment override."""
    env = os.environ.get(PARALLEL.NUM_WORKERS_ENV)
    if env:
        try:
            value = float(env)
        except ValueError:
            raise ParameterError(
                f"{PARALLEL.NUM_WORKERS_ENV} must be a whole number, got {env!r}.",
                PARALLEL.NUM_WORKERS_ENV, env
            ) from None
        return check_param(PARALLEL.NUM_WORKERS_ENV, value, whole_number=True, at_least_one=True)
    return max(1, available_cores() - 1)


def check_num_workers(num_workers: Optional[int]) -> int:
    """Validate a worker count, clamping it to the available cores.

    Over-subscription is not an error: the count is lowered and a warning
    is issued.
    """
    if num_workers is None:
        num_workers = default_num_workers()
    num_workers = check_param("num_workers", num_workers, whole_number=True, at_least_one=True)

    cores = available_cores()
    if num_workers > cores:
        warnings.warn("num_workers is greater than the number of available cores - "
                      "setting to maximum value.")
        logger.warning("Clamping num_workers from %d to %d", num_workers, cores)
        num_workers = cores
    return num_workers


def split_evenly(n_items: int, n_chunks: int) -> List[np.ndarray]:
    """Split ``range(n_items)`` into at most ``n_chunks`` contiguous index blocks."""
    if n_items == 0:
        return []
    n_chunks = max(1, min(n_items, n_chunks))
    return [block for block in np.array_split(np.arange(n_items), n_chunks) if len(block)]


class WorkerPool:
    """
    Context manager around a bounded process pool.

    The pool is started on the first ``map`` call with at most one worker
    per task. With a single worker or a single task, tasks run in the
    calling process and no pool is started.
    """

    def __init__(self, num_workers: int):
        self.num_workers = num_workers
        self._executor = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=exc_type is not None)
            self._executor = None
            logger.debug("Released process pool")
        return False

    def _start(self, n_tasks: int):
        workers = min(self.num_workers, n_tasks)
        if self._executor is not None or workers <= 1:
            return
        try:
            self._executor = futures.ProcessPoolExecutor(max_workers=workers)
        except (OSError, ValueError, NotImplementedError) as e:
            raise ResourceError(f"Could not start worker pool: {e}",
                                {"num_workers": workers}) from e
        logger.debug("Started process pool with %d workers", workers)

    def map(self, fn: Callable[[Any], Any], tasks: Sequence[Any],
            show_progress: bool = False, desc: Optional[str] = None) -> List[Any]:
        """
        Apply ``fn`` to every task and return the results in task order.

        The first failing task cancels all outstanding tasks and its error is
        re-raised; errors that are not already package errors are wrapped in
        ComputationError.
        """
        self._start(len(tasks))
        results: List[Any] = [None] * len(tasks)
        bar = tqdm(total=len(tasks), desc=desc, disable=not show_progress)
        try:
            if self._executor is None:
                for idx, task in enumerate(tasks):
                    results[idx] = fn(task)
                    bar.update(1)
                return results

            future_to_idx = {}
            try:
                for idx, task in enumerate(tasks):
                    future_to_idx[self._executor.submit(fn, task)] = idx
                for future in futures.as_completed(future_to_idx):
                    results[future_to_idx[future]] = future.result()
                    bar.update(1)
            except BaseException:
                for future in future_to_idx:
                    future.cancel()
                raise
            return results
        except PersistenceKernelError:
            raise
        except BrokenProcessPool as e:
            raise ResourceError(f"Worker pool terminated abruptly: {e}",
                                {"num_workers": self.num_workers}) from e
        except Exception as e:
            raise ComputationError(f"Worker task failed: {e}") from e
        finally:
            bar.close()
