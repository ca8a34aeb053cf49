"""
MLPForge Chunked Scheduler
===========================
Approximate parallel SGD: many threads compute weight deltas against a
recent copy of the model while one aggregator folds those deltas into
the single authoritative model.

Pipeline:

    driver ──UpdateStep──▶ steps queue ──▶ worker × N ──deltas──▶ results queue
      ▲                                                              │
      │                                                              ▼
      └──────────── snapshots queue ◀──── clone every N folds ── aggregator
                                                                  │ │ │
                                                      layer updater × L

    driver      Cuts the training set into contiguous chunks and sends one
                UpdateStep (model snapshot + chunk) per chunk. After every
                N steps it waits for the next published snapshot and uses
                it for the steps that follow.
    worker      Runs every example of its chunk through its own
                TrainingContext against the step's snapshot, collecting
                the updates in a zeroed accumulator instead of applying
                them, then sends the accumulator to the aggregator.
    aggregator  Owns the live model. Hands each layer of an accumulator to
                that layer's updater thread and waits until all layers are
                applied before taking the next accumulator. After every N
                accumulators it publishes a clone of the live model.

So the model a worker reads is never more than N chunks behind the live
one, and every snapshot reflects whole accumulators only. Folding is a
plain sum of independent deltas, so the order in which workers finish
does not matter beyond floating-point rounding.

With one worker and chunks of one example each accumulator is folded and
republished before the next step goes out, and the result is bit-for-bit
the same as TrainingContext.train.

All threads talk through queues only. Snapshots are clones that nobody
writes to, so workers can read them concurrently.

Usage:
    >>> scheduler = ChunkedScheduler(workers=4, chunk_size=8, learning_rate=0.1)
    >>> merged = scheduler.run(model, training_set, iterations=100)
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from mlpforge.data.dataset import TrainingExample, chunked
from mlpforge.model.network import Model
from mlpforge.training.context import EpochModelCallback, TrainingContext
from mlpforge.training.workers import WaitGroup, WorkerPool

logger = logging.getLogger(__name__)

# Marks a closed queue.
_CLOSED = object()


@dataclass
class UpdateStep:
    """A unit of work: the snapshot to read and the chunk to learn from."""

    model: Model
    data: Sequence[TrainingExample]


@dataclass
class _Failure:
    error: BaseException


class ChunkedScheduler:
    """
    Drives chunked training of one model.

    Parameters
    ----------
    workers : int
        Number of worker threads, which is also the number of folded
        chunks between two snapshots.
    chunk_size : int
        Examples per chunk (the last chunk of an epoch may be shorter).
    learning_rate : float
        Step size used by every worker.
    """

    def __init__(self, workers: int, chunk_size: int, learning_rate: float):
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
        self.workers = workers
        self.chunk_size = chunk_size
        self.learning_rate = learning_rate

    def run(
        self,
        model: Model,
        training_set: Sequence[TrainingExample],
        iterations: int,
        on_epoch: Optional[EpochModelCallback] = None,
    ) -> Model:
        """
        Train for `iterations` epochs and return the merged model.

        `model` itself is only read. The returned model is a new object.

        Parameters
        ----------
        model : Model
            Starting point.
        training_set : sequence of TrainingExample
            Cut into contiguous chunks in this order.
        iterations : int
            Number of epochs.
        on_epoch : callable or None
            Called as on_epoch(epoch, snapshot) after each epoch with the
            snapshot the driver is currently handing out.

        Raises
        ------
        Exception
            Whatever a worker raised while training on a chunk (for
            example a ValueError for a mis-sized example).
        """
        if on_epoch is None:
            on_epoch = lambda epoch, current: None

        chunks = chunked(training_set, self.chunk_size)
        steps: queue.Queue = queue.Queue(maxsize=self.workers)
        results: queue.Queue = queue.Queue()
        snapshots: queue.Queue = queue.Queue()

        logger.debug(
            f"Chunked training: {iterations} epochs, {len(chunks)} chunks/epoch, "
            f"{self.workers} workers"
        )

        pool = WorkerPool(name="chunk-worker")
        pool.start(self.workers)
        for _ in range(self.workers):
            pool.go(lambda: self._work(steps, results))

        aggregator = threading.Thread(
            target=self._aggregate,
            args=(model.clone(), results, snapshots),
            name="chunk-aggregator",
            daemon=True,
        )
        aggregator.start()

        current = model
        final: Optional[Model] = None
        failure: Optional[BaseException] = None
        try:
            step_counter = 0
            for epoch in range(iterations):
                for chunk in chunks:
                    steps.put(UpdateStep(current, chunk))
                    step_counter += 1
                    if step_counter >= self.workers:
                        current = self._receive(snapshots)
                        step_counter = 0
                on_epoch(epoch, current)
        finally:
            for _ in range(self.workers):
                steps.put(_CLOSED)
            pool.stop()
            pool.wait()
            results.put(_CLOSED)
            # Only the last model matters; earlier snapshots are dropped.
            while (item := snapshots.get()) is not _CLOSED:
                if isinstance(item, _Failure):
                    failure = failure or item.error
                else:
                    final = item
            aggregator.join()
            logger.debug("Chunked training pipeline shut down")

        if failure is not None:
            raise failure
        return final

    @staticmethod
    def _receive(snapshots: queue.Queue) -> Model:
        item = snapshots.get()
        if item is _CLOSED:
            raise RuntimeError("Aggregator stopped before publishing a snapshot")
        if isinstance(item, _Failure):
            # Put it back so shutdown still sees the failure and the close marker.
            snapshots.put(item)
            raise item.error
        return item

    def _work(self, steps: queue.Queue, results: queue.Queue) -> None:
        local: Optional[TrainingContext] = None
        failed = False
        while (step := steps.get()) is not _CLOSED:
            if failed:
                continue  # keep draining so the driver never blocks
            try:
                changes = [np.zeros_like(w) for w in step.model.weights]
                if local is None:
                    local = TrainingContext(step.model)
                local.model = step.model
                for example in step.data:
                    local.feed_forward(example[0])
                    local.back_propagate(example[1], self.learning_rate, changes)
            except Exception as e:
                logger.error(f"Worker {threading.current_thread().name} failed: {e}")
                failed = True
                results.put(_Failure(e))
                continue
            results.put(changes)

    def _aggregate(
        self,
        model: Model,
        results: queue.Queue,
        snapshots: queue.Queue,
    ) -> None:
        applied = WaitGroup()
        updaters = []
        layer_queues = []
        layer_errors: list[BaseException] = []
        for i, weights in enumerate(model.weights):
            layer_queue: queue.Queue = queue.Queue()
            thread = threading.Thread(
                target=_update_layer,
                args=(weights, layer_queue, applied, layer_errors),
                name=f"layer-updater-{i}",
                daemon=True,
            )
            thread.start()
            updaters.append(thread)
            layer_queues.append(layer_queue)

        failed = False
        change_counter = 0
        while (change := results.get()) is not _CLOSED:
            if isinstance(change, _Failure):
                if not failed:
                    snapshots.put(change)
                failed = True
            if failed:
                continue

            applied.add(len(change))
            for layer_queue, increment in zip(layer_queues, change):
                layer_queue.put(increment)
            applied.wait()
            if layer_errors:
                snapshots.put(_Failure(layer_errors[0]))
                failed = True
                continue

            change_counter += 1
            if change_counter >= self.workers:
                snapshots.put(model.clone())
                change_counter = 0

        for layer_queue in layer_queues:
            layer_queue.put(_CLOSED)
        for thread in updaters:
            thread.join()
        if not failed:
            snapshots.put(model)
        snapshots.put(_CLOSED)


def _update_layer(
    weights: np.ndarray,
    updates: queue.Queue,
    applied: WaitGroup,
    errors: list,
) -> None:
    """
    Sole writer of one live layer: add each increment in place.

    A failed increment is recorded in `errors` and still counted as
    applied, so the aggregator's barrier always opens.
    """
    while (update := updates.get()) is not _CLOSED:
        try:
            weights += update
        except Exception as e:
            logger.error(f"{threading.current_thread().name} failed: {e}")
            errors.append(e)
        finally:
            applied.done()
