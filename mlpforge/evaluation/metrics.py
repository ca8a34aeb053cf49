"""
MLPForge Evaluation Metrics
=============================
How well does a model fit a training set?

1. EXAMPLE LOSS
   The same error back-propagation reports for one example:
       E = (1/|t|) · Σ (t_i − o_i)² / 2

2. TOTAL ERROR
   Sum of the example losses over a set. This is the number the
   sequential trainer passes to its epoch callback, so the two can be
   compared directly.

3. ROUNDED ACCURACY
   Fraction of examples whose prediction, rounded to the nearest
   integer, equals the target exactly. The natural score for truth
   tables and small integer regressions.

Usage:
    >>> from mlpforge.evaluation.metrics import evaluate
    >>> evaluate(model, truth_table("xor"))
    {'total_error': 0.0012, 'rounded_accuracy': 1.0, 'examples': 4}
"""

from __future__ import annotations

import logging
import time
from typing import Sequence

import numpy as np

from mlpforge.data.dataset import TrainingExample
from mlpforge.model.network import Model

logger = logging.getLogger(__name__)


def example_loss(output, target) -> float:
    """Halved mean squared error between one output and its target."""
    output = np.asarray(output, dtype=np.float64)
    target = np.asarray(target, dtype=np.float64)
    diff = target - output
    return float(np.sum(diff * diff / 2)) / target.shape[0]


def total_error(model: Model, training_set: Sequence[TrainingExample]) -> float:
    """Sum of `example_loss` over the set, using `model.predict`."""
    return sum(
        example_loss(model.predict(example.input), example.target)
        for example in training_set
    )


def rounded_accuracy(model: Model, training_set: Sequence[TrainingExample]) -> float:
    """
    Fraction of examples predicted exactly after rounding.

    Returns 0.0 for an empty training set.
    """
    if not training_set:
        return 0.0
    hits = sum(
        bool(np.array_equal(np.round(model.predict(example.input)), example.target))
        for example in training_set
    )
    return hits / len(training_set)


def evaluate(model: Model, training_set: Sequence[TrainingExample]) -> dict:
    """
    Compute all metrics for a model on a training set.

    Returns
    -------
    dict
        total_error, rounded_accuracy and the number of examples.
    """
    results = {
        "total_error": total_error(model, training_set),
        "rounded_accuracy": rounded_accuracy(model, training_set),
        "examples": len(training_set),
    }
    logger.info(
        f"Evaluation: total_error={results['total_error']:.6f}, "
        f"rounded_accuracy={results['rounded_accuracy']:.0%} "
        f"({results['examples']} examples)"
    )
    return results


class Timer:
    """
    Wall-clock timer for one training run.

    Given the number of epochs the run covers, it also reports the
    average time per epoch, which is what the benchmark grid compares.

    Usage:
        >>> with Timer("workers=4 chunk=8", epochs=50) as t:
        ...     ctx.train_chunked(data, 50, 4, 8, 0.1)
        >>> t.per_epoch
    """

    def __init__(self, label: str = "run", epochs: int = 0):
        self.label = label
        self.epochs = epochs
        self.elapsed: float = 0.0
        self._start: float = 0.0

    @property
    def per_epoch(self) -> float:
        """Average seconds per epoch, or 0.0 if no epochs were given."""
        return self.elapsed / self.epochs if self.epochs > 0 else 0.0

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed = time.perf_counter() - self._start
        if self.epochs > 0:
            logger.info(
                f"[{self.label}] {self.elapsed:.3f}s for {self.epochs} epochs "
                f"({self.per_epoch * 1000:.2f} ms/epoch)"
            )
        else:
            logger.info(f"[{self.label}] {self.elapsed:.3f}s")
