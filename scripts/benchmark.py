#!/usr/bin/env python3
"""
MLPForge — Training Benchmark
===============================
Times sequential training against chunked training over a grid of
worker counts and chunk sizes, on a random 10→5 regression set.

Chunked training refreshes its snapshot every `workers` chunks, so
larger pools and chunks trade freshness of the model for throughput.
This script shows where that trade-off lands on the current machine.

Usage:
    python scripts/benchmark.py
    python scripts/benchmark.py --epochs 20 --workers 2 4 8 --chunks 4 8 16
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import numpy as np

from mlpforge.data.dataset import as_training_set
from mlpforge.evaluation.metrics import Timer, total_error
from mlpforge.model import SIGMOID, TANH, Model
from mlpforge.training.context import TrainingContext

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def random_training_set(rng, n_examples, input_size, output_size):
    return as_training_set(
        (rng.random(input_size), rng.random(output_size))
        for _ in range(n_examples)
    )


def main():
    parser = argparse.ArgumentParser(description="MLPForge Training Benchmark")
    parser.add_argument("--epochs", type=int, default=50)
    parser.add_argument("--examples", type=int, default=50)
    parser.add_argument("--learning-rate", type=float, default=0.1)
    parser.add_argument("--workers", type=int, nargs="+", default=[2, 4, 7])
    parser.add_argument("--chunks", type=int, nargs="+", default=[8, 10, 13])
    parser.add_argument("--seed", type=int, default=5987)
    args = parser.parse_args()

    input_size, output_size = 10, 5
    training_set = random_training_set(
        np.random.default_rng(args.seed), args.examples, input_size, output_size
    )
    base = Model.random(3453, TANH, SIGMOID, input_size, 20, 20, output_size)

    rows = []
    ctx = TrainingContext(base.clone())
    with Timer("sequential", epochs=args.epochs) as t:
        ctx.train(training_set, args.epochs, args.learning_rate)
    rows.append((
        "sequential", "-", "-", t.elapsed, t.per_epoch,
        total_error(ctx.model, training_set),
    ))

    for workers in args.workers:
        for chunk_size in args.chunks:
            ctx = TrainingContext(base.clone())
            label = f"workers={workers} chunk={chunk_size}"
            with Timer(label, epochs=args.epochs) as t:
                ctx.train_chunked(
                    training_set, args.epochs, workers, chunk_size, args.learning_rate
                )
            rows.append((
                "chunked", workers, chunk_size, t.elapsed, t.per_epoch,
                total_error(ctx.model, training_set),
            ))

    print(
        f"\n{'mode':<12}{'workers':>8}{'chunk':>8}{'seconds':>10}"
        f"{'ms/epoch':>10}{'error':>12}"
    )
    for mode, workers, chunk_size, seconds, per_epoch, error in rows:
        print(
            f"{mode:<12}{workers!s:>8}{chunk_size!s:>8}{seconds:>10.3f}"
            f"{per_epoch * 1000:>10.2f}{error:>12.5f}"
        )


if __name__ == "__main__":
    main()
