"""
mlpforge.training — Training Engine
====================================
Two ways to train a model, sharing one numerical core:

    Sequential (TrainingContext.train)
        For every example, in order: forward pass, back-propagation,
        update the weights in place. Deterministic.

    Chunked (TrainingContext.train_chunked / ChunkedScheduler)
        The training set is cut into chunks. A pool of worker threads
        computes weight deltas for each chunk against a recent snapshot
        of the model; one aggregator adds them to the live model and
        republishes a snapshot after every `workers` chunks.

Components:
    - context.py   — TrainingContext: scratch buffers, forward pass,
                     back-propagation, sequential training
    - scheduler.py — ChunkedScheduler: driver, workers, aggregator
    - workers.py   — WaitGroup and WorkerPool threading primitives
    - trainer.py   — Trainer: config-driven runs, logging, NaN detection

Information Flow (chunked):
    training set → chunks → workers (deltas) → aggregator (live model)
                                  ▲                      │
                                  └──── snapshots ◀──────┘
"""

from mlpforge.training.context import TrainingContext
from mlpforge.training.scheduler import ChunkedScheduler, UpdateStep
from mlpforge.training.workers import WaitGroup, WorkerPool
from mlpforge.training.trainer import Trainer
