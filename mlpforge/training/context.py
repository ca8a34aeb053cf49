"""
MLPForge Training Context
==========================
The workspace that trains a Model: a forward pass that remembers every
intermediate value, and back-propagation that turns those values into
weight updates.

Scratch buffers (one entry per layer, input layer included):
    pre_normalized[l]   raw weighted sums fed into the activation
    generated_nodes[l]  activated values; for every non-output layer the
                        last slot is a constant 1.0 feeding the bias column

Both are allocated on the first forward pass and reused afterwards, so a
context must never be shared between threads. The chunked trainer gives
every worker its own context.

Update rule (plain gradient descent on mean squared error):

    E            = (1/|t|) · Σ (t_i − o_i)² / 2
    δ_out[i]     = (o_i − t_i) · output'(pre_out[i])
    δ_l[n]       = (Σ_m W_l[m][n] · δ_{l+1}[m]) · internal'(pre_l[n])
    W_l[r][c]   -= lr · node_l[c] · δ_{l+1}[r]

The subtraction can target a separate set of matrices instead of the
live weights. Starting from zeros, that set accumulates the weight deltas
of many examples without changing the model, which is what chunked
training does.

Usage:
    >>> ctx = TrainingContext(Model.random(7, SIGMOID, linear(1), 1, 3, 3, 1))
    >>> ctx.train(truth_table("doubling"), 30000, 0.1)
    >>> ctx.predict([4.0])
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

import numpy as np

from mlpforge.data.dataset import TrainingExample
from mlpforge.model.network import Model, as_vector

logger = logging.getLogger(__name__)

EpochLossCallback = Callable[[int, float], None]
EpochModelCallback = Callable[[int, Model], None]


class TrainingContext:
    """
    Training workspace around a (shared, not copied) Model.

    Parameters
    ----------
    model : Model
        The model to train. Sequential training mutates it in place;
        chunked training replaces it with the merged result.
    """

    def __init__(self, model: Model):
        self.model = model
        self.generated_nodes: list[np.ndarray] = []
        self.pre_normalized: list[np.ndarray] = []
        self._shapes: tuple = ()

    @property
    def weights(self) -> list[np.ndarray]:
        return self.model.weights

    def predict(self, input) -> np.ndarray:
        return self.model.predict(input)

    def _ensure_buffers(self) -> None:
        weights = self.model.weights
        shapes = tuple(w.shape for w in weights)
        if len(self.generated_nodes) == len(weights) + 1 and shapes == self._shapes:
            return

        self.generated_nodes = []
        self.pre_normalized = []
        for w in weights:
            cols = w.shape[1]
            nodes = np.zeros(cols)
            nodes[cols - 1] = 1.0
            self.generated_nodes.append(nodes)
            self.pre_normalized.append(np.zeros(cols - 1))
        rows = weights[-1].shape[0]
        self.generated_nodes.append(np.zeros(rows))
        self.pre_normalized.append(np.zeros(rows))
        self._shapes = shapes

    def feed_forward(self, input) -> None:
        """
        Forward pass, keeping every layer's values in the scratch buffers.

        Raises
        ------
        ValueError
            If the input is not 1-D, or len(input) + 1 differs from the
            first layer's column count.
        """
        self._ensure_buffers()
        model = self.model
        gen, pre = self.generated_nodes, self.pre_normalized

        input = as_vector(input)
        if input.shape[0] + 1 != gen[0].shape[0]:
            raise ValueError(
                f"Incorrect input size: got {input.shape[0]}, "
                f"model expects {gen[0].shape[0] - 1}"
            )
        pre[0][:] = input
        gen[0][:-1] = model.internal.activate(input) if model.activate_input else input

        last = len(gen) - 1
        for layer in range(1, last):
            np.dot(model.weights[layer - 1], gen[layer - 1], out=pre[layer])
            gen[layer][:-1] = model.internal.activate(pre[layer])

        np.dot(model.weights[-1], gen[last - 1], out=pre[last])
        gen[last][:] = model.output.activate(pre[last])

    def back_propagate(
        self,
        target,
        learning_rate: float,
        changes: Optional[Sequence[np.ndarray]] = None,
    ) -> float:
        """
        Back-propagate the error of the last forward pass.

        Parameters
        ----------
        target : array-like
            Expected output for the input of the last `feed_forward`.
        learning_rate : float
            Step size.
        changes : sequence of np.ndarray or None
            Matrices the update is subtracted from, shaped like the
            weights. Defaults to the model's own weights.

        Returns
        -------
        float
            Mean squared error of the example (halved).
        """
        weights = self.model.weights
        if changes is None:
            changes = weights
        elif len(changes) != len(weights) or any(
            c.shape != w.shape for c, w in zip(changes, weights)
        ):
            raise ValueError("changes must have the same shapes as the model weights")

        gen, pre = self.generated_nodes, self.pre_normalized
        output = gen[-1]
        target = as_vector(target, "target")
        if target.shape != output.shape:
            raise ValueError(
                f"Incorrect target size: got {target.shape[0]}, "
                f"model produces {output.shape[0]}"
            )

        diff = target - output
        error = float(np.sum(diff * diff / 2)) / target.shape[0]

        deltas: list[Optional[np.ndarray]] = [None] * len(gen)
        deltas[-1] = (output - target) * self.model.output.derivative(pre[-1])
        for layer in range(len(deltas) - 2, 0, -1):
            # bias column has no upstream node
            downstream = np.dot(weights[layer][:, :-1].T, deltas[layer + 1])
            deltas[layer] = downstream * self.model.internal.derivative(pre[layer])

        for layer, dest in enumerate(changes):
            dest -= np.outer(deltas[layer + 1], learning_rate * gen[layer])
        return error

    def train(
        self,
        training_set: Sequence[TrainingExample],
        iterations: int,
        learning_rate: float,
        on_epoch: Optional[EpochLossCallback] = None,
    ) -> None:
        """
        Online gradient descent: update the model after every example.

        Parameters
        ----------
        training_set : sequence of TrainingExample
            Walked in order, every epoch.
        iterations : int
            Number of epochs.
        learning_rate : float
            Step size.
        on_epoch : callable or None
            Called as on_epoch(epoch, total_error) after each epoch, with
            the sum of the per-example errors.
        """
        if on_epoch is None:
            on_epoch = lambda epoch, total_error: None

        for epoch in range(iterations):
            total_error = 0.0
            for example in training_set:
                self.feed_forward(example[0])
                total_error += self.back_propagate(example[1], learning_rate)
            on_epoch(epoch, total_error)

    def train_chunked(
        self,
        training_set: Sequence[TrainingExample],
        iterations: int,
        workers: int,
        chunk_size: int,
        learning_rate: float,
        on_epoch: Optional[EpochModelCallback] = None,
    ) -> None:
        """
        Train with a pool of worker threads; see ChunkedScheduler.

        When this returns, `self.model` is the merged model. The model
        that was passed in is left untouched.
        """
        from mlpforge.training.scheduler import ChunkedScheduler

        scheduler = ChunkedScheduler(workers, chunk_size, learning_rate)
        self.model = scheduler.run(self.model, training_set, iterations, on_epoch)

    def __repr__(self) -> str:
        return f"TrainingContext({self.model!r})"
