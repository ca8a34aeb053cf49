"""
MLPForge Model
===============
A fully-connected feed-forward network stored as an ordered list of
weight matrices.

Layout:
    W[i] has shape (r_i, c_i) where
        c_i = width of layer i's input + 1   (the extra column is the bias)
        r_i = width of layer i's output
    and consecutive layers chain: r_i == c_{i+1} - 1.

    input (n) ──▶ [W0: h1 × (n+1)] ──▶ hidden (h1) ──▶ ... ──▶ [W_last] ──▶ output

Every layer input is extended with a constant 1.0 before the multiply,
so the last column of each matrix acts as an additive offset (bias).
Hidden results go through the `internal` activation, the final result
through the `output` activation.

Usage:
    >>> model = Model.random(42, RELU, SIGMOID, 2, 4, 1)
    >>> model.predict([1.0, 0.0]).shape
    (1,)
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from mlpforge.model.activations import Activation

logger = logging.getLogger(__name__)


def as_vector(values, what: str = "input") -> np.ndarray:
    """
    Convert `values` to a 1-D float64 vector.

    A scalar becomes a vector of length one. Anything with more than one
    dimension is rejected rather than flattened.
    """
    vector = np.atleast_1d(np.asarray(values, dtype=np.float64))
    if vector.ndim != 1:
        raise ValueError(f"{what} must be a 1-D vector, got shape {vector.shape}")
    return vector


class Model:
    """
    Weight matrices plus the two activations of a feed-forward network.

    A Model owns its matrices exclusively. `clone()` gives a fully
    independent copy; the activations are immutable and shared.

    Parameters
    ----------
    weights : sequence of array-like
        One 2-D matrix per layer, chained as described in the module
        docstring. Copied into float64 arrays.
    internal : Activation
        Applied to every hidden layer's pre-activation.
    output : Activation
        Applied to the final layer's pre-activation.
    activate_input : bool
        If True, the raw input is passed through `internal` before the
        first multiply, both in `predict` and during training.
    """

    def __init__(
        self,
        weights: Sequence,
        internal: Activation,
        output: Activation,
        activate_input: bool = False,
    ):
        matrices = [np.array(w, dtype=np.float64) for w in weights]
        if not matrices:
            raise ValueError("A model needs at least one weight matrix")
        for i, w in enumerate(matrices):
            if w.ndim != 2 or w.shape[0] < 1 or w.shape[1] < 2:
                raise ValueError(
                    f"Weight matrix {i} must be 2-D with at least one row and "
                    f"a bias column, got shape {w.shape}"
                )
        for i in range(len(matrices) - 1):
            rows = matrices[i].shape[0]
            cols = matrices[i + 1].shape[1]
            if rows != cols - 1:
                raise ValueError(
                    f"Layer {i} produces {rows} values but layer {i + 1} "
                    f"expects {cols - 1} inputs (+1 bias column)"
                )

        self.weights: list[np.ndarray] = matrices
        self.internal = internal
        self.output = output
        self.activate_input = activate_input

    @classmethod
    def random(
        cls,
        rng,
        internal: Activation,
        output: Activation,
        *layer_sizes: int,
        activate_input: bool = False,
    ) -> Model:
        """
        Build a model with standard-normal random weights.

        Parameters
        ----------
        rng : numpy.random.Generator or int or None
            Random source, or a seed for `numpy.random.default_rng`.
        internal, output : Activation
            Hidden-layer and output-layer activations.
        *layer_sizes : int
            Widths from input to output, e.g. 2, 4, 1. At least two.

        Returns
        -------
        Model
            `len(layer_sizes) - 1` matrices; every entry (bias column
            included) drawn independently from N(0, 1).

        Raises
        ------
        ValueError
            If fewer than two layer sizes are given or a size is not
            positive.
        """
        if len(layer_sizes) < 2:
            raise ValueError(
                "There should be at least 2 layers: input and output, "
                f"got {list(layer_sizes)}"
            )
        if any(size < 1 for size in layer_sizes):
            raise ValueError(f"Layer sizes must be positive, got {list(layer_sizes)}")

        rng = np.random.default_rng(rng)
        weights = []
        for i, inputs in enumerate(layer_sizes[:-1]):
            rows, cols = layer_sizes[i + 1], inputs + 1  # include bias
            weights.append(rng.standard_normal((rows, cols)))
        return cls(weights, internal, output, activate_input=activate_input)

    @property
    def input_size(self) -> int:
        return self.weights[0].shape[1] - 1

    @property
    def output_size(self) -> int:
        return self.weights[-1].shape[0]

    @property
    def layer_sizes(self) -> list[int]:
        """Widths from input to output, the inverse of `Model.random`."""
        return [self.input_size] + [w.shape[0] for w in self.weights]

    def predict(self, start) -> np.ndarray:
        """
        Run the network on one input vector.

        Does not touch the model; two calls with the same input return
        identical outputs.

        Parameters
        ----------
        start : array-like
            Input vector of length `input_size`.

        Returns
        -------
        np.ndarray
            Freshly allocated output vector of length `output_size`.

        Raises
        ------
        ValueError
            If the input is not a 1-D vector or its length does not
            match the first layer.
        """
        start = as_vector(start)
        if start.shape[0] + 1 != self.weights[0].shape[1]:
            raise ValueError(
                f"Incorrect input size: got {start.shape[0]}, "
                f"model expects {self.input_size}"
            )
        if self.activate_input:
            start = self.internal.activate(start)

        values = np.append(start, 1.0)
        for weights in self.weights[:-1]:
            values = np.append(self.internal.activate(np.dot(weights, values)), 1.0)
        return self.output.activate(np.dot(self.weights[-1], values))

    def clone(self) -> Model:
        """Deep copy of the weights; activations are shared."""
        twin = Model.__new__(Model)
        twin.weights = [w.copy() for w in self.weights]
        twin.internal = self.internal
        twin.output = self.output
        twin.activate_input = self.activate_input
        return twin

    def has_nan(self) -> bool:
        """True if any weight is NaN (training has diverged)."""
        return any(np.isnan(w).any() for w in self.weights)

    def __str__(self) -> str:
        lines = ["input"]
        for i, weights in enumerate(self.weights):
            if i > 0:
                lines.append(f"Hidden Layer {i}")
            for row in weights:
                lines.append("".join(f"{value:.3g}\t" for value in row))
        lines.append("output")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"Model(layers={self.layer_sizes}, "
            f"internal={self.internal.name}, output={self.output.name})"
        )
