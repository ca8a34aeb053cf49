"""
MLPForge Activation Functions
===============================
Elementwise non-linearities applied to every node of a layer, together
with their derivatives for back-propagation.

Each activation is an immutable value of a known kind:

    linear(k)        k * x                 (identity when k = 1)
    sigmoid          1 / (1 + e^-x)
    tanh             tanh(x)
    relu             max(0, x)
    signlog          sign(x) * ln(1 + |x|)
    scaled(g, k)     g(k * x)              (squeezes g along x)
    stretched(g, k)  k * g(x)              (stretches g along y)

Derivatives are always evaluated at the PRE-activation value, i.e. the
raw weighted sum that was fed into `activate`, never at its output.

Every activation has a canonical text name, and `parse_activation`
rebuilds the exact same activation from it. That is how activations are
stored in YAML configs:

    >>> act = scaled(SIGMOID, 2.0)
    >>> act.name
    'scaled(sigmoid,2.0)'
    >>> parse_activation(act.name) == act
    True

Activations hold no state, so one instance can be shared freely between
models, clones and worker threads.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


class Kind(str, Enum):
    """The known activation kinds. Values double as canonical names."""

    LINEAR = "linear"
    SIGMOID = "sigmoid"
    TANH = "tanh"
    RELU = "relu"
    SIGNED_LOG = "signlog"
    SCALED = "scaled"
    STRETCHED = "stretched"


_SIMPLE_KINDS = (Kind.SIGMOID, Kind.TANH, Kind.RELU, Kind.SIGNED_LOG)
_WRAPPER_KINDS = (Kind.SCALED, Kind.STRETCHED)


def _sigmoid(x):
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-x))


@dataclass(frozen=True)
class Activation:
    """
    An activation function and its derivative.

    Parameters
    ----------
    kind : Kind
        Which function this is.
    factor : float
        Slope for `linear`, scale factor for `scaled` and `stretched`.
        Ignored by the other kinds.
    inner : Activation or None
        The wrapped activation for `scaled` and `stretched`.
    """

    kind: Kind
    factor: float = 1.0
    inner: Optional[Activation] = None

    def __post_init__(self):
        if self.kind in _WRAPPER_KINDS and self.inner is None:
            raise ValueError(f"{self.kind.value} activation needs an inner activation")
        if self.kind not in _WRAPPER_KINDS and self.inner is not None:
            raise ValueError(f"{self.kind.value} activation cannot wrap another one")

    def activate(self, x):
        """Apply the function to a scalar or elementwise to an array."""
        kind = self.kind
        if kind is Kind.LINEAR:
            return self.factor * x
        if kind is Kind.SIGMOID:
            return _sigmoid(x)
        if kind is Kind.TANH:
            return np.tanh(x)
        if kind is Kind.RELU:
            return np.maximum(0.0, x)
        if kind is Kind.SIGNED_LOG:
            return np.sign(x) * np.log1p(np.abs(x))
        if kind is Kind.SCALED:
            return self.inner.activate(self.factor * x)
        return self.factor * self.inner.activate(x)

    def derivative(self, x):
        """Derivative at the pre-activation value `x`."""
        kind = self.kind
        if kind is Kind.LINEAR:
            return self.factor * np.ones_like(x, dtype=np.float64)
        if kind is Kind.SIGMOID:
            s = _sigmoid(x)
            return s * (1.0 - s)
        if kind is Kind.TANH:
            t = np.tanh(x)
            return 1.0 - t * t
        if kind is Kind.RELU:
            return np.where(np.asarray(x) > 0, 1.0, 0.0)
        if kind is Kind.SIGNED_LOG:
            return 1.0 / (1.0 + np.abs(x))
        if kind is Kind.SCALED:
            return self.factor * self.inner.derivative(self.factor * x)
        return self.factor * self.inner.derivative(x)

    @property
    def name(self) -> str:
        """Canonical name, accepted back by `parse_activation`."""
        if self.kind is Kind.LINEAR:
            return f"linear({float(self.factor)!r})"
        if self.kind in _WRAPPER_KINDS:
            return f"{self.kind.value}({self.inner.name},{float(self.factor)!r})"
        return self.kind.value

    def __str__(self) -> str:
        return self.name


SIGMOID = Activation(Kind.SIGMOID)
TANH = Activation(Kind.TANH)
RELU = Activation(Kind.RELU)
SIGNED_LOG = Activation(Kind.SIGNED_LOG)


def linear(slope: float = 1.0) -> Activation:
    """Straight line through the origin with the given slope."""
    return Activation(Kind.LINEAR, factor=float(slope))


def scaled(general: Activation, factor: float) -> Activation:
    """Evaluate `general` at `factor * x`."""
    return Activation(Kind.SCALED, factor=float(factor), inner=general)


def stretched(general: Activation, factor: float) -> Activation:
    """Multiply the output of `general` by `factor`."""
    return Activation(Kind.STRETCHED, factor=float(factor), inner=general)


def _parse_factor(text: str, name: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise ValueError(
            f"Invalid factor '{text}' in activation name '{name}'"
        ) from None


def parse_activation(name: str) -> Activation:
    """
    Rebuild an activation from its canonical name.

    Parameters
    ----------
    name : str
        A name such as "relu", "linear(1.0)" or
        "scaled(stretched(tanh,2.0),0.5)". Surrounding whitespace is
        ignored.

    Returns
    -------
    Activation

    Raises
    ------
    ValueError
        If the name is unknown or malformed.
    """
    text = name.strip()
    if "(" not in text:
        for kind in _SIMPLE_KINDS:
            if text == kind.value:
                return Activation(kind)
        if text == Kind.LINEAR.value:
            return linear(1.0)
        raise ValueError(
            f"Unknown activation: '{name}'. Choose from: linear(k), sigmoid, "
            f"tanh, relu, signlog, scaled(g,k), stretched(g,k)"
        )

    head, _, rest = text.partition("(")
    if not rest.endswith(")"):
        raise ValueError(f"Malformed activation name: '{name}'")
    args = rest[:-1]
    head = head.strip()

    if head == Kind.LINEAR.value:
        return linear(_parse_factor(args, name))
    if head in (Kind.SCALED.value, Kind.STRETCHED.value):
        # The factor is always the last argument and never contains a comma.
        inner_name, sep, factor = args.rpartition(",")
        if not sep:
            raise ValueError(f"Malformed activation name: '{name}'")
        inner = parse_activation(inner_name)
        return Activation(Kind(head), factor=_parse_factor(factor, name), inner=inner)
    raise ValueError(f"Unknown activation: '{name}'")
