"""
MLPForge Training Data
=======================
Training examples are (input, target) vector pairs. A training set is
just an ordered list of them: the sequential trainer walks it in order,
and the chunked trainer cuts it into contiguous chunks in that same
order.

Sources:
    - `as_training_set`: any iterable of (input, target) pairs
    - `truth_table`: built-in AND / OR / XOR tables and a small
      regression set ("doubling": 3→6, 4→8, 5→10, 6→12)
    - `load_training_set`: a YAML file shaped like

        examples:
          - input: [0, 1]
            target: [1]
          - ...

Usage:
    >>> data = truth_table("xor")
    >>> data[1]
    TrainingExample(input=array([1., 0.]), target=array([1.]))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, NamedTuple, Sequence

import numpy as np
import yaml

from mlpforge.model.network import as_vector

logger = logging.getLogger(__name__)


class TrainingExample(NamedTuple):
    """One input vector and the output the network should produce for it."""

    input: np.ndarray
    target: np.ndarray


def as_training_set(pairs: Iterable) -> list[TrainingExample]:
    """
    Convert (input, target) pairs into a list of TrainingExample.

    Raises
    ------
    ValueError
        If an input or target is not a 1-D vector, or the examples
        disagree on input or target width.
    """
    examples = [
        TrainingExample(as_vector(inp), as_vector(tgt, "target"))
        for inp, tgt in pairs
    ]
    if examples:
        in_width = examples[0].input.shape[0]
        out_width = examples[0].target.shape[0]
        for i, ex in enumerate(examples):
            if ex.input.shape[0] != in_width or ex.target.shape[0] != out_width:
                raise ValueError(
                    f"Example {i} has shape {ex.input.shape[0]}→{ex.target.shape[0]}, "
                    f"expected {in_width}→{out_width} like the first example"
                )
    return examples


def chunked(
    training_set: Sequence[TrainingExample], chunk_size: int
) -> list[Sequence[TrainingExample]]:
    """
    Cut a training set into contiguous chunks, keeping the order.

    The last chunk is shorter when the set does not divide evenly.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    return [
        training_set[start:start + chunk_size]
        for start in range(0, len(training_set), chunk_size)
    ]


_TRUTH_TABLES = {
    "and": [([0, 0], [0]), ([1, 0], [0]), ([0, 1], [0]), ([1, 1], [1])],
    "or": [([0, 0], [0]), ([1, 0], [1]), ([0, 1], [1]), ([1, 1], [1])],
    "xor": [([0, 0], [0]), ([1, 0], [1]), ([0, 1], [1]), ([1, 1], [0])],
    "doubling": [([3], [6]), ([4], [8]), ([5], [10]), ([6], [12])],
}

BUILTIN_DATASETS = tuple(_TRUTH_TABLES)


def truth_table(name: str) -> list[TrainingExample]:
    """Return one of the built-in datasets: and, or, xor, doubling."""
    key = name.lower()
    if key not in _TRUTH_TABLES:
        raise ValueError(
            f"Unknown dataset: '{name}'. Choose from: {', '.join(BUILTIN_DATASETS)}"
        )
    return as_training_set(_TRUTH_TABLES[key])


def load_training_set(path: str | Path) -> list[TrainingExample]:
    """
    Load a training set from a YAML file.

    Parameters
    ----------
    path : str or Path
        File with a top-level `examples` list of {input, target} maps.

    Returns
    -------
    list[TrainingExample]

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the file is empty, has no examples, or an entry is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Training data not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict) or not raw.get("examples"):
        raise ValueError(f"No training examples in {path}")

    pairs = []
    for i, entry in enumerate(raw["examples"]):
        if not isinstance(entry, dict) or "input" not in entry or "target" not in entry:
            raise ValueError(
                f"Example {i} in {path} must have 'input' and 'target' keys"
            )
        pairs.append((entry["input"], entry["target"]))

    examples = as_training_set(pairs)
    logger.info(f"Loaded {len(examples)} training examples from {path}")
    return examples
