"""
MLPForge Configuration System
===============================
Centralized configuration for a training run using Python dataclasses.
Network shape, activations, training schedule and data source all live
here.

Usage:
    # Load from YAML file:
    >>> config = MLPForgeConfig.from_yaml("configs/default.yaml")

    # Create programmatically:
    >>> config = MLPForgeConfig(
    ...     model=ModelConfig(layer_sizes=[2, 4, 1]),
    ...     training=TrainingConfig(mode="chunked", workers=4),
    ... )

    # Save to YAML:
    >>> config.to_yaml("configs/my_experiment.yaml")

    # Access nested values:
    >>> config.model.layer_sizes         # [2, 4, 1]
    >>> config.training.learning_rate    # 0.6
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Literal, Optional

import yaml

from mlpforge.data.dataset import (
    BUILTIN_DATASETS,
    TrainingExample,
    load_training_set,
    truth_table,
)
from mlpforge.model.activations import parse_activation
from mlpforge.model.network import Model

logger = logging.getLogger(__name__)


# =============================================================================
# Model Configuration
# =============================================================================

@dataclass
class ModelConfig:
    """
    Shape and activations of the network.

    Parameters
    ----------
    layer_sizes : list[int]
        Widths from input to output, e.g. [2, 4, 1] is two inputs, one
        hidden layer of four nodes and one output. At least two entries.

    internal_activation : str
        Canonical name of the hidden-layer activation, e.g. "relu",
        "tanh" or "scaled(sigmoid,2.0)".

    output_activation : str
        Canonical name of the output activation. Use "linear(1.0)" for
        regression and "sigmoid" for 0/1 targets.

    activate_input : bool
        Pass the raw input through the hidden activation before the
        first layer. Applied consistently in training and prediction.

    seed : int
        Seed for the random initial weights.
    """
    layer_sizes: list[int] = field(default_factory=lambda: [2, 4, 1])
    internal_activation: str = "relu"
    output_activation: str = "sigmoid"
    activate_input: bool = False
    seed: int = 42

    def validate(self) -> None:
        """
        Check that the network shape and activation names are valid.

        Raises
        ------
        ValueError
            If any parameter is invalid.
        """
        if len(self.layer_sizes) < 2:
            raise ValueError(
                f"layer_sizes needs at least an input and an output size, "
                f"got {self.layer_sizes}"
            )
        if any(size < 1 for size in self.layer_sizes):
            raise ValueError(
                f"All layer sizes must be positive, got {self.layer_sizes}"
            )
        parse_activation(self.internal_activation)
        parse_activation(self.output_activation)

    def build(self) -> Model:
        """Create a freshly initialized model from this configuration."""
        return Model.random(
            self.seed,
            parse_activation(self.internal_activation),
            parse_activation(self.output_activation),
            *self.layer_sizes,
            activate_input=self.activate_input,
        )


# =============================================================================
# Training Configuration
# =============================================================================

@dataclass
class TrainingConfig:
    """
    How the model is trained.

    Parameters
    ----------
    learning_rate : float
        Gradient-descent step size. Too high and the weights blow up to
        NaN, too low and convergence takes forever.

    epochs : int
        Full passes over the training set.

    mode : str
        "sequential": update the model after every example, in order.
        "chunked": spread chunks over a worker pool (see ChunkedScheduler).

    workers : int
        Worker threads in chunked mode. Also the number of chunks folded
        into the model between two snapshot refreshes.

    chunk_size : int
        Examples per chunk in chunked mode.

    log_every : int
        Log progress every N epochs. 0 disables progress logging.

    check_nan : bool
        Scan the weights for NaN after each epoch and warn once if the
        training diverged. Training keeps going either way.
    """
    learning_rate: float = 0.6
    epochs: int = 3000
    mode: Literal["sequential", "chunked"] = "sequential"
    workers: int = 4
    chunk_size: int = 8
    log_every: int = 1000
    check_nan: bool = True

    def validate(self) -> None:
        """Validate training parameters."""
        if self.learning_rate <= 0:
            raise ValueError(
                f"learning_rate must be positive, got {self.learning_rate}"
            )
        if self.epochs < 0:
            raise ValueError(f"epochs must be >= 0, got {self.epochs}")
        if self.mode not in ("sequential", "chunked"):
            raise ValueError(
                f"Unknown mode: '{self.mode}'. Choose from: sequential, chunked"
            )
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if self.log_every < 0:
            raise ValueError(f"log_every must be >= 0, got {self.log_every}")


# =============================================================================
# Data Configuration
# =============================================================================

@dataclass
class DataConfig:
    """
    Where the training examples come from.

    Parameters
    ----------
    dataset : str
        Built-in dataset name: "and", "or", "xor" or "doubling".
        Ignored when `path` is set.

    path : str or None
        YAML file with an `examples` list (see mlpforge.data.dataset).
    """
    dataset: str = "and"
    path: Optional[str] = None

    def validate(self) -> None:
        """Validate data parameters."""
        if self.path is None and self.dataset.lower() not in BUILTIN_DATASETS:
            raise ValueError(
                f"Unknown dataset: '{self.dataset}'. "
                f"Choose from: {', '.join(BUILTIN_DATASETS)}"
            )

    def load(self) -> list[TrainingExample]:
        """Return the configured training set."""
        if self.path is not None:
            return load_training_set(self.path)
        return truth_table(self.dataset)


# =============================================================================
# Master Configuration
# =============================================================================

@dataclass
class MLPForgeConfig:
    """
    Master configuration combining all sub-configurations.

    Usage:
        # From YAML file:
        >>> config = MLPForgeConfig.from_yaml("configs/default.yaml")

        # Programmatic:
        >>> config = MLPForgeConfig()
        >>> config.validate()

        # Save:
        >>> config.to_yaml("configs/my_experiment.yaml")
    """
    model: ModelConfig = field(default_factory=ModelConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)
    data: DataConfig = field(default_factory=DataConfig)

    def validate(self) -> None:
        """
        Validate all sub-configurations and cross-config consistency.

        Raises
        ------
        ValueError
            If any parameter is invalid or configs are inconsistent.
        """
        self.model.validate()
        self.training.validate()
        self.data.validate()

        # Built-in datasets have known widths; files are checked on load.
        if self.data.path is None:
            example = truth_table(self.data.dataset)[0]
            widths = (example.input.shape[0], example.target.shape[0])
            expected = (self.model.layer_sizes[0], self.model.layer_sizes[-1])
            if widths != expected:
                raise ValueError(
                    f"Dataset '{self.data.dataset}' maps {widths[0]} inputs to "
                    f"{widths[1]} outputs, but layer_sizes is "
                    f"{self.model.layer_sizes}"
                )

        logger.info(
            f"Config validated: layers={self.model.layer_sizes}, "
            f"mode={self.training.mode}, epochs={self.training.epochs}"
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> MLPForgeConfig:
        """
        Load configuration from a YAML file.

        Parameters
        ----------
        path : str or Path
            Path to the YAML configuration file.

        Returns
        -------
        MLPForgeConfig
            Loaded and validated configuration.

        Raises
        ------
        FileNotFoundError
            If the YAML file does not exist.
        yaml.YAMLError
            If the YAML file is malformed.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(
                f"Config file not found: {path}. "
                f"Create one from configs/default.yaml as a template."
            )

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)

        if raw is None:
            raise ValueError(f"Config file is empty: {path}")

        config = cls(
            model=ModelConfig(**raw.get("model", {})),
            training=TrainingConfig(**raw.get("training", {})),
            data=DataConfig(**raw.get("data", {})),
        )

        config.validate()
        return config

    def to_yaml(self, path: str | Path) -> None:
        """
        Save configuration to a YAML file.

        Creates parent directories if they don't exist.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                asdict(self),
                f,
                default_flow_style=False,
                sort_keys=False,
                allow_unicode=True,
            )

        logger.info(f"Config saved to {path}")

    def to_dict(self) -> dict:
        """Convert to nested dictionary."""
        return asdict(self)

    @classmethod
    def for_smoke_test(cls) -> MLPForgeConfig:
        """
        Tiny configuration that trains in well under a second.

        Returns
        -------
        MLPForgeConfig
            Smoke-test configuration.
        """
        return cls(
            model=ModelConfig(
                layer_sizes=[2, 3, 1],
                internal_activation="tanh",
                output_activation="sigmoid",
                seed=7,
            ),
            training=TrainingConfig(
                learning_rate=0.5,
                epochs=20,
                mode="chunked",
                workers=2,
                chunk_size=2,
                log_every=10,
                check_nan=True,
            ),
            data=DataConfig(dataset="or"),
        )

    def __repr__(self) -> str:
        """Pretty-print the configuration."""
        lines = [
            "MLPForgeConfig(",
            f"  Model:    layers={self.model.layer_sizes}, "
            f"internal={self.model.internal_activation}, "
            f"output={self.model.output_activation}",
            f"  Training: lr={self.training.learning_rate}, "
            f"epochs={self.training.epochs}, mode={self.training.mode}"
            + (
                f" (workers={self.training.workers}, "
                f"chunk_size={self.training.chunk_size})"
                if self.training.mode == "chunked" else ""
            ),
            f"  Data:     {self.data.path or self.data.dataset}",
            ")",
        ]
        return "\n".join(lines)
