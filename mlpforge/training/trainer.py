"""
MLPForge Trainer
=================
Runs a configured training session around a TrainingContext and takes
care of the surrounding concerns:

    - Picking sequential or chunked training from the config
    - Progress logging every `log_every` epochs
    - Divergence detection: the weights are scanned for NaN after each
      epoch and the first occurrence is logged (training continues; the
      caller decides what to do with a diverged model)
    - Timing and a results dict

Usage:
    >>> config = MLPForgeConfig.from_yaml("configs/default.yaml")
    >>> trainer = Trainer(config.model.build(), config, name="xor")
    >>> results = trainer.train(config.data.load())
    >>> trainer.model.predict([1, 0])
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

from mlpforge.config import MLPForgeConfig
from mlpforge.data.dataset import TrainingExample
from mlpforge.evaluation.metrics import total_error
from mlpforge.model.network import Model
from mlpforge.training.context import TrainingContext

logger = logging.getLogger(__name__)


class Trainer:
    """
    Configured training session for one model.

    Parameters
    ----------
    model : Model
        The model to train. In sequential mode it is updated in place;
        in chunked mode `trainer.model` is replaced by the merged model.

    config : MLPForgeConfig
        Full configuration object (only `training` is used here).

    name : str
        Human-readable name for this training run (for logging).
    """

    def __init__(
        self,
        model: Model,
        config: MLPForgeConfig,
        name: str = "trainer",
    ):
        self.config = config
        self.name = name
        self.context = TrainingContext(model)
        self.nan_epoch: Optional[int] = None

        logger.info(
            f"Trainer '{name}' initialized: layers={model.layer_sizes}, "
            f"mode={config.training.mode}"
        )

    @property
    def model(self) -> Model:
        return self.context.model

    def train(
        self,
        training_set: Sequence[TrainingExample],
        on_epoch: Optional[Callable[[int, float], None]] = None,
    ) -> dict:
        """
        Train for the configured number of epochs.

        Parameters
        ----------
        training_set : sequence of TrainingExample
            The examples to learn.
        on_epoch : callable or None
            Extra hook, called as on_epoch(epoch, epoch_loss) after the
            trainer's own bookkeeping (e.g. to drive a progress bar).

        Returns
        -------
        dict
            - epoch_losses: total error of every epoch
            - final_loss: last epoch's total error (None if no epochs)
            - nan_epoch: first epoch with NaN weights, or None
            - total_time_seconds: wall-clock training time
            - epochs: number of epochs run
        """
        cfg = self.config.training
        self.nan_epoch = None
        losses: list[float] = []

        def record(epoch: int, loss: float, model: Model) -> None:
            losses.append(loss)
            if cfg.log_every > 0 and (epoch + 1) % cfg.log_every == 0:
                logger.info(
                    f"[{self.name}] epoch {epoch + 1}/{cfg.epochs}: "
                    f"total_error={loss:.6f}"
                )
            if cfg.check_nan and self.nan_epoch is None and model.has_nan():
                self.nan_epoch = epoch
                logger.warning(
                    f"[{self.name}] NaN weights after epoch {epoch + 1}; "
                    f"learning_rate={cfg.learning_rate} is probably too high"
                )
                logger.debug(f"[{self.name}] diverged model:\n{model}")
            if on_epoch is not None:
                on_epoch(epoch, loss)

        logger.info(
            f"[{self.name}] Starting {cfg.mode} training: {cfg.epochs} epochs, "
            f"{len(training_set)} examples, lr={cfg.learning_rate}"
        )
        start_time = time.time()

        if cfg.mode == "chunked":
            self.context.train_chunked(
                training_set,
                cfg.epochs,
                cfg.workers,
                cfg.chunk_size,
                cfg.learning_rate,
                lambda epoch, current: record(
                    epoch, total_error(current, training_set), current
                ),
            )
        else:
            self.context.train(
                training_set,
                cfg.epochs,
                cfg.learning_rate,
                lambda epoch, loss: record(epoch, loss, self.context.model),
            )

        total_time = time.time() - start_time
        results = {
            "epoch_losses": losses,
            "final_loss": losses[-1] if losses else None,
            "nan_epoch": self.nan_epoch,
            "total_time_seconds": total_time,
            "epochs": len(losses),
        }

        final = f"{results['final_loss']:.6f}" if losses else "n/a"
        logger.info(
            f"[{self.name}] Training complete in {total_time:.1f}s, "
            f"final_loss={final}"
        )
        return results

    def __repr__(self) -> str:
        return f"Trainer(name={self.name}, mode={self.config.training.mode})"
