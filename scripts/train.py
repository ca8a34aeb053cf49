#!/usr/bin/env python3
"""
MLPForge — Training Script
============================
Builds a model from the config, trains it on the configured dataset
and prints the prediction for every training example.

Usage:
    python scripts/train.py --config configs/default.yaml
    python scripts/train.py --smoke-test
    python scripts/train.py --config configs/default.yaml --mode chunked --workers 4
"""

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from tqdm import tqdm

from mlpforge.config import MLPForgeConfig
from mlpforge.evaluation.metrics import evaluate
from mlpforge.training.trainer import Trainer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="MLPForge Training",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Train with the default config:
    python scripts/train.py --config configs/default.yaml

    # Quick smoke test:
    python scripts/train.py --smoke-test

    # Same config, chunked across 4 workers:
    python scripts/train.py --mode chunked --workers 4 --chunk-size 1
        """,
    )
    parser.add_argument("--config", type=str, default="configs/default.yaml")
    parser.add_argument("--smoke-test", action="store_true")
    parser.add_argument("--mode", choices=["sequential", "chunked"], default=None)
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--chunk-size", type=int, default=None)
    parser.add_argument("--epochs", type=int, default=None)
    parser.add_argument(
        "--results", type=str, default=None,
        help="Write the training results as JSON to this path",
    )
    args = parser.parse_args()

    if args.smoke_test:
        config = MLPForgeConfig.for_smoke_test()
    else:
        config = MLPForgeConfig.from_yaml(args.config)

    # Command-line overrides
    if args.mode is not None:
        config.training.mode = args.mode
    if args.workers is not None:
        config.training.workers = args.workers
    if args.chunk_size is not None:
        config.training.chunk_size = args.chunk_size
    if args.epochs is not None:
        config.training.epochs = args.epochs
    config.validate()
    print(config)

    training_set = config.data.load()
    trainer = Trainer(config.model.build(), config, name=config.data.dataset)

    with tqdm(total=config.training.epochs, desc="epochs", unit="ep") as bar:
        def advance(epoch, loss):
            bar.set_postfix(loss=f"{loss:.5f}")
            bar.update(1)

        results = trainer.train(training_set, on_epoch=advance)

    for example in training_set:
        prediction = trainer.model.predict(example.input)
        logger.info(
            f"{example.input.tolist()} → {prediction.round(4).tolist()} "
            f"(want {example.target.tolist()})"
        )
    metrics = evaluate(trainer.model, training_set)

    if results["nan_epoch"] is not None:
        logger.warning(f"Model diverged at epoch {results['nan_epoch'] + 1}")

    if args.results:
        path = Path(args.results)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump({**results, **metrics}, f, indent=2)
        logger.info(f"Results saved to {path}")


if __name__ == "__main__":
    main()
