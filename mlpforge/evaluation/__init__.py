"""
mlpforge.evaluation — Evaluation & Metrics
===========================================
    - metrics.py — example_loss, total_error, rounded_accuracy,
                   evaluate, Timer
"""

from mlpforge.evaluation.metrics import (
    Timer,
    evaluate,
    example_loss,
    rounded_accuracy,
    total_error,
)
