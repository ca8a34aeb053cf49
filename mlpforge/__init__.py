"""
MLPForge
========
Small feed-forward neural networks (multi-layer perceptrons) trained by
back-propagation, either one example at a time or with a concurrent
worker pool that approximates parallel stochastic gradient descent.

This package provides:
    1. Fully-connected feed-forward models with a bias column per layer
    2. A reusable training workspace (forward pass + back-propagation)
    3. A sequential online trainer
    4. A chunked trainer that spreads gradient computation over worker
       threads while a single aggregator folds the results into one model

Quick Start:
    >>> from mlpforge.model import Model, RELU, SIGMOID
    >>> from mlpforge.training import TrainingContext
    >>> from mlpforge.data import truth_table
    >>> ctx = TrainingContext(Model.random(20, RELU, SIGMOID, 2, 4, 1))
    >>> ctx.train(truth_table("and"), 3000, 0.6)
    >>> ctx.predict([1, 1])

Subpackages:
    - mlpforge.model      — Activations and the weight-matrix model
    - mlpforge.training   — Training context, chunked scheduler, worker pool
    - mlpforge.data       — Training examples and built-in datasets
    - mlpforge.evaluation — Loss and accuracy metrics, timing
"""

__version__ = "0.1.0"
__author__ = "Aditya"
