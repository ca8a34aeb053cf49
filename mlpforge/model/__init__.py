"""
mlpforge.model — Model Definition
==================================
The network itself: activation functions and the weight-matrix model.

Components:
    - activations.py — Activation kinds, canonical names and parsing
    - network.py     — Model (weights, predict, clone, NaN scan)

Information Flow (inference):
    input + bias → W0 → internal → + bias → W1 → ... → W_last → output activation
"""

from mlpforge.model.activations import (
    Activation,
    Kind,
    RELU,
    SIGMOID,
    SIGNED_LOG,
    TANH,
    linear,
    parse_activation,
    scaled,
    stretched,
)
from mlpforge.model.network import Model
