"""
mlpforge.data — Training Data
==============================
Training examples, chunking, built-in datasets and YAML loading.

    - dataset.py — TrainingExample, as_training_set, chunked,
                   truth_table, load_training_set
"""

from mlpforge.data.dataset import (
    BUILTIN_DATASETS,
    TrainingExample,
    as_training_set,
    chunked,
    load_training_set,
    truth_table,
)
