"""
MLPForge — Setup Script
========================
Installs MLPForge as a local editable package so that all internal
imports (e.g. `from mlpforge.training import TrainingContext`) work
seamlessly from any script or notebook.

Usage:
    cd /path/to/mlpforge
    pip install -e .
    pip install -e ".[dev]"   # with test tooling
"""

from setuptools import setup, find_packages

setup(
    name="mlpforge",
    version="0.1.0",
    author="Aditya",
    description=(
        "MLPForge: feed-forward neural networks with sequential and "
        "chunked parallel back-propagation training"
    ),
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["mlpforge", "mlpforge.*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy>=1.24.0",
        "tqdm>=4.65.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": ["pytest>=7.0"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: Apache Software License",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
)
