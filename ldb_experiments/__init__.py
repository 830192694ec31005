"""Repeated comparison of Local Discriminant Basis features and classifiers."""

from __future__ import annotations

from .core.analysis import MethodComparison, ResultAggregator, aggregate_results, flatten_results
from .core.config import (
    ClassDataConfig,
    ExperimentConfig,
    OutputPaths,
    create_default_config,
    default_classifiers,
    default_transforms,
)
from .core.data import TrialData, generate_class_data
from .core.modeling import (
    FittedTransform,
    Measure,
    ModelHandle,
    default_measures,
    evaluate_model,
    extract_features,
    fit_model,
)
from .core.transforms import WaveletPacketFeatures
from .core.visualization import ExperimentVisualizer
from .experiments import ExperimentManager, GridRun, named_variants, repeat_experiment, run_experiment

__version__ = "0.1.0"


def run_default_comparison(
    *,
    output_dir: str = "./results",
    signal: str = "cbf",
    repeats: int = 10,
    seed: int = None,
) -> dict:
    """Execute the canonical raw-vs-LDB comparison and return its artefacts."""

    config = create_default_config(signal=signal, repeats=repeats, seed=seed, output_dir=output_dir)
    manager = ExperimentManager(output_dir)
    return manager.run_comparison(config)


__all__ = [
    "MethodComparison",
    "ResultAggregator",
    "aggregate_results",
    "flatten_results",
    "ClassDataConfig",
    "ExperimentConfig",
    "OutputPaths",
    "create_default_config",
    "default_classifiers",
    "default_transforms",
    "TrialData",
    "generate_class_data",
    "FittedTransform",
    "Measure",
    "ModelHandle",
    "default_measures",
    "evaluate_model",
    "extract_features",
    "fit_model",
    "WaveletPacketFeatures",
    "ExperimentVisualizer",
    "ExperimentManager",
    "GridRun",
    "named_variants",
    "repeat_experiment",
    "run_experiment",
    "run_default_comparison",
]
