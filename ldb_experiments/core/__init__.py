"""Core modules for the LDB experiments framework."""

from .analysis import MethodComparison, ResultAggregator, aggregate_results, flatten_results, get_measure_name
from .config import (
    ClassDataConfig,
    ExperimentConfig,
    OutputPaths,
    create_default_config,
    default_classifiers,
    default_transforms,
)
from .data import TrialData, generate_class_data, generate_trial, load_result_json, save_result_json
from .logger import setup_logger
from .modeling import (
    MEASURES,
    FittedTransform,
    Measure,
    ModelHandle,
    default_measures,
    evaluate_model,
    extract_features,
    fit_model,
    get_measures,
)
from .transforms import WaveletPacketFeatures
from .visualization import ExperimentVisualizer, PlotStyle

__all__ = [
    'MethodComparison', 'ResultAggregator', 'aggregate_results', 'flatten_results', 'get_measure_name',
    'ClassDataConfig', 'ExperimentConfig', 'OutputPaths',
    'create_default_config', 'default_classifiers', 'default_transforms',
    'TrialData', 'generate_class_data', 'generate_trial', 'load_result_json', 'save_result_json',
    'setup_logger',
    'MEASURES', 'FittedTransform', 'Measure', 'ModelHandle',
    'default_measures', 'evaluate_model', 'extract_features', 'fit_model', 'get_measures',
    'WaveletPacketFeatures',
    'ExperimentVisualizer', 'PlotStyle',
]
