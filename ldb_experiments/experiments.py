"""Experiment orchestration: the (transform x classifier) grid and its repeats."""

from __future__ import annotations

import datetime
import logging
import os
from itertools import product
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .core.analysis import MethodComparison, ResultAggregator
from .core.config import (
    ClassDataConfig,
    ExperimentConfig,
    OutputPaths,
    default_classifiers,
    default_transforms,
)
from .core.data import TrialData, generate_trial, save_result_json, save_trial_data
from .core.modeling import (
    MEASURES,
    Measure,
    ModelHandle,
    evaluate_model,
    extract_features,
    fit_model,
    get_measures,
)

logger = logging.getLogger(__name__)

ExperimentResult = Dict[str, Dict[str, Dict[str, Dict[str, float]]]]
TrialResults = Dict[str, ExperimentResult]
Variants = Union[Mapping[str, Any], Sequence[Any]]


class GridRun(NamedTuple):
    """Trained models and scores of one grid run, both keyed method -> classifier."""

    models: Dict[str, Dict[str, ModelHandle]]
    result: ExperimentResult


def named_variants(variants: Variants, prefix: str = "method") -> Dict[str, Any]:
    """Name an ordered list of variants `<prefix>_1`, `<prefix>_2`, ...

    Mappings are returned unchanged.
    """
    if isinstance(variants, Mapping):
        return dict(variants)
    if isinstance(variants, (list, tuple)):
        return {f"{prefix}_{i}": variant for i, variant in enumerate(variants, start=1)}
    raise TypeError(f"Variants must be a mapping or a list, got {type(variants).__name__}.")


def _run_cell(transform_name: str, transform, classifier_name: str, classifier,
              data: TrialData, measures: List[Measure]):
    logger.debug("Fitting cell (%s, %s)", transform_name, classifier_name)
    fitted, features = extract_features(transform, data.X_train, data.y_train)
    model = fit_model(fitted, classifier, data.X_train, data.y_train, features=features)
    cell = {
        "train": evaluate_model(model, data.X_train, data.y_train, measures),
        "test": evaluate_model(model, data.X_test, data.y_test, measures),
    }
    return transform_name, classifier_name, model, cell


def run_experiment(
    transforms: Variants,
    classifiers: Variants,
    X_train,
    y_train,
    X_test,
    y_test,
    measures: Iterable[Measure],
    n_jobs: int = 1,
) -> GridRun:
    """Run one round of every (transform, classifier) pair on a train/test split.

    Args:
        transforms: Mapping or list of transform variants (None = raw signal).
            Lists are named `ldb_<i>`.
        classifiers: Mapping or list of scikit-learn classifiers. Lists are
            named `clf_<i>`.
        X_train, y_train: Training signals (one per row) and labels.
        X_test, y_test: Test signals and labels.
        measures: Measures computed on both the train and the test set.
        n_jobs: Number of joblib workers for the grid cells. Each cell fits
            its own clones, so cells never share fitted state.

    Returns:
        GridRun: `(models, result)`; `result[method][classifier]` holds
        `{"train": {...}, "test": {...}}`.
    """
    transforms = named_variants(transforms, "ldb")
    classifiers = named_variants(classifiers, "clf")
    measures = list(measures)
    data = TrialData(np.asarray(X_train), np.asarray(y_train), np.asarray(X_test), np.asarray(y_test))

    cells = product(transforms.items(), classifiers.items())
    if n_jobs == 1:
        outcomes = [_run_cell(t_name, t, c_name, c, data, measures) for (t_name, t), (c_name, c) in cells]
    else:
        outcomes = Parallel(n_jobs=n_jobs)(
            delayed(_run_cell)(t_name, t, c_name, c, data, measures) for (t_name, t), (c_name, c) in cells
        )

    models: Dict[str, Dict[str, ModelHandle]] = {name: {} for name in transforms}
    result: ExperimentResult = {name: {} for name in transforms}
    for transform_name, classifier_name, model, cell in outcomes:
        models[transform_name][classifier_name] = model
        result[transform_name][classifier_name] = cell

    return GridRun(models, result)


def repeat_experiment(
    transforms: Variants,
    classifiers: Variants,
    measures: Iterable[Measure],
    config_train: Optional[ClassDataConfig] = None,
    config_test: Optional[ClassDataConfig] = None,
    repeats: int = 10,
    save_data: bool = True,
    output: Optional[OutputPaths] = None,
    seed: Optional[int] = None,
    n_jobs: int = 1,
) -> TrialResults:
    """Run `run_experiment` on `repeats` freshly generated train/test sets.

    Trial `i` is stored under key `str(i)`. With `save_data`, trial arrays go
    to `exp<i>.h5` and trial scores to `result<i>.json` in the experiment
    data directory. Models are not kept between trials.
    """
    if repeats < 0:
        raise ValueError(f"repeats must be non-negative, got {repeats}.")

    config_train = config_train or ClassDataConfig("cbf", 33, 33, 33)
    config_test = config_test or ClassDataConfig("cbf", 333, 333, 333)
    output = output or OutputPaths()
    transforms = named_variants(transforms, "ldb")
    classifiers = named_variants(classifiers, "clf")
    measures = list(measures)
    rng = np.random.default_rng(seed)

    results: TrialResults = {}
    for i in range(1, repeats + 1):
        logger.info("Trial %d/%d", i, repeats)
        data = generate_trial(config_train, config_test, rng)
        _, trial_result = run_experiment(
            transforms, classifiers,
            data.X_train, data.y_train, data.X_test, data.y_test,
            measures, n_jobs=n_jobs,
        )
        results[str(i)] = trial_result

        if save_data:
            save_trial_data(output.trial_data_file(i), data)
            save_result_json(output.trial_result_file(i), trial_result)

    return results


class ExperimentManager:
    """Execute and catalogue repeated comparison runs."""

    LOG_COLUMNS = [
        "experiment_id",
        "name",
        "description",
        "timestamp",
        "status",
        "duration_seconds",
        "repeats",
        "config_file",
        "output_dir",
    ]

    def __init__(self, base_experiment_dir: str = "./results") -> None:
        self.base_experiment_dir = base_experiment_dir
        os.makedirs(self.base_experiment_dir, exist_ok=True)
        self.log_file = os.path.join(self.base_experiment_dir, "experiment_log.csv")
        self._ensure_log_schema()

    def _ensure_log_schema(self) -> None:
        if not os.path.exists(self.log_file):
            pd.DataFrame(columns=self.LOG_COLUMNS).to_csv(self.log_file, index=False)

    # --------------------------------------------------------------------- API
    def run_comparison(
        self,
        config: ExperimentConfig,
        transforms: Optional[Variants] = None,
        classifiers: Optional[Variants] = None,
        experiment_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Repeat the grid, then write complete and aggregate tables per measure.

        Transform and classifier variants default to `default_transforms` and
        `default_classifiers`. Outputs are written below `config.output_dir`.
        """

        if experiment_id is None:
            timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
            experiment_id = f"{config.name}_{timestamp}"

        if transforms is None:
            transforms = default_transforms(config.n_features, config.wavelet)
        if classifiers is None:
            classifiers = default_classifiers(config.seed)

        outputs = config.outputs
        os.makedirs(outputs.root, exist_ok=True)
        config_file = os.path.join(outputs.root, "config.json")
        config.save(config_file)

        logger.info("Running experiment %s (%d repeats)", experiment_id, config.repeats)
        logger.info("Configuration stored at %s", config_file)

        start_time = datetime.datetime.now()
        self._upsert_log(experiment_id, config, start_time, status="running",
                         duration_seconds=0.0, config_file=config_file)

        try:
            measures = get_measures(config.measures)
            results = repeat_experiment(
                transforms,
                classifiers,
                measures,
                config_train=config.train,
                config_test=config.test,
                repeats=config.repeats,
                save_data=config.save_data,
                output=outputs,
                seed=config.seed,
                n_jobs=config.n_jobs,
            )
            aggregates = ResultAggregator(results, output=outputs).summarize(measures)
        except Exception as exc:
            duration = (datetime.datetime.now() - start_time).total_seconds()
            self._upsert_log(experiment_id, config, start_time, status=f"failed: {exc}",
                             duration_seconds=duration, config_file=config_file)
            raise

        duration = (datetime.datetime.now() - start_time).total_seconds()
        self._upsert_log(experiment_id, config, start_time, status="completed",
                         duration_seconds=duration, config_file=config_file)
        logger.info("Experiment %s completed in %.1f minutes", experiment_id, duration / 60)

        return {
            "experiment_id": experiment_id,
            "config_file": config_file,
            "results": results,
            "aggregates": aggregates,
            "complete_files": {name: outputs.complete_file(name) for name in aggregates},
            "aggregate_files": {name: outputs.aggregate_file(name) for name in aggregates},
        }

    # -------------------------------------------------------------- Internals
    def _upsert_log(
        self,
        experiment_id: str,
        config: ExperimentConfig,
        start_time: datetime.datetime,
        status: str,
        duration_seconds: float,
        config_file: str,
    ) -> None:
        """Update the experiment log with the latest run information."""

        log_df = pd.read_csv(self.log_file)
        record = {
            "experiment_id": experiment_id,
            "name": config.name,
            "description": config.description,
            "timestamp": start_time.isoformat(),
            "status": status,
            "duration_seconds": float(duration_seconds),
            "repeats": config.repeats,
            "config_file": config_file,
            "output_dir": config.output_dir,
        }

        # replace any earlier entry of this run
        log_df = log_df[log_df["experiment_id"].astype(str) != experiment_id]
        frames = [frame for frame in (log_df, pd.DataFrame([record], columns=self.LOG_COLUMNS)) if not frame.empty]
        pd.concat(frames, ignore_index=True).to_csv(self.log_file, index=False)

    # ----------------------------------------------------------------- Helpers
    def list_experiments(self) -> pd.DataFrame:
        """Return the experiment log dataframe."""

        if not os.path.exists(self.log_file):
            return pd.DataFrame(columns=self.LOG_COLUMNS)
        return pd.read_csv(self.log_file)

    def load_table(self, measure: str, complete: bool = False) -> pd.DataFrame:
        """Load a saved aggregate (or complete) table for `measure`."""

        outputs = OutputPaths(self.base_experiment_dir)
        path = outputs.complete_file(measure) if complete else outputs.aggregate_file(measure)
        if not os.path.exists(path):
            raise FileNotFoundError(f"No saved table for measure '{measure}' at {path}")
        return pd.read_csv(path)

    def compare_methods(self, measure: str, split: str = "Test",
                        confidence: float = 0.95) -> Dict[str, pd.DataFrame]:
        """Compare methods on a saved complete table and store the statistics.

        Writes `<measure>_pairwise.csv`, `<measure>_confidence.csv` and
        `<measure>_best.csv` to the comparison directory.
        """

        comparison = MethodComparison(self.load_table(measure, complete=True), split=split)
        registered = MEASURES.get(measure)
        greater_is_better = registered.greater_is_better if registered is not None else True

        tables = {
            "pairwise": comparison.pairwise_tests(),
            "confidence": comparison.confidence_intervals(confidence),
            "best": comparison.best_methods(greater_is_better),
        }

        outputs = OutputPaths(self.base_experiment_dir)
        os.makedirs(outputs.comparison_dir, exist_ok=True)
        for kind, table in tables.items():
            path = outputs.comparison_file(measure, kind)
            table.to_csv(path, index=False)
            logger.info("Saved %s comparison of %s to %s", kind, measure, path)
        return tables
