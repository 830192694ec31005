"""Result aggregation and statistical comparison of LDB methods.

This module flattens nested per-trial results into tables, averages them per
(method, classifier) pair and compares methods across trials.
"""

import logging
import os
import re
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd
from scipy import stats

from .config import OutputPaths
from .modeling import Measure

logger = logging.getLogger(__name__)

MEASURE_COLUMN_PATTERN = re.compile(r"^(Train|Test)_([A-Za-z0-9]*)")
GROUP_COLUMNS = ["Method", "Classifier"]


def _measure_string(measure: Union[Measure, str]) -> str:
    return measure.name if isinstance(measure, Measure) else str(measure)


def _parse_trial_id(trial: str) -> int:
    text = str(trial)
    if not text.isdigit():
        raise ValueError(f"Trial id '{trial}' is not an unsigned integer.")
    return int(text)


def get_measure_name(columns: Iterable[str]) -> str:
    """Recover the measure name from `Train_<name>`/`Test_<name>` headers.

    The first matching column wins.
    """
    for column in columns:
        match = MEASURE_COLUMN_PATTERN.match(str(column))
        if match:
            return match.group(2)
    raise ValueError(f"No Train_/Test_ measure column found in {list(columns)}")


def flatten_results(results: Dict, measure: Union[Measure, str], save_data: bool = True,
                    output: Optional[OutputPaths] = None) -> pd.DataFrame:
    """Convert nested trial results to one row per trial, method and classifier.

    Args:
        results (dict): `trial -> method -> classifier -> {"train", "test"}`.
        measure (Measure or str): Measure to extract.
        save_data (bool): Write the table to `<complete_dir>/<measure>.csv`.
        output (OutputPaths): Output locations, defaults to `./results`.

    Returns:
        pd.DataFrame: Columns Experiment, Method, Classifier,
        Train_<measure>, Test_<measure>.
    """
    name = _measure_string(measure)
    train_col, test_col = f"Train_{name}", f"Test_{name}"

    rows = []
    for trial, trial_result in results.items():
        experiment = _parse_trial_id(trial)
        for method, method_result in trial_result.items():
            for classifier, cell in method_result.items():
                rows.append([
                    experiment,
                    method,
                    classifier,
                    cell["train"][name],
                    cell["test"][name],
                ])

    table = pd.DataFrame(rows, columns=["Experiment", *GROUP_COLUMNS, train_col, test_col])
    table = table.astype({
        "Experiment": np.uint64,
        "Method": str,
        "Classifier": str,
        train_col: np.float64,
        test_col: np.float64,
    })

    if save_data:
        path = (output or OutputPaths()).complete_file(name)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        table.to_csv(path, index=False)
        logger.info("Saved complete %s table to %s", name, path)

    return table


def aggregate_results(table: pd.DataFrame, save_data: bool = True,
                      output: Optional[OutputPaths] = None) -> pd.DataFrame:
    """Average Train_/Test_ columns per (Method, Classifier) pair."""
    train_cols = [col for col in table.columns if str(col).startswith("Train")]
    test_cols = [col for col in table.columns if str(col).startswith("Test")]

    combined = (
        table.groupby(GROUP_COLUMNS, sort=False)[train_cols + test_cols]
        .mean()
        .reset_index()
    )

    if save_data:
        name = get_measure_name(table.columns)
        path = (output or OutputPaths()).aggregate_file(name)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        combined.to_csv(path, index=False)
        logger.info("Saved aggregate %s table to %s", name, path)

    return combined


class ResultAggregator:
    """Flattens and summarizes repeated experiment results."""

    def __init__(self, results: Dict, output: Optional[OutputPaths] = None, save_data: bool = True):
        self.results = results
        self.output = output or OutputPaths()
        self.save_data = save_data

    def flatten(self, measure: Union[Measure, str]) -> pd.DataFrame:
        return flatten_results(self.results, measure, self.save_data, self.output)

    def aggregate(self, table: pd.DataFrame) -> pd.DataFrame:
        return aggregate_results(table, self.save_data, self.output)

    def summarize(self, measures: Iterable[Union[Measure, str]]) -> Dict[str, pd.DataFrame]:
        """Flatten and aggregate every measure; keyed by measure name."""
        summaries = {}
        for measure in measures:
            summaries[_measure_string(measure)] = self.aggregate(self.flatten(measure))
        return summaries


class MethodComparison:
    """Statistical comparison of methods across trials."""

    def __init__(self, table: pd.DataFrame, split: str = "Test"):
        self.table = table
        self.split = split
        self.measure = get_measure_name(table.columns)
        self.column = f"{split}_{self.measure}"
        if self.column not in table.columns:
            raise KeyError(f"Column '{self.column}' not found in table.")

    def pairwise_tests(self) -> pd.DataFrame:
        """Paired t-tests between every pair of methods, per classifier."""
        test_results = []

        for classifier, group in self.table.groupby("Classifier", sort=False):
            scores = group.pivot_table(index="Experiment", columns="Method", values=self.column)
            for method_1, method_2 in combinations(scores.columns, 2):
                paired = scores[[method_1, method_2]].dropna()
                if len(paired) < 2:
                    continue

                diff = paired[method_1].to_numpy() - paired[method_2].to_numpy()
                sd = np.std(diff, ddof=1)
                if sd > 0:
                    statistic, p_value = stats.ttest_rel(paired[method_1], paired[method_2])
                    cohens_d = float(np.mean(diff) / sd)
                else:
                    # identical differences in every trial: the test is undefined
                    statistic, p_value = np.nan, np.nan
                    cohens_d = 0.0 if np.mean(diff) == 0 else float(np.sign(np.mean(diff)) * np.inf)

                test_results.append({
                    'classifier': classifier,
                    'method_1': method_1,
                    'method_2': method_2,
                    'metric': self.column,
                    'n_trials': len(paired),
                    'mean_difference': float(np.mean(diff)),
                    'statistic': statistic,
                    'p_value': p_value,
                    'cohens_d': cohens_d,
                    'significant_005': bool(p_value < 0.05),
                    'significant_001': bool(p_value < 0.01),
                    'effect_size': self._interpret_effect_size(abs(cohens_d)),
                })

        return pd.DataFrame(test_results)

    def _interpret_effect_size(self, cohens_d: float) -> str:
        """Interpret Cohen's d effect size."""
        if cohens_d < 0.2:
            return 'negligible'
        elif cohens_d < 0.5:
            return 'small'
        elif cohens_d < 0.8:
            return 'medium'
        else:
            return 'large'

    def confidence_intervals(self, confidence: float = 0.95) -> pd.DataFrame:
        """Compute t-based confidence intervals of each (method, classifier) mean."""
        results: List[Dict] = []

        for (method, classifier), group in self.table.groupby(GROUP_COLUMNS, sort=False):
            scores = group[self.column].to_numpy(dtype=float)
            if len(scores) < 2:
                continue

            mean_score = np.mean(scores)
            sem = stats.sem(scores)
            if sem > 0:
                lower, upper = stats.t.interval(confidence, len(scores) - 1, loc=mean_score, scale=sem)
            else:
                lower = upper = mean_score

            results.append({
                'Method': method,
                'Classifier': classifier,
                'metric': self.column,
                'mean': mean_score,
                'std': np.std(scores, ddof=1),
                'n_observations': len(scores),
                'confidence_level': confidence,
                'ci_lower': lower,
                'ci_upper': upper,
                'margin_of_error': upper - mean_score,
            })

        return pd.DataFrame(results)

    def best_methods(self, greater_is_better: bool = True) -> pd.DataFrame:
        """Best mean-scoring method for every classifier."""
        means = self.table.groupby(GROUP_COLUMNS, sort=False)[self.column].mean().reset_index()
        pick = means.groupby("Classifier", sort=False)[self.column]
        index = pick.idxmax() if greater_is_better else pick.idxmin()
        return means.loc[index.to_numpy()].reset_index(drop=True)
