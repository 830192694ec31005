"""Tests for the experiment grid, its repeats and the experiment manager."""

import json
import os

import numpy as np
import pandas as pd
import pytest
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.neighbors import KNeighborsClassifier

from ldb_experiments.core.config import ClassDataConfig, ExperimentConfig
from ldb_experiments.core.data import load_result_json, load_trial_data
from ldb_experiments.experiments import (
    ExperimentManager,
    GridRun,
    named_variants,
    repeat_experiment,
    run_experiment,
)


class FailingClassifier(BaseEstimator, ClassifierMixin):
    """Classifier whose fit always fails."""

    def fit(self, X, y):
        raise RuntimeError("did not converge")


def _run(trial_data, transforms, classifiers, measures, **kwargs):
    return run_experiment(
        transforms, classifiers,
        trial_data.X_train, trial_data.y_train, trial_data.X_test, trial_data.y_test,
        measures, **kwargs,
    )


class TestNamedVariants:
    """Tests for list-to-mapping naming of variants."""

    def test_list_is_named_in_order(self):
        variants = named_variants(["a", "b", "c"], "clf")
        assert list(variants) == ["clf_1", "clf_2", "clf_3"]
        assert list(variants.values()) == ["a", "b", "c"]

    def test_mapping_is_kept(self):
        assert named_variants({"raw": None}, "ldb") == {"raw": None}

    def test_default_prefix(self):
        assert list(named_variants([1])) == ["method_1"]

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            named_variants("abc", "ldb")


class TestRunExperiment:
    """Tests for a single grid run."""

    def test_grid_shape(self, trial_data, transforms, classifiers, measures):
        run = _run(trial_data, transforms, classifiers, measures)

        assert isinstance(run, GridRun)
        assert set(run.result) == {"raw", "ldb"}
        for method in run.result.values():
            assert list(method) == ["clf_1", "clf_2", "clf_3"]
            for cell in method.values():
                assert set(cell) == {"train", "test"}
                assert set(cell["test"]) == {"Accuracy", "MisclassificationRate"}
                assert cell["test"]["Accuracy"] == pytest.approx(1 - cell["test"]["MisclassificationRate"])

    def test_models_match_result_keys(self, trial_data, transforms, classifiers, measures):
        models, result = _run(trial_data, transforms, classifiers, measures)
        assert {m: set(c) for m, c in models.items()} == {m: set(c) for m, c in result.items()}
        assert models["raw"]["clf_1"].transform.is_raw
        assert not models["ldb"]["clf_1"].transform.is_raw

    def test_list_transforms_are_named(self, trial_data, classifiers, measures):
        _, result = _run(trial_data, [None], classifiers[:1], measures)
        assert list(result) == ["ldb_1"]
        assert list(result["ldb_1"]) == ["clf_1"]

    def test_variants_are_not_mutated(self, trial_data, transforms, classifiers, measures):
        _run(trial_data, transforms, classifiers, measures)
        assert not hasattr(transforms["ldb"], "order_")
        assert not hasattr(classifiers[0], "classes_")

    def test_deterministic(self, trial_data, transforms, classifiers, measures):
        first = _run(trial_data, transforms, classifiers, measures).result
        second = _run(trial_data, transforms, classifiers, measures).result
        assert first == second

    def test_parallel_matches_sequential(self, trial_data, transforms, classifiers, measures):
        sequential = _run(trial_data, transforms, classifiers, measures).result
        parallel = _run(trial_data, transforms, classifiers, measures, n_jobs=2).result
        assert parallel == sequential

    def test_empty_variants(self, trial_data, classifiers, measures):
        _, result = _run(trial_data, {}, classifiers, measures)
        assert result == {}

    def test_cell_failure_aborts_run(self, trial_data, transforms, measures):
        with pytest.raises(RuntimeError, match="did not converge"):
            _run(trial_data, transforms, [KNeighborsClassifier(), FailingClassifier()], measures)


class TestRepeatExperiment:
    """Tests for repeated trials and their persisted artefacts."""

    def test_trial_keys(self, transforms, classifiers, measures, small_train_config, small_test_config,
                        output_paths):
        results = repeat_experiment(transforms, classifiers, measures, small_train_config, small_test_config,
                                    repeats=3, save_data=False, output=output_paths, seed=1)
        assert list(results) == ["1", "2", "3"]
        assert not os.path.exists(output_paths.root)

    def test_zero_repeats(self, transforms, classifiers, measures, small_train_config, small_test_config,
                          output_paths):
        results = repeat_experiment(transforms, classifiers, measures, small_train_config, small_test_config,
                                    repeats=0, save_data=True, output=output_paths)
        assert results == {}
        assert not os.path.exists(output_paths.experiment_data_dir)

    def test_negative_repeats(self, transforms, classifiers, measures):
        with pytest.raises(ValueError):
            repeat_experiment(transforms, classifiers, measures, repeats=-1, save_data=False)

    def test_seed_reproducible(self, transforms, classifiers, measures, small_train_config, small_test_config):
        kwargs = dict(repeats=2, save_data=False, seed=7)
        first = repeat_experiment(transforms, classifiers, measures, small_train_config, small_test_config, **kwargs)
        second = repeat_experiment(transforms, classifiers, measures, small_train_config, small_test_config, **kwargs)
        assert first == second

    def test_persisted_files(self, transforms, classifiers, measures, small_train_config, small_test_config,
                             output_paths):
        results = repeat_experiment(transforms, classifiers, measures, small_train_config, small_test_config,
                                    repeats=2, save_data=True, output=output_paths, seed=3)

        for i in (1, 2):
            stored = load_result_json(output_paths.trial_result_file(i))
            assert stored == results[str(i)]

            data = load_trial_data(output_paths.trial_data_file(i))
            assert data.X_train.shape == (30, 32)
            assert data.X_test.shape == (60, 32)
            assert sorted(np.unique(data.y_test)) == [1, 2, 3]

    def test_result_json_is_indented(self, transforms, classifiers, measures, small_train_config,
                                     small_test_config, output_paths):
        results = repeat_experiment(transforms, classifiers[:1], measures, small_train_config, small_test_config,
                                    repeats=1, save_data=True, output=output_paths, seed=3)
        with open(output_paths.trial_result_file(1), encoding="utf-8") as handle:
            text = handle.read()
        assert text == json.dumps(results["1"], indent=4)


class TestExperimentManager:
    """Tests for the catalogued comparison run."""

    def _config(self, tmp_path, **kwargs):
        values = dict(
            name="small",
            train=ClassDataConfig("tri", 8, 8, 8),
            test=ClassDataConfig("tri", 10, 10, 10),
            repeats=2,
            seed=0,
            output_dir=str(tmp_path / "results"),
            measures=["Accuracy"],
        )
        values.update(kwargs)
        return ExperimentConfig(**values)

    def test_run_comparison(self, tmp_path, transforms, classifiers):
        config = self._config(tmp_path)
        manager = ExperimentManager(config.output_dir)
        outcome = manager.run_comparison(config, transforms, classifiers, experiment_id="exp-a")

        assert list(outcome["results"]) == ["1", "2"]
        aggregate = outcome["aggregates"]["Accuracy"]
        assert len(aggregate) == 6
        assert list(aggregate.columns) == ["Method", "Classifier", "Train_Accuracy", "Test_Accuracy"]

        assert os.path.exists(outcome["complete_files"]["Accuracy"])
        assert os.path.exists(outcome["aggregate_files"]["Accuracy"])
        assert ExperimentConfig.load(outcome["config_file"]) == config

        log = manager.list_experiments()
        assert log.loc[log["experiment_id"] == "exp-a", "status"].item() == "completed"

        saved = manager.load_table("Accuracy")
        pd.testing.assert_frame_equal(saved, aggregate, check_dtype=False)

    def test_failed_run_is_logged(self, tmp_path, transforms):
        config = self._config(tmp_path)
        manager = ExperimentManager(config.output_dir)
        with pytest.raises(RuntimeError):
            manager.run_comparison(config, transforms, [FailingClassifier()], experiment_id="exp-b")

        log = manager.list_experiments()
        assert log.loc[log["experiment_id"] == "exp-b", "status"].item().startswith("failed")

    def test_compare_methods(self, tmp_path, transforms, classifiers):
        config = self._config(tmp_path, repeats=3)
        manager = ExperimentManager(config.output_dir)
        manager.run_comparison(config, transforms, classifiers, experiment_id="exp-c")

        tables = manager.compare_methods("Accuracy")
        assert list(tables) == ["pairwise", "confidence", "best"]
        # two methods per classifier: one pair each
        assert len(tables["pairwise"]) == 3
        assert len(tables["confidence"]) == 6
        assert len(tables["best"]) == 3
        for kind in tables:
            assert os.path.exists(config.outputs.comparison_file("Accuracy", kind))

    def test_compare_methods_lower_is_better(self, tmp_path, transforms, classifiers):
        config = self._config(tmp_path, repeats=2, measures=["MisclassificationRate"])
        manager = ExperimentManager(config.output_dir)
        manager.run_comparison(config, transforms, classifiers, experiment_id="exp-d")

        table = manager.load_table("MisclassificationRate")
        best = manager.compare_methods("MisclassificationRate")["best"]
        for _, row in best.iterrows():
            scores = table.loc[table["Classifier"] == row["Classifier"], "Test_MisclassificationRate"]
            assert row["Test_MisclassificationRate"] == pytest.approx(scores.min())

    def test_missing_table(self, tmp_path):
        manager = ExperimentManager(str(tmp_path))
        with pytest.raises(FileNotFoundError):
            manager.load_table("Accuracy")
