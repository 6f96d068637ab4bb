# coding=utf-8
"""
The registry resolves a logical model reference - algorithm, model name, stage and selection option - into one
entry of the family index, and loads the model stored under that entry's path.

Selection options:

- latest: the entry with the highest timestamp
- best: the entry with the best value of the family metric (classification: highest accuracy, regression and
  timeseries: lowest rmse, clustering: highest silhouette_euclidean). Entries without that metric are ignored;
  ties are won by the most recent entry. Families without metrics, or references without any evaluated entry,
  fall back to latest.
- version:<n>: the entry with version n

A reference that does not resolve is never replaced by another model: resolve_entry and resolve_path return None,
read_model and get_param raise ModelNotFoundError.
"""
import json
import warnings
from dataclasses import dataclass
from enum import Enum

from loguru import logger
from pyspark.sql import functions as F

from predictiveworks.model_store.artifact_store import artifact_path, read_index
from predictiveworks.model_store.families import ModelFamily, best_metric


class ModelNotFoundError(ValueError):
    pass


class ArtifactLoadError(IOError):
    pass


class SelectionPolicy(Enum):
    LATEST = "latest"
    BEST = "best"
    VERSION = "version"


@dataclass(frozen=True)
class SelectionOption:
    policy: SelectionPolicy
    version: int = None

    def __str__(self):
        if self.policy == SelectionPolicy.VERSION:
            return "version:" + str(self.version)
        return self.policy.value


LATEST_MODEL = SelectionOption(SelectionPolicy.LATEST)
BEST_MODEL = SelectionOption(SelectionPolicy.BEST)


def parse_option(option):
    """
    Parameters
    ----------
    option
        None, "latest", "best", "version:<n>", a positive integer or a SelectionOption. None means latest.

    Returns
    -------
    SelectionOption

    """
    if option is None:
        return LATEST_MODEL
    if isinstance(option, SelectionOption):
        return option
    if isinstance(option, int) and not isinstance(option, bool):
        version = option
    elif isinstance(option, str):
        value = option.strip().lower()
        if value == SelectionPolicy.LATEST.value:
            return LATEST_MODEL
        if value == SelectionPolicy.BEST.value:
            return BEST_MODEL
        if value.startswith("version:"):
            value = value[len("version:") :].strip()
        if not value.isdigit():
            raise TypeError(
                f"Invalid input for model option. option should be latest, best or version:<n> - Received '{option}'."
            )
        version = int(value)
    else:
        raise TypeError(f"Invalid input for model option - Received {type(option)}.")

    if version < 1:
        raise ValueError(f"Invalid input for model option. Versions start at 1 - Received {version}.")
    return SelectionOption(SelectionPolicy.VERSION, version)


def _latest(candidates):
    return candidates.orderBy(F.desc("timestamp"), F.desc("version")).limit(1).collect()


def resolve_entry(
    spark,
    root_path,
    family,
    algorithm_name,
    model_name,
    stage="experiment",
    option="latest",
):
    """
    Parameters
    ----------
    spark
        Spark Session
    root_path
        Root folder of the model store
    family
        "classification", "regression", "clustering", "timeseries", "feature", "text".
    algorithm_name
        Identifier of the algorithm e.g. "AutoRegression".
    model_name
        Logical name of the model.
    stage
        Lifecycle label to filter on; None selects entries of every stage. (Default value = "experiment")
    option
        "latest", "best" or "version:<n>". (Default value = "latest")

    Returns
    -------
    Row or None
        Index entry of the resolved model.
    """
    family = ModelFamily.parse(family)
    option = parse_option(option)

    candidates = read_index(spark, root_path, family).where(
        (F.col("algorithm") == algorithm_name) & (F.col("name") == model_name)
    )
    if stage:
        candidates = candidates.where(F.col("stage") == stage)

    if option.policy == SelectionPolicy.VERSION:
        rows = _latest(candidates.where(F.col("version") == option.version))

    elif option.policy == SelectionPolicy.BEST:
        metric = best_metric(family)
        if metric is None:
            warnings.warn(
                f"Models of family {family.value} carry no metrics; the latest model is used instead of the best."
            )
            rows = _latest(candidates)
        else:
            metric_col, higher_is_better = metric
            order = F.desc(metric_col) if higher_is_better else F.asc(metric_col)
            rows = (
                candidates.where(F.col(metric_col).isNotNull())
                .orderBy(order, F.desc("timestamp"), F.desc("version"))
                .limit(1)
                .collect()
            )
            if not rows:
                logger.warning(
                    f"No {algorithm_name} model '{model_name}' carries metric {metric_col}; falling back to latest."
                )
                rows = _latest(candidates)
    else:
        rows = _latest(candidates)

    if not rows:
        logger.debug(f"no {algorithm_name} model '{model_name}' found (stage={stage}, option={option})")
        return None
    return rows[0]


def resolve_path(
    spark,
    root_path,
    family,
    algorithm_name,
    model_name,
    stage="experiment",
    option="latest",
):
    """Full storage path of the resolved model, or None if the reference does not resolve."""
    entry = resolve_entry(spark, root_path, family, algorithm_name, model_name, stage, option)
    if entry is None:
        return None
    return artifact_path(root_path, entry["fs_name"], entry["fs_path"])


def get_param(
    spark,
    root_path,
    family,
    algorithm_name,
    model_name,
    param_name,
    stage="experiment",
    option="latest",
):
    """Value of a single hyperparameter of the resolved model."""
    entry = resolve_entry(spark, root_path, family, algorithm_name, model_name, stage, option)
    if entry is None:
        raise ModelNotFoundError(_not_found_message(algorithm_name, model_name, stage, option))

    params = json.loads(entry["params"] or "{}")
    if param_name not in params:
        raise KeyError(
            f"Parameter '{param_name}' is not recorded for {algorithm_name} model '{model_name}' "
            f"(version {entry['version']})."
        )
    return params[param_name]


def load_model(path, model_class):
    """
    Parameters
    ----------
    path
        Storage path of the model
    model_class
        Class providing load(path) e.g. pyspark.ml.regression.LinearRegressionModel or AutoRegressionModel

    Returns
    -------
    Model instance. A missing or malformed artifact raises ArtifactLoadError.
    """
    try:
        return model_class.load(path)
    except Exception as error:
        raise ArtifactLoadError(
            f"The model artifact at '{path}' is absent or cannot be read as {model_class.__name__}."
        ) from error


def read_model(
    spark,
    root_path,
    family,
    algorithm_name,
    model_name,
    model_class,
    stage="experiment",
    option="latest",
):
    """
    read_model resolves a model reference and loads the model.

    Returns
    -------
    (model, dict)
        The loaded model and its index entry (profile) as dictionary.
    """
    entry = resolve_entry(spark, root_path, family, algorithm_name, model_name, stage, option)
    if entry is None:
        raise ModelNotFoundError(_not_found_message(algorithm_name, model_name, stage, option))

    path = artifact_path(root_path, entry["fs_name"], entry["fs_path"])
    logger.info(f"loading {algorithm_name} model '{model_name}' version {entry['version']} from {path}")
    return load_model(path, model_class), entry.asDict()


def list_versions(spark, root_path, family, algorithm_name, model_name):
    """All index entries of a model, ordered by version."""
    return (
        read_index(spark, root_path, family)
        .where((F.col("algorithm") == algorithm_name) & (F.col("name") == model_name))
        .orderBy("version", "timestamp")
    )


def _not_found_message(algorithm_name, model_name, stage, option):
    return (
        f"An {algorithm_name} model with name '{model_name}' does not exist "
        f"(stage={stage}, option={parse_option(option)})."
    )
