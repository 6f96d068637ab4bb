# coding=utf-8
"""
The artifact store persists a trained model together with its metadata. A save is made of two writes:

1. the model itself, written by the model's own ``save(path)`` (Spark ML models as well as the time series models
   of this package) to ``<root_path>/<family>/<algorithm>/<epoch-millis>/<model name>``;
2. one row appended to the parquet index of the family at ``<root_path>/metadata/<family>``, holding timestamp,
   name, version, algorithm, stage, params (JSON), the family's metric columns and the storage path.

The two writes are not transactional. If the index write fails after the model write succeeded, the model stays on
disk without an index row and is simply unreachable for the registry. Versions are derived from the index at save
time, so two concurrent saves of the same model name may end up with the same version number.
"""
import json
import time
from dataclasses import dataclass

from loguru import logger
from pyspark.sql import functions as F
from pyspark.sql.utils import AnalysisException

from predictiveworks.model_store.families import (
    ModelFamily,
    index_schema,
    metric_columns,
    unpack_metrics,
)
from predictiveworks.shared.utils import ends_with


@dataclass(frozen=True)
class ModelArtifact:
    family: str
    algorithm_name: str
    model_name: str
    version: int
    timestamp: int
    stage: str
    fs_name: str
    storage_path: str
    params_json: str
    metrics_json: str


def index_path(root_path, family):
    return ends_with(root_path) + "metadata/" + ModelFamily.parse(family).value


def artifact_path(root_path, fs_name, fs_path):
    return ends_with(root_path) + ends_with(fs_name) + fs_path


def read_index(spark, root_path, family):
    """
    Parameters
    ----------
    spark
        Spark Session
    root_path
        Root folder of the model store
    family
        ModelFamily or its value e.g. "timeseries"

    Returns
    -------
    DataFrame
        Metadata index of the family; empty (with the family schema) if no model has been saved yet.
    """
    schema = index_schema(family)
    try:
        return spark.read.schema(schema).parquet(index_path(root_path, family))
    except AnalysisException:
        logger.debug(f"no model index found for family {ModelFamily.parse(family).value}")
        return spark.createDataFrame([], schema)


def model_version(index, algorithm_name, model_name):
    """Version of the next model to be saved: 1 + number of saved models with the same algorithm & name."""
    existing = index.where(
        (F.col("algorithm") == algorithm_name) & (F.col("name") == model_name)
    ).count()
    return existing + 1


def _to_json(value):
    if value is None:
        return json.dumps({})
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)


def save_artifact(
    spark,
    root_path,
    family,
    algorithm_name,
    model_name,
    model,
    params=None,
    metrics=None,
    stage="experiment",
    pack="WorksML",
    namespace="default",
):
    """
    save_artifact writes a trained model and appends its metadata row to the family index.

    Parameters
    ----------
    spark
        Spark Session
    root_path
        Root folder of the model store (local, hdfs or s3 path).
    family
        "classification", "regression", "clustering", "timeseries", "feature", "text".
    algorithm_name
        Identifier of the algorithm e.g. "AutoRegression".
    model_name
        Logical name of the model assigned by the user.
    model
        Trained model; any object with a save(path) method e.g. a Spark ML model.
    params
        dict (or JSON string) of hyperparameters. (Default value = None)
    metrics
        dict (or JSON string) of evaluation metrics; the family's metric columns are unpacked from it.
        (Default value = None)
    stage
        Lifecycle label e.g. "experiment", "staging", "production". (Default value = "experiment")
    pack
        Name of the package that trained the model. (Default value = "WorksML")
    namespace
        Namespace of the pipeline. (Default value = "default")

    Returns
    -------
    ModelArtifact

    """
    family = ModelFamily.parse(family)
    if not algorithm_name:
        raise ValueError("Invalid input for algorithm_name. It must not be empty.")
    if not model_name:
        raise ValueError("Invalid input for model_name. It must not be empty.")

    # the timestamp makes the path of each version unique
    ts = int(time.time() * 1000)
    fs_name = family.value
    fs_path = algorithm_name + "/" + str(ts) + "/" + model_name

    path = artifact_path(root_path, fs_name, fs_path)
    logger.info(f"saving {algorithm_name} model '{model_name}' to {path}")
    model.save(path)

    version = model_version(read_index(spark, root_path, family), algorithm_name, model_name)
    params_json = _to_json(params)
    metrics_json = _to_json(metrics)
    unpacked = unpack_metrics(family, metrics_json)

    row = (
        [ts, namespace, model_name, version, algorithm_name, pack, stage, params_json]
        + [unpacked[m] for m in metric_columns(family)]
        + [fs_name, fs_path]
    )
    spark.createDataFrame([tuple(row)], schema=index_schema(family)).coalesce(1).write.parquet(
        index_path(root_path, family), mode="append"
    )
    logger.info(f"registered {algorithm_name} model '{model_name}' as version {version} ({stage})")

    return ModelArtifact(
        family=family.value,
        algorithm_name=algorithm_name,
        model_name=model_name,
        version=version,
        timestamp=ts,
        stage=stage,
        fs_name=fs_name,
        storage_path=fs_path,
        params_json=params_json,
        metrics_json=metrics_json,
    )
