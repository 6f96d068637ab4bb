# coding=utf-8
"""
Trained models are grouped into families. Each family has its own root folder in the model store and its own
metadata index, whose metric columns depend on how models of that family are evaluated.
"""
import json
from enum import Enum

from pyspark.sql import types as T


class ModelFamily(Enum):
    CLASSIFICATION = "classification"
    REGRESSION = "regression"
    CLUSTERING = "clustering"
    TIMESERIES = "timeseries"
    FEATURE = "feature"
    TEXT = "text"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise TypeError(
                f"Invalid input for model family. family should be one of "
                f"{[f.value for f in cls]} - Received '{value}'."
            ) from None


# metric columns of the metadata index per family
METRIC_COLUMNS = {
    ModelFamily.CLASSIFICATION: ["accuracy", "f1", "weighted_precision", "weighted_recall"],
    ModelFamily.REGRESSION: ["rmse", "mse", "mae", "r2"],
    ModelFamily.CLUSTERING: [
        "silhouette_euclidean",
        "silhouette_cosine",
        "perplexity",
        "likelihood",
    ],
    ModelFamily.TIMESERIES: ["rmse", "mse", "mae", "r2"],
    ModelFamily.FEATURE: [],
    ModelFamily.TEXT: [],
}

# (metric column, True if higher is better) used to select the best model of a family
BEST_METRIC = {
    ModelFamily.CLASSIFICATION: ("accuracy", True),
    ModelFamily.REGRESSION: ("rmse", False),
    ModelFamily.CLUSTERING: ("silhouette_euclidean", True),
    ModelFamily.TIMESERIES: ("rmse", False),
    ModelFamily.FEATURE: None,
    ModelFamily.TEXT: None,
}

METRIC_ALIASES = {"rsme": "rmse"}


def metric_columns(family):
    return METRIC_COLUMNS[ModelFamily.parse(family)]


def best_metric(family):
    return BEST_METRIC[ModelFamily.parse(family)]


def index_schema(family):
    """Schema of the metadata index of a model family."""
    fields = [
        T.StructField("timestamp", T.LongType(), False),
        T.StructField("namespace", T.StringType(), True),
        T.StructField("name", T.StringType(), False),
        T.StructField("version", T.IntegerType(), False),
        T.StructField("algorithm", T.StringType(), False),
        T.StructField("pack", T.StringType(), True),
        T.StructField("stage", T.StringType(), True),
        T.StructField("params", T.StringType(), True),
    ]
    fields += [T.StructField(m, T.DoubleType(), True) for m in metric_columns(family)]
    fields += [
        T.StructField("fs_name", T.StringType(), False),
        T.StructField("fs_path", T.StringType(), False),
    ]
    return T.StructType(fields)


def unpack_metrics(family, metrics):
    """
    Parameters
    ----------
    family
        ModelFamily or its value e.g. "timeseries"
    metrics
        dict or JSON string of evaluation metrics e.g. {"rmse": 0.3, "r2": 0.9}

    Returns
    -------
    dict
        One entry per metric column of the family; metrics that were not provided are None.
    """
    if metrics is None:
        metrics = {}
    elif isinstance(metrics, str):
        metrics = json.loads(metrics) if metrics.strip() else {}

    metrics = {METRIC_ALIASES.get(k, k): v for k, v in metrics.items()}
    unpacked = {}
    for m in metric_columns(family):
        value = metrics.get(m)
        unpacked[m] = float(value) if value is not None else None
    return unpacked
