# coding=utf-8
"""
Training and prediction stages of the autoregressive models.

A training stage (train_ar) validates its configuration, fits an AutoRegression or DiffAutoRegression model on
the earlier part of every series, evaluates it on the later part and registers it in the model store under the
timeseries family. A prediction stage is split into initialize_ar, which resolves and loads the model once, and
compute_ar, which forecasts for a dataset; the StageContext returned by the former is the only state passed to the
latter.
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from loguru import logger
from pyspark.sql import functions as F
from pyspark.sql.window import Window

from predictiveworks.model_store.artifact_store import save_artifact
from predictiveworks.model_store.families import ModelFamily
from predictiveworks.model_store.registry import parse_option, read_model
from predictiveworks.time_series.autoregression import (
    AutoAR,
    AutoRegression,
    AutoRegressionModel,
    DiffAutoRegression,
    DiffAutoRegressionModel,
    check_diff_order,
    check_hyperparameters,
)

MODEL_CLASSES = {
    AutoRegressionModel.algorithm_name: AutoRegressionModel,
    DiffAutoRegressionModel.algorithm_name: DiffAutoRegressionModel,
}


def parse_data_split(data_split):
    """
    Parameters
    ----------
    data_split
        Train and test percentages e.g. "70:30"; they must add up to 100 with a positive train share.

    Returns
    -------
    (float, float)
        Train and test fractions.
    """
    try:
        train, test = [float(s) for s in str(data_split).split(":")]
    except ValueError:
        raise ValueError(
            f"Invalid input for data_split. data_split should be formatted as train:test e.g. 70:30 - "
            f"Received '{data_split}'."
        ) from None
    if train <= 0 or test < 0 or train + test != 100:
        raise ValueError(
            f"Invalid input for data_split. The train and test percentages must add up to 100 - "
            f"Received '{data_split}'."
        )
    return train / 100, test / 100


def _check_names(config, names):
    for name in names:
        if not getattr(config, name):
            raise TypeError(f"Invalid input for {name}. It must be a non-empty column or model name.")


def _estimator_kwargs(config):
    return {
        "reg_param": config.reg_param,
        "elastic_net_param": config.elastic_net_param,
        "standardization": config.standardization,
        "fit_intercept": config.fit_intercept,
        "group_col": config.group_col,
        "max_iter": config.max_iter,
        "tol": config.tol,
        "mean_out": config.mean_out,
    }


@dataclass(frozen=True)
class ARSinkConfig:
    model_name: str
    value_col: str
    time_col: str
    p: int
    group_col: Optional[str] = None
    reg_param: float = 0.0
    elastic_net_param: float = 0.0
    standardization: bool = True
    fit_intercept: bool = True
    max_iter: int = 100
    tol: float = 1e-6
    mean_out: bool = False
    data_split: str = "70:30"
    model_stage: str = "experiment"

    algorithm_name = AutoRegressionModel.algorithm_name

    def validate(self):
        _check_names(self, ["model_name", "value_col", "time_col", "model_stage"])
        check_hyperparameters(
            self.p, self.reg_param, self.elastic_net_param, self.max_iter, self.tol
        )
        parse_data_split(self.data_split)
        return self

    def estimator(self):
        return AutoRegression(self.value_col, self.time_col, self.p, **_estimator_kwargs(self))

    def to_params(self) -> Dict[str, Any]:
        params = self.estimator().params()
        params["dataSplit"] = self.data_split
        return params


@dataclass(frozen=True)
class DiffARSinkConfig(ARSinkConfig):
    d: int = 1

    algorithm_name = DiffAutoRegressionModel.algorithm_name

    def validate(self):
        check_diff_order(self.d)
        return super().validate()

    def estimator(self):
        return DiffAutoRegression(
            self.value_col, self.time_col, self.p, d=self.d, **_estimator_kwargs(self)
        )


@dataclass(frozen=True)
class AutoARSinkConfig:
    """
    Training configuration that selects the order of the model: p up to pmax, and d up to dmax if set. The
    registered algorithm is AutoRegression, or DiffAutoRegression when dmax is set.
    """

    model_name: str
    value_col: str
    time_col: str
    pmax: int
    dmax: Optional[int] = None
    criterion: str = "aic"
    group_col: Optional[str] = None
    reg_param: float = 0.0
    elastic_net_param: float = 0.0
    standardization: bool = True
    fit_intercept: bool = True
    max_iter: int = 100
    tol: float = 1e-6
    mean_out: bool = False
    data_split: str = "70:30"
    model_stage: str = "experiment"

    @property
    def algorithm_name(self):
        if self.dmax is None:
            return AutoRegressionModel.algorithm_name
        return DiffAutoRegressionModel.algorithm_name

    def validate(self):
        _check_names(self, ["model_name", "value_col", "time_col", "model_stage"])
        # AutoAR checks pmax, dmax, criterion and the regression parameters
        self.estimator()
        parse_data_split(self.data_split)
        return self

    def estimator(self):
        return AutoAR(
            self.value_col,
            self.time_col,
            self.pmax,
            dmax=self.dmax,
            criterion=self.criterion,
            **_estimator_kwargs(self),
        )

    def to_params(self) -> Dict[str, Any]:
        params = self.estimator().params()
        params["dataSplit"] = self.data_split
        return params


@dataclass(frozen=True)
class ARComputeConfig:
    model_name: str
    value_col: str
    time_col: str
    algorithm: str = AutoRegressionModel.algorithm_name
    group_col: Optional[str] = None
    steps: int = 1
    model_stage: str = "experiment"
    model_option: str = "latest"
    forecast_col: str = "forecast"

    def validate(self):
        _check_names(self, ["model_name", "value_col", "time_col", "forecast_col"])
        if self.algorithm not in MODEL_CLASSES:
            raise TypeError(
                f"Invalid input for algorithm. algorithm should be one of {list(MODEL_CLASSES)} - "
                f"Received '{self.algorithm}'."
            )
        if isinstance(self.steps, bool) or not isinstance(self.steps, int):
            raise TypeError("Invalid input for steps. The number of forecast steps must be an integer.")
        if self.steps < 0:
            raise ValueError(f"Invalid input for steps. steps must not be negative - Received {self.steps}.")
        parse_option(self.model_option)
        return self

    def to_params(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StageContext:
    config: ARComputeConfig
    model: Any
    profile: Dict[str, Any]


def sink_config(args):
    """
    AutoARSinkConfig if the arguments hold pmax, DiffARSinkConfig if they hold an order of differencing d, and
    ARSinkConfig otherwise. A null d counts as absent.
    """
    args = dict(args)
    if args.get("d") is None:
        args.pop("d", None)
    if "pmax" in args:
        return AutoARSinkConfig(**args)
    if "d" in args:
        return DiffARSinkConfig(**args)
    return ARSinkConfig(**args)


def train_ar(spark, idf, config, root_path):
    """
    Parameters
    ----------
    spark
        Spark Session
    idf
        Input Dataframe holding the series
    config
        ARSinkConfig, DiffARSinkConfig or AutoARSinkConfig
    root_path
        Root folder of the model store

    Returns
    -------
    ModelArtifact

    """
    config.validate()
    train_share, test_share = parse_data_split(config.data_split)

    if config.group_col:
        window = Window.partitionBy(config.group_col).orderBy(config.time_col)
    else:
        window = Window.partitionBy().orderBy(config.time_col)
    odf = idf.withColumn("_train", F.percent_rank().over(window) < F.lit(train_share))
    if test_share == 0:
        odf = odf.withColumn("_train", F.lit(True))

    model = config.estimator().fit(odf.where(F.col("_train")))
    if test_share > 0:
        metrics = model.evaluate(odf, condition=~F.col("_train"))
    else:
        metrics = {}
    logger.info(f"{model.algorithm_name} '{config.model_name}' evaluated: {metrics}")

    params = config.to_params()
    # the order an AutoARSinkConfig selected
    params.setdefault("p", model.p)
    if model.d:
        params.setdefault("d", model.d)

    return save_artifact(
        spark,
        root_path,
        ModelFamily.TIMESERIES,
        model.algorithm_name,
        config.model_name,
        model,
        params=params,
        metrics=metrics,
        stage=config.model_stage,
    )


def initialize_ar(spark, config, root_path):
    """
    initialize_ar resolves and loads the model a prediction stage works with. A model that cannot be resolved
    raises ModelNotFoundError.

    Returns
    -------
    StageContext
    """
    config.validate()
    model, profile = read_model(
        spark,
        root_path,
        ModelFamily.TIMESERIES,
        config.algorithm,
        config.model_name,
        MODEL_CLASSES[config.algorithm],
        stage=config.model_stage,
        option=config.model_option,
    )
    return StageContext(config=config, model=model, profile=profile)


def compute_ar(spark, context, idf):
    """
    compute_ar appends context.config.steps forecast rows per series to idf, flagged by the forecast column.
    The model is bound to the column names of the configuration, which may differ from those it was trained on;
    a configuration without group_col forecasts idf as a single series whatever group column the model was trained
    with.
    """
    config = context.config
    model = context.model.with_columns(config.value_col, config.time_col, config.group_col)
    logger.info(
        f"forecasting {config.steps} step(s) with {config.algorithm} '{config.model_name}' "
        f"version {context.profile.get('version')}"
    )
    return model.forecast_frame(idf, config.steps, forecast_col=config.forecast_col)
