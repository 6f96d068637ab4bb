# coding=utf-8
"""
Autoregressive forecasting models. An AR(p) model predicts the next value of a series as a linear function of its
p previous values:

    x(t) = w1 * x(t-1) + w2 * x(t-2) + ... + wp * x(t-p) + intercept

The differenced variant (ARIMA style, without moving average) fits the same linear function on the d-th backward
difference of the series and integrates the predicted differences back into absolute values when forecasting.

The coefficients are fitted by Spark's LinearRegression on the lagged frame; the estimator classes
(AutoRegression, DiffAutoRegression) return a new, immutable model for every fit. Forecasting N steps ahead is a
sequential recursion on the driver: each prediction becomes the most recent lag of the next step.

Weights are ordered most-recent-first: weights[0] belongs to x(t-1), weights[p-1] to x(t-p).

With mean_out the fitted series (values, or d-th differences) is centered on its training mean first; the model
keeps that mean and adds it back to every prediction. AutoAR selects p (and d) by the AIC or BIC of the fits.
"""
import datetime

import numpy as np
from loguru import logger
from pyspark.ml.evaluation import RegressionEvaluator
from pyspark.ml.feature import VectorAssembler
from pyspark.ml.regression import LinearRegression
from pyspark.sql import SparkSession
from pyspark.sql import functions as F
from pyspark.sql import types as T

from predictiveworks.data_transformer.lagging import (
    LaggingType,
    diff_col_name,
    diff_combination,
    lag_col_name,
    lagged_features,
    ts_difference,
)
from predictiveworks.data_transformer.vectorization import vectorize


class NotFittedError(RuntimeError):
    pass


class InsufficientDataError(ValueError):
    pass


def recursive_forecast(window, weights, intercept, num_ahead, last_levels=None):
    """
    Parameters
    ----------
    window
        Seed values, most recent first; at least len(weights) values.
    weights
        Fitted coefficients, most recent lag first.
    intercept
        Fitted intercept.
    num_ahead
        Number of steps to forecast.
    last_levels
        Only for differenced series: [last observed value, last 1st difference, ...], one entry per order of
        differencing. The window then holds differences and every prediction is integrated into an absolute value.
        (Default value = None)

    Returns
    -------
    list
        num_ahead forecasts in chronological order.
    """
    if num_ahead <= 0:
        return []

    p = len(weights)
    if len(window) < p:
        raise InsufficientDataError(
            f"Forecasting needs {p} seed values to fill the lag window - Received {len(window)}."
        )

    lags = list(window[:p])
    levels = list(last_levels) if last_levels is not None else None
    # both lists grow at the front; the newest forecast is element 0
    forecasts = []
    for _ in range(num_ahead):
        prediction = float(np.dot(lags, weights)) + intercept
        lags = [prediction] + lags[: p - 1]

        if levels is None:
            forecasts.insert(0, prediction)
        else:
            value = prediction
            for i in reversed(range(len(levels))):
                value = value + levels[i]
                levels[i] = value
            forecasts.insert(0, value)

    return list(reversed(forecasts))


def check_hyperparameters(p, reg_param, elastic_net_param, max_iter, tol):
    if isinstance(p, bool) or not isinstance(p, int):
        raise TypeError("Invalid input for p. The number of lag observations must be an integer.")
    if p < 1:
        raise ValueError(f"Invalid input for p. The number of lag observations must be positive - Received {p}.")
    if reg_param < 0:
        raise ValueError("Invalid input for reg_param. The regularization parameter must be at least 0.0.")
    if (elastic_net_param < 0) or (elastic_net_param > 1):
        raise ValueError("Invalid input for elastic_net_param. The ElasticNet mixing parameter must be in [0, 1].")
    if max_iter < 1:
        raise ValueError("Invalid input for max_iter. The maximum number of iterations must be at least 1.")
    if tol <= 0:
        raise ValueError("Invalid input for tol. The convergence tolerance must be positive.")


def check_diff_order(d):
    if d not in (1, 2):
        raise ValueError(f"Invalid input for d. The order of differencing must be 1 or 2 - Received {d}.")


CRITERIA = ("aic", "bic")


def information_criterion(mse, num_instances, num_params, criterion="aic"):
    """
    AIC (n * ln(RSS / n) + 2k) or BIC (n * ln(RSS / n) + k * ln(n)) of a least squares fit with Gaussian errors,
    where RSS / n is the mean squared error of the fit and k the number of fitted coefficients.
    """
    n = float(num_instances)
    fit = n * np.log(max(float(mse), np.finfo(float).tiny))
    if criterion == "aic":
        return float(fit + 2 * num_params)
    if criterion == "bic":
        return float(fit + num_params * np.log(n))
    raise TypeError(
        f"Invalid input for criterion. criterion should be one of {list(CRITERIA)} - Received '{criterion}'."
    )


# with_columns keeps the bound group column unless one (or None) is passed
_UNCHANGED = object()


def _linear_expression(weights, intercept, feature_cols):
    expr = F.lit(float(intercept))
    for w, c in zip(weights, feature_cols):
        expr = expr + F.lit(float(w)) * c
    return expr


class TimeSeriesModel:
    """Shared state & persistence of the fitted autoregressive models. Instances are read-only."""

    algorithm_name = None

    def __init__(
        self,
        weights,
        intercept,
        p,
        value_col,
        time_col,
        group_col=None,
        d=0,
        prediction_col="prediction",
        mean=0.0,
    ):
        self._weights = tuple(float(w) for w in weights) if weights is not None else None
        self._intercept = float(intercept) if intercept is not None else None
        self._p = int(p)
        self._d = int(d)
        self._mean = float(mean or 0.0)
        self.value_col = value_col
        self.time_col = time_col
        self.group_col = group_col or None
        self.prediction_col = prediction_col

    @property
    def weights(self):
        self._check_fitted()
        return list(self._weights)

    @property
    def intercept(self):
        self._check_fitted()
        return self._intercept

    @property
    def p(self):
        return self._p

    @property
    def d(self):
        return self._d

    @property
    def mean(self):
        """Training mean removed from the fitted series; 0.0 unless fitted with mean_out."""
        return self._mean

    def _shifted_intercept(self):
        # intercept on the uncentered series: mean + intercept + sum(w * (x - mean))
        return self._intercept + self._mean * (1.0 - sum(self._weights))

    def _check_fitted(self):
        if self._weights is None or self._intercept is None or len(self._weights) != self._p:
            raise NotFittedError(
                f"{self.algorithm_name} model holds no fitted coefficients for p={self._p}; fit it first."
            )

    def _copy(self, **overrides):
        state = {
            "weights": self._weights,
            "intercept": self._intercept,
            "p": self._p,
            "value_col": self.value_col,
            "time_col": self.time_col,
            "group_col": self.group_col,
            "prediction_col": self.prediction_col,
            "mean": self._mean,
        }
        if self._d:
            state["d"] = self._d
        state.update(overrides)
        return self.__class__(**state)

    def with_columns(self, value_col=None, time_col=None, group_col=_UNCHANGED):
        """
        Copy of the model bound to other column names (prediction data may differ from training data). An omitted
        value_col or time_col keeps the bound name; group_col is taken as given, so None yields a model for a
        single, ungrouped series, and only an omitted group_col keeps the bound one.
        """
        return self._copy(
            value_col=value_col or self.value_col,
            time_col=time_col or self.time_col,
            group_col=self.group_col if group_col is _UNCHANGED else group_col,
        )

    def _observed(self, idf):
        return idf.where(F.col(self.time_col).isNotNull() & F.col(self.value_col).isNotNull())

    def _check_single_series(self, idf):
        if not self.group_col:
            return
        num_series = idf.select(self.group_col).distinct().limit(2).count()
        if num_series > 1:
            raise ValueError(
                f"{self.algorithm_name}: the data holds more than one series of group column '{self.group_col}'. "
                f"Forecast one series at a time, or use forecast_frame to forecast every series."
            )

    def forecast(self, idf, num_ahead):
        """
        Parameters
        ----------
        idf
            Seed series; the most recent observations (ordered by time_col) start the recursion. Rows with a
            null value are skipped. A model with a group column accepts a single series (one group value) only.
        num_ahead
            Number of values to forecast.

        Returns
        -------
        list
            num_ahead forecasts in chronological order; [] if num_ahead <= 0.
        """
        self._check_fitted()
        self._check_single_series(idf)
        return self._forecast_series(idf, num_ahead)

    def _forecast_series(self, sdf, num_ahead):
        if num_ahead <= 0:
            return []
        window, last_levels = self._seed(self._observed(sdf))
        return recursive_forecast(
            window, self._weights, self._shifted_intercept(), num_ahead, last_levels
        )

    def forecast_frame(self, idf, num_ahead, forecast_col="forecast"):
        """
        forecast_frame appends num_ahead forecast rows to idf (per group if the model has a group column, a null
        group value included). The time of a forecast row continues the spacing of the last two observed (non
        null) values, so trailing rows with a null value are forecast again. A boolean column forecast_col marks
        the appended rows; columns that only exist in idf are null for them.
        """
        self._check_fitted()
        spark = SparkSession.builder.getOrCreate()
        odf = idf.withColumn(forecast_col, F.lit(False))
        if num_ahead <= 0:
            return odf

        if self.group_col:
            groups = [r[0] for r in idf.select(self.group_col).distinct().collect()]
            series = [(g, idf.where(F.col(self.group_col).eqNullSafe(g))) for g in groups]
        else:
            series = [(None, idf)]

        rows = []
        for group, sdf in series:
            values = self._forecast_series(sdf, num_ahead)
            times = _next_times(self._observed(sdf), self.time_col, num_ahead)
            for t, v in zip(times, values):
                rows.append(((group, t, v) if self.group_col else (t, v)) + (True,))

        fields = [
            idf.schema[self.time_col],
            T.StructField(self.value_col, T.DoubleType(), True),
            T.StructField(forecast_col, T.BooleanType(), False),
        ]
        if self.group_col:
            fields.insert(0, idf.schema[self.group_col])
        forecasts = spark.createDataFrame(rows, T.StructType(fields))

        odf = odf.withColumn(self.value_col, F.col(self.value_col).cast("double"))
        logger.info(f"{self.algorithm_name}: appended {len(rows)} forecast row(s)")
        return odf.unionByName(forecasts, allowMissingColumns=True)

    def evaluate(self, idf, condition=None):
        """
        Parameters
        ----------
        idf
            Series to predict; every row with enough history gets a one-step prediction.
        condition
            Column expression selecting the predicted rows that are evaluated, e.g. the test part of a series
            whose earlier rows only serve as lag history. (Default value = None)

        Returns
        -------
        dict
            rmse, mse, mae and r2; empty if no row could be evaluated.
        """
        predictions = self.transform(idf)
        if condition is not None:
            predictions = predictions.where(condition)
        if predictions.limit(1).count() == 0:
            logger.warning(f"{self.algorithm_name}: no rows with a complete lag window to evaluate")
            return {}
        evaluator = RegressionEvaluator(
            labelCol=self.label_col, predictionCol=self.prediction_col
        )
        return {
            metric: float(evaluator.evaluate(predictions, {evaluator.metricName: metric}))
            for metric in ("rmse", "mse", "mae", "r2")
        }

    def save(self, path):
        self._check_fitted()
        spark = SparkSession.builder.getOrCreate()
        schema = T.StructType(
            [
                T.StructField("algorithm", T.StringType(), False),
                T.StructField("value_col", T.StringType(), False),
                T.StructField("time_col", T.StringType(), False),
                T.StructField("group_col", T.StringType(), True),
                T.StructField("p", T.IntegerType(), False),
                T.StructField("d", T.IntegerType(), False),
                T.StructField("weights", T.ArrayType(T.DoubleType()), False),
                T.StructField("intercept", T.DoubleType(), False),
                T.StructField("mean", T.DoubleType(), False),
            ]
        )
        row = (
            self.algorithm_name,
            self.value_col,
            self.time_col,
            self.group_col,
            self._p,
            self._d,
            list(self._weights),
            self._intercept,
            self._mean,
        )
        spark.createDataFrame([row], schema).coalesce(1).write.parquet(path, mode="error")

    @classmethod
    def load(cls, path):
        spark = SparkSession.builder.getOrCreate()
        rows = spark.read.parquet(path).collect()
        if len(rows) != 1:
            raise ValueError(f"Expected exactly one model row at {path} - Found {len(rows)}.")
        row = rows[0]
        if row["algorithm"] != cls.algorithm_name:
            raise ValueError(
                f"The artifact at {path} holds a {row['algorithm']} model, not a {cls.algorithm_name} model."
            )
        state = {
            "weights": row["weights"],
            "intercept": row["intercept"],
            "p": row["p"],
            "value_col": row["value_col"],
            "time_col": row["time_col"],
            "group_col": row["group_col"],
            "mean": row.asDict().get("mean"),
        }
        if cls.algorithm_name == DiffAutoRegressionModel.algorithm_name:
            state["d"] = row["d"]
        model = cls(**state)
        model._check_fitted()
        return model


def _next_times(idf, time_col, num_ahead):
    recent = [
        r[0]
        for r in idf.where(F.col(time_col).isNotNull())
        .orderBy(F.desc(time_col))
        .select(time_col)
        .limit(2)
        .collect()
    ]
    if not recent:
        raise InsufficientDataError("Forecasting needs at least one observation with a time value.")
    if len(recent) == 1:
        step = datetime.timedelta(days=1) if isinstance(recent[0], datetime.date) else 1
    else:
        step = recent[0] - recent[1]
    return [recent[0] + step * (i + 1) for i in range(num_ahead)]


class AutoRegressionModel(TimeSeriesModel):

    algorithm_name = "AutoRegression"

    def __init__(
        self,
        weights,
        intercept,
        p,
        value_col,
        time_col,
        group_col=None,
        prediction_col="prediction",
        mean=0.0,
    ):
        super().__init__(
            weights, intercept, p, value_col, time_col, group_col, 0, prediction_col, mean
        )

    @property
    def label_col(self):
        return "label"

    def lagged(self, idf):
        """featuresAndLabels frame with the feature window reversed into most-recent-first order."""
        return lagged_features(
            idf,
            self.value_col,
            self.time_col,
            self._p,
            LaggingType.FEATURES_AND_LABELS,
            self.group_col,
        ).withColumn("features", F.reverse("features"))

    def series_mean(self, idf):
        return idf.agg(F.avg(F.col(self.value_col).cast("double"))).first()[0]

    def centered(self, ldf, mean):
        """Lagged frame with mean subtracted from the feature window and the label."""
        return ldf.withColumn(
            "features", F.transform("features", lambda x: x - F.lit(mean))
        ).withColumn(self.label_col, F.col(self.label_col) - F.lit(mean))

    def transform(self, idf):
        """Appends the one-step prediction of every row that has p preceding observations."""
        self._check_fitted()
        features = [F.element_at("features", i + 1) for i in range(self._p)]
        return self.lagged(idf).withColumn(
            self.prediction_col,
            _linear_expression(self._weights, self._shifted_intercept(), features),
        )

    def _seed(self, sdf):
        # features window of the most recent observation: [x(t-p+1), ..., x(t)]
        latest = (
            lagged_features(
                sdf.select(self.time_col, self.value_col),
                self.value_col,
                self.time_col,
                self._p,
                LaggingType.FEATURES,
            )
            .orderBy(F.desc(self.time_col))
            .select("features")
            .limit(1)
            .collect()
        )
        if not latest:
            raise InsufficientDataError(
                f"Forecasting with {self.algorithm_name} needs at least {self._p} observations."
            )
        return list(reversed(latest[0]["features"])), None


class DiffAutoRegressionModel(TimeSeriesModel):

    algorithm_name = "DiffAutoRegression"

    def __init__(
        self,
        weights,
        intercept,
        p,
        value_col,
        time_col,
        group_col=None,
        d=1,
        prediction_col="prediction",
        mean=0.0,
    ):
        check_diff_order(d)
        super().__init__(
            weights, intercept, p, value_col, time_col, group_col, d, prediction_col, mean
        )

    @property
    def label_col(self):
        return lag_col_name(diff_col_name(self.value_col, self._d), 0)

    @property
    def feature_cols(self):
        prefix = diff_col_name(self.value_col, self._d)
        return [lag_col_name(prefix, i) for i in range(1, self._p + 1)]

    def lagged(self, idf):
        return diff_combination(
            idf, self.value_col, self.time_col, self._p, self._d, self.group_col
        )

    def series_mean(self, idf):
        """Mean of the d-th difference of the series."""
        diffs = ts_difference(
            idf.where(F.col(self.value_col).isNotNull()),
            self.value_col,
            self.time_col,
            diff=self._d,
            group_col=self.group_col,
            output_col="_diff",
        )
        return diffs.agg(F.avg("_diff")).first()[0]

    def centered(self, ldf, mean):
        for col in self.feature_cols + [self.label_col]:
            ldf = ldf.withColumn(col, F.col(col) - F.lit(mean))
        return ldf

    def transform(self, idf):
        """Appends the predicted d-th difference of every row with p preceding differences."""
        self._check_fitted()
        features = [F.col(c) for c in self.feature_cols]
        return self.lagged(idf).withColumn(
            self.prediction_col,
            _linear_expression(self._weights, self._shifted_intercept(), features),
        )

    def _seed(self, sdf):
        sdf = sdf.select(self.time_col, self.value_col)
        diffs = [
            r[0]
            for r in ts_difference(
                sdf, self.value_col, self.time_col, diff=self._d, output_col="_diff"
            )
            .orderBy(F.desc(self.time_col))
            .select("_diff")
            .limit(self._p)
            .collect()
        ]
        if len(diffs) < self._p:
            raise InsufficientDataError(
                f"Forecasting with {self.algorithm_name} needs at least {self._p + self._d} observations."
            )

        recent = [
            float(r[0])
            for r in sdf.orderBy(F.desc(self.time_col))
            .select(self.value_col)
            .limit(self._d)
            .collect()
        ]
        # [x(t), x(t) - x(t-1), ...] for the last observed point
        levels = []
        for _ in range(self._d):
            levels.append(recent[0])
            recent = [a - b for a, b in zip(recent, recent[1:])]
        return diffs, levels


class AutoRegression:
    """
    Estimator of AutoRegressionModel.

    Parameters
    ----------
    value_col
        Numerical column holding the series values.
    time_col
        Column defining the order of the series.
    p
        Number of lag observations (at least 1).
    reg_param
        Regularization parameter (>= 0). (Default value = 0.0)
    elastic_net_param
        ElasticNet mixing parameter in [0, 1]; 0 is an L2 penalty, 1 an L1 penalty. (Default value = 0.0)
    standardization
        Standardize the lagged features before fitting. (Default value = True)
    fit_intercept
        Fit an intercept term. (Default value = True)
    group_col
        Fit one series per group value, windows never cross groups. (Default value = None)
    max_iter
        Maximum number of iterations of the linear regression. (Default value = 100)
    tol
        Convergence tolerance of the linear regression. (Default value = 1e-6)
    mean_out
        Center the series on its training mean before fitting; forecasts are shifted back. (Default value = False)
    """

    model_class = AutoRegressionModel

    def __init__(
        self,
        value_col,
        time_col,
        p,
        reg_param=0.0,
        elastic_net_param=0.0,
        standardization=True,
        fit_intercept=True,
        group_col=None,
        max_iter=100,
        tol=1e-6,
        mean_out=False,
    ):
        check_hyperparameters(p, reg_param, elastic_net_param, max_iter, tol)
        self.value_col = value_col
        self.time_col = time_col
        self.p = p
        self.reg_param = float(reg_param)
        self.elastic_net_param = float(elastic_net_param)
        self.standardization = bool(standardization)
        self.fit_intercept = bool(fit_intercept)
        self.group_col = group_col or None
        self.max_iter = int(max_iter)
        self.tol = float(tol)
        self.mean_out = bool(mean_out)

    def _untrained(self):
        return self.model_class(
            None, None, self.p, self.value_col, self.time_col, self.group_col
        )

    def _linear_regression(self, label_col):
        return LinearRegression(
            featuresCol="_vector",
            labelCol=label_col,
            regParam=self.reg_param,
            elasticNetParam=self.elastic_net_param,
            standardization=self.standardization,
            fitIntercept=self.fit_intercept,
            maxIter=self.max_iter,
            tol=self.tol,
        )

    def _vectorized(self, untrained, ldf):
        return vectorize(ldf, "features", "_vector")

    def fit_summary(self, idf):
        """
        Fits the model and returns it together with the mean squared error and the number of rows of the fit,
        the inputs of an information criterion.

        Returns
        -------
        (TimeSeriesModel, float, int)
        """
        untrained = self._untrained()
        mean = 0.0
        if self.mean_out:
            mean = untrained.series_mean(idf) or 0.0

        ldf = untrained.lagged(idf)
        if self.mean_out:
            ldf = untrained.centered(ldf, mean)
        frame = self._vectorized(untrained, ldf)
        frame.persist()
        try:
            if frame.limit(1).count() == 0:
                raise InsufficientDataError(
                    f"{self.model_class.algorithm_name} needs more than {self.p} observations per series to fit."
                )
            lr_model = self._linear_regression(untrained.label_col).fit(frame)
            summary = lr_model.summary
            mse, num_instances = float(summary.meanSquaredError), int(summary.numInstances)
        finally:
            frame.unpersist()

        weights = lr_model.coefficients.toArray().tolist()
        logger.info(
            f"{self.model_class.algorithm_name}(p={self.p}) fitted: weights={weights}, "
            f"intercept={lr_model.intercept}, mean={mean}"
        )
        model = untrained._copy(weights=weights, intercept=float(lr_model.intercept), mean=mean)
        return model, mse, num_instances

    def fit(self, idf):
        return self.fit_summary(idf)[0]

    def num_params(self):
        return self.p + (1 if self.fit_intercept else 0)

    def params(self):
        return {
            "p": self.p,
            "regParam": self.reg_param,
            "elasticNetParam": self.elastic_net_param,
            "standardization": self.standardization,
            "fitIntercept": self.fit_intercept,
            "maxIter": self.max_iter,
            "tol": self.tol,
            "meanOut": self.mean_out,
        }


class DiffAutoRegression(AutoRegression):
    """
    Estimator of DiffAutoRegressionModel: AutoRegression on the d-th difference (d = 1 or 2) of the series.
    Takes the parameters of AutoRegression plus d.
    """

    model_class = DiffAutoRegressionModel

    def __init__(self, value_col, time_col, p, d=1, **kwargs):
        check_diff_order(d)
        super().__init__(value_col, time_col, p, **kwargs)
        self.d = d

    def _untrained(self):
        return self.model_class(
            None, None, self.p, self.value_col, self.time_col, self.group_col, d=self.d
        )

    def _vectorized(self, untrained, ldf):
        assembler = VectorAssembler(inputCols=untrained.feature_cols, outputCol="_vector")
        return assembler.transform(ldf)

    def params(self):
        params = super().params()
        params["d"] = self.d
        return params


class AutoAR:
    """
    Order selection for AutoRegression: fits p = 1..pmax (and, with dmax, DiffAutoRegression with d = 1..dmax
    for every p) on the same data and returns the fitted model with the lowest information criterion.

    Parameters
    ----------
    value_col
        Numerical column holding the series values.
    time_col
        Column defining the order of the series.
    pmax
        Upper limit of the number of lag observations (at least 1).
    dmax
        Upper limit of the order of differencing, 1 or 2; None fits undifferenced models only.
        (Default value = None)
    criterion
        "aic", "bic". (Default value = "aic")
    **kwargs
        Further parameters of AutoRegression (reg_param, group_col, mean_out, ...).
    """

    def __init__(self, value_col, time_col, pmax, dmax=None, criterion="aic", **kwargs):
        if isinstance(pmax, bool) or not isinstance(pmax, int):
            raise TypeError("Invalid input for pmax. The upper limit of the number of lags must be an integer.")
        if pmax < 1:
            raise ValueError(
                f"Invalid input for pmax. The upper limit of the number of lags must be positive - Received {pmax}."
            )
        if dmax is not None:
            check_diff_order(dmax)
        criterion = str(criterion).lower()
        if criterion not in CRITERIA:
            raise TypeError(
                f"Invalid input for criterion. criterion should be one of {list(CRITERIA)} - Received '{criterion}'."
            )
        self.value_col = value_col
        self.time_col = time_col
        self.pmax = pmax
        self.dmax = dmax
        self.criterion = criterion
        self.kwargs = kwargs
        # validates the shared parameters up front
        AutoRegression(value_col, time_col, 1, **kwargs)

    def candidates(self):
        if self.dmax is None:
            return [
                AutoRegression(self.value_col, self.time_col, p, **self.kwargs)
                for p in range(1, self.pmax + 1)
            ]
        return [
            DiffAutoRegression(self.value_col, self.time_col, p, d=d, **self.kwargs)
            for d in range(1, self.dmax + 1)
            for p in range(1, self.pmax + 1)
        ]

    def scores(self, idf):
        """
        Returns
        -------
        list
            (criterion value, fitted model) per candidate order that has enough data to fit.
        """
        idf = idf.persist()
        scored = []
        try:
            for estimator in self.candidates():
                try:
                    model, mse, num_instances = estimator.fit_summary(idf)
                except InsufficientDataError as e:
                    logger.warning(f"AutoAR: skipping p={estimator.p} - {e}")
                    continue
                score = information_criterion(mse, num_instances, estimator.num_params(), self.criterion)
                logger.info(
                    f"AutoAR: {model.algorithm_name}(p={model.p}, d={model.d}) {self.criterion}={score}"
                )
                scored.append((score, model))
        finally:
            idf.unpersist()
        return scored

    def fit(self, idf):
        scored = self.scores(idf)
        if not scored:
            raise InsufficientDataError(
                f"AutoAR could not fit any order up to pmax={self.pmax}; the series are too short."
            )
        score, model = min(scored, key=lambda s: s[0])
        logger.info(f"AutoAR selected {model.algorithm_name}(p={model.p}, d={model.d}) with {self.criterion}={score}")
        return model

    def params(self):
        params = AutoRegression(self.value_col, self.time_col, 1, **self.kwargs).params()
        del params["p"]
        params.update({"pmax": self.pmax, "dmax": self.dmax, "criterion": self.criterion})
        return params
