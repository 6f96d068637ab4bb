import math
import random

import pytest
from pyspark.sql import functions as F
from utils import assert_values_close, column_values, series_frame

from predictiveworks.time_series.autoregression import (
    AutoAR,
    AutoRegression,
    AutoRegressionModel,
    DiffAutoRegression,
    DiffAutoRegressionModel,
    InsufficientDataError,
    NotFittedError,
    information_criterion,
    recursive_forecast,
)


def ar1_series(n, weight, intercept, start):
    values = [start]
    for _ in range(n - 1):
        values.append(weight * values[-1] + intercept)
    return values


def noisy_ar2_series(n, seed=11):
    rng = random.Random(seed)
    values = [10.0, 12.0]
    for _ in range(n - 2):
        values.append(0.5 * values[-1] - 0.6 * values[-2] + 5.0 + rng.gauss(0.0, 0.5))
    return values


def test_recursive_forecast():
    # window is most recent first: x(t) = 12, x(t-1) = 10
    forecasts = recursive_forecast([12.0, 10.0], [0.5, 0.3], 0.0, 2)

    assert_values_close(forecasts, [9.0, 8.1])


def test_that_forecast_length_matches_the_horizon():
    assert recursive_forecast([1.0], [0.5], 1.0, 0) == []
    assert recursive_forecast([1.0], [0.5], 1.0, -3) == []
    assert len(recursive_forecast([1.0, 2.0, 3.0], [0.1, 0.2], 0.5, 7)) == 7


def test_that_a_short_seed_is_rejected():
    with pytest.raises(InsufficientDataError):
        recursive_forecast([1.0], [0.5, 0.3], 0.0, 2)


def test_that_differenced_forecasts_are_integrated():
    # last value 10, last difference 2, each predicted difference equals the previous one
    assert_values_close(recursive_forecast([2.0], [1.0], 0.0, 2, last_levels=[10.0]), [12.0, 14.0])
    # second differences of 1 on top of x(t) = 10, x(t) - x(t-1) = 2
    assert_values_close(
        recursive_forecast([0.0], [0.0], 1.0, 2, last_levels=[10.0, 2.0]), [13.0, 17.0]
    )


def test_model_forecast(spark_session):
    df = series_frame(spark_session, [1.0, 2.0, 10.0, 12.0])
    model = AutoRegressionModel([0.5, 0.3], 0.0, 2, "value", "t")

    assert_values_close(model.forecast(df, 2), [9.0, 8.1])
    assert model.forecast(df, 0) == []

    with pytest.raises(InsufficientDataError):
        model.forecast(series_frame(spark_session, [5.0]), 1)


def test_model_transform(spark_session):
    df = series_frame(spark_session, [1.0, 2.0, 10.0, 12.0])
    model = AutoRegressionModel([0.5, 0.3], 0.0, 2, "value", "t")

    odf = model.transform(df)

    assert column_values(odf, "t") == [3, 4]
    assert column_values(odf, "features") == [[2.0, 1.0], [10.0, 2.0]]
    assert_values_close(column_values(odf, "prediction"), [1.3, 5.6])


def test_forecast_frame(spark_session):
    df = series_frame(spark_session, [1.0, 2.0, 10.0, 12.0])
    model = AutoRegressionModel([0.5, 0.3], 0.0, 2, "value", "t")

    odf = model.forecast_frame(df, 2)

    assert odf.count() == 6
    forecasts = odf.where(F.col("forecast"))
    assert column_values(forecasts, "t") == [5, 6]
    assert_values_close(column_values(forecasts, "value"), [9.0, 8.1])
    assert odf.where(~F.col("forecast")).count() == 4


def test_grouped_forecast_frame(spark_session):
    df = series_frame(spark_session, [1.0, 2.0], group="a").union(
        series_frame(spark_session, [10.0, 20.0], group="b")
    )
    model = AutoRegressionModel([1.0], 1.0, 1, "value", "t", group_col="grp")

    forecasts = model.forecast_frame(df, 2).where(F.col("forecast"))

    assert column_values(forecasts.where(F.col("grp") == "a"), "value") == [3.0, 4.0]
    assert column_values(forecasts.where(F.col("grp") == "b"), "value") == [21.0, 22.0]


def test_differenced_model_forecast(spark_session):
    df = series_frame(spark_session, [1.0, 4.0, 6.0, 8.0, 10.0])
    model = DiffAutoRegressionModel([1.0], 0.0, 1, "value", "t", d=1)

    assert_values_close(model.forecast(df, 2), [12.0, 14.0])

    df = series_frame(spark_session, [1.0, 2.0, 4.0, 7.0])
    model = DiffAutoRegressionModel([1.0], 0.0, 1, "value", "t", d=2)

    assert_values_close(model.forecast(df, 2), [11.0, 16.0])


def test_that_models_without_coefficients_cannot_forecast(spark_session):
    df = series_frame(spark_session, [1.0, 2.0, 3.0])
    model = AutoRegressionModel(None, None, 2, "value", "t")

    with pytest.raises(NotFittedError):
        model.forecast(df, 1)
    with pytest.raises(NotFittedError):
        model.transform(df)
    with pytest.raises(NotFittedError):
        AutoRegressionModel([0.1], 0.0, 2, "value", "t").weights


def test_fit_recovers_ar_coefficients(spark_session):
    df = series_frame(spark_session, ar1_series(30, 0.9, 5.0, 100.0))

    model = AutoRegression("value", "t", 1).fit(df)

    assert model.weights == pytest.approx([0.9], abs=1e-4)
    assert model.intercept == pytest.approx(5.0, abs=1e-2)
    metrics = model.evaluate(df)
    assert metrics["rmse"] == pytest.approx(0.0, abs=1e-3)
    assert set(metrics) == {"rmse", "mse", "mae", "r2"}


def test_fit_recovers_differenced_coefficients(spark_session):
    diffs = ar1_series(15, 0.5, 1.0, 10.0)
    values = [0.0]
    for d in diffs:
        values.append(values[-1] + d)
    df = series_frame(spark_session, values)

    model = DiffAutoRegression("value", "t", 1, d=1).fit(df)

    assert model.d == 1
    assert model.weights == pytest.approx([0.5], abs=1e-4)
    assert model.intercept == pytest.approx(1.0, abs=1e-3)
    assert model.label_col == "value_diff_1_lag_0"


def test_that_fitting_returns_a_new_model(spark_session):
    estimator = AutoRegression("value", "t", 1)
    first = estimator.fit(series_frame(spark_session, ar1_series(20, 0.5, 1.0, 10.0)))
    second = estimator.fit(series_frame(spark_session, ar1_series(20, 0.8, 1.0, 10.0)))

    assert first.weights != second.weights
    assert first.weights == pytest.approx([0.5], abs=1e-4)


def test_that_fitting_needs_enough_rows(spark_session):
    with pytest.raises(InsufficientDataError):
        AutoRegression("value", "t", 3).fit(series_frame(spark_session, [1.0, 2.0, 3.0]))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"p": 0},
        {"p": 2, "reg_param": -0.1},
        {"p": 2, "elastic_net_param": 1.5},
        {"p": 2, "max_iter": 0},
    ],
)
def test_that_invalid_hyperparameters_are_rejected(kwargs):
    with pytest.raises(ValueError):
        AutoRegression("value", "t", **kwargs)


def test_that_invalid_difference_orders_are_rejected():
    with pytest.raises(ValueError):
        DiffAutoRegression("value", "t", 2, d=3)
    with pytest.raises(TypeError):
        AutoRegression("value", "t", 1.5)


def test_save_and_load(spark_session, tmp_path):
    model = DiffAutoRegressionModel(
        [0.25, -0.5], 1.5, 2, "value", "t", group_col="grp", d=2, mean=2.5
    )
    path = str(tmp_path / "model")

    model.save(path)
    loaded = DiffAutoRegressionModel.load(path)

    assert loaded.weights == [0.25, -0.5]
    assert loaded.intercept == 1.5
    assert (loaded.p, loaded.d, loaded.group_col) == (2, 2, "grp")
    assert loaded.mean == 2.5
    with pytest.raises(ValueError):
        AutoRegressionModel.load(path)


def test_with_columns(spark_session):
    model = AutoRegressionModel([1.0], 0.0, 1, "value", "t")

    renamed = model.with_columns("reading", "ts")

    assert (renamed.value_col, renamed.time_col) == ("reading", "ts")
    assert (model.value_col, model.time_col) == ("value", "t")
    assert renamed.weights == model.weights

    grouped = model.with_columns(group_col="grp")
    assert grouped.group_col == "grp"
    assert grouped.with_columns("reading").group_col == "grp"
    assert grouped.with_columns("reading", "ts", None).group_col is None


def test_that_forecast_rejects_several_series(spark_session):
    df = series_frame(spark_session, [1.0, 2.0], group="a").union(
        series_frame(spark_session, [10.0, 20.0], group="b")
    )
    model = AutoRegressionModel([1.0], 1.0, 1, "value", "t", group_col="grp")

    with pytest.raises(ValueError, match="more than one series of group column 'grp'"):
        model.forecast(df, 2)
    assert_values_close(model.forecast(df.where(F.col("grp") == "b"), 2), [21.0, 22.0])


def test_that_a_null_group_is_forecast(spark_session):
    df = spark_session.createDataFrame(
        [(None, 1, 1.0), (None, 2, 2.0), ("b", 1, 10.0), ("b", 2, 20.0)],
        "grp string, t int, value double",
    )
    model = AutoRegressionModel([1.0], 1.0, 1, "value", "t", group_col="grp")

    forecasts = model.forecast_frame(df, 2).where(F.col("forecast"))

    assert forecasts.count() == 4
    assert column_values(forecasts.where(F.col("grp").isNull()), "value") == [3.0, 4.0]
    assert column_values(forecasts.where(F.col("grp") == "b"), "value") == [21.0, 22.0]


def test_that_null_values_are_skipped_when_seeding(spark_session):
    model = AutoRegressionModel([0.5, 0.3], 0.0, 2, "value", "t")

    # the seed is [12, 10] in both frames
    inner = series_frame(spark_session, [1.0, 2.0, 10.0, None, 12.0])
    assert_values_close(model.forecast(inner, 2), [9.0, 8.1])

    trailing = series_frame(spark_session, [1.0, 2.0, 10.0, 12.0, None])
    forecasts = model.forecast_frame(trailing, 2).where(F.col("forecast"))
    assert column_values(forecasts, "t") == [5, 6]
    assert_values_close(column_values(forecasts, "value"), [9.0, 8.1])


def test_model_with_mean(spark_session):
    df = series_frame(spark_session, [14.0, 12.0])
    model = AutoRegressionModel([0.5], 0.0, 1, "value", "t", mean=10.0)

    # 10 + 0.5 * (12 - 10), then 10 + 0.5 * (11 - 10)
    assert_values_close(model.forecast(df, 2), [11.0, 10.5])
    assert_values_close(column_values(model.transform(df), "prediction"), [12.0])
    assert model.with_columns("reading").mean == 10.0


def test_fit_with_mean_out(spark_session):
    values = ar1_series(30, 0.9, 5.0, 100.0)
    df = series_frame(spark_session, values)

    plain = AutoRegression("value", "t", 1).fit(df)
    centered = AutoRegression("value", "t", 1, mean_out=True).fit(df)

    assert plain.mean == 0.0
    assert centered.mean == pytest.approx(sum(values) / len(values))
    assert centered.weights == pytest.approx([0.9], abs=1e-4)
    assert centered.intercept == pytest.approx(5.0 - 0.1 * centered.mean, abs=1e-2)
    assert_values_close(centered.forecast(df, 3), plain.forecast(df, 3), abs_tol=1e-3)
    assert AutoRegression("value", "t", 1, mean_out=True).params()["meanOut"] is True


def test_differenced_fit_with_mean_out(spark_session):
    diffs = ar1_series(15, 0.5, 1.0, 10.0)
    values = [0.0]
    for d in diffs:
        values.append(values[-1] + d)
    df = series_frame(spark_session, values)

    model = DiffAutoRegression("value", "t", 1, d=1, mean_out=True).fit(df)

    assert model.mean == pytest.approx(sum(diffs) / len(diffs))
    assert model.weights == pytest.approx([0.5], abs=1e-4)
    expected = DiffAutoRegression("value", "t", 1, d=1).fit(df).forecast(df, 2)
    assert_values_close(model.forecast(df, 2), expected, abs_tol=1e-3)


def test_information_criterion():
    assert information_criterion(1.0, 100, 3, "aic") == pytest.approx(6.0)
    assert information_criterion(1.0, 100, 3, "bic") == pytest.approx(3 * math.log(100))
    assert information_criterion(math.e, 10, 2) == pytest.approx(14.0)
    with pytest.raises(TypeError):
        information_criterion(1.0, 100, 3, "hqic")


def test_auto_ar_selects_the_lag_order(spark_session):
    df = series_frame(spark_session, noisy_ar2_series(200))
    auto = AutoAR("value", "t", 2, criterion="BIC")

    scores = auto.scores(df)
    model = auto.fit(df)

    assert [m.p for _, m in scores] == [1, 2]
    assert scores[1][0] < scores[0][0]
    assert isinstance(model, AutoRegressionModel)
    assert model.p == 2
    assert model.weights == pytest.approx([0.5, -0.6], abs=0.2)
    assert auto.params()["criterion"] == "bic"
    assert "p" not in auto.params()


def test_auto_ar_with_differencing(spark_session):
    values = [0.0]
    for x in noisy_ar2_series(60):
        values.append(values[-1] + x)
    auto = AutoAR("value", "t", 1, dmax=2)

    scores = auto.scores(series_frame(spark_session, values))

    assert [(m.p, m.d) for _, m in scores] == [(1, 1), (1, 2)]
    assert all(isinstance(m, DiffAutoRegressionModel) for _, m in scores)


def test_that_auto_ar_needs_enough_rows(spark_session):
    with pytest.raises(InsufficientDataError):
        AutoAR("value", "t", 3).fit(series_frame(spark_session, [1.0]))


@pytest.mark.parametrize(
    "kwargs, error",
    [
        ({"pmax": 0}, ValueError),
        ({"pmax": 2, "dmax": 3}, ValueError),
        ({"pmax": 2, "criterion": "hqic"}, TypeError),
        ({"pmax": 2, "reg_param": -1.0}, ValueError),
    ],
)
def test_that_invalid_auto_ar_settings_are_rejected(kwargs, error):
    with pytest.raises(error):
        AutoAR("value", "t", **kwargs)
