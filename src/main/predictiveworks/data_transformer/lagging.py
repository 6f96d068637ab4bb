# coding=utf-8
"""
This module turns a single time-ordered value series into supervised learning frames for autoregressive modelling.
Functions supported through this module are listed below:

- lagged_features
- ts_lag
- ts_difference
- lag_combination
- diff_combination

All functions order the rows by the time column and, if a group column is provided, treat each group as an
independent series: a window never crosses from one group into another. Rows at the start of a series that do
not have enough history for a complete window (or a defined difference) are excluded from the output; they are
neither padded nor filled with nulls.

"""
from enum import Enum

from loguru import logger
from pyspark.sql import functions as F
from pyspark.sql.window import Window

from predictiveworks.shared.utils import check_columns_exist


class LaggingType(Enum):
    """
    features
        The current value and the k-1 values before it (window size k). Used to frame the next point in time
        for forecasting.
    pastFeatures
        The k values before the current one, excluding it (window size k). Used to build evaluation sets
        without leaking the value to be predicted.
    featuresAndLabels
        The k values before the current one as features, plus the current value as label (window size k+1).
    """

    FEATURES = "features"
    PAST_FEATURES = "pastFeatures"
    FEATURES_AND_LABELS = "featuresAndLabels"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise TypeError(
                f"Invalid input for lagging_type. lagging_type should be features, pastFeatures or "
                f"featuresAndLabels - Received '{value}'."
            ) from None


def time_window(time_col, group_col=None):
    if group_col:
        return Window.partitionBy(group_col).orderBy(time_col)
    return Window.partitionBy().orderBy(time_col)


def _check_lag(lag, name="lag"):
    if isinstance(lag, bool) or not isinstance(lag, int):
        raise TypeError(f"Invalid input for {name}. {name} must be an integer.")
    if lag < 1:
        raise ValueError(f"Invalid input for {name}. {name} must be at least 1 - Received {lag}.")


def _check_input(idf, value_col, time_col, group_col, func_name):
    cols = [value_col, time_col] + ([group_col] if group_col else [])
    check_columns_exist(idf, cols, func_name)


def lag_col_name(value_col, lag):
    return value_col + "_lag_" + str(lag)


def diff_col_name(value_col, diff):
    return value_col + "_diff_" + str(diff)


def lagged_features(
    idf,
    value_col,
    time_col,
    lag,
    lagging_type="featuresAndLabels",
    group_col=None,
    features_col="features",
    label_col="label",
):
    """
    lagged_features builds, for each row, the window of the most recent values of value_col (ordered by
    time_col) as an array<double> in chronological order, i.e. [x(t-k), ..., x(t-1)] for pastFeatures and
    featuresAndLabels, and [x(t-k+1), ..., x(t)] for features. Rows whose window is shorter than required, or
    whose window contains a null value, are excluded.

    Parameters
    ----------
    idf
        Input Dataframe
    value_col
        Numerical column holding the series values.
    time_col
        Column defining the order of the series (timestamp, date or numeric).
    lag
        Number of past points of time to take into account (k).
    lagging_type
        "features", "pastFeatures", "featuresAndLabels". (Default value = "featuresAndLabels")
    group_col
        Rows are partitioned by this column before creating the window. (Default value = None)
    features_col
        Name of the output column holding the feature window. (Default value = "features")
    label_col
        Name of the output column holding the label; only used for featuresAndLabels. (Default value = "label")

    Returns
    -------
    DataFrame

    """
    _check_lag(lag)
    lagging_type = LaggingType.parse(lagging_type)
    _check_input(idf, value_col, time_col, group_col, "lagged_features")

    window = time_window(time_col, group_col)
    if lagging_type == LaggingType.FEATURES_AND_LABELS:
        frame = window.rowsBetween(-lag, 0)
        size = lag + 1
    elif lagging_type == LaggingType.PAST_FEATURES:
        frame = window.rowsBetween(-lag, -1)
        size = lag
    else:
        frame = window.rowsBetween(-(lag - 1), 0)
        size = lag

    logger.debug(f"lagged_features: {lagging_type.value} with window size {size}")

    # collect_list skips nulls, so the row count of the frame is checked as well
    odf = (
        idf.withColumn(
            "_window", F.collect_list(F.col(value_col).cast("double")).over(frame)
        )
        .withColumn("_rows", F.count(F.lit(1)).over(frame))
        .where((F.size("_window") == size) & (F.col("_rows") == size))
    )

    if lagging_type == LaggingType.FEATURES_AND_LABELS:
        odf = odf.withColumn(features_col, F.slice("_window", 1, lag)).withColumn(
            label_col, F.element_at("_window", -1)
        )
    else:
        odf = odf.withColumn(features_col, F.col("_window"))

    return odf.drop("_window", "_rows")


def ts_lag(idf, value_col, time_col, lag=1, group_col=None, output_col=None):
    """
    ts_lag adds a column with the value that is *lag* rows before the current row, and None if there are less
    than *lag* rows before the current row (within the group).

    Parameters
    ----------
    idf
        Input Dataframe
    value_col
        Column to lag
    time_col
        Column defining the order of the series.
    lag
        Number of row(s) to extend. (Default value = 1)
    group_col
        Rows partitioned by this column before creating window. (Default value = None)
    output_col
        Name of the lagged column. Default <value_col>_lag_<lag>.

    Returns
    -------
    DataFrame

    """
    _check_lag(lag)
    _check_input(idf, value_col, time_col, group_col, "ts_lag")
    output_col = output_col or lag_col_name(value_col, lag)
    return idf.withColumn(
        output_col, F.lag(F.col(value_col), lag).over(time_window(time_col, group_col))
    )


def ts_difference(
    idf, value_col, time_col, diff=1, lag=1, group_col=None, output_col=None
):
    """
    ts_difference computes the backward difference of value_col: x(t) - x(t-lag) for diff=1, and the difference
    of that first difference at lag 1 for diff=2. Rows without a defined difference (start of each series) are
    dropped.

    Parameters
    ----------
    idf
        Input Dataframe
    value_col
        Numerical column to difference
    time_col
        Column defining the order of the series.
    diff
        1, 2. Order of differencing. (Default value = 1)
    lag
        Lag used for the first difference. (Default value = 1)
    group_col
        Rows partitioned by this column before differencing. (Default value = None)
    output_col
        Name of the difference column. Default <value_col>_lag_<lag>_diff_<diff>.

    Returns
    -------
    DataFrame

    """
    if diff not in (1, 2):
        raise ValueError(f"Invalid input for diff. diff must be 1 or 2 - Received {diff}.")
    _check_lag(lag)
    _check_input(idf, value_col, time_col, group_col, "ts_difference")

    lag_col = lag_col_name(value_col, lag)
    diff1_col = lag_col + "_diff_1"
    output_col = output_col or lag_col + "_diff_" + str(diff)

    odf = ts_lag(idf, value_col, time_col, lag, group_col, output_col=lag_col)
    odf = (
        odf.withColumn(
            diff1_col, (F.col(value_col) - F.col(lag_col)).cast("double")
        )
        .where(F.col(diff1_col).isNotNull())
        .drop(lag_col)
    )

    if diff == 2:
        diff1_lag_col = lag_col_name(diff1_col, 1)
        diff2_col = diff_col_name(value_col, 2) + "_tmp"
        odf = ts_lag(odf, diff1_col, time_col, 1, group_col, output_col=diff1_lag_col)
        odf = (
            odf.withColumn(diff2_col, F.col(diff1_col) - F.col(diff1_lag_col))
            .where(F.col(diff2_col).isNotNull())
            .drop(diff1_lag_col, diff1_col)
        )
        return odf.withColumnRenamed(diff2_col, output_col)

    return odf.withColumnRenamed(diff1_col, output_col)


def _append_lags(idf, source_col, time_col, p, group_col, prefix):
    window = time_window(time_col, group_col)
    odf = idf
    lag_cols = []
    for i in range(1, p + 1):
        lag_cols.append(lag_col_name(prefix, i))
        odf = odf.withColumn(lag_cols[-1], F.lag(F.col(source_col), i).over(window))

    condition = F.lit(True)
    for c in lag_cols:
        condition = condition & F.col(c).isNotNull()
    return odf.where(condition)


def lag_combination(idf, value_col, time_col, p, group_col=None):
    """
    lag_combination adds the columns <value_col>_lag_0 (the value itself, as double) and <value_col>_lag_1 ...
    <value_col>_lag_<p>. Rows with an incomplete set of lags are dropped.

    Parameters
    ----------
    idf
        Input Dataframe
    value_col
        Numerical column holding the series values.
    time_col
        Column defining the order of the series.
    p
        Number of lags.
    group_col
        Rows partitioned by this column before lagging. (Default value = None)

    Returns
    -------
    DataFrame

    """
    _check_lag(p, "p")
    _check_input(idf, value_col, time_col, group_col, "lag_combination")

    lag0_col = lag_col_name(value_col, 0)
    odf = idf.withColumn(lag0_col, F.col(value_col).cast("double")).where(
        F.col(lag0_col).isNotNull()
    )
    return _append_lags(odf, lag0_col, time_col, p, group_col, value_col)


def diff_combination(idf, value_col, time_col, p, d, group_col=None):
    """
    diff_combination differences value_col d times (d = 1 or 2, at lag 1) into <value_col>_diff_<d>_lag_0 and
    adds the lagged differences <value_col>_diff_<d>_lag_1 ... <value_col>_diff_<d>_lag_<p>. Rows with an
    undefined difference or an incomplete set of lags are dropped.

    Parameters
    ----------
    idf
        Input Dataframe
    value_col
        Numerical column holding the series values.
    time_col
        Column defining the order of the series.
    p
        Number of lagged differences.
    d
        1, 2. Order of differencing.
    group_col
        Rows partitioned by this column before differencing. (Default value = None)

    Returns
    -------
    DataFrame

    """
    _check_lag(p, "p")
    prefix = diff_col_name(value_col, d)
    odf = ts_difference(
        idf,
        value_col,
        time_col,
        diff=d,
        lag=1,
        group_col=group_col,
        output_col=lag_col_name(prefix, 0),
    )
    return _append_lags(odf, lag_col_name(prefix, 0), time_col, p, group_col, prefix)
