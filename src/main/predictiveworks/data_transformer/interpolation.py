# coding=utf-8
from loguru import logger
from pyspark.sql import functions as F
from pyspark.sql.window import Window

from predictiveworks.data_transformer.lagging import time_window
from predictiveworks.shared.utils import check_columns_exist, get_dtype


def ts_interpolate(idf, value_col, time_col, group_col=None):
    """
    ts_interpolate fills missing values of a time series. A null value is replaced by the linear interpolation (in
    time) between the last non-null value before and the first non-null value after it. Nulls at the start or the
    end of a series, which only have a neighbour on one side, take the value of that neighbour. The value column is
    returned as double.

    Parameters
    ----------
    idf
        Input Dataframe
    value_col
        Numerical column with missing values
    time_col
        Timestamp, date or numeric column defining the order of the series.
    group_col
        Rows partitioned by this column before interpolating. (Default value = None)

    Returns
    -------
    DataFrame

    """
    cols = [value_col, time_col] + ([group_col] if group_col else [])
    check_columns_exist(idf, cols, "ts_interpolate")

    if get_dtype(idf, time_col) in ("timestamp", "date"):
        t = F.col(time_col).cast("timestamp").cast("double")
    else:
        t = F.col(time_col).cast("double")

    value = F.col(value_col).cast("double")
    known_t = F.when(value.isNotNull(), t)

    window = time_window(time_col, group_col)
    before = window.rowsBetween(Window.unboundedPreceding, 0)
    after = window.rowsBetween(0, Window.unboundedFollowing)

    odf = (
        idf.withColumn("_t", t)
        .withColumn("_prev", F.last(value, ignorenulls=True).over(before))
        .withColumn("_prev_t", F.last(known_t, ignorenulls=True).over(before))
        .withColumn("_next", F.first(value, ignorenulls=True).over(after))
        .withColumn("_next_t", F.first(known_t, ignorenulls=True).over(after))
    )

    interpolated = (
        F.when(value.isNotNull(), value)
        .when(F.col("_prev").isNull(), F.col("_next"))
        .when(F.col("_next").isNull(), F.col("_prev"))
        .when(F.col("_next_t") == F.col("_prev_t"), F.col("_prev"))
        .otherwise(
            F.col("_prev")
            + (F.col("_next") - F.col("_prev"))
            * (F.col("_t") - F.col("_prev_t"))
            / (F.col("_next_t") - F.col("_prev_t"))
        )
    )

    logger.debug(f"ts_interpolate: filling missing values of {value_col}")
    return odf.withColumn(value_col, interpolated).drop(
        "_t", "_prev", "_prev_t", "_next", "_next_t"
    )
