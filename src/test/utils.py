import math


def is_close(x, y, rel_tol=1e-09, abs_tol=0.0):
    """Verifies close numbers.

    Parameters
    ----------
    x, y: values to be evaluated
    rel_tol: double, relative tolerance, Default: 1e-09
    abs_tol: double, absolute tolerance, Default: 0

    Returns
    -------
    bool
    """
    return abs(x - y) <= max(rel_tol * max(abs(x), abs(y)), abs_tol)


def assert_values_close(actual, expected, abs_tol=1e-9):
    """Asserts two sequences of numbers (None allowed) are element-wise close."""
    actual = list(actual)
    expected = list(expected)
    if len(actual) != len(expected):
        raise AssertionError(f"length - actual: {len(actual)} != expected: {len(expected)}")
    msgs = []
    for i, (x, y) in enumerate(zip(actual, expected)):
        if x is None or y is None:
            ok = x is None and y is None
        elif math.isnan(x) or math.isnan(y):
            ok = math.isnan(x) and math.isnan(y)
        else:
            ok = is_close(x, y, abs_tol=abs_tol)
        if not ok:
            msgs.append(f"\tposition {i}: `{x}` != `{y}`")
    if msgs:
        raise AssertionError("\n".join(["Values are not close:"] + msgs))


def series_frame(spark, values, time_col="t", value_col="value", group=None):
    """Single series DataFrame with integer times 1..n; group adds a constant group column."""
    if group is None:
        rows = [(i + 1, v) for i, v in enumerate(values)]
        schema = f"{time_col} int, {value_col} double"
    else:
        rows = [(group, i + 1, v) for i, v in enumerate(values)]
        schema = f"grp string, {time_col} int, {value_col} double"
    return spark.createDataFrame(rows, schema)


def column_values(df, col, order_by="t"):
    return [r[0] for r in df.orderBy(order_by).select(col).collect()]
