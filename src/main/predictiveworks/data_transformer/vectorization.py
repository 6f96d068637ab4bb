# coding=utf-8
"""
Spark ML routines (fit / transform / evaluate) operate on dense vector columns, whereas datasets exchanged between
pipeline stages describe features, probabilities or topic distributions as plain arrays of numbers. This module
bridges both representations:

- vectorize
- devectorize

"""
from loguru import logger
from pyspark.ml.functions import vector_to_array
from pyspark.ml.linalg import Vectors, VectorUDT
from pyspark.sql import functions as F

from predictiveworks.shared.utils import (
    check_columns_exist,
    get_dtype,
    is_numeric_array_dtype,
    is_numeric_dtype,
)


def _to_vector(values):
    # a null array or a null element invalidates the row; it is never read as 0.0
    if values is None or any(v is None for v in values):
        return None
    return Vectors.dense([float(v) for v in values])


f_to_vector = F.udf(_to_vector, VectorUDT())


def vectorize(idf, source_col, dest_col, allow_scalar=False):
    """
    vectorize adds a column with the dense vector form of an array-of-numbers column. Rows where the source value
    is null, or where the array contains a null element, cannot be vectorized and are dropped from the output.

    Parameters
    ----------
    idf
        Input Dataframe
    source_col
        Column of type array<numeric> e.g. array<double>, array<int>.
    dest_col
        Name of the vector column to be added. If it equals source_col, the source column is replaced.
    allow_scalar
        True, False. If True, a numeric scalar column is accepted as well and wrapped into a length-1 vector.
        (Default value = False)

    Returns
    -------
    DataFrame

    """
    check_columns_exist(idf, [source_col], "vectorize")
    dtype = get_dtype(idf, source_col)

    if is_numeric_array_dtype(dtype):
        source = F.col(source_col)
    elif allow_scalar and is_numeric_dtype(dtype):
        source = F.array(F.col(source_col))
    else:
        expected = "an array of numbers or a number" if allow_scalar else "an array of numbers"
        raise TypeError(
            f"Invalid input for source_col in the function vectorize. Column '{source_col}' of type "
            f"{dtype} is not {expected}."
        )

    logger.debug(f"vectorize {source_col} ({dtype}) into {dest_col}")
    odf = idf.withColumn(dest_col, f_to_vector(source)).where(
        F.col(dest_col).isNotNull()
    )
    return odf


def devectorize(idf, source_col, dest_col):
    """
    devectorize unpacks a dense (or sparse) vector column into a plain array<double> column, e.g. to present
    predicted probabilities or topic distributions in the array convention of the output schema.

    Parameters
    ----------
    idf
        Input Dataframe
    source_col
        Vector column
    dest_col
        Name of the array column to be added. If it equals source_col, the source column is replaced.

    Returns
    -------
    DataFrame

    """
    check_columns_exist(idf, [source_col], "devectorize")
    if not isinstance(idf.schema[source_col].dataType, VectorUDT):
        raise TypeError(
            f"Invalid input for source_col in the function devectorize. Column '{source_col}' of type "
            f"{get_dtype(idf, source_col)} is not a vector."
        )

    return idf.withColumn(dest_col, vector_to_array(F.col(source_col), "float64"))
