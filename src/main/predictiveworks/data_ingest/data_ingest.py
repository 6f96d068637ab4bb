# coding=utf-8
"""
This module reads time series datasets as Spark DataFrame, writes computed outputs (forecasts, lagged frames) back
to the file system and performs the few ETL actions the time series stages rely on. List of functions included in
this module are:
- read_dataset
- write_dataset
- select_column
- recast_column
"""
from loguru import logger

from predictiveworks.shared.utils import check_columns_exist, parse_columns


def read_dataset(spark, file_path, file_type, file_configs={}):
    """
    This function reads the input data path and returns a Spark DataFrame, based on the generic Load
    functionality of Spark SQL.

    Parameters
    ----------
    spark
        Spark Session
    file_path
        Path to input data (directory or filename).
        Compatible with local path and s3 path (when running in AWS environment).
    file_type
        "csv", "parquet", "json".
    file_configs
        This optional argument is passed in a dictionary format as key/value pairs
        e.g. {"header": "True","delimiter": "|","inferSchema": "True"} for csv files.
        All the key/value pairs are passed as options to DataFrameReader. (Default value = {})

    Returns
    -------
    DataFrame

    """
    logger.debug(f"reading {file_type} dataset from {file_path}")
    return spark.read.format(file_type).options(**file_configs).load(file_path)


def write_dataset(idf, file_path, file_type, file_configs={}, column_order=[]):
    """
    This function saves the Spark DataFrame in the user-provided output path, based on the generic Save
    functionality of Spark SQL.

    Parameters
    ----------
    idf
        Input Dataframe i.e. Spark DataFrame to be saved
    file_path
        Path to output data (directory or filename).
    file_type
        "csv", "parquet", "json".
    file_configs
        This argument is passed in dictionary format as key/value pairs. Besides the writer options (header,
        delimiter, compression), two keys are interpreted here: mode (error (default), overwrite, append) and
        repartition (an integer; coalesce is used when it is lower than the existing number of partitions).
    column_order
        list of columns in the order in which Dataframe is to be written. If None or [] is specified,
        then the default order is applied.

    """
    if not column_order:
        column_order = idf.columns
    elif sorted(column_order) != sorted(idf.columns):
        raise ValueError(
            "Column(s) specified in column_order argument do not match Dataframe: "
            + str(column_order)
        )

    writer_configs = dict(file_configs)
    mode = writer_configs.pop("mode", "error")
    repartition = writer_configs.pop("repartition", None)

    odf = idf.select(column_order)
    if repartition is not None:
        req_parts = int(repartition)
        if req_parts > odf.rdd.getNumPartitions():
            odf = odf.repartition(req_parts)
        else:
            odf = odf.coalesce(req_parts)

    logger.debug(f"writing {file_type} dataset to {file_path} (mode={mode})")
    odf.write.format(file_type).options(**writer_configs).save(file_path, mode=mode)


def select_column(idf, list_of_cols):
    """
    Parameters
    ----------
    idf
        Input Dataframe
    list_of_cols
        List of columns to select e.g., ["col1","col2"] or "col1|col2".

    Returns
    -------
    DataFrame

    """
    list_of_cols = parse_columns(list_of_cols)
    check_columns_exist(idf, list_of_cols, "select_column")
    return idf.select(list_of_cols)


def recast_column(idf, list_of_cols, list_of_dtypes):
    """
    Parameters
    ----------
    idf
        Input Dataframe
    list_of_cols
        List of columns to cast e.g., ["col1","col2"] or "col1|col2".
    list_of_dtypes
        List of corresponding datatypes e.g., ["double","timestamp"] or "double|timestamp".

    Returns
    -------
    DataFrame

    """
    list_of_cols = parse_columns(list_of_cols)
    list_of_dtypes = parse_columns(list_of_dtypes)
    check_columns_exist(idf, list_of_cols, "recast_column")
    if len(list_of_cols) != len(list_of_dtypes):
        raise ValueError("list_of_cols and list_of_dtypes must have the same length")

    odf = idf
    for col, dtype in zip(list_of_cols, list_of_dtypes):
        odf = odf.withColumn(col, odf[col].cast(dtype))
    return odf
