"""
Spark session of the predictiveworks stages. Importing this module starts (or joins) the session the workflow runs
in; tests build their own through init_spark.
"""
from os import environ

import __main__
import findspark
from loguru import logger

findspark.init()
from pyspark.sql import SparkSession


def _runs_locally():
    # REPL sessions and DEBUG runs pick the master themselves, spark-submit passes it otherwise
    return not hasattr(__main__, "__file__") or "DEBUG" in environ


def init_spark(
    app_name="predictiveworks",
    master="local[*]",
    jars_packages=None,
    py_files=None,
    spark_config=None,
):
    """

    Parameters
    ----------
    app_name
        Name of Spark app. (Default value = "predictiveworks")
    master
        Cluster connection details, only used in a REPL or with DEBUG set.
        Defaults to local[*] which means to run Spark locally with as many worker threads
        as logical cores on the machine.
    jars_packages
        List of Spark JAR package names. (Default value = None)
    py_files
        List of files to send to Spark cluster (master and workers). (Default value = None)
    spark_config
        Dictionary of config key-value pairs, e.g. the session time zone the time columns are read in.
        (Default value = None)

    Returns
    -------
    (SparkSession, SparkContext)

    """
    builder = SparkSession.builder.appName(app_name)
    if _runs_locally():
        builder = builder.master(master)

    settings = dict(spark_config or {})
    if jars_packages:
        settings["spark.jars.packages"] = ",".join(jars_packages)
    if py_files:
        settings["spark.files"] = ",".join(py_files)
    for key, val in settings.items():
        builder = builder.config(key, val)

    logger.info(f"Getting spark session for {app_name} with {len(settings)} setting(s)")
    session = builder.getOrCreate()
    return session, session.sparkContext


configs = {
    "app_name": "PredictiveWorks_pipeline",
    "jars_packages": [],
    "py_files": [],
    "spark_config": {
        "spark.python.profile": "false",
        "spark.sql.session.timeZone": "GMT",
        "spark.sql.parquet.mergeSchema": "false",
    },
}

spark, sc = init_spark(**configs)
