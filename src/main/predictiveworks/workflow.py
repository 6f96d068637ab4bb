import contextlib
import copy
import subprocess
import timeit

import mlflow
import yaml
from loguru import logger

from predictiveworks.data_ingest import data_ingest
from predictiveworks.data_transformer.interpolation import ts_interpolate
from predictiveworks.model_store.families import ModelFamily
from predictiveworks.model_store.registry import list_versions
from predictiveworks.shared.spark import spark
from predictiveworks.time_series.stages import (
    ARComputeConfig,
    compute_ar,
    initialize_ar,
    sink_config,
    train_ar,
)


def ETL(args):
    f = getattr(data_ingest, "read_dataset")
    read_args = args.get("read_dataset", None) if args else None
    if read_args:
        df = f(spark, **read_args)
    else:
        raise TypeError("Invalid input for reading dataset")

    for key, value in args.items():
        if key != "read_dataset":
            if value is not None:
                f = getattr(data_ingest, key)
                if isinstance(value, dict):
                    df = f(df, **value)
                else:
                    df = f(df, value)
    return df


def save(data, write_configs, folder_name):
    if write_configs:
        if "file_path" not in write_configs:
            raise TypeError("file path missing for writing data")

        write = copy.deepcopy(write_configs)

        run_id = write.pop("mlflow_run_id", "")
        log_mlflow = write.pop("log_mlflow", False)

        write["file_path"] = write["file_path"] + "/" + folder_name + "/" + str(run_id)
        data_ingest.write_dataset(data, **write)

        if log_mlflow:
            mlflow.log_artifacts(
                local_dir=write["file_path"], artifact_path=folder_name
            )


def model_root(all_configs):
    store_configs = all_configs.get("model_store", None)
    if not store_configs or "root_path" not in store_configs:
        raise TypeError("Root path missing for the model store")
    return store_configs["root_path"]


def main(all_configs, run_type):
    mlflow_config = all_configs.get("mlflow", None)

    if mlflow_config is not None:
        mlflow.set_tracking_uri(mlflow_config["tracking_uri"])
        mlflow.set_experiment(mlflow_config["experiment"])

    mlflow_run = (
        mlflow.start_run() if mlflow_config is not None else contextlib.nullcontext()
    )

    with mlflow_run:
        start_main = timeit.default_timer()
        df = ETL(all_configs.get("input_dataset"))

        write_forecast = all_configs.get("write_forecast", None)
        if mlflow_config and write_forecast:
            write_forecast["mlflow_run_id"] = mlflow_run.info.run_id
            write_forecast["log_mlflow"] = mlflow_config.get("track_output", False)

        for key, args in all_configs.items():

            if (key == "ts_interpolate") & (args is not None):
                start = timeit.default_timer()
                df = ts_interpolate(df, **args)
                end = timeit.default_timer()
                logger.info(f"{key}: execution time (in secs) = {round(end - start, 4)}")
                continue

            if (key == "train_ar") & (args is not None):
                start = timeit.default_timer()
                root_path = model_root(all_configs)
                artifact = train_ar(spark, df, sink_config(args), root_path)
                versions = list_versions(
                    spark,
                    root_path,
                    ModelFamily.TIMESERIES,
                    artifact.algorithm_name,
                    artifact.model_name,
                ).count()
                if mlflow_config is not None:
                    mlflow.log_params(
                        {
                            "algorithm": artifact.algorithm_name,
                            "model_name": artifact.model_name,
                            "model_version": artifact.version,
                        }
                    )
                end = timeit.default_timer()
                logger.info(
                    f"{key}: {artifact.algorithm_name} '{artifact.model_name}' version {artifact.version} "
                    f"of {versions} saved; execution time (in secs) = {round(end - start, 4)}"
                )
                continue

            if (key == "forecast_ar") & (args is not None):
                start = timeit.default_timer()
                context = initialize_ar(
                    spark, ARComputeConfig(**args), model_root(all_configs)
                )
                df = compute_ar(spark, context, df)
                end = timeit.default_timer()
                logger.info(f"{key}: execution time (in secs) = {round(end - start, 4)}")
                continue

        save(df, write_forecast, folder_name="forecast")

        end_main = timeit.default_timer()
        logger.info(f"workflow: execution time (in secs) = {round(end_main - start_main, 4)}")
    return df


def run(config_path, run_type):
    if run_type in ("local", "databricks"):
        config_file = config_path
    elif run_type == "emr":
        bash_cmd = "aws s3 cp " + config_path + " config.yaml"
        _ = subprocess.check_output(["bash", "-c", bash_cmd])
        config_file = "config.yaml"
    else:
        raise ValueError("Invalid run_type")

    with open(config_file, "r") as f:
        all_configs = yaml.load(f, yaml.SafeLoader)

    main(all_configs, run_type)
