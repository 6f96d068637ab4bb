import pytest

from predictiveworks.shared.spark import init_spark


@pytest.fixture(scope="function")
def spark_session():
    configs = {
        "app_name": "PredictiveWorks_test_pipeline",
        "jars_packages": [],
        "py_files": [],
        "spark_config": {
            "spark.sql.session.timeZone": "GMT",
            "spark.python.profile": "false",
            "spark.sql.shuffle.partitions": "4",
        },
    }
    _spark, _spark_context = init_spark(**configs)
    return _spark
