from os import path

from setuptools import setup

DIR = path.dirname(path.abspath(__file__))

INSTALL_PACKAGES = open(path.join(DIR, "requirements.txt")).read().splitlines()

with open(path.join(DIR, "README.md")) as f:
    README = f.read()

setup(
    name="predictiveworks",
    version="0.3.0",
    package_dir={"predictiveworks": "src/main/predictiveworks"},
    packages=[
        "predictiveworks",
        "predictiveworks.shared",
        "predictiveworks.data_ingest",
        "predictiveworks.data_transformer",
        "predictiveworks.model_store",
        "predictiveworks.time_series",
    ],
    description="Versioned model store and autoregressive forecasting stages for Apache Spark pipelines",
    long_description=README,
    long_description_content_type="text/markdown",
    install_requires=INSTALL_PACKAGES,
    keywords=[
        "machine learning",
        "time series",
        "autoregression",
        "model registry",
        "apache spark",
    ],
    tests_require=["pytest", "coverage"],
    extras_require={"test": ["pytest", "coverage"]},
    python_requires=">=3.7",
)
