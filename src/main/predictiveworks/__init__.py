"""Predictive Works modules wrap the model lifecycle of Spark based machine learning stages and are scalable
using the python API of Spark (PySpark) - the distributed computing framework.

The key modules are:

1. **Data Ingest**: This module loads dataset(s) as Spark DataFrame and writes computed outputs (e.g. forecasts)
back to the file system.

2. **Data Transformer**: This module prepares columns for model training and prediction. There are three
submodules of this module targeting specific needs.

    a. *Vectorization*: This submodule converts array-of-numbers columns into the dense vector representation
    that Spark ML routines expect (vectorize), and unpacks vectors into plain arrays again (devectorize).

    b. *Lagging*: This submodule turns a single time-ordered value series into supervised learning frames, either
    by sliding windows of past values (with or without the current value as label) or by 1st/2nd order
    differencing combined with lagging.

    c. *Interpolation*: This submodule fills missing values of a time series from the last known value before
    and the first known value after the gap.

3. **Model Store**: Trained models are persisted as versioned artifacts. Each artifact is written to a path keyed
by algorithm, timestamp and model name, and is described by one row of a metadata index (parameters, unpacked
metrics, version, stage, storage path). The registry resolves a logical model reference (algorithm, name, stage,
selection option) into the latest, the best-by-metric or a specific version of a model.

4. **Time Series**: This module contains the autoregressive forecasting models (AR and differenced AR / ARIMA
style) that fit a linear model on lagged features and recursively forecast N steps ahead, together with the
training (sink) and prediction (compute) stages that connect them with the model store.
"""
from .version import __version__
