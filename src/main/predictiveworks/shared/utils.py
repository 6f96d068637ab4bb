NUMERIC_DTYPES = ("double", "int", "bigint", "float", "long", "smallint", "tinyint")


def get_dtype(idf, col):
    """

    Parameters
    ----------
    idf
        Input Dataframe
    col
        Column Name for datatype detection

    Returns
    -------
    str

    """
    return [dtype for name, dtype in idf.dtypes if name == col][0]


def is_numeric_dtype(dtype):
    return (dtype in NUMERIC_DTYPES) | dtype.startswith("decimal")


def is_numeric_array_dtype(dtype):
    """Checks a simple string dtype such as ``array<double>``."""
    if not (dtype.startswith("array<") and dtype.endswith(">")):
        return False
    return is_numeric_dtype(dtype[len("array<") : -1])


def ends_with(string, end_str="/"):
    """

    Parameters
    ----------
    string
        "s3:mw-bucket"
    end_str
        return: "s3:mw-bucket/" (Default value = "/")

    Returns
    -------
    str

    """
    string = str(string)
    if string.endswith(end_str):
        return string
    return string + end_str


def parse_columns(list_of_cols):
    """Accepts a list of column names or a pipe delimited string e.g. "col1|col2"."""
    if list_of_cols is None:
        return []
    if isinstance(list_of_cols, str):
        list_of_cols = [x.strip() for x in list_of_cols.split("|") if x.strip()]
    return list(list_of_cols)


def check_columns_exist(idf, list_of_cols, func_name):
    missing = [x for x in list_of_cols if x not in idf.columns]
    if missing:
        raise TypeError(
            f"Invalid input for column(s) in the function {func_name}. Invalid Column(s): {missing} not found in input dataframe."
        )
