import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

pl = pytest.importorskip("polars", reason="polars is required for catcode tests")

from catcode.dataset import Dataset


@pytest.fixture()
def color_df() -> pl.DataFrame:
    return pl.DataFrame(
        {
            "color": ["red", "red", "blue", "blue"],
            "size": [1.0, 2.0, 3.0, 4.0],
            "label": ["0", "1", "1", "0"],
        }
    )


@pytest.fixture()
def color_dataset(color_df: pl.DataFrame) -> Dataset:
    # "green" is part of the vocabulary but never observed
    return Dataset(
        color_df,
        target="label",
        vocabularies={"color": ["red", "blue", "green"], "label": ["0", "1"]},
        name="colors",
    )


@pytest.fixture(scope="session")
def wine_df() -> pl.DataFrame:
    sklearn_datasets = pytest.importorskip(
        "sklearn.datasets", reason="scikit-learn is required for the wine dataset"
    )
    loader = sklearn_datasets.load_wine()
    data = {name: loader.data[:, idx].astype(float) for idx, name in enumerate(loader.feature_names)}
    data["target"] = loader.target.astype(int)
    df = pl.DataFrame(data)
    return df.with_columns(
        pl.when(pl.col("magnesium") < 100)
        .then(pl.lit("low"))
        .when(pl.col("magnesium") < 130)
        .then(pl.lit("mid"))
        .otherwise(pl.lit("high"))
        .alias("magnesium_band"),
        pl.when(pl.col("alcohol") < 13.0)
        .then(pl.lit("light"))
        .otherwise(pl.lit("strong"))
        .alias("alcohol_band"),
        pl.col("target").cast(pl.Utf8).map_elements(lambda x: f"class_{x}", return_dtype=pl.Utf8).alias("target_str"),
    )


@pytest.fixture()
def wine_binary(wine_df: pl.DataFrame) -> Dataset:
    df = wine_df.with_columns(
        pl.when(pl.col("target") == 0).then(pl.lit("yes")).otherwise(pl.lit("no")).alias("is_class_0")
    ).drop("target", "target_str")
    return Dataset(df, target="is_class_0", vocabularies={"is_class_0": ["no", "yes"]}, name="wine")


@pytest.fixture()
def wine_regression(wine_df: pl.DataFrame) -> Dataset:
    df = wine_df.drop("target", "target_str")
    return Dataset(df, target="proline", name="wine")
