import logging

import pytest

pl = pytest.importorskip("polars", reason="polars is required for catcode tests")

from catcode.dataset import Dataset
from catcode.encoders import FrequencyEncoder, MeanEncoder, make_encoder
from catcode.errors import UnsupportedTargetError
from catcode.selection import resolve


def test_mean_encoder_color_scenario(color_dataset: Dataset) -> None:
    encoder = MeanEncoder()
    table = encoder.fit(color_dataset, resolve("first-last", color_dataset))
    assert table.columns() == [0]
    assert table.lookup(0, 0) == pytest.approx(0.5)  # red
    assert table.lookup(0, 1) == pytest.approx(0.5)  # blue
    # green never occurs: global mean fallback
    assert table.lookup(0, 2) == pytest.approx(0.5)
    assert table.global_fallback == pytest.approx(0.5)
    assert encoder.global_mean_ == pytest.approx(0.5)
    assert encoder.code_table_ is table
    assert encoder.is_fitted_


def test_mean_encoder_positive_class_is_index_one() -> None:
    df = pl.DataFrame({"c": ["a", "a", "a", "b"], "y": ["neg", "pos", "pos", "neg"]})
    ds = Dataset(df, target="y", vocabularies={"y": ["neg", "pos"]})
    table = MeanEncoder().fit(ds, resolve(None, ds))
    assert table.lookup(0, 0) == pytest.approx(2 / 3)
    assert table.lookup(0, 1) == pytest.approx(0.0)
    assert table.global_fallback == pytest.approx(0.5)


def test_mean_encoder_numeric_target() -> None:
    df = pl.DataFrame(
        {
            "c": ["a", "b", "a", "b", None],
            "d": ["u", "u", "u", "v", "v"],
            "y": [1.0, 3.0, 5.0, None, 10.0],
        }
    )
    ds = Dataset(df, target="y", vocabularies={"d": ["u", "v", "w"]})
    table = MeanEncoder().fit(ds, resolve(None, ds))
    global_mean = (1.0 + 3.0 + 5.0 + 10.0) / 4
    assert table.global_fallback == pytest.approx(global_mean)
    assert list(table.codes(0)) == pytest.approx([3.0, 3.0])
    # the row with a missing target does not count towards "v"
    assert list(table.codes(1)) == pytest.approx([3.0, 10.0, global_mean])


def test_mean_encoder_without_target_values_warns(caplog: pytest.LogCaptureFixture) -> None:
    df = pl.DataFrame({"c": ["a", "b"], "y": pl.Series([None, None], dtype=pl.Float64)})
    ds = Dataset(df, target="y")
    with caplog.at_level(logging.WARNING, logger="catcode"):
        table = MeanEncoder().fit(ds, resolve(None, ds))
    assert list(table.codes(0)) == [0.0, 0.0]
    assert "no usable values" in caplog.text


def test_mean_encoder_binary_codes_are_bounded(wine_binary: Dataset) -> None:
    selection = resolve("first-last", wine_binary)
    table = MeanEncoder().fit(wine_binary, selection)
    assert set(table.columns()) == set(selection.encodable_indices)
    assert len(table.columns()) == 2
    for col in table.columns():
        for code in table.codes(col):
            assert 0.0 <= code <= 1.0


def test_mean_encoder_regression_target(wine_regression: Dataset) -> None:
    selection = resolve("first-last", wine_regression)
    table = MeanEncoder().fit(wine_regression, selection)
    proline = wine_regression.frame.get_column("proline")
    assert table.global_fallback == pytest.approx(proline.mean())
    band_idx = [c.name for c in wine_regression.columns()].index("alcohol_band")
    expected = (
        wine_regression.frame.filter(pl.col("alcohol_band").cast(pl.Utf8) == "light").get_column("proline").mean()
    )
    assert table.lookup(band_idx, 0) == pytest.approx(expected)


def test_frequency_encoder_color_scenario(color_dataset: Dataset) -> None:
    table = FrequencyEncoder().fit(color_dataset, resolve(None, color_dataset))
    assert list(table.codes(0)) == pytest.approx([0.5, 0.5, 0.0])
    assert table.fallback(0) == 0.0
    assert table.global_fallback is None


def test_frequency_codes_sum_to_one(wine_binary: Dataset) -> None:
    selection = resolve(None, wine_binary)
    table = FrequencyEncoder().fit(wine_binary, selection)
    for col in selection.encodable_indices:
        assert sum(table.codes(col)) == pytest.approx(1.0)


def test_frequency_counts_missing_rows_in_denominator() -> None:
    df = pl.DataFrame({"c": ["a", None, "a", "b"], "y": [0.0, 1.0, 0.0, 1.0]})
    ds = Dataset(df, target="y")
    table = FrequencyEncoder().fit(ds, resolve(None, ds))
    assert list(table.codes(0)) == pytest.approx([0.5, 0.25])


def test_frequency_encoder_empty_dataset() -> None:
    df = pl.DataFrame({"c": pl.Series([], dtype=pl.Utf8), "y": pl.Series([], dtype=pl.Float64)})
    ds = Dataset(df, target="y", vocabularies={"c": ["a", "b"]})
    table = FrequencyEncoder().fit(ds, resolve(None, ds))
    assert list(table.codes(0)) == [0.0, 0.0]


def test_only_selected_columns_are_fitted(wine_binary: Dataset) -> None:
    names = [c.name for c in wine_binary.columns()]
    band = names.index("magnesium_band") + 1
    selection = resolve(f"{band}", wine_binary)
    table = FrequencyEncoder().fit(wine_binary, selection)
    assert table.columns() == [band - 1]


@pytest.mark.parametrize("encoder", [MeanEncoder(), FrequencyEncoder()])
def test_multiclass_target_is_rejected(wine_df: pl.DataFrame, encoder) -> None:
    ds = Dataset(wine_df.drop("target"), target="target_str")
    with pytest.raises(UnsupportedTargetError):
        encoder.fit(ds, resolve(None, ds))


def test_output_names_and_descriptions() -> None:
    assert MeanEncoder().describe_output_name("color") == "color_mean_encoded"
    assert FrequencyEncoder().describe_output_name("color") == "color_frequency_encoded"
    assert MeanEncoder(suffix="__te").describe_output_name("color") == "color__te"
    assert "mean encoding" in MeanEncoder().describe()
    assert "frequency encoding" in FrequencyEncoder().describe()


def test_make_encoder() -> None:
    assert isinstance(make_encoder("mean"), MeanEncoder)
    enc = make_encoder(" Frequency ", use_test_distribution=True)
    assert isinstance(enc, FrequencyEncoder)
    assert enc.refits_every_call
    assert enc.get_params() == {"suffix": "_frequency_encoded", "use_test_distribution": True}
    assert not make_encoder("frequency").refits_every_call
    assert not make_encoder("mean").refits_every_call
    with pytest.raises(ValueError):
        make_encoder("woe")
    with pytest.raises(ValueError):
        make_encoder("mean", use_test_distribution=True)


def test_fitted_flag_follows_code_table(color_dataset: Dataset) -> None:
    encoder = FrequencyEncoder()
    assert not encoder.is_fitted_
    encoder.fit(color_dataset, resolve(None, color_dataset))
    assert encoder.is_fitted_
    assert encoder.code_table_ is not None
