from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

import numpy as np
import polars as pl

from .codetable import CodeTable
from .dataset import ColumnDescriptor, Dataset
from .errors import UnsupportedTargetError
from .logging import get_logger
from .selection import AttributeSelection

logger = get_logger(__name__)

_TARGET = "__catcode_target__"


def _category_counts(
    frame: pl.DataFrame, col: ColumnDescriptor, value: Optional[str] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """Per-category row counts (and sums of ``value``) over non-null rows."""
    size = len(col.vocabulary)
    counts = np.zeros(size, dtype=np.int64)
    sums = np.zeros(size, dtype=np.float64)
    cond = pl.col(col.name).is_not_null()
    aggs = [pl.len().alias("cnt")]
    if value is not None:
        cond = cond & pl.col(value).is_not_null()
        aggs.append(pl.col(value).sum().alias("sum_t"))
    agg = frame.filter(cond).group_by(col.name).agg(aggs)
    for row in agg.iter_rows():
        k = int(row[0])
        counts[k] = int(row[1])
        if value is not None:
            sums[k] = float(row[2])
    return counts, sums


class CategoryEncoder(ABC):
    """Computes a :class:`CodeTable` from a fitting dataset.

    Subclasses implement :meth:`fit` and name their output columns through
    :meth:`describe_output_name`. The last table produced is kept in
    ``code_table_``.
    """

    name: str = ""
    suffix: str = "_encoded"

    def __init__(self) -> None:
        self.code_table_: Optional[CodeTable] = None

    @property
    def is_fitted_(self) -> bool:
        return self.code_table_ is not None

    @property
    def refits_every_call(self) -> bool:
        return False

    def check_target(self, dataset: Dataset) -> None:
        """Accept numeric targets and nominal targets with exactly two categories."""
        target = dataset.target_column()
        if target.is_nominal and len(target.vocabulary) != 2:
            raise UnsupportedTargetError(
                f"{type(self).__name__} supports numeric or binary nominal targets; "
                f"target '{target.name}' has {len(target.vocabulary)} categories"
            )

    def describe_output_name(self, original_name: str) -> str:
        return f"{original_name}{self.suffix}"

    @abstractmethod
    def fit(self, dataset: Dataset, selection: AttributeSelection) -> CodeTable:  # pragma: no cover
        raise NotImplementedError

    @abstractmethod
    def describe(self) -> str:  # pragma: no cover
        raise NotImplementedError

    def get_params(self) -> Dict[str, object]:
        return {"suffix": self.suffix}

    def _store(self, table: CodeTable) -> CodeTable:
        self.code_table_ = table
        return table


class MeanEncoder(CategoryEncoder):
    """Replace each category by the mean target value observed with it.

    For a binary nominal target the target value of a row is its category
    index (0 or 1), so category index 1 is the positive class and codes are
    the positive-class rate. Categories that never occur together with a
    target value are coded with the global target mean, which is also kept
    as ``global_mean_``.
    """

    name = "mean"

    def __init__(self, suffix: str = "_mean_encoded") -> None:
        super().__init__()
        self.suffix = suffix
        self.global_mean_: Optional[float] = None

    def describe(self) -> str:
        return "Performs mean encoding for all specified nominal attributes."

    def _global_mean(self, target: pl.Series, nominal: bool) -> Optional[float]:
        if nominal:
            n_neg = int((target == 0).sum())
            n_pos = int((target == 1).sum())
            if n_neg + n_pos == 0:
                return None
            return n_pos / float(n_neg + n_pos)
        values = target.drop_nulls()
        if values.len() == 0:
            return None
        return float(values.mean())

    def fit(self, dataset: Dataset, selection: AttributeSelection) -> CodeTable:
        self.check_target(dataset)
        target = dataset.target_column()
        cols = [dataset.column(i) for i in selection.encodable_indices]
        frame = dataset.physical.select(
            [pl.col(c.name) for c in cols]
            + [pl.col(target.name).cast(pl.Float64).fill_nan(None).alias(_TARGET)]
        )

        global_mean = self._global_mean(frame.get_column(_TARGET), target.is_nominal)
        if global_mean is None:
            logger.warning(
                f"Target '{target.name}' has no usable values; falling back to a global mean of 0.0"
            )
            global_mean = 0.0
        self.global_mean_ = global_mean

        codes: Dict[int, List[float]] = {}
        fallbacks: Dict[int, float] = {}
        for idx, col in zip(selection.encodable_indices, cols):
            counts, sums = _category_counts(frame, col, _TARGET)
            seen = counts > 0
            means = np.full(counts.shape, global_mean, dtype=np.float64)
            means[seen] = sums[seen] / counts[seen]
            codes[idx] = means.tolist()
            fallbacks[idx] = global_mean

        logger.debug(
            f"Fitted MeanEncoder on {len(cols)} columns over {dataset.row_count()} rows "
            f"(global mean {global_mean:.6g})"
        )
        return self._store(CodeTable(codes, fallbacks, global_fallback=global_mean))


class FrequencyEncoder(CategoryEncoder):
    """Replace each category by its relative frequency in the fitting data.

    The denominator is the total row count, rows with a missing value
    included. Categories that do not occur get a frequency of 0.0.

    Parameters
    - use_test_distribution: refit on every call, so codes always reflect
      the distribution of the dataset currently being transformed
    """

    name = "frequency"

    def __init__(self, use_test_distribution: bool = False, suffix: str = "_frequency_encoded") -> None:
        super().__init__()
        self.use_test_distribution = bool(use_test_distribution)
        self.suffix = suffix

    @property
    def refits_every_call(self) -> bool:
        return self.use_test_distribution

    def describe(self) -> str:
        return "Performs frequency encoding for all specified nominal attributes."

    def get_params(self) -> Dict[str, object]:
        params = super().get_params()
        params["use_test_distribution"] = self.use_test_distribution
        return params

    def fit(self, dataset: Dataset, selection: AttributeSelection) -> CodeTable:
        self.check_target(dataset)
        n = dataset.row_count()
        cols = [dataset.column(i) for i in selection.encodable_indices]
        frame = dataset.physical.select([pl.col(c.name) for c in cols])

        codes: Dict[int, List[float]] = {}
        fallbacks: Dict[int, float] = {}
        for idx, col in zip(selection.encodable_indices, cols):
            counts, _ = _category_counts(frame, col)
            if n > 0:
                freqs = counts / float(n)
            else:
                freqs = np.zeros(counts.shape, dtype=np.float64)
            codes[idx] = freqs.tolist()
            fallbacks[idx] = 0.0

        logger.debug(f"Fitted FrequencyEncoder on {len(cols)} columns over {n} rows")
        return self._store(CodeTable(codes, fallbacks))


ENCODERS = {
    "mean": MeanEncoder,
    "frequency": FrequencyEncoder,
}


def make_encoder(name: str, use_test_distribution: bool = False) -> CategoryEncoder:
    """Build an encoder from its configuration name (``mean`` or ``frequency``)."""
    key = str(name).strip().lower()
    if key not in ENCODERS:
        raise ValueError(f"unknown encoder '{name}'; expected one of {sorted(ENCODERS)}")
    if key == "frequency":
        return FrequencyEncoder(use_test_distribution=use_test_distribution)
    if use_test_distribution:
        raise ValueError("use_test_distribution only applies to the frequency encoder")
    return MeanEncoder()
