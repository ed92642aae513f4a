from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import polars as pl


def _ensure_polars_df(df: pl.DataFrame) -> pl.DataFrame:
    if isinstance(df, pl.DataFrame):
        return df

    # Lazy import so pandas remains optional
    pd = None
    if df.__class__.__module__.startswith("pandas"):
        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TypeError(
                "Pandas support requires installing pandas; install pandas to pass pandas.DataFrame"
            ) from exc
    if pd is not None and isinstance(df, pd.DataFrame):  # type: ignore[name-defined]
        try:
            return pl.from_pandas(df)
        except (ImportError, ModuleNotFoundError):
            # Fallback without pyarrow: construct via Python lists
            data = {str(col): df[col].tolist() for col in df.columns}
            return pl.DataFrame(data)

    raise TypeError("Expected a polars.DataFrame or pandas.DataFrame")


class ColumnKind(str, Enum):
    NUMERIC = "numeric"
    NOMINAL = "nominal"


@dataclass(frozen=True)
class ColumnDescriptor:
    """Name, kind and (for nominal columns) the ordered vocabulary of a column.

    The position of a label in ``vocabulary`` is its category index.
    """

    name: str
    kind: ColumnKind
    vocabulary: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.kind is ColumnKind.NUMERIC and self.vocabulary:
            raise ValueError(f"numeric column '{self.name}' cannot carry a vocabulary")
        if len(set(self.vocabulary)) != len(self.vocabulary):
            raise ValueError(f"vocabulary of column '{self.name}' contains duplicate labels")

    @property
    def is_nominal(self) -> bool:
        return self.kind is ColumnKind.NOMINAL

    @property
    def dtype(self) -> pl.DataType:
        if self.is_nominal:
            return pl.Enum(list(self.vocabulary))
        return pl.Float64

    def index_of(self, label: str) -> int:
        try:
            return self.vocabulary.index(label)
        except ValueError:
            raise KeyError(f"'{label}' is not a category of column '{self.name}'") from None

    def copy(self) -> "ColumnDescriptor":
        return replace(self)

    def renamed_numeric(self, name: str) -> "ColumnDescriptor":
        return ColumnDescriptor(name=name, kind=ColumnKind.NUMERIC)


def _is_label_dtype(dtype: pl.DataType) -> bool:
    return dtype == pl.Utf8 or dtype == pl.Categorical or dtype == pl.Boolean


def _to_nominal(series: pl.Series, vocabulary: Optional[Sequence[Any]]) -> pl.Series:
    labels = series.cast(pl.Utf8)
    present = labels.drop_nulls().unique().to_list()
    if vocabulary is None:
        vocab = sorted(present)
    else:
        vocab = [str(v) for v in vocabulary]
        unknown = sorted(set(present) - set(vocab))
        if unknown:
            raise ValueError(f"column '{series.name}' has labels outside its vocabulary: {unknown}")
    return labels.cast(pl.Enum(vocab))


class Dataset:
    """Tabular data with typed columns and one designated target column.

    Wraps a polars DataFrame. Nominal columns are stored as ``pl.Enum`` so the
    enum categories are the column vocabulary and the physical integer of a
    value is its category index. String, categorical and boolean columns are
    converted to nominal columns on construction; their vocabulary is taken
    from ``vocabularies`` when given, otherwise the sorted distinct labels.

    Parameters
    - frame: polars or pandas DataFrame
    - target: name or 0-based position of the target column
    - weights: optional per-row weights (sequence, Series, or the name of a
      column of ``frame`` which is then removed from the data)
    - vocabularies: optional explicit vocabularies keyed by column name
    - name: relation name carried over to transformed datasets
    """

    def __init__(
        self,
        frame: pl.DataFrame,
        target: Union[str, int],
        weights: Optional[Union[str, Sequence[float], pl.Series]] = None,
        vocabularies: Optional[Dict[str, Sequence[Any]]] = None,
        name: str = "dataset",
    ) -> None:
        frame = _ensure_polars_df(frame)
        if isinstance(weights, str):
            if weights not in frame.columns:
                raise ValueError(f"weight column '{weights}' not found")
            weight_series = frame.get_column(weights)
            frame = frame.drop(weights)
            weights = weight_series
        vocabularies = dict(vocabularies or {})

        converted: List[pl.Series] = []
        columns: List[ColumnDescriptor] = []
        for s in frame.get_columns():
            dtype = s.dtype
            vocab = vocabularies.get(s.name)
            if isinstance(dtype, pl.Enum):
                if vocab is not None and [str(v) for v in vocab] != dtype.categories.to_list():
                    s = _to_nominal(s, vocab)
                columns.append(ColumnDescriptor(s.name, ColumnKind.NOMINAL, tuple(s.dtype.categories.to_list())))
            elif _is_label_dtype(dtype):
                s = _to_nominal(s, vocab)
                columns.append(ColumnDescriptor(s.name, ColumnKind.NOMINAL, tuple(s.dtype.categories.to_list())))
            elif dtype.is_numeric():
                if vocab is not None:
                    raise ValueError(f"numeric column '{s.name}' cannot take a vocabulary")
                columns.append(ColumnDescriptor(s.name, ColumnKind.NUMERIC))
            else:
                raise TypeError(f"column '{s.name}' has unsupported dtype {dtype}")
            converted.append(s)

        unused = set(vocabularies) - set(frame.columns)
        if unused:
            raise ValueError(f"vocabularies given for unknown columns: {sorted(unused)}")

        if isinstance(target, str):
            if target not in frame.columns:
                raise ValueError(f"target column '{target}' not found")
            target_index = frame.columns.index(target)
        else:
            target_index = int(target)
            if not 0 <= target_index < len(columns):
                raise ValueError(f"target index {target} is outside [0, {len(columns)})")

        if weights is not None:
            if isinstance(weights, pl.Series):
                weights = weights.cast(pl.Float64).alias("weight")
            else:
                weights = pl.Series("weight", [float(w) for w in weights], dtype=pl.Float64)
            if weights.len() != frame.height:
                raise ValueError("weights must have one entry per row")

        self._frame = pl.DataFrame(converted) if converted else frame
        self._columns = tuple(columns)
        self._target_index = target_index
        self._weights: Optional[pl.Series] = weights
        self._physical: Optional[pl.DataFrame] = None
        self.name = name

    @classmethod
    def from_rows(
        cls,
        columns: Sequence[ColumnDescriptor],
        rows: Iterable[Sequence[Any]],
        target_index: int,
        weights: Optional[Sequence[float]] = None,
        name: str = "dataset",
    ) -> "Dataset":
        """Build a dataset from a schema and rows of values.

        Nominal values are category indices into the column's vocabulary,
        numeric values are reals, and ``None`` marks a missing value.
        """
        columns = list(columns)
        rows = [tuple(r) for r in rows]
        for r in rows:
            if len(r) != len(columns):
                raise ValueError(f"row has {len(r)} values, schema has {len(columns)} columns")
        series: List[pl.Series] = []
        for j, col in enumerate(columns):
            values = [r[j] for r in rows]
            if col.is_nominal:
                labels = []
                for v in values:
                    if v is None:
                        labels.append(None)
                        continue
                    k = int(v)
                    if not 0 <= k < len(col.vocabulary):
                        raise ValueError(f"category index {v} is outside the vocabulary of '{col.name}'")
                    labels.append(col.vocabulary[k])
                series.append(pl.Series(col.name, labels, dtype=col.dtype))
            else:
                series.append(pl.Series(col.name, [None if v is None else float(v) for v in values], dtype=pl.Float64))
        return cls(pl.DataFrame(series), target=target_index, weights=weights, name=name)

    # Dataset interface
    def column_count(self) -> int:
        return len(self._columns)

    def target_index(self) -> int:
        return self._target_index

    def column(self, index: int) -> ColumnDescriptor:
        return self._columns[index]

    def columns(self) -> List[ColumnDescriptor]:
        return list(self._columns)

    def target_column(self) -> ColumnDescriptor:
        return self._columns[self._target_index]

    def row_count(self) -> int:
        return self._frame.height

    def row(self, index: int) -> Tuple[Any, ...]:
        """Values of one row: category indices, floats, or None when missing."""
        raw = self.physical.row(index)
        out: List[Any] = []
        for value, col in zip(raw, self._columns):
            if value is None:
                out.append(None)
            elif col.is_nominal:
                out.append(int(value))
            else:
                val = float(value)
                out.append(None if math.isnan(val) else val)
        return tuple(out)

    def rows(self) -> List[Tuple[Any, ...]]:
        return [self.row(i) for i in range(self.row_count())]

    def row_weight(self, index: int) -> float:
        if self._weights is None:
            return 1.0
        return float(self._weights[index])

    # polars access
    @property
    def frame(self) -> pl.DataFrame:
        return self._frame

    @property
    def weights(self) -> Optional[pl.Series]:
        return self._weights

    @property
    def physical(self) -> pl.DataFrame:
        """The frame with nominal columns replaced by their category indices."""
        if self._physical is None:
            self._physical = self._frame.select(
                [
                    pl.col(c.name).to_physical().cast(pl.Int64) if c.is_nominal else pl.col(c.name)
                    for c in self._columns
                ]
            )
        return self._physical

    def __len__(self) -> int:
        return self.row_count()

    def __repr__(self) -> str:
        return (
            f"Dataset(name={self.name!r}, rows={self.row_count()}, columns={self.column_count()}, "
            f"target={self.target_column().name!r})"
        )
