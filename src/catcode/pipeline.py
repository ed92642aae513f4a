from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

import polars as pl

from .base import Transformer
from .codetable import CodeTable
from .config import EncodingConfig
from .dataset import ColumnDescriptor, ColumnKind, Dataset
from .encoders import CategoryEncoder, make_encoder
from .errors import NotFittedError, SchemaMismatchError
from .logging import get_logger
from .selection import DEFAULT_RANGE, AttributeSelection, resolve, validate_range

logger = get_logger(__name__)

_Signature = Tuple[Tuple[ColumnKind, ...], int]


class FitState(str, Enum):
    UNFITTED = "unfitted"
    FITTED = "fitted"


def _signature(dataset: Dataset) -> _Signature:
    return tuple(c.kind for c in dataset.columns()), dataset.target_index()


class EncodingPipeline(Transformer):
    """Fit a code table on the first batch and apply it to every batch.

    The first call to :meth:`transform` computes the code table from the
    dataset it receives (state ``UNFITTED`` -> ``FITTED``). Later calls reuse
    that table, which gives fit-on-train, apply-on-test behaviour. An encoder
    whose ``refits_every_call`` is true (frequency encoder with
    ``use_test_distribution``) computes a fresh table on every call instead.

    Selected nominal columns other than the target are renamed by the encoder
    and become numeric; every other column is copied unchanged. Missing
    values stay missing. Row count, row order and weights are preserved and
    the input dataset is never modified.

    Parameters
    - encoder: a CategoryEncoder instance or its name ('mean' | 'frequency')
    - attribute_indices: 1-based range expression of the columns to consider
    """

    def __init__(
        self,
        encoder: Union[str, CategoryEncoder] = "mean",
        attribute_indices: Optional[str] = DEFAULT_RANGE,
    ) -> None:
        if isinstance(encoder, str):
            encoder = make_encoder(encoder)
        self.encoder = encoder
        self.attribute_indices = validate_range(attribute_indices)
        self.state = FitState.UNFITTED
        self.selection_: Optional[AttributeSelection] = None
        self._code_table: Optional[CodeTable] = None
        self._fitted_signature: Optional[_Signature] = None
        self._fitted_vocabularies: Dict[int, Tuple[str, ...]] = {}

    @classmethod
    def from_config(cls, config: EncodingConfig) -> "EncodingPipeline":
        encoder = make_encoder(config.encoder, use_test_distribution=config.use_test_distribution)
        return cls(encoder=encoder, attribute_indices=config.attribute_indices)

    @property
    def code_table(self) -> CodeTable:
        if self.state is not FitState.FITTED or self._code_table is None:
            raise NotFittedError("This pipeline has not been fitted yet. Call 'transform' or 'fit' first.")
        return self._code_table

    @property
    def is_fitted(self) -> bool:
        return self.state is FitState.FITTED

    def reset(self) -> "EncodingPipeline":
        """Forget the fitted code table; the next call fits again."""
        if self.state is FitState.FITTED:
            logger.info(f"Resetting {type(self.encoder).__name__} pipeline")
        self.state = FitState.UNFITTED
        self._code_table = None
        self._fitted_signature = None
        self._fitted_vocabularies = {}
        self.feature_names_in_ = None
        self.feature_names_out_ = None
        return self

    def resolve_output_schema(self, dataset: Dataset) -> List[ColumnDescriptor]:
        return self._output_schema(dataset, resolve(self.attribute_indices, dataset))

    def _output_schema(self, dataset: Dataset, selection: AttributeSelection) -> List[ColumnDescriptor]:
        encodable = set(selection.encodable_indices)
        schema: List[ColumnDescriptor] = []
        for i, col in enumerate(dataset.columns()):
            if i in encodable:
                schema.append(col.renamed_numeric(self.encoder.describe_output_name(col.name)))
            else:
                schema.append(col.copy())
        names = [c.name for c in schema]
        if len(set(names)) != len(names):
            dupes = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"encoded column names collide with existing columns: {dupes}")
        return schema

    def _check_schema(self, dataset: Dataset) -> None:
        if self._fitted_signature is None:
            return
        kinds, target = self._fitted_signature
        got_kinds, got_target = _signature(dataset)
        if len(got_kinds) != len(kinds):
            raise SchemaMismatchError(
                f"dataset has {len(got_kinds)} columns, the pipeline was fitted on {len(kinds)}"
            )
        for i, (want, got) in enumerate(zip(kinds, got_kinds)):
            if want is not got:
                raise SchemaMismatchError(
                    f"column {i} ('{dataset.column(i).name}') is {got.value}, fitted as {want.value}"
                )
        if got_target != target:
            raise SchemaMismatchError(f"target index is {got_target}, fitted with {target}")

    def _fit(self, dataset: Dataset, selection: AttributeSelection) -> None:
        table = self.encoder.fit(dataset, selection)
        self._code_table = table
        self._fitted_signature = _signature(dataset)
        self._fitted_vocabularies = {i: dataset.column(i).vocabulary for i in selection.encodable_indices}
        self.feature_names_in_ = [c.name for c in dataset.columns()]
        self.state = FitState.FITTED

    def fit(self, dataset: Dataset) -> "EncodingPipeline":
        """Compute a new code table from ``dataset`` regardless of the current state."""
        self.encoder.check_target(dataset)
        selection = resolve(self.attribute_indices, dataset)
        self._output_schema(dataset, selection)
        self.selection_ = selection
        self._fit(dataset, selection)
        return self

    def transform(self, dataset: Dataset) -> Dataset:
        if not isinstance(dataset, Dataset):
            raise TypeError(f"Expected a catcode Dataset, got {type(dataset).__name__}")
        self.encoder.check_target(dataset)
        refit = self.encoder.refits_every_call
        if self.state is FitState.FITTED and not refit:
            self._check_schema(dataset)

        selection = resolve(self.attribute_indices, dataset)
        schema = self._output_schema(dataset, selection)
        self.selection_ = selection

        if self.state is FitState.UNFITTED or refit:
            if self.state is FitState.FITTED:
                logger.debug(f"Refitting code table on a batch of {dataset.row_count()} rows")
            self._fit(dataset, selection)

        out = self._apply(dataset, selection, schema)
        self.feature_names_out_ = [c.name for c in schema]
        return out

    def _apply(
        self, dataset: Dataset, selection: AttributeSelection, schema: List[ColumnDescriptor]
    ) -> Dataset:
        table = self.code_table
        encodable = set(selection.encodable_indices)
        exprs = []
        for i, (col, out_col) in enumerate(zip(dataset.columns(), schema)):
            if i not in encodable:
                exprs.append(pl.col(col.name))
                continue
            size = len(col.vocabulary)
            if size == 0:
                exprs.append(pl.lit(None, dtype=pl.Float64).alias(out_col.name))
                continue
            codes = self._codes_for(table, i, col)
            exprs.append(
                pl.col(col.name)
                .to_physical()
                .cast(pl.Int64)
                .replace_strict(
                    list(range(size)),
                    codes,
                    default=pl.lit(None, dtype=pl.Float64),
                    return_dtype=pl.Float64,
                )
                .alias(out_col.name)
            )
        frame = dataset.frame.select(exprs)
        weights = None if dataset.weights is None else dataset.weights.clone()
        return Dataset(frame, target=dataset.target_index(), weights=weights, name=dataset.name)

    def _codes_for(self, table: CodeTable, index: int, col: ColumnDescriptor) -> List[float]:
        """Codes ordered by the current category indices of ``col``.

        Labels are matched against the vocabulary seen at fit time, so a batch
        whose vocabulary is ordered differently still gets each label's own
        code. Labels unknown at fit time get the column fallback.
        """
        fitted = self._fitted_vocabularies.get(index)
        if fitted is None or fitted == col.vocabulary:
            return [table.lookup(index, k) for k in range(len(col.vocabulary))]
        positions = {label: k for k, label in enumerate(fitted)}
        return [
            table.lookup(index, positions[label]) if label in positions else table.fallback(index)
            for label in col.vocabulary
        ]

    # Persistence
    def to_dict(self) -> dict:
        state: Dict[str, object] = {
            "__class__": type(self).__name__,
            "encoder": self.encoder.name,
            "encoder_params": self.encoder.get_params(),
            "attribute_indices": self.attribute_indices,
            "state": self.state.value,
        }
        if self.state is FitState.FITTED and self._code_table is not None and self._fitted_signature is not None:
            kinds, target = self._fitted_signature
            state["fitted_schema"] = {"kinds": [k.value for k in kinds], "target_index": target}
            state["feature_names_in_"] = list(self.feature_names_in_ or [])
            state["vocabularies"] = {str(i): list(v) for i, v in self._fitted_vocabularies.items()}
            state["code_table"] = self._code_table.to_dict()
        return state

    def from_dict(self, state: dict) -> "EncodingPipeline":
        params = dict(state.get("encoder_params", {}))
        encoder = make_encoder(state["encoder"], use_test_distribution=bool(params.pop("use_test_distribution", False)))
        if "suffix" in params:
            encoder.suffix = str(params["suffix"])
        self.encoder = encoder
        self.attribute_indices = validate_range(state.get("attribute_indices", DEFAULT_RANGE))
        self.reset()
        if state.get("state") == FitState.FITTED.value:
            schema = state["fitted_schema"]
            table = CodeTable.from_dict(state["code_table"])
            self._code_table = table
            self._fitted_signature = (
                tuple(ColumnKind(k) for k in schema["kinds"]),
                int(schema["target_index"]),
            )
            self._fitted_vocabularies = {
                int(i): tuple(str(label) for label in v) for i, v in state.get("vocabularies", {}).items()
            }
            self.feature_names_in_ = list(state.get("feature_names_in_", []))
            self.encoder.code_table_ = table
            if self.encoder.name == "mean":
                self.encoder.global_mean_ = table.global_fallback  # type: ignore[attr-defined]
            self.state = FitState.FITTED
        return self

    @classmethod
    def load(cls, state: dict) -> "EncodingPipeline":
        return cls().from_dict(state)
