from __future__ import annotations

import math
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import polars as pl

Triple = Tuple[int, int, float]


class CodeTable:
    """Per-column mapping from category index to a numeric code.

    Built by an encoder from a fitting dataset and never modified afterwards;
    a refit produces a new table. Lookups are total: a category index outside
    the fitted vocabulary resolves to the column's fallback value.

    Parameters
    - codes: column index -> codes ordered by category index
    - fallbacks: column index -> value used for categories without a code
    - global_fallback: scalar fallback recorded by target-based encoders
    """

    def __init__(
        self,
        codes: Mapping[int, Sequence[float]],
        fallbacks: Mapping[int, float],
        global_fallback: Optional[float] = None,
    ) -> None:
        self._codes: Dict[int, np.ndarray] = {}
        self._fallbacks: Dict[int, float] = {}
        for col in sorted(codes):
            arr = np.array(codes[col], dtype=np.float64)
            arr.setflags(write=False)
            if not np.all(np.isfinite(arr)):
                raise ValueError(f"non-finite code for column {col}")
            if col not in fallbacks:
                raise ValueError(f"missing fallback for column {col}")
            fb = float(fallbacks[col])
            if not math.isfinite(fb):
                raise ValueError(f"non-finite fallback for column {col}")
            self._codes[int(col)] = arr
            self._fallbacks[int(col)] = fb
        if global_fallback is not None:
            global_fallback = float(global_fallback)
            if not math.isfinite(global_fallback):
                raise ValueError("global fallback must be finite")
        self.global_fallback = global_fallback

    def lookup(self, column_index: int, category_index: Optional[int]) -> Optional[float]:
        if column_index not in self._codes:
            raise KeyError(f"column {column_index} has no codes")
        if category_index is None:
            return None
        codes = self._codes[column_index]
        k = int(category_index)
        if 0 <= k < codes.shape[0]:
            return float(codes[k])
        return self._fallbacks[column_index]

    def codes(self, column_index: int) -> np.ndarray:
        return self._codes[column_index].copy()

    def fallback(self, column_index: int) -> float:
        return self._fallbacks[column_index]

    def columns(self) -> List[int]:
        return list(self._codes)

    def __contains__(self, column_index: object) -> bool:
        return column_index in self._codes

    def __iter__(self) -> Iterator[int]:
        return iter(self._codes)

    def __len__(self) -> int:
        return len(self._codes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CodeTable):
            return NotImplemented
        if self.global_fallback != other.global_fallback:
            return False
        if self._fallbacks != other._fallbacks or self._codes.keys() != other._codes.keys():
            return False
        return all(np.array_equal(self._codes[c], other._codes[c]) for c in self._codes)

    def __repr__(self) -> str:
        return f"CodeTable(columns={self.columns()}, global_fallback={self.global_fallback})"

    # Persistence
    def to_triples(self) -> List[Triple]:
        """Ordered ``(column_index, category_index, code)`` triples."""
        return [
            (col, k, float(code))
            for col, arr in self._codes.items()
            for k, code in enumerate(arr.tolist())
        ]

    @classmethod
    def from_triples(
        cls,
        triples: Iterable[Sequence[float]],
        fallbacks: Mapping[int, float],
        global_fallback: Optional[float] = None,
    ) -> "CodeTable":
        grouped: Dict[int, Dict[int, float]] = {}
        for col, k, code in triples:
            grouped.setdefault(int(col), {})[int(k)] = float(code)
        codes: Dict[int, List[float]] = {}
        for col, entries in grouped.items():
            size = max(entries) + 1
            if sorted(entries) != list(range(size)):
                raise ValueError(f"codes for column {col} do not cover categories 0..{size - 1}")
            codes[col] = [entries[k] for k in range(size)]
        # columns whose vocabulary is empty have fallbacks but no triples
        for col in fallbacks:
            codes.setdefault(int(col), [])
        return cls(codes, {int(c): float(v) for c, v in fallbacks.items()}, global_fallback)

    def to_dict(self) -> dict:
        return {
            "triples": [list(t) for t in self.to_triples()],
            "fallbacks": {str(c): v for c, v in self._fallbacks.items()},
            "global_fallback": self.global_fallback,
        }

    @classmethod
    def from_dict(cls, state: dict) -> "CodeTable":
        fallbacks = {int(c): float(v) for c, v in state.get("fallbacks", {}).items()}
        return cls.from_triples(state.get("triples", []), fallbacks, state.get("global_fallback"))

    def to_frame(self) -> pl.DataFrame:
        triples = self.to_triples()
        return pl.DataFrame(
            {
                "column": [t[0] for t in triples],
                "category": [t[1] for t in triples],
                "code": [t[2] for t in triples],
            },
            schema={"column": pl.Int64, "category": pl.Int64, "code": pl.Float64},
        )
