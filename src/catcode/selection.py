from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from .dataset import ColumnDescriptor, Dataset
from .errors import InvalidRangeError

DEFAULT_RANGE = "first-last"

_INDEX_TOKEN = re.compile(r"^(first|last|\d+)$", re.IGNORECASE)


def _split_tokens(expression: str) -> List[str]:
    if expression is None:
        expression = DEFAULT_RANGE
    if not isinstance(expression, str):
        raise InvalidRangeError(f"range expression must be a string, got {type(expression).__name__}")
    text = expression.strip()
    if not text:
        raise InvalidRangeError("range expression is empty")
    tokens = [tok.strip() for tok in text.split(",")]
    for tok in tokens:
        if not tok:
            raise InvalidRangeError(f"empty element in range expression '{expression}'")
    return tokens


def _split_span(token: str, expression: str) -> Tuple[str, str]:
    parts = [p.strip() for p in token.split("-")]
    if len(parts) == 1:
        parts = [parts[0], parts[0]]
    if len(parts) != 2 or not all(_INDEX_TOKEN.match(p) for p in parts):
        raise InvalidRangeError(f"malformed element '{token}' in range expression '{expression}'")
    return parts[0], parts[1]


def _to_position(literal: str, column_count: int, token: str) -> int:
    lit = literal.lower()
    if lit == "first":
        pos = 1
    elif lit == "last":
        pos = column_count
    else:
        pos = int(lit)
    if pos < 1 or pos > column_count:
        raise InvalidRangeError(
            f"index {literal} in '{token}' is outside [1, {column_count}]"
        )
    return pos


def validate_range(expression: Optional[str]) -> str:
    """Check the syntax of a range expression without a column count.

    Returns the stripped expression (or the default when None is given).
    """
    if expression is None:
        return DEFAULT_RANGE
    for tok in _split_tokens(expression):
        start, end = _split_span(tok, expression)
        if start.isdigit() and end.isdigit() and int(start) > int(end):
            raise InvalidRangeError(f"reversed span '{tok}' in range expression '{expression}'")
        for lit in (start, end):
            if lit.isdigit() and int(lit) < 1:
                raise InvalidRangeError(f"indices are 1-based, got '{lit}' in '{expression}'")
    return expression.strip()


def parse_range(expression: Optional[str], column_count: int) -> List[int]:
    """Resolve a 1-based range expression into ordered, distinct 0-based indices.

    Supports comma separated elements, the literals ``first`` and ``last``
    and ``N-M`` spans, e.g. ``"1-3,5,8-last"``. Duplicates keep their first
    position.
    """
    if column_count < 0:
        raise ValueError("column_count must be non-negative")
    if expression is None:
        expression = DEFAULT_RANGE
    tokens = _split_tokens(expression)
    if column_count == 0:
        raise InvalidRangeError(f"range '{expression}' cannot select from a dataset without columns")

    seen = set()
    out: List[int] = []
    for tok in tokens:
        start_lit, end_lit = _split_span(tok, expression)
        start = _to_position(start_lit, column_count, tok)
        end = _to_position(end_lit, column_count, tok)
        if start > end:
            raise InvalidRangeError(f"reversed span '{tok}' in range expression '{expression}'")
        for pos in range(start, end + 1):
            idx = pos - 1
            if idx not in seen:
                seen.add(idx)
                out.append(idx)
    return out


@dataclass(frozen=True)
class AttributeSelection:
    """Selected column indices with a per-column encodable flag.

    A column is encodable when it is nominal and is not the target column.
    """

    indices: Tuple[int, ...]
    encodable: Tuple[bool, ...]

    def __post_init__(self) -> None:
        if len(self.indices) != len(self.encodable):
            raise ValueError("indices and encodable flags must have the same length")

    def __iter__(self) -> Iterator[Tuple[int, bool]]:
        return iter(zip(self.indices, self.encodable))

    def __len__(self) -> int:
        return len(self.indices)

    @property
    def encodable_indices(self) -> Tuple[int, ...]:
        return tuple(i for i, flag in self if flag)

    def is_encodable(self, index: int) -> bool:
        for i, flag in self:
            if i == index:
                return flag
        return False


def resolve(
    range_expression: Optional[str],
    columns: Union[Dataset, Sequence[ColumnDescriptor]],
    target_index: Optional[int] = None,
) -> AttributeSelection:
    """Resolve ``range_expression`` against a dataset's columns.

    ``columns`` may be a :class:`Dataset` (its target index is used when
    ``target_index`` is not given) or a plain sequence of column descriptors.
    """
    if isinstance(columns, Dataset):
        if target_index is None:
            target_index = columns.target_index()
        descriptors = columns.columns()
    else:
        descriptors = list(columns)
    indices = parse_range(range_expression, len(descriptors))
    flags = tuple(descriptors[i].is_nominal and i != target_index for i in indices)
    return AttributeSelection(indices=tuple(indices), encodable=flags)
