import math

import pytest

pl = pytest.importorskip("polars", reason="polars is required for catcode tests")
np = pytest.importorskip("numpy")

from catcode.codetable import CodeTable


def _table() -> CodeTable:
    return CodeTable({0: [0.25, 0.75], 3: [1.0, 2.0, 3.0]}, {0: 0.5, 3: 2.0}, global_fallback=0.5)


def test_lookup_is_total() -> None:
    table = _table()
    assert table.lookup(0, 1) == 0.75
    assert table.lookup(3, 2) == 3.0
    # indices past the fitted vocabulary resolve to the fallback
    assert table.lookup(0, 5) == 0.5
    assert table.lookup(3, -1) == 2.0
    assert table.lookup(0, None) is None
    with pytest.raises(KeyError):
        table.lookup(1, 0)


def test_codes_are_read_only_copies() -> None:
    table = _table()
    codes = table.codes(0)
    codes[0] = 99.0
    assert table.lookup(0, 0) == 0.25
    assert table.columns() == [0, 3]
    assert 3 in table and 1 not in table
    assert len(table) == 2
    assert table.fallback(3) == 2.0


def test_non_finite_codes_are_rejected() -> None:
    with pytest.raises(ValueError):
        CodeTable({0: [math.nan]}, {0: 0.0})
    with pytest.raises(ValueError):
        CodeTable({0: [1.0]}, {0: math.inf})
    with pytest.raises(ValueError):
        CodeTable({0: [1.0]}, {})


def test_triples_and_dict_persistence() -> None:
    table = _table()
    assert table.to_triples() == [
        (0, 0, 0.25),
        (0, 1, 0.75),
        (3, 0, 1.0),
        (3, 1, 2.0),
        (3, 2, 3.0),
    ]
    restored = CodeTable.from_triples(table.to_triples(), {0: 0.5, 3: 2.0}, 0.5)
    assert restored == table
    assert CodeTable.from_dict(table.to_dict()) == table


def test_from_triples_requires_contiguous_categories() -> None:
    with pytest.raises(ValueError):
        CodeTable.from_triples([(0, 0, 1.0), (0, 2, 1.0)], {0: 0.0})


def test_equality_is_exact() -> None:
    other = CodeTable({0: [0.25, 0.75], 3: [1.0, 2.0, 3.0 + 1e-12]}, {0: 0.5, 3: 2.0}, global_fallback=0.5)
    assert other != _table()
    assert _table() == _table()


def test_to_frame() -> None:
    frame = _table().to_frame()
    assert frame.columns == ["column", "category", "code"]
    assert frame.height == 5
    assert frame.get_column("code").sum() == pytest.approx(7.0)
