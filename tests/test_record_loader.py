"""Tests for row parsing, the malformed-row policy and source loading."""

import polars as pl
import pytest

from rollup_engine.common.errors import (
    DuplicateIdError,
    LoadError,
    MalformedRowError,
    SchemaError,
    SheetNotFoundError,
    SourceNotFoundError,
)
from rollup_engine.io_modules.config_reader import SourceConfig
from rollup_engine.io_modules.reader import read_sheet, read_source
from rollup_engine.io_modules.record_loader import load_from_source, load_nodes, parse_row


# ── parse_row ────────────────────────────────────────────────────────


def test_parse_row_leaf():
    node = parse_row((4, 2, "Frame", 1500.0, 2), row_number=5)
    assert (node.id, node.parent, node.name) == (4, 2, "Frame")
    assert node.unit_cost == 1500.0
    assert node.count == 2.0
    assert node.total_cost == 3000.0


def test_parse_row_root_and_composite():
    node = parse_row((1.0, None, "Vehicle", None, 1.0), row_number=2)
    assert node.id == 1
    assert node.parent is None
    assert node.unit_cost is None
    assert node.total_cost is None


def test_parse_row_accepts_numeric_strings_and_blank_cells():
    node = parse_row(("3", " ", "Bolt", "", "12.5"), row_number=2)
    assert node.id == 3
    assert node.parent is None
    assert node.unit_cost is None
    assert node.count == 12.5


def test_parse_row_numeric_name():
    assert parse_row((2, 1, 100.0, 1.0, 1), row_number=2).name == "100"


@pytest.mark.parametrize(
    "row, field",
    [
        (("abc", 1, "x", 1.0, 1), "id"),
        ((None, 1, "x", 1.0, 1), "id"),
        ((2.5, 1, "x", 1.0, 1), "id"),
        ((0, 1, "x", 1.0, 1), "id"),
        ((2, "one", "x", 1.0, 1), "parent"),
        ((2, 1, "x", "cheap", 1), "unit_cost"),
        ((2, 1, "x", float("inf"), 1), "unit_cost"),
        ((2, 1, "x", 1.0, None), "count"),
        ((2, 1, "x", 1.0, -1), "count"),
        ((2, 1, "x", 1.0, True), "count"),
    ],
)
def test_parse_row_malformed(row, field):
    with pytest.raises(MalformedRowError) as exc:
        parse_row(row, row_number=7)
    assert exc.value.field == field
    assert exc.value.row_number == 7
    assert "row 7" in str(exc.value)


def test_parse_row_too_short():
    with pytest.raises(MalformedRowError):
        parse_row((1, None, "Root"), row_number=2)


# ── load_nodes ───────────────────────────────────────────────────────


def test_load_nodes_numbers_rows_from_two():
    rows = [(1, None, "Root", None, 1), ("x", 1, "Bad", 1.0, 1)]
    with pytest.raises(MalformedRowError) as exc:
        load_nodes(rows)
    assert exc.value.row_number == 3


def test_load_nodes_skip_policy(logger):
    rows = [
        (1, None, "Root", None, 1),
        ("x", 1, "Bad", 1.0, 1),
        (3, 1, "Good", 2.0, 1),
    ]
    node_set = load_nodes(rows, on_malformed="skip", logger=logger)
    assert [n.id for n in node_set] == [1, 3]


def test_load_nodes_duplicate_is_fatal_even_when_skipping():
    rows = [(1, None, "Root", None, 1), (1, None, "Root again", None, 1)]
    with pytest.raises(DuplicateIdError):
        load_nodes(rows, on_malformed="skip")


def test_load_nodes_does_not_roll_up():
    node_set = load_nodes([(1, None, "Root", None, 1), (2, 1, "A", 3.0, 2)])
    assert node_set.unit_cost_of(1) is None
    assert node_set.find(2).total_cost == 6.0


# ── Sources ──────────────────────────────────────────────────────────


def test_load_from_csv_source(pbs_csv, logger):
    node_set = load_from_source(SourceConfig(path=pbs_csv), logger=logger)

    assert len(node_set) == 5
    assert node_set.find(3).name == "Wheels"
    assert node_set.find(5).total_cost == 2000.0
    node_set.rollup(1)
    assert node_set.find(1).unit_cost == 2_502_000.0


def test_load_from_csv_with_column_mapping(tmp_path, logger):
    path = tmp_path / "mapped.csv"
    path.write_text(
        "Qty,Item Name,  unit   COST ,Notes,Parent ID,Item ID\n"
        "1,Root,,top,,1\n"
        "3,Part,2.0,,1,2\n"
    )
    source = SourceConfig(
        path=path,
        columns={
            "id": "item id",
            "parent": "Parent ID",
            "name": "Item Name",
            "unit_cost": "Unit Cost",
            "count": "QTY",
        },
    )
    node_set = load_from_source(source, logger=logger)
    node_set.rollup(1)
    assert node_set.find(1).unit_cost == 6.0


def test_load_from_csv_missing_mapped_column(pbs_csv, logger):
    source = SourceConfig(
        path=pbs_csv,
        columns={"id": "ID", "parent": "Parent", "name": "Name", "unit_cost": "Price", "count": "Count"},
    )
    with pytest.raises(SchemaError, match="Price"):
        load_from_source(source, logger=logger)


def test_source_not_found(tmp_path):
    with pytest.raises(SourceNotFoundError) as exc:
        read_source(tmp_path / "missing.xlsx", "Full Data")
    assert "missing.xlsx" in str(exc.value)


def test_unsupported_source_type(tmp_path):
    path = tmp_path / "data.json"
    path.write_text("{}")
    with pytest.raises(LoadError, match=".json"):
        read_source(path, "Full Data")


def test_sheet_not_found(tmp_path, monkeypatch):
    path = tmp_path / "pbs.xlsx"
    path.write_bytes(b"")
    monkeypatch.setattr(pl, "read_excel", lambda *a, **k: {"Summary": pl.DataFrame()})

    with pytest.raises(SheetNotFoundError) as exc:
        read_sheet(path, "Full Data")
    assert exc.value.sheet == "Full Data"
    assert exc.value.available == ["Summary"]
    assert "Couldn't open the sheet 'Full Data'" in str(exc.value)


def test_read_sheet_selects_named_sheet(tmp_path, monkeypatch):
    path = tmp_path / "pbs.xlsx"
    path.write_bytes(b"")
    frame = pl.DataFrame({"ID": [1], "Parent": [None], "Name": ["Root"], "Unit Cost": [None], "Count": [1.0]})
    calls = {}

    def fake_read_excel(source, **kwargs):
        calls.update(kwargs)
        return {"Summary": pl.DataFrame(), "Full Data": frame}

    monkeypatch.setattr(pl, "read_excel", fake_read_excel)

    assert read_sheet(path, "Full Data").equals(frame)
    assert calls["sheet_id"] == 0


def test_unreadable_workbook(tmp_path, monkeypatch):
    path = tmp_path / "pbs.xlsx"
    path.write_bytes(b"not a workbook")

    def broken(*args, **kwargs):
        raise ValueError("bad zip")

    monkeypatch.setattr(pl, "read_excel", broken)
    with pytest.raises(LoadError, match="bad zip"):
        read_sheet(path, "Full Data")


def test_csv_decimal_count_after_many_whole_numbers(tmp_path, logger):
    path = tmp_path / "long.csv"
    lines = ["id,parent,name,unit_cost,count", "1,,Root,,1"]
    lines += [f"{i},1,Part {i},2,1" for i in range(2, 200)]
    lines.append("200,1,Half,2,0.5")
    path.write_text("\n".join(lines) + "\n")

    node_set = load_from_source(SourceConfig(path=path), logger=logger)
    assert node_set.find(200).count == 0.5
    assert node_set.rollup(1).unit_cost == 198 * 2.0 + 1.0


def test_csv_numeric_looking_names_kept_verbatim(tmp_path, logger):
    path = tmp_path / "names.csv"
    path.write_text(
        "id,parent,name,unit_cost,count\n"
        "1,,Root,,1\n"
        "2,1,1.10,3,1\n"
        "3,1,007,4,1\n"
    )
    node_set = load_from_source(SourceConfig(path=path), logger=logger)
    assert [n.name for n in node_set.children_of(1)] == ["1.10", "007"]


# ── Real workbooks ───────────────────────────────────────────────────


@pytest.fixture
def pbs_frame():
    return pl.DataFrame({
        "ID": [1, 2, 3],
        "Parent": [None, 1, 1],
        "Name": ["Root", "A", "B"],
        "Unit Cost": [None, 10.0, 5.0],
        "Count": [1.0, 1.0, 2.0],
    })


def test_load_from_real_workbook(tmp_path, pbs_frame, logger):
    path = tmp_path / "ProductBreakdownStructure.xlsx"
    pbs_frame.write_excel(path, worksheet="Full Data")

    node_set = load_from_source(SourceConfig(path=path, sheet="Full Data"), logger=logger)

    assert [n.name for n in node_set.children_of(1)] == ["A", "B"]
    assert node_set.find(3).total_cost == 10.0
    assert node_set.rollup(1).unit_cost == 20.0


def test_real_workbook_missing_sheet(tmp_path, pbs_frame, logger):
    path = tmp_path / "ProductBreakdownStructure.xlsx"
    pbs_frame.write_excel(path, worksheet="Summary")

    with pytest.raises(SheetNotFoundError) as exc:
        load_from_source(SourceConfig(path=path, sheet="Full Data"), logger=logger)
    assert exc.value.available == ["Summary"]
