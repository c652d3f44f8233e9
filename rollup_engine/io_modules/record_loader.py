import logging
import math
from typing import Iterable, Sequence

from rollup_engine.common.errors import MalformedRowError
from rollup_engine.common.node import Node
from rollup_engine.core.node_set import NodeSet
from rollup_engine.io_modules.config_reader import SourceConfig
from rollup_engine.io_modules.reader import read_source
from rollup_engine.utils.schema_resolver import SchemaResolver

REQUIRED_COLUMNS = ["id", "parent", "name", "unit_cost", "count"]

# integer-valued cells may come back as floats from the workbook
INT_TOLERANCE = 1e-9


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_float(value, field: str, row_number: int, required: bool):
    if _is_empty(value):
        if required:
            raise MalformedRowError(row_number, field, value, "empty")
        return None

    if isinstance(value, bool):
        raise MalformedRowError(row_number, field, value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise MalformedRowError(row_number, field, value)
    else:
        raise MalformedRowError(row_number, field, value)

    if not math.isfinite(number):
        raise MalformedRowError(row_number, field, value, "not finite")
    return number


def _to_int(value, field: str, row_number: int, required: bool):
    number = _to_float(value, field, row_number, required)
    if number is None:
        return None
    rounded = round(number)
    if abs(number - rounded) > INT_TOLERANCE:
        raise MalformedRowError(row_number, field, value, "not an integer")
    if rounded < 1:
        raise MalformedRowError(row_number, field, value, "out of range (must be >= 1)")
    return int(rounded)


def _to_name(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_row(row: Sequence, row_number: int) -> Node:
    """Builds a Node from positional fields: id, parent, name, unit_cost, count."""
    if len(row) < len(REQUIRED_COLUMNS):
        raise MalformedRowError(row_number, "row", row, f"shorter than {len(REQUIRED_COLUMNS)} fields")

    node_id = _to_int(row[0], "id", row_number, required=True)
    parent = _to_int(row[1], "parent", row_number, required=False)
    name = _to_name(row[2])
    unit_cost = _to_float(row[3], "unit_cost", row_number, required=False)
    count = _to_float(row[4], "count", row_number, required=True)
    if count < 0:
        raise MalformedRowError(row_number, "count", row[4], "out of range (must be >= 0)")

    return Node(id=node_id, parent=parent, name=name, unit_cost=unit_cost, count=count)


def load_nodes(
    rows: Iterable[Sequence],
    on_malformed: str = "fail",
    allow_zero_cost_leaves: bool = False,
    logger=None,
    first_row_number: int = 2,
) -> NodeSet:
    """
    Turns data rows (header already stripped) into a NodeSet.
    first_row_number is only used in error messages; 2 matches a
    spreadsheet whose row 1 is the header.
    """
    logger = logger or logging.getLogger(__name__)
    node_set = NodeSet(allow_zero_cost_leaves=allow_zero_cost_leaves, logger=logger)
    skipped = 0

    for row_number, row in enumerate(rows, start=first_row_number):
        try:
            node = parse_row(row, row_number)
        except MalformedRowError as e:
            if on_malformed != "skip":
                raise
            skipped += 1
            logger.warning("Skipping row: %s", e)
            continue
        node_set.add(node)

    if skipped:
        logger.warning("%d malformed rows skipped", skipped)
    logger.info("Loaded %d nodes", len(node_set))
    return node_set


def load_from_source(source: SourceConfig, allow_zero_cost_leaves: bool = False, logger=None) -> NodeSet:
    logger = logger or logging.getLogger(__name__)
    logger.info("Reading '%s' (sheet '%s')", source.path, source.sheet)

    raw_df = read_source(source.path, source.sheet, logger=logger)
    df = SchemaResolver.resolve(
        df=raw_df,
        columns_cfg=source.columns,
        required_keys=REQUIRED_COLUMNS,
        df_name=f"SOURCE '{source.path.name}'",
        logger=logger
    )
    return load_nodes(
        df.iter_rows(),
        on_malformed=source.on_malformed,
        allow_zero_cost_leaves=allow_zero_cost_leaves,
        logger=logger,
    )
