import polars as pl
from pathlib import Path

from rollup_engine.common.errors import LoadError, SheetNotFoundError, SourceNotFoundError

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xlsb", ".xls", ".ods"}


def read_csv(file_path: Path, logger=None) -> pl.DataFrame:
    file_path = Path(file_path)
    if not file_path.exists():
        raise SourceNotFoundError(file_path)
    try:
        # every cell as text; record_loader does the numeric parsing
        return pl.read_csv(file_path, infer_schema=False)
    except Exception as e:
        if logger:
            logger.error(f"Failed to read CSV: {file_path}", exc_info=True)
        raise LoadError(f"Failed to read CSV '{file_path}': {e}") from e


def read_sheet(file_path: Path, sheet: str, logger=None) -> pl.DataFrame:
    """First row is the header; empty cells come back as nulls."""
    file_path = Path(file_path)
    if not file_path.exists():
        raise SourceNotFoundError(file_path)
    try:
        # sheet_id=0 loads every sheet as {name: frame}
        sheets = pl.read_excel(file_path, sheet_id=0, engine="calamine")
    except Exception as e:
        if logger:
            logger.error(f"Failed to read workbook: {file_path}", exc_info=True)
        raise LoadError(f"Failed to read workbook '{file_path}': {e}") from e

    if sheet not in sheets:
        raise SheetNotFoundError(sheet, file_path, available=sheets.keys())
    return sheets[sheet]


def read_source(file_path: Path, sheet: str, logger=None) -> pl.DataFrame:
    file_path = Path(file_path)
    suffix = file_path.suffix.lower()
    if suffix == ".csv":
        return read_csv(file_path, logger=logger)
    if suffix in EXCEL_SUFFIXES:
        return read_sheet(file_path, sheet, logger=logger)
    raise LoadError(f"Unsupported data source type '{suffix}': {file_path}")
