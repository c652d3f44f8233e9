import polars as pl
from pathlib import Path

from rollup_engine.common.errors import OutputWriteError


def write_csv(df: pl.DataFrame, file_path: Path) -> None:
    file_path = Path(file_path)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        df.write_csv(file_path)
    except OSError as e:
        raise OutputWriteError(file_path, e) from e
