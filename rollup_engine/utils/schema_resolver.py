import polars as pl
import re

from rollup_engine.common.errors import SchemaError


class SchemaResolver:

    @staticmethod
    def _normalize(col: str) -> str:
        """
        Canonical column representation for comparison:
        - strip leading/trailing spaces
        - lowercase
        - collapse multiple spaces
        """
        col = str(col).strip().lower()
        col = re.sub(r"\s+", " ", col)
        return col

    @staticmethod
    def resolve(
        df: pl.DataFrame,
        columns_cfg,
        required_keys: list,
        df_name: str,
        logger
    ) -> pl.DataFrame:
        """
        - With a column mapping: matches headers (case/space insensitive)
        - Without one: takes the first len(required_keys) columns in order
        - Renames to semantic names and drops extra columns
        """
        if columns_cfg:
            rename_map = SchemaResolver._by_name(df, columns_cfg, required_keys, df_name, logger)
        else:
            if df.width < len(required_keys):
                logger.error(
                    f"{df_name} has {df.width} columns, expected at least {len(required_keys)}"
                )
                raise SchemaError(
                    f"{df_name} has {df.width} columns, expected at least {len(required_keys)}"
                )
            rename_map = dict(zip(df.columns[:len(required_keys)], required_keys))

        for actual_col in rename_map:
            if df.height and df[actual_col].null_count() == df.height:
                logger.warning(
                    f"Column '{actual_col}' in {df_name} is completely empty"
                )

        # extra columns may already carry a semantic name
        df = df.select(list(rename_map)).rename(rename_map)
        df = df.select(required_keys)
        logger.debug("%s schema resolved. Columns: %s", df_name, df.columns)

        return df

    @staticmethod
    def _by_name(df, columns_cfg, required_keys, df_name, logger) -> dict:
        missing = [k for k in required_keys if k not in columns_cfg]
        if missing:
            logger.error(
                f"Column mapping missing keys for {df_name}: {missing}"
            )
            raise SchemaError(f"Column mapping missing keys: {missing}")

        normalized_df_cols = {
            SchemaResolver._normalize(c): c for c in df.columns
        }

        rename_map = {}
        for key in required_keys:
            expected_col = columns_cfg[key]
            norm_expected = SchemaResolver._normalize(expected_col)

            if norm_expected not in normalized_df_cols:
                logger.error(
                    f"Missing column '{expected_col}' in {df_name} "
                    f"(after normalization)"
                )
                raise SchemaError(f"Missing column '{expected_col}' in {df_name}")

            rename_map[normalized_df_cols[norm_expected]] = key
        return rename_map
