"""
Flat-file output of pipeline tables
"""

from pathlib import Path
from typing import Dict, Mapping, Union

import pandas as pd

from bikeshare_analysis.config.settings import SUPPORTED_TABLE_FORMATS
from bikeshare_analysis.utils.logger import get_logger
from bikeshare_analysis.utils.exceptions import ConfigurationError, LoaderError


class TableWriter:
    """
    Writes pipeline tables as CSV or Parquet files

    Each table lands in `{output_dir}/{name}.{format}`. Files are written to
    a temporary path first and renamed into place, so a rerun replaces the
    previous output and a failed write never leaves a truncated table.
    """

    def __init__(self, output_dir: Union[str, Path], table_format: str = "csv"):
        """
        Initialize table writer

        Args:
            output_dir: Directory receiving the tables
            table_format: "csv" or "parquet"

        Raises:
            ConfigurationError: If the format is not supported
        """
        table_format = table_format.lower()
        if table_format not in SUPPORTED_TABLE_FORMATS:
            raise ConfigurationError(
                f"Unsupported table format: {table_format}",
                context={'supported': ', '.join(SUPPORTED_TABLE_FORMATS)}
            )

        self.output_dir = Path(output_dir)
        self.table_format = table_format
        self.logger = get_logger(__name__)

    def table_path(self, name: str) -> Path:
        return self.output_dir / f"{name}.{self.table_format}"

    def write_table(self, name: str, frame: pd.DataFrame) -> Path:
        """
        Write one table, replacing any previous output of the same name

        Args:
            name: Table name
            frame: Table contents

        Returns:
            Path of the written file

        Raises:
            LoaderError: If the table cannot be written
        """
        path = self.table_path(name)
        temp_path = path.with_suffix(path.suffix + '.tmp')

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)

            if self.table_format == "parquet":
                frame.to_parquet(temp_path, index=False, engine="pyarrow")
            else:
                frame.to_csv(temp_path, index=False)

            temp_path.replace(path)

        except (OSError, ValueError, TypeError) as e:
            temp_path.unlink(missing_ok=True)
            raise LoaderError(
                f"Failed to write table {name} to {path}: {str(e)}",
                context={'table': name, 'path': str(path)},
                cause=e
            ) from e

        self.logger.info(f"Wrote table {name}: {len(frame):,} rows to {path}")
        return path

    def write_tables(self, tables: Mapping[str, pd.DataFrame]) -> Dict[str, Path]:
        """
        Write several tables

        Args:
            tables: Mapping of table name to contents

        Returns:
            Mapping of table name to written path
        """
        return {name: self.write_table(name, frame) for name, frame in tables.items()}
