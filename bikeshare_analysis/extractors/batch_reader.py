"""
Reading raw trip batches from local files
"""

import re
import zipfile
from pathlib import Path
from typing import List, Union

import pandas as pd

from bikeshare_analysis.models.trip_record import TripBatch, raw_read_dtypes
from bikeshare_analysis.utils.logger import get_logger
from bikeshare_analysis.utils.exceptions import ExtractionError


logger = get_logger(__name__)

SUPPORTED_SUFFIXES = ('.csv', '.zip', '.parquet')

_BATCH_NAME_PATTERN = re.compile(r'^(\d{6})')


def batch_name_for(path: Path) -> str:
    """
    Derive a batch name from a file name

    `202401-divvy-tripdata.zip` becomes `202401`; names without a leading
    year-month keep their stem.
    """
    match = _BATCH_NAME_PATTERN.match(path.name)
    if match:
        return match.group(1)
    return path.name.split('.')[0]


def _read_csv(source) -> pd.DataFrame:
    return pd.read_csv(source, dtype=raw_read_dtypes(), low_memory=False)


def _read_zip(path: Path) -> pd.DataFrame:
    # Monthly archives can split a month over several CSV members
    with zipfile.ZipFile(path) as zf:
        members = sorted(
            name for name in zf.namelist()
            if name.lower().endswith('.csv') and not name.startswith('__MACOSX')
        )

        if not members:
            raise ExtractionError(
                f"No CSV file found in archive {path}",
                context={'path': str(path)}
            )

        frames = []
        for member in members:
            with zf.open(member) as csv_file:
                frames.append(_read_csv(csv_file))

    return pd.concat(frames, ignore_index=True)


def read_trip_batch(path: Union[str, Path]) -> TripBatch:
    """
    Read one raw trip batch

    Args:
        path: CSV, zipped CSV or Parquet file

    Returns:
        TripBatch named after the file's year-month prefix

    Raises:
        ExtractionError: If the file is missing, unsupported or unreadable
    """
    path = Path(path)

    if not path.exists():
        raise ExtractionError(f"Batch file does not exist: {path}", error_code="FILE_NOT_FOUND")

    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise ExtractionError(
            f"Unsupported batch file type '{suffix}': {path}",
            context={'supported': ', '.join(SUPPORTED_SUFFIXES)}
        )

    try:
        if suffix == '.zip':
            frame = _read_zip(path)
        elif suffix == '.parquet':
            frame = pd.read_parquet(path)
        else:
            frame = _read_csv(path)
    except ExtractionError:
        raise
    except (OSError, ValueError, zipfile.BadZipFile) as e:
        raise ExtractionError(
            f"Failed to read batch file {path}: {str(e)}",
            context={'path': str(path)},
            cause=e
        ) from e

    batch = TripBatch(name=batch_name_for(path), frame=frame, source_path=str(path))
    logger.info(f"Read batch {batch.name}: {batch.row_count:,} rows from {path.name}")
    return batch


def discover_batches(directory: Union[str, Path]) -> List[Path]:
    """
    List batch files in a directory, sorted by file name

    Args:
        directory: Directory holding monthly batch files

    Returns:
        Paths of supported batch files

    Raises:
        ExtractionError: If the directory is missing or holds no batch files
    """
    directory = Path(directory)

    if not directory.is_dir():
        raise ExtractionError(f"Batch directory not found: {directory}", error_code="FILE_NOT_FOUND")

    paths = sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES
    )

    if not paths:
        raise ExtractionError(
            f"No batch files found in {directory}",
            context={'supported': ', '.join(SUPPORTED_SUFFIXES)}
        )

    return paths


def read_trip_batches(paths: List[Union[str, Path]]) -> List[TripBatch]:
    """Read several batch files, keeping their order"""
    return [read_trip_batch(path) for path in paths]
