# tests/unit/test_batch_reader.py
"""Tests for reading raw trip batches from disk."""

import zipfile
from pathlib import Path

import pytest

from bikeshare_analysis.extractors.batch_reader import (
    batch_name_for,
    discover_batches,
    read_trip_batch,
    read_trip_batches,
)
from bikeshare_analysis.models.trip_record import TRIP_COLUMN_NAMES
from bikeshare_analysis.utils.exceptions import ExtractionError


class TestBatchName:
    @pytest.mark.parametrize("filename,expected", [
        ("202401-divvy-tripdata.zip", "202401"),
        ("202312-divvy-tripdata.csv", "202312"),
        ("Divvy_Trips_2019_Q1.csv", "Divvy_Trips_2019_Q1"),
        ("sample.trips.parquet", "sample"),
    ])
    def test_batch_name_for(self, filename, expected):
        assert batch_name_for(Path(filename)) == expected


class TestReadTripBatch:
    """Test reading each supported format."""

    def test_read_csv(self, tmp_path, example_trips):
        """Timestamps stay text; coordinates are floats."""
        path = tmp_path / "202401-divvy-tripdata.csv"
        example_trips.to_csv(path, index=False)

        batch = read_trip_batch(path)

        assert batch.name == "202401"
        assert batch.row_count == 3
        assert batch.columns == TRIP_COLUMN_NAMES
        assert batch.frame['started_at'].dtype == object
        assert batch.frame['start_lat'].dtype == 'float64'
        assert batch.source_path == str(path)

    def test_read_zip_with_several_members(self, tmp_path, example_trips):
        """CSV members are concatenated in name order; macOS metadata is skipped."""
        path = tmp_path / "202401-divvy-tripdata.zip"
        with zipfile.ZipFile(path, 'w') as zf:
            zf.writestr("part_b.csv", example_trips.iloc[1:].to_csv(index=False))
            zf.writestr("part_a.csv", example_trips.iloc[:1].to_csv(index=False))
            zf.writestr("__MACOSX/._part_a.csv", "junk")
            zf.writestr("README.txt", "notes")

        batch = read_trip_batch(path)

        assert list(batch.frame['ride_id']) == ["A", "B", "C"]
        assert batch.name == "202401"

    def test_zip_without_csv(self, tmp_path):
        path = tmp_path / "202401-divvy-tripdata.zip"
        with zipfile.ZipFile(path, 'w') as zf:
            zf.writestr("README.txt", "notes")

        with pytest.raises(ExtractionError, match="No CSV"):
            read_trip_batch(path)

    def test_corrupt_zip(self, tmp_path):
        path = tmp_path / "202401-divvy-tripdata.zip"
        path.write_bytes(b"not a zip file")

        with pytest.raises(ExtractionError) as exc_info:
            read_trip_batch(path)

        assert isinstance(exc_info.value.cause, zipfile.BadZipFile)

    def test_read_parquet(self, tmp_path, example_trips):
        path = tmp_path / "202402.parquet"
        example_trips.to_parquet(path, index=False)

        batch = read_trip_batch(path)

        assert batch.name == "202402"
        assert batch.columns == TRIP_COLUMN_NAMES
        assert list(batch.frame['ride_id']) == ["A", "B", "C"]
        assert batch.frame['end_lat'].tolist() == [41.89, 41.89, 41.89]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ExtractionError) as exc_info:
            read_trip_batch(tmp_path / "202401-divvy-tripdata.csv")

        assert exc_info.value.error_code == "FILE_NOT_FOUND"

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "202401.xlsx"
        path.write_bytes(b"x")

        with pytest.raises(ExtractionError, match="Unsupported"):
            read_trip_batch(path)

    def test_read_several_keeps_order(self, tmp_path, monthly_batches):
        paths = []
        for batch in reversed(monthly_batches):
            path = tmp_path / f"{batch.name}.csv"
            batch.frame.to_csv(path, index=False)
            paths.append(path)

        batches = read_trip_batches(paths)

        assert [batch.name for batch in batches] == ["202402", "202401"]


class TestDiscoverBatches:
    def test_sorted_supported_files(self, tmp_path):
        for name in ("202403-divvy-tripdata.zip", "202401.csv", "202402.parquet", "notes.txt"):
            (tmp_path / name).write_bytes(b"x")
        (tmp_path / "202404.csv").mkdir()

        paths = discover_batches(tmp_path)

        assert [p.name for p in paths] == [
            "202401.csv", "202402.parquet", "202403-divvy-tripdata.zip"
        ]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ExtractionError):
            discover_batches(tmp_path / "absent")

    def test_directory_without_batches(self, tmp_path):
        (tmp_path / "notes.txt").write_text("nothing here")

        with pytest.raises(ExtractionError, match="No batch files"):
            discover_batches(tmp_path)
