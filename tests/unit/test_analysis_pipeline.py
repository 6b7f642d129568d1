# tests/unit/test_analysis_pipeline.py
"""Tests for the AnalysisPipeline orchestrator."""

import logging
import os
from unittest.mock import patch

import pandas as pd
import pytest

from bikeshare_analysis.config.settings import Settings
from bikeshare_analysis.orchestrator.analysis_pipeline import (
    AnalysisPipeline, ENRICHED_TABLE, MERGED_TABLE
)
from bikeshare_analysis.utils.exceptions import (
    ConfigurationError, ExtractionError, PipelineError, SchemaMismatchError
)


def _write_batches(directory, batches):
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for batch in batches:
        path = directory / f"{batch.name}-divvy-tripdata.csv"
        batch.frame.to_csv(path, index=False)
        paths.append(path)
    return paths


class TestAnalysisPipelineInit:
    def test_initialization(self, pipeline_env):
        pipeline = AnalysisPipeline(Settings())

        assert pipeline.deriver.max_ride_hours == 24
        assert pipeline.aggregator.max_workers == 2
        assert pipeline.writer.table_format == "csv"

    def test_invalid_settings(self, pipeline_env):
        with patch.dict(os.environ, {'TABLE_FORMAT': 'xlsx'}):
            with pytest.raises(ConfigurationError):
                AnalysisPipeline(Settings())

    def test_status(self, pipeline_env):
        status = AnalysisPipeline(Settings()).get_pipeline_status()

        assert status['configuration_valid'] is True
        assert status['top_n'] == 10
        assert len(status['views']) == 7


class TestAnalysisPipelineRun:
    """Test full runs over in-memory and on-disk batches."""

    def test_run_counts(self, pipeline_env, monthly_batches):
        """Five merged rows, one excluded for a negative duration."""
        result = AnalysisPipeline(Settings()).run(monthly_batches)

        assert result.status == "completed"
        assert result.batches_merged == 2
        assert result.merged_rows == 5
        assert result.enriched_rows == 4
        assert result.excluded_rows == 1
        assert result.exclusion_reasons['non_positive_duration'] == 1
        assert result.view_row_counts['rides_by_rider_type'] == 2
        assert set(result.stage_durations) == {'merge', 'derive', 'aggregate', 'write'}

    def test_outputs_written(self, pipeline_env, monthly_batches):
        """Merged, enriched and every view table land in the output directory."""
        result = AnalysisPipeline(Settings()).run(monthly_batches)

        assert len(result.output_paths) == 9
        merged = pd.read_csv(result.output_paths[MERGED_TABLE])
        enriched = pd.read_csv(result.output_paths[ENRICHED_TABLE])
        by_type = pd.read_csv(result.output_paths['rides_by_rider_type'])

        assert len(merged) == 5
        assert len(enriched) == 4
        assert list(by_type['member_casual']) == ["casual", "member"]
        assert list(by_type['ride_count']) == [2, 2]

    def test_parquet_outputs(self, pipeline_env, monthly_batches):
        with patch.dict(os.environ, {'TABLE_FORMAT': 'parquet'}):
            result = AnalysisPipeline(Settings()).run(monthly_batches)

        enriched = pd.read_parquet(result.output_paths[ENRICHED_TABLE])
        assert list(enriched['ride_day_of_week']) == ["Friday", "Saturday", "Saturday", "Monday"]

    def test_skip_intermediate_tables(self, pipeline_env, monthly_batches):
        with patch.dict(os.environ, {'WRITE_INTERMEDIATE_TABLES': 'false'}):
            result = AnalysisPipeline(Settings()).run(monthly_batches)

        assert MERGED_TABLE not in result.output_paths
        assert len(result.output_paths) == 7

    def test_without_writer(self, pipeline_env, monthly_batches):
        result = AnalysisPipeline(Settings(), write_outputs=False).run(monthly_batches)

        assert result.output_paths == {}
        assert 'write' not in result.stage_durations
        assert list(result.views) == list(result.view_row_counts)

    def test_rerun_is_identical(self, pipeline_env, monthly_batches):
        pipeline = AnalysisPipeline(Settings(), write_outputs=False)

        first = pipeline.run(monthly_batches)
        second = pipeline.run(monthly_batches)

        for name, table in first.views.items():
            pd.testing.assert_frame_equal(table, second.views[name])

    def test_schema_mismatch_stops_run(self, pipeline_env, monthly_batches):
        """No output is written when the merge fails."""
        january, february = monthly_batches
        february.frame = february.frame.drop(columns=['end_lat'])
        settings = Settings()

        with pytest.raises(SchemaMismatchError):
            AnalysisPipeline(settings).run([january, february])

        assert not list(settings.pipeline.output_dir.iterdir())

    def test_stage_failure_logs_error_metrics(self, pipeline_env, monthly_batches, caplog):
        """The failing stage and error code are recorded before re-raising."""
        january, february = monthly_batches
        february.frame = february.frame.drop(columns=['end_lat'])

        with caplog.at_level(logging.ERROR, logger="performance.bikeshare_analysis.orchestrator.analysis_pipeline"):
            with pytest.raises(SchemaMismatchError):
                AnalysisPipeline(Settings(), write_outputs=False).run([january, february])

        errors = [r for r in caplog.records if getattr(r, 'metrics_type', None) == "error"]
        assert len(errors) == 1
        assert errors[0].error_type == "SchemaMismatchError"
        assert errors[0].stage == "merge"
        assert errors[0].error_code == "SchemaMismatchError"

    def test_result_to_dict(self, pipeline_env, monthly_batches):
        summary = AnalysisPipeline(Settings(), write_outputs=False).run(monthly_batches).to_dict()

        assert 'views' not in summary
        assert summary['merged_rows'] == 5


class TestAnalysisPipelineSources:
    """Test reading batches from files, directories and downloads."""

    def test_run_from_directory(self, pipeline_env, tmp_path, monthly_batches):
        _write_batches(tmp_path / "raw", monthly_batches)

        result = AnalysisPipeline(Settings()).run_from_directory(tmp_path / "raw")

        assert result.batches_merged == 2
        assert result.merged_rows == 5

    def test_run_from_files(self, pipeline_env, tmp_path, monthly_batches):
        paths = _write_batches(tmp_path / "raw", monthly_batches)

        result = AnalysisPipeline(Settings()).run_from_files(paths[:1])

        assert result.merged_rows == 2

    def test_run_from_empty_directory(self, pipeline_env, tmp_path):
        (tmp_path / "raw").mkdir()

        with pytest.raises(ExtractionError):
            AnalysisPipeline(Settings()).run_from_directory(tmp_path / "raw")

    def test_run_date_range_cleans_up_archives(self, pipeline_env, monthly_batches):
        """Downloaded archives are removed after the run."""
        settings = Settings()
        pipeline = AnalysisPipeline(settings)
        paths = _write_batches(settings.pipeline.data_dir, monthly_batches)

        with patch.object(pipeline, 'download_batches', return_value=paths) as mock_download:
            result = pipeline.run_date_range((2024, 1), (2024, 2))

        mock_download.assert_called_once_with((2024, 1), (2024, 2), False)
        assert result.merged_rows == 5
        assert not any(path.exists() for path in paths)

    def test_run_date_range_keeps_archives(self, pipeline_env, monthly_batches):
        with patch.dict(os.environ, {'CLEANUP_TEMP_FILES': 'false'}):
            settings = Settings()
        pipeline = AnalysisPipeline(settings)
        paths = _write_batches(settings.pipeline.data_dir, monthly_batches)

        with patch.object(pipeline, 'download_batches', return_value=paths):
            pipeline.run_date_range((2024, 1), (2024, 2))

        assert all(path.exists() for path in paths)

    def test_download_failure_wrapped(self, pipeline_env):
        pipeline = AnalysisPipeline(Settings())

        with patch.object(pipeline, 'download_batches', side_effect=RuntimeError("bucket gone")):
            with pytest.raises(PipelineError, match="Failed to download batches"):
                pipeline.run_date_range((2024, 1), (2024, 2))

    @patch('bikeshare_analysis.orchestrator.analysis_pipeline.FileExtractor')
    def test_download_batches(self, mock_extractor_class, pipeline_env):
        """Each month of the range is requested from the extractor."""
        extractor = mock_extractor_class.return_value.__enter__.return_value
        extractor.download_file.side_effect = lambda data_file, force: data_file.filename

        paths = AnalysisPipeline(Settings()).download_batches((2023, 12), (2024, 1))

        assert paths == ["202312-divvy-tripdata.zip", "202401-divvy-tripdata.zip"]
