"""
Main orchestrator for the bike-share rider analysis pipeline
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Any, Optional, Sequence, Tuple, Union

import pandas as pd

from bikeshare_analysis.config.settings import Settings, settings as default_settings
from bikeshare_analysis.extractors.batch_reader import discover_batches, read_trip_batches
from bikeshare_analysis.extractors.data_source import TripDataSource
from bikeshare_analysis.extractors.file_extractor import FileExtractor
from bikeshare_analysis.aggregators.aggregator import TripAggregator
from bikeshare_analysis.aggregators.views import standard_views, view_names
from bikeshare_analysis.loaders.table_writer import TableWriter
from bikeshare_analysis.models.trip_record import TripBatch
from bikeshare_analysis.transformers.feature_deriver import FeatureDeriver
from bikeshare_analysis.transformers.merger import TripMerger
from bikeshare_analysis.utils.logger import get_logger, PerformanceLogger, timed_operation
from bikeshare_analysis.utils.exceptions import ConfigurationError, PipelineError


MERGED_TABLE = "merged_trips"
ENRICHED_TABLE = "enriched_trips"


@dataclass
class PipelineResult:
    """Results from one pipeline run"""
    status: str
    batches_merged: int
    merged_rows: int
    enriched_rows: int
    excluded_rows: int
    exclusion_reasons: Dict[str, int]
    view_row_counts: Dict[str, int]
    output_paths: Dict[str, str]
    processing_time_seconds: float
    stage_durations: Dict[str, float] = field(default_factory=dict)
    views: Dict[str, pd.DataFrame] = field(default_factory=dict, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        """Summary without the in-memory view tables"""
        return {
            'status': self.status,
            'batches_merged': self.batches_merged,
            'merged_rows': self.merged_rows,
            'enriched_rows': self.enriched_rows,
            'excluded_rows': self.excluded_rows,
            'exclusion_reasons': self.exclusion_reasons,
            'view_row_counts': self.view_row_counts,
            'output_paths': self.output_paths,
            'processing_time_seconds': self.processing_time_seconds,
            'stage_durations': self.stage_durations
        }


class AnalysisPipeline:
    """
    Runs merge, feature derivation, aggregation and output in order

    Each stage starts only once the previous one has fully materialized its
    output. Only the aggregation stage runs work in parallel.
    """

    def __init__(self, pipeline_settings: Optional[Settings] = None, write_outputs: bool = True):
        """
        Initialize the pipeline

        Args:
            pipeline_settings: Settings to use (the global settings by default)
            write_outputs: Write tables to the output directory

        Raises:
            ConfigurationError: If the settings are invalid
        """
        self.settings = pipeline_settings or default_settings
        self.logger = get_logger(__name__)
        self.performance_logger = PerformanceLogger(__name__)

        if not self.settings.validate():
            raise ConfigurationError("Invalid configuration - check pipeline environment variables")

        config = self.settings.pipeline
        self.merger = TripMerger()
        self.deriver = FeatureDeriver(max_ride_hours=config.max_ride_hours)
        self.aggregator = TripAggregator(
            views=standard_views(top_n=config.top_n),
            max_workers=config.max_workers
        )
        self.writer = TableWriter(config.output_dir, config.table_format) if write_outputs else None

        self.logger.info("Analysis pipeline initialized successfully")

    def run(self, batches: Sequence[TripBatch]) -> PipelineResult:
        """
        Run all stages over already loaded batches

        Args:
            batches: Raw monthly batches in merge order

        Returns:
            PipelineResult with row counts, exclusions and output paths
        """
        start_time = datetime.now(timezone.utc)
        stage_durations = {}

        self.logger.info(f"Starting pipeline run over {len(batches)} batches")

        stage = 'merge'
        try:
            with timed_operation("merge_batches", self.logger) as timer:
                merged = self.merger.merge(batches)
            stage_durations['merge'] = timer.duration

            stage = 'derive'
            with timed_operation("derive_features", self.logger) as timer:
                derivation = self.deriver.derive(merged)
            stage_durations['derive'] = timer.duration

            stage = 'aggregate'
            with timed_operation("aggregate_views", self.logger) as timer:
                views = self.aggregator.run(derivation.frame)
            stage_durations['aggregate'] = timer.duration

            output_paths = {}
            if self.writer is not None:
                stage = 'write'
                tables = {}
                if self.settings.pipeline.write_intermediate_tables:
                    tables[MERGED_TABLE] = merged
                    tables[ENRICHED_TABLE] = derivation.frame
                tables.update(views)

                with timed_operation("write_tables", self.logger) as timer:
                    output_paths = {
                        name: str(path) for name, path in self.writer.write_tables(tables).items()
                    }
                stage_durations['write'] = timer.duration

        except PipelineError as e:
            self.performance_logger.log_error_metrics(
                type(e).__name__,
                e.message,
                error_code=e.error_code,
                stage=stage
            )
            raise

        processing_time = (datetime.now(timezone.utc) - start_time).total_seconds()

        result = PipelineResult(
            status="completed",
            batches_merged=len(batches),
            merged_rows=len(merged),
            enriched_rows=derivation.enriched_rows,
            excluded_rows=derivation.excluded_rows,
            exclusion_reasons=derivation.exclusion_reasons,
            view_row_counts={name: len(table) for name, table in views.items()},
            output_paths=output_paths,
            processing_time_seconds=processing_time,
            stage_durations=stage_durations,
            views=views
        )

        self.performance_logger.log_data_metrics(
            batches_merged=result.batches_merged,
            merged_rows=result.merged_rows,
            enriched_rows=result.enriched_rows,
            excluded_rows=result.excluded_rows,
            processing_time_seconds=processing_time
        )
        self.logger.info(f"Pipeline run completed: {result.status}")

        return result

    def run_from_files(self, paths: Sequence[Union[str, Path]]) -> PipelineResult:
        """
        Read local batch files and run the pipeline

        Args:
            paths: CSV, zipped CSV or Parquet files in merge order
        """
        with timed_operation("read_batches", self.logger):
            batches = read_trip_batches(list(paths))
        return self.run(batches)

    def run_from_directory(self, directory: Union[str, Path]) -> PipelineResult:
        """Run over every batch file of a directory, in file name order"""
        return self.run_from_files(discover_batches(directory))

    def run_date_range(
        self,
        start: Tuple[int, int],
        end: Tuple[int, int],
        force_redownload: bool = False
    ) -> PipelineResult:
        """
        Download the monthly archives of a month range and run the pipeline

        Args:
            start: (year, month) of the first batch
            end: (year, month) of the last batch, inclusive
            force_redownload: Download archives even if present locally
        """
        try:
            paths = self.download_batches(start, end, force_redownload)
        except PipelineError:
            raise
        except Exception as e:
            error_msg = f"Failed to download batches: {str(e)}"
            self.logger.error(error_msg, exc_info=True)
            raise PipelineError(error_msg, cause=e) from e

        try:
            return self.run_from_files(paths)
        finally:
            if self.settings.pipeline.cleanup_temp_files:
                for path in paths:
                    path.unlink(missing_ok=True)
                    self.logger.debug(f"Cleaned up downloaded archive: {path}")

    def download_batches(
        self,
        start: Tuple[int, int],
        end: Tuple[int, int],
        force_redownload: bool = False
    ) -> List[Path]:
        """
        Download the monthly archives of a month range

        Returns:
            Local archive paths in calendar order
        """
        data_source = TripDataSource(self.settings.source)
        files = data_source.get_available_files(start, end)

        paths = []
        with FileExtractor(self.settings.source, self.settings.pipeline.data_dir) as extractor:
            for data_file in files:
                with timed_operation(f"download_{data_file.batch_name}", self.logger):
                    paths.append(extractor.download_file(data_file, force_redownload))

        return paths

    def get_pipeline_status(self) -> Dict[str, Any]:
        """Current configuration snapshot"""
        config = self.settings.pipeline
        return {
            'configuration_valid': self.settings.validate(),
            'data_directory': str(config.data_dir),
            'output_directory': str(config.output_dir),
            'table_format': config.table_format,
            'max_workers': config.max_workers,
            'max_ride_hours': config.max_ride_hours,
            'top_n': config.top_n,
            'views': view_names(self.aggregator.views),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }
