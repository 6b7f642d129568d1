"""
Configuration management for the bike-share analysis pipeline
"""

import os
from dataclasses import dataclass
from pathlib import Path


SUPPORTED_TABLE_FORMATS = ("csv", "parquet")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class DataSourceConfig:
    """Public trip-data bucket configuration"""
    base_url: str = "https://divvy-tripdata.s3.amazonaws.com"
    file_suffix: str = "-divvy-tripdata.zip"
    max_retries: int = 3
    timeout_seconds: int = 300

    @classmethod
    def from_env(cls) -> 'DataSourceConfig':
        """Load data source config from environment variables"""
        return cls(
            base_url=os.getenv('TRIP_DATA_BASE_URL', cls.base_url),
            file_suffix=os.getenv('TRIP_DATA_FILE_SUFFIX', cls.file_suffix),
            max_retries=int(os.getenv('DOWNLOAD_MAX_RETRIES', str(cls.max_retries))),
            timeout_seconds=int(os.getenv('DOWNLOAD_TIMEOUT_SECONDS', str(cls.timeout_seconds)))
        )


@dataclass
class PipelineConfig:
    """Main pipeline configuration"""
    data_dir: Path
    output_dir: Path
    table_format: str = "csv"
    max_workers: int = 4
    max_ride_hours: int = 24
    top_n: int = 10
    write_intermediate_tables: bool = True
    cleanup_temp_files: bool = True
    log_level: str = "INFO"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.output_dir = Path(self.output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.table_format = self.table_format.lower()
        self.log_level = self.log_level.upper()


class Settings:
    """
    Main settings class that aggregates all configuration
    """

    def __init__(self):
        self.source = DataSourceConfig.from_env()
        self.pipeline = PipelineConfig(
            data_dir=os.getenv('DATA_DIR', './data'),
            output_dir=os.getenv('OUTPUT_DIR', './output'),
            table_format=os.getenv('TABLE_FORMAT', 'csv'),
            max_workers=int(os.getenv('MAX_WORKERS', '4')),
            max_ride_hours=int(os.getenv('MAX_RIDE_HOURS', '24')),
            top_n=int(os.getenv('TOP_N_STATIONS', '10')),
            write_intermediate_tables=os.getenv('WRITE_INTERMEDIATE_TABLES', 'true').lower() == 'true',
            cleanup_temp_files=os.getenv('CLEANUP_TEMP_FILES', 'true').lower() == 'true',
            log_level=os.getenv('LOG_LEVEL', 'INFO')
        )

    def validate(self) -> bool:
        """
        Validate that the configuration can drive a pipeline run

        Returns:
            bool: True if configuration is valid, False otherwise
        """
        if self.pipeline.table_format not in SUPPORTED_TABLE_FORMATS:
            return False

        if self.pipeline.max_workers < 1 or self.pipeline.top_n < 1:
            return False

        if self.pipeline.max_ride_hours <= 0:
            return False

        if self.pipeline.log_level not in LOG_LEVELS:
            return False

        if not self.source.base_url:
            return False

        return True


# Global settings instance
settings = Settings()
