# scripts/run_pipeline.py
"""
Main execution script for the bike-share rider analysis pipeline

Runs the merge, feature derivation and aggregation stages over monthly trip
batches and writes the summary tables.

Usage Examples:
    # Analyse every batch file in a directory
    python scripts/run_pipeline.py --input-dir data/raw

    # Analyse specific files
    python scripts/run_pipeline.py --input-files data/raw/202401-divvy-tripdata.zip data/raw/202402-divvy-tripdata.zip

    # Download and analyse a month range
    python scripts/run_pipeline.py --date-range 2024-01 2024-12

    # Write Parquet tables and print a JSON summary
    python scripts/run_pipeline.py --input-dir data/raw --table-format parquet --report-format json
"""

import argparse
import sys
from pathlib import Path
import json

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from bikeshare_analysis.orchestrator.analysis_pipeline import AnalysisPipeline
from bikeshare_analysis.config.settings import LOG_LEVELS, SUPPORTED_TABLE_FORMATS
from bikeshare_analysis.utils.logger import setup_pipeline_logging, get_logger
from bikeshare_analysis.utils.exceptions import PipelineError, ConfigurationError


def parse_arguments(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description='Bike-Share Rider Analysis Pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument(
        '--input-dir',
        type=str,
        help='Directory holding monthly batch files (.csv, .zip, .parquet)'
    )
    source_group.add_argument(
        '--input-files',
        nargs='+',
        metavar='FILE',
        help='Batch files to merge, in order'
    )
    source_group.add_argument(
        '--date-range',
        nargs=2,
        metavar=('START_MONTH', 'END_MONTH'),
        help='Download and analyse a month range (format: YYYY-MM YYYY-MM)'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        help='Directory for output tables (default: OUTPUT_DIR or ./output)'
    )

    parser.add_argument(
        '--table-format',
        choices=list(SUPPORTED_TABLE_FORMATS),
        help='Output table format (default: TABLE_FORMAT or csv)'
    )

    parser.add_argument(
        '--max-workers',
        type=int,
        help='Parallel workers for the summary views (default: MAX_WORKERS or 4)'
    )

    parser.add_argument(
        '--top-n',
        type=int,
        help='Rows kept in each station ranking (default: TOP_N_STATIONS or 10)'
    )

    parser.add_argument(
        '--log-level',
        choices=LOG_LEVELS,
        help='Logging level (default: LOG_LEVEL environment variable, else INFO)'
    )

    parser.add_argument(
        '--log-dir',
        type=str,
        help='Directory for log files (default: console only)'
    )

    parser.add_argument(
        '--report-format',
        choices=['text', 'json'],
        default='text',
        help='Run summary format (default: text)'
    )

    parser.add_argument(
        '--validate-config',
        action='store_true',
        help='Validate configuration and exit'
    )

    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show which batches would be processed without running'
    )

    return parser.parse_args(argv)


def parse_month(value: str) -> tuple[int, int]:
    """
    Parse a YYYY-MM month argument

    Raises:
        ConfigurationError: If the value is malformed
    """
    parts = value.split('-')
    if len(parts) != 2:
        raise ConfigurationError(f"Invalid month '{value}': format must be YYYY-MM")

    try:
        year, month = int(parts[0]), int(parts[1])
    except ValueError as e:
        raise ConfigurationError(f"Invalid month '{value}': format must be YYYY-MM") from e

    if not 1 <= month <= 12:
        raise ConfigurationError(f"Invalid month '{value}': month must be between 1 and 12")

    return year, month


def validate_date_range(start_month: str, end_month: str) -> tuple[tuple[int, int], tuple[int, int]]:
    """
    Validate and parse a month range

    Returns:
        ((start_year, start_month), (end_year, end_month))
    """
    start = parse_month(start_month)
    end = parse_month(end_month)

    if start > end:
        raise ConfigurationError(
            f"Invalid date range: start {start_month} is after end {end_month}"
        )

    return start, end


def setup_environment(args):
    """Setup logging and apply command line overrides to the settings"""
    from bikeshare_analysis.config.settings import settings

    log_level = args.log_level or settings.pipeline.log_level
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(f"Unsupported log level: {log_level}")

    setup_pipeline_logging(log_level=log_level, log_dir=args.log_dir)
    settings.pipeline.log_level = log_level

    if args.output_dir:
        settings.pipeline.output_dir = Path(args.output_dir)

    if args.table_format:
        settings.pipeline.table_format = args.table_format

    if args.max_workers is not None:
        settings.pipeline.max_workers = args.max_workers

    if args.top_n is not None:
        settings.pipeline.top_n = args.top_n

    return settings


def print_results(result, report_format: str):
    """Print the run summary"""
    if report_format == 'json':
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return

    print("=== Pipeline Results ===")
    print(f"Status: {result.status}")
    print(f"Batches Merged: {result.batches_merged}")
    print(f"Merged Rows: {result.merged_rows:,}")
    print(f"Enriched Rows: {result.enriched_rows:,}")
    print(f"Excluded Rows: {result.excluded_rows:,}")
    for reason, count in result.exclusion_reasons.items():
        print(f"  - {reason.replace('_', ' ')}: {count:,}")
    print(f"Processing Time: {result.processing_time_seconds:.2f} seconds")

    print("\n=== Summary Views ===")
    for name, rows in result.view_row_counts.items():
        print(f"{name}: {rows} rows")

    if result.output_paths:
        print("\n=== Output Tables ===")
        for name, path in result.output_paths.items():
            print(f"{name}: {path}")


def run_dry_run(args, settings) -> int:
    """Show what would be processed"""
    from bikeshare_analysis.aggregators.views import standard_views, view_names
    from bikeshare_analysis.extractors.batch_reader import discover_batches
    from bikeshare_analysis.extractors.data_source import TripDataSource

    print("=== Dry Run - Batches to Process ===")

    if args.date_range:
        start, end = validate_date_range(*args.date_range)
        files = TripDataSource(settings.source).get_available_files(start, end)
        for data_file in files:
            print(f"  - {data_file.batch_name} ({data_file.date_string}): {data_file.url}")
        print(f"Total Batches: {len(files)}")
    else:
        paths = args.input_files or discover_batches(args.input_dir)
        for path in paths:
            print(f"  - {path}")
        print(f"Total Batches: {len(paths)}")

    print(f"\nViews: {', '.join(view_names(standard_views(settings.pipeline.top_n)))}")
    print(f"Output Directory: {settings.pipeline.output_dir}")
    print(f"Table Format: {settings.pipeline.table_format}")
    print(f"Max Workers: {settings.pipeline.max_workers}")

    return 0


def main(argv=None):
    """Main entry point"""
    args = parse_arguments(argv)

    try:
        settings = setup_environment(args)
        logger = get_logger(__name__)

        logger.info("Starting Bike-Share Rider Analysis Pipeline")
        logger.info(f"Arguments: {vars(args)}")

        if args.validate_config:
            if settings.validate():
                print("✓ Configuration is valid")
                return 0
            print("✗ Configuration is invalid - check pipeline environment variables")
            return 1

        if not (args.input_dir or args.input_files or args.date_range):
            raise ConfigurationError(
                "No input given: use --input-dir, --input-files or --date-range"
            )

        if args.dry_run:
            return run_dry_run(args, settings)

        pipeline = AnalysisPipeline(settings)

        if args.date_range:
            start, end = validate_date_range(*args.date_range)
            result = pipeline.run_date_range(start, end)
        elif args.input_files:
            result = pipeline.run_from_files(args.input_files)
        else:
            result = pipeline.run_from_directory(args.input_dir)

        print_results(result, args.report_format)
        logger.info("Pipeline completed successfully")
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}")
        return 1

    except PipelineError as e:
        print(f"Pipeline Error: {e}")
        return 2

    except KeyboardInterrupt:
        print("\nPipeline interrupted by user")
        return 130


if __name__ == '__main__':
    sys.exit(main())
