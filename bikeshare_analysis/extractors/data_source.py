"""
Monthly trip-data file catalogue for the public bike-share bucket
"""

import calendar
from dataclasses import dataclass
from typing import List, Tuple

from bikeshare_analysis.config.settings import DataSourceConfig
from bikeshare_analysis.utils.exceptions import ConfigurationError
from bikeshare_analysis.utils.logger import get_logger


@dataclass
class TripDataFile:
    """One monthly trip-data archive"""
    year: int
    month: int
    url: str
    filename: str

    @property
    def month_name(self) -> str:
        return calendar.month_name[self.month]

    @property
    def date_string(self) -> str:
        return f"{self.year}-{self.month:02d}"

    @property
    def batch_name(self) -> str:
        """Batch identifier used by the merger, e.g. 202401"""
        return f"{self.year}{self.month:02d}"


class TripDataSource:
    """
    Builds the list of monthly archives to fetch for a month range

    Archives follow the bucket's `{YYYYMM}{suffix}` naming, e.g.
    `202401-divvy-tripdata.zip`.
    """

    def __init__(self, config: DataSourceConfig):
        self.config = config
        self.logger = get_logger(__name__)

    def get_file_url(self, year: int, month: int) -> str:
        """
        Build the download URL for one month

        Args:
            year: Calendar year
            month: Month (1-12)

        Returns:
            Full archive URL
        """
        self._validate_month(year, month)
        return f"{self.config.base_url.rstrip('/')}/{year}{month:02d}{self.config.file_suffix}"

    def get_available_files(
        self,
        start: Tuple[int, int],
        end: Tuple[int, int]
    ) -> List[TripDataFile]:
        """
        List the monthly archives between two months, both inclusive

        Args:
            start: (year, month) of the first batch
            end: (year, month) of the last batch

        Returns:
            TripDataFile objects in calendar order

        Raises:
            ConfigurationError: If a month is out of range or start is after end
        """
        self._validate_month(*start)
        self._validate_month(*end)

        if start > end:
            raise ConfigurationError(
                f"Start month {start[0]}-{start[1]:02d} is after end month {end[0]}-{end[1]:02d}"
            )

        files = []
        year, month = start
        while (year, month) <= end:
            url = self.get_file_url(year, month)
            files.append(TripDataFile(
                year=year,
                month=month,
                url=url,
                filename=url.rsplit('/', 1)[-1]
            ))

            month += 1
            if month > 12:
                month = 1
                year += 1

        self.logger.info(f"Resolved {len(files)} monthly trip files from {start} to {end}")
        return files

    @staticmethod
    def _validate_month(year: int, month: int) -> None:
        if not 1 <= month <= 12:
            raise ConfigurationError(f"Month must be between 1 and 12, got {month}")
        if year < 1:
            raise ConfigurationError(f"Invalid year: {year}")
