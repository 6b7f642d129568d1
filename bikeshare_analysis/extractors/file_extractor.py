"""
Download of monthly trip-data archives
"""

import time
from pathlib import Path

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from bikeshare_analysis.config.settings import DataSourceConfig
from bikeshare_analysis.extractors.data_source import TripDataFile
from bikeshare_analysis.utils.logger import get_logger
from bikeshare_analysis.utils.exceptions import ExtractionError


class FileExtractor:
    """
    Downloads monthly archives into a local data directory

    Responsibilities:
    - Streaming downloads through a session with exponential-backoff retries
    - Writing to a temporary file and renaming it only once complete
    - Reusing archives that were already downloaded
    - Removing leftover temporary files
    """

    def __init__(self, config: DataSourceConfig, data_dir: Path):
        """
        Initialize file extractor

        Args:
            config: Data source configuration object
            data_dir: Directory to store downloaded files
        """
        self.config = config
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        self.logger = get_logger(__name__)
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()

        retry_strategy = Retry(
            total=self.config.max_retries,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            backoff_factor=2,
            raise_on_redirect=False,
            raise_on_status=False
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({
            'User-Agent': 'Bikeshare-Analysis-Pipeline/1.0',
            'Accept': '*/*'
        })

        return session

    def download_file(self, data_file: TripDataFile, force_redownload: bool = False) -> Path:
        """
        Download a monthly archive

        Args:
            data_file: Archive to download
            force_redownload: Download even if a valid local copy exists

        Returns:
            Path to the downloaded file

        Raises:
            ExtractionError: If the download fails after all retries
        """
        local_path = self.data_dir / data_file.filename

        if local_path.exists() and not force_redownload:
            if self._validate_file(local_path):
                self.logger.info(f"File already exists and is valid: {local_path}")
                return local_path
            self.logger.warning(f"Existing file is empty, re-downloading: {local_path}")

        self.logger.info(f"Starting download of {data_file.month_name} {data_file.year}: {data_file.url}")

        try:
            self._download(data_file.url, local_path)
        except ExtractionError:
            if local_path.exists():
                local_path.unlink()
            raise

        if not self._validate_file(local_path):
            local_path.unlink(missing_ok=True)
            raise ExtractionError(
                f"Downloaded file is empty: {local_path}",
                context={'url': data_file.url}
            )

        self.logger.info(f"Successfully downloaded: {local_path}")
        return local_path

    def _download(self, url: str, local_path: Path) -> None:
        start_time = time.time()
        temp_path = local_path.with_suffix(local_path.suffix + '.tmp')
        downloaded = 0

        try:
            response = self._session.get(url, stream=True, timeout=self.config.timeout_seconds)
            response.raise_for_status()

            with open(temp_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
                        downloaded += len(chunk)

            temp_path.replace(local_path)

        except requests.exceptions.RequestException as e:
            temp_path.unlink(missing_ok=True)
            raise ExtractionError(
                f"Network error downloading {url}: {str(e)}",
                error_code="NETWORK_ERROR",
                context={'url': url},
                cause=e
            ) from e

        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise ExtractionError(
                f"File I/O error saving {local_path}: {str(e)}",
                context={'url': url},
                cause=e
            ) from e

        elapsed_time = time.time() - start_time
        speed_mbps = (downloaded / (1024 * 1024)) / elapsed_time if elapsed_time > 0 else 0
        self.logger.info(
            f"Download completed: {downloaded:,} bytes in {elapsed_time:.1f}s "
            f"({speed_mbps:.1f} MB/s)"
        )

    def _validate_file(self, file_path: Path) -> bool:
        if not file_path.exists():
            return False
        if file_path.stat().st_size == 0:
            self.logger.warning(f"File is empty: {file_path}")
            return False
        return True

    def cleanup_temp_files(self) -> int:
        """
        Remove leftover temporary download files

        Returns:
            Number of files cleaned up
        """
        cleaned_count = 0

        for temp_file in self.data_dir.glob("*.tmp"):
            try:
                temp_file.unlink()
                cleaned_count += 1
                self.logger.info(f"Cleaned up temporary file: {temp_file}")
            except OSError as e:
                self.logger.warning(f"Failed to clean up {temp_file}: {str(e)}")

        return cleaned_count

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._session:
            self._session.close()
        self.cleanup_temp_files()
