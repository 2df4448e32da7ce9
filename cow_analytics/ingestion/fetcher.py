"""
Snapshot Sources

Reads the raw CSV payload of a spreadsheet snapshot, either from a published
export URL or from a local file. Sources only move bytes; shape checks and
parsing happen in the pipeline.
"""

from pathlib import Path
from typing import Optional, Protocol, Union

import requests
import structlog

from cow_analytics.config.settings import SourceSettings
from cow_analytics.exceptions import SourceFetchError

logger = structlog.get_logger(__name__)


class SnapshotSource(Protocol):
    """Anything that can produce a CSV payload under a stable identity"""

    @property
    def source_id(self) -> str:
        ...

    def read(self) -> str:
        ...


class HttpSource:
    """Published spreadsheet CSV export fetched over HTTP"""

    def __init__(
        self,
        url: str,
        timeout: float = 20.0,
        user_agent: str = "Mozilla/5.0",
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.user_agent = user_agent
        self._session = session or requests.Session()

    @property
    def source_id(self) -> str:
        return self.url

    def read(self) -> str:
        logger.info("Fetching snapshot", url=self.url, timeout=self.timeout)
        try:
            response = self._session.get(
                self.url,
                headers={"User-Agent": self.user_agent},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Snapshot fetch failed", url=self.url, error=str(e))
            raise SourceFetchError(f"Failed to fetch {self.url}: {e}") from e

        return response.text


class FileSource:
    """CSV snapshot stored on the local filesystem"""

    def __init__(self, path: Union[str, Path], encoding: str = "utf-8"):
        self.path = Path(path)
        self.encoding = encoding

    @property
    def source_id(self) -> str:
        return str(self.path)

    def read(self) -> str:
        logger.info("Reading snapshot", path=str(self.path))
        try:
            return self.path.read_text(encoding=self.encoding)
        except OSError as e:
            raise SourceFetchError(f"Failed to read {self.path}: {e}") from e


def source_from_settings(source_settings: SourceSettings) -> SnapshotSource:
    """
    Build the configured source. A local path takes precedence over a URL.

    Raises:
        SourceFetchError: neither a path nor a URL is configured
    """
    if source_settings.csv_path:
        return FileSource(source_settings.csv_path, encoding=source_settings.encoding)
    if source_settings.csv_url:
        return HttpSource(
            source_settings.csv_url,
            timeout=source_settings.fetch_timeout_seconds,
            user_agent=source_settings.user_agent,
        )
    raise SourceFetchError("No snapshot source configured (set COW_SOURCE_CSV_PATH or COW_SOURCE_CSV_URL)")
