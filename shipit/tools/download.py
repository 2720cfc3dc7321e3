"""URL-keyed download cache for toolchain archives.

Re-running provisioning for the same target reuses archives already fetched
into the instance's cache directory.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from shipit.core.result import Err, Ok, Result
from shipit.tools.http import HttpClient, HttpError

__all__ = ["DownloadResult", "Downloader"]


@dataclass(frozen=True, slots=True)
class DownloadResult:
    """Result of a download operation.

    Attributes:
        path: Path to the downloaded file
        from_cache: True if file was served from cache
        size: File size in bytes
    """

    path: Path
    from_cache: bool
    size: int


class Downloader:
    """File downloader with caching.

    Cache files are named `<url-hash>_<filename>` so the original archive
    name (and therefore its extension) is preserved for extraction.
    """

    def __init__(self, http: HttpClient, cache_dir: Path) -> None:
        self._http = http
        self._cache_dir = cache_dir

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    def cache_path(self, url: str) -> Path:
        filename = Path(urlparse(url).path).name or "download"
        url_hash = hashlib.sha256(url.encode()).hexdigest()[:8]
        return self._cache_dir / f"{url_hash}_{filename}"

    def evict(self, url: str) -> None:
        """Drop the cached copy of url so the next download fetches it again."""
        self.cache_path(url).unlink(missing_ok=True)

    def download(self, url: str) -> Result[DownloadResult, HttpError]:
        """Download file from URL into the cache.

        Args:
            url: URL to download

        Returns:
            Ok with DownloadResult, or Err with HttpError
        """
        cache_path = self.cache_path(url)

        if cache_path.exists():
            return Ok(
                DownloadResult(path=cache_path, from_cache=True, size=cache_path.stat().st_size)
            )

        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=f"cannot create cache dir: {e}"))
        result = self._http.download(url, cache_path)

        if isinstance(result, Err):
            # A partial file must not be served from cache next time.
            cache_path.unlink(missing_ok=True)
            return result

        return Ok(DownloadResult(path=cache_path, from_cache=False, size=cache_path.stat().st_size))
