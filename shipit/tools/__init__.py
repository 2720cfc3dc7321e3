"""Toolchain acquisition: downloads, caching and archive extraction."""

from .archive import ExtractError, ExtractResult, extract_zip
from .download import Downloader, DownloadResult
from .http import HttpClient, HttpError, MockHttpClient, RealHttpClient

__all__ = [
    "DownloadResult",
    "Downloader",
    "ExtractError",
    "ExtractResult",
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    "extract_zip",
]
