"""Refresh mapping definitions from a remote JSON document.

The document has the shape::

    {
        "version": "...",
        "mappings": {
            "n8nToMake": {"<n8n type>": {"type": "<make type>", "parameterMap": {...}}},
            "makeToN8n": {"<make type>": {"type": "<n8n type>", "parameterMap": {...}}}
        }
    }

A successful fetch is merged into the registry and cached on disk. When
the fetch fails the last cached document is merged instead.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from ..config import ConverterConfig, get_config
from ..exceptions import MappingRefreshError
from ..models import Direction
from .registry import MappingRegistry

logger = logging.getLogger(__name__)

CACHE_FILE_NAME = "remote_mappings.json"


@dataclass
class RefreshResult:
    """Outcome of one refresh attempt."""

    status: str  # "success", "cached", "skipped" or "error"
    count: int = 0
    error: Optional[str] = None
    source_url: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in ("success", "cached", "skipped")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "count": self.count,
            "error": self.error,
            "sourceUrl": self.source_url,
        }


class MappingSync:
    """Fetches remote mapping documents into a registry."""

    def __init__(self, registry: MappingRegistry, config: Optional[ConverterConfig] = None):
        self.registry = registry
        self.config = config or get_config()
        self.cache_dir = self.config.cache_dir
        self.last_sync_time: Optional[float] = None

    async def fetch_document(self, url: str) -> Dict[str, Any]:
        """Download and parse the mapping document."""
        timeout = aiohttp.ClientTimeout(total=self.config.request_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                if response.status == 200:
                    content = await response.text()
                    return json.loads(content)
                else:
                    raise MappingRefreshError(f"Failed to fetch mappings: {response.status}")

    async def _fetch_with_retries(self, url: str) -> Dict[str, Any]:
        for attempt in range(self.config.max_retries):
            try:
                return await self.fetch_document(url)
            except (aiohttp.ClientError, asyncio.TimeoutError, MappingRefreshError, ValueError) as e:
                if attempt == self.config.max_retries - 1:
                    raise MappingRefreshError(str(e)) from e
                logger.warning(
                    "Retry %d/%d fetching mappings from %s: %s",
                    attempt + 1, self.config.max_retries, url, e,
                )
                await asyncio.sleep(self.config.retry_delay * (attempt + 1))
        raise MappingRefreshError("No fetch attempts configured")

    def merge_document(self, document: Dict[str, Any]) -> int:
        """Merge a mapping document into the registry. Returns the definition count."""
        mappings = document.get("mappings")
        if not isinstance(mappings, dict):
            raise MappingRefreshError("Mapping document has no 'mappings' object")
        known = {d.value for d in Direction}
        unknown = set(mappings) - known
        if unknown:
            raise MappingRefreshError(f"Unknown directions in mapping document: {', '.join(sorted(unknown))}")
        try:
            return self.registry.merge(mappings, source="remote")
        except (TypeError, ValueError, AttributeError) as e:
            raise MappingRefreshError(f"Invalid mapping entry: {e}") from e

    async def refresh(self, url: Optional[str] = None) -> RefreshResult:
        """Fetch, merge and cache. Falls back to the cache on failure; never raises."""
        url = url or self.config.mapping_source_url
        if not url:
            return RefreshResult(status="skipped")

        try:
            document = await self._fetch_with_retries(url)
            count = self.merge_document(document)
        except MappingRefreshError as e:
            logger.warning("Failed to refresh mappings from %s: %s", url, e)
            cached = self._load_cached_document()
            if cached is not None:
                try:
                    count = self.merge_document(cached)
                except MappingRefreshError as cache_error:
                    logger.warning("Cached mapping document is unusable: %s", cache_error)
                else:
                    logger.info("Loaded %d mappings from cache", count)
                    return RefreshResult(status="cached", count=count, error=str(e), source_url=url)
            return RefreshResult(status="error", error=str(e), source_url=url)

        self._cache_document(document, url)
        self.last_sync_time = time.time()
        logger.info("Refreshed %d mappings from %s", count, url)
        return RefreshResult(status="success", count=count, source_url=url)

    def _cache_file(self):
        return self.cache_dir / CACHE_FILE_NAME

    def _cache_document(self, document: Dict[str, Any], url: str) -> None:
        """Cache the document to local storage."""
        cache_data = {
            "metadata": {
                "last_sync": time.time(),
                "source_url": url,
                "version": document.get("version", "1.0"),
            },
            "document": document,
        }
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(self._cache_file(), "w") as f:
                json.dump(cache_data, f, indent=2)
        except OSError as e:
            logger.warning("Failed to cache mapping document: %s", e)

    def _load_cached_document(self) -> Optional[Dict[str, Any]]:
        """Load the cached document, or None."""
        cache_file = self._cache_file()
        if not cache_file.exists():
            return None

        try:
            with open(cache_file, "r") as f:
                cache_data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load cached mappings: %s", e)
            return None

        metadata = cache_data.get("metadata", {})
        cache_age_hours = (time.time() - metadata.get("last_sync", 0)) / 3600
        if cache_age_hours > self.config.cache_ttl_hours:
            logger.warning(
                "Mapping cache is %.1f hours old (ttl %d hours), consider refreshing",
                cache_age_hours, self.config.cache_ttl_hours,
            )
        return cache_data.get("document")


async def refresh_from_remote(
    registry: MappingRegistry,
    url: Optional[str] = None,
    config: Optional[ConverterConfig] = None,
) -> RefreshResult:
    """Refresh ``registry`` from ``url`` (or the configured mapping source)."""
    return await MappingSync(registry, config).refresh(url)
