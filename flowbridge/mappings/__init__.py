"""Mapping package for entity types.

This package holds the definitions that turn an n8n node type into a Make
module type and back, the plugins that contribute extra definitions and
hooks, and the remote refresh of definitions.

Classes:
    MappingRegistry: Definitions per direction plus registered plugins
    CoverageReport: Mapped/unmapped counts for a set of entity types
    ConverterPlugin: Base class for plugins
    WeatherPlugin: OpenWeatherMap mappings
    GoogleSheetsPlugin: Google Sheets mappings
    NotionPlugin: Notion mappings
    MappingSync: Fetch and cache remote mapping documents
    RefreshResult: Outcome of a refresh

Functions:
    base_mappings: The base mapping tables for both directions
    builtin_plugins: Plugins registered by default
    refresh_from_remote: Refresh a registry from a remote document
"""

from .base import BASE_MAPPINGS, base_mappings, build_mapping_tables
from .plugins import (
    ConverterPlugin,
    GoogleSheetsPlugin,
    NotionPlugin,
    WeatherPlugin,
    builtin_plugins,
)
from .registry import CoverageReport, MappingRegistry
from .sync import MappingSync, RefreshResult, refresh_from_remote

__all__ = [
    "BASE_MAPPINGS",
    "base_mappings",
    "build_mapping_tables",
    "ConverterPlugin",
    "GoogleSheetsPlugin",
    "NotionPlugin",
    "WeatherPlugin",
    "builtin_plugins",
    "CoverageReport",
    "MappingRegistry",
    "MappingSync",
    "RefreshResult",
    "refresh_from_remote",
]
