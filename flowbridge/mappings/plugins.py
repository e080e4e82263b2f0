"""Converter plugins: bundles of extra mappings plus optional hooks.

A plugin contributes mapping definitions for both directions and may
adjust the workflow before and after conversion, or an entity right after
it was mapped. Hooks receive copies and return new values.
"""

import re
from typing import Any

from ..models import Direction, Entity
from ..values import deep_copy

# Sheet column names run from "A" to "ZZZ"
_COLUMN = re.compile(r"[A-Z]{1,3}")


def column_letter(index: int) -> str:
    """Zero-based column number to a sheet column name: 0 -> "A", 26 -> "AA"."""
    letters = ""
    index += 1
    while index:
        index, rest = divmod(index - 1, 26)
        letters = chr(65 + rest) + letters
    return letters


def column_index(letters: str) -> int:
    """Inverse of ``column_letter``."""
    index = 0
    for letter in letters:
        index = index * 26 + ord(letter) - 64
    return index - 1


class ConverterPlugin:
    """Base class for plugins. Subclasses override what they need."""

    id: str = ""
    name: str = ""
    description: str = ""
    version: str = "1.0.0"
    author: str = "flowbridge"

    def node_mappings(self) -> dict[Direction, dict[str, dict[str, Any]]]:
        """Mapping entries per direction, keyed by source type."""
        return {Direction.A_TO_B: {}, Direction.B_TO_A: {}}

    def before_conversion(self, workflow: dict[str, Any], direction: Direction) -> dict[str, Any]:
        return workflow

    def after_entity_mapping(self, source: Entity, target: Entity, direction: Direction) -> Entity:
        return target

    def after_conversion(self, workflow: dict[str, Any], direction: Direction) -> dict[str, Any]:
        return workflow

    def info(self) -> dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "author": self.author,
        }


def _with_parameters(entity: Entity, parameters: dict[str, Any]) -> Entity:
    return entity.model_copy(update={"parameters": parameters})


class WeatherPlugin(ConverterPlugin):
    """OpenWeatherMap node and Make weather module."""

    id = "weather-integration"
    name = "Weather Integration"
    description = "Provides mappings for weather nodes and modules"

    def node_mappings(self):
        return {
            Direction.A_TO_B: {
                "n8n-nodes-base.openWeatherMap": {
                    "type": "weather:ActionGetCurrentWeather",
                    "parameterMap": {"cityName": "city", "units": "units", "apiKey": "apiKey"},
                    "description": "OpenWeatherMap node for weather data",
                },
            },
            Direction.B_TO_A: {
                "weather:ActionGetCurrentWeather": {
                    "type": "n8n-nodes-base.openWeatherMap",
                    "parameterMap": {"city": "cityName", "units": "units", "apiKey": "apiKey"},
                    "description": "Weather module for current weather data",
                },
            },
        }

    def after_entity_mapping(self, source, target, direction):
        parameters = deep_copy(target.parameters)
        if direction is Direction.B_TO_A and source.type == "weather:ActionGetCurrentWeather":
            parameters.setdefault("resource", "currentWeather")
            parameters.setdefault("authentication", "apiKey")
            parameters.setdefault("units", "metric")
            return _with_parameters(target, parameters)
        if direction is Direction.A_TO_B and source.type == "n8n-nodes-base.openWeatherMap":
            parameters.setdefault("type", "name")
            return _with_parameters(target, parameters)
        return target


class GoogleSheetsPlugin(ConverterPlugin):
    """Google Sheets append-row node and module."""

    id = "google-sheets-integration"
    name = "Google Sheets Integration"
    description = "Provides mappings for Google Sheets nodes and modules"

    def node_mappings(self):
        return {
            Direction.A_TO_B: {
                "n8n-nodes-base.googleSheets": {
                    "type": "google-sheets:addRow",
                    "parameterMap": {
                        "sheetName": "sheetId",
                        "documentId": "spreadsheetId",
                        "operation": "operation",
                        "values": "values",
                    },
                    "description": "Google Sheets node for spreadsheet operations",
                },
            },
            Direction.B_TO_A: {
                "google-sheets:addRow": {
                    "type": "n8n-nodes-base.googleSheets",
                    "parameterMap": {
                        "sheetId": "sheetName",
                        "spreadsheetId": "documentId",
                        "values": "values",
                    },
                    "description": "Google Sheets module for adding rows",
                },
            },
        }

    def after_entity_mapping(self, source, target, direction):
        parameters = deep_copy(target.parameters)
        values = parameters.get("values")

        if direction is Direction.B_TO_A and source.type == "google-sheets:addRow":
            parameters["operation"] = "append"
            # Make keys columns by number, n8n by letter: "0" -> "A", "26" -> "AA"
            if isinstance(values, dict):
                parameters["values"] = {
                    column_letter(int(key)) if str(key).isascii() and str(key).isdigit() else key: value
                    for key, value in values.items()
                }
            return _with_parameters(target, parameters)

        if direction is Direction.A_TO_B and source.type == "n8n-nodes-base.googleSheets":
            parameters.setdefault("from", "drive")
            parameters.setdefault("mode", "select")
            parameters.setdefault("includesHeaders", True)
            parameters.setdefault("insertDataOption", "INSERT_ROWS")
            if isinstance(values, dict):
                parameters["values"] = {
                    str(column_index(key)) if _COLUMN.fullmatch(str(key)) else key: value
                    for key, value in values.items()
                }
            return _with_parameters(target, parameters)

        return target


class NotionPlugin(ConverterPlugin):
    """Notion database node, trigger and modules."""

    id = "notion-integration"
    name = "Notion Integration"
    description = "Provides mappings for Notion nodes and modules"

    def node_mappings(self):
        return {
            Direction.A_TO_B: {
                "n8n-nodes-base.notion": {
                    "type": "notion",
                    "parameterMap": {
                        "resource": "resource",
                        "operation": "operation",
                        "databaseId": "database",
                        "pageId": "page",
                        "title": "title",
                        "properties": "properties",
                    },
                    "description": "Notion node for database and page operations",
                },
                "n8n-nodes-base.notionTrigger": {
                    "type": "notion:watchDatabaseItems",
                    "parameterMap": {"databaseId": "database", "limit": "limit", "event": "select"},
                    "description": "Notion trigger for watching database changes",
                },
            },
            Direction.B_TO_A: {
                "notion": {
                    "type": "n8n-nodes-base.notion",
                    "parameterMap": {
                        "resource": "resource",
                        "operation": "operation",
                        "database": "databaseId",
                        "page": "pageId",
                        "title": "title",
                        "properties": "properties",
                    },
                    "description": "Notion module for database and page operations",
                },
                "notion:watchDatabaseItems": {
                    "type": "n8n-nodes-base.notionTrigger",
                    "parameterMap": {"database": "databaseId", "limit": "limit", "select": "event"},
                    "description": "Notion trigger module for watching database changes",
                },
            },
        }

    def after_entity_mapping(self, source, target, direction):
        properties = target.parameters.get("properties")

        # n8n keeps properties as a mapping, Make as a list of name/value pairs
        if direction is Direction.A_TO_B and source.type == "n8n-nodes-base.notion":
            if isinstance(properties, dict):
                parameters = deep_copy(target.parameters)
                parameters["properties"] = [
                    {"name": key, "value": value} for key, value in properties.items()
                ]
                return _with_parameters(target, parameters)

        if direction is Direction.B_TO_A and source.type == "notion":
            if isinstance(properties, list) and all(
                isinstance(item, dict) and "name" in item for item in properties
            ):
                parameters = deep_copy(target.parameters)
                parameters["properties"] = {item["name"]: item.get("value") for item in properties}
                return _with_parameters(target, parameters)

        return target


def builtin_plugins() -> list[ConverterPlugin]:
    """Plugins registered by ``MappingRegistry.with_defaults``."""
    return [WeatherPlugin(), GoogleSheetsPlugin(), NotionPlugin()]
