"""Pytest configuration and shared fixtures."""

import pytest
from typing import Dict, Any

from flowbridge.config import ConverterConfig
from flowbridge.converter import WorkflowConverter
from flowbridge.expressions import ExpressionParser, ExpressionTranspiler
from flowbridge.mappings import MappingRegistry


@pytest.fixture
def n8n_workflow() -> Dict[str, Any]:
    """Webhook -> HTTP Request -> Send Email, connections keyed by node name."""
    return {
        "name": "Order notifications",
        "nodes": [
            {
                "id": "a1",
                "name": "Order Webhook",
                "type": "n8n-nodes-base.webhook",
                "typeVersion": 1,
                "position": [100, 200],
                "parameters": {"path": "orders", "httpMethod": "POST"},
            },
            {
                "id": "b2",
                "name": "Fetch Customer",
                "type": "n8n-nodes-base.httpRequest",
                "typeVersion": 3,
                "position": [300, 200],
                "parameters": {
                    "url": "=https://api.example.com/customers/{{ $json.customerId }}",
                    "method": "get",
                },
            },
            {
                "id": "c3",
                "name": "Send Email",
                "type": "n8n-nodes-base.emailSend",
                "typeVersion": 1,
                "position": [500, 200],
                "parameters": {
                    "to": "={{ $json.email }}",
                    "subject": "Your order",
                    "text": "={{ $str.upper($json.name) }}",
                },
            },
        ],
        "connections": {
            "Order Webhook": {"main": [[{"node": "Fetch Customer", "type": "main", "index": 0}]]},
            "Fetch Customer": {"main": [[{"node": "Send Email", "type": "main", "index": 0}]]},
        },
        "active": False,
        "settings": {},
    }


@pytest.fixture
def make_workflow() -> Dict[str, Any]:
    """HTTP module -> Slack module."""
    return {
        "name": "Slack relay",
        "flow": [
            {
                "id": 1,
                "name": "Get Status",
                "type": "http:ActionSendData",
                "parameters": {"url": "https://status.example.com", "method": "get"},
                "metadata": {"designer": {"x": 0, "y": 0}},
            },
            {
                "id": 2,
                "name": "Post Status",
                "type": "slack:ActionPostMessage",
                "parameters": {"channel": "#ops", "text": "Status: {{ 1.status }}"},
                "metadata": {"designer": {"x": 300, "y": 0}},
            },
        ],
        "routes": [{"sourceId": 1, "targetId": 2}],
        "metadata": {},
    }


@pytest.fixture
def make_workflow_with_unknown() -> Dict[str, Any]:
    """Two modules, the second of a type nothing maps."""
    return {
        "name": "Unknown module",
        "flow": [
            {"id": 1, "name": "Request", "type": "http:ActionSendData", "parameters": {"url": "https://x"}},
            {"id": 2, "name": "Mystery", "type": "foo", "parameters": {"answer": 42}},
        ],
        "routes": [{"sourceId": 1, "targetId": 2}],
    }


@pytest.fixture
def test_config(tmp_path) -> ConverterConfig:
    """Config with a temporary cache and no retry delay."""
    return ConverterConfig(cache_dir=tmp_path / "cache", max_retries=1, retry_delay=0)


@pytest.fixture
def registry() -> MappingRegistry:
    """Registry with base mappings and built-in plugins."""
    return MappingRegistry.with_defaults()


@pytest.fixture
def converter(registry: MappingRegistry, test_config: ConverterConfig) -> WorkflowConverter:
    """Converter over a fresh registry."""
    return WorkflowConverter(registry, test_config)


@pytest.fixture
def expression_parser() -> ExpressionParser:
    """Expression parser instance."""
    return ExpressionParser()


@pytest.fixture
def transpiler(expression_parser: ExpressionParser) -> ExpressionTranspiler:
    """Expression transpiler instance."""
    return ExpressionTranspiler(expression_parser)
