"""Integration tests for MCP tools."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from fastmcp import Context
from fastmcp.exceptions import ToolError

from flowbridge.converter import WorkflowConverter
from flowbridge.mappings import RefreshResult
from flowbridge.mcp import server


@pytest.fixture
def mock_context():
    """Create mock MCP context."""
    context = AsyncMock(spec=Context)
    context.info = AsyncMock()
    context.warning = AsyncMock()
    return context


@pytest.fixture
def workflows_dir(tmp_path: Path, monkeypatch) -> Path:
    """Point the file tools at a temporary workflows directory."""
    monkeypatch.setattr(server, "WORKFLOWS_BASE", tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def fresh_converter(registry, test_config, monkeypatch):
    """Give each test its own converter so registry changes do not leak."""
    converter = WorkflowConverter(registry, test_config)
    monkeypatch.setattr(server, "converter", converter)
    return converter


class TestConversionTools:
    """Test the conversion tools."""

    @pytest.mark.asyncio
    async def test_convert_workflow(self, mock_context, n8n_workflow):
        """Test converting an n8n workflow to Make."""
        result = await server.convert_workflow.fn(mock_context, n8n_workflow)

        assert result["isValidInput"] is True
        assert [m["type"] for m in result["convertedWorkflow"]["flow"]] == [
            "webhooks:CustomWebhook",
            "http:ActionSendData",
            "email:ActionSendEmail",
        ]
        assert mock_context.info.await_count == 2

    @pytest.mark.asyncio
    async def test_convert_workflow_flattened(self, mock_context, make_workflow_with_unknown):
        """Test flattened review entries."""
        result = await server.convert_workflow.fn(
            mock_context, make_workflow_with_unknown, "make", "n8n", review_format="flattened"
        )

        assert result["parametersNeedingReview"] == ["2 - all: no mapping for type foo"]
        assert result["unmappedNodes"] == ["foo"]

    @pytest.mark.asyncio
    async def test_convert_workflow_invalid_input(self, mock_context):
        """Test that invalid input is reported in the result."""
        result = await server.convert_workflow.fn(mock_context, {"nodes": "nope"}, "n8n", "make")

        assert result["isValidInput"] is False
        assert result["logs"][0]["type"] == "error"

    @pytest.mark.asyncio
    async def test_convert_workflow_bad_review_format(self, mock_context, n8n_workflow):
        """Test an unsupported review format."""
        with pytest.raises(ToolError, match="Unsupported review format"):
            await server.convert_workflow.fn(mock_context, n8n_workflow, review_format="xml")

    @pytest.mark.asyncio
    async def test_convert_workflow_file(self, mock_context, workflows_dir, make_workflow):
        """Test converting a file and writing the result."""
        (workflows_dir / "make").mkdir()
        (workflows_dir / "make" / "relay.json").write_text(json.dumps(make_workflow))

        summary = await server.convert_workflow_file.fn(mock_context, "make/relay.json", "n8n/relay.json")

        output = workflows_dir / "n8n" / "relay.json"
        assert summary["output"] == str(output.resolve())
        assert "convertedWorkflow" not in summary
        written = json.loads(output.read_text())
        assert [n["type"] for n in written["nodes"]] == [
            "n8n-nodes-base.httpRequest",
            "n8n-nodes-base.slack",
        ]

    @pytest.mark.asyncio
    async def test_convert_workflow_file_invalid_not_written(self, mock_context, workflows_dir):
        """Test that a failed conversion writes nothing."""
        (workflows_dir / "broken.json").write_text(json.dumps({"nodes": [{"id": "1"}], "connections": {}}))

        summary = await server.convert_workflow_file.fn(mock_context, "broken.json", "out.json")

        assert summary["isValidInput"] is False
        assert summary["output"] is None
        assert not (workflows_dir / "out.json").exists()

    @pytest.mark.asyncio
    async def test_convert_workflow_file_missing(self, mock_context, workflows_dir):
        """Test a file that does not exist."""
        with pytest.raises(ToolError, match="File not found"):
            await server.convert_workflow_file.fn(mock_context, "missing.json")

    @pytest.mark.asyncio
    async def test_convert_workflow_file_invalid_json(self, mock_context, workflows_dir):
        """Test a file that is not JSON."""
        (workflows_dir / "bad.json").write_text("{not json")

        with pytest.raises(ToolError, match="Invalid JSON"):
            await server.convert_workflow_file.fn(mock_context, "bad.json")

    @pytest.mark.asyncio
    async def test_path_outside_workflows_dir(self, mock_context, workflows_dir):
        """Test that paths escaping the workflows directory are refused."""
        with pytest.raises(ToolError, match="Access denied"):
            await server.convert_workflow_file.fn(mock_context, "../../etc/passwd")


class TestInspectionTools:
    """Test validation and mapping inspection tools."""

    def test_validate_workflow(self, n8n_workflow):
        """Test a valid n8n workflow."""
        result = server.validate_workflow.fn(n8n_workflow)

        assert result == {"is_valid": True, "platform": "n8n", "errors": [], "entity_count": 3}

    def test_validate_workflow_invalid(self):
        """Test structural errors."""
        result = server.validate_workflow.fn({"name": "x", "flow": [{"id": 1}]}, "make")

        assert result["is_valid"] is False
        assert result["errors"]

    def test_validate_workflow_undetectable(self):
        """Test input of no known shape."""
        result = server.validate_workflow.fn({"steps": []})

        assert result["is_valid"] is False
        assert result["platform"] is None

    def test_validate_workflow_unknown_platform(self, n8n_workflow):
        """Test an unknown platform name."""
        with pytest.raises(ToolError, match="Unknown platform"):
            server.validate_workflow.fn(n8n_workflow, "zapier")

    def test_list_mappings(self):
        """Test listing one direction's mappings."""
        result = server.list_mappings.fn("makeToN8n")

        assert result["direction"] == "makeToN8n"
        assert result["mappings"]["http:ActionSendData"]["targetType"] == "n8n-nodes-base.httpRequest"
        assert result["count"] == len(result["mappings"])
        assert "weather-integration" in [plugin["id"] for plugin in result["plugins"]]

    def test_list_mappings_unknown_direction(self):
        """Test an unknown direction."""
        with pytest.raises(ToolError, match="Unknown direction"):
            server.list_mappings.fn("sideways")

    def test_get_mapping_coverage(self, make_workflow_with_unknown):
        """Test coverage for a scenario with one unmapped module."""
        result = server.get_mapping_coverage.fn(make_workflow_with_unknown)

        assert result["direction"] == "makeToN8n"
        assert result["total"] == 2
        assert result["mapped"] == 1
        assert result["unmappedTypes"] == ["foo"]


class TestRefreshTool:
    """Test the mapping refresh tool."""

    @pytest.mark.asyncio
    async def test_refresh_mappings(self, mock_context, monkeypatch):
        """Test a successful refresh."""
        async def refresh(registry, url, config):
            return RefreshResult(status="success", count=4, source_url=url)

        monkeypatch.setattr(server, "refresh_from_remote", refresh)

        result = await server.refresh_mappings.fn(mock_context, "https://mappings.example.com")

        assert result == {"status": "success", "count": 4, "error": None, "sourceUrl": "https://mappings.example.com"}

    @pytest.mark.asyncio
    async def test_refresh_mappings_cached(self, mock_context, monkeypatch):
        """Test that a cache fallback is not an error."""
        async def refresh(registry, url, config):
            return RefreshResult(status="cached", count=2, error="offline", source_url=url)

        monkeypatch.setattr(server, "refresh_from_remote", refresh)

        result = await server.refresh_mappings.fn(mock_context, "https://mappings.example.com")

        assert result["status"] == "cached"

    @pytest.mark.asyncio
    async def test_refresh_mappings_error(self, mock_context, monkeypatch):
        """Test that a failed refresh raises."""
        async def refresh(registry, url, config):
            return RefreshResult(status="error", error="offline", source_url=url)

        monkeypatch.setattr(server, "refresh_from_remote", refresh)

        with pytest.raises(ToolError, match="offline"):
            await server.refresh_mappings.fn(mock_context, "https://mappings.example.com")

    @pytest.mark.asyncio
    async def test_refresh_mappings_no_source(self, mock_context):
        """Test refreshing with no url and no configured source."""
        with pytest.raises(ToolError, match="No mapping source"):
            await server.refresh_mappings.fn(mock_context)


class TestRegistration:
    """Test that the tools are registered on the server."""

    @pytest.mark.asyncio
    async def test_tools_registered(self):
        """Test every conversion tool is listed by the server."""
        tools = await server.mcp.get_tools()

        assert {
            "convert_workflow",
            "convert_workflow_file",
            "validate_workflow",
            "list_mappings",
            "get_mapping_coverage",
            "refresh_mappings",
        } <= set(tools)


class TestResources:
    """Test MCP resources."""

    def test_expression_reference(self):
        """Test the expression reference lists roots and functions."""
        reference = server.expression_reference()

        assert reference.startswith("# Expression translation")
        assert "| `$json.field` | `<upstream module id>.field` |" in reference
        assert "ifThenElse" in reference
