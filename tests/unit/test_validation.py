"""Unit tests for structural validation."""

from flowbridge.converter import validate_module_flow, validate_node_graph
from flowbridge.converter.validation import normalize_module_flow


class TestNodeGraphValidation:
    """Test n8n workflow validation."""

    def test_valid_workflow(self, n8n_workflow):
        """Test a well-formed workflow and its normalized copy."""
        result = validate_node_graph(n8n_workflow)

        assert result.valid
        assert result.errors == []
        assert result.normalized_workflow == n8n_workflow
        assert result.normalized_workflow is not n8n_workflow

    def test_missing_nodes(self):
        """Test a workflow without nodes."""
        result = validate_node_graph({"connections": {}})

        assert not result.valid
        assert "Missing required property: nodes" in result.errors

    def test_node_missing_type(self):
        """Test that node problems carry their location."""
        result = validate_node_graph({"nodes": [{"id": "1", "name": "A"}], "connections": {}})

        assert not result.valid
        assert "Missing required property: nodes.0.type" in result.errors

    def test_numeric_ids_accepted(self):
        """Test that numeric node ids are coerced."""
        result = validate_node_graph({
            "nodes": [{"id": 1, "name": "A", "type": "n8n-nodes-base.noOp"}],
            "connections": {},
        })

        assert result.valid

    def test_duplicate_ids(self):
        """Test duplicate node ids."""
        node = {"id": "1", "name": "A", "type": "n8n-nodes-base.noOp"}
        result = validate_node_graph({"nodes": [node, dict(node, name="B")], "connections": {}})

        assert not result.valid
        assert any("Duplicate node id: 1" in error for error in result.errors)

    def test_bad_position(self):
        """Test that a position must have two coordinates."""
        result = validate_node_graph({
            "nodes": [{"id": "1", "name": "A", "type": "t", "position": [1]}],
            "connections": {},
        })

        assert not result.valid

    def test_not_an_object(self):
        """Test non-dict input."""
        result = validate_node_graph(["nodes"])

        assert not result.valid
        assert result.errors == ["Workflow must be a JSON object"]


class TestModuleFlowValidation:
    """Test Make scenario validation."""

    def test_valid_workflow(self, make_workflow):
        """Test a well-formed scenario."""
        assert validate_module_flow(make_workflow).valid

    def test_missing_name(self, make_workflow):
        """Test that a scenario needs a name."""
        del make_workflow["name"]

        result = validate_module_flow(make_workflow)

        assert not result.valid
        assert "Missing required property: name" in result.errors

    def test_module_needs_type(self):
        """Test a module with neither type nor module."""
        result = validate_module_flow({"name": "x", "flow": [{"id": 1}]})

        assert not result.valid

    def test_legacy_envelope(self):
        """Test that the blueprint/modules envelope is unwrapped."""
        legacy = {
            "blueprint": {"name": "Legacy", "metadata": {"version": 1}},
            "modules": [{"id": 1, "module": "http:ActionSendData", "mapper": {"url": "https://x"}}],
        }

        result = validate_module_flow(legacy)

        assert result.valid
        assert result.normalized_workflow["name"] == "Legacy"
        assert result.normalized_workflow["flow"][0]["module"] == "http:ActionSendData"
        assert result.normalized_workflow["metadata"] == {"version": 1}
        assert "modules" in legacy

    def test_normalize_leaves_flow_shape(self, make_workflow):
        """Test normalizing an already-flat scenario."""
        assert normalize_module_flow(make_workflow) == make_workflow
