"""Unit tests for the debug tracker."""

import logging

from flowbridge.converter import DebugTracker
from flowbridge.models import Direction, Entity


def entity(entity_id: str, entity_type: str = "n8n-nodes-base.slack") -> Entity:
    return Entity(id=entity_id, name=f"Node {entity_id}", type=entity_type)


class TestDebugTracker:
    """Test per-run diagnostics."""

    def test_empty_summary(self):
        """Test a tracker with nothing recorded."""
        summary = DebugTracker().summary()

        assert summary["nodeCount"] == 0
        assert summary["successRate"] == 0
        assert "conversionTime" not in summary

    def test_status_counts(self):
        """Test full, partial, failed and stub counts."""
        tracker = DebugTracker()
        tracker.track_mapping(entity("a"), entity("1", "slack:ActionPostMessage"), success=True)
        tracker.track_mapping(entity("b"), entity("2", "slack:ActionPostMessage"), success=False)
        tracker.track_mapping(entity("c"), None, success=False)
        tracker.track_mapping(entity("d", "foo"), entity("4", "helper:Note"), success=True, is_stub=True)

        summary = tracker.summary()

        assert summary["nodeCount"] == 4
        assert summary["successfulNodes"] == 1
        assert summary["partialNodes"] == 1
        assert summary["failedNodes"] == 1
        assert summary["stubNodes"] == 1
        assert summary["successRate"] == 25
        assert tracker.entities["d"].success is False

    def test_success_rate_rounds_half_up(self):
        """Test 1 of 8 successful -> 12.5 -> 13."""
        tracker = DebugTracker()
        for index in range(8):
            tracker.track_mapping(entity(str(index)), entity(f"o{index}"), success=index == 0)

        assert tracker.summary()["successRate"] == 13

    def test_parameter_traces_survive_track_mapping(self):
        """Test that traces recorded before the outcome are kept."""
        tracker = DebugTracker()
        tracker.track_parameter("a", "text", "text", True)
        tracker.track_parameter("a", "extra", None, False, "no parameter mapping")
        tracker.add_warning("a", "careful")
        tracker.track_mapping(entity("a"), entity("1"), success=False)

        trace = tracker.entities["a"].to_dict()
        assert len(trace["parameterMappings"]) == 2
        assert trace["unmappedParameters"] == ["extra"]
        assert trace["sourceName"] == "Node a"
        summary = tracker.summary()
        assert summary["unmappedParamsCount"] == 1
        assert summary["warningCount"] == 1

    def test_plugin_usage(self):
        """Test plugin usage counts."""
        tracker = DebugTracker()
        tracker.track_mapping(entity("a"), entity("1"), success=True, plugin_source="notion-integration")
        tracker.track_mapping(entity("b"), entity("2"), success=True, plugin_source="notion-integration")

        assert tracker.summary()["pluginUsage"] == {"notion-integration": 2}

    def test_logs_mirrored(self, caplog):
        """Test user-facing logs, invalid levels and process log mirroring."""
        tracker = DebugTracker()

        with caplog.at_level(logging.INFO, logger="flowbridge.converter.tracker"):
            tracker.add_log("warning", "watch out")
            tracker.add_log("verbose", "coerced")

        assert [log.type for log in tracker.logs] == ["warning", "info"]
        assert tracker.logs[0].timestamp.endswith("Z")
        assert "watch out" in caplog.text

    def test_timing(self):
        """Test elapsed time appears only after finish_timing."""
        tracker = DebugTracker().start_timing()
        assert "conversionTime" not in tracker.summary()

        tracker.finish_timing()

        assert tracker.summary()["conversionTime"] >= 0
        assert tracker.logs[-1].message.startswith("Conversion completed in")

    def test_debug_info_per_direction(self):
        """Test mapped and unmapped lists land under the source side's keys."""
        tracker = DebugTracker()
        tracker.track_mapping(entity("a"), entity("1"), success=True)
        tracker.track_mapping(entity("b", "foo"), entity("2", "helper:Note"), success=False, is_stub=True)

        to_make = tracker.debug_info(Direction.A_TO_B).to_dict()
        assert [n["id"] for n in to_make["mappedNodes"]] == ["a"]
        assert [n["id"] for n in to_make["unmappedNodes"]] == ["b"]
        assert to_make["mappedModules"] == []

        to_n8n = tracker.debug_info(Direction.B_TO_A).to_dict()
        assert [m["id"] for m in to_n8n["mappedModules"]] == ["a"]
        assert to_n8n["summary"]["stubNodes"] == 1

    def test_report(self):
        """Test the full report layout."""
        tracker = DebugTracker()
        tracker.track_mapping(entity("a"), entity("1"), success=True)

        report = tracker.report()

        assert set(report) == {"nodes", "logs", "summary"}
        assert report["nodes"]["a"]["mappingStatus"] == "full"
