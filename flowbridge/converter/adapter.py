"""Adapters between the structured and flattened result shapes.

Older consumers expect each review entry as one string,
``"<nodeId> - <p1, p2>: <reason>"``. Newer ones expect an object with
``nodeId``, ``parameters`` and ``reason``. Both shapes carry the same
information for well-formed entries, so results can move between them
freely.
"""

from typing import Any

from ..models import (
    ConversionLog,
    ConversionResult,
    ModuleFlow,
    NodeGraph,
    ParameterReview,
    Platform,
    create_timestamp,
)
from ..values import deep_copy

_LOG_TYPES = ("info", "warning", "error")
_DEBUG_KEYS = ("mappedModules", "unmappedModules", "mappedNodes", "unmappedNodes")


def ensure_valid_log_entry(entry: Any) -> dict[str, str]:
    """Coerce anything into a ``{type, message, timestamp}`` log entry."""
    if not isinstance(entry, dict):
        return {"type": "info", "message": str(entry), "timestamp": create_timestamp()}

    log_type = entry.get("type")
    if log_type not in _LOG_TYPES:
        log_type = "info"
    message = entry.get("message", "")
    return {
        "type": log_type,
        "message": message if isinstance(message, str) else str(message),
        "timestamp": entry.get("timestamp") or create_timestamp(),
    }


def _review_string(review: Any) -> str:
    if isinstance(review, str):
        return review
    if isinstance(review, ParameterReview):
        return review.encode()
    return ParameterReview(
        node_id=str(review.get("nodeId", "unknown")),
        parameters=[str(p) for p in review.get("parameters") or []],
        reason=str(review.get("reason", "")),
    ).encode()


def _review_object(review: Any) -> dict[str, Any]:
    if isinstance(review, str):
        return ParameterReview.decode(review).to_dict()
    if isinstance(review, ParameterReview):
        return review.to_dict()
    return {
        "nodeId": str(review.get("nodeId", "unknown")),
        "parameters": [str(p) for p in review.get("parameters") or []] or ["unknown"],
        "reason": str(review.get("reason", "")),
    }


def _infer_valid_input(logs: list[dict[str, str]]) -> bool:
    return not any(log["type"] == "error" and "Invalid" in log["message"] for log in logs)


def to_legacy_result(result: dict[str, Any]) -> dict[str, Any]:
    """Structured result dict -> flattened review strings."""
    logs = [ensure_valid_log_entry(entry) for entry in result.get("logs") or []]
    reviews = result.get("parametersNeedingReview")
    if reviews is None:
        reviews = result.get("paramsNeedingReview") or []

    legacy = {
        "convertedWorkflow": deep_copy(result.get("convertedWorkflow") or {}),
        "logs": logs,
        "parametersNeedingReview": [_review_string(review) for review in reviews],
        "unmappedNodes": list(result.get("unmappedNodes") or []),
        "isValidInput": result.get("isValidInput", _infer_valid_input(logs)),
    }
    if result.get("debug") is not None:
        legacy["debug"] = deep_copy(result["debug"])
    return legacy


def to_modern_result(result: dict[str, Any]) -> dict[str, Any]:
    """Flattened result dict -> structured review objects.

    Missing keys get empty defaults and the debug block always carries the
    four entity lists.
    """
    logs = [ensure_valid_log_entry(entry) for entry in result.get("logs") or []]
    reviews = result.get("parametersNeedingReview")
    if reviews is None:
        reviews = result.get("paramsNeedingReview") or []

    debug = result.get("debug") or {}
    debug_info = {key: deep_copy(debug[key]) if isinstance(debug.get(key), list) else [] for key in _DEBUG_KEYS}
    if isinstance(debug.get("summary"), dict):
        debug_info["summary"] = deep_copy(debug["summary"])

    return {
        "convertedWorkflow": deep_copy(result.get("convertedWorkflow") or {}),
        "logs": logs,
        "parametersNeedingReview": [_review_object(review) for review in reviews],
        "unmappedNodes": list(result.get("unmappedNodes") or []),
        "isValidInput": result.get("isValidInput", _infer_valid_input(logs)),
        "debug": debug_info,
    }


def empty_workflow(platform: Platform | str | None, name: str = "Invalid workflow") -> dict[str, Any]:
    """Empty workflow in a platform's wire shape. Unknown platforms give ``{}``."""
    try:
        platform = Platform(platform)
    except ValueError:
        return {}
    if platform is Platform.NODE_GRAPH:
        return NodeGraph(name=name).to_dict()
    return ModuleFlow(name=name).to_dict()


def create_error_result(
    message: str,
    target_platform: Platform | str | None = None,
    is_valid_input: bool = False,
) -> ConversionResult:
    """Minimal result carrying a single error log."""
    return ConversionResult(
        converted_workflow=empty_workflow(target_platform),
        logs=[ConversionLog(type="error", message=message)],
        is_valid_input=is_valid_input,
    )
