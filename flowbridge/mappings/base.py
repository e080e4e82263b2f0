"""Base mapping table between n8n node types and Make module types.

Each entry is declared once from the n8n side. The Make to n8n mapping is
derived by inverting the parameter map, unless an entry gives its own.
"""

from typing import Any

from ..models import Direction, MappingDefinition


# n8n node type -> Make module type, parameter map (n8n name -> Make name)
BASE_MAPPINGS: dict[str, dict[str, Any]] = {
    "n8n-nodes-base.httpRequest": {
        "type": "http:ActionSendData",
        "parameterMap": {
            "url": "url",
            "method": "method",
            "authentication": "authentication",
            "headers": "headers",
            "queryParameters": "queryParameters",
            "body": "body",
        },
        "valueTransforms": {"method": "upper"},
        "description": "Make HTTP requests to any API",
    },
    "n8n-nodes-base.emailSend": {
        "type": "email:ActionSendEmail",
        "parameterMap": {
            "to": "to",
            "subject": "subject",
            "text": "text",
            "html": "html",
            "attachments": "attachments",
        },
        "description": "Send emails",
    },
    "n8n-nodes-base.gmail": {
        "type": "gmail:ActionSendEmail",
        "parameterMap": {"to": "to", "subject": "subject", "text": "message"},
        "description": "Send email through Gmail",
    },
    "n8n-nodes-base.webhook": {
        "type": "webhooks:CustomWebhook",
        "parameterMap": {
            "path": "url",
            "httpMethod": "method",
            "responseMode": "responseType",
            "responseData": "responseData",
        },
        "description": "Receive data via webhooks",
    },
    "n8n-nodes-base.function": {
        "type": "tools:ActionRunJavascript",
        "parameterMap": {"functionCode": "code"},
        "description": "Run custom JavaScript",
    },
    "n8n-nodes-base.code": {
        "type": "code:ExecuteCode",
        "parameterMap": {"jsCode": "code", "language": "language"},
        "description": "Run custom code",
    },
    "n8n-nodes-base.switch": {
        "type": "builtin:BasicRouter",
        "parameterMap": {},
        "description": "Route items to different outputs",
    },
    "n8n-nodes-base.set": {
        "type": "util:SetVariables",
        "parameterMap": {"values": "variables", "keepOnlySet": "keepOnlySet"},
        "valueTransforms": {"keepOnlySet": "boolean_to_string"},
        "reverseValueTransforms": {"keepOnlySet": "string_to_boolean"},
        "description": "Set values on items",
    },
    "n8n-nodes-base.slack": {
        "type": "slack:ActionPostMessage",
        "parameterMap": {"channel": "channel", "text": "text"},
        "description": "Post a message to Slack",
    },
    "n8n-nodes-base.scheduleTrigger": {
        "type": "builtin:Scheduler",
        "parameterMap": {"rule": "schedule"},
        "description": "Start on a schedule",
    },
    "n8n-nodes-base.noOp": {
        "type": "helper:Note",
        "parameterMap": {},
        "description": "Pass items through unchanged",
    },
}


def definition_pair(
    node_type: str,
    data: dict[str, Any],
    source: str = "base",
) -> tuple[MappingDefinition, MappingDefinition]:
    """Build the n8n->Make and Make->n8n definitions for one entry."""
    module_type = data["type"]
    parameter_map = dict(data.get("parameterMap") or {})
    reverse_map = data.get("reverseParameterMap")
    if reverse_map is None:
        reverse_map = {target: name for name, target in parameter_map.items()}

    forward = MappingDefinition(
        source_type=node_type,
        target_type=module_type,
        parameter_map=parameter_map,
        value_transforms=dict(data.get("valueTransforms") or {}),
        description=data.get("description", ""),
        source=source,
    )
    # Only case transforms carry over to the reverse direction implicitly
    reverse_transforms = data.get("reverseValueTransforms")
    if reverse_transforms is None:
        reverse_transforms = {
            parameter_map[name]: transform
            for name, transform in forward.value_transforms.items()
            if transform in ("upper", "lower") and name in parameter_map
        }
    backward = MappingDefinition(
        source_type=module_type,
        target_type=node_type,
        parameter_map=dict(reverse_map),
        value_transforms=dict(reverse_transforms),
        description=data.get("description", ""),
        source=source,
    )
    return forward, backward


def build_mapping_tables(
    entries: dict[str, dict[str, Any]],
    source: str = "base",
) -> dict[Direction, dict[str, MappingDefinition]]:
    """Expand n8n-keyed entries into per-direction mapping tables."""
    tables: dict[Direction, dict[str, MappingDefinition]] = {
        Direction.A_TO_B: {},
        Direction.B_TO_A: {},
    }
    for node_type, data in entries.items():
        forward, backward = definition_pair(node_type, data, source)
        tables[Direction.A_TO_B][forward.source_type] = forward
        tables[Direction.B_TO_A][backward.source_type] = backward
    return tables


def base_mappings() -> dict[Direction, dict[str, MappingDefinition]]:
    """Base mapping tables for both directions."""
    return build_mapping_tables(BASE_MAPPINGS)
