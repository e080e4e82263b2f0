"""Closed translation tables for expression roots and library functions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class FunctionRule:
    """One library function known on both platforms."""

    node_graph_name: str
    module_flow_name: str
    min_args: int
    max_args: int

    def accepts(self, count: int) -> bool:
        return self.min_args <= count <= self.max_args


FUNCTION_RULES = (
    FunctionRule("$str.upper", "upper", 1, 1),
    FunctionRule("$str.lower", "lower", 1, 1),
    FunctionRule("$str.trim", "trim", 1, 1),
    FunctionRule("$str.replace", "replace", 3, 3),
    FunctionRule("$str.substr", "substring", 2, 3),
    FunctionRule("$array.first", "first", 1, 1),
    FunctionRule("$array.last", "last", 1, 1),
    FunctionRule("$array.join", "join", 1, 2),
    FunctionRule("$obj.keys", "keys", 1, 1),
    FunctionRule("$date.now", "now", 0, 0),
    FunctionRule("$date.format", "formatDate", 1, 2),
    FunctionRule("$math.round", "round", 1, 2),
    FunctionRule("$math.random", "random", 0, 2),
    FunctionRule("$if", "ifThenElse", 3, 3),
)

RULES_BY_NODE_GRAPH_NAME = {rule.node_graph_name: rule for rule in FUNCTION_RULES}
RULES_BY_MODULE_FLOW_NAME = {rule.module_flow_name: rule for rule in FUNCTION_RULES}

# Platform-wide variable roots, n8n name -> Make name
VARIABLE_ROOTS = {
    "$env": "env",
    "$binary": "binary",
    "$parameter": "parameters",
    "$workflow": "scenario",
}
REVERSE_VARIABLE_ROOTS = {target: source for source, target in VARIABLE_ROOTS.items()}

# Item data of the upstream node, and of a node picked by name
CURRENT_ITEM_ROOT = "$json"
NAMED_NODE_ROOT = "$node"
