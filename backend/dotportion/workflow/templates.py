# Copyright (c) 2025 DotPortion
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Template resolution for node configuration.

A string whose whole (trimmed) value is `{{a.b.c}}` is replaced by the
value at that path. The first path segment is looked up in the execution
context, then in the node input. Unresolvable paths become None.
"""

import copy
import re
from typing import Any, Dict, List, Tuple

TEMPLATE_PATTERN = re.compile(r"{{\s*([^}]+?)\s*}}")


def lookup_path(path: str, context: Dict[str, Any], input: Any) -> Any:
    """Resolve a dotted path against context first, then input."""
    keys = path.strip().split(".")
    head = keys[0]

    if isinstance(context, dict) and head in context:
        current = context[head]
    elif isinstance(input, dict) and head in input:
        current = input[head]
    else:
        return None

    for key in keys[1:]:
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, list) and key.isdigit() and int(key) < len(current):
            current = current[int(key)]
        else:
            return None
    return current


def resolve_templates(value: Any, context: Dict[str, Any], input: Any) -> Any:
    """Recursively resolve `{{path}}` strings inside dicts and lists."""
    if isinstance(value, dict):
        return {k: resolve_templates(v, context, input) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_templates(v, context, input) for v in value]
    if isinstance(value, str):
        trimmed = value.strip()
        match = TEMPLATE_PATTERN.fullmatch(trimmed)
        if match:
            return copy.deepcopy(lookup_path(match.group(1), context, input))
    return value


def extract_references(expression: str) -> Tuple[str, List[str]]:
    """
    Replace embedded `{{path}}` references with var_N names.

    Returns the rewritten expression and the referenced paths in order.
    """
    paths: List[str] = []

    def replace(match: re.Match) -> str:
        paths.append(match.group(1))
        return f"var_{len(paths) - 1}"

    return TEMPLATE_PATTERN.sub(replace, expression), paths
