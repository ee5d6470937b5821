"""
Blueprint Validator

Single-pass structural and semantic check of a workflow blueprint in one
platform's schema (see platforms.py). Produces a typed ValidationResult.

Input:
    document (dict | str) — blueprint JSON, parsed or raw
    platform (str) — "make", "n8n" or "canonical"
    resolver (ModuleResolver, optional) — defaults to the bundled catalog

Output:
    ValidationResult — isValid, errors, warnings, fixes (suggested, unapplied)

Check order:
    1. Top-level shape (missing node sequence is fatal)
    2. Per-node required fields
    3. Module names via the resolver
    4. Id uniqueness and, where required, contiguity from 1
    5. Settings completeness against the platform defaults
    6. Connection heuristics (warnings)
    7. Best-practice warnings

Deterministic. No network calls. Never raises for a bad document; an
unknown platform identifier raises UnsupportedPlatformError.
"""

import json
from collections import Counter

from blueprint_engine.blueprint_io import BlueprintParseError, load_blueprint_json
from blueprint_engine.config import LINEAR_CHAIN_THRESHOLD, MIN_NODE_SPACING
from blueprint_engine.graph_integrity_check import graph_integrity_check
from blueprint_engine.logger import log
from blueprint_engine.models import Fix, ValidationIssue, ValidationResult, ValidationWarning
from blueprint_engine.module_resolver import get_default_resolver
from blueprint_engine.platforms import (
    default_settings,
    get_position,
    get_profile,
    iter_nodes,
    missing_settings_fields,
    node_ref,
    read_connections,
)

MIN_NAME_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 10


def validate_blueprint(document, platform="make", resolver=None):
    """Validate a blueprint document.

    Args:
        document: Blueprint dict, or raw JSON text.
        platform: Platform identifier or PlatformProfile.
        resolver: ModuleResolver to check module names against.

    Returns:
        ValidationResult. isValid is True iff there are no errors;
        warnings never affect validity.
    """
    profile = get_profile(platform)
    if resolver is None:
        resolver = get_default_resolver()

    errors = []
    warnings = []
    fixes = []

    def _error(kind, message, location=None, suggested_fix=None):
        errors.append(ValidationIssue(
            type=kind, message=message, location=location, suggested_fix=suggested_fix,
        ))

    def _warn(kind, message, location=None):
        warnings.append(ValidationWarning(type=kind, message=message, location=location))

    def _result():
        result = ValidationResult(
            is_valid=not errors, errors=errors, warnings=warnings, fixes=fixes or None,
        )
        log("validator.complete", level="debug", platform=profile.name,
            valid=result.is_valid, errors=len(errors), warnings=len(warnings))
        return result

    # ===== 1. Top-level shape =====

    if isinstance(document, (str, bytes)):
        try:
            document = load_blueprint_json(document)
        except BlueprintParseError as e:
            _error("structure", str(e), suggested_fix="Provide the blueprint as a JSON object")
            return _result()

    if not isinstance(document, dict):
        _error("structure",
               f"Blueprint must be a JSON object, got {type(document).__name__}",
               suggested_fix="Provide the blueprint as a JSON object")
        return _result()

    nodes_key, settings_key = profile.nodes_key, profile.settings_key
    if not isinstance(document.get(nodes_key), list):
        _error("structure",
               f'Blueprint must have a "{nodes_key}" array at the root level',
               location=nodes_key,
               suggested_fix=f'Ensure blueprint has {{ "{nodes_key}": [...], "{settings_key}": {{...}} }} structure')
        return _result()

    settings = document.get(settings_key)
    if not isinstance(settings, dict):
        _error("structure",
               f'Blueprint must have a "{settings_key}" object at the root level',
               location=settings_key,
               suggested_fix=f'Add "{settings_key}": {json.dumps(default_settings(profile))}')
        settings = None

    nodes = iter_nodes(document, profile)
    dict_nodes = [(loc, node) for loc, node in nodes if isinstance(node, dict)]

    # ===== 2 + 3. Per-node fields and module names =====

    for location, node in nodes:
        if not isinstance(node, dict):
            _error("structure", f"Node at {location} must be an object, got {type(node).__name__}",
                   location=location)
            continue
        _check_required_fields(node, location, profile, _error)
        _check_module_name(node, location, profile, resolver, _error, _warn, fixes)

    # ===== 4. Id invariants =====

    ids = [node.get("id") for _, node in dict_nodes if node.get("id") is not None]
    counts = Counter(i for i in ids if isinstance(i, (int, str)))
    for dup in [i for i, n in counts.items() if n > 1]:
        _error("structure",
               f"Duplicate node id {dup!r} appears {counts[dup]} times. Each node must have a unique id.",
               location=f"{nodes_key}[].id",
               suggested_fix="Renumber nodes starting from 1" if profile.contiguous_ids
               else "Give each node a unique id")

    if profile.connection_style == "adjacency":
        names = Counter(n.get("name") for _, n in dict_nodes if isinstance(n.get("name"), str))
        for dup in [name for name, n in names.items() if n > 1]:
            _error("structure",
                   f'Duplicate node name "{dup}". Connections are keyed by name, so names must be unique.',
                   location=f"{nodes_key}[].name")

    if profile.contiguous_ids:
        for index, (location, node) in enumerate(dict_nodes):
            expected = index + 1
            actual = node.get("id")
            if actual is None:
                continue
            if isinstance(actual, bool) or actual != expected:
                _error("structure",
                       f"Node ids must be sequential: expected id {expected}, got {actual!r}",
                       location=f"{location}.id",
                       suggested_fix=f"Change id to {expected}")

    # ===== 5. Settings completeness =====

    if settings is not None:
        for path, default in missing_settings_fields(settings, profile.settings_defaults):
            _error("metadata",
                   f'Settings missing "{path}" field',
                   location=f"{settings_key}.{path}",
                   suggested_fix=f'Add "{path}": {json.dumps(default)}')

    # ===== 6. Connection heuristics =====

    refs = [node_ref(node, profile) for _, node in dict_nodes]
    module_names = [node.get(profile.module_key) for _, node in dict_nodes]
    trigger_refs = [
        ref for ref, name in zip(refs, module_names)
        if isinstance(name, str) and resolver.is_trigger(name)
    ]
    edges = read_connections(document, profile)
    graph = graph_integrity_check(refs, edges, trigger_refs)

    for edge in graph["dangling_edges"]:
        missing = [e for e in (edge["source"], edge["target"]) if e not in refs]
        _warn("compatibility",
              f"Connection references missing node(s) {missing!r}",
              location=edge["location"])

    has_branching = any(isinstance(n, str) and resolver.is_branching(n) for n in module_names)
    if len(dict_nodes) > LINEAR_CHAIN_THRESHOLD and not has_branching:
        _warn("best_practice",
              "Large linear workflow detected. Consider using a router or branching node for better organization.",
              location=nodes_key)

    for orphan in graph["orphan_nodes"]:
        _warn("optimization", f"Node {orphan!r} is not reachable from any trigger", location=nodes_key)

    if graph["has_cycles"]:
        _warn("optimization", f"Connection cycle detected between nodes {graph['cycle_nodes']!r}",
              location="connections")

    # ===== 7. Best practices =====

    _check_best_practices(document, dict_nodes, profile, trigger_refs, _warn)

    return _result()


def _check_required_fields(node, location, profile, _error):
    if node.get("id") is None:
        _error("structure", f'Node at {location} is missing required "id" field',
               location=location,
               suggested_fix="Renumber nodes starting from 1" if profile.contiguous_ids
               else 'Add a unique "id" to the node')

    name = node.get(profile.module_key)
    if not isinstance(name, str) or not name:
        _error("structure", f'Node at {location} is missing required "{profile.module_key}" field',
               location=location)

    if profile.connection_style == "adjacency" and not isinstance(node.get("name"), str):
        _error("structure", f'Node at {location} is missing required "name" field',
               location=location)

    if profile.version_key not in node:
        _error("structure", f'Node at {location} is missing required "{profile.version_key}" field',
               location=location, suggested_fix=f'Add "{profile.version_key}": 1')

    if get_position(node, profile) is None:
        example = "[0, 0]" if profile.position_style == "array" else '{ "x": 0, "y": 0 }'
        _error("metadata", f"Node at {location} is missing designer coordinates",
               location=f"{location}.{profile.position_field}",
               suggested_fix=f'Add "{profile.position_field}": {example}')

    if not isinstance(node.get("parameters"), dict):
        _error("structure", f'Node at {location} is missing "parameters" field',
               location=location, suggested_fix='Add "parameters": {}')


def _check_module_name(node, location, profile, resolver, _error, _warn, fixes):
    name = node.get(profile.module_key)
    if not isinstance(name, str) or not name:
        return

    resolution = resolver.resolve(name, profile.name)
    if resolution.valid:
        return

    field = f"{location}.{profile.module_key}"
    if resolution.canonical_name:
        _error("module_name",
               f'Module "{name}" is incorrect. Use "{resolution.canonical_name}" instead.',
               location=field, suggested_fix=resolution.canonical_name)
        fixes.append(Fix(
            kind="module_name_correction",
            description=f'Correct module name at {field} from "{name}" to "{resolution.canonical_name}"',
            old_value=name,
            new_value=resolution.canonical_name,
            applied=False,
        ))
    else:
        entry = resolver.get_entry(name)
        if entry is not None:
            message = (f'Module "{name}" is a {entry.platform} module and is not valid in a '
                       f'{profile.name} blueprint. This may cause import errors.')
        else:
            message = f'Module "{name}" is not in the verified module list. This may cause import errors.'
        _warn("compatibility", message, location=field)


def _check_best_practices(document, dict_nodes, profile, trigger_refs, _warn):
    description = document.get("description")
    if not isinstance(description, str) or len(description.strip()) < MIN_DESCRIPTION_LENGTH:
        _warn("best_practice",
              "Blueprint should have a detailed description for better usability",
              location="description")

    name = document.get("name")
    if not isinstance(name, str) or len(name.strip()) < MIN_NAME_LENGTH:
        _warn("best_practice", "Blueprint should have a descriptive name", location="name")

    positions = [get_position(node, profile) for _, node in dict_nodes]
    positions = [
        p for p in positions
        if p is not None and all(isinstance(c, (int, float)) and not isinstance(c, bool) for c in p)
    ]
    too_tight = any(
        abs(positions[i][0] - positions[i - 1][0]) < MIN_NODE_SPACING
        and abs(positions[i][1] - positions[i - 1][1]) < MIN_NODE_SPACING
        for i in range(1, len(positions))
    )
    if too_tight:
        _warn("best_practice",
              "Node visual spacing is too tight. Increase designer coordinates for better readability.",
              location=f"{profile.nodes_key}[].{profile.position_field}")

    if dict_nodes and not trigger_refs:
        _warn("best_practice",
              "No trigger node found. The workflow can only run as a sub-workflow.",
              location=profile.nodes_key)
