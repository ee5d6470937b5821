"""
Blueprint Auto-Fixer

Deterministically repairs common, recognizable defects in a blueprint and
returns the corrected copy plus an audit list of every fix applied.

Input:
    document (dict) — blueprint JSON in one platform's schema (may be invalid)
    platform (str) — "make", "n8n" or "canonical"
    resolver (ModuleResolver, optional) — alias table source
    remap_connections (bool) — rewrite explicit connection endpoints when
                               ids are renumbered (default True)

Output:
    (fixed_document, fixes) — fixes is a list of Fix with applied=True

Repairs, always in this order:
    1. module_name_correction — alias → canonical module name
    2. add_settings / add_settings_field — default settings object or fields
    3. renumber_ids (+ remap_connections, remove_dangling_connection)
       — ids to 1..N where required
    4. add_designer_position — index * 300 on the x axis
    5. add_version / add_parameters — per-node defaults

Idempotent: running it on its own output yields no further fixes.
Deterministic. No network calls. The input document is never mutated.
"""

import copy

from blueprint_engine.logger import log
from blueprint_engine.models import Fix
from blueprint_engine.module_resolver import get_default_resolver
from blueprint_engine.platforms import (
    default_settings,
    get_position,
    get_profile,
    iter_nodes,
    missing_settings_fields,
    remap_connection_endpoints,
    set_position,
    set_settings_field,
)

# Designer position defaults
X_SPACING = 300
Y_SPACING = 200
Y_START = 0

DEFAULT_VERSION = 1


def auto_fix_blueprint(document, platform="make", resolver=None, remap_connections=True):
    """Apply every deterministic repair to a copy of document.

    Args:
        document: Blueprint dict (deep-copied, not mutated).
        platform: Platform identifier or PlatformProfile.
        resolver: ModuleResolver for alias corrections.
        remap_connections: When ids are renumbered, also rewrite connection
            endpoints that pointed at the old ids. Passing False keeps the
            old endpoints untouched.

    Returns:
        (fixed_document, list of Fix). A non-object document is returned
        as a copy with no fixes.
    """
    profile = get_profile(platform)
    if resolver is None:
        resolver = get_default_resolver()

    fixed = copy.deepcopy(document)
    if not isinstance(fixed, dict):
        return fixed, []

    fixes = []
    fixes.extend(_fix_module_names(fixed, profile, resolver))
    fixes.extend(_fix_settings(fixed, profile))
    if profile.contiguous_ids:
        fixes.extend(_fix_renumber_ids(fixed, profile, remap_connections))
    fixes.extend(_fix_designer_positions(fixed, profile))
    fixes.extend(_fix_missing_versions(fixed, profile))
    fixes.extend(_fix_missing_parameters(fixed, profile))

    log("autofix.complete", level="debug", platform=profile.name,
        fixes=len(fixes), kinds=sorted({f.kind for f in fixes}))
    return fixed, fixes


def _dict_nodes(doc, profile):
    return [(loc, node) for loc, node in iter_nodes(doc, profile) if isinstance(node, dict)]


# ===== 1. Module names =====

def _fix_module_names(doc, profile, resolver):
    fixes = []
    for location, node in _dict_nodes(doc, profile):
        name = node.get(profile.module_key)
        if not isinstance(name, str):
            continue
        correct = resolver.suggest(name, profile.name)
        if correct:
            node[profile.module_key] = correct
            fixes.append(Fix(
                kind="module_name_correction",
                description=f"Corrected module name at {location}.{profile.module_key}",
                old_value=name,
                new_value=correct,
                applied=True,
            ))
    return fixes


# ===== 2. Settings =====

def _fix_settings(doc, profile):
    key = profile.settings_key
    current = doc.get(key)

    if not isinstance(current, dict):
        doc[key] = default_settings(profile)
        return [Fix(
            kind="add_settings",
            description=f'Added missing "{key}" object with default values',
            old_value=copy.deepcopy(current),
            new_value=copy.deepcopy(doc[key]),
            applied=True,
        )]

    fixes = []
    for path, default in missing_settings_fields(current, profile.settings_defaults):
        set_settings_field(current, path, default)
        fixes.append(Fix(
            kind="add_settings_field",
            description=f'Added missing "{key}.{path}" with default value',
            old_value=None,
            new_value=copy.deepcopy(default),
            applied=True,
        ))
    return fixes


# ===== 3. Ids =====

def _fix_renumber_ids(doc, profile, remap_connections):
    nodes = _dict_nodes(doc, profile)
    old_ids = [node.get("id") for _, node in nodes]
    new_ids = list(range(1, len(nodes) + 1))

    needs_renumbering = any(
        isinstance(old, bool) or old != new for old, new in zip(old_ids, new_ids)
    )
    if not needs_renumbering:
        return []

    # A duplicated old id maps to its first occurrence.
    id_map = {}
    for old, new in zip(old_ids, new_ids):
        if isinstance(old, (int, str)) and not isinstance(old, bool) and old not in id_map:
            id_map[old] = new

    for (_, node), new in zip(nodes, new_ids):
        node["id"] = new

    fixes = [Fix(
        kind="renumber_ids",
        description="Renumbered node ids to be sequential starting from 1",
        old_value=old_ids,
        new_value=new_ids,
        applied=True,
    )]

    if remap_connections:
        before = copy.deepcopy(doc.get("connections"))
        changed, removed = remap_connection_endpoints(doc, profile, id_map)
        if changed:
            fixes.append(Fix(
                kind="remap_connections",
                description=f"Remapped {changed} connection endpoint(s) to the renumbered ids",
                old_value=before,
                new_value=copy.deepcopy(doc["connections"]),
                applied=True,
            ))
        for conn in removed:
            fixes.append(Fix(
                kind="remove_dangling_connection",
                description="Removed connection whose endpoint matched no node before renumbering",
                old_value=copy.deepcopy(conn),
                new_value=None,
                applied=True,
            ))
    return fixes


# ===== 4. Designer positions =====

def _fix_designer_positions(doc, profile):
    nodes = _dict_nodes(doc, profile)
    occupied = set()
    for _, node in nodes:
        pos = get_position(node, profile)
        if pos is not None and all(isinstance(c, (int, float)) for c in pos):
            occupied.add(pos)

    fixes = []
    for index, (location, node) in enumerate(nodes):
        if get_position(node, profile) is not None:
            continue
        x, y = index * X_SPACING, Y_START
        while (x, y) in occupied:
            y += Y_SPACING
        occupied.add((x, y))
        stored = set_position(node, profile, x, y)
        fixes.append(Fix(
            kind="add_designer_position",
            description=f"Added designer coordinates to node at {location} (x={x}, y={y})",
            old_value=None,
            new_value=copy.deepcopy(stored),
            applied=True,
        ))
    return fixes


# ===== 5. Per-node defaults =====

def _fix_missing_versions(doc, profile):
    fixes = []
    for location, node in _dict_nodes(doc, profile):
        if profile.version_key not in node:
            node[profile.version_key] = DEFAULT_VERSION
            fixes.append(Fix(
                kind="add_version",
                description=f'Set "{profile.version_key}" of node at {location} to {DEFAULT_VERSION}',
                old_value=None,
                new_value=DEFAULT_VERSION,
                applied=True,
            ))
    return fixes


def _fix_missing_parameters(doc, profile):
    fixes = []
    for location, node in _dict_nodes(doc, profile):
        if not isinstance(node.get("parameters"), dict):
            old = node.get("parameters")
            node["parameters"] = {}
            fixes.append(Fix(
                kind="add_parameters",
                description=f"Added empty parameters object to node at {location}",
                old_value=copy.deepcopy(old),
                new_value={},
                applied=True,
            ))
    return fixes
