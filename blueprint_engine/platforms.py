"""
Platform Profiles

Where each part of a WorkflowDefinition lives in one platform's schema:
node sequence, settings record, module name, version, designer position,
native connection representation, and whether ids must run 1..N.

    canonical  {"nodes": [...], "connections": [{from, to, branchCondition}], "settings": {...}}
    make       {"flow": [...], "metadata": {...}}  (+ optional explicit "connections")
    n8n        {"nodes": [...], "connections": {name: {main: [[...]]}}, "settings": {...}}

Accessors here never mutate unless their name says so (set_*, remap_*).
"""

import copy
from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict

MAKE_SCENARIO_DEFAULTS = {
    "roundtrips": 1,
    "maxErrors": 3,
    "autoCommit": True,
    "autoCommitTriggerLast": True,
    "sequential": False,
    "confidential": False,
    "dataloss": False,
    "dlq": False,
    "freshVariables": False,
}

MAKE_METADATA_DEFAULTS = {
    "version": 1,
    "scenario": MAKE_SCENARIO_DEFAULTS,
    "designer": {"orphans": []},
}

N8N_SETTINGS_DEFAULTS = {
    "executionOrder": "v1",
}

MAKE_ROUTER = "builtin:BasicRouter"


class UnsupportedPlatformError(ValueError):
    """Raised when a platform identifier has no profile."""


class PlatformProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    nodes_key: str
    settings_key: str
    module_key: str
    version_key: str
    position_style: Literal["designer_position", "designer", "array"]
    connection_style: Literal["edge_list", "make", "adjacency"]
    contiguous_ids: bool
    settings_defaults: Dict[str, Any]

    @property
    def position_field(self):
        return {
            "designer_position": "metadata.designerPosition",
            "designer": "metadata.designer",
            "array": "position",
        }[self.position_style]


PROFILES = {
    "canonical": PlatformProfile(
        name="canonical",
        nodes_key="nodes",
        settings_key="settings",
        module_key="moduleName",
        version_key="version",
        position_style="designer_position",
        connection_style="edge_list",
        contiguous_ids=True,
        settings_defaults=MAKE_SCENARIO_DEFAULTS,
    ),
    "make": PlatformProfile(
        name="make",
        nodes_key="flow",
        settings_key="metadata",
        module_key="module",
        version_key="version",
        position_style="designer",
        connection_style="make",
        contiguous_ids=True,
        settings_defaults=MAKE_METADATA_DEFAULTS,
    ),
    "n8n": PlatformProfile(
        name="n8n",
        nodes_key="nodes",
        settings_key="settings",
        module_key="type",
        version_key="typeVersion",
        position_style="array",
        connection_style="adjacency",
        contiguous_ids=False,
        settings_defaults=N8N_SETTINGS_DEFAULTS,
    ),
}


def get_profile(platform):
    if isinstance(platform, PlatformProfile):
        return platform
    profile = PROFILES.get(platform)
    if profile is None:
        raise UnsupportedPlatformError(
            f"Unsupported platform: {platform!r} (expected one of {sorted(PROFILES)})"
        )
    return profile


# ===== Nodes =====

def iter_nodes(doc, profile):
    """Flat list of (location, node) pairs in document order.

    Make router routes are walked depth-first so nested modules take part
    in id checks. Non-dict items are returned as-is for the caller to report.
    """
    seq = doc.get(profile.nodes_key)
    if not isinstance(seq, list):
        return []
    nodes = []
    _collect(seq, profile.nodes_key, profile, nodes)
    return nodes


def _collect(items, location, profile, out):
    for i, item in enumerate(items):
        loc = f"{location}[{i}]"
        out.append((loc, item))
        if profile.connection_style != "make" or not isinstance(item, dict):
            continue
        routes = item.get("routes")
        if isinstance(routes, list):
            for ri, route in enumerate(routes):
                if isinstance(route, dict) and isinstance(route.get("flow"), list):
                    _collect(route["flow"], f"{loc}.routes[{ri}].flow", profile, out)


def node_ref(node, profile):
    """The value connections use to point at a node (name for n8n, id otherwise)."""
    if profile.connection_style == "adjacency":
        return node.get("name")
    return node.get("id")


def get_position(node, profile):
    """Designer position as (x, y), or None when absent or malformed."""
    if profile.position_style == "array":
        pos = node.get("position")
        if isinstance(pos, (list, tuple)) and len(pos) == 2:
            return pos[0], pos[1]
        return None

    meta = node.get("metadata")
    if not isinstance(meta, dict):
        return None
    key = "designerPosition" if profile.position_style == "designer_position" else "designer"
    pos = meta.get(key)
    if isinstance(pos, dict) and "x" in pos and "y" in pos:
        return pos["x"], pos["y"]
    return None


def set_position(node, profile, x, y):
    """Write a designer position into node (mutates). Returns the stored value."""
    if profile.position_style == "array":
        node["position"] = [x, y]
        return node["position"]

    if not isinstance(node.get("metadata"), dict):
        node["metadata"] = {}
    key = "designerPosition" if profile.position_style == "designer_position" else "designer"
    existing = node["metadata"].get(key)
    pos = dict(existing) if isinstance(existing, dict) else {}
    pos["x"] = x
    pos["y"] = y
    node["metadata"][key] = pos
    return pos


# ===== Settings =====

def default_settings(profile):
    return copy.deepcopy(profile.settings_defaults)


def missing_settings_fields(settings, defaults, prefix=""):
    """List (dotted_path, default) for each required sub-field absent from settings.

    A missing parent is reported once with its whole default subtree.
    """
    missing = []
    for key, default in defaults.items():
        path = f"{prefix}{key}"
        if key not in settings:
            missing.append((path, default))
        elif isinstance(default, dict) and isinstance(settings[key], dict):
            missing.extend(missing_settings_fields(settings[key], default, prefix=f"{path}."))
    return missing


def set_settings_field(settings, dotted_path, value):
    """Set a dotted path inside settings (mutates), creating parents."""
    parts = dotted_path.split(".")
    target = settings
    for part in parts[:-1]:
        if not isinstance(target.get(part), dict):
            target[part] = {}
        target = target[part]
    target[parts[-1]] = copy.deepcopy(value)


# ===== Connections =====

def read_connections(doc, profile):
    """Native connections as a list of edge dicts.

    Each edge: {"source", "target", "condition", "output", "type", "location"}.
    source/target are node refs (see node_ref). Malformed entries are skipped.
    """
    if profile.connection_style == "edge_list":
        return _read_edge_list(doc)
    if profile.connection_style == "adjacency":
        return _read_adjacency(doc)
    if isinstance(doc.get("connections"), list):
        return _read_make_explicit(doc)
    edges = []
    flow = doc.get(profile.nodes_key)
    if isinstance(flow, list):
        _read_make_implicit(flow, profile.nodes_key, edges)
    return edges


def _edge(source, target, location, condition=None, output=0, conn_type="main", target_input=0):
    return {
        "source": source,
        "target": target,
        "condition": condition,
        "output": output,
        "input": target_input,
        "type": conn_type,
        "location": location,
    }


def _read_edge_list(doc):
    edges = []
    conns = doc.get("connections")
    if not isinstance(conns, list):
        return edges
    for i, conn in enumerate(conns):
        if isinstance(conn, dict) and "from" in conn and "to" in conn:
            edges.append(_edge(
                conn["from"], conn["to"], f"connections[{i}]",
                condition=conn.get("branchCondition"),
                output=conn.get("sourceOutput", 0),
                target_input=conn.get("targetInput", 0),
            ))
    return edges


def _read_adjacency(doc):
    edges = []
    conns = doc.get("connections")
    if not isinstance(conns, dict):
        return edges
    for source, outputs in conns.items():
        if not isinstance(outputs, dict):
            continue
        for conn_type, branches in outputs.items():
            if not isinstance(branches, list):
                continue
            for out_index, targets in enumerate(branches):
                for ti, target in enumerate(targets or []):
                    if isinstance(target, dict) and "node" in target:
                        edges.append(_edge(
                            source, target["node"],
                            f"connections.{source}.{conn_type}[{out_index}][{ti}]",
                            output=out_index, conn_type=conn_type,
                            target_input=target.get("index", 0),
                        ))
    return edges


def _read_make_explicit(doc):
    edges = []
    for i, conn in enumerate(doc["connections"]):
        if isinstance(conn, dict) and "srcModuleId" in conn and "dstModuleId" in conn:
            edges.append(_edge(
                conn["srcModuleId"], conn["dstModuleId"], f"connections[{i}]",
                condition=conn.get("filter"),
            ))
    return edges


def _read_make_implicit(flow, location, edges):
    """Make flows link each module to the next; routers link to each route head."""
    prev = None
    for i, mod in enumerate(flow):
        if not isinstance(mod, dict):
            continue
        loc = f"{location}[{i}]"
        if prev is not None:
            edges.append(_edge(prev.get("id"), mod.get("id"), loc, condition=mod.get("filter")))
        routes = mod.get("routes")
        if isinstance(routes, list):
            for ri, route in enumerate(routes):
                sub = route.get("flow") if isinstance(route, dict) else None
                if not isinstance(sub, list):
                    continue
                head = next((m for m in sub if isinstance(m, dict)), None)
                if head is not None:
                    edges.append(_edge(
                        mod.get("id"), head.get("id"), f"{loc}.routes[{ri}]",
                        condition=head.get("filter"), output=ri,
                    ))
                _read_make_implicit(sub, f"{loc}.routes[{ri}].flow", edges)
        prev = mod


def remap_connection_endpoints(doc, profile, id_map):
    """Rewrite explicit connection endpoints through id_map (mutates).

    Implicit Make flows need no remap; their structure is the graph.
    A connection with an endpoint missing from id_map points at no node;
    it is removed and returned.

    Returns:
        (number of endpoints rewritten, list of removed connections)
    """
    conns = doc.get("connections")
    if not isinstance(conns, list):
        return 0, []

    if profile.connection_style == "edge_list":
        keys = ("from", "to")
    elif profile.connection_style == "make":
        keys = ("srcModuleId", "dstModuleId")
    else:
        return 0, []

    changed = 0
    kept = []
    removed = []
    for conn in conns:
        if not isinstance(conn, dict) or not all(key in conn for key in keys):
            kept.append(conn)
            continue
        if not all(_is_node_id(conn[key]) and conn[key] in id_map for key in keys):
            removed.append(conn)
            continue
        for key in keys:
            new = id_map[conn[key]]
            if new != conn[key]:
                conn[key] = new
                changed += 1
        kept.append(conn)

    conns[:] = kept
    return changed, removed


def _is_node_id(value):
    return isinstance(value, (int, str)) and not isinstance(value, bool)
