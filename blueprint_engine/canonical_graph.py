"""
Canonical Graph

Reads a platform document into the neutral CanonicalWorkflow graph and
writes a CanonicalWorkflow back out as a platform document. Every
conversion passes through this graph, so each platform needs exactly one
reader and one writer.

Readers:  canonical, make, n8n, zapier
Writers:  canonical, make, n8n

Node keys in the graph are 1-based positions in source document order.
Connections whose endpoints do not exist in the source are dropped with a
warning rather than carried into the target.
"""

import copy
import re
import uuid

from blueprint_engine.logger import log
from blueprint_engine.models import CanonicalEdge, CanonicalNode, CanonicalWorkflow, DegradedNode
from blueprint_engine.node_type_mappings import (
    N8N_NODE_OPERATIONS,
    TRIGGER_SERVICES,
    from_service,
    looks_like_trigger,
    to_service,
)
from blueprint_engine.platforms import (
    MAKE_METADATA_DEFAULTS,
    MAKE_SCENARIO_DEFAULTS,
    get_profile,
    iter_nodes,
    node_ref,
    read_connections,
)

# Make / canonical designer layout
X_SPACING = 300

# n8n canvas layout
N8N_X_START = 240
N8N_X_SPACING = 320
N8N_Y_CENTER = 300

N8N_SETTINGS = {
    "executionOrder": "v1",
    "saveManualExecutions": True,
    "callerPolicy": "workflowsFromSameOwner",
}

N8N_WEBHOOK_DEFAULTS = {
    "httpMethod": "POST",
    "path": "webhook",
    "responseMode": "onReceived",
}

N8N_SCHEDULE_DEFAULTS = {
    "rule": {"interval": [{"field": "hours", "hoursInterval": 1}]},
}

MAKE_REFERENCE_RE = re.compile(r"\{\{(\d+)\.([^}]+)\}\}")
# Build-time stand-ins such as __SLACK__ or __WEBHOOK_ID__
PLACEHOLDER_RE = re.compile(r"^__[A-Z][A-Z0-9_]*__$")


class ConversionError(ValueError):
    """Raised when a source document cannot be read as a workflow graph."""


# ===== Readers =====

def read_workflow(document, platform, resolver):
    """Read a platform document into a CanonicalWorkflow.

    Args:
        document: Source blueprint dict.
        platform: "canonical", "make", "n8n" or "zapier".
        resolver: ModuleResolver used to normalize aliases and spot triggers.

    Returns:
        (CanonicalWorkflow, list of warning strings)

    Raises:
        ConversionError: the document has no node sequence.
    """
    if not isinstance(document, dict):
        raise ConversionError(f"Source workflow must be a JSON object, got {type(document).__name__}")
    if platform == "zapier":
        return _read_zapier(document)

    profile = get_profile(platform)
    if not isinstance(document.get(profile.nodes_key), list):
        raise ConversionError(f'Source {platform} workflow has no "{profile.nodes_key}" array')

    warnings = []
    nodes = []
    key_by_ref = {}

    for location, raw in iter_nodes(document, profile):
        if not isinstance(raw, dict):
            warnings.append(f"Skipped non-object node at {location}")
            continue
        native = raw.get(profile.module_key)
        if isinstance(native, str):
            native = resolver.suggest(native, platform) or native
        else:
            native = ""

        key = len(nodes) + 1
        ref = node_ref(raw, profile)
        if isinstance(ref, (int, str)) and not isinstance(ref, bool) and ref not in key_by_ref:
            key_by_ref[ref] = key

        service = to_service(native, platform) or native
        version = raw.get(profile.version_key)
        nodes.append(CanonicalNode(
            key=key,
            source_ref=ref,
            name=_node_label(raw, native),
            service=service,
            source_type=native,
            is_trigger=(
                (bool(native) and resolver.is_trigger(native))
                or service in TRIGGER_SERVICES
                or looks_like_trigger(native, platform)
            ),
            version=version if isinstance(version, int) and not isinstance(version, bool) else 1,
            parameters=_dict_or_empty(raw.get("parameters")),
            mapper=_dict_or_empty(raw.get("mapper")),
        ))

    edges = []
    for edge in read_connections(document, profile):
        src, dst = edge["source"], edge["target"]
        if not (_is_ref(src) and _is_ref(dst)) or src not in key_by_ref or dst not in key_by_ref:
            warnings.append(f"Dropped connection at {edge['location']}: endpoint not found ({src!r} -> {dst!r})")
            continue
        edges.append(CanonicalEdge(
            source=key_by_ref[src],
            target=key_by_ref[dst],
            branch_condition=copy.deepcopy(edge["condition"]),
            source_output=_index_or_zero(edge["output"]),
            target_input=_index_or_zero(edge["input"]),
            connection_type=edge["type"] if isinstance(edge["type"], str) else "main",
        ))

    workflow = CanonicalWorkflow(
        name=_workflow_name(document),
        description=document.get("description") if isinstance(document.get("description"), str) else None,
        source_platform=platform,
        nodes=nodes,
        edges=edges,
    )
    return workflow, warnings


def _read_zapier(document):
    """Zapier: a trigger followed by a linear chain of actions."""
    actions = document.get("actions")
    if not isinstance(actions, list):
        raise ConversionError('Source zapier workflow has no "actions" array')

    warnings = []
    trigger = document.get("trigger")
    if not isinstance(trigger, dict):
        warnings.append("Zapier workflow has no trigger; added a webhook trigger")
        trigger = {"type": "webhook", "name": "Webhook Trigger"}

    steps = [(trigger, True)]
    for i, action in enumerate(actions):
        if isinstance(action, dict):
            steps.append((action, False))
        else:
            warnings.append(f"Skipped non-object action at actions[{i}]")

    nodes = []
    for key, (step, is_trigger) in enumerate(steps, start=1):
        native = step.get("type") if isinstance(step.get("type"), str) else ""
        service = to_service(native, "zapier") or native
        name = step.get("name") if isinstance(step.get("name"), str) and step.get("name") else None
        nodes.append(CanonicalNode(
            key=key,
            source_ref=key,
            name=name or ("Trigger" if is_trigger else f"Action {key - 1}"),
            service=service,
            source_type=native,
            is_trigger=is_trigger,
            parameters=_dict_or_empty(step.get("fields")),
        ))

    edges = [CanonicalEdge(source=k, target=k + 1) for k in range(1, len(nodes))]
    workflow = CanonicalWorkflow(
        name=_workflow_name(document),
        description=document.get("description") if isinstance(document.get("description"), str) else None,
        source_platform="zapier",
        nodes=nodes,
        edges=edges,
    )
    return workflow, warnings


def _node_label(raw, native):
    name = raw.get("name")
    if isinstance(name, str) and name:
        return name
    meta = raw.get("metadata")
    designer = meta.get("designer") if isinstance(meta, dict) else None
    if isinstance(designer, dict) and isinstance(designer.get("name"), str) and designer["name"]:
        return designer["name"]
    return native or f"Node {raw.get('id')}"


def _workflow_name(document):
    name = document.get("name")
    return name if isinstance(name, str) and name else "Converted Workflow"


def _dict_or_empty(value):
    return copy.deepcopy(value) if isinstance(value, dict) else {}


def _is_ref(value):
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def _index_or_zero(value):
    return value if isinstance(value, int) and not isinstance(value, bool) and value >= 0 else 0


# ===== Writers =====

def write_workflow(workflow, platform):
    """Write a CanonicalWorkflow as a document on platform.

    Args:
        workflow: CanonicalWorkflow.
        platform: "canonical", "make" or "n8n".

    Returns:
        (document, list of DegradedNode, list of warning strings)
    """
    writers = {"canonical": _write_canonical, "make": _write_make, "n8n": _write_n8n}
    get_profile(platform)

    native_types, degraded = _resolve_types(workflow, platform)
    document, warnings = writers[platform](workflow, native_types)
    return document, degraded, warnings


def _resolve_types(workflow, platform):
    same_platform = workflow.source_platform == platform
    native_types = []
    degraded = []
    for node in workflow.nodes:
        if same_platform and node.source_type:
            native_types.append(node.source_type)
            continue
        native, was_degraded = from_service(node.service, platform, node.is_trigger)
        native_types.append(native)
        if was_degraded:
            reason = (f'No {platform} trigger equivalent for "{node.source_type}"' if node.is_trigger
                      else f'No {platform} equivalent for "{node.source_type}"')
            degraded.append(DegradedNode(
                name=node.name, source_type=node.source_type, fallback_type=native, reason=reason,
            ))
            log("converter.node_degraded", level="warning", node=node.name,
                source_type=node.source_type, fallback_type=native, target=platform)
    return native_types, degraded


def _version(workflow, node, platform):
    return node.version if workflow.source_platform == platform else 1


def _write_canonical(workflow, native_types):
    nodes = []
    for node, native in zip(workflow.nodes, native_types):
        out = {
            "id": node.key,
            "name": node.name,
            "moduleName": native,
            "version": _version(workflow, node, "canonical"),
            "parameters": copy.deepcopy(node.parameters),
            "metadata": {"designerPosition": {"x": (node.key - 1) * X_SPACING, "y": 0}},
        }
        if node.mapper:
            out["mapper"] = copy.deepcopy(node.mapper)
        nodes.append(out)

    connections = []
    for edge in workflow.edges:
        conn = {"from": edge.source, "to": edge.target}
        if edge.branch_condition is not None:
            conn["branchCondition"] = copy.deepcopy(edge.branch_condition)
        if edge.source_output:
            conn["sourceOutput"] = edge.source_output
        if edge.target_input:
            conn["targetInput"] = edge.target_input
        if edge.connection_type != "main":
            conn["connectionType"] = edge.connection_type
        connections.append(conn)

    document = {"name": workflow.name}
    if workflow.description:
        document["description"] = workflow.description
    document.update({
        "nodes": nodes,
        "connections": connections,
        "settings": copy.deepcopy(MAKE_SCENARIO_DEFAULTS),
    })
    return document, []


def _write_make(workflow, native_types):
    warnings = []
    flow = []
    for node, native in zip(workflow.nodes, native_types):
        flow.append({
            "id": node.key,
            "module": native,
            "version": _version(workflow, node, "make"),
            "parameters": copy.deepcopy(node.parameters),
            "mapper": copy.deepcopy(node.mapper),
            "metadata": {"designer": {"x": (node.key - 1) * X_SPACING, "y": 0, "name": node.name}},
        })

    connections = []
    for edge in workflow.edges:
        conn = {
            "id": len(connections) + 1,
            "srcModuleId": edge.source,
            "srcPortName": "default",
            "dstModuleId": edge.target,
            "dstPortName": "default",
        }
        if edge.branch_condition is not None:
            conn["filter"] = _as_make_filter(edge.branch_condition)
        if edge.source_output:
            warnings.append(
                f"Output index {edge.source_output} of connection {edge.source} -> {edge.target} "
                "has no Make equivalent; connected from the default port"
            )
        if edge.target_input:
            warnings.append(
                f"Input index {edge.target_input} of connection {edge.source} -> {edge.target} "
                "has no Make equivalent; connected to the default port"
            )
        connections.append(conn)

    document = {"name": workflow.name}
    if workflow.description:
        document["description"] = workflow.description
    document.update({
        "flow": flow,
        "connections": connections,
        "metadata": copy.deepcopy(MAKE_METADATA_DEFAULTS),
    })
    return document, warnings


def _as_make_filter(condition):
    if isinstance(condition, dict):
        return copy.deepcopy(condition)
    return {"name": str(condition), "conditions": []}


def _write_n8n(workflow, native_types):
    warnings = []
    names = _unique_names([node.name for node in workflow.nodes])
    convert_make_syntax = workflow.source_platform == "make"
    same_platform = workflow.source_platform == "n8n"

    nodes = []
    for i, (node, native, name) in enumerate(zip(workflow.nodes, native_types, names)):
        params = {}
        if not same_platform:
            params.update(N8N_NODE_OPERATIONS.get(native, {}))
        if convert_make_syntax:
            cleared = []
            params.update(_convert_mapper(node.parameters, cleared))
            params.update(_convert_mapper(node.mapper, cleared))
            for key in cleared:
                warnings.append(
                    f'Placeholder value of "{key}" on node "{name}" was cleared; set it after import'
                )
        else:
            params.update(copy.deepcopy(node.parameters))
            params.update(copy.deepcopy(node.mapper))

        out = {
            "id": str(uuid.uuid4()),
            "name": name,
            "type": native,
            "typeVersion": _version(workflow, node, "n8n"),
            "position": [N8N_X_START + i * N8N_X_SPACING, N8N_Y_CENTER],
            "parameters": params,
        }
        if native == "n8n-nodes-base.webhook":
            if not same_platform:
                for key, default in N8N_WEBHOOK_DEFAULTS.items():
                    params.setdefault(key, default)
            out["webhookId"] = str(uuid.uuid4())
        elif native == "n8n-nodes-base.scheduleTrigger" and not params:
            params.update(copy.deepcopy(N8N_SCHEDULE_DEFAULTS))
        nodes.append(out)

    connections = {}
    for edge in workflow.edges:
        source, target = names[edge.source - 1], names[edge.target - 1]
        if edge.branch_condition is not None:
            warnings.append(
                f'Branch condition on connection "{source}" -> "{target}" was dropped; '
                "n8n connections cannot carry conditions"
            )
            log("converter.condition_dropped", level="warning", source=source, target=target)
        outputs = connections.setdefault(source, {}).setdefault(edge.connection_type, [])
        while len(outputs) <= edge.source_output:
            outputs.append([])
        outputs[edge.source_output].append(
            {"node": target, "type": edge.connection_type, "index": edge.target_input}
        )

    document = {"name": workflow.name}
    if workflow.description:
        document["description"] = workflow.description
    document.update({
        "nodes": nodes,
        "connections": connections,
        "settings": copy.deepcopy(N8N_SETTINGS),
        "staticData": None,
        "active": False,
        "meta": {"templateCredsSetupCompleted": False},
    })
    return document, warnings


def _unique_names(names):
    """n8n keys connections by name: suffix repeats with 1, 2, ..."""
    taken = set()
    result = []
    for name in names:
        candidate = name
        counter = 1
        while candidate in taken:
            candidate = f"{name}{counter}"
            counter += 1
        taken.add(candidate)
        result.append(candidate)
    return result


def _convert_mapper(make_mapper, cleared):
    """
    Convert Make.com mapper syntax to n8n parameter syntax.
    Make: {{1.data.email}} → n8n: {{ $json.data.email }}
    Values that are only a placeholder token are emptied and their keys
    appended to cleared. Other text is kept as written.
    """
    n8n_params = {}
    for key, val in make_mapper.items():
        if isinstance(val, str) and PLACEHOLDER_RE.match(val):
            n8n_params[key] = ""
            cleared.append(key)
        elif isinstance(val, str):
            n8n_params[key] = MAKE_REFERENCE_RE.sub(r"{{ $json.\2 }}", val)
        else:
            n8n_params[key] = copy.deepcopy(val)
    return n8n_params
