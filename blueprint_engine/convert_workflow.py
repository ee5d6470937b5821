"""
Workflow Converter

Translates a workflow from one automation platform's schema to another's
through the canonical graph (canonical_graph.py), then validates the
result against the target platform.

Input:
    document (dict | str) — source workflow JSON
    source_platform (str) — "canonical", "make", "n8n" or "zapier"
    target_platform (str) — "canonical", "make" or "n8n"

Output:
    ConversionResult — target workflow, degraded nodes, warnings, and the
                       target-side ValidationResult

Node count and connection endpoints survive every conversion. Node types
with no target equivalent degrade to the generic HTTP action (or webhook
trigger) and are listed in degradedNodes. Branch conditions the target
cannot express are dropped with a warning, never silently.

Deterministic apart from the random node ids n8n output requires.
No network calls. The input document is never mutated.
"""

import copy

from blueprint_engine.blueprint_io import BlueprintParseError, load_blueprint_json
from blueprint_engine.canonical_graph import ConversionError, read_workflow, write_workflow
from blueprint_engine.logger import log
from blueprint_engine.models import ConversionResult
from blueprint_engine.module_resolver import get_default_resolver
from blueprint_engine.platforms import UnsupportedPlatformError
from blueprint_engine.validate_blueprint import validate_blueprint

SOURCE_PLATFORMS = ("canonical", "make", "n8n", "zapier")
TARGET_PLATFORMS = ("canonical", "make", "n8n")

__all__ = ["ConversionError", "convert_workflow", "SOURCE_PLATFORMS", "TARGET_PLATFORMS"]


def convert_workflow(document, source_platform, target_platform, resolver=None):
    """Convert a workflow between platforms.

    Args:
        document: Source workflow dict, or raw JSON text.
        source_platform: One of SOURCE_PLATFORMS.
        target_platform: One of TARGET_PLATFORMS.
        resolver: ModuleResolver for alias normalization and validation.

    Returns:
        ConversionResult.

    Raises:
        UnsupportedPlatformError: unknown source or target platform.
        ConversionError: the source cannot be read as a workflow.
    """
    if source_platform not in SOURCE_PLATFORMS:
        raise UnsupportedPlatformError(
            f"Unsupported source platform: {source_platform!r} (expected one of {list(SOURCE_PLATFORMS)})"
        )
    if target_platform not in TARGET_PLATFORMS:
        raise UnsupportedPlatformError(
            f"Unsupported target platform: {target_platform!r} (expected one of {list(TARGET_PLATFORMS)})"
        )
    if resolver is None:
        resolver = get_default_resolver()

    if isinstance(document, (str, bytes)):
        try:
            document = load_blueprint_json(document)
        except BlueprintParseError as e:
            raise ConversionError(str(e)) from e
    else:
        document = copy.deepcopy(document)

    workflow, read_warnings = read_workflow(document, source_platform, resolver)
    output, degraded, write_warnings = write_workflow(workflow, target_platform)
    validation = validate_blueprint(output, target_platform, resolver)

    result = ConversionResult(
        source_platform=source_platform,
        target_platform=target_platform,
        workflow=output,
        degraded_nodes=degraded,
        warnings=read_warnings + write_warnings,
        validation=validation,
    )

    log("converter.complete", source=source_platform, target=target_platform,
        nodes=len(workflow.nodes), edges=len(workflow.edges),
        degraded=len(degraded), warnings=len(result.warnings), valid=validation.is_valid)
    return result
