"""
Template Sanitizer

Strips operator-identifying data from an exported workflow so it can be
shared as a template.

Input:
    document (dict) — exported workflow in any platform's schema

Output:
    dict — sanitized copy

Transformations:
    - instance/tenant identifier fields removed at any depth
    - top-level id/versionId dropped, tags cleared, active forced false
    - credential references replaced with a placeholder
    - webhook ids replaced with fresh WEBHOOK_<hex> tokens
    - email addresses in string values replaced with user@example.com

Idempotent: sanitizing a sanitized template changes nothing. The input
document is never mutated. No network calls.
"""

import re
import uuid
from collections import Counter

from blueprint_engine.logger import log

CREDENTIAL_PLACEHOLDER = "USER_CREDENTIAL"
CREDENTIAL_LABEL = "User Credential (Configure after import)"
EMAIL_PLACEHOLDER = "user@example.com"

IDENTIFIER_FIELDS = frozenset({"instanceId", "tenantId", "teamId", "organizationId"})
TOP_LEVEL_DROP = ("id", "versionId")

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
WEBHOOK_TOKEN_RE = re.compile(r"^WEBHOOK_[0-9a-f]+$")

MAKE_CONNECTION_PARAM = "__IMTCONN__"


def sanitize_template(document):
    """Return a copy of document with operator-identifying data removed.

    Args:
        document: Exported workflow (dict). Other JSON values are scrubbed
                  the same way but get no top-level treatment.

    Returns:
        The sanitized copy, built from new containers.
    """
    stats = Counter()
    sanitized = _scrub(document, stats)

    if isinstance(sanitized, dict):
        for key in TOP_LEVEL_DROP:
            if key in sanitized:
                del sanitized[key]
                stats["fields_removed"] += 1
        if "tags" in sanitized:
            sanitized["tags"] = []
        if "active" in sanitized:
            sanitized["active"] = False

    log("sanitizer.complete", **dict(stats))
    return sanitized


def _scrub(value, stats):
    """Return a scrubbed copy of a JSON value."""
    if isinstance(value, str):
        replaced, count = EMAIL_RE.subn(EMAIL_PLACEHOLDER, value)
        # user@example.com matches its own pattern; only count real changes
        if replaced != value:
            stats["emails_replaced"] += count
        return replaced

    if isinstance(value, list):
        return [_scrub(item, stats) for item in value]

    if not isinstance(value, dict):
        return value

    scrubbed = {}
    for key, item in value.items():
        if key in IDENTIFIER_FIELDS:
            stats["fields_removed"] += 1
            continue
        scrubbed[key] = _scrub(item, stats)

    _replace_n8n_credentials(scrubbed, stats)
    if "webhookId" in scrubbed:
        _replace_webhook_id(scrubbed, stats)
    # Make modules: only dicts carrying a "module" key
    if "module" in scrubbed:
        _replace_make_connection(scrubbed, stats)
        _replace_make_hook(scrubbed, stats)
    return scrubbed


def _replace_n8n_credentials(node, stats):
    # {"credentials": {"slackApi": {"id": "...", "name": "..."}}}
    credentials = node.get("credentials")
    if not isinstance(credentials, dict):
        return
    for ref in credentials.values():
        if isinstance(ref, dict) and "id" in ref:
            if ref.get("id") != CREDENTIAL_PLACEHOLDER or ref.get("name") != CREDENTIAL_LABEL:
                stats["credentials_replaced"] += 1
            ref["id"] = CREDENTIAL_PLACEHOLDER
            ref["name"] = CREDENTIAL_LABEL


def _replace_make_connection(module, stats):
    # {"parameters": {"__IMTCONN__": 1234}, "metadata": {"restore": {"parameters": {"__IMTCONN__": {...}}}}}
    params = module.get("parameters")
    if isinstance(params, dict) and MAKE_CONNECTION_PARAM in params:
        if params[MAKE_CONNECTION_PARAM] != CREDENTIAL_PLACEHOLDER:
            stats["credentials_replaced"] += 1
        params[MAKE_CONNECTION_PARAM] = CREDENTIAL_PLACEHOLDER

    meta = module.get("metadata")
    restore = meta.get("restore") if isinstance(meta, dict) else None
    restored_params = restore.get("parameters") if isinstance(restore, dict) else None
    conn = restored_params.get(MAKE_CONNECTION_PARAM) if isinstance(restored_params, dict) else None
    if isinstance(conn, dict) and "label" in conn:
        conn["label"] = CREDENTIAL_LABEL


def _replace_webhook_id(node, stats):
    webhook_id = node["webhookId"]
    if isinstance(webhook_id, str) and webhook_id and not WEBHOOK_TOKEN_RE.match(webhook_id):
        node["webhookId"] = _webhook_token()
        stats["webhooks_replaced"] += 1


def _replace_make_hook(module, stats):
    # Make webhook modules store the hook reference in parameters.hook
    params = module.get("parameters")
    if isinstance(params, dict) and "hook" in params:
        hook = params["hook"]
        if not (isinstance(hook, str) and WEBHOOK_TOKEN_RE.match(hook)):
            params["hook"] = _webhook_token()
            stats["webhooks_replaced"] += 1


def _webhook_token():
    return "WEBHOOK_" + uuid.uuid4().hex[:12]
