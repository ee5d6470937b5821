"""
Node Type Mappings

Per-platform tables between native node types and neutral service tokens
(the moduleName vocabulary of canonical blueprints). Conversion reads a
node's native type into a token, then writes the token back out in the
target platform's native type.

    make    "slack:ActionCreateMessage"   ─┐
    n8n     "n8n-nodes-base.slack"         ├─→  "slack"
    zapier  "slack_message"               ─┘

Unmapped types fall back to the target's generic HTTP action, or to its
webhook trigger when the node is a trigger.

Deterministic. No network calls.
"""

# ─── Make.com module → service token ───

MAKE_TO_SERVICE = {
    # Triggers
    "webhook": "webhook",
    "gateway:CustomWebHook": "webhook",
    "gateway:CustomMailHook": "email-trigger",
    "google-sheets:watchRows": "google-sheets-trigger",

    # Flow control
    "builtin:BasicRouter": "builtin:BasicRouter",
    "builtin:filter": "builtin:filter",
    "builtin:iterator": "builtin:iterator",
    "builtin:BasicIterator": "builtin:iterator",
    "builtin:aggregator": "builtin:aggregator",
    "builtin:BasicAggregator": "builtin:aggregator",
    "builtin:sleep": "builtin:sleep",
    "builtin:set-variables": "builtin:set-variables",
    "util:SetVariable2": "builtin:set-variables",
    "builtin:break": "noop",
    "gateway:WebhookResponse": "respond-to-webhook",

    # Data
    "http": "http",
    "http:ActionSendData": "http",
    "http:ActionGetFile": "http",
    "json": "json",
    "json:ParseJSON": "json",
    "json:TransformToJSON": "json",
    "text-parser": "text-parser",

    # Messaging
    "email": "email",
    "email:ActionSendEmail": "email",
    "aws-ses": "aws-ses",
    "slack": "slack",
    "slack:ActionCreateMessage": "slack",
    "microsoft-teams": "microsoft-teams",

    # Apps
    "google-sheets": "google-sheets",
    "google-sheets:addRow": "google-sheets",
    "google-sheets:updateRow": "google-sheets",
    "google-calendar": "google-calendar",
    "notion": "notion",
    "airtable": "airtable",
    "linkedin": "linkedin",
    "twitter": "twitter",
    "facebook-pages-2": "facebook-pages-2",
    "instagram-business": "instagram-business",

    # AI
    "openai-gpt-3": "openai-gpt-3",
    "anthropic-claude": "anthropic-claude",
}

SERVICE_TO_MAKE = {
    "webhook": "gateway:CustomWebHook",
    "email-trigger": "gateway:CustomMailHook",
    "google-sheets-trigger": "google-sheets:watchRows",
    "builtin:BasicRouter": "builtin:BasicRouter",
    "builtin:filter": "builtin:filter",
    "builtin:iterator": "builtin:BasicIterator",
    "builtin:aggregator": "builtin:BasicAggregator",
    "builtin:sleep": "builtin:sleep",
    "builtin:set-variables": "util:SetVariable2",
    "noop": "builtin:break",
    "respond-to-webhook": "gateway:WebhookResponse",
    "http": "http:ActionSendData",
    "json": "json:ParseJSON",
    "text-parser": "text-parser",
    "email": "email:ActionSendEmail",
    "gmail": "email:ActionSendEmail",
    "aws-ses": "aws-ses",
    "slack": "slack:ActionCreateMessage",
    "microsoft-teams": "microsoft-teams",
    "google-sheets": "google-sheets:addRow",
    "google-calendar": "google-calendar",
    "notion": "notion",
    "airtable": "airtable",
    "linkedin": "linkedin",
    "twitter": "twitter",
    "facebook-pages-2": "facebook-pages-2",
    "instagram-business": "instagram-business",
    "openai-gpt-3": "openai-gpt-3",
    "anthropic-claude": "anthropic-claude",
}

# ─── n8n node type → service token ───

N8N_TO_SERVICE = {
    # Triggers
    "n8n-nodes-base.webhook": "webhook",
    "n8n-nodes-base.scheduleTrigger": "schedule",
    "n8n-nodes-base.manualTrigger": "manual",
    "n8n-nodes-base.emailReadImap": "email-trigger",
    "n8n-nodes-base.gmailTrigger": "gmail-trigger",
    "n8n-nodes-base.googleSheetsTrigger": "google-sheets-trigger",

    # Core
    "n8n-nodes-base.httpRequest": "http",
    "n8n-nodes-base.if": "builtin:filter",
    "n8n-nodes-base.switch": "builtin:BasicRouter",
    "n8n-nodes-base.merge": "merge",
    "n8n-nodes-base.set": "builtin:set-variables",
    "n8n-nodes-base.code": "code",
    "n8n-nodes-base.wait": "builtin:sleep",
    "n8n-nodes-base.noOp": "noop",
    "n8n-nodes-base.splitInBatches": "builtin:iterator",
    "n8n-nodes-base.aggregate": "builtin:aggregator",
    "n8n-nodes-base.respondToWebhook": "respond-to-webhook",

    # Apps
    "n8n-nodes-base.emailSend": "email",
    "n8n-nodes-base.gmail": "gmail",
    "n8n-nodes-base.slack": "slack",
    "n8n-nodes-base.telegram": "telegram",
    "n8n-nodes-base.discord": "discord",
    "n8n-nodes-base.microsoftTeams": "microsoft-teams",
    "n8n-nodes-base.googleSheets": "google-sheets",
    "n8n-nodes-base.googleCalendar": "google-calendar",
    "n8n-nodes-base.notion": "notion",
    "n8n-nodes-base.airtable": "airtable",
    "n8n-nodes-base.hubspot": "hubspot",
    "n8n-nodes-base.postgres": "postgres",
    "n8n-nodes-base.linkedIn": "linkedin",
    "n8n-nodes-base.twitter": "twitter",

    # AI
    "@n8n/n8n-nodes-langchain.openAi": "openai-gpt-3",
    "@n8n/n8n-nodes-langchain.anthropic": "anthropic-claude",
}

SERVICE_TO_N8N = {service: n8n_type for n8n_type, service in N8N_TO_SERVICE.items()}
SERVICE_TO_N8N.update({
    "json": "n8n-nodes-base.set",
    "text-parser": "n8n-nodes-base.set",
    "aws-ses": "n8n-nodes-base.emailSend",
})

# ─── Zapier step type → service token ───

ZAPIER_TO_SERVICE = {
    "webhook": "webhook",
    "catch_hook": "webhook",
    "schedule": "schedule",
    "new_email": "email-trigger",
    "create_record": "http",
    "send_email": "email",
    "google_sheets": "google-sheets",
    "slack_message": "slack",
    "discord_message": "discord",
    "gmail_send": "gmail",
    "airtable_create": "airtable",
    "notion_create": "notion",
}

# n8n default operations for known node types
N8N_NODE_OPERATIONS = {
    "n8n-nodes-base.slack": {"resource": "message", "operation": "post"},
    "n8n-nodes-base.googleSheets": {"resource": "sheet", "operation": "appendOrUpdate"},
    "n8n-nodes-base.airtable": {"resource": "record", "operation": "create"},
    "n8n-nodes-base.notion": {"resource": "page", "operation": "create"},
    "n8n-nodes-base.httpRequest": {"method": "GET"},
    "n8n-nodes-base.gmail": {"resource": "message", "operation": "send"},
    "n8n-nodes-base.googleCalendar": {"resource": "event", "operation": "create"},
    "n8n-nodes-base.hubspot": {"resource": "contact", "operation": "create"},
}

# Canonical tokens are the service vocabulary itself.
CANONICAL_SERVICES = frozenset(
    set(MAKE_TO_SERVICE.values()) | set(N8N_TO_SERVICE.values()) | set(ZAPIER_TO_SERVICE.values())
)

TRIGGER_SERVICES = frozenset({
    "webhook", "schedule", "manual", "email-trigger", "gmail-trigger", "google-sheets-trigger",
})

FALLBACK_ACTION = {
    "make": "http:ActionSendData",
    "n8n": "n8n-nodes-base.httpRequest",
    "canonical": "http",
}

FALLBACK_TRIGGER = {
    "make": "gateway:CustomWebHook",
    "n8n": "n8n-nodes-base.webhook",
    "canonical": "webhook",
}

_TO_SERVICE = {
    "make": MAKE_TO_SERVICE,
    "n8n": N8N_TO_SERVICE,
    "zapier": ZAPIER_TO_SERVICE,
}

_FROM_SERVICE = {
    "make": SERVICE_TO_MAKE,
    "n8n": SERVICE_TO_N8N,
}


def to_service(native_type, platform):
    """Map a native node type to its service token.

    Make modules fall back to their package ("slack:AnyAction" → "slack").

    Returns:
        The service token, or None when the type is not recognized.
    """
    if not isinstance(native_type, str):
        return None
    if platform == "canonical":
        return native_type if native_type in CANONICAL_SERVICES else None

    table = _TO_SERVICE.get(platform, {})
    if native_type in table:
        return table[native_type]
    if platform == "make" and ":" in native_type:
        # Fallback: package-level match
        return MAKE_TO_SERVICE.get(native_type.split(":")[0])
    return None


def from_service(service, platform, is_trigger=False):
    """Map a service token to a native node type on platform.

    Returns:
        (native_type, degraded). degraded is True when no native
        equivalent exists and a generic fallback type was used.
    """
    if platform == "canonical":
        native = service if service in CANONICAL_SERVICES else None
    else:
        native = _FROM_SERVICE[platform].get(service)
    if native is not None:
        return native, False
    fallback = FALLBACK_TRIGGER if is_trigger else FALLBACK_ACTION
    return fallback[platform], True


def looks_like_trigger(native_type, platform):
    """Name-based trigger guess for types the catalog does not know."""
    if not isinstance(native_type, str):
        return False
    if platform == "n8n":
        return native_type.endswith("Trigger")
    if platform == "make":
        action = native_type.split(":")[-1]
        return action.startswith("watch") or action.startswith("Trigger")
    return False
