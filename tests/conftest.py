"""
Shared fixtures: one well-formed blueprint per platform plus the default resolver.
"""

import copy
import json

import pytest

from blueprint_engine.module_resolver import get_default_resolver
from blueprint_engine.platforms import MAKE_METADATA_DEFAULTS, MAKE_SCENARIO_DEFAULTS


@pytest.fixture
def resolver():
    return get_default_resolver()


@pytest.fixture
def canonical_blueprint():
    return {
        "name": "Lead Intake",
        "description": "Receive leads by webhook and post them to Slack",
        "nodes": [
            {
                "id": 1,
                "name": "Incoming Lead",
                "moduleName": "webhook",
                "version": 1,
                "parameters": {},
                "metadata": {"designerPosition": {"x": 0, "y": 0}},
            },
            {
                "id": 2,
                "name": "Notify Sales",
                "moduleName": "slack",
                "version": 1,
                "parameters": {"channel": "#sales"},
                "metadata": {"designerPosition": {"x": 300, "y": 0}},
            },
        ],
        "connections": [{"from": 1, "to": 2}],
        "settings": copy.deepcopy(MAKE_SCENARIO_DEFAULTS),
    }


@pytest.fixture
def make_blueprint():
    """Webhook → router with a filtered Sheets route and a Slack route."""
    return {
        "name": "Form to Sheet",
        "description": "Append form submissions to a Google Sheet and notify ops",
        "flow": [
            {
                "id": 1,
                "module": "gateway:CustomWebHook",
                "version": 1,
                "parameters": {"hook": 4821},
                "mapper": {},
                "metadata": {"designer": {"x": 0, "y": 0}},
            },
            {
                "id": 2,
                "module": "builtin:BasicRouter",
                "version": 1,
                "parameters": {},
                "mapper": {},
                "metadata": {"designer": {"x": 300, "y": 0}},
                "routes": [
                    {"flow": [{
                        "id": 3,
                        "module": "google-sheets:addRow",
                        "version": 2,
                        "parameters": {},
                        "mapper": {"values": {"0": "{{1.email}}"}},
                        "metadata": {"designer": {"x": 600, "y": -150}},
                        "filter": {"name": "Has email", "conditions": [[{"a": "{{1.email}}", "o": "exist"}]]},
                    }]},
                    {"flow": [{
                        "id": 4,
                        "module": "slack:ActionCreateMessage",
                        "version": 1,
                        "parameters": {},
                        "mapper": {"channel": "#ops", "text": "New form from {{1.name}}"},
                        "metadata": {"designer": {"x": 600, "y": 150}},
                    }]},
                ],
            },
        ],
        "metadata": copy.deepcopy(MAKE_METADATA_DEFAULTS),
    }


@pytest.fixture
def n8n_workflow():
    """Webhook → IF; true branch pages on-call, false branch logs to Sheets."""
    return {
        "name": "Support Triage",
        "description": "Route support tickets by priority",
        "nodes": [
            {
                "id": "7d6c1a0e-0001",
                "name": "Ticket Webhook",
                "type": "n8n-nodes-base.webhook",
                "typeVersion": 1,
                "position": [240, 300],
                "parameters": {"path": "tickets", "httpMethod": "POST"},
                "webhookId": "0f5e2d1c-9a7b-4c3d-8e6f-1a2b3c4d5e6f",
            },
            {
                "id": "7d6c1a0e-0002",
                "name": "Is Urgent",
                "type": "n8n-nodes-base.if",
                "typeVersion": 2,
                "position": [560, 300],
                "parameters": {},
            },
            {
                "id": "7d6c1a0e-0003",
                "name": "Page On-Call",
                "type": "n8n-nodes-base.slack",
                "typeVersion": 2,
                "position": [880, 200],
                "parameters": {"channel": "#on-call"},
                "credentials": {"slackApi": {"id": "17", "name": "Ops Slack"}},
            },
            {
                "id": "7d6c1a0e-0004",
                "name": "Log Ticket",
                "type": "n8n-nodes-base.googleSheets",
                "typeVersion": 4,
                "position": [880, 400],
                "parameters": {},
            },
        ],
        "connections": {
            "Ticket Webhook": {"main": [[{"node": "Is Urgent", "type": "main", "index": 0}]]},
            "Is Urgent": {"main": [
                [{"node": "Page On-Call", "type": "main", "index": 0}],
                [{"node": "Log Ticket", "type": "main", "index": 0}],
            ]},
        },
        "settings": {"executionOrder": "v1"},
    }


@pytest.fixture
def write_catalog(tmp_path):
    """Write a catalog dict to a temp file and return its path."""
    def _write(data):
        path = tmp_path / "module_catalog.json"
        path.write_text(json.dumps(data))
        return str(path)
    return _write
