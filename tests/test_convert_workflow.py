"""
Tests for convert_workflow — cross-platform conversion through the canonical graph.
"""

import copy
import json

import pytest

from blueprint_engine.convert_workflow import ConversionError, convert_workflow
from blueprint_engine.node_type_mappings import from_service, to_service
from blueprint_engine.platforms import UnsupportedPlatformError, get_profile, iter_nodes, read_connections


def _edge_set(document, platform):
    profile = get_profile(platform)
    return {(e["source"], e["target"]) for e in read_connections(document, profile)}


def _node_count(document, platform):
    return len(iter_nodes(document, get_profile(platform)))


def _zap():
    return {
        "name": "New Lead Zap",
        "trigger": {"type": "catch_hook", "name": "Catch Hook"},
        "actions": [
            {"type": "send_email", "name": "Email Team", "fields": {"to": "team@acme.io"}},
            {"type": "trello_create", "name": "Create Card", "fields": {"list": "Leads"}},
        ],
    }


def _add_merge(workflow):
    """Join both IF branches in a Merge node, the false branch on input 1."""
    workflow["nodes"].append({
        "id": "7d6c1a0e-0005",
        "name": "Merge",
        "type": "n8n-nodes-base.merge",
        "typeVersion": 2,
        "position": [1200, 300],
        "parameters": {},
    })
    workflow["connections"]["Page On-Call"] = {"main": [[{"node": "Merge", "type": "main", "index": 0}]]}
    workflow["connections"]["Log Ticket"] = {"main": [[{"node": "Merge", "type": "main", "index": 1}]]}


class TestRoundTrips:
    def test_make_through_canonical(self, make_blueprint):
        """make → canonical → make keeps node count and edge set."""
        canonical = convert_workflow(make_blueprint, "make", "canonical").workflow
        back = convert_workflow(canonical, "canonical", "make").workflow
        assert _node_count(back, "make") == _node_count(make_blueprint, "make") == 4
        assert _edge_set(back, "make") == _edge_set(make_blueprint, "make") == {(1, 2), (2, 3), (2, 4)}

    def test_n8n_through_canonical(self, n8n_workflow):
        """n8n → canonical → n8n keeps nodes, edges and output indexes."""
        canonical = convert_workflow(n8n_workflow, "n8n", "canonical").workflow
        back = convert_workflow(canonical, "canonical", "n8n").workflow
        assert _node_count(back, "n8n") == 4
        assert _edge_set(back, "n8n") == _edge_set(n8n_workflow, "n8n")
        assert back["connections"]["Is Urgent"] == n8n_workflow["connections"]["Is Urgent"]
        assert [n["type"] for n in back["nodes"]] == [n["type"] for n in n8n_workflow["nodes"]]

    def test_canonical_through_make(self, canonical_blueprint):
        """canonical → make → canonical restores module names."""
        make = convert_workflow(canonical_blueprint, "canonical", "make").workflow
        back = convert_workflow(make, "make", "canonical").workflow
        assert [n["moduleName"] for n in back["nodes"]] == ["webhook", "slack"]
        assert back["connections"] == [{"from": 1, "to": 2}]

    def test_merge_input_index_survives(self, n8n_workflow):
        """A node fed on its second input keeps that input through conversion."""
        _add_merge(n8n_workflow)

        same = convert_workflow(n8n_workflow, "n8n", "n8n").workflow
        assert same["connections"]["Log Ticket"]["main"] == [[{"node": "Merge", "type": "main", "index": 1}]]
        assert same["connections"]["Page On-Call"]["main"] == [[{"node": "Merge", "type": "main", "index": 0}]]

        canonical = convert_workflow(n8n_workflow, "n8n", "canonical").workflow
        assert {"from": 4, "to": 5, "targetInput": 1} in canonical["connections"]
        back = convert_workflow(canonical, "canonical", "n8n").workflow
        assert back["connections"]["Log Ticket"]["main"] == [[{"node": "Merge", "type": "main", "index": 1}]]


class TestToCanonical:
    def test_make_router_becomes_edges(self, make_blueprint):
        """Router routes become branch edges carrying their filters."""
        result = convert_workflow(make_blueprint, "make", "canonical")
        conns = result.workflow["connections"]
        assert conns[0] == {"from": 1, "to": 2}
        assert conns[1]["branchCondition"]["name"] == "Has email"
        assert conns[2] == {"from": 2, "to": 4, "sourceOutput": 1}
        assert [n["moduleName"] for n in result.workflow["nodes"]] == [
            "webhook", "builtin:BasicRouter", "google-sheets", "slack",
        ]

    def test_output_is_valid(self, make_blueprint):
        """Canonical output carries default settings and validates."""
        result = convert_workflow(make_blueprint, "make", "canonical")
        assert result.validation.is_valid is True
        assert result.workflow["settings"]["maxErrors"] == 3
        positions = [n["metadata"]["designerPosition"]["x"] for n in result.workflow["nodes"]]
        assert positions == [0, 300, 600, 900]


class TestToN8n:
    def test_make_to_n8n(self, make_blueprint):
        """Make modules map to native n8n nodes with unique names."""
        result = convert_workflow(make_blueprint, "make", "n8n")
        nodes = result.workflow["nodes"]
        assert [n["type"] for n in nodes] == [
            "n8n-nodes-base.webhook",
            "n8n-nodes-base.switch",
            "n8n-nodes-base.googleSheets",
            "n8n-nodes-base.slack",
        ]
        assert len({n["name"] for n in nodes}) == 4
        assert nodes[0]["webhookId"]
        assert nodes[0]["parameters"]["httpMethod"] == "POST"
        assert [n["position"] for n in nodes][:2] == [[240, 300], [560, 300]]
        assert result.degraded_nodes == []
        assert result.validation.is_valid is True

    def test_make_mapper_syntax_converted(self, make_blueprint):
        """Make {{N.field}} references become n8n $json expressions."""
        result = convert_workflow(make_blueprint, "make", "n8n")
        slack = result.workflow["nodes"][3]
        assert slack["parameters"]["text"] == "New form from {{ $json.name }}"
        assert slack["parameters"]["operation"] == "post"

    def test_mapper_text_kept_and_placeholders_cleared(self, make_blueprint):
        """Only whole placeholder values are cleared, with a warning; other text is untouched."""
        slack = make_blueprint["flow"][1]["routes"][1]["flow"][0]
        slack["parameters"] = {"connection": "__SLACK__"}
        slack["mapper"] = {"text": "  Hi {{1.name}}  ", "note": "see __init__ and __ALL_CAPS__ docs"}
        result = convert_workflow(make_blueprint, "make", "n8n")
        params = result.workflow["nodes"][3]["parameters"]
        assert params["text"] == "  Hi {{ $json.name }}  "
        assert params["note"] == "see __init__ and __ALL_CAPS__ docs"
        assert params["connection"] == ""
        cleared = [w for w in result.warnings if "Placeholder" in w]
        assert len(cleared) == 1
        assert '"connection"' in cleared[0]

    def test_condition_dropped_with_warning(self, make_blueprint):
        """n8n cannot hold the route filter; a warning says so."""
        result = convert_workflow(make_blueprint, "make", "n8n")
        assert len([w for w in result.warnings if "Branch condition" in w]) == 1

    def test_router_outputs_preserved(self, make_blueprint):
        """Each route lands on its own switch output."""
        result = convert_workflow(make_blueprint, "make", "n8n")
        names = [n["name"] for n in result.workflow["nodes"]]
        outputs = result.workflow["connections"][names[1]]["main"]
        assert [[c["node"] for c in out] for out in outputs] == [[names[2]], [names[3]]]

    def test_duplicate_names_made_unique(self, canonical_blueprint):
        """Repeated node names get numeric suffixes."""
        canonical_blueprint["nodes"][1]["name"] = "Incoming Lead"
        result = convert_workflow(canonical_blueprint, "canonical", "n8n")
        assert [n["name"] for n in result.workflow["nodes"]] == ["Incoming Lead", "Incoming Lead1"]
        assert result.workflow["connections"] == {
            "Incoming Lead": {"main": [[{"node": "Incoming Lead1", "type": "main", "index": 0}]]},
        }

    def test_ids_are_uuids(self, canonical_blueprint):
        """n8n node ids are freshly generated."""
        result = convert_workflow(canonical_blueprint, "canonical", "n8n")
        ids = [n["id"] for n in result.workflow["nodes"]]
        assert len(set(ids)) == 2
        assert all(len(i) == 36 for i in ids)


class TestToMake:
    def test_n8n_to_make(self, n8n_workflow):
        """n8n nodes become a flat flow with explicit connections."""
        result = convert_workflow(n8n_workflow, "n8n", "make")
        flow = result.workflow["flow"]
        assert [m["id"] for m in flow] == [1, 2, 3, 4]
        assert [m["module"] for m in flow] == [
            "gateway:CustomWebHook", "builtin:filter", "slack:ActionCreateMessage", "google-sheets:addRow",
        ]
        assert result.workflow["connections"][0] == {
            "id": 1, "srcModuleId": 1, "srcPortName": "default", "dstModuleId": 2, "dstPortName": "default",
        }
        assert result.validation.is_valid is True

    def test_output_index_warning(self, n8n_workflow):
        """Make connections cannot express a second output."""
        result = convert_workflow(n8n_workflow, "n8n", "make")
        assert any("Output index 1" in w for w in result.warnings)

    def test_input_index_warning(self, n8n_workflow):
        """Make connections cannot target a second input."""
        _add_merge(n8n_workflow)
        result = convert_workflow(n8n_workflow, "n8n", "make")
        assert [w for w in result.warnings if "Input index" in w] == [
            "Input index 1 of connection 4 -> 5 has no Make equivalent; connected to the default port",
        ]

    def test_condition_becomes_filter(self, canonical_blueprint):
        """Canonical branch conditions map to Make filters."""
        canonical_blueprint["connections"][0]["branchCondition"] = "status == 'new'"
        result = convert_workflow(canonical_blueprint, "canonical", "make")
        assert result.workflow["connections"][0]["filter"] == {"name": "status == 'new'", "conditions": []}
        assert result.warnings == []


class TestDegradation:
    def test_unknown_action_falls_back_to_http(self, make_blueprint):
        """Unmapped actions become the generic HTTP node."""
        make_blueprint["flow"][1]["routes"][1]["flow"][0]["module"] = "acme:DoThing"
        result = convert_workflow(make_blueprint, "make", "n8n")
        assert result.workflow["nodes"][3]["type"] == "n8n-nodes-base.httpRequest"
        assert len(result.degraded_nodes) == 1
        degraded = result.degraded_nodes[0]
        assert degraded.source_type == "acme:DoThing"
        assert degraded.fallback_type == "n8n-nodes-base.httpRequest"

    def test_unknown_trigger_falls_back_to_webhook(self, n8n_workflow):
        """Unmapped triggers become the target webhook trigger."""
        n8n_workflow["nodes"][0]["type"] = "n8n-nodes-base.rssFeedReadTrigger"
        result = convert_workflow(n8n_workflow, "n8n", "make")
        assert result.workflow["flow"][0]["module"] == "gateway:CustomWebHook"
        assert result.degraded_nodes[0].reason.startswith("No make trigger equivalent")

    def test_package_fallback(self, make_blueprint):
        """An unlisted module of a known package keeps its service."""
        make_blueprint["flow"][1]["routes"][1]["flow"][0]["module"] = "slack:ActionUploadFile"
        result = convert_workflow(make_blueprint, "make", "n8n")
        assert result.workflow["nodes"][3]["type"] == "n8n-nodes-base.slack"
        assert result.degraded_nodes == []

    def test_same_platform_keeps_native_types(self, make_blueprint):
        """A make → make conversion never degrades uncatalogued modules."""
        make_blueprint["flow"][1]["routes"][1]["flow"][0]["module"] = "acme:DoThing"
        result = convert_workflow(make_blueprint, "make", "make")
        assert result.workflow["flow"][3]["module"] == "acme:DoThing"
        assert result.degraded_nodes == []

    def test_serialization(self, make_blueprint):
        """ConversionResult serializes with camelCase keys."""
        make_blueprint["flow"][0]["module"] = "acme:Hook"
        data = convert_workflow(make_blueprint, "make", "n8n").to_json()
        assert data["sourcePlatform"] == "make"
        assert data["degradedNodes"][0]["fallbackType"] == "n8n-nodes-base.httpRequest"
        assert "isValid" in data["validation"]
        json.dumps(data)


class TestZapier:
    def test_zap_to_n8n(self):
        """A zap becomes a linear n8n chain."""
        result = convert_workflow(_zap(), "zapier", "n8n")
        nodes = result.workflow["nodes"]
        assert [n["type"] for n in nodes] == [
            "n8n-nodes-base.webhook", "n8n-nodes-base.emailSend", "n8n-nodes-base.httpRequest",
        ]
        assert nodes[1]["parameters"]["to"] == "team@acme.io"
        assert _edge_set(result.workflow, "n8n") == {
            ("Catch Hook", "Email Team"), ("Email Team", "Create Card"),
        }
        assert [d.source_type for d in result.degraded_nodes] == ["trello_create"]

    def test_zap_without_trigger(self):
        """A missing trigger is replaced by a webhook with a warning."""
        zap = _zap()
        del zap["trigger"]
        result = convert_workflow(zap, "zapier", "make")
        assert result.workflow["flow"][0]["module"] == "gateway:CustomWebHook"
        assert len(result.workflow["flow"]) == 3
        assert any("no trigger" in w for w in result.warnings)


class TestErrors:
    def test_unsupported_target(self, make_blueprint):
        """Zapier is a source only."""
        with pytest.raises(UnsupportedPlatformError):
            convert_workflow(make_blueprint, "make", "zapier")

    def test_unsupported_source(self, make_blueprint):
        """Unknown platforms are caller errors."""
        with pytest.raises(ValueError):
            convert_workflow(make_blueprint, "power-automate", "n8n")

    def test_no_node_sequence(self):
        """A source with no node array cannot be converted."""
        with pytest.raises(ConversionError, match="flow"):
            convert_workflow({"name": "Empty"}, "make", "n8n")

    def test_unparseable_text(self):
        """Raw text that is not JSON raises ConversionError."""
        with pytest.raises(ConversionError):
            convert_workflow("not json", "n8n", "make")

    def test_dangling_connection_dropped(self, canonical_blueprint):
        """Connections to missing nodes are dropped with a warning."""
        canonical_blueprint["connections"].append({"from": 2, "to": 9})
        result = convert_workflow(canonical_blueprint, "canonical", "make")
        assert len(result.workflow["connections"]) == 1
        assert any("Dropped connection" in w for w in result.warnings)

    def test_input_not_mutated(self, make_blueprint):
        """The source document is left unchanged."""
        before = copy.deepcopy(make_blueprint)
        convert_workflow(make_blueprint, "make", "n8n")
        assert make_blueprint == before


class TestMappings:
    def test_to_service(self):
        """Native types map to neutral service tokens."""
        assert to_service("slack:ActionCreateMessage", "make") == "slack"
        assert to_service("google-sheets:deleteRow", "make") == "google-sheets"
        assert to_service("n8n-nodes-base.if", "n8n") == "builtin:filter"
        assert to_service("slack_message", "zapier") == "slack"
        assert to_service("acme:Thing", "make") is None

    def test_from_service(self):
        """Service tokens map to native types or a flagged fallback."""
        assert from_service("slack", "make") == ("slack:ActionCreateMessage", False)
        assert from_service("telegram", "make") == ("http:ActionSendData", True)
        assert from_service("schedule", "make", is_trigger=True) == ("gateway:CustomWebHook", True)
        assert from_service("json", "n8n") == ("n8n-nodes-base.set", False)
