import copy
import json

import pytest

from flowkit.errors import WorkflowDecodeError
from flowkit.models.connection import Connection
from flowkit.models.node import Node, Position, is_trigger
from flowkit.models.workflow import Workflow, WorkflowSettings


RAW = {
    "id": "wf-1",
    "name": "Weather mail",
    "active": True,
    "nodes": [
        {
            "id": "n0",
            "name": "Every morning",
            "type": "n8n-nodes-base.scheduleTrigger",
            "typeVersion": 1.2,
            "position": [0, 100],
            "parameters": {"rule": {"interval": [{"field": "hours"}]}},
        },
        {
            "id": "n1",
            "name": "Get weather",
            "type": "n8n-nodes-base.httpRequest",
            "typeVersion": 4,
            "position": [220, 100],
            "parameters": {"url": "https://api.example.com/weather"},
            "retryOnFail": True,
            "maxTries": 3,
            "onError": "continueRegularOutput",
        },
        {
            "id": "n2",
            "name": "Send mail",
            "type": "n8n-nodes-base.emailSend",
            "typeVersion": 2,
            "position": [440, 100],
            "parameters": {"toEmail": "me@example.com", "subject": "Weather"},
            "credentials": {"smtp": {"id": "7", "name": "SMTP"}},
            "notes": "daily digest",
        },
    ],
    "connections": {
        "Every morning": {"main": [[{"node": "Get weather", "type": "main", "index": 0}]]},
        "Get weather": {"main": [[{"node": "Send mail", "type": "main", "index": 0}]]},
    },
    "settings": {"executionOrder": "v1", "callerPolicy": "workflowsFromSameOwner"},
    "tags": [{"id": "t1", "name": "mail"}],
    "versionId": "v-42",
    "pinData": {},
}


@pytest.fixture
def wf() -> Workflow:
    return Workflow.from_dict(copy.deepcopy(RAW))


def _edges(workflow):
    return {(e.source_node, e.target_node) for e in workflow.connections_flat()}


# ---------- entity model ----------

@pytest.mark.parametrize("node_type,expected", [
    ("n8n-nodes-base.scheduleTrigger", True),
    ("n8n-nodes-base.webhookTRIGGER", True),
    ("n8n-nodes-base.manualTrigger", True),
    ("n8n-nodes-base.start", True),
    ("n8n-nodes-base.httpRequest", False),
    ("n8n-nodes-base.webhook", False),
])
def test_is_trigger(node_type, expected):
    assert is_trigger(node_type) is expected


def test_position_equality_and_wire():
    assert Position(1, 2) == Position(1, 2)
    assert Position(1, 2) != Position(2, 1)
    assert Position.from_wire([250.0, -40]).to_wire() == [250, -40]
    assert Position.from_wire(None) == Position(0, 0)


def test_position_rejects_garbage():
    with pytest.raises(WorkflowDecodeError):
        Position.from_wire([1, 2, 3])
    with pytest.raises(WorkflowDecodeError):
        Position.from_wire(["a", 1])
    with pytest.raises(WorkflowDecodeError):
        Position.from_wire([250.5, 10])


def test_node_id_must_be_a_string():
    with pytest.raises(WorkflowDecodeError):
        Node.from_dict({"id": 7, "name": "n", "type": "x"})


def test_node_defaults():
    node = Node.create("HTTP", "n8n-nodes-base.httpRequest")
    assert node.id
    assert node.type_version == 1
    assert node.position == Position(0, 0)
    assert node.parameters == {}
    assert not node.disabled
    assert node.to_dict()["position"] == [0, 0]


def test_node_unknown_fields_roundtrip():
    raw = RAW["nodes"][1]
    node = Node.from_dict(raw)
    assert node.retry_on_fail is True
    assert node.max_tries == 3
    assert node.extra == {"onError": "continueRegularOutput"}
    assert node.to_dict() == {
        **raw,
        "disabled": False,
        "continueOnFail": False,
        "alwaysOutputData": False,
        "executeOnce": False,
    }


def test_settings_keep_extras():
    s = WorkflowSettings.from_dict(RAW["settings"])
    assert s.execution_order == "v1"
    assert s.extra == {"callerPolicy": "workflowsFromSameOwner"}
    assert s.to_dict() == RAW["settings"]
    assert WorkflowSettings.from_dict(None).to_dict() == {}


# ---------- decode / encode ----------

def test_decode_encode_roundtrip(wf):
    again = Workflow.from_dict(wf.to_dict())
    assert again.to_dict() == wf.to_dict()
    assert again.to_dict()["pinData"] == {}


def test_encode_preserves_document(wf):
    out = wf.to_dict()
    assert out["id"] == "wf-1"
    assert out["versionId"] == "v-42"
    assert out["tags"] == [{"id": "t1", "name": "mail"}]
    assert out["connections"] == RAW["connections"]
    assert out["settings"] == RAW["settings"]
    assert out["nodes"][2]["credentials"] == RAW["nodes"][2]["credentials"]


def test_definition_is_upload_body(wf):
    assert set(wf.to_definition()) == {"name", "nodes", "connections", "settings"}


def test_from_json_wraps_parse_errors():
    with pytest.raises(WorkflowDecodeError):
        Workflow.from_json("{not json")
    wf = Workflow.from_json(json.dumps(RAW))
    assert wf.name == "Weather mail"


@pytest.mark.parametrize("mutate", [
    lambda d: d.pop("nodes"),
    lambda d: d.update(connections=[]),
    lambda d: d["nodes"][0].update(position="0,0"),
    lambda d: d["nodes"][0].pop("type"),
    lambda d: d["nodes"][1].update(position=[250.5, 10]),
    lambda d: d["nodes"][2].update(id=7),
    lambda d: d["nodes"][1].update(disabled="yes"),
])
def test_decode_errors(mutate):
    data = copy.deepcopy(RAW)
    mutate(data)
    with pytest.raises(WorkflowDecodeError):
        Workflow.from_dict(data)


def test_decode_tolerates_dangling_and_duplicates():
    data = copy.deepcopy(RAW)
    data["nodes"].append(dict(data["nodes"][1], id="n1"))
    data["connections"]["Ghost"] = {"main": [[{"node": "Nobody", "type": "main", "index": 0}]]}
    wf = Workflow.from_dict(data)
    assert len(wf.nodes) == 4
    assert ("Ghost", "Nobody") in _edges(wf)


# ---------- lookup ----------

def test_find_node_by_id_then_name(wf):
    assert wf.find_node("n1").name == "Get weather"
    assert wf.find_node("Get weather").id == "n1"
    assert wf.find_node("missing") is None


def test_find_node_prefers_id_over_name():
    wf = Workflow(name="w", nodes=[
        Node(id="a", name="b", type="x"),
        Node(id="b", name="c", type="x"),
    ])
    assert wf.find_node("b").name == "c"


def test_auto_position(wf):
    assert wf.auto_position() == Position(640, 100)
    assert Workflow(name="empty").auto_position() == Position(200, 100)


def test_has_trigger(wf):
    assert wf.has_trigger()
    wf.remove_node("Every morning")
    assert not wf.has_trigger()


# ---------- mutation ----------

def test_add_node_creates_no_edges(wf):
    wf.add_node(Node.create("Log", "n8n-nodes-base.noOp"))
    assert wf.node_names()[-1] == "Log"
    assert len(wf.connections_flat()) == 2


def test_remove_node_cascades(wf):
    removed = wf.remove_node("n1")
    assert removed.name == "Get weather"
    assert "Get weather" not in wf.node_names()
    for e in wf.connections_flat():
        assert "Get weather" not in (e.source_node, e.target_node)
    # the trigger keeps its (now empty) output slot
    assert wf.connections["Every morning"]["main"] == [[]]


def test_remove_node_miss(wf):
    assert wf.remove_node("nope") is None
    assert len(wf.nodes) == 3


def test_rename_cascade_scenario():
    wf = Workflow(
        name="w",
        nodes=[Node(id="n1", name="Old", type="x"), Node(id="n2", name="B", type="y")],
    )
    wf.add_connection(Connection("Old", "B"))

    wf.rename_node("n1", "New")

    edges = wf.connections_flat()
    assert [(e.source_node, e.target_node) for e in edges] == [("New", "B")]
    assert all("Old" not in (e.source_node, e.target_node) for e in edges)
    assert wf.find_node("n1").name == "New"


def test_rename_node_in_connections_rewrites_targets(wf):
    wf.find_node("n1").name = "Fetch"
    wf.rename_node_in_connections("Get weather", "Fetch")
    assert _edges(wf) == {("Every morning", "Fetch"), ("Fetch", "Send mail")}


def test_update_node_merges_parameters(wf):
    wf.update_node("n1", parameters={"method": "POST"})
    assert wf.find_node("n1").parameters == {
        "url": "https://api.example.com/weather", "method": "POST",
    }
    wf.update_node("n1", parameters={"url": "x"}, replace=True)
    assert wf.find_node("n1").parameters == {"url": "x"}


def test_update_node_rename_disable_move(wf):
    node = wf.update_node("Get weather", name="Fetch", disabled=True, position=Position(5, 6))
    assert node.name == "Fetch" and node.disabled and node.position == Position(5, 6)
    assert ("Every morning", "Fetch") in _edges(wf)
    assert wf.update_node("nope", name="x") is None


def test_move_node(wf):
    assert wf.move_node("n2", Position(1, 1)).position == Position(1, 1)
    assert wf.move_node("nope", Position(1, 1)) is None


def test_add_connection_resolves_ids(wf):
    edge = wf.add_connection(Connection("n0", "n2", source_output=1))
    assert edge.source_node == "Every morning"
    assert edge.target_node == "Send mail"
    assert wf.connections["Every morning"]["main"][1][0].node == "Send mail"


def test_add_connection_keeps_unknown_names(wf):
    wf.add_connection(Connection("n2", "Somewhere else"))
    assert ("Send mail", "Somewhere else") in _edges(wf)


def test_remove_connection(wf):
    assert wf.remove_connection("n0", "Get weather") is True
    assert ("Every morning", "Get weather") not in _edges(wf)
    assert wf.remove_connection("n0", "Get weather") is False
