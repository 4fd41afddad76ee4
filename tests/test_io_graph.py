from pathlib import Path

import pytest

from flowkit.errors import WorkflowDecodeError, WorkflowFileError
from flowkit.models.connection import Connection, build
from flowkit.models.node import Node
from flowkit.models.workflow import Workflow
from flowkit.utils.graph import build_graph, dangling_names, graph_stats, isolated_names, self_loops
from flowkit.utils.io import read_workflow, write_workflow


def _loop_wf():
    return Workflow(
        name="Retry loop",
        nodes=[
            Node(id="1", name="Start", type="n8n-nodes-base.manualTrigger"),
            Node(id="2", name="Call", type="n8n-nodes-base.httpRequest"),
            Node(id="3", name="Wait", type="n8n-nodes-base.wait"),
            Node(id="4", name="Idle", type="n8n-nodes-base.noOp"),
        ],
        connections=build([
            Connection("Start", "Call"),
            Connection("Call", "Wait", source_output=1),
            Connection("Wait", "Call"),
            Connection("Wait", "Wait"),
            Connection("Wait", "Missing"),
        ]),
    )


def test_build_graph_keeps_multiplicity():
    wf = Workflow(name="w", nodes=[Node(id="1", name="A", type="x")],
                  connections=build([Connection("A", "A"), Connection("A", "A")]))
    G = build_graph(wf)
    assert G.number_of_edges() == 2
    assert self_loops(G) == ["A", "A"]


def test_graph_helpers():
    G = build_graph(_loop_wf())
    assert dangling_names(G) == ["Missing"]
    assert isolated_names(G) == ["Idle"]
    assert self_loops(G) == ["Wait"]


def test_graph_stats():
    stats = graph_stats(_loop_wf())
    assert stats["n_nodes"] == 4
    assert stats["n_edges"] == 5
    assert stats["triggers"] == ["Start"]
    assert stats["acyclic"] is False
    assert sorted(map(sorted, stats["cycles"])) == [["Call", "Wait"], ["Wait"]]
    assert stats["components"] == 2


@pytest.mark.parametrize("suffix", [".json", ".yaml"])
def test_write_read_roundtrip(tmp_path: Path, suffix: str):
    wf = _loop_wf()
    path = write_workflow(wf, tmp_path / "nested" / f"wf{suffix}")
    assert path.exists()
    assert not path.with_suffix(path.suffix + ".tmp").exists()
    assert read_workflow(path).to_dict() == wf.to_dict()


def test_read_errors(tmp_path: Path):
    with pytest.raises(WorkflowFileError):
        read_workflow(tmp_path / "absent.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(WorkflowDecodeError):
        read_workflow(broken)
