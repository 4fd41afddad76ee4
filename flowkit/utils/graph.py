# flowkit/utils/graph.py
from typing import Dict, Any, List

import networkx as nx

from flowkit.models.workflow import Workflow


def build_graph(workflow: Workflow) -> nx.MultiDiGraph:
    """
    Name-keyed multigraph of the workflow.

    Every node name becomes a graph node (carrying the Node as `node`), and every
    flattened edge becomes one graph edge, so parallel edges and self-loops keep
    their multiplicity. Names referenced only by edges (dangling) are added
    without the `node` attribute.
    """
    G = nx.MultiDiGraph()
    for n in workflow.nodes:
        if n.name not in G:
            G.add_node(n.name, node=n)

    for e in workflow.connections_flat():
        G.add_edge(
            e.source_node,
            e.target_node,
            source_output=e.source_output,
            target_input=e.target_input,
            source_type=e.source_type,
            target_type=e.target_type,
        )
    return G


def dangling_names(G: nx.MultiDiGraph) -> List[str]:
    return [n for n, data in G.nodes(data=True) if "node" not in data]


def isolated_names(G: nx.MultiDiGraph) -> List[str]:
    """Names that appear in no edge at all."""
    return list(nx.isolates(G))


def self_loops(G: nx.MultiDiGraph) -> List[str]:
    """Source name of every self-loop edge, one entry per edge."""
    return [u for u, _v in nx.selfloop_edges(G)]


def graph_stats(workflow: Workflow) -> Dict[str, Any]:
    G = build_graph(workflow)
    # DiGraph view: parallel edges don't create extra cycles
    simple = nx.DiGraph(G)
    cycles = list(nx.simple_cycles(simple))
    return {
        "n_nodes": len(workflow.nodes),
        "n_edges": G.number_of_edges(),
        "triggers": [n.name for n in workflow.nodes if n.is_trigger],
        "acyclic": nx.is_directed_acyclic_graph(simple),
        "cycles": cycles,
        "components": nx.number_weakly_connected_components(G) if G.number_of_nodes() else 0,
        "isolated": isolated_names(G),
        "dangling": dangling_names(G),
    }
