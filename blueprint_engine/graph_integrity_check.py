"""
Graph Integrity Check

Performs structural analysis on a workflow's connection graph:
- Dangling endpoint detection
- Cycle detection
- Orphan node detection (unreachable from every trigger)
- Topological ordering
- Self-loop detection

Input: node_refs (list), edges (list[dict] with 'source'/'target'), trigger_refs (list)
Output: dict with is_dag, dangling_edges, orphan_nodes, topological_order, etc.

Node refs may be ints (Make, canonical) or strings (n8n names); all
orderings follow the order of node_refs, so output is deterministic
without comparing mixed types.

Deterministic. No network calls.
"""

from collections import defaultdict, deque


def graph_integrity_check(node_refs, edges, trigger_refs=()):
    """Analyze the connection graph for structural integrity.

    Args:
        node_refs: Node references in document order.
        edges: Edge dicts with 'source' and 'target' keys.
        trigger_refs: References of trigger-capable nodes. When empty,
                      orphan detection is skipped (sub-workflows have none).

    Returns:
        dict with:
            - is_dag: bool — True if no cycles and no self-loops
            - has_cycles: bool
            - cycle_nodes: list — refs involved in cycles
            - dangling_edges: list[dict] — edges whose endpoint is not a node
            - self_loops: list[dict] — edges where source == target
            - orphan_nodes: list — refs not reachable from any trigger
            - topological_order: list — refs in topological order
            - terminal_nodes: list — refs with no outgoing edges
            - in_degree / out_degree: dict — edge counts per ref
    """
    order = {}
    for ref in node_refs:
        if _hashable(ref) and ref not in order:
            order[ref] = len(order)
    all_nodes = list(order)

    adj = defaultdict(list)
    in_degree = {node: 0 for node in all_nodes}
    out_degree = {node: 0 for node in all_nodes}
    dangling = []
    self_loops = []

    for edge in edges:
        src, dst = edge.get("source"), edge.get("target")
        if not (_hashable(src) and _hashable(dst)) or src not in order or dst not in order:
            dangling.append(edge)
            continue
        if src == dst:
            self_loops.append(edge)
            continue
        adj[src].append(dst)
        out_degree[src] += 1
        in_degree[dst] += 1

    # Topological sort via Kahn's algorithm, lowest document position first
    topo_in = dict(in_degree)
    ready = sorted((n for n in all_nodes if topo_in[n] == 0), key=order.get)
    topological_order = []
    while ready:
        node = ready.pop(0)
        topological_order.append(node)
        for neighbor in adj[node]:
            topo_in[neighbor] -= 1
            if topo_in[neighbor] == 0:
                ready.append(neighbor)
        ready.sort(key=order.get)

    # Anything Kahn could not place sits on or behind a cycle; keep only
    # the nodes that can reach themselves.
    cycle_nodes = []
    for node in all_nodes:
        if node not in topological_order and node in _reachable(adj, node, include_start=False):
            cycle_nodes.append(node)

    orphan_nodes = []
    starts = [t for t in trigger_refs if _hashable(t) and t in order]
    if starts:
        reached = set()
        for start in starts:
            reached |= _reachable(adj, start, include_start=True)
        orphan_nodes = [n for n in all_nodes if n not in reached]

    has_cycles = len(cycle_nodes) > 0
    return {
        "is_dag": not has_cycles and not self_loops,
        "has_cycles": has_cycles,
        "cycle_nodes": cycle_nodes,
        "dangling_edges": dangling,
        "self_loops": self_loops,
        "orphan_nodes": orphan_nodes,
        "topological_order": topological_order,
        "terminal_nodes": [n for n in all_nodes if out_degree[n] == 0],
        "in_degree": in_degree,
        "out_degree": out_degree,
    }


def _reachable(adj, start, include_start):
    visited = set()
    queue = deque(adj[start])
    if include_start:
        visited.add(start)
    while queue:
        node = queue.popleft()
        if node in visited:
            continue
        visited.add(node)
        queue.extend(adj[node])
    return visited


def _hashable(value):
    return isinstance(value, (int, str))


# --- Self-check ---
if __name__ == "__main__":
    print("=== Graph Integrity Check Self-Check ===\n")

    result = graph_integrity_check(
        [1, 2, 3, 4],
        [{"source": 1, "target": 2}, {"source": 2, "target": 3}, {"source": 3, "target": 4}],
        trigger_refs=[1],
    )
    assert result["is_dag"] is True
    assert result["topological_order"] == [1, 2, 3, 4]
    assert result["terminal_nodes"] == [4]
    print("  [OK] Linear DAG validated")

    result = graph_integrity_check(
        ["Webhook", "A", "B"],
        [{"source": "Webhook", "target": "A"}, {"source": "A", "target": "B"},
         {"source": "B", "target": "A"}, {"source": "A", "target": "Ghost"}],
        trigger_refs=["Webhook"],
    )
    assert result["has_cycles"] is True
    assert result["cycle_nodes"] == ["A", "B"]
    assert len(result["dangling_edges"]) == 1
    print("  [OK] Cycle and dangling edge detected")

    print("\n=== All graph integrity checks passed ===")
