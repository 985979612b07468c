import itertools
import math

import numpy as np

from pfquad.balls import Ball
from pfquad.contours import ContourSegment, line_segment
from pfquad.graph import PathGraph, build_route, shortest_path
from pfquad.pf_exceptions import NoPath


def random_graph(n, num_edges, seed):
    rng = np.random.default_rng(seed)
    graph = PathGraph()
    for i in range(n):
        graph.add_vertex("ball", i)
    for _ in range(num_edges):
        u, v = rng.integers(0, n, size=2)
        if u != v:
            graph.add_edge(int(u), int(v), float(rng.uniform(0, 10)))
    return graph


def brute_force(graph, source, target):
    """cheapest path by enumerating all simple paths"""
    best = math.inf
    stack = [(source, (source,), 0.0)]
    while stack:
        u, visited, cost = stack.pop()
        if u == target:
            best = min(best, cost)
            continue
        for e in graph.adj[u]:
            v = graph.dst[e]
            if v not in visited:
                stack.append((v, visited + (v,), cost + graph.weight[e]))
    return best


def test_dijkstra():
    for seed in range(5):
        graph = random_graph(7, 18, seed)
        for source, target in itertools.permutations(range(7), 2):
            best = brute_force(graph, source, target)
            try:
                edges, cost = shortest_path(graph, source, target)
            except NoPath:
                assert math.isinf(best)
            else:
                assert abs(cost - best) < 1e-12
                assert abs(graph.path_cost(edges) - cost) < 1e-12
                # the edges form a connected path from source to target
                assert graph.src[edges[0]] == source
                assert graph.dst[edges[-1]] == target
                for e1, e2 in zip(edges[:-1], edges[1:]):
                    assert graph.dst[e1] == graph.src[e2]


def test_source_is_target():
    graph = random_graph(3, 4, 0)
    assert shortest_path(graph, 1, 1) == ([], 0.0)


def test_no_path():
    graph = PathGraph()
    u = graph.add_vertex("end", 0j)
    v = graph.add_vertex("valley", 0)
    graph.add_edge(v, u, 1.0)
    try:
        shortest_path(graph, u, v)
    except NoPath:
        pass
    else:
        assert False


def test_negative_weight():
    graph = PathGraph()
    graph.add_vertex("ball", 0)
    graph.add_vertex("ball", 1)
    try:
        graph.add_edge(0, 1, -0.1)
    except ValueError:
        pass
    else:
        assert False


def test_route():
    graph = PathGraph()
    v_ball = graph.add_vertex("ball", Ball(0.3, 0.5, (0,)))
    v_val = graph.add_vertex("valley", 0)
    v_a = graph.add_vertex("end", 0.1 + 0j)
    v_b = graph.add_vertex("end", 5 + 0j)
    # both SD segments go to infinity within valley 0
    seg_out = ContourSegment("sd", 0.5, None, p_samples=[0, 1], z_samples=[0.5, 0.5 + 1j])
    seg_b = ContourSegment("sd", 5.0, None, p_samples=[0, 1], z_samples=[5, 5 + 1j])
    graph.add_edge(v_a, v_ball, 0.0)
    graph.add_edge(v_ball, v_val, 1.0, seg_out, False)
    graph.add_edge(v_val, v_b, 1.0, seg_b, True)

    edges, cost = shortest_path(graph, v_a, v_b)
    assert cost == 2.0
    route = build_route(graph, edges, 0.1 + 0j)
    assert len(route) == 2

    # connector inside the ball from a to the start of the outgoing segment
    (conn, rev), (seg, rev2) = route[0].pieces
    assert conn.kind == "line"
    assert (conn.start, conn.end) == (0.1, 0.5)
    assert not rev
    assert seg is seg_out
    assert not rev2

    assert len(route[1].pieces) == 1
    seg, rev = route[1].pieces[0]
    assert seg is seg_b
    assert rev


def test_route_within_ball():
    # a and b inside the same ball
    graph = PathGraph()
    v_ball = graph.add_vertex("ball", Ball(0, 2, (0,)))
    v_a = graph.add_vertex("end", 1j)
    v_b = graph.add_vertex("end", -1j)
    for v in [v_a, v_b]:
        graph.add_edge(v, v_ball, 0.0)
        graph.add_edge(v_ball, v, 0.0)
    edges, cost = shortest_path(graph, v_a, v_b)
    assert cost == 0
    route = build_route(graph, edges, 1j)
    assert len(route) == 1
    seg, rev = route[0].pieces[0]
    assert (seg.start, seg.end) == (1j, -1j)
    assert not rev


def test_line_segment():
    seg = line_segment(0, 3 + 4j)
    assert seg.kind == "line"
    assert seg.arc_length == 5
    assert not seg.infinite


def test_route_through_merged_ball():
    # in a ball holding two stationary points the connector passes through the center
    ball = Ball(0.5j, 2, (0, 1))
    graph = PathGraph()
    v_ball = graph.add_vertex("ball", ball)
    v_a = graph.add_vertex("end", 1 + 0j)
    v_b = graph.add_vertex("end", -1 + 1j)
    for v in [v_a, v_b]:
        graph.add_edge(v, v_ball, 0.0)
        graph.add_edge(v_ball, v, 0.0)
    edges, _ = shortest_path(graph, v_a, v_b)
    route = build_route(graph, edges, 1 + 0j)
    assert len(route) == 1
    (c1, _), (c2, _) = route[0].pieces
    assert (c1.start, c1.end) == (1, 0.5j)
    assert (c2.start, c2.end) == (0.5j, -1 + 1j)

    # no detour if an end is the center
    route = build_route(graph, edges, 0.5j)
    assert len(route[0].pieces) == 1
