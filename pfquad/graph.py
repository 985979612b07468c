"""
    Graph of candidate contour pieces and the shortest path from a to b

    Vertices are the balls, the valleys and the finite endpoints, each identified by an integer
    index into dense per-vertex lists. Edges are stored the same way (parallel lists `src`, `dst`,
    `weight`, `segment`, `reverse`) with per-vertex adjacency lists of edge indices.

    Every SD segment yields two directed edges: the forward edge follows the direction of descent,
    the backward edge (`reverse=True`) traverses the same segment against it (its contribution
    to the integral changes sign). Moving through a ball is free of charge, the straight
    connector needed to do so is added when the route is resolved.
"""

# python import
import heapq
import logging
import math

# pfquad module imports
from .contours import line_segment
from .pf_exceptions import NoPath


class PathGraph(object):
    def __init__(self):
        # vertices
        self.kind = []
        self.data = []
        self.adj = []
        # edges
        self.src = []
        self.dst = []
        self.weight = []
        self.segment = []
        self.reverse = []

    @property
    def num_vertices(self):
        return len(self.kind)

    @property
    def num_edges(self):
        return len(self.src)

    def add_vertex(self, kind, data=None):
        self.kind.append(kind)
        self.data.append(data)
        self.adj.append([])
        return len(self.kind) - 1

    def add_edge(self, u, v, weight, segment=None, reverse=False):
        if weight < 0:
            raise ValueError("edge weights must not be negative (got {})".format(weight))
        self.src.append(u)
        self.dst.append(v)
        self.weight.append(weight)
        self.segment.append(segment)
        self.reverse.append(reverse)
        self.adj[u].append(len(self.src) - 1)
        return len(self.src) - 1

    def path_cost(self, edges):
        return sum(self.weight[e] for e in edges)

    def __str__(self):
        return "PathGraph(vertices={}, edges={})".format(self.num_vertices, self.num_edges)


def shortest_path(graph, source, target):
    """
    Dijkstra's algorithm from `source`.

    :return: tuple (list of edge indices from source to target, total weight)
    """
    if source == target:
        return [], 0.0

    dist = [math.inf] * graph.num_vertices
    prev_edge = [None] * graph.num_vertices
    dist[source] = 0.0
    heap = [(0.0, source)]
    while heap:
        d, u = heapq.heappop(heap)
        if d > dist[u]:
            continue
        if u == target:
            break
        for e in graph.adj[u]:
            v = graph.dst[e]
            nd = d + graph.weight[e]
            if nd < dist[v]:
                dist[v] = nd
                prev_edge[v] = e
                heapq.heappush(heap, (nd, v))

    if math.isinf(dist[target]):
        raise NoPath(
            "no path from vertex {} ({}) to vertex {} ({}) in {}".format(
                source, graph.kind[source], target, graph.kind[target], graph
            )
        )

    edges = []
    v = target
    while v != source:
        e = prev_edge[v]
        edges.append(e)
        v = graph.src[e]
    edges.reverse()
    return edges, dist[target]


########################################################################################################################
##    graph of the coarse contours
########################################################################################################################


def edge_weight(seg, cover, r_star):
    """
    Cost of traversing an SD segment: one unit per segment (its quadrature points),
    plus its length in units of r_star, plus one for each foreign ball the path passes
    within twice its radius.
    """
    own = {seg.origin, seg.dest}
    penalty = 0
    for i, b in enumerate(cover.balls):
        if ("ball", i) in own:
            continue
        if any(abs(z - b.center) < 2 * b.radius for z in seg.z_samples):
            penalty += 1
    return 1 + seg.arc_length / r_star + penalty


def build_graph(cover, segments, end_balls, ends, inf_contour, num_valleys, r_star):
    """
    :param ends: (a, b), a finite location or the valley index of an infinite endpoint
    :return: tuple (graph, source vertex, target vertex)
    """
    graph = PathGraph()
    for ball in cover.balls:
        graph.add_vertex("ball", ball)
    valley_v = [graph.add_vertex("valley", m) for m in range(num_valleys)]

    end_v = []
    for e, (z, is_inf) in enumerate(zip(ends, inf_contour)):
        if is_inf:
            end_v.append(valley_v[z])
        else:
            v = graph.add_vertex("end", z)
            end_v.append(v)
            j = end_balls.get(e)
            if j is not None:
                graph.add_edge(v, j, 0.0)
                graph.add_edge(j, v, 0.0)

    def vertex(tag):
        kind, i = tag
        if kind == "ball":
            return i
        if kind == "valley":
            return valley_v[i]
        return end_v[i]

    for seg in segments:
        u = vertex(seg.origin)
        v = vertex(seg.dest)
        w = edge_weight(seg, cover, r_star)
        graph.add_edge(u, v, w, seg, False)
        graph.add_edge(v, u, w, seg, True)

    logging.debug("constructed {}".format(graph))
    return graph, end_v[0], end_v[1]


########################################################################################################################
##    resolve the route into contour pieces
########################################################################################################################


class QuadIngredient(object):
    """
    A contiguous part of the route: a list of (ContourSegment, reversed) pairs, i.e., the segment
    of one graph edge preceded by the straight connector (one or two lines) inside the ball it
    starts from.
    `magnitude` is the largest |exp(i k g)| at the ends of its pieces (set by the filter).
    """

    __slots__ = ("pieces", "magnitude")

    def __init__(self, pieces, magnitude=None):
        self.pieces = list(pieces)
        self.magnitude = magnitude

    def __repr__(self):
        return "QuadIngredient({}, magnitude={})".format(self.pieces, self.magnitude)


def _connector(z0, z1, ball):
    """
    Straight pieces from z0 to z1 inside `ball`. Inside a ball holding several stationary points they
    pass through its center, away from the boundary where exp(i k g) may be large.
    """
    if z0 == z1:
        return []
    if ball is not None and len(ball.points) > 1 and ball.center not in (z0, z1):
        return [(line_segment(z0, ball.center), False), (line_segment(ball.center, z1), False)]
    return [(line_segment(z0, z1), False)]


def build_route(graph, edges, start):
    """
    Turn the edges of the shortest path into quad ingredients.

    :param start: the finite location of a, or None if a is a valley
    """
    current = start
    ingredients = []
    for e in edges:
        seg = graph.segment[e]
        rev = graph.reverse[e]
        u = graph.src[e]
        ball = graph.data[u] if graph.kind[u] == "ball" else None
        pieces = []
        if seg is None:
            v = graph.dst[e]
            if graph.kind[v] == "end":
                # leave the ball towards the endpoint inside of it
                target = graph.data[v]
                pieces += _connector(current, target, ball)
                current = target
        else:
            first = seg.end if rev else seg.start
            if current is not None and first is not None:
                pieces += _connector(current, first, ball)
            pieces.append((seg, rev))
            current = seg.start if rev else seg.end
        if pieces:
            ingredients.append(QuadIngredient(pieces))
    logging.debug("route consists of {} ingredients".format(len(ingredients)))
    return ingredients
