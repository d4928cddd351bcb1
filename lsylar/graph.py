"""A small weighted graph and a depth-first walk over its simple paths."""

from __future__ import annotations

import sys
from typing import Iterator, Optional, Sequence

Graph = dict[int, dict[int, int]]

_SAMPLE_EDGES: dict[int, list[tuple[int, int]]] = {
    0: [(2, 26), (4, 38), (6, 58), (7, 34)],
    1: [(2, 36), (3, 29), (5, 32), (7, 19)],
    2: [(0, 26), (1, 36), (3, 29), (6, 40), (7, 34)],
    3: [(1, 29), (2, 17), (6, 52)],
    4: [(0, 38), (5, 35), (6, 29), (7, 37)],
    5: [(1, 32), (4, 35), (7, 37)],
    6: [(0, 58), (2, 40), (3, 52), (4, 29)],
    7: [(0, 16), (1, 19), (2, 34), (4, 37), (5, 26)],
}

SAMPLE_START = 5


def build_sample_graph() -> Graph:
    """The eight-point weighted sample graph, neighbours sorted by number."""
    return {point: dict(sorted(edges)) for point, edges in _SAMPLE_EDGES.items()}


def format_graph(graph: Graph) -> str:
    """One line per point listing its <neighbour, weight> pairs."""
    lines = []
    for point, edges in graph.items():
        pairs = "".join(f"<{n}, {w}>, " for n, w in sorted(edges.items()))
        lines.append(f"point: {point}, <side, weight>: {pairs}")
    return "".join(line + "\n" for line in lines)


def enumerate_paths(graph: Graph, start: int) -> Iterator[list[int]]:
    """Yield each depth-first path from start that covers every point and ends
    at a point whose neighbours have all been visited after the start."""
    path = [start]
    marked: set[int] = set()

    def walk() -> Iterator[list[int]]:
        edges = graph[path[-1]]
        if all(n in marked for n in edges):
            if len(path) == len(graph):
                yield list(path)
            return
        for neighbour in sorted(edges):
            if neighbour in path:
                continue
            marked.add(neighbour)
            path.append(neighbour)
            yield from walk()
            marked.discard(neighbour)
            path.pop()

    yield from walk()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Print the sample graph, every covering path from point 5 and their count."""
    graph = build_sample_graph()
    sys.stdout.write(format_graph(graph))
    total = 0
    for path in enumerate_paths(graph, SAMPLE_START):
        print("".join(f"{p}, " for p in path))
        total += 1
    print(f"total_print = {total}")
    return 0