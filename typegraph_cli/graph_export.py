"""Graph export helpers for JSON and Graphviz DOT outputs."""

from __future__ import annotations

import json
from pathlib import Path

from .models import Graph


def graph_to_json(graph: Graph) -> str:
    return json.dumps(graph.to_dict(), indent=2, ensure_ascii=False)


def export_json(graph: Graph, output_file: Path) -> None:
    output_file.write_text(graph_to_json(graph) + "\n", encoding="utf-8")


def render_dot(graph: Graph, focus: str = "") -> str:
    """Graphviz source with one box per type and one labelled arrow per edge.

    A ``focus`` substring matched against ids and simple names keeps only
    the edges touching a matching type (and their endpoints).  A focus that
    matches nothing renders the whole graph.
    """
    edges = list(graph.edges)
    shown = list(graph.types)

    matched = {n.id for n in graph.types if focus and (focus in n.id or focus in n.name)}
    if matched:
        edges = [e for e in edges if e.src in matched or e.dst in matched]
        touched = matched.union(e.src for e in edges).union(e.dst for e in edges)
        shown = [node for node in graph.types if node.id in touched]

    lines = ["digraph TypeGraph {", "  rankdir=LR;"]
    for node in sorted(shown, key=lambda n: n.id):
        label = f"{node.kind}\\n{node.id}"
        lines.append(f"  {_quoted(node.id)} [label={_quoted(label)}];")
    for edge in edges:
        lines.append(f"  {_quoted(edge.src)} -> {_quoted(edge.dst)} [label={_quoted(edge.rel)}];")
    lines.append("}")
    return "\n".join(lines) + "\n"


def export_dot(graph: Graph, output_file: Path, focus: str = "") -> None:
    output_file.write_text(render_dot(graph, focus), encoding="utf-8")


def _quoted(text: str) -> str:
    escaped = text.replace('"', '\\"')
    return f'"{escaped}"'
