"""DOT graph output writer.

Generates a Graphviz DOT file for the expanded dependency graph.
"""

from __future__ import annotations

import os

from ..graphs.models import DependencyGraph, DependencyKind, NodeType

_EDGE_STYLES = {
    DependencyKind.DEV: "style=dashed",
    DependencyKind.PEER: "style=dotted",
    DependencyKind.OPTIONAL: "style=dashed, color=gray60",
}


def write_graph_dot(graph: DependencyGraph, output_dir: str) -> str:
    """Write the dependency graph as a DOT file."""
    path = os.path.join(output_dir, "graph.dot")
    os.makedirs(os.path.dirname(path), exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        f.write("digraph dependency_graph {\n")
        f.write("  rankdir=LR;\n")
        f.write("  node [shape=box];\n")
        f.write("  edge [color=gray40];\n")
        f.write("\n")

        for node in graph.nodes:
            label = f"{_esc(node.name)}\\nv{_esc(node.version)}"
            if node.formatted_size != "0 B":
                label += f"\\n{node.formatted_size}"
            attrs = [f'label="{label}"']
            if node.type == NodeType.ROOT:
                attrs.append("style=filled, fillcolor=lightblue")
            elif not node.is_installed:
                attrs.append("style=filled, fillcolor=mistyrose")
            f.write(f'  "{_esc(node.id)}" [{", ".join(attrs)}];\n')
        f.write("\n")

        for link in graph.links:
            style = _EDGE_STYLES.get(link.type)
            attr_str = f" [{style}]" if style else ""
            f.write(f'  "{_esc(link.source)}" -> "{_esc(link.target)}"{attr_str};\n')

        f.write("}\n")

    return path


def _esc(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')
