"""Dependency graph and inverse dependency tree rendering.

Rendering depends only on the DependencyGraph protocol, so any graph that can
list a node's neighbours in either direction can be displayed.

Provides:
- EdgeDirection: OUTGOING ("depends on") or INCOMING ("depended on by")
- DependencyGraph: Protocol for neighbour lookup
- DependencyTree: Concrete graph built from a lockfile
- render_tree: Box-drawing forest rooted at one package
"""

from enum import Enum
from typing import Iterable, Mapping, Protocol, runtime_checkable

from lockaudit.core.errors import TreeLookupError
from lockaudit.core.models import Dependency


class EdgeDirection(str, Enum):
    OUTGOING = "outgoing"
    INCOMING = "incoming"


@runtime_checkable
class DependencyGraph(Protocol):
    """Anything that can list the neighbours of a dependency."""

    def edges(self, dependency: Dependency, direction: EdgeDirection) -> Iterable[Dependency]:
        """Neighbours of ``dependency``; raises TreeLookupError if it is unknown."""
        ...


class DependencyTree:
    """Directed graph over the packages of one lockfile.

    Args:
        edges: Mapping of each package to the packages it depends on
    """

    def __init__(self, edges: Mapping[Dependency, Iterable[Dependency]]):
        self._outgoing: dict[Dependency, list[Dependency]] = {}
        self._incoming: dict[Dependency, set[Dependency]] = {}

        for node, deps in edges.items():
            self._outgoing[node] = sorted(set(deps))
            self._incoming.setdefault(node, set())
            for dep in self._outgoing[node]:
                self._outgoing.setdefault(dep, [])
                self._incoming.setdefault(dep, set()).add(node)

    def __contains__(self, dependency: object) -> bool:
        return dependency in self._outgoing

    def __len__(self) -> int:
        return len(self._outgoing)

    def nodes(self) -> list[Dependency]:
        return sorted(self._outgoing)

    def roots(self) -> list[Dependency]:
        """Packages nothing else depends on (usually the workspace members)."""
        return [node for node in self.nodes() if not self._incoming[node]]

    def edges(self, dependency: Dependency, direction: EdgeDirection) -> list[Dependency]:
        if dependency not in self._outgoing:
            raise TreeLookupError(f"{dependency} not found in dependency tree")
        if direction == EdgeDirection.INCOMING:
            return sorted(self._incoming[dependency])
        return list(self._outgoing[dependency])

    def render(
        self, dependency: Dependency, direction: EdgeDirection = EdgeDirection.INCOMING
    ) -> str:
        return render_tree(self, dependency, direction)


def render_tree(
    graph: DependencyGraph,
    root: Dependency,
    direction: EdgeDirection = EdgeDirection.INCOMING,
) -> str:
    """Render the tree reachable from ``root`` following ``direction`` edges.

    Each node is expanded once. Later occurrences are printed without their
    subtree and marked ``(*)`` when a subtree was omitted, so shared
    dependencies and cycles keep the output linear in the graph size.

    Example:
        >>> print(render_tree(tree, Dependency("smallvec", "0.6.9")))
        smallvec 0.6.9
        └── app 0.1.0

    Raises:
        TreeLookupError: If ``root`` (or a neighbour) is not in the graph
    """
    lines = [str(root)]
    expanded = {root}

    def walk(node: Dependency, prefix: str) -> None:
        children = list(graph.edges(node, direction))
        for i, child in enumerate(children):
            last = i == len(children) - 1
            branch = f"{prefix}{'└── ' if last else '├── '}{child}"
            if child in expanded:
                omitted = bool(list(graph.edges(child, direction)))
                lines.append(f"{branch} (*)" if omitted else branch)
                continue
            expanded.add(child)
            lines.append(branch)
            walk(child, prefix + ("    " if last else "│   "))

    walk(root, "")
    return "\n".join(lines)
