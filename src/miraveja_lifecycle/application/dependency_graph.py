"""Application layer - Dependency graph construction and topological ordering."""

import heapq
from collections import deque
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Set, Tuple

from miraveja_lifecycle.application.declarations import dependencies
from miraveja_lifecycle.domain import CycleError


def _tie_break(key: Hashable) -> Tuple[str, str, str]:
    key_type = type(key)
    return (key_type.__name__, f"{key_type.__module__}.{key_type.__qualname__}", repr(key))


class DependencyGraph:
    """Directed acyclic graph of system keys.

    An edge ``node -> dependency`` means node depends on dependency. Edges that
    would close a cycle are rejected when added, so the graph is acyclic at
    all times.

    Attributes:
        _nodes: Known nodes, in insertion order.
        _dependencies: Immediate dependencies of each node.
        _dependents: Immediate dependents of each node.
    """

    def __init__(self) -> None:
        """Initialize an empty graph."""
        self._nodes: Dict[Hashable, None] = {}
        self._dependencies: Dict[Hashable, Set[Hashable]] = {}
        self._dependents: Dict[Hashable, Set[Hashable]] = {}

    @property
    def nodes(self) -> List[Hashable]:
        return list(self._nodes)

    def add_node(self, node: Hashable) -> None:
        """Add node to the graph without any edges."""
        if node not in self._nodes:
            self._nodes[node] = None
            self._dependencies[node] = set()
            self._dependents[node] = set()

    def depend(self, node: Hashable, dependency: Hashable) -> None:
        """Record that node depends on dependency.

        Args:
            node: The dependent key.
            dependency: The key node depends on.

        Raises:
            CycleError: If dependency already depends on node, directly or transitively.

        Example:
            >>> graph = DependencyGraph()
            >>> graph.depend("app", "db")
            >>> graph.depend("db", "app")  # Raises CycleError
        """
        if node == dependency:
            raise CycleError([node, node])
        path = self._path(dependency, node)
        if path is not None:
            raise CycleError([node] + path)

        self.add_node(node)
        self.add_node(dependency)
        self._dependencies[node].add(dependency)
        self._dependents[dependency].add(node)

    def _path(self, start: Hashable, goal: Hashable) -> Optional[List[Hashable]]:
        """Shortest chain of dependency edges leading from start to goal, if any."""
        if start not in self._nodes or goal not in self._nodes:
            return None
        parents: Dict[Hashable, Optional[Hashable]] = {start: None}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            if current == goal:
                path = [current]
                while parents[path[-1]] is not None:
                    path.append(parents[path[-1]])
                return list(reversed(path))
            for dependency in sorted(self._dependencies[current], key=_tie_break):
                if dependency not in parents:
                    parents[dependency] = current
                    queue.append(dependency)
        return None

    def immediate_dependencies(self, node: Hashable) -> Set[Hashable]:
        return set(self._dependencies.get(node, ()))

    def immediate_dependents(self, node: Hashable) -> Set[Hashable]:
        return set(self._dependents.get(node, ()))

    def _transitive(self, node: Hashable, edges: Dict[Hashable, Set[Hashable]]) -> Set[Hashable]:
        seen: Set[Hashable] = set()
        stack = list(edges.get(node, ()))
        while stack:
            current = stack.pop()
            if current not in seen:
                seen.add(current)
                stack.extend(edges[current])
        return seen

    def transitive_dependencies(self, node: Hashable) -> Set[Hashable]:
        """Every key node depends on, directly or through other keys."""
        return self._transitive(node, self._dependencies)

    def transitive_dependents(self, node: Hashable) -> Set[Hashable]:
        """Every key that depends on node, directly or through other keys."""
        return self._transitive(node, self._dependents)

    def depends_on(self, node: Hashable, dependency: Hashable) -> bool:
        """True if node depends on dependency, directly or transitively."""
        return dependency in self.transitive_dependencies(node)

    def topo_sort(self, keys: Optional[Iterable[Hashable]] = None) -> List[Hashable]:
        """Order keys so that every dependency comes before its dependents.

        Keys unrelated by the graph are ordered by type name, qualified type
        name and then ``repr``, so the result depends only on the graph and the
        set of keys, never on the order in which they were given. Distinct keys
        that agree on all three keep the order in which they joined the graph,
        followed by keys unknown to the graph in the order given.

        Args:
            keys: Keys to order. Defaults to every node of the graph. Keys
                unknown to the graph are treated as isolated nodes.

        Returns:
            Each key exactly once, dependencies first.
        """
        requested = list(self._nodes) if keys is None else list(dict.fromkeys(keys))
        selected = set(requested)
        universe = list(self._nodes)
        universe.extend(key for key in requested if key not in self._nodes)

        remaining = {node: len(self._dependencies.get(node, ())) for node in universe}
        rank = {node: index for index, node in enumerate(sorted(universe, key=_tie_break))}
        ready = [(rank[node], node) for node in universe if remaining[node] == 0]
        heapq.heapify(ready)

        ordered: List[Hashable] = []
        while ready:
            _, node = heapq.heappop(ready)
            ordered.append(node)
            for dependent in self._dependents.get(node, ()):
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, (rank[dependent], dependent))

        return [node for node in ordered if node in selected]

    def topo_comparator(self) -> Callable[[Hashable, Hashable], int]:
        """Return a comparison function implementing the topological order.

        Suitable for ``functools.cmp_to_key``. Nodes unknown to the graph sort
        after every known node.
        """
        position = {node: index for index, node in enumerate(self.topo_sort())}
        unknown = len(position)

        def compare(a: Hashable, b: Hashable) -> int:
            left = position.get(a, unknown)
            right = position.get(b, unknown)
            return (left > right) - (left < right)

        return compare


def dependency_graph(system: Mapping, keys: Iterable[Hashable]) -> DependencyGraph:
    """Build the dependency graph of the components found at keys in system.

    Every key becomes a node. Each declared dependency of the component at a
    key adds an edge, unless its target is outside keys.

    Args:
        system: The system holding the components.
        keys: The keys to consider.

    Returns:
        A new graph; graphs are never cached since declarations may change.

    Raises:
        CycleError: If the declarations form a cycle among keys.
    """
    selected = list(dict.fromkeys(keys))
    members = set(selected)
    graph = DependencyGraph()
    for key in selected:
        graph.add_node(key)
        component: Any = system.get(key)
        if component is None:
            continue
        for target in dependencies(component).values():
            if target in members:
                graph.depend(key, target)
    return graph
