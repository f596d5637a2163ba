"""
Source-to-source dependency graph.

Edges point from a file to the file it depends on (an import). The graph is
kept acyclic: an insertion that would close a cycle is rejected.
"""
import logging
from collections import deque
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from asset_forge.build.config.exceptions import DependencyCycleError

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Directed acyclic graph of file dependencies.

    Owned by the orchestrator thread; not safe for concurrent mutation.
    """

    def __init__(self):
        self._deps: Dict[Path, Set[Path]] = {}
        self._rdeps: Dict[Path, Set[Path]] = {}

    def _path_between(self, start: Path, goal: Path) -> Optional[List[Path]]:
        """BFS along dependency edges; returns the node path start..goal or None."""
        parents = {start: None}
        queue = deque([start])
        while queue:
            node = queue.popleft()
            if node == goal:
                path = []
                while node is not None:
                    path.append(node)
                    node = parents[node]
                return list(reversed(path))
            for dep in self._deps.get(node, ()):
                if dep not in parents:
                    parents[dep] = node
                    queue.append(dep)
        return None

    def add_edge(self, source: Path, dependency: Path) -> None:
        """
        Record that ``source`` depends on ``dependency``.

        Raises:
            DependencyCycleError: If the edge would close a cycle. The graph is left unchanged.
        """
        if dependency in self._deps.get(source, ()):
            return
        back = self._path_between(dependency, source)
        if back is not None:
            raise DependencyCycleError([str(source)] + [str(p) for p in back])
        self._deps.setdefault(source, set()).add(dependency)
        self._rdeps.setdefault(dependency, set()).add(source)

    def remove_edge(self, source: Path, dependency: Path) -> None:
        self._deps.get(source, set()).discard(dependency)
        self._rdeps.get(dependency, set()).discard(source)

    def replace_dependencies(self, source: Path, dependencies: Iterable[Path]) -> List[DependencyCycleError]:
        """
        Make ``dependencies`` the outgoing edges of ``source``.

        Edges that would close a cycle are rejected and logged; the rest are
        applied. Returns the rejections.
        """
        wanted = list(dict.fromkeys(dependencies))
        for old in list(self._deps.get(source, ())):
            if old not in wanted:
                self.remove_edge(source, old)

        rejected = []
        for dep in wanted:
            try:
                self.add_edge(source, dep)
            except DependencyCycleError as e:
                logger.warning(f"Ignoring dependency: {e}")
                rejected.append(e)
        return rejected

    def clear_dependencies(self, source: Path) -> None:
        """Drop the outgoing edges of a file. Incoming edges stay so dependents still see it."""
        for dep in list(self._deps.get(source, ())):
            self.remove_edge(source, dep)

    def dependencies_of(self, source: Path) -> Set[Path]:
        return set(self._deps.get(source, ()))

    def dependents_of(self, source: Path) -> Set[Path]:
        return set(self._rdeps.get(source, ()))

    def has_edge(self, source: Path, dependency: Path) -> bool:
        return dependency in self._deps.get(source, ())

    def edges(self) -> List[tuple]:
        return sorted((s, d) for s, deps in self._deps.items() for d in deps)

    def invalidate(self, source: Path) -> Set[Path]:
        """Return ``source`` plus every file that transitively depends on it."""
        affected = {source}
        queue = deque([source])
        while queue:
            node = queue.popleft()
            for dependent in self._rdeps.get(node, ()):
                if dependent not in affected:
                    affected.add(dependent)
                    queue.append(dependent)
        return affected

    def closure(self, source: Path) -> Set[Path]:
        """Every file ``source`` transitively depends on, excluding itself."""
        seen = set()
        queue = deque([source])
        while queue:
            for dep in self._deps.get(queue.popleft(), ()):
                if dep not in seen and dep != source:
                    seen.add(dep)
                    queue.append(dep)
        return seen

    def levels(self, nodes: Iterable[Path]) -> List[List[Path]]:
        """
        Split ``nodes`` into batches that can be processed in order.

        Every node's dependencies inside the set sit in an earlier batch, so the
        members of one batch are unrelated and can run concurrently.
        """
        nodes = set(nodes)
        below: Dict[Path, int] = {}

        def _below(node: Path) -> int:
            # most members of ``nodes`` on any dependency chain strictly under ``node``
            if node not in below:
                below[node] = max(
                    (_below(d) + (1 if d in nodes else 0) for d in self._deps.get(node, ())),
                    default=0,
                )
            return below[node]

        batches: Dict[int, List[Path]] = {}
        for node in nodes:
            batches.setdefault(_below(node), []).append(node)
        return [sorted(batches[level]) for level in sorted(batches)]
