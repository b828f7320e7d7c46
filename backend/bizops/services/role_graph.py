# Overview: Role inheritance graph; validates the DAG and memoizes role closures.

from __future__ import annotations

from typing import Iterable, Mapping

from ..errors import ConfigurationError


def find_cycle(parents: Mapping[int, Iterable[int]]) -> list[int] | None:
    """
    Return one parent cycle as a list of role ids (first id repeated at the end),
    or None when the graph is acyclic.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    color = {node: WHITE for node in parents}

    for start in parents:
        if color[start] != WHITE:
            continue
        # Iterative DFS: (node, iterator over its parents)
        path = [start]
        stack = [(start, iter(parents.get(start, ())))]
        color[start] = GREY
        while stack:
            node, it = stack[-1]
            advanced = False
            for parent in it:
                if parent not in color:
                    # Edge to a role outside the graph; nothing to walk.
                    continue
                state = color[parent]
                if state == GREY:
                    return path[path.index(parent):] + [parent]
                if state == WHITE:
                    color[parent] = GREY
                    path.append(parent)
                    stack.append((parent, iter(parents.get(parent, ()))))
                    advanced = True
                    break
            if not advanced:
                color[node] = BLACK
                path.pop()
                stack.pop()
    return None


class RoleGraph:
    """
    Immutable snapshot of the role -> parents relation.

    Construction rejects cycles with ConfigurationError. Closures are memoized
    for the lifetime of the snapshot; a changed graph means a new snapshot
    (with a new version), which is how the memo gets invalidated.
    """

    def __init__(self, parents: Mapping[int, Iterable[int]], version: int = 0):
        known = set(parents)
        # Edges to roles outside the snapshot (inactive or missing) are dropped.
        self._parents: dict[int, frozenset[int]] = {
            role_id: frozenset(p for p in role_parents if p in known)
            for role_id, role_parents in parents.items()
        }
        self.version = version
        self._ancestors_memo: dict[int, frozenset[int]] = {}

        cycle = find_cycle(self._parents)
        if cycle:
            chain = " -> ".join(str(role_id) for role_id in cycle)
            raise ConfigurationError(f"Role inheritance cycle detected: {chain}")

    def __contains__(self, role_id: int) -> bool:
        return role_id in self._parents

    def __len__(self) -> int:
        return len(self._parents)

    def parents_of(self, role_id: int) -> frozenset[int]:
        return self._parents.get(role_id, frozenset())

    def ancestors(self, role_id: int) -> frozenset[int]:
        """All roles role_id inherits from, excluding itself."""
        memo = self._ancestors_memo.get(role_id)
        if memo is not None:
            return memo

        seen: set[int] = set()
        pending = list(self.parents_of(role_id))
        while pending:
            parent = pending.pop()
            if parent in seen:
                continue
            seen.add(parent)
            pending.extend(self.parents_of(parent))

        result = frozenset(seen)
        self._ancestors_memo[role_id] = result
        return result

    def closure(self, role_ids: Iterable[int]) -> frozenset[int]:
        """Directly held roles plus all of their ancestors. Unknown ids are ignored."""
        result: set[int] = set()
        for role_id in role_ids:
            if role_id not in self._parents:
                continue
            result.add(role_id)
            result.update(self.ancestors(role_id))
        return frozenset(result)
