from __future__ import annotations

from collections import defaultdict
from collections.abc import Hashable, Iterable
from typing import TypeVar


T = TypeVar("T", bound=Hashable)

# An edge (dependent, blocking) reads "dependent waits on blocking".
Edge = tuple[T, T]


def would_create_cycle(edges: Iterable[Edge], dependent: T, blocking: T) -> bool:
    """True if adding dependent -> blocking closes a loop, i.e. blocking already waits on dependent."""
    if dependent == blocking:
        return True
    waits_on: dict[T, list[T]] = defaultdict(list)
    for d, b in edges:
        waits_on[d].append(b)

    stack = [blocking]
    seen = {blocking}
    while stack:
        node = stack.pop()
        for nxt in waits_on.get(node, ()):
            if nxt == dependent:
                return True
            if nxt not in seen:
                seen.add(nxt)
                stack.append(nxt)
    return False


def longest_chain(nodes: list[T], edges: Iterable[Edge]) -> list[T]:
    """
    Longest blocking -> dependent chain, starting from a node that waits on nothing.

    Ties keep the chain found first in `nodes` order. Cycles are not followed.
    """
    node_set = set(nodes)
    unblocks: dict[T, list[T]] = defaultdict(list)
    has_blocker: set[T] = set()
    for d, b in edges:
        if d in node_set and b in node_set:
            unblocks[b].append(d)
            has_blocker.add(d)

    memo: dict[T, list[T]] = {}

    def walk(node: T, path: frozenset[T]) -> list[T]:
        if node in memo:
            return memo[node]
        best: list[T] = []
        for nxt in unblocks.get(node, ()):
            if nxt in path:
                continue
            sub = walk(nxt, path | {nxt})
            if len(sub) > len(best):
                best = sub
        memo[node] = [node, *best]
        return memo[node]

    longest: list[T] = []
    for node in nodes:
        if node in has_blocker:
            continue
        chain = walk(node, frozenset({node}))
        if len(chain) > len(longest):
            longest = chain
    return longest
