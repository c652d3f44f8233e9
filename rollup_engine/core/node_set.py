import logging
import math
from collections import defaultdict, deque
from typing import Iterable, Optional

import polars as pl

from rollup_engine.common.errors import (
    CycleError,
    DanglingParentError,
    DuplicateIdError,
    IncompleteLeafError,
    NodeNotFoundError,
    RootError,
)
from rollup_engine.common.node import Node


class NodeSet:
    def __init__(self, nodes: Iterable[Node] = (), allow_zero_cost_leaves: bool = False, logger=None):
        """
        Nodes keyed by id plus a parent -> child ids index.
        Both keep insertion order, so children_of() is deterministic.
        """
        self.allow_zero_cost_leaves = allow_zero_cost_leaves
        self.logger = logger or logging.getLogger(__name__)

        self._nodes: dict[int, Node] = {}
        self.parent_index: dict[int, list[int]] = defaultdict(list)

        for node in nodes:
            self.add(node)

    def add(self, node: Node) -> None:
        if node.id in self._nodes:
            raise DuplicateIdError(node.id)
        self._nodes[node.id] = node
        if node.parent is not None:
            self.parent_index[node.parent].append(node.id)

    def __len__(self):
        return len(self._nodes)

    def __iter__(self):
        return iter(self._nodes.values())

    def __contains__(self, node_id):
        return node_id in self._nodes

    # ---------------- LOOKUPS ----------------
    def find(self, node_id: int) -> Optional[Node]:
        return self._nodes.get(node_id)

    def children_of(self, parent_id: int) -> list[Node]:
        return [self._nodes[c] for c in self.parent_index.get(parent_id, [])]

    def unit_cost_of(self, node_id: int) -> Optional[float]:
        node = self._nodes.get(node_id)
        return node.unit_cost if node else None

    # ---------------- VALIDATION ----------------
    def validate(self, root_id: int) -> None:
        """
        Checks the set forms a single tree under root_id:
        - root exists and has no parent, no other parentless node
        - every parent reference resolves
        - no parent chain loops back on itself
        """
        root = self._nodes.get(root_id)
        if root is None:
            raise RootError(f"Root node {root_id} not found")
        if root.parent is not None:
            raise RootError(f"Root node {root_id} has parent {root.parent}")

        extra_roots = [n.id for n in self._nodes.values() if n.parent is None and n.id != root_id]
        if extra_roots:
            raise RootError(
                f"Nodes without parent besides root {root_id}: {extra_roots}"
            )

        for node in self._nodes.values():
            if node.parent is not None and node.parent not in self._nodes:
                raise DanglingParentError(node.id, node.parent)

        # Walk each parent chain once; a chain that reaches a node already on
        # the current path is a cycle, one that reaches a settled node is fine.
        settled = {root_id}
        for start_id in self._nodes:
            path = []
            on_path = set()
            current = start_id
            while current not in settled:
                if current in on_path:
                    raise CycleError(path[path.index(current):])
                path.append(current)
                on_path.add(current)
                current = self._nodes[current].parent
            settled.update(path)

        for node in self._nodes.values():
            if node.unit_cost is not None and self.parent_index.get(node.id):
                self.logger.warning(
                    "Node %d has an explicit unit cost and %d children; children are not aggregated",
                    node.id, len(self.parent_index[node.id])
                )

        self.logger.debug("NodeSet validated: %d nodes under root %d", len(self._nodes), root_id)

    # ---------------- ROLLUP ----------------
    def compute_cost(self, node_id: int) -> float:
        """
        Fills unit_cost/total_cost of node_id and every uncomputed descendant,
        children first. Nodes that already carry a unit cost are not revisited.
        Iterative post-order so deep trees do not hit the recursion limit.
        """
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        if node.unit_cost is not None:
            return node.unit_cost

        stack = [(node_id, iter(self.parent_index.get(node_id, [])))]
        in_progress = {node_id}

        while stack:
            current_id, pending = stack[-1]
            for child_id in pending:
                if self._nodes[child_id].unit_cost is not None:
                    continue
                if child_id in in_progress:
                    path = [nid for nid, _ in stack]
                    raise CycleError(path[path.index(child_id):])
                in_progress.add(child_id)
                stack.append((child_id, iter(self.parent_index.get(child_id, []))))
                break
            else:
                stack.pop()
                in_progress.discard(current_id)
                self._aggregate(current_id)

        return node.unit_cost

    def _aggregate(self, node_id: int) -> None:
        node = self._nodes[node_id]
        child_ids = self.parent_index.get(node_id, [])

        if not child_ids:
            if not self.allow_zero_cost_leaves:
                raise IncompleteLeafError(node_id)
            self.logger.warning("Node %d has no children and no unit cost; using 0", node_id)

        unit_cost = math.fsum(
            self._nodes[c].unit_cost * self._nodes[c].count for c in child_ids
        )
        node.set_cost(unit_cost)
        self.logger.debug(
            "Node %d rolled up from %d children | Unit Cost=%s | Total Cost=%s",
            node_id, len(child_ids), node.unit_cost, node.total_cost
        )

    def rollup(self, root_id: int) -> Node:
        self.validate(root_id)
        self.compute_cost(root_id)
        return self._nodes[root_id]

    # ---------------- EXPORT ----------------
    def levels(self, root_id: int) -> dict[int, int]:
        """Breadth-first depth of every node reachable from root_id (root = 0)."""
        if root_id not in self._nodes:
            raise NodeNotFoundError(root_id)

        levels = {root_id: 0}
        queue = deque([root_id])
        while queue:
            current = queue.popleft()
            for child_id in self.parent_index.get(current, []):
                if child_id in levels:
                    continue
                levels[child_id] = levels[current] + 1
                queue.append(child_id)
        return levels

    def to_frame(self, root_id: Optional[int] = None) -> pl.DataFrame:
        levels = self.levels(root_id) if root_id is not None else {}
        nodes = list(self._nodes.values())
        return pl.DataFrame({
            "id": pl.Series([n.id for n in nodes], dtype=pl.Int64),
            "parent": pl.Series([n.parent for n in nodes], dtype=pl.Int64),
            "level": pl.Series([levels.get(n.id) for n in nodes], dtype=pl.Int64),
            "name": pl.Series([n.name for n in nodes], dtype=pl.Utf8),
            "unit_cost": pl.Series([n.unit_cost for n in nodes], dtype=pl.Float64),
            "count": pl.Series([n.count for n in nodes], dtype=pl.Float64),
            "total_cost": pl.Series([n.total_cost for n in nodes], dtype=pl.Float64),
        })
