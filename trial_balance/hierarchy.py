"""
Ledger hierarchy reconstruction.

A trial balance encodes its group/sub-group structure only through
indentation.  ``build_tree`` turns the flat, level-tagged row sequence
into a forest; ``flatten_tree`` is its exact inverse (preorder).

Construction works on row indices (an arena): the ancestor array holds
the index of the latest row seen at each level, and parents are resolved
to indices before any node is wired up.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from trial_balance.logging_setup import get_logger
from trial_balance.schema import LedgerNode, LedgerRow

logger = get_logger("hierarchy")


def parent_indices(rows: Sequence[LedgerRow]) -> List[Optional[int]]:
    """Return, for each row, the index of its parent row or ``None`` for roots.

    A row at level ``L`` hangs under the latest row recorded at level
    ``L - 1``.  When the sequence skips a depth there is no such ancestor
    and the row becomes a root.
    """
    ancestors: List[Optional[int]] = []
    parents: List[Optional[int]] = []

    for idx, row in enumerate(rows):
        level = max(row.level, 0)
        del ancestors[level:]
        if len(ancestors) < level:
            ancestors.extend([None] * (level - len(ancestors)))
        ancestors.append(idx)

        parent = ancestors[level - 1] if level > 0 else None
        if level > 0 and parent is None:
            logger.debug("Row %d (%r) at level %d has no ancestor at level %d; "
                         "attached as root", row.row_no, row.ledger_name,
                         level, level - 1)
        parents.append(parent)

    return parents


def build_tree(rows: Sequence[LedgerRow]) -> List[LedgerNode]:
    """Build the ledger forest from an ordered flat row sequence."""
    nodes = [LedgerNode(row=row) for row in rows]
    roots: List[LedgerNode] = []

    for node, parent in zip(nodes, parent_indices(rows)):
        if parent is None:
            roots.append(node)
        else:
            nodes[parent].children.append(node)

    return roots


def flatten_tree(nodes: Iterable[LedgerNode]) -> List[LedgerRow]:
    """Preorder traversal: each node, then its children in order."""
    flat: List[LedgerRow] = []
    stack = list(reversed(list(nodes)))
    while stack:
        node = stack.pop()
        flat.append(node.row)
        stack.extend(reversed(node.children))
    return flat


def orphan_rows(rows: Sequence[LedgerRow]) -> List[LedgerRow]:
    """Rows with ``level > 0`` that ended up as roots (a skipped depth)."""
    return [
        row
        for row, parent in zip(rows, parent_indices(rows))
        if row.level > 0 and parent is None
    ]
