"""
Unit tests for building and flattening the ledger forest.
"""

from __future__ import annotations

import random
from typing import List

from trial_balance.hierarchy import build_tree, flatten_tree, orphan_rows, parent_indices
from trial_balance.schema import LedgerRow

from conftest import ledger


def names(rows: List[LedgerRow]) -> List[str]:
    return [r.ledger_name for r in rows]


class TestBuildTree:
    def test_nesting_follows_levels(self) -> None:
        rows = [
            ledger("Current Assets", 0, 1),
            ledger("Cash-in-Hand", 1, 2),
            ledger("Bank Accounts", 1, 3),
            ledger("HDFC Bank", 2, 4),
            ledger("Capital Account", 0, 5),
        ]
        roots = build_tree(rows)

        assert [n.row.ledger_name for n in roots] == ["Current Assets", "Capital Account"]
        assets = roots[0]
        assert [c.row.ledger_name for c in assets.children] == [
            "Cash-in-Hand", "Bank Accounts",
        ]
        assert assets.children[1].children[0].row.ledger_name == "HDFC Bank"
        assert roots[1].is_leaf

    def test_nodes_share_row_objects(self) -> None:
        rows = [ledger("A", 0, 1), ledger("B", 1, 2)]
        roots = build_tree(rows)
        assert roots[0].row is rows[0]
        assert roots[0].children[0].row is rows[1]

    def test_leaf_has_no_children_key(self) -> None:
        roots = build_tree([ledger("A", 0, 1), ledger("B", 1, 2)])
        data = roots[0].to_dict()
        assert "children" in data
        assert "children" not in data["children"][0]

    def test_empty(self) -> None:
        assert build_tree([]) == []
        assert flatten_tree([]) == []

    def test_first_row_indented_becomes_root(self) -> None:
        rows = [ledger("Orphan", 2, 1), ledger("Top", 0, 2)]
        roots = build_tree(rows)
        assert [n.row.ledger_name for n in roots] == ["Orphan", "Top"]
        assert orphan_rows(rows) == [rows[0]]

    def test_skipped_depth_becomes_root(self) -> None:
        rows = [ledger("A", 0, 1), ledger("B", 2, 2)]
        assert parent_indices(rows) == [None, None]
        assert [n.row.ledger_name for n in build_tree(rows)] == ["A", "B"]

    def test_skipped_depth_later_sibling_reorders_preorder(self) -> None:
        rows = [ledger("A", 0, 1), ledger("B", 2, 2), ledger("C", 1, 3)]
        roots = build_tree(rows)

        assert [n.row.ledger_name for n in roots] == ["A", "B"]
        assert [c.row.ledger_name for c in roots[0].children] == ["C"]
        assert names(flatten_tree(roots)) == ["A", "C", "B"]

    def test_deeper_level_resets_on_shallower_row(self) -> None:
        rows = [
            ledger("A", 0, 1),
            ledger("A1", 1, 2),
            ledger("A1a", 2, 3),
            ledger("B", 0, 4),
            ledger("B?", 2, 5),
        ]
        # "B?" must not attach to the stale level-1 ancestor under "A"
        assert parent_indices(rows) == [None, 0, 1, None, None]


class TestFlattenTree:
    def test_preorder(self) -> None:
        rows = [
            ledger("A", 0, 1),
            ledger("A1", 1, 2),
            ledger("A1a", 2, 3),
            ledger("A2", 1, 4),
            ledger("B", 0, 5),
        ]
        assert flatten_tree(build_tree(rows)) == rows

    def test_returns_same_objects(self) -> None:
        rows = [ledger("A", 0, 1), ledger("B", 1, 2)]
        flat = flatten_tree(build_tree(rows))
        assert all(a is b for a, b in zip(flat, rows))

    def test_well_formed_sequences_round_trip(self) -> None:
        rng = random.Random(20240401)
        for _ in range(200):
            rows: List[LedgerRow] = []
            level = 0
            for i in range(rng.randint(1, 30)):
                level = rng.randint(0, level + 1) if rows else 0
                rows.append(ledger(f"L{i}", level, i + 1))
            assert orphan_rows(rows) == []
            assert flatten_tree(build_tree(rows)) == rows

    def test_deep_chain(self) -> None:
        rows = [ledger(f"L{i}", i, i + 1) for i in range(2000)]
        assert flatten_tree(build_tree(rows)) == rows
