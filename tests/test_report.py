from __future__ import annotations

from datetime import date

from debtbomb.renderer import render_check, render_list, render_markdown, render_report
from debtbomb.report import generate, to_json

from conftest import make_item

TODAY = date(2025, 1, 1)


def _items():
    return [
        make_item("a", date(2024, 6, 1), is_expired=True, file="api/a.go", owner="alice", reason="hack"),
        make_item("b", date(2025, 1, 10), file="api/b.go", owner="alice"),
        make_item("c", date(2025, 3, 1), file="main.go", reason="hack"),
        make_item("d", date(2026, 1, 1), file="web/d.ts", owner="bob", reason="perf"),
    ]


def test_generate_counts() -> None:
    rep = generate(_items(), TODAY)
    assert rep["total_count"] == 4
    assert rep["by_owner"] == [
        {"key": "alice", "count": 2},
        {"key": "(no owner)", "count": 1},
        {"key": "bob", "count": 1},
    ]
    assert rep["by_folder"][0] == {"key": "api", "count": 2}
    assert {"key": "(root)", "count": 1} in rep["by_folder"]
    assert rep["by_reason"][0] == {"key": "hack", "count": 2}
    assert rep["by_urgency"] == {
        "expired": 1,
        "within_30_days": 1,
        "within_90_days": 2,
        "more_than_90_days": 1,
    }
    assert rep["oldest"].id == "a"
    assert rep["newest"].id == "d"


def test_generate_empty() -> None:
    rep = generate([], TODAY)
    assert rep["total_count"] == 0
    assert rep["oldest"] is None
    assert to_json(rep)["newest"] is None


def test_to_json_serialises_items() -> None:
    out = to_json(generate(_items(), TODAY))
    assert out["oldest"]["expire"] == "2024-06-01"
    assert out["oldest"]["isExpired"] is True


def test_text_renderers() -> None:
    items = _items()
    listing = render_list(items)
    assert "api/a.go:1  [EXPIRED] 2024-06-01" in listing
    assert "Owner: bob" in listing
    assert "No DebtBombs" in render_list([])

    check = render_check(items[:1], items[1:2], 14)
    assert "1 DebtBomb exploded" in check
    assert "expiring within 14 days" in check

    text = render_report(generate(items, TODAY))
    assert "Total: 4" in text
    assert "Oldest: api/a.go:1 (2024-06-01)" in text


def test_markdown_written(tmp_path, capsys) -> None:
    items = _items()
    path = render_markdown(generate(items, TODAY), items, str(tmp_path))
    md = (tmp_path / "DEBTBOMB.md").read_text(encoding="utf-8")
    assert path.endswith("DEBTBOMB.md")
    assert md.startswith("# DebtBomb Report")
    assert "| `web/d.ts:1` | 2026-01-01 | active | bob | perf |" in md
    assert "Wrote" in capsys.readouterr().out
