from __future__ import annotations
import os
from functools import lru_cache
from typing import Any, Dict, Sequence
from jinja2 import Environment, FileSystemLoader, select_autoescape
from .signals import DebtItem

MARKDOWN_REPORT = "DEBTBOMB.md"


@lru_cache(maxsize=1)
def _env() -> Environment:
    tmpl_dir = os.path.join(os.path.dirname(__file__), "templates")
    return Environment(
        loader=FileSystemLoader(tmpl_dir),
        autoescape=select_autoescape(),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render(name: str, **context: Any) -> str:
    return _env().get_template(name).render(**context)


def render_list(items: Sequence[DebtItem]) -> str:
    return render("list.txt.j2", items=items)


def render_check(expired: Sequence[DebtItem], warning: Sequence[DebtItem], warn_days: int) -> str:
    return render("check.txt.j2", expired=expired, warning=warning, warn_days=warn_days)


def render_report(report: Dict[str, Any]) -> str:
    return render("report.txt.j2", **report)


def render_markdown(report: Dict[str, Any], items: Sequence[DebtItem], repo_root: str) -> str:
    md = render("report.md.j2", items=items, **report)
    path = os.path.join(repo_root, MARKDOWN_REPORT)
    with open(path, "w", encoding="utf-8") as f:
        f.write(md)
    print(f"Wrote {path}")
    return path
