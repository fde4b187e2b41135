"""
Test support helpers for careertree tests.

Constants and builders that are not fixtures but are shared by several
test modules.
"""

from __future__ import annotations

from typing import Any

OWNER = "user-a"
OTHER_OWNER = "user-b"

REQUIRED_META: dict[str, dict[str, Any]] = {
    "job": {"company": "Acme Corp", "position": "Software Engineer"},
    "education": {"institution": "State University"},
}


def meta_for(node_type: str, title: str, **extra: Any) -> dict[str, Any]:
    """Minimal valid metadata for ``node_type`` with the given title."""
    return {"title": title, **REQUIRED_META.get(node_type, {}), **extra}
