"""
/**
 * @file dialect_backend/models/dialect_catalog.py
 * @description 支持的九州方言目录（进程内只读）。
 */
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Dialect:
    code: str
    name: str

    def to_dict(self) -> Dict[str, str]:
        return {"code": self.code, "name": self.name}


DIALECTS: Tuple[Dialect, ...] = (
    Dialect("fukuoka", "福岡弁"),
    Dialect("kumamoto", "熊本弁"),
    Dialect("kagoshima", "鹿児島弁"),
    Dialect("oita", "大分弁"),
    Dialect("miyazaki", "宮崎弁"),
    Dialect("nagasaki", "長崎弁"),
    Dialect("saga", "佐賀弁"),
)

_BY_CODE: Dict[str, Dialect] = {d.code: d for d in DIALECTS}

# Fallback label used in prompts when a code is somehow unknown.
GENERIC_DIALECT_NAME = "九州弁"


def find_dialect(code) -> Optional[Dialect]:
    if not isinstance(code, str):
        return None
    return _BY_CODE.get(code)


def dialect_codes() -> List[str]:
    return [d.code for d in DIALECTS]


def list_dialects() -> List[Dict[str, str]]:
    return [d.to_dict() for d in DIALECTS]
