# ──────────────────────────────────────────────────────────────────────────────
# File: utils/env.py
# Purpose: Safe env readers that ignore malformed values and provide stable
#          defaults. Keep tiny and dependency-free.
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations
import os, re
from typing import List, Optional

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}
_SPLIT_RE = re.compile(r"[,%s]" % re.escape(os.pathsep))

def get_str(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    if v is None or not v.strip(): return default
    return v.strip()

def get_bool(name: str, default: bool = False) -> bool:
    v = (os.getenv(name) or "").strip().lower()
    if v in _TRUE: return True
    if v in _FALSE: return False
    return default

def get_list(name: str, default: List[str]) -> List[str]:
    """Split on commas and os.pathsep; empty items are dropped."""
    v = os.getenv(name)
    if not v: return list(default)
    return [s.strip() for s in _SPLIT_RE.split(v) if s.strip()]
