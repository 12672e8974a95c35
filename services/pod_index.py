# ──────────────────────────────────────────────────────────────────────────────
# File: pod_index.py
# Directory: services/
# Purpose : Discover documentable Perl files and cache the module index
#           • Walk configured search roots (optionally Perl's @INC)
#           • Map logical names ("Foo/Bar") to source file paths
#           • Build once per process, guarded for concurrent first requests
#
# Upstream:
#   - ENV: — (see services.settings)
#   - Imports: pathlib, re, subprocess, threading, core.logging
#
# Downstream:
#   - routes.pod
#   - routes.health
#
# Contents:
#   - ModuleIndex
#   - survey()
#   - logical_name()
#   - perl_inc()
#   - contains_pod()
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import logging
import os
import re
import subprocess
import threading
import time
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from core.logging import log_event
from services.errors import PodConfigError

logger = logging.getLogger("podview.index")

# ─── Constants ────────────────────────────────────────────────────────────
MODULE_EXTS: Tuple[str, ...] = (".pm",)
SCRIPT_EXTS: Tuple[str, ...] = (".pl",)
DOCUMENT_EXTS: Tuple[str, ...] = (".pod",)
POD_EXTS: Tuple[str, ...] = MODULE_EXTS + SCRIPT_EXTS + DOCUMENT_EXTS

SKIP_DIRS = frozenset({"CVS", "RCS", "SCCS", "_darcs"})

_VERSION_RE = re.compile(r"^\d+\.\d+(?:[_.]?\d+)?$")
_ARCH_RE = re.compile(
    r"^[a-z0-9_]+-(?:linux|darwin|freebsd|openbsd|netbsd|solaris|cygwin|msys|mswin32|gnukfreebsd)[\w.-]*$",
    re.IGNORECASE,
)
_POD_LINE_RE = re.compile(rb"^=[a-zA-Z]", re.MULTILINE)

_PERL_INC_SCRIPT = 'print join("\\n", grep { !ref } @INC)'
_PERL_ARCH_SCRIPT = 'use Config; print $Config{archname}'


# ─── File predicates ──────────────────────────────────────────────────────

def is_module(name: str) -> bool:
    return name.endswith(MODULE_EXTS)


def is_script(name: str) -> bool:
    return name.endswith(SCRIPT_EXTS)


def is_document(name: str) -> bool:
    return name.endswith(DOCUMENT_EXTS)


def strip_pod_ext(name: str) -> str:
    """Remove a trailing .pm/.pl/.pod extension, if any."""
    for ext in POD_EXTS:
        if name.endswith(ext):
            return name[: -len(ext)]
    return name


def contains_pod(path: Path) -> bool:
    """True when the file has at least one POD command line."""
    with path.open("rb") as fh:
        return _POD_LINE_RE.search(fh.read()) is not None


# ─── Perl introspection (optional) ────────────────────────────────────────

def _run_perl(script: str) -> Optional[str]:
    try:
        proc = subprocess.run(
            ["perl", "-e", script],
            capture_output=True,
            text=True,
            check=True,
            timeout=10,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("perl unavailable (%s); @INC will not be searched", e)
        log_event("pod_inc_unavailable", {"error": str(e)})
        return None
    return proc.stdout


def perl_inc() -> List[str]:
    """Return Perl's @INC directories, or [] when perl cannot be run."""
    out = _run_perl(_PERL_INC_SCRIPT)
    if not out:
        return []
    return [line.strip() for line in out.splitlines() if line.strip() and line.strip() != "."]


def perl_archname() -> Optional[str]:
    out = _run_perl(_PERL_ARCH_SCRIPT)
    return out.strip() if out and out.strip() else None


# ─── Logical names ────────────────────────────────────────────────────────

def _is_naughty(segment: str, archname: Optional[str]) -> bool:
    low = segment.lower()
    if low == "site_perl":
        return True
    if _VERSION_RE.match(segment):
        return True
    if archname and low == archname.lower():
        return True
    return bool(_ARCH_RE.match(segment))


def logical_name(rel_parts: Sequence[str], archname: Optional[str] = None) -> str:
    """
    Turn a path relative to its search root into a logical module name.

    Leading site_perl, version and architecture segments are shaved off;
    a lone 'pod' directory holding a .pod file collapses away, so
    ``pod/perlfunc.pod`` becomes ``perlfunc``.
    """
    *dirs, filename = rel_parts
    dirs = list(dirs)
    while dirs:
        head = dirs[0]
        if _is_naughty(head, archname):
            dirs.pop(0)
        elif head.lower() == "pod" and len(dirs) == 1 and is_document(filename):
            dirs.pop(0)
        else:
            break
    return "/".join(dirs + [strip_pod_ext(filename)])


# ─── Discovery ────────────────────────────────────────────────────────────

def _walk(root: Path) -> Iterable[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith(".") and d not in SKIP_DIRS)
        for name in sorted(filenames):
            if name.startswith(".") or not name.endswith(POD_EXTS):
                continue
            yield Path(dirpath) / name


def survey(roots: Sequence[str], archname: Optional[str] = None) -> Dict[str, str]:
    """
    Scan roots in order and return {logical name: file path}.

    The first root that yields a name keeps it; inside a single root a
    .pod file replaces a .pm/.pl of the same name. Names starting with a
    digit are dropped, as are .pm/.pl files without any POD.
    """
    found: Dict[str, str] = {}
    for raw in roots:
        root = Path(raw)
        if not root.is_dir():
            logger.debug("skipping search root %s (not a directory)", root)
            continue
        local: Dict[str, str] = {}
        for path in _walk(root):
            rel = path.relative_to(root).parts
            name = logical_name(rel, archname)
            if not name or name[0].isdigit():
                continue
            if name in found:
                continue
            current = local.get(name)
            if current is not None and (is_document(current) or not is_document(path.name)):
                continue
            if not is_document(path.name) and not contains_pod(path):
                continue
            local[name] = str(path)
        found.update(local)
    return found


class ModuleIndex:
    """
    Process-wide module index.

    The scan runs at most once; concurrent first callers block on the lock
    and then see the published mapping.
    """

    def __init__(self, paths: Sequence[str], include_inc: bool = False):
        if not paths:
            raise PodConfigError("No config for POD")
        self.paths: Tuple[str, ...] = tuple(paths)
        self.include_inc = include_inc
        self._modules: Optional[Mapping[str, str]] = None
        self._lock = threading.Lock()
        self.built_at: Optional[float] = None

    @classmethod
    def from_settings(cls, settings) -> "ModuleIndex":
        return cls(settings.paths, include_inc=settings.include_inc)

    @property
    def is_built(self) -> bool:
        return self._modules is not None

    def search_roots(self) -> List[str]:
        roots = list(self.paths)
        if self.include_inc:
            roots.extend(p for p in perl_inc() if p not in roots)
        return roots

    def discover(self) -> Mapping[str, str]:
        """Return the cached {logical name: path} mapping, scanning on first use."""
        modules = self._modules
        if modules is not None:
            return modules
        with self._lock:
            if self._modules is None:
                self._modules = self._build()
            return self._modules

    def _build(self) -> Mapping[str, str]:
        t0 = time.perf_counter()
        roots = self.search_roots()
        archname = perl_archname() if self.include_inc else None
        modules = survey(roots, archname)
        self.built_at = time.time()
        log_event("pod_index_built", {
            "roots": roots,
            "modules": len(modules),
            "took_ms": int((time.perf_counter() - t0) * 1000),
        })
        return MappingProxyType(modules)

    def resolve(self, name: str) -> Optional[str]:
        return self.discover().get(name)

    def __len__(self) -> int:
        return len(self.discover())

    def __contains__(self, name: object) -> bool:
        return name in self.discover()
