# ─────────────────────────────────────────────────────────────────────────────
# File: settings.py
# Directory: services
# Purpose: Immutable POD plugin settings, loaded once at startup from the
#          environment (and a .env file next to the project, when present).
#
# Upstream:
#   - ENV: POD_PATHS, POD_PREFIX, POD_INCLUDE_INC, POD_CODE_CLASS,
#          POD_CODE_TAG, POD_TITLE, POD_LAYOUT_DIR, POD_WARM_INDEX
#   - Imports: dotenv, pydantic, utils.env
#
# Downstream:
#   - main
#   - routes.pod
#   - services.pod_index
#
# Contents:
#   - PodSettings
#   - PodSettings.from_env()
# ─────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from services.errors import PodConfigError
from utils.env import get_bool, get_list, get_str

ENV_FILE = Path(__file__).resolve().parents[1] / ".env"

DEFAULT_PREFIX = "pod"
DEFAULT_TITLE = "Perl Module List"


class PodSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    paths: Tuple[str, ...] = Field(..., description="Search roots holding Perl modules, in priority order")
    prefix: str = Field(DEFAULT_PREFIX, description="URL prefix for every route of the plugin")
    include_inc: bool = Field(False, description="Also search Perl's @INC directories")
    code_class: Optional[str] = Field(None, description="class attribute for rendered code blocks")
    code_tag: str = Field("pre", description="Tag that replaces <pre><code> when code_class is set")
    title: str = Field(DEFAULT_TITLE, description="Heading of the namespace listing pages")
    layout_dir: Optional[str] = Field(None, description="Directory with a layout.html overriding the bundled one")
    warm_index: bool = Field(False, description="Scan the search roots at startup instead of on first request")

    @field_validator("paths")
    @classmethod
    def _require_paths(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        cleaned = tuple(p.strip() for p in v if p and p.strip())
        if not cleaned:
            raise ValueError("No config for POD")
        return cleaned

    @field_validator("prefix")
    @classmethod
    def _normalize_prefix(cls, v: str) -> str:
        v = (v or "").strip().strip("/")
        if not v:
            raise ValueError("prefix must not be empty")
        return v

    @field_validator("code_tag")
    @classmethod
    def _normalize_tag(cls, v: str) -> str:
        v = (v or "").strip()
        if not v.isalnum():
            raise ValueError(f"code_tag must be a bare tag name, got {v!r}")
        return v

    @property
    def url_prefix(self) -> str:
        """Absolute URL prefix, e.g. '/pod'."""
        return f"/{self.prefix}"

    @classmethod
    def build(cls, **values) -> "PodSettings":
        """Validate values, turning pydantic errors into PodConfigError."""
        try:
            return cls(**values)
        except ValidationError as exc:
            raise PodConfigError(_first_error(exc)) from exc

    @classmethod
    def from_env(cls, env_file: Optional[Path] = ENV_FILE) -> "PodSettings":
        """
        Read settings from the environment. A missing POD_PATHS is fatal:
        the plugin refuses to start rather than serve an empty listing.
        """
        if env_file is not None:
            load_dotenv(dotenv_path=env_file)
        values = {
            "paths": tuple(get_list("POD_PATHS", [])),
            "prefix": get_str("POD_PREFIX", DEFAULT_PREFIX),
            "include_inc": get_bool("POD_INCLUDE_INC", False),
            "code_class": get_str("POD_CODE_CLASS"),
            "code_tag": get_str("POD_CODE_TAG", "pre"),
            "title": get_str("POD_TITLE", DEFAULT_TITLE),
            "layout_dir": get_str("POD_LAYOUT_DIR"),
            "warm_index": get_bool("POD_WARM_INDEX", False),
        }
        return cls.build(**values)


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    msg = str(err.get("msg", "invalid value"))
    # pydantic prefixes ValueError messages with "Value error, "
    msg = msg.replace("Value error, ", "")
    return f"{loc}: {msg}" if loc else msg
