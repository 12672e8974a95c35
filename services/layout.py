# File: services/layout.py
# Purpose: Wrap an HTML fragment in the page layout (Jinja2 `layout.html`).
#          Host applications point POD_LAYOUT_DIR at their own templates.
from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
LAYOUT_TEMPLATE = "layout.html"


class Layout:
    def __init__(self, template_dir: Optional[Union[str, Path]] = None, template: str = LAYOUT_TEMPLATE):
        directory = Path(template_dir) if template_dir else TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(directory)),
            autoescape=select_autoescape(["html", "xml"]),
        )
        self.template_name = template

    def apply(self, content: str, title: str = "") -> str:
        """Render the layout with ``content`` inserted unescaped."""
        template = self.env.get_template(self.template_name)
        return template.render(content=Markup(content), title=title)
