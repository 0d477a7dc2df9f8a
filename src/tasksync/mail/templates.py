"""Jinja2 rendering for transactional emails.

Templates live next to this module in templates/<name>.html and extend
base.html. The worker renders at send time, so an email request only
stores the template name and its data.
"""

from pathlib import Path
from typing import Any, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

TEMPLATES_DIR = Path(__file__).parent / "templates"


class EmailTemplateRenderer:
    def __init__(self, logo_url: str = "", templates_dir: Optional[Path] = None):
        self.logo_url = logo_url
        self._env = Environment(
            loader=FileSystemLoader(str(templates_dir or TEMPLATES_DIR)),
            autoescape=select_autoescape(["html"]),
            undefined=StrictUndefined,
        )

    def render(self, template_name: str, data: dict[str, Any]) -> str:
        """Render templates/<template_name>.html with the request data."""
        template = self._env.get_template(f"{template_name}.html")
        return template.render(logo_url=self.logo_url, **data)
