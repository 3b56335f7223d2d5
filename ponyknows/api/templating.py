"""Jinja2 environment for the handful of server-rendered pages."""

from pathlib import Path

from fastapi.responses import HTMLResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ponyknows.core.config import get_settings

TEMPLATE_DIR = Path(__file__).parent / "templates"

env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
)


def render_page(template_name: str, status_code: int = 200, **context) -> HTMLResponse:
    """Render a template into an HTML response."""
    context.setdefault("app_name", get_settings().app_name)
    html = env.get_template(template_name).render(**context)
    return HTMLResponse(html, status_code=status_code)
