"""Jinja2 template engine for HTML responses.

Provides a module-level ``templates`` instance so the redirect middleware
can render the script-redirect page without reaching through app state.
"""

from pathlib import Path

from fastapi.templating import Jinja2Templates

_templates_dir = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(_templates_dir))
