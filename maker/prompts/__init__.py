"""Prompt template loader for the MAKER pipeline.

Loads Markdown prompt templates from the prompts/ directory and renders
them with Jinja2 variable substitution. Caller-supplied templates (custom
decomposition or synthesis prompts) go through the same environment so
``{{question}}``-style placeholders behave identically.
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import BaseLoader, Environment, Template, TemplateSyntaxError

# Directory containing the .md prompt template files
_PROMPTS_DIR = Path(__file__).parent

# Default Undefined renders as empty string, so {% if optional_var %}
# blocks are skipped when a variable is not provided
_ENV = Environment(loader=BaseLoader(), keep_trailing_newline=False)


def compile_template(template_text: str) -> Template:
    """Compile a template string.

    Raises:
        ValueError: If the template has a Jinja2 syntax error.
    """
    try:
        return _ENV.from_string(template_text)
    except TemplateSyntaxError as e:
        raise ValueError(
            f"Invalid prompt template (line {e.lineno}): {e.message}"
        ) from e


def render_template(template_text: str, **variables: object) -> str:
    """Render an in-memory template string with Jinja2 variables."""
    return compile_template(template_text).render(**variables).strip()


def render_prompt(template_name: str, **variables: object) -> str:
    """Load a prompt template and render it with Jinja2 variables.

    Args:
        template_name: Name of the template file (without .md extension).
        **variables: Template variables to inject (question, context,
                     sub_results, language, etc.).

    Returns:
        The fully rendered prompt string.

    Raises:
        FileNotFoundError: If the template file does not exist.
    """
    path = _PROMPTS_DIR / f"{template_name}.md"
    if not path.exists():
        raise FileNotFoundError(f"Prompt template not found: {path}")

    return render_template(path.read_text(encoding="utf-8"), **variables)
