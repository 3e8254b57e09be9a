"""
Prompt loading and formatting utilities.

Prompt templates are markdown files under dsd/prompts/<category>/<name>.md and
use simple {placeholder} substitution.
"""

from pathlib import Path

# Bundled with the package (see package-data in pyproject.toml)
PROMPTS_DIR = Path(__file__).parent.parent / "prompts"


def load_prompt(name: str, category: str) -> str:
    """
    Load a prompt template from a markdown file.

    Args:
        name: The template name (e.g., "dsd_analysis")
        category: The prompt category (e.g., "analysis", "simulation")

    Returns:
        The prompt template as a string

    Raises:
        FileNotFoundError: If the prompt file doesn't exist
    """
    prompt_path = PROMPTS_DIR / category / f"{name}.md"

    if not prompt_path.exists():
        raise FileNotFoundError(
            f"Prompt file not found: {prompt_path}. "
            f"Expected prompt '{name}' in category '{category}'."
        )

    return prompt_path.read_text(encoding="utf-8")


def format_prompt(template: str, **kwargs) -> str:
    """
    Format a prompt template with variable substitution.

    Uses simple {variable} replacement syntax, so literal braces elsewhere in
    the template (JSON examples) are left alone.

    Args:
        template: The prompt template string
        **kwargs: Variables to substitute

    Returns:
        The formatted prompt string
    """
    result = template
    for key, value in kwargs.items():
        placeholder = "{" + key + "}"
        result = result.replace(placeholder, str(value))
    return result


def render_prompt(name: str, category: str, **kwargs) -> str:
    """Load a template and substitute its placeholders."""
    return format_prompt(load_prompt(name, category), **kwargs).strip()
