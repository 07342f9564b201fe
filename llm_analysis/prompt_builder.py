"""Prompt builder for product analysis.

The prompt text lives in an external template asset so it can be edited
without touching code; only the content placeholder is substituted.
"""

from pathlib import Path
from typing import Optional

PRODUCT_CONTENT_PLACEHOLDER = "{{ PRODUCT_CONTENT }}"
DEFAULT_TEMPLATE_PATH = Path(__file__).resolve().parent / "prompts" / "analysis_prompt.md"
DEFAULT_MAX_CONTENT_CHARS = 100_000


def truncate_content(content: str, max_chars: int) -> str:
    """Cut ``content`` to at most ``max_chars`` characters."""
    if len(content) <= max_chars:
        return content
    return content[:max_chars]


class AnalysisPromptBuilder:
    """Builds the analysis prompt from the template asset.

    Args:
        template_path: Path to the template file. Defaults to the bundled
            ``prompts/analysis_prompt.md``.
        template: Template text; takes precedence over ``template_path``.
        max_content_chars: Upper bound on substituted content length.

    Raises:
        ValueError: If the template has no content placeholder.
    """

    def __init__(
        self,
        template_path: Optional[str] = None,
        template: Optional[str] = None,
        max_content_chars: int = DEFAULT_MAX_CONTENT_CHARS,
    ) -> None:
        if template is None:
            path = Path(template_path) if template_path else DEFAULT_TEMPLATE_PATH
            template = path.read_text(encoding="utf-8")
        if PRODUCT_CONTENT_PLACEHOLDER not in template:
            raise ValueError(
                f"Prompt template must contain the {PRODUCT_CONTENT_PLACEHOLDER} placeholder."
            )
        self._template = template
        self._max_content_chars = max(1, max_content_chars)

    @property
    def template(self) -> str:
        return self._template

    def build_prompt(self, content: str) -> str:
        truncated = truncate_content(content or "", self._max_content_chars)
        return self._template.replace(PRODUCT_CONTENT_PLACEHOLDER, truncated, 1)
