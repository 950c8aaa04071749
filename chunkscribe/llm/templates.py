"""
chunkscribe.llm.templates - Prompt template loading and rendering.

Uses Jinja2 to load and render prompt templates from the package's
prompts/ directory, or from a directory configured to override it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template

from chunkscribe.models import GlobalSegment
from chunkscribe.utils import format_clock

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"


class PromptTemplateManager:
    """Manages loading and rendering of prompt templates."""

    def __init__(self, prompts_dir: Path | None = None) -> None:
        self.prompts_dir = prompts_dir or PROMPTS_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.prompts_dir)),
            autoescape=False,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self._cache: dict[str, Template] = {}

    def get_template(self, name: str) -> Template:
        """Load a template by name.

        Args:
            name: Template filename (e.g., "topic_segments.txt")

        Returns:
            Jinja2 Template object

        Raises:
            FileNotFoundError: If template doesn't exist
        """
        if name not in self._cache:
            template_path = self.prompts_dir / name
            if not template_path.exists():
                raise FileNotFoundError(f"Template not found: {template_path}")
            self._cache[name] = self.env.get_template(name)
        return self._cache[name]

    def render(self, template_name: str, variables: dict[str, Any]) -> str:
        """Render a template with variables."""
        template = self.get_template(template_name)
        return template.render(**variables)

    def list_templates(self) -> list[str]:
        """List available templates."""
        if not self.prompts_dir.exists():
            return []
        return sorted(f.name for f in self.prompts_dir.glob("*.txt"))


def format_transcript_for_prompt(segments: Iterable[GlobalSegment]) -> str:
    """Render timeline segments as one ``[MM:SS - MM:SS] text`` line each.

    Args:
        segments: Reconciled segments in timeline order

    Returns:
        Newline-joined transcript
    """
    return "\n".join(
        f"[{format_clock(seg.start)} - {format_clock(seg.end)}] {seg.text.strip()}" for seg in segments
    )
