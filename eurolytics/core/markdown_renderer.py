"""Markdown rendering for quiz descriptions, prompts and idea texts.

Backend rows store plain text that authors sometimes format with markdown
lists or emphasis. Rendering happens on the server so the browser page only
inserts ready HTML fragments. Raw HTML in the source is escaped.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownRenderer:
    """Converts markdown text into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str | None, placeholder: str = "No content provided.") -> str:
        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return f"<p><em>{placeholder}</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str | None) -> str:
        """Render a single line without the wrapping paragraph, for option labels."""
        return self._markdown.renderInline((markdown_text or "").strip())


# MarkdownIt is safe to share for read-only renders across request threads.
renderer = MarkdownRenderer()
