"""Markdown rendering for challenge text served to the arena page.

Architecture note:
    Questions and explanations from the content provider are plain markdown
    and may include inline code such as `printf`. They are rendered to HTML
    fragments on the server so the page only has to drop them in place. Raw
    HTML in provider text is escaped rather than passed through.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import html

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownRenderer:
    """Converts markdown into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML fragment."""

        sanitized = markdown_text.strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    @staticmethod
    def render_code(code: str) -> str:
        """Wrap a code snippet in an escaped <pre><code> block."""

        return f'<pre><code class="language-c">{html.escape(code)}</code></pre>'


renderer = MarkdownRenderer()
