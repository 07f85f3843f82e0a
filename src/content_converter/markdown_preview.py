"""Markdown preview of synced post bodies.

The CLI `show` command renders a local record in the terminal. Post bodies
are HTML, so they go through markdownify first and rich renders the result.
"""

from markdownify import MarkdownConverter as BaseMarkdownConverter

from ..notion_api.errors import ConversionError


class _PreviewMarkdownConverter(BaseMarkdownConverter):
    """markdownify converter tuned for the HTML that BlockConverter emits."""

    def __init__(self, **options):
        options.setdefault('heading_style', 'atx')
        options.setdefault('bullets', '-')
        options.setdefault('strong_em_symbol', '*')
        super().__init__(**options)

    def convert_input(self, el, text, parent_tags):
        """Render to-do checkboxes as task-list markers."""
        if el.get('type') != 'checkbox':
            return ''
        return '[x] ' if el.has_attr('checked') else '[ ] '

    def convert_details(self, el, text, parent_tags):
        return f"\n\n{text.strip()}\n\n"

    def convert_summary(self, el, text, parent_tags):
        return f"**{text.strip()}**\n\n"


def html_to_markdown(html: str) -> str:
    """Convert a post body to Markdown.

    Raises:
        ConversionError: If markdownify fails on the input
    """
    if not html:
        return ""

    try:
        return _PreviewMarkdownConverter().convert(html).strip() + "\n"
    except Exception as e:
        raise ConversionError(f"Markdown preview failed: {e}") from e
