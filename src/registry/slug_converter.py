"""URL-safe slug conversion for Notion page titles.

This module converts page titles into the public routing keys used under
/{prefix}/{slug}. Slugs are lower-case ASCII so they survive every browser,
proxy and log pipeline unchanged.
"""

import re
import unicodedata

# Emoji and pictographs are dropped before folding: NFKD has no ASCII
# decomposition for them.
_EMOJI_PATTERN = re.compile(
    "["
    "\U0001F1E6-\U0001F1FF"  # flags
    "\U0001F300-\U0001F5FF"  # symbols & pictographs
    "\U0001F600-\U0001F64F"  # emoticons
    "\U0001F680-\U0001F6FF"  # transport & map
    "\U0001F700-\U0001F77F"
    "\U0001F780-\U0001F7FF"
    "\U0001F800-\U0001F8FF"
    "\U0001F900-\U0001F9FF"  # supplemental symbols
    "\U0001FA00-\U0001FAFF"
    "\u2600-\u26FF"  # misc symbols
    "\u2700-\u27BF"  # dingbats
    "\uFE0F"  # variation selector
    "\u200D"  # zero width joiner
    "]+"
)


class SlugConverter:
    """Converts page titles to URL-safe slugs.

    Conversion rules:
    - Emoji → removed
    - Accented letters → ASCII base letter (é → e)
    - Case → lower
    - Whitespace, underscores, slashes, dots → hyphens
    - Any other character outside [a-z0-9-] → removed
    - Consecutive hyphens → collapsed; leading/trailing hyphens → trimmed

    Examples:
        - "Getting Started" → "getting-started"
        - "🚀 Launch Plan" → "launch-plan"
        - "Café Menu: 2024" → "cafe-menu-2024"
    """

    @staticmethod
    def strip_emoji(text: str) -> str:
        return _EMOJI_PATTERN.sub('', text)

    @staticmethod
    def title_to_slug(title: str) -> str:
        """Convert a page title to a slug.

        Args:
            title: The Notion page title

        Returns:
            The slug, or an empty string when nothing URL-safe remains

        Examples:
            >>> SlugConverter.title_to_slug("Getting Started")
            'getting-started'
            >>> SlugConverter.title_to_slug("Q&A / FAQ")
            'qa-faq'
            >>> SlugConverter.title_to_slug("🎉")
            ''
        """
        if not title:
            return ''

        slug = SlugConverter.strip_emoji(title)
        slug = unicodedata.normalize('NFKD', slug).encode('ascii', 'ignore').decode('ascii')
        slug = slug.lower()
        slug = re.sub(r'[\s_/.]+', '-', slug)
        slug = re.sub(r'[^a-z0-9-]', '', slug)
        slug = re.sub(r'-{2,}', '-', slug)
        return slug.strip('-')
