"""Canonical forms for Notion identifiers.

The same Notion id shows up as "59833787-2cf9-4fdf-8782-e53db20768a5" from
the API, as "598337872cf94fdf8782e53db20768a5" in share URLs and in stored
metadata, and in whatever case a user pasted it. Every lookup goes through
IdentityNormalizer so those spellings resolve to the same record.
"""

from typing import List, Optional, Tuple

COMPACT_LENGTH = 32
# 8-4-4-4-12
_GROUPS = (8, 4, 4, 4, 12)


class IdentityNormalizer:
    """Converts a remote id into its compact and delimited forms.

    Rules:
    - Surrounding whitespace and '-' separators are removed
    - 32-character ids are lower-cased and regrouped as 8-4-4-4-12
    - Shorter ids (test fixtures, hand-typed keys) are returned stripped but
      otherwise unchanged in both outputs
    - Longer ids are returned compact in both outputs

    Never raises.

    Examples:
        >>> IdentityNormalizer.normalize("59833787-2CF9-4fdf-8782-e53db20768a5")
        ('598337872cf94fdf8782e53db20768a5', '59833787-2cf9-4fdf-8782-e53db20768a5')
        >>> IdentityNormalizer.normalize("abc123")
        ('abc123', 'abc123')
    """

    @staticmethod
    def normalize(remote_id: Optional[str]) -> Tuple[str, str]:
        """Return (compact, delimited) for any spelling of a remote id."""
        if not remote_id:
            return "", ""

        value = str(remote_id).strip()
        stripped = value.replace('-', '')

        if len(stripped) < COMPACT_LENGTH:
            return value, value

        compact = stripped.lower()
        if len(compact) != COMPACT_LENGTH:
            return compact, compact

        parts = []
        start = 0
        for size in _GROUPS:
            parts.append(compact[start:start + size])
            start += size
        return compact, '-'.join(parts)

    @staticmethod
    def compact(remote_id: Optional[str]) -> str:
        return IdentityNormalizer.normalize(remote_id)[0]

    @staticmethod
    def delimited(remote_id: Optional[str]) -> str:
        return IdentityNormalizer.normalize(remote_id)[1]

    @staticmethod
    def candidates(remote_id: Optional[str]) -> List[str]:
        """Distinct spellings to try when matching stored values.

        Includes the raw (stripped) input so rows written before
        normalization are still found.
        """
        compact, delimited = IdentityNormalizer.normalize(remote_id)
        if not compact:
            return []
        forms = [compact, delimited, str(remote_id).strip()]
        return list(dict.fromkeys(forms))

    @staticmethod
    def same_id(left: Optional[str], right: Optional[str]) -> bool:
        """True when two spellings refer to the same remote id."""
        if not left or not right:
            return False
        return IdentityNormalizer.compact(left).lower() == IdentityNormalizer.compact(right).lower()
