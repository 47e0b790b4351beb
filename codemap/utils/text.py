from __future__ import annotations


def slugify_kebab(
    text: str,
    *,
    fallback: str = "codemap",
    max_length: int | None = None,
    ascii_only: bool = False,
) -> str:
    """Convert text into a lowercase dash-separated slug.

    Normalization:
    - Lowercases input.
    - Replaces any sequence of non-alphanumerics with a single dash.
    - Trims leading/trailing dashes.
    - Uses `fallback` when the slug would be empty.

    Args:
        text: Input text to normalize.
        fallback: Slug to use when the normalized result is empty.
        max_length: Optional maximum slug length.
        ascii_only: When True, only ASCII letters/digits are preserved.

    Returns:
        A filesystem-friendly slug string.
    """
    normalized = text.strip().lower()
    slug_chars: list[str] = []
    prev_dash = False
    for ch in normalized:
        if ch.isalnum() and (not ascii_only or ch.isascii()):
            slug_chars.append(ch)
            prev_dash = False
            continue
        if not prev_dash:
            slug_chars.append("-")
            prev_dash = True

    slug = "".join(slug_chars).strip("-")
    if not slug:
        slug = fallback

    if max_length is not None and len(slug) > max_length:
        slug = slug[:max_length].rstrip("-")
        if not slug:
            slug = fallback

    return slug


def truncate_preview(text: str, limit: int) -> str:
    """Cut text to `limit` characters, marking the cut with an ellipsis."""
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + "..."


def letter_suffix(index: int) -> str:
    """Return a spreadsheet-style letter suffix: 0 -> a, 25 -> z, 26 -> aa."""
    if index < 0:
        raise ValueError(f"index must be >= 0 (got {index})")
    letters: list[str] = []
    value = index
    while True:
        value, remainder = divmod(value, 26)
        letters.append(chr(ord("a") + remainder))
        if value == 0:
            break
        value -= 1
    return "".join(reversed(letters))
