"""HTML utility functions for staticweb.

This module provides HTML string utilities: attribute escaping for the tags
the substitution engine emits, and minification of templates and blocks.

Functions:
    escape_html: Escape special HTML characters in a string.
    minify_html: Minify an HTML document or fragment.
"""

from __future__ import annotations

import htmlmin


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Converts the following characters to their HTML entity equivalents:
    - & becomes &amp;
    - < becomes &lt;
    - > becomes &gt;
    - " becomes &quot;

    Args:
        text: The string to escape.

    Returns:
        The escaped string, safe for inclusion in an attribute value.

    Examples:
        >>> escape_html('Tom & "Jerry"')
        'Tom &amp; &quot;Jerry&quot;'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def minify_html(html: str) -> str:
    """Minify HTML while keeping attribute quotes, document tags and end tags.

    Comments are dropped and whitespace runs collapse to a single space
    (``<pre>`` content is left alone). Character references are passed through
    untouched so escaped code samples stay escaped. Template tokens such as
    ``{title}`` or ``{@head}`` are plain text to the minifier and survive as-is.

    Args:
        html: HTML document or fragment.

    Returns:
        The minified HTML, or the input unchanged if it could not be parsed.
    """
    try:
        return htmlmin.minify(
            html,
            remove_comments=True,
            remove_optional_attribute_quotes=False,
            reduce_empty_attributes=False,
            convert_charrefs=False,
        )
    except Exception:
        # The minifier is best-effort; unparseable markup is written as-is.
        return html
