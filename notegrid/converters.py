"""Converters between note text (Markdown) and HTML."""

from html import escape

import markdown
from bs4 import BeautifulSoup, Comment, Doctype


def markdown_to_html(md_content: str) -> str:
    """Render note text as an HTML fragment for sharing.

    Note text is treated as Markdown; numbered lines become ``<ol>`` lists.
    Raw ``<script>`` and ``<style>`` blocks are dropped.
    """
    if not md_content:
        return ""
    html = markdown.markdown(
        md_content,
        extensions=["extra", "nl2br", "sane_lists"],
    )

    soup = BeautifulSoup(html, "html.parser")
    for tag in soup.find_all(["script", "style"]):
        tag.decompose()
    return str(soup)


def html_document(title: str, sections: list[tuple[str, str]]) -> str:
    """Wrap rendered notes in a standalone HTML page.

    Args:
        title: Page title
        sections: (heading, markdown body) pairs, one per note
    """
    parts = [
        "<!DOCTYPE html>",
        '<html><head><meta charset="utf-8">',
        f"<title>{escape(title)}</title></head><body>",
        f"<h1>{escape(title)}</h1>",
    ]
    for heading, body in sections:
        parts.append("<section>")
        if heading:
            parts.append(f"<h2>{escape(heading)}</h2>")
        parts.append(markdown_to_html(body))
        parts.append("</section>")
    parts.append("</body></html>")
    return "\n".join(parts)


def looks_like_html(text: str) -> bool:
    stripped = text.lstrip().lower()
    return stripped.startswith("<!doctype html") or stripped.startswith("<html") or (
        stripped.startswith("<") and bool(BeautifulSoup(text, "html.parser").find())
    )


CONTAINER_TAGS = ("html", "body", "section", "article", "main")
HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
BLOCK_TAGS = ("div", "p", "blockquote", "pre")


def html_to_markdown(html_content: str) -> str:
    """Convert HTML back to note text.

    Basic conversion for common block and inline elements.
    """
    soup = BeautifulSoup(html_content, "html.parser")
    for tag in soup.find_all(["script", "style", "title", "head"]):
        tag.decompose()
    return _convert_blocks(soup.body or soup)


def _convert_blocks(root) -> str:
    result = []
    inline = ""

    for element in root.children:
        if element.name is None or element.name not in (
            CONTAINER_TAGS + HEADING_TAGS + BLOCK_TAGS + ("ul", "ol")
        ):
            inline += _convert_node(element)
            continue

        if inline.strip():
            result.append(inline.strip())
        inline = ""

        if element.name in ("ul", "ol"):
            result.append(_convert_list(element))
        elif element.name in HEADING_TAGS:
            level = int(element.name[1])
            result.append(f"{'#' * level} {element.get_text().strip()}")
        elif element.name in CONTAINER_TAGS:
            inner = _convert_blocks(element)
            if inner:
                result.append(inner)
        else:
            text = _convert_element(element).strip()
            if text:
                result.append(text)

    if inline.strip():
        result.append(inline.strip())
    return "\n\n".join(result)


def _convert_element(element) -> str:
    """Convert the children of an HTML element to Markdown text."""
    return "".join(_convert_node(child) for child in element.children)


def _convert_node(node) -> str:
    if isinstance(node, (Comment, Doctype)):
        return ""
    if node.name is None:
        return str(node)
    if node.name in ("b", "strong"):
        return f"**{node.get_text()}**"
    if node.name in ("i", "em"):
        return f"*{node.get_text()}*"
    if node.name in ("strike", "del", "s"):
        return f"~~{node.get_text()}~~"
    if node.name == "code":
        return f"`{node.get_text()}`"
    if node.name == "a":
        href = node.get("href", "")
        return f"[{node.get_text()}]({href})"
    if node.name == "br":
        return "\n"
    return _convert_element(node)


def _convert_list(element) -> str:
    """Convert ul/ol to Markdown list."""
    lines = []
    is_ordered = element.name == "ol"

    for i, li in enumerate(element.find_all("li", recursive=False), 1):
        prefix = f"{i}. " if is_ordered else "- "
        lines.append(f"{prefix}{li.get_text().strip()}")

    return "\n".join(lines)
