"""Markdown rendering for posts that arrive without host-rendered HTML."""

from markdown_it import MarkdownIt

# commonmark keeps inline HTML, so <img> tags written by hand survive
_markdown = MarkdownIt("commonmark")


def render_markdown(raw: str) -> str:
    return _markdown.render(raw)
