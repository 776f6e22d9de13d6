"""
Rich-text (Portable Text) to HTML.

A post body is a list of blocks. Text blocks carry a `style` (normal, h1..h6,
blockquote), an optional `listItem` (bullet | number) and a list of span
`children`; span `marks` are either decorators (strong, em, ...) or keys into
the block's `markDefs` (links). Consecutive list-item blocks are wrapped in
a single <ul>/<ol>. All text is escaped.
"""
import logging
from typing import Any, Optional

from markupsafe import Markup, escape

from inkwell.images import url_for

logger = logging.getLogger(__name__)

_BLOCK_TAGS = {
    "normal": "p",
    "h1": "h1",
    "h2": "h2",
    "h3": "h3",
    "h4": "h4",
    "h5": "h5",
    "h6": "h6",
    "blockquote": "blockquote",
}

_DECORATORS = {
    "strong": "strong",
    "em": "em",
    "code": "code",
    "underline": "u",
    "strike-through": "s",
}

_LIST_TAGS = {"bullet": "ul", "number": "ol"}


def _render_span(span: dict[str, Any], mark_defs: dict[str, dict]) -> str:
    html = str(escape(span.get("text", "")))
    # Innermost mark first so the first mark ends up outermost
    for mark in reversed(span.get("marks") or []):
        if mark in _DECORATORS:
            tag = _DECORATORS[mark]
            html = f"<{tag}>{html}</{tag}>"
            continue
        definition = mark_defs.get(mark)
        if definition and definition.get("_type") == "link" and definition.get("href"):
            html = f'<a href="{escape(definition["href"])}">{html}</a>'
    return html


def _render_children(block: dict[str, Any]) -> str:
    mark_defs = {d.get("_key"): d for d in block.get("markDefs") or []}
    return "".join(
        _render_span(child, mark_defs)
        for child in block.get("children") or []
        if child.get("_type", "span") == "span"
    )


def _render_image(
    block: dict[str, Any], project_id: Optional[str], dataset: Optional[str]
) -> str:
    src = url_for(block, project_id, dataset)
    if not src:
        return ""
    alt = escape(block.get("alt") or "")
    return f'<img src="{escape(src)}" alt="{alt}">'


def render(
    blocks: list[dict[str, Any]],
    project_id: Optional[str] = None,
    dataset: Optional[str] = None,
) -> Markup:
    """Render a block sequence to safe markup."""
    parts: list[str] = []
    open_list: Optional[str] = None

    for block in blocks or []:
        list_tag = _LIST_TAGS.get(block.get("listItem") or "")
        if open_list and list_tag != open_list:
            parts.append(f"</{open_list}>")
            open_list = None

        block_type = block.get("_type")
        if block_type == "block":
            content = _render_children(block)
            if list_tag:
                if open_list is None:
                    parts.append(f"<{list_tag}>")
                    open_list = list_tag
                parts.append(f"<li>{content}</li>")
            else:
                tag = _BLOCK_TAGS.get(block.get("style") or "normal", "p")
                parts.append(f"<{tag}>{content}</{tag}>")
        elif block_type == "image":
            parts.append(_render_image(block, project_id, dataset))
        else:
            logger.debug("Skipping unsupported block type %r", block_type)

    if open_list:
        parts.append(f"</{open_list}>")
    return Markup("".join(parts))
