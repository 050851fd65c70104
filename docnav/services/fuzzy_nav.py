"""
In-page fuzzy navigator.

Scores short filter queries against link texts and heading titles of the
current page. Items come from three lists: outbound links, inbound links
(backlinks) and the page's headings.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from docnav.exceptions import DocumentIndexError

logger = logging.getLogger(__name__)

NavItemKind = Literal["link-out", "link-in", "heading"]

PREFIX_SCORE = 1500
WORD_START_SCORE = 1200
SUBSTRING_SCORE = 1000

LINKS_FILE = "links.json"


class OutboundLink(BaseModel):
    """Link from the current page to another page or site."""

    to: str
    text: str = ""
    anchor: str | None = None
    internal: bool = False


class InboundLink(BaseModel):
    """Link from another page to the current page."""

    from_: str = Field(..., alias="from")
    text: str = ""
    anchor: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class PageLinks(BaseModel):
    """Links resource published next to each page."""

    inbound: list[InboundLink] = Field(default_factory=list)
    outbound: list[OutboundLink] = Field(default_factory=list)


class Heading(BaseModel):
    level: int
    id: str
    text: str


@dataclass
class NavItem:
    """One selectable entry in the navigator."""

    id: str
    text: str
    url: str
    kind: NavItemKind
    level: int | None = None
    anchor: str | None = None
    is_visible: bool = False
    y_position: float | None = None
    is_internal: bool | None = None


def fuzzy_score(text: str, query: str) -> int:
    """
    Score how well ``query`` matches ``text``; 0 means no match.

    Whole-substring matches rank highest (prefix, then word start, then
    anywhere). Otherwise every query character must appear in order, and
    early, consecutive and word-start hits score more.
    """
    if not query:
        return 0

    lower_text = text.lower()
    lower_query = query.lower()

    if lower_query in lower_text:
        if lower_text.startswith(lower_query):
            return PREFIX_SCORE
        if re.search(r"\b" + re.escape(lower_query), lower_text, re.ASCII):
            return WORD_START_SCORE
        return SUBSTRING_SCORE

    score = 0
    text_index = 0
    consecutive_bonus = 0

    for char in lower_query:
        found = lower_text.find(char, text_index)
        if found == -1:
            return 0

        if found == text_index:
            consecutive_bonus += 10
        else:
            consecutive_bonus = 0

        score += 10 + max(0, 50 - found) + consecutive_bonus

        if found == 0 or re.match(r"\W", lower_text[found - 1], re.ASCII):
            score += 25

        text_index = found + 1

    return score


def format_page_path(url_path: str) -> str:
    """Display form of a page path: "/docs/guide/" -> "docs/guide", "/" -> "Home"."""
    path = url_path[1:] if url_path.startswith("/") else url_path
    path = path[:-1] if path.endswith("/") else path
    return path or "Home"


def items_from_outbound_links(links: Iterable[OutboundLink]) -> list[NavItem]:
    return [
        NavItem(
            id=f"out-{index}",
            text=link.text or link.to,
            url=link.to + (link.anchor or "") if link.internal else link.to,
            kind="link-out",
            anchor=link.anchor,
            is_internal=link.internal,
        )
        for index, link in enumerate(links)
    ]


def items_from_inbound_links(links: Iterable[InboundLink]) -> list[NavItem]:
    # Backlink texts usually repeat this page's title; show the source page instead
    return [
        NavItem(
            id=f"in-{index}",
            text=format_page_path(link.from_),
            url=link.from_,
            kind="link-in",
            anchor=link.anchor,
        )
        for index, link in enumerate(links)
    ]


def items_from_headings(
    headings: Iterable[Heading],
    visible_ids: Collection[str] = (),
    positions: Mapping[str, float] | None = None,
) -> list[NavItem]:
    """
    Build heading items.

    Args:
        headings: Headings of the page in document order
        visible_ids: IDs of headings currently inside the viewport
        positions: Vertical offset of each heading; missing ones count as 0
    """
    positions = positions or {}
    return [
        NavItem(
            id=f"toc-{index}",
            text=heading.text,
            url=f"#{heading.id}",
            kind="heading",
            level=heading.level,
            is_visible=heading.id in visible_ids,
            y_position=positions.get(heading.id, 0.0),
        )
        for index, heading in enumerate(headings)
    ]


def sort_by_visibility(items: Sequence[NavItem]) -> list[NavItem]:
    """Visible items first, top to bottom; the rest keep their order."""
    visible = sorted(
        (item for item in items if item.is_visible),
        key=lambda item: item.y_position or 0,
    )
    hidden = [item for item in items if not item.is_visible]
    return visible + hidden


def filter_items(
    items: Sequence[NavItem],
    query: str,
    *,
    visibility_order: bool = False,
) -> list[NavItem]:
    """
    Filter and rank items by ``query``.

    A blank query keeps every item, in original order or in visibility
    order when requested. Otherwise only matching items remain, best first;
    equal scores keep their original order.
    """
    if not query.strip():
        return sort_by_visibility(items) if visibility_order else list(items)

    scored = [(fuzzy_score(item.text, query), item) for item in items]
    ranked = sorted(
        ((score, item) for score, item in scored if score > 0),
        key=lambda pair: pair[0],
        reverse=True,
    )
    return [item for _, item in ranked]


def links_url(page_path: str) -> str:
    """URL of the links resource for a page path."""
    normalized = page_path if page_path.endswith("/") else page_path + "/"
    return normalized + LINKS_FILE


async def load_page_links(
    page_url: str,
    http_client: httpx.AsyncClient | None = None,
    timeout_seconds: float = 10.0,
) -> PageLinks:
    """
    Fetch the links resource of a page.

    A missing resource (404) means the page has no recorded links.

    Raises:
        DocumentIndexError: If the resource cannot be fetched or parsed
    """
    url = links_url(page_url)
    try:
        if http_client is not None:
            response = await http_client.get(url, timeout=timeout_seconds)
        else:
            async with httpx.AsyncClient(timeout=timeout_seconds) as client:
                response = await client.get(url)
    except httpx.HTTPError as exc:
        msg = f"Failed to load links: {exc}"
        raise DocumentIndexError(
            msg,
            context={"reason": "transport", "url": url, "error_type": type(exc).__name__},
        ) from exc

    if response.status_code == 404:
        logger.debug("Page has no links resource", extra={"url": url})
        return PageLinks()

    if not response.is_success:
        msg = f"Failed to load links: {response.status_code}"
        raise DocumentIndexError(
            msg,
            context={"reason": "http_status", "url": url, "status_code": response.status_code},
        )

    try:
        return PageLinks.model_validate_json(response.content)
    except PydanticValidationError as exc:
        msg = "Links resource failed validation"
        raise DocumentIndexError(
            msg,
            context={"reason": "invalid_schema", "url": url, "error_count": exc.error_count()},
        ) from exc
