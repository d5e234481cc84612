"""Derived views over a user's full link list.

Everything here is a pure function of (links, filter state).
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..models.filters import (
    CategoryFilter,
    FilterState,
    NoFilter,
    SearchFilter,
    TagFilter,
    resolve_filter,
)
from ..models.link import Link


@dataclass(frozen=True)
class LinkView:
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)


def collect_categories(links: Sequence[Link]) -> List[str]:
    """Distinct non-empty categories, sorted ascending."""
    return sorted({link.category for link in links if link.category})


def collect_tags(links: Sequence[Link]) -> List[str]:
    """Distinct tags across all links, sorted ascending."""
    return sorted({tag for link in links for tag in link.tags})


def matches_search(link: Link, query: str) -> bool:
    """Case-insensitive substring match on url, title, description, category or any tag.

    ``query`` must already be lowercased and trimmed.
    """
    fields = (link.url, link.title, link.description, link.category)
    if any(value and query in value.lower() for value in fields):
        return True
    return any(query in tag.lower() for tag in link.tags)


def apply_filter(links: Sequence[Link], state: FilterState) -> List[Link]:
    """Order-preserving subsequence of ``links`` selected by ``state``."""
    if isinstance(state, SearchFilter):
        query = state.text.strip().lower()
        if query:
            return [link for link in links if matches_search(link, query)]
        return list(links)
    if isinstance(state, TagFilter):
        return [link for link in links if state.tag in link.tags]
    if isinstance(state, CategoryFilter):
        return [link for link in links if link.category == state.category]
    return list(links)


def filter_links(
    links: Sequence[Link],
    search: Optional[str] = None,
    tag: Optional[str] = None,
    category: Optional[str] = None,
) -> List[Link]:
    """Filter by loosely-set criteria; search beats tag beats category."""
    return apply_filter(links, resolve_filter(search, tag, category))


def derive_view(links: Sequence[Link], state: Optional[FilterState] = None) -> LinkView:
    """Compute categories, tags and the filtered links in one pass."""
    return LinkView(
        categories=collect_categories(links),
        tags=collect_tags(links),
        links=apply_filter(links, state or NoFilter()),
    )
