"""Filter state for narrowing the link list.

Exactly one criterion is active at a time, so the state is a tagged union
rather than independently nullable fields.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class NoFilter(BaseModel):
    kind: Literal["all"] = "all"

    model_config = ConfigDict(frozen=True)


class SearchFilter(BaseModel):
    kind: Literal["search"] = "search"
    text: str

    model_config = ConfigDict(frozen=True)


class TagFilter(BaseModel):
    kind: Literal["tag"] = "tag"
    tag: str

    model_config = ConfigDict(frozen=True)


class CategoryFilter(BaseModel):
    kind: Literal["category"] = "category"
    category: str

    model_config = ConfigDict(frozen=True)


FilterState = Annotated[
    Union[NoFilter, SearchFilter, TagFilter, CategoryFilter],
    Field(discriminator="kind"),
]


def resolve_filter(
    search: Optional[str] = None,
    tag: Optional[str] = None,
    category: Optional[str] = None,
) -> FilterState:
    """Build a filter from independently-set criteria.

    A non-blank search always wins, then tag, then category.
    """
    if search is not None and search.strip():
        return SearchFilter(text=search)
    if tag:
        return TagFilter(tag=tag)
    if category:
        return CategoryFilter(category=category)
    return NoFilter()
