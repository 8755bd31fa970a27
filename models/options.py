"""
models/options.py
-----------------
Options that customize a query for a collection (orders, customers).
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Union

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from errors import InvalidOptions

SORT_DIRECTIONS = {"asc": "ASC", "desc": "DESC"}


@dataclass(frozen=True)
class CollectionOptions:
    """
    Pagination and sorting for a collection query.

    Attributes:
        page: Page number, 1-indexed.
        per_page: Results per page.
        sort: Public name of the field to sort by.
        order: Sort direction, 'asc' or 'desc' (any casing).
    """
    page: int = 1
    per_page: int = DEFAULT_PAGE_SIZE
    sort: str = "id"
    order: str = "asc"

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def direction(self) -> str:
        """The SQL keyword for `order`, either 'ASC' or 'DESC'."""
        try:
            return SORT_DIRECTIONS[str(self.order).lower()]
        except KeyError:
            raise InvalidOptions(
                f"Invalid sort direction: {self.order!r}",
                {"order": self.order},
            ) from None

    def validate(self) -> "CollectionOptions":
        """
        Check pagination and direction.

        Returns:
            The same options, for chaining.

        Raises:
            InvalidOptions: If page < 1, per_page is out of range,
                or the direction is unknown.
        """
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise InvalidOptions(f"page must be an integer >= 1, got {self.page!r}", {"page": self.page})
        if (
            isinstance(self.per_page, bool)
            or not isinstance(self.per_page, int)
            or self.per_page <= 0
        ):
            raise InvalidOptions(
                f"per_page must be a positive integer, got {self.per_page!r}",
                {"per_page": self.per_page},
            )
        if self.per_page > MAX_PAGE_SIZE:
            raise InvalidOptions(
                f"per_page may not exceed {MAX_PAGE_SIZE}",
                {"per_page": self.per_page},
            )
        if str(self.order).lower() not in SORT_DIRECTIONS:
            raise InvalidOptions(f"Invalid sort direction: {self.order!r}", {"order": self.order})
        return self


OptionsLike = Union[CollectionOptions, Mapping[str, Any], None]


def with_defaults(opts: OptionsLike = None, **defaults: Any) -> CollectionOptions:
    """
    Combine caller options with defaults.

    Keyword arguments override the class defaults; anything the caller
    set explicitly (non-None) overrides both.

    Args:
        opts: A CollectionOptions, a partial mapping, or None.
        **defaults: Collection-specific defaults, e.g. ``sort="shippeddate"``.

    Raises:
        InvalidOptions: If the mapping contains unknown keys.
    """
    base = replace(CollectionOptions(), **defaults)
    if opts is None:
        return base
    if isinstance(opts, CollectionOptions):
        return opts

    known = {f.name for f in fields(CollectionOptions)}
    unknown = set(opts) - known
    if unknown:
        raise InvalidOptions(
            f"Unknown collection options: {', '.join(sorted(unknown))}",
            {"unknown": sorted(unknown)},
        )
    return replace(base, **{k: v for k, v in opts.items() if v is not None})
