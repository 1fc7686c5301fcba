"""Deterministic brand bucketing shared by every grouped view."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

OTHER_BRANDS: Final[str] = "OTRAS MARCAS"
MIN_BRAND_TOKEN_LENGTH: Final[int] = 4


def brand_from_description(description: str | None) -> str:
    """Derive a brand from the first word of a description.

    Tokens of three characters or fewer carry no information and land in
    ``OTHER_BRANDS``, as do missing descriptions.
    """

    if not description:
        return OTHER_BRANDS
    tokens = description.split()
    if not tokens:
        return OTHER_BRANDS
    token = tokens[0].upper()
    if len(token) < MIN_BRAND_TOKEN_LENGTH:
        return OTHER_BRANDS
    return token


def resolve_brand(brand: str | None, description: str | None) -> str:
    """Return the explicit brand when present, else the description-derived one."""

    if brand is not None and brand.strip():
        return brand.strip()
    return brand_from_description(description)


def group_by_brand[T](
    items: Iterable[T],
    *,
    brand_of: Callable[[T], str],
) -> dict[str, list[T]]:
    """Bucket ``items`` by brand, keeping brands sorted with ``OTHER_BRANDS`` last."""

    buckets: defaultdict[str, list[T]] = defaultdict(list)
    for item in items:
        buckets[brand_of(item)].append(item)
    ordered = sorted(buckets, key=lambda name: (name == OTHER_BRANDS, name))
    return {name: buckets[name] for name in ordered}
