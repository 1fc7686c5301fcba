from __future__ import annotations

import pytest

from stocktake.domain.reconciliation.brands import (
    OTHER_BRANDS,
    brand_from_description,
    group_by_brand,
    resolve_brand,
)


@pytest.mark.parametrize(
    ("description", "expected"),
    [
        ("Acme widget 10mm", "ACME"),
        ("  bolt-co hex nut", "BOLT-CO"),
        ("ABC thing", OTHER_BRANDS),
        ("xy", OTHER_BRANDS),
        ("", OTHER_BRANDS),
        ("   ", OTHER_BRANDS),
        (None, OTHER_BRANDS),
    ],
)
def test_brand_from_description(description: str | None, expected: str) -> None:
    assert brand_from_description(description) == expected


def test_explicit_brand_wins_over_description() -> None:
    assert resolve_brand(" Globex ", "Acme widget") == "Globex"
    assert resolve_brand("", "Acme widget") == "ACME"
    assert resolve_brand(None, None) == OTHER_BRANDS


def test_group_by_brand_puts_other_brands_last() -> None:
    items = ["zeta:1", "other:2", "acme:3", "zeta:4"]

    def brand_of(item: str) -> str:
        prefix = item.split(":")[0]
        return OTHER_BRANDS if prefix == "other" else prefix.upper()

    grouped = group_by_brand(items, brand_of=brand_of)

    assert list(grouped) == ["ACME", "ZETA", OTHER_BRANDS]
    assert grouped["ZETA"] == ["zeta:1", "zeta:4"]
