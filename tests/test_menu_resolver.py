from decimal import Decimal

import pytest

from orderdesk.core.exceptions import ResolutionError
from orderdesk.domain import MenuItem, RequestedLine, Shop, VariantOption
from orderdesk.services.ordering.menu_resolver import (
    format_menu,
    menu_letter,
    resolve,
    resolve_web_lines,
)


def item(id, name, price="10", code=None, variants=()):
    return MenuItem(id=id, shop_id=1, name=name, price=Decimal(price), code=code, variants=variants)


ITEMS = [
    item(1, "Tea", "10", code="TEA"),
    item(2, "Coffee", "20", code="COF"),
    item(3, " Masala Dosa ", "55.50", code="D"),
]


class TestResolve:

    @pytest.mark.parametrize("token,expected", [("A", 1), ("b", 2), ("C", 3)])
    def test_letter_indexes_listing(self, token, expected):
        assert resolve(token, ITEMS).id == expected

    def test_letter_out_of_range_is_not_found(self):
        # "D" is also an item code, but letters never fall through
        assert resolve("D", ITEMS) is None

    def test_code_case_insensitive(self):
        assert resolve("cof", ITEMS).id == 2

    def test_name_case_insensitive_and_trimmed(self):
        assert resolve("masala dosa", ITEMS).id == 3

    def test_letter_wins_over_code(self):
        items = [item(1, "Tea", code="B"), item(2, "Coffee")]
        assert resolve("B", items).id == 2

    @pytest.mark.parametrize("token", ["", "  ", "pizza", "TEAS"])
    def test_unknown_tokens(self, token):
        assert resolve(token, ITEMS) is None

    def test_empty_listing(self):
        assert resolve("A", []) is None


class TestMenuLetter:

    def test_bounds(self):
        assert menu_letter(0) == "A"
        assert menu_letter(25) == "Z"
        assert menu_letter(26) is None
        assert menu_letter(-1) is None


class TestResolveWebLines:

    def test_resolves_ids_and_variants(self):
        items = [
            item(1, "Tea"),
            item(2, "Sandwich", "60", variants=(VariantOption("paneer", "Paneer", Decimal("80")),)),
        ]
        lines = resolve_web_lines(
            [RequestedLine(1, 2), RequestedLine(2, 1, "PANEER")],
            items,
        )
        assert [line.item.id for line in lines] == [1, 2]
        assert lines[1].variant.label == "Paneer"

    def test_reports_every_bad_reference(self):
        items = [
            item(1, "Tea"),
            item(2, "Sandwich", variants=(VariantOption("cheese", "Cheese", Decimal("90"), available=False),)),
        ]
        with pytest.raises(ResolutionError) as excinfo:
            resolve_web_lines(
                [RequestedLine(7), RequestedLine(1), RequestedLine(2, 1, "cheese"), RequestedLine(2, 1, "egg")],
                items,
            )
        assert excinfo.value.tokens == ["7", "2:cheese", "2:egg"]


class TestFormatMenu:

    def test_lettered_listing(self):
        shop = Shop(id=1, name="Chai Point", contact="+919876500001")
        text = format_menu(shop, ITEMS)

        assert text.startswith("📋 Menu for Chai Point:")
        assert "A. Tea - ₹10" in text
        assert "C.  Masala Dosa  - ₹55.50" in text
        assert "Example: order +919876500001 A 2 B 1" in text
