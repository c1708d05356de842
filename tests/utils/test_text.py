"""Tests for text and number coercion."""

import pytest

from izsuwatch.utils.text import name_key, normalize_turkish, to_int, to_number


class TestNormalizeTurkish:
    """Tests for normalize_turkish and name_key."""

    def test_letters_replaced(self):
        """Turkish letters map to ASCII."""
        assert normalize_turkish("Çiğli Şirinyer Gördes Ürkmez İzmir") == (
            "Cigli Sirinyer Gordes Urkmez Izmir"
        )

    def test_empty(self):
        """None and empty strings give an empty string."""
        assert normalize_turkish(None) == ""
        assert name_key("") == ""

    def test_name_key(self):
        """Keys ignore case, accents and surrounding whitespace."""
        assert name_key("  Tahtalı Barajı ") == name_key("TAHTALI BARAJI") == "tahtali baraji"


class TestToNumber:
    """Tests for to_number and to_int."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (42, 42.0),
            (4.5, 4.5),
            ("7.4", 7.4),
            ("48,3", 48.3),
            ("1.234,5", 1234.5),
            (" 1 000 ", 1000.0),
        ],
    )
    def test_parses(self, value, expected):
        """Numbers and numeric strings in either notation are parsed."""
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", [None, "", "UYGUN", True, float("nan"), float("inf")])
    def test_default(self, value):
        """Unparseable values give the default."""
        assert to_number(value) == 0.0
        assert to_number(value, default=-1.0) == -1.0

    def test_to_int_truncates(self):
        """Fractional parts are dropped."""
        assert to_int("2025") == 2025
        assert to_int("9,9") == 9
        assert to_int(None) == 0
