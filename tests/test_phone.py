import pytest

from orderdesk.core.phone import normalize_phone, strip_transport_prefix


class TestNormalizePhone:

    @pytest.mark.parametrize("raw,expected", [
        ("9876543210", "+919876543210"),
        ("98765 43210", "+919876543210"),
        ("09876543210", "+919876543210"),
        ("919876543210", "+919876543210"),
        ("+91 98765-43210", "+919876543210"),
        ("+14155238886", "+14155238886"),
    ])
    def test_accepted_forms(self, raw, expected):
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "12345", "abc", "+123"])
    def test_rejected(self, raw):
        assert normalize_phone(raw) is None

    def test_custom_country_code(self):
        assert normalize_phone("2025550123", country_code="1") == "+12025550123"


class TestStripTransportPrefix:

    def test_whatsapp_prefix(self):
        assert strip_transport_prefix("whatsapp:+919876543210") == "+919876543210"
        assert strip_transport_prefix("WhatsApp: +91987") == "+91987"
        assert strip_transport_prefix("+91987") == "+91987"
