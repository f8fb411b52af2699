"""
Tests for card formatting helpers
"""

from datetime import date

from credenciales.models.member import Member
from credenciales.models.settings import AppSettings
from credenciales.service.card import build_card, format_member_name, format_phone


def _member(**overrides) -> Member:
    values = dict(
        id="abc123",
        first_name="María José",
        last_name="Gómez",
        second_last_name=None,
        dob=date(2000, 2, 29),
        vigencia=date(2025, 12, 31),
        phone_mx="3121234567",
        license_number="LIC-77",
        badge_number="G-7",
        folio=None,
    )
    values.update(overrides)
    return Member(**values)


class TestFormatting:
    """Test name and phone display"""

    def test_surnames_are_uppercased(self):
        assert format_member_name(_member(second_last_name="de la Cruz")) == "María José GÓMEZ DE LA CRUZ"

    def test_missing_second_surname(self):
        assert format_member_name(_member()) == "María José GÓMEZ"

    def test_phone_is_grouped(self):
        assert format_phone("3121234567") == "312-123-4567"

    def test_unexpected_phone_is_left_alone(self):
        assert format_phone("12345") == "12345"


class TestBuildCard:
    """Test card assembly"""

    def test_expiry_day_is_still_valid(self):
        card = build_card(
            _member(),
            AppSettings(adjuster_colima="A", adjuster_tecoman="B", adjuster_manzanillo="C"),
            api_prefix="/api/v1",
            public_app_url="https://example.mx/",
            today=date(2025, 12, 31),
        )

        assert card.valid is True
        assert card.age == 25
        assert card.folio == "0000"
        assert card.validation_url == "https://example.mx/validate/abc123"
        assert (card.adjuster_colima, card.adjuster_tecoman, card.adjuster_manzanillo) == ("A", "B", "C")

    def test_day_after_expiry_is_invalid(self):
        card = build_card(
            _member(),
            AppSettings(),
            api_prefix="/api/v1",
            public_app_url="https://example.mx",
            today=date(2026, 1, 1),
        )
        assert card.valid is False

    def test_missing_vigencia(self):
        card = build_card(
            _member(vigencia=None),
            AppSettings(president_signature_path="assets/president-signature.png"),
            api_prefix="/api/v1",
            public_app_url="https://example.mx",
        )

        assert card.valid is False
        assert card.vigencia == ""
        assert card.vigencia_long == "No especificada"
        assert card.president_signature_url == "/api/v1/settings/president-signature"
