import pytest

from servicehub.email_templates import admin_reply_template
from servicehub.shared.validators import (
    clean_slots,
    parse_skills,
    validate_availability,
    validate_category,
    validate_email,
    validate_phone,
    validate_role,
    validate_slot_date,
    validate_slot_time,
)
from servicehub.utils.sanitization import sanitize_string, validate_and_sanitize_input


class TestEmailAndPhone:
    def test_email_is_lowercased(self):
        assert validate_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"

    @pytest.mark.parametrize("email", ["plain", "a@b", "a b@example.com"])
    def test_invalid_email(self, email):
        with pytest.raises(ValueError):
            validate_email(email)

    @pytest.mark.parametrize(
        "phone, expected",
        [
            ("+44 20 7946 0000", "+442079460000"),
            ("(555) 123-4567", "5551234567"),
            ("", ""),
        ],
    )
    def test_phone(self, phone, expected):
        assert validate_phone(phone) == expected

    def test_phone_too_short(self):
        with pytest.raises(ValueError):
            validate_phone("12345")


class TestEnumerations:
    def test_role(self):
        assert validate_role("provider") == "provider"
        with pytest.raises(ValueError):
            validate_role("superuser")

    def test_category(self):
        assert validate_category("Plumbing") == "Plumbing"
        with pytest.raises(ValueError):
            validate_category("plumbing")


class TestSlots:
    def test_date_and_time(self):
        assert validate_slot_date("2030-02-28") == "2030-02-28"
        assert validate_slot_time("23:59") == "23:59"

    @pytest.mark.parametrize("value", ["2030-02-30", "28/02/2030", None])
    def test_bad_dates(self, value):
        with pytest.raises(ValueError):
            validate_slot_date(value)

    @pytest.mark.parametrize("value", ["24:00", "9:00", "09:60", 900])
    def test_bad_times(self, value):
        with pytest.raises(ValueError):
            validate_slot_time(value)

    def test_clean_slots(self):
        cleaned = clean_slots({"2030-01-01": ["12:00", "09:00", "12:00", ""], "2030-01-02": []})
        assert cleaned == {"2030-01-01": ["09:00", "12:00"]}
        assert clean_slots(None) == {}


class TestProfileFields:
    def test_skills_from_string_or_list(self):
        assert parse_skills("Cleaning, Plumbing ,,") == ["Cleaning", "Plumbing"]
        assert parse_skills([" Painting ", ""]) == ["Painting"]
        assert parse_skills(None) == []

    @pytest.mark.parametrize("value", ["Available", "Unavailable", "2030-05-01 09:00-17:30"])
    def test_availability(self, value):
        assert validate_availability(value) == value

    @pytest.mark.parametrize("value", ["sometimes", "2030-05-01 17:00-09:00", "2030-13-01 09:00-10:00"])
    def test_bad_availability(self, value):
        with pytest.raises(ValueError):
            validate_availability(value)


class TestSanitization:
    def test_escapes_markup(self):
        assert sanitize_string('<a href="x">') == "&lt;a href=&quot;x&quot;&gt;"
        assert sanitize_string(None) is None

    def test_text_is_kept_as_written(self):
        assert validate_and_sanitize_input("  Tom's <b> ", max_length=9) == "Tom's <b>"
        with pytest.raises(ValueError):
            validate_and_sanitize_input("hi", min_length=3)

    def test_control_characters_removed(self):
        assert validate_and_sanitize_input("hel\x00lo") == "hello"

    def test_emails_escape_user_text(self):
        html = admin_reply_template("Tom's", "Pat", "<script>alert(1)</script>", "Fixed")
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "Tom&#x27;s" in html
