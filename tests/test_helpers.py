from __future__ import annotations

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from unittest import TestCase

from expense_bot.errors import ExpenseValidationError
from expense_bot.telegram import helpers


class AmountParsingTests(TestCase):
    def test_accepts_plain_grouped_and_decimal_amounts(self) -> None:
        cases = {
            "50000": Decimal("50000"),
            "50.000": Decimal("50000"),
            "1.250.000": Decimal("1250000"),
            "1,250": Decimal("1250"),
            "1,250,000.75": Decimal("1250000.75"),
            "12.5": Decimal("12.5"),
            "12.3456": Decimal("12.3456"),
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(helpers.parse_amount_token(raw), expected)

    def test_accepts_indonesian_decimal_comma(self) -> None:
        cases = {
            "1,5": Decimal("1.5"),
            "1.234,50": Decimal("1234.50"),
            "25.000,5": Decimal("25000.5"),
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(helpers.parse_amount_token(raw), expected)

    def test_leading_zero_group_is_not_read_as_thousands(self) -> None:
        self.assertEqual(helpers.parse_amount_token("0.001"), Decimal("0.001"))
        self.assertEqual(helpers.parse_amount_token("0.5"), Decimal("0.5"))

    def test_rejects_non_numeric_tokens(self) -> None:
        for raw in ("abc", "-5", "+5", "Rp5000", "5k", ".5", "", "1,,,", "1,2345", "1.2.3", "1.234,567"):
            with self.subTest(raw=raw):
                with self.assertRaises(ExpenseValidationError):
                    helpers.parse_amount_token(raw)


class AddArgumentParsingTests(TestCase):
    def test_dotted_amount_records_whole_rupiah(self) -> None:
        draft = helpers.parse_add_arguments("1.250.000 Sewa kos")

        self.assertEqual(draft.amount, Decimal("1250000"))
        self.assertEqual(draft.description, "Sewa kos")

    def test_description_without_category_uses_default(self) -> None:
        draft = helpers.parse_add_arguments("50000 Makan siang mie ayam")

        self.assertEqual(draft.amount, Decimal("50000"))
        self.assertEqual(draft.description, "Makan siang mie ayam")
        self.assertEqual(draft.category, "Lain-lain")

    def test_trailing_hash_token_is_category(self) -> None:
        draft = helpers.parse_add_arguments("15000 Ojek ke kantor #transport")

        self.assertEqual(draft.description, "Ojek ke kantor")
        self.assertEqual(draft.category, "transport")

    def test_lone_hash_token_stays_in_description(self) -> None:
        draft = helpers.parse_add_arguments("15000 #donasi")

        self.assertEqual(draft.description, "#donasi")
        self.assertEqual(draft.category, "Lain-lain")

    def test_bare_hash_falls_back_to_default_category(self) -> None:
        draft = helpers.parse_add_arguments("15000 Parkir #")

        self.assertEqual(draft.description, "Parkir")
        self.assertEqual(draft.category, "Lain-lain")

    def test_invalid_arguments_raise_validation_error(self) -> None:
        for args in (None, "", "5000", "0 Free lunch", "0.001 Receh", "abc Makan"):
            with self.subTest(args=args):
                with self.assertRaises(ExpenseValidationError):
                    helpers.parse_add_arguments(args)


class FormattingTests(TestCase):
    def test_format_rupiah_groups_thousands(self) -> None:
        self.assertEqual(helpers.format_rupiah(Decimal("50000")), "Rp 50.000")
        self.assertEqual(helpers.format_rupiah("1250000.00"), "Rp 1.250.000")
        self.assertEqual(helpers.format_rupiah(Decimal("1234.5")), "Rp 1.234,50")
        self.assertEqual(helpers.format_rupiah(Decimal("999")), "Rp 999")

    def test_format_rupiah_keeps_unparseable_input(self) -> None:
        self.assertEqual(helpers.format_rupiah("n/a"), "Rp n/a")

    def test_escape_markdown(self) -> None:
        self.assertEqual(helpers.escape_markdown("nasi_goreng *pedas*"), "nasi\\_goreng \\*pedas\\*")

    def test_format_date_label(self) -> None:
        self.assertEqual(helpers.format_date_label(date(2026, 10, 8)), "08/10/2026")

    def test_identity_from_user_copies_sender_fields(self) -> None:
        identity = helpers.identity_from_user(
            SimpleNamespace(id=5, first_name="Ayu", last_name=None, username="ayu")
        )

        self.assertEqual(identity.telegram_id, 5)
        self.assertEqual(identity.first_name, "Ayu")
        self.assertIsNone(identity.last_name)
        self.assertEqual(identity.username, "ayu")
