from decimal import Decimal

import pytest
from pydantic import ValidationError

from expenser.core.validation import parse_money, split_tags
from expenser.domain.categories.schemas import CategoryCreate
from expenser.domain.chat.schemas import ChatRequest
from expenser.domain.transactions.schemas import TransactionCreate, TransactionUpdate


class TestParseMoney:
    def test_plain(self):
        assert parse_money("42.99") == (Decimal("42.99"), [])

    def test_thousands_separator(self):
        assert parse_money("$1,234.56")[0] == Decimal("1234.56")

    def test_european_format(self):
        assert parse_money("1.234,56")[0] == Decimal("1234.56")

    def test_single_comma_is_decimal(self):
        amount, warnings = parse_money("12,5")
        assert amount == Decimal("12.5")
        assert warnings

    def test_parentheses_negative(self):
        assert parse_money("(10.00)")[0] == Decimal("-10.00")

    def test_float_goes_through_str(self):
        assert parse_money(0.1)[0] == Decimal("0.1")

    def test_bool_rejected(self):
        with pytest.raises(ValueError):
            parse_money(True)

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            parse_money("   ")

    def test_comma_before_three_digits_groups_thousands(self):
        assert parse_money("1,234") == (Decimal("1234"), [])
        assert parse_money("1,234,567")[0] == Decimal("1234567")
        assert parse_money("1.234.567")[0] == Decimal("1234567")

    def test_leading_zero_comma_is_decimal(self):
        assert parse_money("0,125")[0] == Decimal("0.125")

    @pytest.mark.parametrize("raw", ["1e3", "12abc", "12-34", "1,23,4", "1.2.3", "1,234.5.6", "1,2,3.5", "--5", ".", "()"])
    def test_garbage_rejected(self, raw):
        with pytest.raises(ValueError):
            parse_money(raw)


class TestSplitTags:
    def test_comma_string(self):
        assert split_tags(" a, b ,,c ") == ["a", "b", "c"]

    def test_list(self):
        assert split_tags(["x", " y "]) == ["x", "y"]

    def test_empty(self):
        assert split_tags(None) == []
        assert split_tags("") == []

    def test_other_types_rejected(self):
        with pytest.raises(ValueError):
            split_tags(5)


class TestTransactionCreate:
    def test_camel_case_and_defaults(self):
        payload = TransactionCreate.model_validate(
            {"amount": "10", "description": "Bus", "category": "Transportation"}
        )
        assert payload.type == "expense"
        assert payload.tags == []

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            TransactionCreate(amount="-5", description="x", category="Other")

    def test_amount_with_letters_rejected(self):
        with pytest.raises(ValidationError):
            TransactionCreate(amount="12abc", description="x", category="Other")

    def test_grouped_amount(self):
        payload = TransactionCreate(amount="1,234", description="Rent", category="Other")
        assert payload.amount == Decimal("1234")

    def test_amount_beyond_double_precision_rejected(self):
        TransactionCreate(amount="123456789012.345", description="x", category="Other")
        with pytest.raises(ValidationError):
            TransactionCreate(amount="1234567890123.456", description="x", category="Other")

    def test_missing_description_rejected(self):
        with pytest.raises(ValidationError):
            TransactionCreate(amount="5", description="  ", category="Other")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            TransactionCreate(amount="5", description="x", category="Other", type="transfer")

    def test_extra_fields_rejected(self):
        with pytest.raises(ValidationError):
            TransactionCreate(amount="5", description="x", category="Other", userId="someone")


class TestTransactionUpdate:
    def test_changes_only_lists_sent_fields(self):
        update = TransactionUpdate.model_validate({"amount": "7.5", "description": None})
        assert update.changes() == {"amount": Decimal("7.5")}

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError):
            TransactionUpdate(amount=-1)

    def test_amount_digit_cap(self):
        with pytest.raises(ValidationError):
            TransactionUpdate(amount="9999999999999999")


class TestCategoryCreate:
    def test_color_is_normalized(self):
        assert CategoryCreate(name="Pets", color="#a1b2c3").color == "#A1B2C3"

    def test_bad_color(self):
        with pytest.raises(ValidationError):
            CategoryCreate(name="Pets", color="red")


class TestChatRequest:
    def test_text_is_kept_verbatim(self):
        assert ChatRequest(message="  hi  ").message == "  hi  "

    def test_blank_rejected(self):
        with pytest.raises(ValidationError):
            ChatRequest(message="   ")
