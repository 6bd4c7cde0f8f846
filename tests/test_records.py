"""Tests for record parsing and payment link resolution."""

from datetime import date
from decimal import Decimal

import pytest

from standing.constants import ReasonCode
from standing.records import (
    Decision,
    Invoice,
    InvoiceSummary,
    Partner,
    RecordError,
    resolve_payment_link,
)


BASE_URL = "https://odoo.example.edu"


# ---------------------------------------------------------------------------
# Partner
# ---------------------------------------------------------------------------


class TestPartnerFromRecord:
    def test_full_record(self) -> None:
        partner = Partner.from_record(
            {"id": 3, "vat": "8-1-1", "x_studio_tipo_contrato_especial": "Beca"}
        )
        assert partner == Partner(id=3, identity="8-1-1", contract_type="Beca")

    def test_false_contract_type_is_none(self) -> None:
        partner = Partner.from_record(
            {"id": 3, "vat": "8-1-1", "x_studio_tipo_contrato_especial": False}
        )
        assert partner.contract_type is None

    def test_missing_contract_field_is_none(self) -> None:
        assert Partner.from_record({"id": 3, "vat": "8-1-1"}).contract_type is None

    def test_custom_contract_field(self) -> None:
        partner = Partner.from_record(
            {"id": 3, "vat": "8-1-1", "x_contract": "IFARHU"},
            contract_type_field="x_contract",
        )
        assert partner.contract_type == "IFARHU"

    def test_missing_id_raises(self) -> None:
        with pytest.raises(RecordError, match="'id'"):
            Partner.from_record({"vat": "8-1-1"})

    def test_false_id_raises(self) -> None:
        with pytest.raises(RecordError, match="not an integer"):
            Partner.from_record({"id": False, "vat": "8-1-1"})

    def test_empty_vat_raises(self) -> None:
        with pytest.raises(RecordError, match="empty 'vat'"):
            Partner.from_record({"id": 3, "vat": False})


# ---------------------------------------------------------------------------
# Invoice
# ---------------------------------------------------------------------------


class TestInvoiceFromRecord:
    def test_many2one_partner(self) -> None:
        invoice = Invoice.from_record({
            "partner_id": [7, "Ana Pérez"],
            "state": "posted",
            "invoice_date_due": "2026-01-31",
            "amount_residual": 49.99,
        })
        assert invoice.partner_id == 7
        assert invoice.due_date == date(2026, 1, 31)
        assert invoice.residual_amount == Decimal("49.99")

    def test_bare_int_partner(self) -> None:
        invoice = Invoice.from_record({"partner_id": 7, "state": "paid"})
        assert invoice.partner_id == 7

    def test_false_due_date_is_none(self) -> None:
        invoice = Invoice.from_record(
            {"partner_id": [7, "x"], "state": "posted", "invoice_date_due": False}
        )
        assert invoice.due_date is None

    def test_missing_residual_is_zero(self) -> None:
        invoice = Invoice.from_record({"partner_id": [7, "x"], "state": "posted"})
        assert invoice.residual_amount == Decimal(0)

    def test_missing_partner_raises(self) -> None:
        with pytest.raises(RecordError, match="partner_id"):
            Invoice.from_record({"state": "posted"})

    def test_missing_state_raises(self) -> None:
        with pytest.raises(RecordError, match="state"):
            Invoice.from_record({"partner_id": [7, "x"]})

    def test_bad_date_raises(self) -> None:
        with pytest.raises(RecordError, match="not a date"):
            Invoice.from_record(
                {"partner_id": [7, "x"], "state": "posted", "invoice_date_due": "soon"}
            )

    def test_bad_amount_raises(self) -> None:
        with pytest.raises(RecordError, match="not a number"):
            Invoice.from_record(
                {"partner_id": [7, "x"], "state": "posted", "amount_residual": "lots"}
            )

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf"), "NaN"])
    def test_non_finite_amount_raises(self, value) -> None:
        with pytest.raises(RecordError, match="not a finite number"):
            Invoice.from_record(
                {"partner_id": [7, "x"], "state": "posted", "amount_residual": value}
            )

    def test_non_finite_total_raises(self) -> None:
        with pytest.raises(RecordError, match="amount_total"):
            InvoiceSummary.from_record(
                {"id": 11, "state": "posted", "amount_total": float("nan")}, BASE_URL
            )


class TestInvoiceSummary:
    def test_to_dict(self) -> None:
        summary = InvoiceSummary.from_record(
            {
                "id": 11,
                "name": "INV/2026/0011",
                "amount_total": 120.0,
                "state": "posted",
                "invoice_date_due": "2026-02-01",
                "amount_residual": 20.5,
                "access_url": "/my/invoices/11?access_token=abc",
            },
            BASE_URL,
        )
        assert summary.to_dict() == {
            "id": 11,
            "name": "INV/2026/0011",
            "amount_total": "120.0",
            "state": "posted",
            "due_date": "2026-02-01",
            "residual_amount": "20.5",
            "payment_link": "https://odoo.example.edu/my/invoices/11?access_token=abc",
        }


# ---------------------------------------------------------------------------
# Payment links
# ---------------------------------------------------------------------------


class TestResolvePaymentLink:
    def test_unparseable_link_kept(self) -> None:
        assert resolve_payment_link("http://[bad", BASE_URL) == "http://[bad"

    def test_unparseable_base_keeps_link(self) -> None:
        assert resolve_payment_link("/my/invoices/5", "http://[bad") == "/my/invoices/5"

    def test_relative_path_keeps_ipv6_brackets(self) -> None:
        assert (
            resolve_payment_link("/my/invoices/5", "https://[2001:db8::1]:8069")
            == "https://[2001:db8::1]/my/invoices/5"
        )

    def test_relative_path_keeps_userinfo(self) -> None:
        assert (
            resolve_payment_link("/my/invoices/5", "https://svc@odoo.example.edu:8069")
            == "https://svc@odoo.example.edu/my/invoices/5"
        )

    def test_absolute_ipv6_on_odoo_host_drops_port(self) -> None:
        assert (
            resolve_payment_link("http://[2001:db8::1]:8069/my/invoices/5", "https://[2001:db8::1]")
            == "http://[2001:db8::1]/my/invoices/5"
        )

    def test_relative_path(self) -> None:
        assert (
            resolve_payment_link("/my/invoices/5", "https://odoo.example.edu:8069")
            == "https://odoo.example.edu/my/invoices/5"
        )

    def test_absolute_on_odoo_host_drops_port(self) -> None:
        assert (
            resolve_payment_link("http://odoo.example.edu:8069/my/invoices/5?t=1", BASE_URL)
            == "http://odoo.example.edu/my/invoices/5?t=1"
        )

    def test_absolute_on_other_host_untouched(self) -> None:
        link = "https://pay.example.com:8443/checkout/5"
        assert resolve_payment_link(link, BASE_URL) == link

    def test_none_and_empty(self) -> None:
        assert resolve_payment_link(None, BASE_URL) is None
        assert resolve_payment_link("", BASE_URL) == ""

    def test_unrecognised_form_untouched(self) -> None:
        assert resolve_payment_link("my/invoices/5", BASE_URL) == "my/invoices/5"


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------


class TestDecision:
    def test_to_dict(self) -> None:
        decision = Decision(allowed=False, reason=ReasonCode.OVERDUE)
        assert decision.to_dict() == {"allowed": False, "reason": "overdue"}

    def test_frozen(self) -> None:
        decision = Decision(allowed=True, reason=ReasonCode.CURRENT)
        with pytest.raises(AttributeError):
            decision.allowed = False  # type: ignore[misc]
