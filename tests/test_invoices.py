from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from clientdesk.core.errors import (
    ConcurrentUpdateConflict,
    Forbidden,
    InvalidDateRange,
    InvalidPayment,
    InvalidStatus,
    NotFound,
)
from clientdesk.models.client import Client
from clientdesk.models.invoice import Invoice, InvoiceStatus, PaymentMethod
from clientdesk.schemas.invoice import InvoiceCreate, InvoiceItem, PaymentCreate
from clientdesk.services.invoice import InvoiceService, compute_totals, to_cents
from clientdesk.services.stats import StatsService
from conftest import TestingSessionLocal, auth_headers, make_user
from main import app

client = TestClient(app)


def invoice_payload(client_id, **kwargs):
    today = date.today()
    data = {
        "client_id": client_id,
        "invoice_date": today,
        "due_date": today + timedelta(days=30),
        "items": [
            {"description": "Design", "quantity": 2, "rate": 5000},
            {"description": "Development", "quantity": 1.5, "rate": 10000},
        ],
        "discount": 5000,
        "tax_rate": 18,
    }
    data.update(kwargs)
    return InvoiceCreate(**data)


def payment(amount):
    return PaymentCreate(payment_date=date.today(), method=PaymentMethod.BANK_TRANSFER, amount=amount)


@pytest.fixture
def invoice(db, acme, admin):
    return InvoiceService.create_invoice(db, invoice_payload(acme.id), admin)


class TestTotals:
    def test_compute_totals(self):
        """Test line amounts, discount before tax and the total"""
        items = [
            InvoiceItem(description="Design", quantity=2, rate=5000),
            InvoiceItem(description="Development", quantity=1.5, rate=10000),
        ]
        totals = compute_totals(items, discount=5000, tax_rate=18)
        assert [line["amount"] for line in totals["items"]] == [10000, 15000]
        assert totals["subtotal"] == 25000
        assert totals["tax_amount"] == 3600
        assert totals["total"] == 23600

    def test_discount_larger_than_subtotal(self):
        """Test that a large discount floors the total at zero"""
        items = [InvoiceItem(description="Audit", quantity=1, rate=1000)]
        totals = compute_totals(items, discount=5000, tax_rate=10)
        assert totals["tax_amount"] == 0
        assert totals["total"] == 0

    def test_to_cents_rounds_half_up(self):
        """Test rounding of fractional cents"""
        assert to_cents(10.5) == 11
        assert to_cents(10.49) == 10


class TestInvoiceService:
    def test_create_invoice(self, db, invoice, acme):
        """Test that a new invoice is numbered and totals are applied"""
        year = date.today().year % 100
        assert invoice.invoice_number == f"INV{year:02d}0001"
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.total == 23600
        assert invoice.balance_due == 23600
        assert invoice.paid_amount == 0

        db.refresh(acme)
        assert acme.total_billed == 23600
        assert acme.total_outstanding == 23600

    def test_create_invoice_as_paid(self, db, acme, admin):
        """Test that new invoices cannot start out paid"""
        with pytest.raises(InvalidStatus):
            InvoiceService.create_invoice(db, invoice_payload(acme.id, status=InvoiceStatus.PAID), admin)

    def test_create_invoice_bad_dates(self, db, acme, admin):
        """Test that the due date cannot precede the invoice date"""
        with pytest.raises(InvalidDateRange):
            InvoiceService.create_invoice(
                db, invoice_payload(acme.id, due_date=date.today() - timedelta(days=1)), admin
            )

    def test_create_invoice_for_foreign_project(self, db, acme, admin, project):
        """Test that the project must belong to the invoiced client"""
        other = Client(name="Bob", company_name="Globex", email="ap@globex.example.com", phone="555-0200")
        db.add(other)
        db.commit()
        with pytest.raises(NotFound):
            InvoiceService.create_invoice(db, invoice_payload(other.id, project_id=project.id), admin)

    def test_non_admin_cannot_create(self, db, acme, manager):
        """Test that only admins issue invoices"""
        with pytest.raises(Forbidden):
            InvoiceService.create_invoice(db, invoice_payload(acme.id), manager)

    def test_payments_settle_invoice(self, db, invoice, acme, admin):
        """Test partial and final payments"""
        partial = InvoiceService.record_payment(db, invoice.id, payment(10000), admin)
        assert partial.paid_amount == 10000
        assert partial.balance_due == 13600
        assert partial.status == InvoiceStatus.DRAFT

        settled = InvoiceService.record_payment(db, invoice.id, payment(13600), admin)
        assert settled.balance_due == 0
        assert settled.status == InvoiceStatus.PAID
        assert len(settled.payments) == 2

        db.refresh(acme)
        assert acme.total_paid == 23600
        assert acme.total_outstanding == 0

        with pytest.raises(InvalidPayment):
            InvoiceService.record_payment(db, invoice.id, payment(100), admin)

    def test_overpayment(self, db, invoice, admin):
        """Test that payments cannot exceed the balance"""
        with pytest.raises(InvalidPayment):
            InvoiceService.record_payment(db, invoice.id, payment(23601), admin)

    def test_status_changes(self, db, invoice, admin):
        """Test that paid follows payments and a paid invoice is locked"""
        sent = InvoiceService.update_status(db, invoice.id, InvoiceStatus.SENT, admin)
        assert sent.status == InvoiceStatus.SENT

        with pytest.raises(InvalidStatus):
            InvoiceService.update_status(db, invoice.id, InvoiceStatus.PAID, admin)

        InvoiceService.record_payment(db, invoice.id, payment(23600), admin)
        with pytest.raises(InvalidStatus):
            InvoiceService.update_status(db, invoice.id, InvoiceStatus.OVERDUE, admin)

    def test_delete_invoice(self, db, invoice, acme, admin):
        """Test that deleting hides the invoice and updates the client totals"""
        InvoiceService.delete_invoice(db, invoice.id, admin)
        assert InvoiceService.get_invoices(db, admin) == []
        db.refresh(acme)
        assert acme.total_billed == 0

    def test_visibility(self, db, invoice, client_user, employee):
        """Test that clients see their own invoices and employees see none"""
        assert [i.id for i in InvoiceService.get_invoices(db, client_user)] == [invoice.id]
        assert InvoiceService.get_invoice(db, invoice.id, client_user).id == invoice.id

        assert InvoiceService.get_invoices(db, employee) == []
        with pytest.raises(Forbidden):
            InvoiceService.get_invoice(db, invoice.id, employee)

        stranger = make_user(db, "globex_contact", "client")
        assert InvoiceService.get_invoices(db, stranger) == []


class TestInvoiceAPI:
    def test_create_and_pay(self, acme, admin):
        """Test creating an invoice and recording a payment over HTTP"""
        today = date.today()
        response = client.post(
            "/api/v1/invoices/",
            headers=auth_headers(admin),
            json={
                "client_id": acme.id,
                "invoice_date": today.isoformat(),
                "due_date": (today + timedelta(days=14)).isoformat(),
                "items": [{"description": "Hosting", "quantity": 1, "rate": 12000}],
            },
        )
        assert response.status_code == 201
        created = response.json()["data"]
        assert created["total"] == 12000

        response = client.post(
            f"/api/v1/invoices/{created['id']}/payments",
            headers=auth_headers(admin),
            json={"payment_date": today.isoformat(), "method": "UPI", "amount": 12000},
        )
        assert response.status_code == 201
        paid = response.json()["data"]
        assert paid["status"] == "paid"
        assert paid["payments"][0]["method"] == "UPI"

    def test_overpayment_is_tagged(self, invoice, admin):
        """Test that an overpayment reports InvalidPayment"""
        response = client.post(
            f"/api/v1/invoices/{invoice.id}/payments",
            headers=auth_headers(admin),
            json={"payment_date": date.today().isoformat(), "method": "Cash", "amount": 99999},
        )
        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidPayment"

    def test_client_lists_own_invoices(self, invoice, client_user):
        """Test the invoice listing for a client login"""
        response = client.get("/api/v1/invoices/", headers=auth_headers(client_user))
        assert response.status_code == 200
        assert [i["id"] for i in response.json()["data"]] == [invoice.id]


class TestOverdueInvoices:
    @pytest.fixture
    def past_due(self, db, acme, admin):
        today = date.today()

        def factory(status=None):
            created = InvoiceService.create_invoice(
                db,
                invoice_payload(
                    acme.id, invoice_date=today - timedelta(days=40), due_date=today - timedelta(days=10)
                ),
                admin,
            )
            if status is not None:
                InvoiceService.update_status(db, created.id, status, admin)
            return created

        return factory

    def test_mark_overdue(self, db, past_due, invoice, acme, admin):
        """Test that only sent, past-due invoices with a balance are flagged"""
        late = past_due(InvoiceStatus.SENT)
        draft = past_due()
        settled = past_due(InvoiceStatus.SENT)
        InvoiceService.record_payment(db, settled.id, payment(23600), admin)
        InvoiceService.update_status(db, invoice.id, InvoiceStatus.SENT, admin)

        flagged = InvoiceService.mark_overdue(db, admin)
        assert [i.id for i in flagged] == [late.id]

        for record, expected in (
            (late, InvoiceStatus.OVERDUE),
            (draft, InvoiceStatus.DRAFT),
            (settled, InvoiceStatus.PAID),
            (invoice, InvoiceStatus.SENT),
        ):
            db.refresh(record)
            assert record.status == expected

        stats = StatsService.invoice_stats(db, admin)
        assert stats.overdue == 1
        assert stats.overdue_amount == 23600

        db.refresh(acme)
        assert acme.total_outstanding == 3 * 23600

        # Nothing left to flag
        assert InvoiceService.mark_overdue(db, admin) == []

    def test_mark_overdue_admin_only(self, db, manager):
        """Test that only admins run the overdue sweep"""
        with pytest.raises(Forbidden):
            InvoiceService.mark_overdue(db, manager)

    def test_mark_overdue_endpoint(self, past_due, admin, manager):
        """Test the overdue sweep over HTTP"""
        late = past_due(InvoiceStatus.SENT)

        response = client.post("/api/v1/invoices/mark-overdue", headers=auth_headers(manager))
        assert response.status_code == 403

        response = client.post("/api/v1/invoices/mark-overdue", headers=auth_headers(admin))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data == {"updated_count": 1, "invoice_numbers": [late.invoice_number]}


class TestConcurrentPayments:
    def test_stale_payment_conflicts(self, db, invoice, admin):
        """Test that a payment based on a stale balance is rejected instead of overpaying"""
        stale = TestingSessionLocal()
        try:
            stale_invoice = stale.get(Invoice, invoice.id)
            assert stale_invoice.version_id == 1
            assert stale_invoice.balance_due == 23600

            InvoiceService.record_payment(db, invoice.id, payment(20000), admin)

            with pytest.raises(ConcurrentUpdateConflict):
                InvoiceService.record_payment(stale, invoice.id, payment(20000), admin)
        finally:
            stale.close()

        db.refresh(invoice)
        assert invoice.paid_amount == 20000
        assert invoice.balance_due == 3600
        assert len(invoice.payments) == 1
