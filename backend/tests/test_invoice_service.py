# Overview: Pytest coverage for invoice compilation, pricing, lifecycle and share links.

"""
Invoice Tests

Covers:
- Batch compilation is all-or-nothing
- Per-org sequential numbering (INV-0001, INV-0002, ...)
- Totals per ton (net lbs) and per bale
- draft -> sent -> paid and sent -> draft; everything else refused
- Share-token lookup without identity
- Quick sale (ticket + approval + invoice in one unit)
"""

import pytest

from hayledger.errors import Forbidden, InsufficientStock, InvalidStateTransition, NotFound, ValidationFailed
from hayledger.models import Invoice, Ticket, Transaction
from hayledger.services import invoice_service, ticket_service
from hayledger.services.concurrency import run_in_transaction

from conftest import ORG_A, ORG_B, add_tx


def approved_ticket(driver, manager, stack, location, amount, net_lbs=None, customer=None):
    ticket = run_in_transaction(lambda: ticket_service.create_ticket(
        actor=driver, type="sale", stack_id=stack.id, location_id=location.id,
        amount=amount, net_lbs=net_lbs, customer=customer,
    ))
    return run_in_transaction(lambda: ticket_service.approve_ticket(actor=manager, ticket_id=ticket.id))


def compile_(actor, ticket_ids, **kwargs):
    return run_in_transaction(
        lambda: invoice_service.compile_invoice(actor=actor, ticket_ids=ticket_ids, **kwargs)
    )


def set_status(actor, invoice_id, status):
    return run_in_transaction(
        lambda: invoice_service.update_invoice_status(actor=actor, invoice_id=invoice_id, status=status)
    )


@pytest.fixture
def stocked(db_session, stack_a, barn_a):
    add_tx(stack_a, barn_a, "production", 1000)
    return stack_a, barn_a


class TestCompileInvoice:

    def test_per_ton_total_from_net_weight(self, stocked, driver_a, bookkeeper_a):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 250, net_lbs=300000)
        t2 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 250, net_lbs=300000)

        invoice = compile_(bookkeeper_a, [t1.id, t2.id], customer="Hill Dairy", price_per_unit=60, price_unit="ton")

        # 600,000 lbs = 300 tons at $60/ton
        assert invoice.total_amount == pytest.approx(18000)
        assert invoice.status == "draft"
        assert invoice.invoice_number == "INV-0001"
        assert len(invoice.share_token) == 64

    def test_per_bale_total(self, stocked, driver_a, bookkeeper_a):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 30)
        t2 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 20)

        invoice = compile_(bookkeeper_a, [t1.id, t2.id], price_per_unit=50, price_unit="bale")

        assert invoice.total_amount == pytest.approx(2500)

    def test_no_price_gives_zero_total(self, stocked, driver_a, bookkeeper_a):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 30, net_lbs=36000)

        invoice = compile_(bookkeeper_a, [t1.id])

        assert invoice.total_amount == 0

    def test_tickets_become_invoiced(self, stocked, driver_a, bookkeeper_a, db_session):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 10)
        t2 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 10)

        invoice = compile_(bookkeeper_a, [t1.id, t2.id])

        for ticket_id in (t1.id, t2.id):
            ticket = db_session.get(Ticket, ticket_id)
            assert ticket.status == "invoiced"
            assert ticket.invoice_id == invoice.id

    def test_one_unapproved_ticket_fails_whole_batch(self, stocked, driver_a, bookkeeper_a, db_session):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 10)
        pending = run_in_transaction(lambda: ticket_service.create_ticket(
            actor=driver_a, type="sale", stack_id=stack.id, location_id=barn.id, amount=10,
        ))

        with pytest.raises(InvalidStateTransition):
            compile_(bookkeeper_a, [t1.id, pending.id], price_per_unit=60)

        db_session.expire_all()
        assert db_session.query(Invoice).count() == 0
        assert db_session.get(Ticket, t1.id).status == "approved"
        assert db_session.get(Ticket, t1.id).invoice_id is None
        assert db_session.get(Ticket, pending.id).status == "pending"

    def test_already_invoiced_ticket_fails_batch(self, stocked, driver_a, bookkeeper_a, db_session):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 10)
        t2 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 10)
        compile_(bookkeeper_a, [t1.id])

        with pytest.raises(InvalidStateTransition):
            compile_(bookkeeper_a, [t1.id, t2.id])

        assert db_session.query(Invoice).count() == 1
        assert db_session.get(Ticket, t2.id).status == "approved"

    def test_foreign_ticket_fails_batch(self, stocked, driver_a, bookkeeper_a, admin_b, stack_b, barn_b, db_session):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 10)
        add_tx(stack_b, barn_b, "production", 100)
        foreign = approved_ticket(admin_b, admin_b, stack_b, barn_b, 10)

        with pytest.raises(InvalidStateTransition):
            compile_(bookkeeper_a, [t1.id, foreign.id])

        assert db_session.query(Invoice).count() == 0

    def test_empty_selection_is_rejected(self, db_session, bookkeeper_a):
        with pytest.raises(ValidationFailed):
            compile_(bookkeeper_a, [])

    def test_driver_cannot_compile(self, stocked, driver_a, bookkeeper_a):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 10)
        with pytest.raises(Forbidden):
            compile_(driver_a, [t1.id])


class TestNumbering:

    def test_numbers_increase_per_org(self, stocked, driver_a, bookkeeper_a, admin_b, stack_b, barn_b):
        stack, barn = stocked
        numbers = []
        for _ in range(3):
            ticket = approved_ticket(driver_a, bookkeeper_a, stack, barn, 5)
            numbers.append(compile_(bookkeeper_a, [ticket.id]).invoice_number)

        assert numbers == ["INV-0001", "INV-0002", "INV-0003"]

        add_tx(stack_b, barn_b, "production", 100)
        ticket_b = approved_ticket(admin_b, admin_b, stack_b, barn_b, 5)
        assert compile_(admin_b, [ticket_b.id]).invoice_number == "INV-0001"

    def test_failed_compilation_does_not_consume_a_number(self, stocked, driver_a, bookkeeper_a):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 5)
        with pytest.raises(ValidationFailed):
            compile_(bookkeeper_a, [t1.id], price_per_unit=10, price_unit="pallet")

        assert compile_(bookkeeper_a, [t1.id]).invoice_number == "INV-0001"

    def test_counter_continues_after_existing_invoices(self, stocked, driver_a, bookkeeper_a, db_session):
        """Invoices written before the org had a counter row are not renumbered over."""
        stack, barn = stocked
        for org_id, number in [(ORG_A, "INV-0001"), (ORG_A, "INV-0007"), (ORG_A, "INV-LEGACY"), (ORG_B, "INV-0040")]:
            db_session.add(Invoice(org_id=org_id, invoice_number=number, created_by="seed"))
        db_session.commit()

        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 5)
        t2 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 5)

        assert compile_(bookkeeper_a, [t1.id]).invoice_number == "INV-0008"
        assert compile_(bookkeeper_a, [t2.id]).invoice_number == "INV-0009"


class TestStatusTransitions:

    @pytest.fixture
    def invoice(self, stocked, driver_a, bookkeeper_a):
        stack, barn = stocked
        ticket = approved_ticket(driver_a, bookkeeper_a, stack, barn, 5)
        return compile_(bookkeeper_a, [ticket.id])

    def test_draft_sent_paid(self, invoice, bookkeeper_a):
        assert set_status(bookkeeper_a, invoice.id, "sent").status == "sent"
        assert set_status(bookkeeper_a, invoice.id, "paid").status == "paid"

    def test_unsend(self, invoice, bookkeeper_a):
        set_status(bookkeeper_a, invoice.id, "sent")
        assert set_status(bookkeeper_a, invoice.id, "draft").status == "draft"

    def test_draft_cannot_skip_to_paid(self, invoice, bookkeeper_a):
        with pytest.raises(InvalidStateTransition):
            set_status(bookkeeper_a, invoice.id, "paid")

    def test_paid_is_terminal(self, invoice, bookkeeper_a):
        set_status(bookkeeper_a, invoice.id, "sent")
        set_status(bookkeeper_a, invoice.id, "paid")
        for status in ("draft", "sent"):
            with pytest.raises(InvalidStateTransition):
                set_status(bookkeeper_a, invoice.id, status)

    def test_unknown_status(self, invoice, bookkeeper_a):
        with pytest.raises(ValidationFailed):
            set_status(bookkeeper_a, invoice.id, "void")


class TestUpdateAndDetail:

    def test_repricing_recomputes_total(self, stocked, driver_a, bookkeeper_a):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 40, net_lbs=48000)
        invoice = compile_(bookkeeper_a, [t1.id], price_per_unit=60, price_unit="ton")
        assert invoice.total_amount == pytest.approx(1440)

        updated = run_in_transaction(lambda: invoice_service.update_invoice(
            actor=bookkeeper_a, invoice_id=invoice.id,
            patch={"price_per_unit": 5, "price_unit": "bale", "notes": "Bale pricing"},
        ))

        assert updated.total_amount == pytest.approx(200)
        assert updated.notes == "Bale pricing"

    def test_paid_invoice_cannot_be_edited(self, stocked, driver_a, bookkeeper_a):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 40)
        invoice = compile_(bookkeeper_a, [t1.id])
        set_status(bookkeeper_a, invoice.id, "sent")
        set_status(bookkeeper_a, invoice.id, "paid")

        with pytest.raises(InvalidStateTransition):
            run_in_transaction(lambda: invoice_service.update_invoice(
                actor=bookkeeper_a, invoice_id=invoice.id, patch={"customer": "Someone else"},
            ))

    def test_detail_lines(self, stocked, driver_a, bookkeeper_a):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 40, net_lbs=48000)
        t2 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 10)
        invoice = compile_(bookkeeper_a, [t1.id, t2.id], price_per_unit=100, price_unit="ton")

        detail = invoice_service.get_invoice_detail(ORG_A, invoice.id)

        assert [line["ticket_id"] for line in detail["lines"]] == [t1.id, t2.id]
        assert detail["lines"][0]["amount"] == pytest.approx(2400)
        assert detail["lines"][0]["stack_name"] == stack.name
        assert detail["lines"][0]["location_name"] == barn.name
        # No scale weight bills nothing per ton
        assert detail["lines"][1]["amount"] == 0
        assert detail["total_bales"] == 50

    def test_detail_is_tenant_scoped(self, stocked, driver_a, bookkeeper_a):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 5)
        invoice = compile_(bookkeeper_a, [t1.id])

        with pytest.raises(NotFound):
            invoice_service.get_invoice_detail(ORG_B, invoice.id)


class TestShareLinks:

    def test_public_lookup_by_token(self, stocked, driver_a, bookkeeper_a):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 5)
        invoice = compile_(bookkeeper_a, [t1.id], customer="Hill Dairy")

        view = invoice_service.get_public_invoice(invoice.share_token)

        assert view["invoice"]["invoice_number"] == "INV-0001"
        assert view["invoice"]["customer"] == "Hill Dairy"
        assert "share_token" not in view["invoice"]
        assert len(view["lines"]) == 1

    @pytest.mark.parametrize("token", ["", "0" * 64, "not-a-token"])
    def test_unknown_token_is_not_found(self, db_session, token):
        with pytest.raises(NotFound):
            invoice_service.get_public_invoice(token)

    def test_tokens_are_unique_and_random(self):
        tokens = {invoice_service.generate_share_token() for _ in range(50)}
        assert len(tokens) == 50
        assert all(len(t) == 64 and int(t, 16) >= 0 for t in tokens)

    def test_backfill(self, stocked, driver_a, bookkeeper_a, db_session):
        stack, barn = stocked
        t1 = approved_ticket(driver_a, bookkeeper_a, stack, barn, 5)
        invoice = compile_(bookkeeper_a, [t1.id])
        invoice.share_token = None
        db_session.commit()

        assert invoice_service.backfill_share_tokens() == 1
        db_session.commit()

        assert len(db_session.get(Invoice, invoice.id).share_token) == 64
        assert invoice_service.backfill_share_tokens() == 0


class TestQuickSale:

    def test_quick_sale_creates_ticket_sale_and_invoice(self, stocked, bookkeeper_a, db_session):
        stack, barn = stocked

        invoice = run_in_transaction(lambda: invoice_service.quick_sale(
            actor=bookkeeper_a, stack_id=stack.id, location_id=barn.id, amount=20,
            customer="Walk-in", price_per_unit=8, price_unit="bale",
        ))

        assert invoice.total_amount == pytest.approx(160)
        ticket = db_session.query(Ticket).one()
        assert ticket.status == "invoiced"
        assert ticket.invoice_id == invoice.id
        assert db_session.get(Transaction, ticket.transaction_id).amount == 20

    def test_quick_sale_failure_leaves_nothing(self, stocked, bookkeeper_a, db_session):
        stack, barn = stocked

        with pytest.raises(InsufficientStock):
            run_in_transaction(lambda: invoice_service.quick_sale(
                actor=bookkeeper_a, stack_id=stack.id, location_id=barn.id, amount=5000,
            ))

        assert db_session.query(Ticket).count() == 0
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(Transaction).filter_by(type="sale").count() == 0

    def test_driver_cannot_quick_sale(self, stocked, driver_a):
        stack, barn = stocked
        with pytest.raises(Forbidden):
            run_in_transaction(lambda: invoice_service.quick_sale(
                actor=driver_a, stack_id=stack.id, location_id=barn.id, amount=5,
            ))
