"""
Return / warranty lifecycle.

pending -> approved -> completed, pending -> rejected. Refunds across a
sale's approved and completed returns never exceed the sale total, and
returns never move stock.
"""

import pytest

from retaildesk.services import catalog_service, fulfillment_service, return_service, sales_service
from retaildesk.services.return_service import ReturnError, ReturnNotFoundError


@pytest.fixture
def sale(hammer, tape, employee_user):
    cart = sales_service.build_cart([
        {"item_id": hammer.id, "quantity": 2},
        {"item_id": tape.id, "quantity": 1},
    ])
    # 2500 cents
    return sales_service.record_sale(cart.lines, payment_method="cash", sold_by_user_id=employee_user.id)


@pytest.fixture
def pending_return(sale, customer_user):
    return return_service.create_return(sale.id, "Handle cracked", requested_by_user_id=customer_user.id)


# =============================================================================
# CREATION
# =============================================================================

class TestCreate:

    def test_starts_pending(self, pending_return, sale):
        assert pending_return.status == "pending"
        assert pending_return.sale_id == sale.id
        assert pending_return.refund_amount_cents is None
        assert pending_return.warranty_claim is False

    def test_warranty_flag(self, sale):
        doc = return_service.create_return(sale.id, "Motor died", warranty_claim=True)
        assert doc.warranty_claim is True

    def test_reason_required(self, sale):
        with pytest.raises(ReturnError):
            return_service.create_return(sale.id, "   ")

    def test_unknown_sale(self, db_session):
        with pytest.raises(ReturnNotFoundError):
            return_service.create_return(4242, "Broken")

    def test_cancelled_order_cannot_be_returned(self, hammer, customer_user, employee_user):
        cart = sales_service.build_cart([{"item_id": hammer.id}])
        order = sales_service.record_sale(
            cart.lines, payment_method="card", customer_user_id=customer_user.id, is_online=True
        )
        fulfillment_service.cancel_order(order.id, employee_user.id)

        with pytest.raises(ReturnError, match="cancelled"):
            return_service.create_return(order.id, "Changed my mind")


# =============================================================================
# TRANSITIONS
# =============================================================================

class TestTransitions:

    def test_approve_defaults_to_full_refund(self, pending_return, admin_user):
        doc = return_service.approve_return(pending_return.id, admin_user.id, notes="Store credit")
        assert doc.status == "approved"
        assert doc.refund_amount_cents == 2500
        assert doc.processed_by_user_id == admin_user.id
        assert doc.notes == "Store credit"

    def test_partial_refund(self, pending_return, admin_user):
        doc = return_service.approve_return(pending_return.id, admin_user.id, refund_amount_cents=1000)
        assert doc.refund_amount_cents == 1000

    def test_complete_after_approve(self, pending_return, admin_user, employee_user):
        return_service.approve_return(pending_return.id, admin_user.id)
        doc = return_service.complete_return(pending_return.id, employee_user.id)
        assert doc.status == "completed"
        assert doc.completed_by_user_id == employee_user.id
        assert doc.completed_at is not None

    def test_complete_requires_approval(self, pending_return, admin_user):
        with pytest.raises(ReturnError) as exc:
            return_service.complete_return(pending_return.id, admin_user.id)
        assert exc.value.details["status"] == "pending"

    def test_reject_is_terminal(self, pending_return, admin_user):
        doc = return_service.reject_return(pending_return.id, admin_user.id, notes="Outside return window")
        assert doc.status == "rejected"

        with pytest.raises(ReturnError):
            return_service.approve_return(pending_return.id, admin_user.id)
        with pytest.raises(ReturnError):
            return_service.complete_return(pending_return.id, admin_user.id)
        assert return_service.get_return(pending_return.id).status == "rejected"

    def test_cannot_approve_twice(self, pending_return, admin_user):
        return_service.approve_return(pending_return.id, admin_user.id, refund_amount_cents=500)
        with pytest.raises(ReturnError):
            return_service.approve_return(pending_return.id, admin_user.id, refund_amount_cents=500)
        assert return_service.get_return(pending_return.id).refund_amount_cents == 500

    def test_cancelled_order_cannot_be_refunded(self, hammer, customer_user, admin_user, employee_user):
        cart = sales_service.build_cart([{"item_id": hammer.id}])
        order = sales_service.record_sale(
            cart.lines, payment_method="card", customer_user_id=customer_user.id, is_online=True
        )
        doc = return_service.create_return(order.id, "Ordered twice", requested_by_user_id=customer_user.id)
        fulfillment_service.cancel_order(order.id, employee_user.id)

        with pytest.raises(ReturnError, match="cancelled"):
            return_service.approve_return(doc.id, admin_user.id)
        assert return_service.get_return(doc.id).status == "pending"

    def test_unknown_return(self, admin_user):
        with pytest.raises(ReturnNotFoundError):
            return_service.approve_return(999, admin_user.id)
        with pytest.raises(ReturnNotFoundError):
            return_service.reject_return(999, admin_user.id)

    def test_returns_never_move_stock(self, pending_return, hammer, tape, admin_user):
        return_service.approve_return(pending_return.id, admin_user.id)
        return_service.complete_return(pending_return.id, admin_user.id)
        assert catalog_service.get_item(hammer.id).quantity == 8
        assert catalog_service.get_item(tape.id).quantity == 9


# =============================================================================
# REFUND BOUNDS
# =============================================================================

class TestRefundBounds:

    def test_refund_cannot_exceed_sale_total(self, pending_return, admin_user):
        with pytest.raises(ReturnError) as exc:
            return_service.approve_return(pending_return.id, admin_user.id, refund_amount_cents=2501)
        assert exc.value.details["refundable_cents"] == 2500
        assert return_service.get_return(pending_return.id).status == "pending"

    def test_negative_refund_rejected(self, pending_return, admin_user):
        with pytest.raises(ReturnError):
            return_service.approve_return(pending_return.id, admin_user.id, refund_amount_cents=-1)

    def test_non_integer_refund_rejected(self, pending_return, admin_user):
        with pytest.raises(ReturnError):
            return_service.approve_return(pending_return.id, admin_user.id, refund_amount_cents=12.5)

    def test_refunds_across_returns_bounded_by_total(self, sale, admin_user):
        first = return_service.create_return(sale.id, "Hammer head loose")
        second = return_service.create_return(sale.id, "Tape does not retract")
        third = return_service.create_return(sale.id, "Second hammer also loose")

        return_service.approve_return(first.id, admin_user.id, refund_amount_cents=2000)

        with pytest.raises(ReturnError):
            return_service.approve_return(second.id, admin_user.id, refund_amount_cents=600)

        doc = return_service.approve_return(second.id, admin_user.id)
        assert doc.refund_amount_cents == 500

        doc = return_service.approve_return(third.id, admin_user.id)
        assert doc.refund_amount_cents == 0

    def test_rejected_returns_do_not_count(self, sale, admin_user):
        first = return_service.create_return(sale.id, "Wrong size")
        second = return_service.create_return(sale.id, "Wrong size again")
        return_service.approve_return(first.id, admin_user.id, refund_amount_cents=1000)
        return_service.complete_return(first.id, admin_user.id)

        rejected = return_service.create_return(sale.id, "Not ours")
        return_service.reject_return(rejected.id, admin_user.id)

        doc = return_service.approve_return(second.id, admin_user.id)
        assert doc.refund_amount_cents == 1500


# =============================================================================
# QUERIES
# =============================================================================

class TestQueries:

    def test_list_by_status_and_sale(self, sale, pending_return, admin_user):
        other = return_service.create_return(sale.id, "Second thoughts")
        return_service.reject_return(other.id, admin_user.id)

        assert [r.id for r in return_service.list_returns(status="pending")] == [pending_return.id]
        assert [r.id for r in return_service.list_returns(status="rejected")] == [other.id]
        assert [r.id for r in return_service.get_sale_returns(sale.id)] == [pending_return.id, other.id]

    def test_customer_sees_own_requests_and_orders(self, hammer, customer_user, other_customer, employee_user):
        cart = sales_service.build_cart([{"item_id": hammer.id}])
        order = sales_service.record_sale(
            cart.lines, payment_method="card", customer_user_id=customer_user.id, is_online=True
        )
        fulfillment_service.complete_order(order.id, employee_user.id)

        # Raised at the counter on the customer's behalf
        on_behalf = return_service.create_return(order.id, "Bent claw", requested_by_user_id=employee_user.id)
        return_service.create_return(order.id, "Someone else asking", requested_by_user_id=other_customer.id)

        mine = return_service.list_customer_returns(customer_user.id)
        assert on_behalf.id in [r.id for r in mine]
        assert len(mine) == 2
        assert len(return_service.list_customer_returns(other_customer.id)) == 1
