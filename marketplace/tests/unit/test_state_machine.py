from types import SimpleNamespace
from uuid import uuid4

import pytest

from marketplace.ordering.domain import state_machine
from marketplace.ordering.domain.exceptions import AuthorizationError, ConflictError, ValidationError
from marketplace.ordering.domain.models.order import LINE_STATUS_FLOW


def make_line(seller_id, buyer_id):
    return SimpleNamespace(seller_id=seller_id, order=SimpleNamespace(buyer_id=buyer_id))


@pytest.mark.unit
class TestTransitions:
    @pytest.mark.parametrize("current,target", list(zip(LINE_STATUS_FLOW, LINE_STATUS_FLOW[1:])))
    def test_each_forward_step_is_allowed(self, current, target):
        state_machine.check_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("pending", "shipped"),
            ("pending", "delivered"),
            ("processing", "processing"),
            ("processing", "out_for_delivery"),
            ("shipped", "processing"),
            ("delivered", "processing"),
            ("cancelled", "processing"),
        ],
    )
    def test_skips_repeats_and_moves_backwards_are_rejected(self, current, target):
        with pytest.raises(ConflictError, match=f"from {current} to {target}"):
            state_machine.check_transition(current, target)

    def test_cancelled_is_not_a_transition_target(self):
        with pytest.raises(ValidationError):
            state_machine.validate_target("cancelled")

    def test_unknown_target_lists_allowed_statuses(self):
        with pytest.raises(ValidationError) as exc:
            state_machine.validate_target("returned")
        assert "out_for_delivery" in exc.value.message

    def test_is_leaving_pending(self):
        assert state_machine.is_leaving_pending("pending", "processing")
        assert not state_machine.is_leaving_pending("processing", "shipped")


@pytest.mark.unit
class TestRoles:
    def setup_method(self):
        self.seller = SimpleNamespace(id=uuid4())
        self.buyer = SimpleNamespace(id=uuid4())
        self.line = make_line(self.seller.id, self.buyer.id)

    @pytest.mark.parametrize("target", sorted(state_machine.SELLER_STATUSES))
    def test_seller_drives_fulfilment_states(self, target):
        state_machine.check_role(self.line, target, self.seller)
        with pytest.raises(AuthorizationError):
            state_machine.check_role(self.line, target, self.buyer)

    def test_only_buyer_confirms_delivery(self):
        state_machine.check_role(self.line, "delivered", self.buyer)
        with pytest.raises(AuthorizationError, match="Only the buyer"):
            state_machine.check_role(self.line, "delivered", self.seller)

    def test_buyer_who_is_also_seller_can_do_both(self):
        line = make_line(self.seller.id, self.seller.id)
        state_machine.check_role(line, "processing", self.seller)
        state_machine.check_role(line, "delivered", self.seller)
