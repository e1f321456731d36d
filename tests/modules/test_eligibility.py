"""
Tests for purchase-to-reimbursement eligibility.

``check_purchase_for_reimbursement`` never raises; each failing rule maps to
its own error code.
"""

from uuid import uuid4

import pytest

from backoffice_config import EligibilityConfig
from backoffice_modules.eligibility import EligibilityValidator


@pytest.fixture
def linked_claim(reimbursement_service, reimbursement_input, test_actor_id):
    def _create(purchase):
        return reimbursement_service.create(
            reimbursement_input(
                source_type="purchase",
                source_purchase_id=purchase.id,
                category="purchase_reimbursement",
                details=None,
            ),
            test_actor_id,
        )

    return _create


class TestCheckPurchaseEligibility:

    def test_received_purchase_eligible(self, reimbursement_service, received_purchase):
        purchase = received_purchase()
        result = reimbursement_service.check_purchase_eligibility(purchase.id)
        assert result.eligible is True
        assert result.code is None

    def test_unknown_purchase(self, reimbursement_service):
        result = reimbursement_service.check_purchase_eligibility(uuid4())
        assert (result.eligible, result.code) == (False, "SOURCE_PURCHASE_NOT_FOUND")

    def test_draft_purchase(self, reimbursement_service, draft_purchase):
        purchase = draft_purchase()
        result = reimbursement_service.check_purchase_eligibility(purchase.id)
        assert (result.eligible, result.code) == (False, "SOURCE_PURCHASE_NOT_APPROVED")

    def test_corporate_transfer(self, reimbursement_service, approved_purchase):
        purchase = approved_purchase(payment_method="corporate_transfer")
        result = reimbursement_service.check_purchase_eligibility(purchase.id)
        assert (result.eligible, result.code) == (False, "SOURCE_PURCHASE_NOT_REIMBURSABLE")

    def test_goods_not_received(self, reimbursement_service, approved_purchase):
        purchase = approved_purchase()
        result = reimbursement_service.check_purchase_eligibility(purchase.id)
        assert (result.eligible, result.code) == (False, "SOURCE_PURCHASE_INBOUND_REQUIRED")
        assert result.message

    def test_already_linked(self, reimbursement_service, received_purchase, linked_claim, captured_logs):
        purchase = received_purchase()
        claim = linked_claim(purchase)

        result = reimbursement_service.check_purchase_eligibility(purchase.id)
        assert (result.eligible, result.code) == (False, "SOURCE_PURCHASE_ALREADY_LINKED")
        assert any(
            r["message"] == "purchase_not_eligible"
            and r["reason_code"] == "SOURCE_PURCHASE_ALREADY_LINKED"
            for r in captured_logs()
        )

        # the claim holding the link may keep it
        own = reimbursement_service.check_purchase_eligibility(
            purchase.id, exclude_reimbursement_id=claim.id
        )
        assert own.eligible is True

    def test_paid_purchase_still_eligible(
        self, purchase_service, reimbursement_service, received_purchase, test_actor_id,
    ):
        purchase = received_purchase()
        purchase_service.mark_paid(purchase.id, test_actor_id)
        assert reimbursement_service.check_purchase_eligibility(purchase.id).eligible is True

    def test_inbound_requirement_configurable(self, session, approved_purchase):
        purchase = approved_purchase()
        validator = EligibilityValidator(
            session, EligibilityConfig(require_inbound_movement=False)
        )
        assert validator.check_purchase_for_reimbursement(purchase.id).eligible is True


class TestInvoiceEvidenceRule:

    @pytest.mark.parametrize(
        "invoice_type, invoice_status, images, expected",
        [
            ("none", None, (), True),
            ("general", "not_required", (), True),
            ("general", "pending", (), False),
            ("special", "issued", (), False),
            ("special", "issued", ("inv.pdf",), True),
            ("general", "pending", ("  ",), False),
        ],
    )
    def test_has_invoice_evidence(self, invoice_type, invoice_status, images, expected):
        assert EligibilityValidator.has_invoice_evidence(
            invoice_type, invoice_status, images
        ) is expected
