"""
Tests: Global Apply Workflow — targets, apply reports, single-step undo.

Run with:
    pytest margin_calculator/tests/test_global_apply.py -v
"""

import pytest

from margin_calculator.engine.ledger import ProductLedger
from margin_calculator.models.enums import FreeSetPolicy, PricingField
from margin_calculator.models.schemas import CatalogItem
from margin_calculator.services.global_apply_service import GlobalApplyService


def _service(**targets) -> GlobalApplyService:
    ledger = ProductLedger(policy=FreeSetPolicy.PAIR)
    ledger.add(CatalogItem(code="A", name="Pen", reference_price=10))
    ledger.add(CatalogItem(code="B", name="Notebook", reference_price=4))
    ledger.add(CatalogItem(code="C", name="Unpriced"))
    return GlobalApplyService(ledger, **targets)


class TestTargets:
    def test_defaults_come_from_settings(self):
        service = _service()
        assert service.margin_target == 30.0
        assert service.markup_target == 50.0

    def test_explicit_targets(self):
        service = _service(margin_target=25, markup_target="40")
        assert service.margin_target == 25.0
        assert service.markup_target == 40.0

    def test_invalid_target_becomes_zero(self):
        service = _service()
        assert service.set_margin_target("") == 0.0
        assert service.set_markup_target("abc") == 0.0


class TestApply:
    def test_apply_margin_reports_counts(self):
        service = _service()
        result = service.apply_margin()

        assert result.field is PricingField.MARGIN
        assert result.target == 30.0
        assert result.rows_applied == 2
        assert result.rows_changed == 2
        assert result.rows_skipped == 1
        assert service.ledger.get("A").price == pytest.approx(10 / 0.7)
        assert service.ledger.get("C").price is None

    def test_apply_markup_with_new_target(self):
        service = _service()
        result = service.apply_markup(40)

        assert service.markup_target == 40.0
        assert result.field is PricingField.MARKUP
        assert service.ledger.get("B").price == pytest.approx(5.6)
        assert service.ledger.get("B").locked_fields == {PricingField.MARGIN}

    def test_reapplying_same_target_changes_nothing(self):
        service = _service()
        service.apply_margin(35)
        result = service.apply_margin(35)
        assert result.rows_applied == 2
        assert result.rows_changed == 0


class TestUndo:
    def test_undo_restores_pre_apply_rows(self):
        service = _service()
        service.ledger.update_field("A", PricingField.PRICE, 12.5)
        before = service.ledger.list_rows()

        service.apply_markup(80)
        assert service.can_undo is True
        assert service.undo() is True

        assert service.ledger.list_rows() == before
        assert service.can_undo is False
        assert service.undo() is False

    def test_only_last_apply_is_kept(self):
        service = _service()
        service.apply_margin(30)
        after_first = service.ledger.list_rows()
        service.apply_markup(50)

        service.undo()
        assert service.ledger.list_rows() == after_first

    def test_nothing_to_undo_on_empty_ledger(self):
        service = GlobalApplyService(ProductLedger(policy=FreeSetPolicy.PAIR))
        result = service.apply_margin()
        assert result.rows_applied == 0
        assert service.can_undo is False
