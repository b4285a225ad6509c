"""Tests for composite-form field visibility and group layout."""

import pytest

from rehab_survey.models.step import FieldDescriptor, StepDescriptor
from rehab_survey.visibility import FieldVisibilityEvaluator

from helpers.steps import field, form

HOUSING = "step_03_housing"
ASSETS = "step_07_assets"
RETIREMENT = "step_08_retirement"


@pytest.fixture
def evaluator():
    return FieldVisibilityEvaluator()


def _field(condition=None, group=None, field_id="f"):
    return FieldDescriptor(id=field_id, label=field_id, condition=condition, group=group)


class TestIsVisible:
    """is_visible against the fixed condition vocabulary."""

    def test_unconditioned_field_always_visible(self, evaluator):
        assert evaluator.is_visible(_field(), {}) is True

    def test_housing_owned_requires_owned_answer(self, evaluator):
        f = _field("housing_owned")
        assert evaluator.is_visible(f, {HOUSING: "owned"}) is True
        assert evaluator.is_visible(f, {HOUSING: "rent_deposit"}) is False

    def test_unanswered_step_hides_field(self, evaluator):
        """A condition over a step with no recorded answer is not satisfied."""
        assert evaluator.is_visible(_field("housing_owned"), {}) is False
        assert evaluator.is_visible(_field("crypto"), {}) is False

    def test_rent_deposit(self, evaluator):
        f = _field("rent_deposit")
        assert evaluator.is_visible(f, {HOUSING: "rent_deposit"}) is True
        assert evaluator.is_visible(f, {HOUSING: "owned"}) is False

    @pytest.mark.parametrize("tag", [
        "deposit_over", "insurance_savings", "securities", "crypto", "vehicle",
    ])
    def test_asset_tags_test_membership(self, evaluator, tag):
        f = _field(tag)
        assert evaluator.is_visible(f, {ASSETS: [tag, "other"]}) is True, (
            f"{tag} should be visible when selected"
        )
        assert evaluator.is_visible(f, {ASSETS: ["other"]}) is False, (
            f"{tag} should be hidden when not selected"
        )

    def test_crypto_and_vehicle_independent(self, evaluator):
        answers = {ASSETS: ["crypto", "vehicle"]}
        assert evaluator.is_visible(_field("crypto"), answers) is True
        assert evaluator.is_visible(_field("vehicle"), answers) is True
        assert evaluator.is_visible(_field("securities"), answers) is False

    def test_contains_on_scalar_answer_is_false(self, evaluator):
        """A multi-choice rule never matches a non-list answer."""
        assert evaluator.is_visible(_field("crypto"), {ASSETS: "crypto"}) is False

    def test_retirement_fund(self, evaluator):
        f = _field("retirement_fund")
        assert evaluator.is_visible(f, {RETIREMENT: "retirement_fund"}) is True
        assert evaluator.is_visible(f, {RETIREMENT: "none"}) is False

    def test_unknown_tag_fails_closed(self, evaluator, caplog):
        with caplog.at_level("WARNING"):
            visible = evaluator.is_visible(_field("moon_base"), {HOUSING: "owned"})
        assert visible is False, "Unknown tags must hide the field"
        assert "moon_base" in caplog.text

    def test_custom_rules(self):
        evaluator = FieldVisibilityEvaluator(rules={"pets": ("eq", "s_pets", "yes")})
        assert evaluator.is_visible(_field("pets"), {"s_pets": "yes"}) is True
        assert evaluator.is_visible(_field("crypto"), {ASSETS: ["crypto"]}) is False


class TestVisibleFields:
    """visible_fields keeps declaration order."""

    def test_order_preserved(self, evaluator):
        step = StepDescriptor.model_validate(form(
            "s_form",
            field("a"),
            field("b", condition="vehicle"),
            field("c", condition="crypto"),
            field("d"),
        ))
        visible = evaluator.visible_fields(step, {ASSETS: ["vehicle"]})
        assert [f.id for f in visible] == ["a", "b", "d"]


class TestLayout:
    """Group headers open when the group differs from the one currently open."""

    def test_header_once_per_run(self):
        rows = FieldVisibilityEvaluator.layout([
            _field(group="주거", field_id="a"),
            _field(group="주거", field_id="b"),
            _field(group="금융", field_id="c"),
        ])
        assert [r.group_header for r in rows] == ["주거", None, "금융"]

    def test_ungrouped_field_does_not_reset_group(self):
        rows = FieldVisibilityEvaluator.layout([
            _field(group="주거", field_id="a"),
            _field(field_id="b"),
            _field(group="주거", field_id="c"),
        ])
        assert [r.group_header for r in rows] == ["주거", None, None], (
            "An ungrouped field in between must not reopen the same group"
        )

    def test_group_reopens_after_other_group(self):
        rows = FieldVisibilityEvaluator.layout([
            _field(group="A", field_id="a"),
            _field(group="B", field_id="b"),
            _field(group="A", field_id="c"),
        ])
        assert [r.group_header for r in rows] == ["A", "B", "A"]
