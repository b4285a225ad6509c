"""StepAnswerValidator — per-kind validation of a candidate answer.

The controller runs every candidate answer through :meth:`validate` before
anything is recorded or sent.  A rejection raises ``ValidationError``
carrying a user-facing reason; acceptance returns the normalized
``AnswerValue`` that is recorded and posted.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from typing import Any

from rehab_survey.constants import DEFAULT_BOOLEAN_OPTIONS
from rehab_survey.errors import ValidationError
from rehab_survey.formatter import normalize_numeric
from rehab_survey.models.step import AnswerValue, StepDescriptor
from rehab_survey.visibility import FieldVisibilityEvaluator

logger = logging.getLogger(__name__)

VALUE_REQUIRED = "value required."
SELECTION_REQUIRED = "selection required."
WHOLE_AMOUNT_REQUIRED = "enter a whole amount."

_HAS_DIGIT = re.compile(r"[0-9]")


def coerce_amount(raw: Any) -> Any:
    """Turn an integral float into an int; other inputs pass through.

    ``normalize_numeric`` keeps digits only, so ``1000000.0`` must not
    reach it as text.

    Raises:
        ValidationError: ``raw`` is a fractional or non-finite float.
    """
    if isinstance(raw, float):
        if not math.isfinite(raw) or not raw.is_integer():
            raise ValidationError(WHOLE_AMOUNT_REQUIRED)
        return int(raw)
    return raw


def allowed_values(step: StepDescriptor) -> list[str]:
    """Option values a choice step accepts, in declaration order."""
    if step.options:
        return [opt.value for opt in step.options]
    if step.kind == "boolean":
        return [value for value, _ in DEFAULT_BOOLEAN_OPTIONS]
    return []


class StepAnswerValidator:
    """Validates and normalizes candidate answers for the current step.

    Args:
        evaluator: visibility evaluator used to drop hidden form fields
        enforce_required_fields: when True, a composite form is rejected
            if a visible required field is absent or zero.  Off by default,
            matching the permissive behaviour of the step service's own UI.
    """

    def __init__(
        self,
        evaluator: FieldVisibilityEvaluator | None = None,
        *,
        enforce_required_fields: bool = False,
    ) -> None:
        self._evaluator = evaluator or FieldVisibilityEvaluator()
        self._enforce_required = enforce_required_fields

    def validate(
        self,
        step: StepDescriptor,
        raw: Any,
        answers: dict[str, Any] | None = None,
    ) -> AnswerValue:
        """Dispatch to the kind-specific validator.

        Args:
            step: the step being answered
            raw: the candidate answer as entered (text, option value(s),
                or a field-id → text mapping for composite forms)
            answers: answers recorded so far; drives form field visibility

        Raises:
            ValidationError: with a user-facing reason on rejection.
        """
        kind = step.kind
        if kind == "numeric":
            return self._validate_numeric(raw)
        elif kind in ("single_choice", "boolean"):
            return self._validate_single(step, raw)
        elif kind == "multi_choice":
            return self._validate_multi(step, raw)
        elif kind == "composite_form":
            return self._validate_form(step, raw, answers or {})
        else:
            raise ValidationError("this step cannot be answered.")

    # ------------------------------------------------------------------
    # Kind-specific validators
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_numeric(raw: Any) -> int:
        value = normalize_numeric(coerce_amount(raw))
        if value <= 0:
            raise ValidationError(VALUE_REQUIRED)
        return value

    def _validate_single(self, step: StepDescriptor, raw: Any) -> str:
        # A one-element selection list is as good as the bare value
        if isinstance(raw, (list, tuple)):
            if len(raw) > 1:
                raise ValidationError("select only one option.")
            raw = raw[0] if raw else None

        if raw is None or raw == "":
            raise ValidationError(SELECTION_REQUIRED)

        value = str(raw)
        if value not in allowed_values(step):
            raise ValidationError(f"unknown option: {value}")
        return value

    def _validate_multi(self, step: StepDescriptor, raw: Any) -> list[str]:
        if raw is None:
            raw = []
        elif isinstance(raw, str):
            raw = [raw]

        selected = {str(v) for v in raw}
        if not selected:
            raise ValidationError(SELECTION_REQUIRED)

        allowed = allowed_values(step)
        unknown = sorted(selected - set(allowed))
        if unknown:
            raise ValidationError(f"unknown option: {', '.join(unknown)}")

        # Declaration order keeps the submitted list deterministic
        return [v for v in allowed if v in selected]

    def _validate_form(
        self, step: StepDescriptor, raw: Any, answers: dict[str, Any]
    ) -> dict[str, int]:
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise ValidationError("invalid form input.")

        visible = self._evaluator.visible_fields(step, answers)
        declared = {f.id for f in step.fields}
        dropped = [k for k in raw if k not in declared]
        if dropped:
            logger.warning("Dropping undeclared form fields on %s: %s", step.step_id, dropped)

        values: dict[str, int] = {}
        for field in visible:
            entry = coerce_amount(raw.get(field.id))
            if entry is None:
                continue
            # Blank or digit-free entries stay absent rather than zero
            if not isinstance(entry, int) and not _HAS_DIGIT.search(str(entry)):
                continue
            values[field.id] = normalize_numeric(entry)

        if self._enforce_required:
            for field in visible:
                if field.required and not values.get(field.id):
                    raise ValidationError(f"{field.label}: {VALUE_REQUIRED}")

        return values
