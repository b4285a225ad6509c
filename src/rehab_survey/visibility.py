"""FieldVisibilityEvaluator — decides which composite-form fields are relevant.

A field without a ``condition`` is always shown.  A conditioned field is
shown only when a prior answer matches the rule registered for its tag in
``constants.VISIBILITY_RULES``:

  - **eq**: the referenced single-choice step was answered with the value
  - **contains**: the value is a member of the referenced multi-choice answer

Unanswered steps never satisfy a rule, and an unrecognised tag is treated
as not visible.  Conditions look at answers recorded for earlier steps
only, never at the in-progress values of the form being filled in.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from rehab_survey.constants import VISIBILITY_RULES
from rehab_survey.models.session import FieldRow
from rehab_survey.models.step import FieldDescriptor, StepDescriptor

logger = logging.getLogger(__name__)


class FieldVisibilityEvaluator:
    """Evaluates field visibility conditions against prior answers.

    Args:
        rules: optional override of the condition vocabulary; maps a tag
            to ``(operator, step_id, expected_value)``.
    """

    def __init__(self, rules: dict[str, tuple[str, str, str]] | None = None) -> None:
        self._rules = VISIBILITY_RULES if rules is None else rules

    def is_visible(self, field: FieldDescriptor, answers: dict[str, Any]) -> bool:
        """Return True if ``field`` should be shown given ``answers``."""
        if not field.condition:
            return True

        rule = self._rules.get(field.condition)
        if rule is None:
            logger.warning(
                "Unknown visibility condition %r on field %s, hiding it",
                field.condition, field.id,
            )
            return False

        op, step_id, expected = rule
        return self._compare(op, answers.get(step_id), expected)

    def visible_fields(
        self, step: StepDescriptor, answers: dict[str, Any]
    ) -> list[FieldDescriptor]:
        """Visible fields of ``step`` in declaration order."""
        return [f for f in step.fields if self.is_visible(f, answers)]

    @staticmethod
    def layout(fields: Iterable[FieldDescriptor]) -> list[FieldRow]:
        """Attach group headers to a run of fields.

        A header opens on each field whose group differs from the group
        currently open.  Ungrouped fields neither open nor close a group.
        """
        rows: list[FieldRow] = []
        current_group: str | None = None
        for field in fields:
            header = None
            if field.group and field.group != current_group:
                header = field.group
                current_group = field.group
            rows.append(FieldRow(field=field, group_header=header))
        return rows

    @staticmethod
    def _compare(op: str, answer: Any, expected: str) -> bool:
        if answer is None:
            return False

        if op == "eq":
            return answer == expected

        if op == "contains":
            if not isinstance(answer, (list, tuple, set, frozenset)):
                return False
            return expected in answer

        logger.warning("Unknown visibility operator: %s", op)
        return False
