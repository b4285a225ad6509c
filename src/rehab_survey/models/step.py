"""Step descriptor models for the guided interview.

Each step carries one input kind that maps to a specific UI component and
answer handling logic:

  User-facing:
    - single_choice: pick one option (auto-submits on selection)
    - multi_choice: pick one or more options, then confirm
    - numeric: a non-negative amount (won)
    - boolean: yes / no, rendered like a single choice
    - composite_form: several named amounts on one screen

  Not user-facing:
    - terminal: the interview is over; reaching it triggers scoring

The step service speaks a slightly different vocabulary on the wire
(``input_type`` of ``number``, ``yes_no``, ``form``, ``info`` and form
fields nested under ``validation.fields``).  ``StepDescriptor`` accepts
both shapes and normalises to the internal one.
"""

from __future__ import annotations

from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rehab_survey.constants import WIRE_INPUT_KINDS

InputKind = Literal[
    "single_choice",
    "multi_choice",
    "numeric",
    "boolean",
    "composite_form",
    "terminal",
]

# Typed value recorded for a step:
#   str           : single choice, or boolean as "yes"/"no"
#   list[str]     : multi choice
#   int           : numeric amount
#   dict[str, int]: composite form, keyed by field id
AnswerValue = Union[str, List[str], int, dict[str, int]]


class StepOption(BaseModel):
    """A selectable option with a submitted value and a display label."""

    model_config = ConfigDict(frozen=True)

    value: str
    label: str


class FieldDescriptor(BaseModel):
    """A named numeric sub-field of a composite_form step.

    ``group`` clusters consecutive fields under one header.  ``condition``
    is a tag from the fixed visibility vocabulary (see
    ``constants.VISIBILITY_RULES``) evaluated against prior answers.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    required: bool = False
    help: Optional[str] = None
    tooltip: Optional[str] = None
    group: Optional[str] = None
    condition: Optional[str] = None


class StepDescriptor(BaseModel):
    """The current interview step.  Replaced wholesale on every load."""

    model_config = ConfigDict(frozen=True)

    step_id: str
    title: str = ""
    question: str = ""
    kind: InputKind
    options: List[StepOption] = Field(default_factory=list)
    fields: List[FieldDescriptor] = Field(default_factory=list)
    category: Optional[str] = None
    help_text: Optional[str] = None
    progress: Optional[int] = None
    total_steps: Optional[int] = None
    is_first: bool = False
    is_last: bool = False

    @model_validator(mode="before")
    @classmethod
    def _from_wire(cls, data: Any) -> Any:
        """Accept the step service's wire shape alongside the internal one."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if "kind" not in data and "input_type" in data:
            wire_type = data.pop("input_type")
            if wire_type not in WIRE_INPUT_KINDS:
                raise ValueError(f"Unknown input_type: {wire_type!r}")
            data["kind"] = WIRE_INPUT_KINDS[wire_type]

        # Form fields travel under validation.fields on the wire
        validation = data.pop("validation", None)
        if "fields" not in data and isinstance(validation, dict):
            data["fields"] = validation.get("fields") or []

        # The service sends null for absent option lists
        if data.get("options") is None:
            data.pop("options", None)
        return data

    @property
    def is_choice(self) -> bool:
        """True for kinds answered by picking among ``options``."""
        return self.kind in ("single_choice", "multi_choice", "boolean")

    @property
    def auto_submits(self) -> bool:
        """True for kinds where selecting an option submits immediately."""
        return self.kind in ("single_choice", "boolean")

    def option_label(self, value: str) -> str:
        """Display label for an option value, falling back to the value."""
        for opt in self.options:
            if opt.value == value:
                return opt.label
        return value
