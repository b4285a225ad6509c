"""MessageRenderer — Jinja2-based renderer for transcript messages.

Loads templates from the ``template/`` directory and renders the rich-text
(HTML) content of assistant messages: greeting, step prompts, the result
summary card, the free-chat invitation and the canned chat responses.
Participant text also goes through a template so that it is escaped
before it lands in the transcript.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import jinja2

from rehab_survey.formatter import display_numeric

if TYPE_CHECKING:
    from rehab_survey.models.result import SurveyResult
    from rehab_survey.models.step import StepDescriptor


class MessageRenderer:
    """Jinja2-based renderer for assistant and participant messages.

    Args:
        template_dir: optional override for the template directory.
            Defaults to ``template/`` sibling of this module.
    """

    def __init__(self, template_dir: Path | None = None) -> None:
        if template_dir is None:
            template_dir = Path(__file__).parent / "template"
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            # Step titles and participant text come from outside; escape them
            autoescape=True,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )
        self._env.filters["amount"] = display_numeric

    def render(self, template_name: str, **context) -> str:
        """Render a named template with arbitrary context."""
        template = self._env.get_template(template_name)
        return template.render(**context).strip()

    def greeting(self) -> str:
        return self.render("greeting.jinja2")

    def session_started(self) -> str:
        return self.render("session_started.jinja2")

    def step_prompt(self, step: StepDescriptor) -> str:
        """Title and question of a step as one assistant message."""
        return self.render("step_prompt.jinja2", step=step)

    def participant(self, text: str) -> str:
        """Escaped participant text."""
        return self.render("participant.jinja2", text=text)

    def result_summary(self, result: SurveyResult) -> str:
        """The labeled-row summary card for a computed result."""
        return self.render(
            "result_summary.jinja2",
            result=result,
            forgiveness=result.forgiveness_estimate,
        )

    def invitation(self) -> str:
        return self.render("invitation.jinja2")

    def chat_response(self, name: str, **context) -> str:
        """A canned free-chat response from ``template/chat/``."""
        return self.render(f"chat/{name}.jinja2", **context)
