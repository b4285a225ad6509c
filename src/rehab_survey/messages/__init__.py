"""Transcript message rendering.

Provides ``MessageRenderer``, a Jinja2-based template engine that renders
assistant messages (step prompts, result summary, canned chat responses)
as rich text.
"""

from rehab_survey.messages.manager import MessageRenderer

__all__ = ["MessageRenderer"]
