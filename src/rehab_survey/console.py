"""Terminal runner for the rehabilitation interview.

Runs one interview end-to-end in the terminal, either against the live
step service over HTTP or against a YAML scenario replayed in memory, and
then stays in free chat until the user types ``quit``.

Usage::

    # Against a running step service
    rehab-survey --base-url http://localhost:8000/api

    # Offline, replaying the bundled sample scenario
    rehab-survey --scenario sample

    # Own scenario, no pacing delays, debug logging
    rehab-survey --scenario my_case.yaml --immediate -vv
"""

from __future__ import annotations

import argparse
import asyncio
import html
import logging
import re
import sys
from contextlib import AsyncExitStack

from rich.console import Console
from rich.table import Table

from rehab_survey.client import DEFAULT_API_BASE, DEFAULT_TIMEOUT, HttpStepService
from rehab_survey.config import IMMEDIATE, load_timing
from rehab_survey.constants import DEFAULT_BOOLEAN_OPTIONS
from rehab_survey.controller import SurveySessionController
from rehab_survey.errors import ValidationError
from rehab_survey.formatter import format_won
from rehab_survey.interfaces import StepService
from rehab_survey.models.result import SurveyResult
from rehab_survey.models.session import ControllerState, SessionSnapshot
from rehab_survey.replay import SAMPLE_SCENARIO, ScriptedStepService

logger = logging.getLogger(__name__)

_BR = re.compile(r"<br\s*/?>", re.IGNORECASE)
_BLOCK_END = re.compile(r"</(div|p|li)>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_BLANK_LINES = re.compile(r"\n\s*\n+")

_QUIT_WORDS = ("quit", "exit", "q", "종료")


def html_to_text(content: str) -> str:
    """Flatten a rich-text transcript entry to plain terminal text."""
    text = _BR.sub("\n", content)
    text = _BLOCK_END.sub("\n", text)
    text = _TAG.sub("", text)
    text = html.unescape(text)
    lines = [line.strip() for line in text.splitlines()]
    return _BLANK_LINES.sub("\n", "\n".join(lines)).strip()


# ---------------------------------------------------------------------------
# TerminalSession: prompts the user according to the controller state
# ---------------------------------------------------------------------------

class TerminalSession:
    """Drives a ``SurveySessionController`` from terminal input."""

    def __init__(self, controller: SurveySessionController, console: Console) -> None:
        self.controller = controller
        self.console = console
        self._printed = 0
        self._result_shown = False

    async def ask(self, prompt: str) -> str:
        return await asyncio.to_thread(self.console.input, prompt)

    def show(self, snapshot: SessionSnapshot) -> None:
        """Print transcript entries that appeared since the last call."""
        for message in snapshot.session.transcript[self._printed:]:
            text = html_to_text(message.content)
            if message.origin == "assistant":
                self.console.print(f"[bold cyan]상담사[/] {text}", highlight=False)
            else:
                self.console.print(f"[bold green]나[/] {text}", highlight=False)
        self._printed = len(snapshot.session.transcript)

        if snapshot.session.result is not None and not self._result_shown:
            self._result_shown = True
            self.console.print(result_table(snapshot.session.result))

    async def run(self) -> None:
        snapshot = await self.controller.start()
        while True:
            self.show(snapshot)
            state = snapshot.state

            if state == ControllerState.IDLE:
                if not await self._confirm("다시 시도할까요? [y/N] "):
                    return
                snapshot = await self.controller.start()
            elif state == ControllerState.AWAITING_STEP:
                if not await self._confirm("질문을 다시 불러올까요? [y/N] "):
                    return
                snapshot = await self.controller.load_step()
            elif state == ControllerState.COMPLETING:
                if not snapshot.can_retry_result or not await self._confirm(
                    "결과 계산을 다시 시도할까요? [y/N] "
                ):
                    return
                snapshot = await self.controller.retry_result()
            elif state == ControllerState.AWAITING_ANSWER:
                snapshot = await self._answer(snapshot)
            elif state == ControllerState.FREE_CHAT:
                text = (await self.ask("[bold green]질문>[/] ")).strip()
                if not text or text.lower() in _QUIT_WORDS:
                    return
                snapshot = await self.controller.send_free_chat(text)
            else:
                logger.error("Unexpected controller state %s", state.value)
                return

    async def _confirm(self, prompt: str) -> bool:
        return (await self.ask(prompt)).strip().lower() in ("y", "yes", "예")

    async def _answer(self, snapshot: SessionSnapshot) -> SessionSnapshot:
        step = snapshot.step
        if step.help_text:
            self.console.print(f"  [dim]{step.help_text}[/]")
        try:
            if step.kind == "numeric":
                raw = await self.ask("금액(원)> ")
                return await self.controller.submit(raw)
            if step.kind == "composite_form":
                return await self._fill_form(snapshot)
            return await self._choose(snapshot)
        except ValidationError as exc:
            self.console.print(f"  [red]![/] {exc.reason}")
            return self.controller.snapshot()

    async def _choose(self, snapshot: SessionSnapshot) -> SessionSnapshot:
        step = snapshot.step
        options = [(opt.value, opt.label) for opt in step.options]
        if not options and step.kind == "boolean":
            options = list(DEFAULT_BOOLEAN_OPTIONS)
        for i, (_, label) in enumerate(options, 1):
            self.console.print(f"  [bold]{i}[/]. {label}")

        if step.kind == "multi_choice":
            raw = await self.ask("번호(쉼표로 구분)> ")
        else:
            raw = await self.ask("번호> ")

        picked = []
        for token in raw.replace(" ", "").split(","):
            if not token:
                continue
            if not token.isdigit() or not 1 <= int(token) <= len(options):
                raise ValidationError(f"unknown option: {token}")
            picked.append(options[int(token) - 1][0])

        if step.kind != "multi_choice":
            if len(picked) != 1:
                raise ValidationError("select only one option.")
            return await self.controller.select_option(picked[0])

        # Toggle so the pending selection ends up equal to what was typed
        pending = set(snapshot.selection)
        for value in [v for v, _ in options if (v in pending) != (v in picked)]:
            await self.controller.select_option(value)
        return await self.controller.submit()

    async def _fill_form(self, snapshot: SessionSnapshot) -> SessionSnapshot:
        for row in snapshot.field_rows:
            if row.group_header:
                self.console.rule(row.group_header)
            field = row.field
            if field.help:
                self.console.print(f"  [dim]{field.help}[/]")
            if field.tooltip:
                self.console.print(f"  [dim]({field.tooltip})[/]")
            marker = " *" if field.required else ""
            raw = await self.ask(f"{field.label}{marker}> ")
            self.controller.set_form_value(field.id, raw)
        return await self.controller.submit()


def result_table(result: SurveyResult) -> Table:
    """Render the computed result as a rich table."""
    table = Table(title="변제 계획 요약", show_header=False, show_lines=True)
    table.add_column("항목", style="dim", min_width=16)
    table.add_column("금액", justify="right", min_width=16)

    table.add_row("변제율", f"{result.repayment_rate:.1f}%")
    table.add_row("총 채무", format_won(result.total_debt))
    if result.secured_debt > 0:
        table.add_row("담보 채무", format_won(result.secured_debt))
    table.add_row("무담보 채무", format_won(result.unsecured_debt))
    table.add_row("월 변제금", format_won(result.monthly_repayment_total))
    table.add_row("36개월 총 변제액", format_won(result.total_repayment))
    table.add_row("예상 탕감액", format_won(result.forgiveness_estimate))
    return table


# ---------------------------------------------------------------------------
# CLI + async main
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the debt-rehabilitation interview in the terminal.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_API_BASE,
        help=f"Step service API root (default: {DEFAULT_API_BASE})",
    )
    parser.add_argument(
        "--scenario",
        default=None,
        help="Replay a YAML scenario instead of calling the service ('sample' for the bundled one)",
    )
    parser.add_argument(
        "--timeout",
        type=float, default=DEFAULT_TIMEOUT,
        help=f"HTTP request timeout in seconds (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--immediate",
        action="store_true",
        help="Disable pacing delays (auto-submit, captions, replies)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count", default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, console: Console) -> None:
    timing = IMMEDIATE if args.immediate else load_timing()

    async with AsyncExitStack() as stack:
        service: StepService
        if args.scenario:
            path = SAMPLE_SCENARIO if args.scenario == "sample" else args.scenario
            service = ScriptedStepService.from_yaml(path)
            console.print(f"[dim]Replaying scenario {service.scenario.name!r}[/]")
        else:
            service = await stack.enter_async_context(
                HttpStepService(args.base_url, timeout=args.timeout)
            )
            console.print(f"[dim]Step service: {args.base_url}[/]")

        controller = SurveySessionController(service, timing=timing)
        await TerminalSession(controller, console).run()


def main(argv: list[str] | None = None) -> None:
    """Console-script entry point: ``rehab-survey``."""
    args = parse_args(argv)
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    console = Console()
    try:
        asyncio.run(run(args, console))
    except FileNotFoundError as exc:
        console.print(f"[red]{exc}[/]")
        sys.exit(1)
    except (KeyboardInterrupt, EOFError):
        console.print()
    console.print("[dim]상담을 종료합니다.[/]")


if __name__ == "__main__":
    main()
