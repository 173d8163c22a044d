"""
Playwright test generator.

Converts a distilled Journey into a `@playwright/test` spec that replays
the journey against the live app and, optionally, re-captures its trace
so the run can be compared with the baseline.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..common import URLMatcher
from ..config import FillScoring, GeneratorConfig
from ..distill.models import (
    CLICK, CONTEXT_MENU, DOUBLE_CLICK, KEY_PRESS, STARTUP, TOAST,
    ApiAwait, Journey, ModalResolution, Step,
)
from .form_planner import FillPlan, build_fill_plan, reorder_form_steps
from .locators import INDENT, LocatorBuilder, js_str


logger = logging.getLogger("journeytap.playwright")

# Keys that only edit the text fill() already sets
EDITING_KEYS = ('Backspace', 'Delete', 'ArrowLeft', 'ArrowRight', 'Home', 'End')


MODAL_OBSERVER = """\
  // Monitor for modal dialogs (Conflict, error, etc.)
  await page.evaluate(() => {
    new MutationObserver(() => {
      document.querySelectorAll('[role="dialog"]').forEach(d => {
        if (d.getAttribute('data-modal-seen')) return;
        d.setAttribute('data-modal-seen', '1');
        const title = (d.querySelector('h2, h3, [class*="title"]') as HTMLElement)?.innerText || '';
        const body = (d as HTMLElement).innerText?.slice(0, 300) || '';
        console.log('__MODAL__:' + title + ' | ' + body);
      });
    }).observe(document.body, { childList: true, subtree: true });
  });"""

CAPTURE_PRELUDE = """\
  // Collect runtime errors and dialogs seen during the run
  const _xsErrors: string[] = [];
  const _modalsSeen: string[] = [];
  page.on('console', msg => {
    if (msg.type() === 'error') _xsErrors.push(msg.text());
    if (msg.text().startsWith('__MODAL__:')) _modalsSeen.push(msg.text().slice(10));
  });
  page.on('pageerror', err => _xsErrors.push(err.message));

  try {"""

CAPTURE_EPILOGUE = """\
  } finally {
    // Capture trace even on failure (if browser still open)
    try {
      await page.waitForTimeout(%(settle_ms)d);
      const logs = await page.evaluate(() => (window as any)._xsLogs || []);
      const traceFile = process.env.%(env)s || %(default)s;
      fs.writeFileSync(traceFile, JSON.stringify(logs, null, 2));
      console.log(`Trace captured to ${traceFile} (${logs.length} events)`);
      const errors = logs.filter((e: any) => e.kind?.startsWith('error'));
      if (errors.length > 0) {
        console.log('\\nRUNTIME ERRORS:');
        errors.forEach((e: any) => console.log(`  [${e.kind}] ${e.error || e.text || JSON.stringify(e)}`));
      }
    } catch (e) {
      console.log('Could not capture trace (browser may have closed)');
    }
    if (_modalsSeen.length > 0) {
      console.log('\\nMODALS:');
      _modalsSeen.forEach(m => console.log(`  ${m}`));
    }
    try {
      const rows = await page.evaluate(() =>
        Array.from(document.querySelectorAll('table tbody tr'))
          .map(r => (r as HTMLElement).innerText?.split('\\t')[0]?.trim())
          .filter(Boolean)
      );
      if (rows.length > 0) {
        console.log('\\nVISIBLE ROWS: ' + rows.join(', '));
      }
    } catch (_) {}
    if (%(browser_errors)s && _xsErrors.length > 0) {
      console.log('\\nBROWSER ERRORS:');
      _xsErrors.forEach(e => console.log(`  ${e}`));
    }
  }"""


@dataclass
class GenerationResult:
    """Result of test generation."""
    success: bool
    output_file: Optional[str] = None
    steps_generated: int = 0
    accessibility_gaps: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


class PlaywrightGenerator:
    """Renders a Journey as a Playwright test."""

    def __init__(self, config: Optional[GeneratorConfig] = None, scoring: Optional[FillScoring] = None):
        """
        Initialize generator.

        Args:
            config: Generation options (capture scaffolding, settle delay, roles)
            scoring: Weights for matching form fields to textbox names
        """
        self.config = config or GeneratorConfig()
        self.scoring = scoring or FillScoring()
        self.locators = LocatorBuilder(self.config)
        self.warnings: List[str] = []

    def generate(self, journey: Journey, test_name: str = 'user-journey') -> str:
        """
        Generate the TypeScript source for a journey.

        Never raises for journey content; anything that can't be replayed
        shows up as an ACCESSIBILITY GAP or UNSUPPORTED comment instead.

        Args:
            journey: Distilled journey
            test_name: Name passed to Playwright's test()

        Returns:
            TypeScript source
        """
        self.warnings = []

        startup = journey.startup or Step(action=STARTUP)
        interactions = journey.interactions
        ordered = reorder_form_steps([startup] + interactions, self.config.text_field_roles)
        plan = build_fill_plan(ordered, self.scoring, self.config.text_field_roles)

        lines = ["import { test, expect } from '@playwright/test';"]
        if self.config.capture_trace:
            lines.append("import * as fs from 'fs';")
        lines.append('')
        if self.config.record_video:
            lines.append("test.use({ video: 'on' });")
            lines.append('')
        lines.append(f"test({js_str(test_name)}, async ({{ page }}) => {{")
        if self.config.capture_trace:
            lines.append(CAPTURE_PRELUDE)

        first = interactions[0] if interactions else None

        for index, step in enumerate(ordered):
            if step.action == STARTUP:
                lines.append('')
                lines.extend(self._startup_lines(step, first))
                continue

            block = self._step_lines(index, step, plan)
            if not block:
                continue
            lines.append('')
            lines.extend(block)

            if step.awaits.has_mutation and index + 1 < len(ordered):
                lines.extend(self._settle_lines(ordered[index + 1]))

        if self.config.capture_trace:
            lines.append(CAPTURE_EPILOGUE % {
                'settle_ms': self.config.settle_ms,
                'env': self.config.trace_output_env,
                'default': js_str(self.config.trace_output_default),
                'browser_errors': 'true' if self.config.browser_errors else 'false',
            })
        lines.append('});')

        return '\n'.join(lines) + '\n'

    def write(self, journey: Journey, output_path: Union[str, Path],
              test_name: str = 'user-journey') -> GenerationResult:
        """
        Generate and write a spec file.

        Returns:
            GenerationResult with the output path and gap count
        """
        try:
            code = self.generate(journey, test_name)

            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(code)

            logger.info(f"Wrote {output_path}")
            return GenerationResult(
                success=True,
                output_file=str(output_path),
                steps_generated=len(journey.steps),
                accessibility_gaps=code.count('ACCESSIBILITY GAP'),
                warnings=list(self.warnings),
            )

        except OSError as e:
            logger.error(f"Could not write {output_path}: {e}")
            return GenerationResult(success=False, errors=[str(e)])

    # -- startup -----------------------------------------------------------

    def _startup_lines(self, step: Step, first: Optional[Step]) -> List[str]:
        lines = [f"{INDENT}// startup"]
        goto = f"page.goto({js_str(self.config.base_path)})"

        api = next((a for a in step.awaits.api if a.completed), None)
        if api:
            lines.append(f"{INDENT}await Promise.all([")
            lines.append(f"{INDENT}  {self._response_wait(api)},")
            lines.append(f"{INDENT}  {goto},")
            lines.append(f"{INDENT}]);")
        else:
            lines.append(f"{INDENT}await {goto};")

        lines.append('')
        lines.append(MODAL_OBSERVER)

        starting_page = first.awaits.navigate.from_path if first and first.awaits.navigate else None
        if starting_page:
            path = URLMatcher.endpoint_path(starting_page)
            if path != '/':
                nav_label = URLMatcher.decoded(path.strip('/')).upper()
                lines.append('')
                lines.append(f"{INDENT}// Navigate to starting page (trace was captured on {starting_page})")
                lines.append(f"{INDENT}await page.getByText({js_str(nav_label)}, {{ exact: true }}).click();")
                lines.extend(self.locators.wait_lines(first.target))

        return lines

    # -- steps ---------------------------------------------------------------

    def _step_lines(self, index: int, step: Step, plan: FillPlan) -> List[str]:
        if step.action == TOAST:
            return [f"{INDENT}// {step.describe()}"] + self._toast_lines(step)

        action = self._action_lines(index, step, plan)
        if not action:
            return []

        waits = self._await_expressions(step)
        var = f"step{index}Done"
        lines = [f"{INDENT}// {step.describe()}"]

        if waits:
            lines.append(f"{INDENT}const {var} = Promise.all([")
            lines.extend(f"{INDENT}  {w}," for w in waits)
            lines.append(f"{INDENT}]);")

        lines.extend(action)

        # Right-clicking a tree item navigates before the menu opens
        early = step.action == CONTEXT_MENU and step.target is not None \
            and step.target.role == 'treeitem' and step.awaits.navigate is not None
        if waits and early:
            lines.append(f"{INDENT}await {var};")

        lines.extend(self._modal_lines(step.modals))

        if waits and not early:
            lines.append(f"{INDENT}await {var};")

        lines.extend(self._toast_lines(step))
        return lines

    def _is_text_field(self, step: Step) -> bool:
        return step.target is not None and step.target.role in self.config.text_field_roles

    def _fill_line(self, step: Step, value: str) -> str:
        locator = f"page.getByRole({js_str(step.target.role)}, {{ name: {js_str(step.target.name)}, exact: true }})"
        return f"{INDENT}await {locator}.fill({js_str(value)});"

    def _key_lines(self, index: int, step: Step, plan: FillPlan) -> List[str]:
        """
        Typed characters collapse into the field's fill(); named keys
        such as Enter or Escape are pressed on the field itself.
        """
        target = step.target
        key = target.key if target else None

        if not self._is_text_field(step):
            return [f"{INDENT}await page.keyboard.press({js_str(key)});"] if key else []

        lines = []
        entry, _ = plan.take(target.name, index)
        if entry is not None:
            lines.append(self._fill_line(step, entry.value))

        if not key or len(key) == 1 or key in EDITING_KEYS:
            return lines

        if target.name:
            locator = f"page.getByRole({js_str(target.role)}, {{ name: {js_str(target.name)}, exact: true }})"
            lines.append(f"{INDENT}await {locator}.press({js_str(key)});")
        else:
            lines.append(f"{INDENT}await page.keyboard.press({js_str(key)});")
        return lines

    def _action_lines(self, index: int, step: Step, plan: FillPlan) -> List[str]:
        target = step.target

        if step.action == KEY_PRESS:
            return self._key_lines(index, step, plan)

        if step.action == CLICK and self._is_text_field(step):
            if not target.name:
                if not step.is_submission:
                    # Focus click on an unnamed input: nothing to replay
                    return []
            else:
                entry, suppressed = plan.take(target.name, index)
                if entry is not None:
                    return [self._fill_line(step, entry.value)]
                if suppressed:
                    return []

        if step.action == CLICK:
            return self.locators.action_lines(target, 'click')
        if step.action == DOUBLE_CLICK:
            return self.locators.action_lines(target, 'dblclick')
        if step.action == CONTEXT_MENU:
            return self.locators.action_lines(target, 'click', ["button: 'right'"])

        return [f"{INDENT}// UNSUPPORTED: action {js_str(step.action)}"]

    # -- awaits ----------------------------------------------------------------

    def _response_wait(self, api: ApiAwait) -> str:
        fragment = js_str(URLMatcher.match_fragment(api.endpoint))
        return f"page.waitForResponse(r => r.url().includes({fragment}) && r.request().method() === {js_str(api.method)})"

    def _await_expressions(self, step: Step) -> List[str]:
        waits = [
            self._response_wait(api) for api in step.awaits.api
            if api.completed and not (api.error and api.status is None)
        ]

        nav = step.awaits.navigate
        if nav and nav.to_path:
            destination = js_str(URLMatcher.decoded(nav.to_path))
            waits.append(f"page.waitForURL(url => decodeURIComponent(url.href).includes({destination}))")

        return waits

    def _settle_lines(self, next_step: Step) -> List[str]:
        """Wait for the next target to re-render after a mutation."""
        if next_step.action == TOAST:
            return []
        lines = self.locators.wait_lines(next_step.target)
        return lines or [f"{INDENT}await page.waitForTimeout({self.config.settle_ms});"]

    # -- dialogs and toasts ----------------------------------------------------

    def _button_lines(self, modal: ModalResolution, indent: str = INDENT) -> List[str]:
        if not modal.button:
            return [f"{indent}// Dialog {js_str(modal.title or '')} was not answered in the recording"]
        button = f"page.getByRole('dialog').getByRole('button', {{ name: {js_str(modal.button)}, exact: true }})"
        return [
            f"{indent}await {button}.waitFor();",
            f"{indent}await {button}.click();",
        ]

    def _modal_lines(self, modals: List[ModalResolution]) -> List[str]:
        lines = []
        handled_titles = set()

        for modal in modals:
            if modal.title in handled_titles:
                continue

            group = [m for m in modals if m.title == modal.title]
            outcomes = _distinct_outcomes(group)

            if len(outcomes) <= 1:
                lines.extend(self._button_lines(modal))
                continue

            handled_titles.add(modal.title)
            if len(outcomes) == 2 and self._branch_message(group, outcomes):
                lines.extend(self._branching_lines(group, outcomes))
            else:
                reason = (f"has {len(outcomes)} different outcomes in one step" if len(outcomes) > 2
                          else "has two outcomes but no body text to tell them apart")
                message = f"Dialog {modal.title!r} {reason}; answering in recorded order"
                logger.warning(message)
                self.warnings.append(message)
                lines.append(f"{INDENT}// UNSUPPORTED: {message}")
                for member in group:
                    lines.extend(self._button_lines(member))

        return lines

    def _branch_message(self, group: List[ModalResolution], outcomes: List[Tuple]) -> Optional[str]:
        """Body text that identifies the first outcome at runtime."""
        first = outcomes[0]
        other_messages = {m.message for m in group if m.outcome() != first}
        for member in group:
            if member.outcome() == first and member.message and member.message not in other_messages:
                return member.message
        return None

    def _branching_lines(self, group: List[ModalResolution], outcomes: List[Tuple]) -> List[str]:
        """Runtime loop: answer each same-titled dialog by what its body says."""
        message = self._branch_message(group, outcomes)
        (_, first_button), (_, second_button) = outcomes
        inner = INDENT * 3

        def click(button: Optional[str]) -> str:
            if not button:
                return f"{inner}// not answered in the recording"
            return f"{inner}await dialog.getByRole('button', {{ name: {js_str(button)}, exact: true }}).click();"

        return [
            f"{INDENT}// {js_str(group[0].title or '')} dialogs were answered differently; decide by body text",
            f"{INDENT}for (let i = 0; i < {len(group)}; i++) {{",
            f"{INDENT * 2}const dialog = page.getByRole('dialog');",
            f"{INDENT * 2}await dialog.waitFor();",
            f"{INDENT * 2}const body = await dialog.innerText();",
            f"{INDENT * 2}if (body.includes({js_str(_snippet(message))})) {{",
            click(first_button),
            f"{INDENT * 2}}} else {{",
            click(second_button),
            f"{INDENT * 2}}}",
            f"{INDENT}}}",
        ]

    def _toast_lines(self, step: Step) -> List[str]:
        return [
            f"{INDENT}await expect(page.getByText({js_str(toast.message)}, {{ exact: true }})).toBeVisible();"
            for toast in step.toasts if toast.message
        ]


def _distinct_outcomes(group: List[ModalResolution]) -> List[Tuple]:
    outcomes = []
    for modal in group:
        if modal.outcome() not in outcomes:
            outcomes.append(modal.outcome())
    return outcomes


def _snippet(message: str, limit: int = 80) -> str:
    """First line of a dialog body, short enough to match innerText reliably."""
    first_line = message.strip().splitlines()[0] if message.strip() else message
    return re.sub(r'\s+', ' ', first_line)[:limit]


def sanitize_test_name(name: str) -> str:
    """Turn a journey name into a spec file stem."""
    sanitized = re.sub(r'[^\w\s-]', '', name)
    sanitized = re.sub(r'[\s_]+', '-', sanitized)
    sanitized = sanitized.lower().strip('-')
    return sanitized or 'user-journey'
