"""
Locator resolution for generated Playwright code.

Priority, best first:
1. role + accessible name (row targets match by contained cell text)
2. visible text
3. test id
4. bare role, flagged as an accessibility gap
5. nothing usable: an accessibility gap comment only
"""

from typing import List, Optional, Sequence

from ..config import GeneratorConfig
from ..distill.models import Target


INDENT = '  '


def js_str(value) -> str:
    """Single-quoted TypeScript string literal."""
    text = str(value)
    text = text.replace('\\', '\\\\').replace("'", "\\'")
    text = text.replace('\n', '\\n').replace('\r', '\\r')
    return f"'{text}'"


class LocatorBuilder:
    """Builds locator expressions and the lines that act on them."""

    def __init__(self, config: Optional[GeneratorConfig] = None):
        self.config = config or GeneratorConfig()

    def _has_role(self, target: Target) -> bool:
        return bool(target.role) and target.role not in self.config.noise_roles

    def row_locator(self, cell_text: str) -> str:
        cell = f"page.getByRole('cell', {{ name: {js_str(cell_text)}, exact: true }})"
        return f"page.getByRole('row').filter({{ has: {cell} }})"

    def locator(self, target: Optional[Target]) -> Optional[str]:
        """
        Best locator expression for a target.

        Returns:
            Expression text, or None when only a bare role (or nothing) is known
        """
        if target is None:
            return None

        if self._has_role(target) and target.name:
            if target.role == 'row':
                return self.row_locator(target.name)
            return f"page.getByRole({js_str(target.role)}, {{ name: {js_str(target.name)}, exact: true }})"

        if target.label:
            return f"page.getByText({js_str(target.label)}, {{ exact: true }})"

        if target.test_id:
            return f"page.getByTestId({js_str(target.test_id)})"

        return None

    def is_tree_toggle(self, target: Target) -> bool:
        return bool(target.tag) and target.tag.lower() in self.config.icon_tags

    def _options(self, target: Target, extra: Sequence[str] = ()) -> str:
        parts = list(extra)
        if target.modifiers:
            keys = ', '.join(js_str(m) for m in target.modifiers)
            parts.append(f"modifiers: [{keys}]")
        return f"{{ {', '.join(parts)} }}" if parts else ''

    def action_lines(self, target: Optional[Target], method: str = 'click',
                     extra_options: Sequence[str] = ()) -> List[str]:
        """
        Lines that perform `method` on the target.

        Args:
            target: Step target
            method: Playwright locator method (click, dblclick)
            extra_options: Additional option entries, e.g. "button: 'right'"
        """
        if target is None:
            return [f"{INDENT}// ACCESSIBILITY GAP: step has no target"]

        options = self._options(target, extra_options)
        prefix = self.config.row_checkbox_prefix

        if target.role == 'checkbox' and target.name and target.name.startswith(prefix):
            row_name = target.name[len(prefix):]
            return [
                f"{INDENT}await {self.row_locator(row_name)}.hover();",
                f"{INDENT}await page.getByRole('checkbox', {{ name: {js_str(target.name)}, exact: true }})"
                f".{method}({options});",
            ]

        locator = self.locator(target)
        if locator:
            if self.is_tree_toggle(target):
                locator = f"{locator}.locator({js_str(self.config.tree_toggle_selector)})"
            return [f"{INDENT}await {locator}.{method}({options});"]

        if self._has_role(target):
            return [
                f"{INDENT}// ACCESSIBILITY GAP: {target.role} has no accessible name",
                f"{INDENT}await page.getByRole({js_str(target.role)}).{method}({options});",
            ]

        what = target.tag or target.component or 'element'
        return [f"{INDENT}// ACCESSIBILITY GAP: {what} has no role or accessible name"]

    def wait_lines(self, target: Optional[Target]) -> List[str]:
        """Wait for the target to render; empty when it has no locator."""
        locator = self.locator(target)
        return [f"{INDENT}await {locator}.waitFor();"] if locator else []
