"""
Confirmation dialog resolution.

Pairs each ``modal:show`` with the confirm/cancel that answered it. A
single step can contain several dialogs back to back (delete, then
"folder not empty, delete anyway?"), so each show only looks as far as
the next show.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..trace.normalizer import RawEvent
from .models import ModalResolution


logger = logging.getLogger("journeytap.distill")

MODAL_SHOW = 'modal:show'
MODAL_CONFIRM = 'modal:confirm'
MODAL_CANCEL = 'modal:cancel'


def resolve_modals(events: Sequence[RawEvent], cancel_label: str = 'Cancel') -> List[ModalResolution]:
    """
    Resolve dialog sequences within one correlation group.

    Args:
        events: The group's events in chronological order
        cancel_label: Button label recorded for cancels that don't name one

    Returns:
        One ModalResolution per modal:show, in order
    """
    ordered = sorted(events, key=lambda e: e.timestamp)
    show_positions = [i for i, e in enumerate(ordered) if e.kind == MODAL_SHOW]

    resolutions = []
    for n, pos in enumerate(show_positions):
        show = ordered[pos]
        window_end = show_positions[n + 1] if n + 1 < len(show_positions) else len(ordered)

        answer = next(
            (e for e in ordered[pos + 1:window_end] if e.kind in (MODAL_CONFIRM, MODAL_CANCEL)),
            None
        )

        if answer is None:
            logger.warning(
                f"Dialog '{show.get('title')}' (event #{show.index}) has no confirm/cancel; recording as unknown"
            )
            resolutions.append(ModalResolution(
                title=show.get('title'),
                resolution='unknown',
                message=show.get('message'),
            ))
            continue

        if answer.kind == MODAL_CONFIRM:
            resolutions.append(ModalResolution(
                title=show.get('title'),
                resolution='confirm',
                button=_pressed_button(show, answer),
                message=show.get('message'),
            ))
        else:
            resolutions.append(ModalResolution(
                title=show.get('title'),
                resolution='cancel',
                button=answer.get('buttonLabel') or cancel_label,
                message=show.get('message'),
            ))

    return resolutions


def _pressed_button(show: RawEvent, confirm: RawEvent) -> Optional[str]:
    """Button label from the confirm event, else looked up by value."""
    if confirm.get('buttonLabel'):
        return confirm.get('buttonLabel')

    value = confirm.get('value')
    buttons: List[Dict[str, Any]] = show.get('buttons') or []
    for button in buttons:
        if isinstance(button, dict) and str(button.get('value')) == str(value):
            return button.get('label')

    return str(value) if value is not None else None
