"""
Tests for confirmation dialog resolution.
"""

from journeytap.distill import distill, resolve_modals
from journeytap.trace import normalize_structured


def _events(*entries):
    return normalize_structured([dict(entry, traceId='t1') for entry in entries])


SHOW_DELETE = {'kind': 'modal:show', 'perfTs': 10, 'title': 'Delete file',
               'message': 'Delete a.txt?', 'buttons': [{'label': 'Delete', 'value': True}]}


class TestResolveModals:
    """Pairing shows with their answers."""

    def test_confirm_with_button_label(self):
        modals = resolve_modals(_events(
            SHOW_DELETE,
            {'kind': 'modal:confirm', 'perfTs': 20, 'buttonLabel': 'Delete'},
        ))

        assert len(modals) == 1
        assert modals[0].title == 'Delete file'
        assert modals[0].resolution == 'confirm'
        assert modals[0].button == 'Delete'
        assert modals[0].message == 'Delete a.txt?'

    def test_confirm_button_looked_up_by_value(self):
        modals = resolve_modals(_events(
            SHOW_DELETE,
            {'kind': 'modal:confirm', 'perfTs': 20, 'value': True},
        ))
        assert modals[0].button == 'Delete'

    def test_confirm_value_without_matching_button(self):
        modals = resolve_modals(_events(
            SHOW_DELETE,
            {'kind': 'modal:confirm', 'perfTs': 20, 'value': 'replace'},
        ))
        assert modals[0].button == 'replace'

    def test_cancel_defaults_to_cancel_label(self):
        modals = resolve_modals(_events(
            SHOW_DELETE,
            {'kind': 'modal:cancel', 'perfTs': 20},
        ))
        assert modals[0].resolution == 'cancel'
        assert modals[0].button == 'Cancel'

    def test_custom_cancel_label(self):
        modals = resolve_modals(_events(
            SHOW_DELETE,
            {'kind': 'modal:cancel', 'perfTs': 20},
        ), cancel_label='Abbrechen')
        assert modals[0].button == 'Abbrechen'

    def test_unanswered_is_unknown(self):
        modals = resolve_modals(_events(SHOW_DELETE))

        assert modals[0].resolution == 'unknown'
        assert modals[0].button is None

    def test_answer_does_not_cross_next_show(self):
        second = dict(SHOW_DELETE, perfTs=30, title='Folder not empty')
        modals = resolve_modals(_events(
            SHOW_DELETE,
            second,
            {'kind': 'modal:confirm', 'perfTs': 40, 'buttonLabel': 'Delete anyway'},
        ))

        assert [m.resolution for m in modals] == ['unknown', 'confirm']
        assert modals[1].title == 'Folder not empty'
        assert modals[1].button == 'Delete anyway'

    def test_several_dialogs_in_order(self):
        modals = resolve_modals(_events(
            {'kind': 'modal:show', 'perfTs': 10, 'title': 'Replace?'},
            {'kind': 'modal:confirm', 'perfTs': 11, 'buttonLabel': 'Replace'},
            {'kind': 'modal:show', 'perfTs': 20, 'title': 'Replace?'},
            {'kind': 'modal:cancel', 'perfTs': 21, 'buttonLabel': 'Skip'},
        ))

        assert [m.outcome() for m in modals] == [('confirm', 'Replace'), ('cancel', 'Skip')]

    def test_no_dialogs(self):
        assert resolve_modals(_events({'kind': 'toast', 'perfTs': 1, 'message': 'x'})) == []


class TestModalsInSteps:
    def test_attached_to_step(self):
        trace = [
            {'kind': 'api:complete', 'traceId': 'startup-1', 'perfTs': 1, 'method': 'GET', 'url': '/', 'status': 200},
            {'kind': 'interaction', 'traceId': 't1', 'perfTs': 5, 'interaction': 'click',
             'detail': {'ariaRole': 'button', 'ariaName': 'Delete'}},
            dict(SHOW_DELETE, traceId='t1'),
            {'kind': 'modal:confirm', 'traceId': 't1', 'perfTs': 20, 'value': True},
        ]
        step = distill(trace).interactions[0]

        assert step.to_dict()['modals'] == [
            {'title': 'Delete file', 'resolution': 'confirm', 'button': 'Delete', 'message': 'Delete a.txt?'}
        ]
