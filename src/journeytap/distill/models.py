"""
Distilled journey model.

A Journey is an ordered list of Steps; each Step is one user-observable
action plus the asynchronous effects it is expected to trigger. The JSON
form (``Journey.to_dict``) is stable and diffable, and uses the camelCase
keys the capture side emits.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..trace.method_resolver import is_mutating


STARTUP = 'startup'
CLICK = 'click'
DOUBLE_CLICK = 'double-click'
CONTEXT_MENU = 'context-menu'
KEY_PRESS = 'key-press'
TOAST = 'toast'

# Raw interaction names -> step actions
ACTION_NAMES = {
    'click': CLICK,
    'dblclick': DOUBLE_CLICK,
    'contextmenu': CONTEXT_MENU,
    'keydown': KEY_PRESS,
}

POINTER_ACTIONS = (CLICK, DOUBLE_CLICK)


@dataclass
class Target:
    """What a step acted on, in decreasing order of locator quality."""

    role: Optional[str] = None
    name: Optional[str] = None
    label: Optional[str] = None
    tag: Optional[str] = None
    test_id: Optional[str] = None
    component: Optional[str] = None
    form_data: Optional[Dict[str, Any]] = None
    modifiers: List[str] = field(default_factory=list)
    explicit_modifiers: bool = False
    key: Optional[str] = None
    path: Optional[str] = None
    selected_path: Optional[str] = None
    selector_path: Optional[str] = None

    _KEYS = (
        ('role', 'ariaRole'),
        ('name', 'ariaName'),
        ('label', 'label'),
        ('tag', 'targetTag'),
        ('test_id', 'testId'),
        ('component', 'component'),
        ('form_data', 'formData'),
        ('key', 'key'),
        ('path', 'path'),
        ('selected_path', 'selectedPath'),
        ('selector_path', 'selectorPath'),
    )

    def identity(self) -> tuple:
        """Key used to decide whether two steps hit the same element."""
        if self.test_id:
            return ('testId', self.test_id)
        return ('aria', self.role, self.name, self.label)

    def display_name(self) -> str:
        return self.label or self.name or self.test_id or self.component or ''

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for attr, key in self._KEYS:
            value = getattr(self, attr)
            if value is not None:
                result[key] = value
        if self.modifiers:
            result['modifiers'] = list(self.modifiers)
        return result

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Target':
        data = data or {}
        kwargs = {attr: data.get(key) for attr, key in cls._KEYS}
        return cls(modifiers=list(data.get('modifiers', [])), **kwargs)


@dataclass
class ApiAwait:
    """One API call a step waits for."""

    method: str
    endpoint: str
    status: Optional[int] = None
    error: bool = False
    completed: bool = True

    @property
    def mutating(self) -> bool:
        return is_mutating(self.method)

    def signature(self) -> str:
        return f"{self.method} {self.endpoint}"

    def to_dict(self) -> Dict[str, Any]:
        result = {'method': self.method, 'endpoint': self.endpoint, 'status': self.status}
        if self.error:
            result['error'] = True
        if not self.completed:
            result['completed'] = False
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApiAwait':
        return cls(
            method=data.get('method', ''),
            endpoint=data.get('endpoint', ''),
            status=data.get('status'),
            error=data.get('error', False),
            completed=data.get('completed', True),
        )


@dataclass
class Navigation:
    from_path: Optional[str] = None
    to_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'from': self.from_path, 'to': self.to_path}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Navigation':
        return cls(from_path=data.get('from'), to_path=data.get('to'))


@dataclass
class Awaits:
    """Asynchronous effects a step is expected to complete."""

    api: List[ApiAwait] = field(default_factory=list)
    navigate: Optional[Navigation] = None
    state: List[str] = field(default_factory=list)

    @property
    def has_mutation(self) -> bool:
        return any(a.mutating for a in self.api)

    def is_empty(self) -> bool:
        return not self.api and self.navigate is None and not self.state

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        if self.api:
            result['api'] = [a.to_dict() for a in self.api]
        if self.navigate:
            result['navigate'] = self.navigate.to_dict()
        if self.state:
            result['state'] = list(self.state)
        return result

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Awaits':
        data = data or {}
        return cls(
            api=[ApiAwait.from_dict(a) for a in data.get('api', [])],
            navigate=Navigation.from_dict(data['navigate']) if data.get('navigate') else None,
            state=list(data.get('state', [])),
        )


@dataclass
class ModalResolution:
    """How a confirmation dialog shown during a step was answered."""

    title: Optional[str]
    resolution: str  # confirm, cancel, unknown
    button: Optional[str] = None
    message: Optional[str] = None

    def outcome(self) -> tuple:
        return (self.resolution, self.button)

    def to_dict(self) -> Dict[str, Any]:
        result = {'title': self.title, 'resolution': self.resolution}
        if self.button is not None:
            result['button'] = self.button
        if self.message is not None:
            result['message'] = self.message
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ModalResolution':
        return cls(
            title=data.get('title'),
            resolution=data.get('resolution', 'unknown'),
            button=data.get('button'),
            message=data.get('message'),
        )


@dataclass
class Toast:
    type: Optional[str]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'message': self.message}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Toast':
        return cls(type=data.get('type'), message=data.get('message', ''))


@dataclass
class Step:
    """One distilled user action."""

    action: str
    target: Optional[Target] = None
    awaits: Awaits = field(default_factory=Awaits)
    modals: List[ModalResolution] = field(default_factory=list)
    toasts: List[Toast] = field(default_factory=list)
    data_source_changes: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)

    # Interaction time; used by the modifier pass, never serialized
    timestamp: float = field(default=0.0, compare=False)

    @property
    def form_data(self) -> Optional[Dict[str, Any]]:
        return self.target.form_data if self.target else None

    @property
    def submits_form(self) -> bool:
        """Any step carrying submitted form data, keyboard submits included."""
        return isinstance(self.form_data, dict)

    @property
    def is_submission(self) -> bool:
        """A submit click; the anchor for form fills and reordering."""
        return self.action == CLICK and self.submits_form

    def describe(self) -> str:
        """Short human-readable form, e.g. 'click: Rename → "bar.txt"'."""
        if self.action == STARTUP:
            return STARTUP
        if self.action == TOAST:
            return f"toast: {self.toasts[0].message if self.toasts else ''}"

        line = f"{self.action}: {self.target.display_name() if self.target else ''}"
        form_data = self.form_data
        if isinstance(form_data, dict) and isinstance(form_data.get('name'), str):
            line += f' → "{form_data["name"]}"'
        return line

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'action': self.action}
        if self.target is not None:
            result['target'] = self.target.to_dict()
        if not self.awaits.is_empty():
            result['awaits'] = self.awaits.to_dict()
        if self.modals:
            result['modals'] = [m.to_dict() for m in self.modals]
        if self.toasts:
            result['toasts'] = [t.to_dict() for t in self.toasts]
        if self.data_source_changes:
            result['dataSourceChanges'] = self.data_source_changes
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Step':
        return cls(
            action=data['action'],
            target=Target.from_dict(data['target']) if 'target' in data else None,
            awaits=Awaits.from_dict(data.get('awaits')),
            modals=[ModalResolution.from_dict(m) for m in data.get('modals', [])],
            toasts=[Toast.from_dict(t) for t in data.get('toasts', [])],
            data_source_changes=dict(data.get('dataSourceChanges', {})),
        )


@dataclass
class Journey:
    """An ordered sequence of steps representing one user task."""

    steps: List[Step] = field(default_factory=list)
    name: Optional[str] = None

    @property
    def startup(self) -> Optional[Step]:
        return self.steps[0] if self.steps and self.steps[0].action == STARTUP else None

    @property
    def interactions(self) -> List[Step]:
        """All steps after startup."""
        return [s for s in self.steps if s.action != STARTUP]

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.name:
            result['name'] = self.name
        result['steps'] = [s.to_dict() for s in self.steps]
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Journey':
        return cls(
            steps=[Step.from_dict(s) for s in data.get('steps', [])],
            name=data.get('name'),
        )
