"""
Shared sample traces.

The rename journey: right-click the "foo.txt" row, pick "Rename" from the
context menu, type "bar.txt" into the "New name:" field (keystrokes are
logged without a trace id), click the "Rename" button.

The enter journey: type "x" into "Name" and press Enter to create an item.
"""

import copy

import pytest


RENAME_TRACE = [
    {"kind": "api:complete", "traceId": "startup-1", "perfTs": 10,
     "method": "GET", "url": "/ListFolder?folder=Documents", "status": 200},
    {"kind": "state:changes", "traceId": "startup-1", "perfTs": 12,
     "diffJson": [{"path": "DataSource:files", "before": None, "after": [{"name": "foo.txt"}]}]},

    {"kind": "interaction", "traceId": "t1", "perfTs": 1000, "interaction": "contextmenu",
     "componentType": "Table",
     "detail": {"ariaRole": "row", "ariaName": "foo.txt", "text": "foo.txt", "targetTag": "td"}},
    {"kind": "state:changes", "traceId": "t1", "perfTs": 1010,
     "diffJson": [{"path": "DataSource:files", "after": [{"name": "foo.txt"}, {"name": "notes.md"}]}]},
    {"kind": "interaction", "traceId": "t1", "perfTs": 1200, "interaction": "click",
     "detail": {"ariaRole": "menuitem", "ariaName": "Rename", "text": "Rename"}},

    {"kind": "interaction", "perfTs": 1500, "interaction": "keydown",
     "detail": {"key": "b", "ariaRole": "textbox", "ariaName": "New name:"}},
    {"kind": "interaction", "perfTs": 1520, "interaction": "keydown",
     "detail": {"key": "a", "ariaRole": "textbox", "ariaName": "New name:"}},

    {"kind": "interaction", "traceId": "t2", "perfTs": 2000, "interaction": "click",
     "detail": {"ariaRole": "button", "ariaName": "Rename", "text": "Rename"}},
    {"kind": "handler:start", "traceId": "t2", "perfTs": 2001, "eventName": "submit",
     "eventArgs": [{"name": "bar.txt"}]},
    {"kind": "api:start", "traceId": "t2", "perfTs": 2002, "method": "PUT", "url": "/files/foo.txt", "id": "r1"},
    {"kind": "api:complete", "traceId": "t2", "perfTs": 2050, "method": "PUT", "url": "/files/foo.txt",
     "id": "r1", "status": 200},
    {"kind": "state:changes", "traceId": "t2", "perfTs": 2060,
     "diffJson": [{"path": "DataSource:files", "after": [{"name": "bar.txt"}, {"name": "notes.md"}]}]},
    {"kind": "toast", "traceId": "t2", "perfTs": 2070, "toastType": "success", "message": "Renamed"},
]


ENTER_TRACE = [
    {"kind": "api:complete", "traceId": "startup-1", "perfTs": 10,
     "method": "GET", "url": "/items", "status": 200},
    {"kind": "state:changes", "traceId": "startup-1", "perfTs": 12,
     "diffJson": [{"path": "DataSource:items", "after": [{"name": "a"}]}]},

    {"kind": "interaction", "traceId": "t1", "perfTs": 1000, "interaction": "keydown",
     "detail": {"key": "x", "ariaRole": "textbox", "ariaName": "Name"}},

    {"kind": "interaction", "traceId": "t2", "perfTs": 1100, "interaction": "keydown",
     "detail": {"key": "Enter", "ariaRole": "textbox", "ariaName": "Name"}},
    {"kind": "handler:start", "traceId": "t2", "perfTs": 1101, "eventName": "submit",
     "eventArgs": [{"name": "x"}]},
    {"kind": "api:start", "traceId": "t2", "perfTs": 1102, "method": "POST", "url": "/items", "id": "r1"},
    {"kind": "api:complete", "traceId": "t2", "perfTs": 1150, "method": "POST", "url": "/items",
     "id": "r1", "status": 201},
    {"kind": "state:changes", "traceId": "t2", "perfTs": 1160,
     "diffJson": [{"path": "DataSource:items", "after": [{"name": "a"}, {"name": "x"}]}]},
]


TEXT_EXPORT = """\
--- Trace 1: startup (120ms) ---
  traceId: startup-abc
  [api:complete] [200] (13.6ms) GET /ListFolder?folder=Documents [req-1]
--- Trace 2: click "Documents" (40ms) ---
  traceId: t-2
  [interaction] click "Documents" (perfTs 1520.3)
  [handler:start] click "onClick" (file Main.xmlui)
        args: [{"displayName":"Documents","path":"/Documents","children":[{"na
  [navigate] /files → /files?folder=Documents
"""


@pytest.fixture
def rename_trace():
    """Structured log for the rename journey."""
    return copy.deepcopy(RENAME_TRACE)


@pytest.fixture
def text_export():
    """Grouped text export with a truncated handler argument."""
    return TEXT_EXPORT


@pytest.fixture
def enter_trace():
    """Type into "Name" and submit with Enter; the only snapshot before it is startup's."""
    return copy.deepcopy(ENTER_TRACE)
