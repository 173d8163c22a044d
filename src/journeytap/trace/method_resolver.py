"""
HTTP method resolution for API trace events.

The instrumented app sometimes logs the unevaluated UI binding instead of
the HTTP verb it resolved at runtime, e.g.

    {$queryParams.new == 'true' ? 'post' : 'put'}

This module recovers the concrete verb so that API calls compare equal
across captures.
"""

import re
from typing import Any, Optional

from ..common.url_utils import URLMatcher


HTTP_VERBS = ('GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'HEAD', 'OPTIONS')

_BARE_VERB = re.compile(r'^\s*(' + '|'.join(HTTP_VERBS) + r')\s*$', re.IGNORECASE)

# {$queryParams.new == 'true' ? 'post' : 'put'}
_TERNARY = re.compile(
    r"""\{?\s*\$\w+\.(?P<param>\w+)\s*===?\s*(?P<q1>['"])(?P<literal>[^'"]*)(?P=q1)\s*
        \?\s*(?P<q2>['"])(?P<verb_a>\w+)(?P=q2)\s*
        :\s*(?P<q3>['"])(?P<verb_b>\w+)(?P=q3)\s*\}?""",
    re.VERBOSE,
)

_ANY_VERB = re.compile(r'\b(' + '|'.join(HTTP_VERBS) + r')\b', re.IGNORECASE)

# Create-vs-edit forms flag "new" with this literal
CREATE_FLAG_LITERAL = 'true'

# More segments than this suggests /resource/<id> (an edit)
ID_SEGMENT_THRESHOLD = 2


def resolve_method(method: Any, url: Optional[str] = None) -> Any:
    """
    Resolve a possibly expression-valued method field to an HTTP verb.

    Args:
        method: Method field from the trace (verb or template expression)
        url: Endpoint the call was made to, used to evaluate the template

    Returns:
        Uppercased verb, or the input unchanged when nothing is recognizable

    Examples:
        resolve_method('post')                                           # 'POST'
        resolve_method("{$queryParams.new == 'true' ? 'post' : 'put'}",
                       '/users?new=true')                                # 'POST'
        resolve_method("{$queryParams.new == 'true' ? 'post' : 'put'}",
                       '/api/users/42')                                  # 'PUT'
    """
    if not isinstance(method, str):
        return method

    if _BARE_VERB.match(method):
        return method.strip().upper()

    ternary = _TERNARY.search(method)
    if ternary:
        verb_a = ternary.group('verb_a').upper()
        verb_b = ternary.group('verb_b').upper()
        literal = ternary.group('literal')

        if url:
            value = URLMatcher.query_param(url, ternary.group('param'))
            if value is not None:
                return verb_a if value == literal else verb_b

            # Heuristic only: a resource id in the path usually means edit
            if literal == CREATE_FLAG_LITERAL:
                if len(URLMatcher.path_segments(url)) > ID_SEGMENT_THRESHOLD:
                    return verb_b
                return verb_a

        return verb_a

    verb = _ANY_VERB.search(method)
    if verb:
        return verb.group(1).upper()

    return method


def is_mutating(method: Any) -> bool:
    """True for verbs that change server state."""
    return isinstance(method, str) and method.upper() in ('POST', 'PUT', 'DELETE', 'PATCH')
