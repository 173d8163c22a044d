"""
JourneyTap URL Utilities

Shared URL parsing helpers for endpoints recorded in traces. Endpoints
are usually app-relative ("/ListFolder?folder=Documents") but may be
absolute when the capture ran behind a proxy.
"""

from urllib.parse import urlparse, parse_qs, unquote
from typing import List, Optional


# Base used to parse relative endpoints
_LOCAL_BASE = 'http://localhost'


class URLMatcher:
    """Handles endpoint parsing and normalization for trace comparison."""

    @staticmethod
    def _parse(url: str):
        if '://' not in url:
            if not url.startswith('/'):
                url = '/' + url
            url = _LOCAL_BASE + url
        return urlparse(url)

    @staticmethod
    def endpoint_path(url: str) -> str:
        """
        Strip scheme, host, query string and fragment from an endpoint.

        Args:
            url: Absolute or relative endpoint

        Returns:
            Path component, always starting with '/'
        """
        if not url:
            return ''
        return URLMatcher._parse(url).path or '/'

    @staticmethod
    def query_param(url: str, name: str) -> Optional[str]:
        """
        Get the first value of a query parameter.

        Args:
            url: Endpoint that may carry a query string
            name: Parameter name

        Returns:
            Decoded value, or None if the parameter is absent
        """
        if not url:
            return None
        values = parse_qs(URLMatcher._parse(url).query, keep_blank_values=True).get(name)
        return values[0] if values else None

    @staticmethod
    def path_segments(url: str) -> List[str]:
        """Non-empty path segments of an endpoint."""
        return [seg for seg in URLMatcher.endpoint_path(url).split('/') if seg]

    @staticmethod
    def match_fragment(url: str) -> str:
        """
        Fragment used in generated `waitForResponse` predicates.

        Drops the query string and leading slash so the predicate matches
        regardless of the app's base path.
        """
        if not url:
            return ''
        return url.split('?')[0].lstrip('/')

    @staticmethod
    def decoded(url: str) -> str:
        """Percent-decoded form of a navigation target."""
        return unquote(url or '')
