"""
=============================================================================
URI PATTERN COMPILER
=============================================================================

Turns the URI a resource is created with into something that can be matched
against incoming request targets.

    server.create_resource("/user/{userId}/details?filter=*&version=1")

=============================================================================
ANATOMY OF A DECLARATION
=============================================================================

    /user/{userId}/details?filter=*&version=1
    ─────────┬──────────── ────────┬─────────
             │                     │
           PATH                  QUERY CONSTRAINTS
             │                     │
             │                     ├── filter=*   any non-empty value
             │                     └── version=1  exactly "1"
             │
             ├── "/user/"     regex, passed through
             ├── "{userId}"   named parameter → (?P<userId>[^/]+)
             └── "/details"   regex, passed through

The path is a REGULAR EXPRESSION with one extension: {identifier}
placeholders. Everything that is not a placeholder is handed to `re` as is,
so these all work:

    /hello/[0-9]/[A-z]/.*        character classes and wildcards
    /codes/[0-9]{3}              quantifiers ({3} is not an identifier)
    /files/{name}\\.json          placeholders mixed with escapes

=============================================================================
COMPILATION
=============================================================================

    "/user/{userId}/details"
            │
            ▼   replace placeholders
    "/user/(?P<userId>[^/]+)/details"
            │
            ▼   anchor both ends
    "^/user/(?P<userId>[^/]+)/details$"
            │
            ▼   re.compile()
    <re.Pattern>

Anchoring means "/user/1/details/more" does NOT match: the pattern must
describe the whole path, not a prefix of it.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple
from urllib.parse import parse_qsl

from ..errors import ConfigurationError


# Value of a query constraint that accepts any non-empty value
WILDCARD = "*"

# {identifier}: must start with a letter or underscore so regex quantifiers
# like {3} or {2,4} are left alone
PLACEHOLDER_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass(frozen=True)
class URIParameters:
    """
    What a URI declaration expects from a request, once compiled.

    Attributes:
        path: Ordered names of the {placeholders} in the path.
        query: Query constraints, name → expected value ("*" = any).
    """

    path: Tuple[str, ...] = ()
    query: Dict[str, str] = field(default_factory=dict)


def split_target(target: str) -> Tuple[str, str]:
    """
    Split a request target (or a declaration) at the first "?".

        "/users?page=1&q=a?b"  →  ("/users", "page=1&q=a?b")
        "/users"               →  ("/users", "")
    """
    path, _, query = target.partition("?")
    return path, query


def parse_query(query: str) -> Dict[str, str]:
    """
    Parse a request query string into a flat mapping.

    The last occurrence of a repeated key wins and blank values are kept, so
    "?a=1&a=2&b=" becomes {"a": "2", "b": ""}.
    """
    return dict(parse_qsl(query, keep_blank_values=True))


class URIPattern:
    """
    A compiled URI declaration.

    Usage:
        pattern = URIPattern("/user/{id}?filter=*")

        pattern.matches("/user/42")                  # True
        pattern.extract_path_params("/user/42")      # {"id": "42"}
        pattern.matches_query({"filter": "all"})     # True
        pattern.matches_query({})                    # False

    Raises:
        ConfigurationError: When the declaration is malformed. This happens
            at construction, never while serving a request.
    """

    def __init__(self, uri: str):
        self.uri = uri

        path, query = split_target(uri)
        self._regex, param_names = self._compile_path(path)
        self.parameters = URIParameters(
            path=tuple(param_names),
            query=self._compile_query(query),
        )

    def __repr__(self) -> str:
        return f"URIPattern({self.uri!r})"

    # =========================================================================
    # COMPILATION
    # =========================================================================

    @staticmethod
    def _compile_path(path: str) -> Tuple[re.Pattern, List[str]]:
        """
        Compile the path half of a declaration into an anchored regex.

        Returns:
            Tuple of (compiled regex, ordered placeholder names)
        """
        param_names: List[str] = []

        def to_group(match: re.Match) -> str:
            # ─────────────────────────────────────────────────────────────
            # {userId} → (?P<userId>[^/]+)
            # ─────────────────────────────────────────────────────────────
            # One or more characters that are not "/": exactly one path
            # segment, never more.
            name = match.group(1)
            param_names.append(name)
            return f"(?P<{name}>[^/]+)"

        source = PLACEHOLDER_PATTERN.sub(to_group, path)

        try:
            regex = re.compile(f"^{source}$")
        except re.error as e:
            # Duplicate placeholder names end up here too
            # ("redefinition of group name")
            raise ConfigurationError(f"Invalid URI pattern {path!r}: {e}") from e

        return regex, param_names

    @staticmethod
    def _compile_query(query: str) -> Dict[str, str]:
        """
        Parse "filter=*&version=1" into {"filter": "*", "version": "1"}.

        Every pair needs a key and an "=". The value may be empty, in which
        case the request must carry the key with an empty value.
        """
        constraints: Dict[str, str] = {}
        if not query:
            return constraints

        for pair in query.split("&"):
            if not pair:
                continue
            key, sep, value = pair.partition("=")
            if not key or not sep:
                raise ConfigurationError(f"Invalid query constraint {pair!r}: expected key=value")
            constraints[key] = value

        return constraints

    # =========================================================================
    # MATCHING
    # =========================================================================

    def matches(self, path: str) -> bool:
        """True if the whole request path matches the compiled pattern."""
        return self._regex.match(path) is not None

    def extract_path_params(self, path: str) -> Dict[str, str]:
        """
        Values bound to each {placeholder}, empty if the path doesn't match.
        """
        match = self._regex.match(path)
        if match is None:
            return {}
        return match.groupdict()

    def matches_query(self, query_params: Dict[str, str]) -> bool:
        """True if every declared query constraint is satisfied."""
        return satisfies_constraints(self.parameters.query, query_params)


def satisfies_constraints(constraints: Dict[str, str], query_params: Dict[str, str]) -> bool:
    """
    Check request query parameters against a set of constraints.

        constraint   request          result
        ──────────   ──────────────   ──────
        filter=*     filter=all       match
        filter=*     filter=          no match (empty value)
        filter=*     (absent)         no match
        version=1    version=1        match
        version=1    version=2        no match
    """
    for name, expected in constraints.items():
        if name not in query_params:
            return False

        actual = query_params[name]
        if expected == WILDCARD:
            if not actual:
                return False
        elif actual != expected:
            return False

    return True
