"""Dependent parameter names of a route pattern.

The host router owns matching. The differencer only needs to know which
parameters a node depends on, so this module reads the names back out of
the node's pattern. Two placeholder syntaxes are recognized, one per
path segment:

- braces: ``/users/{id}``, typed ``/users/{id:int}``
- colon: ``/users/:id``, optional ``/users/:id?``
"""

import re

_BRACE_RE = re.compile(r"^\{(?P<name>[^}:]+)(?::[^}]*)?\}$")
_COLON_RE = re.compile(r"^:(?P<name>[^/?]+)\??$")


def param_keys(path: str) -> tuple[str, ...]:
    """Return the parameter names of *path*, in order, without duplicates.

    Examples::

        param_keys("/about")                     -> ()
        param_keys("/orgs/{org}/repos/{repo}")   -> ("org", "repo")
        param_keys("/users/:id?")                -> ("id",)
    """
    keys: list[str] = []
    for part in path.split("/"):
        match = _BRACE_RE.match(part) or _COLON_RE.match(part)
        if match is not None and match["name"] not in keys:
            keys.append(match["name"])
    return tuple(keys)
