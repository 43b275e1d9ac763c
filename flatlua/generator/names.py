"""Identifier escaping and qualified references for generated Lua."""

from collections.abc import Collection

LUA_KEYWORDS = frozenset(
    [
        "and",
        "break",
        "do",
        "else",
        "elseif",
        "end",
        "false",
        "for",
        "function",
        "goto",
        "if",
        "in",
        "local",
        "nil",
        "not",
        "or",
        "repeat",
        "return",
        "then",
        "true",
        "until",
        "while",
    ]
)


def make_camel(name: str, first: bool = True) -> str:
    """Convert ``snake_case`` to ``CamelCase`` (``camelCase`` if not ``first``)."""
    out: list[str] = []
    i = 0
    while i < len(name):
        c = name[i]
        if i == 0 and first:
            out.append(c.upper())
        elif c == "_" and i + 1 < len(name):
            i += 1
            out.append(name[i].upper())
        else:
            out.append(c)
        i += 1
    return "".join(out)


def qualified_name(namespace: Collection[str], name: str) -> str:
    """Join namespace components and a name into a dotted module path."""
    return ".".join([*namespace, name])


class NameResolver:
    """Escape identifiers that clash with reserved words.

    An escaped name gets a leading underscore; more are added while the
    candidate is still taken by another identifier of the same scope.
    """

    def __init__(self, reserved: frozenset[str]):
        self.reserved = reserved

    def escape(self, name: str, scope: Collection[str] = ()) -> str:
        if name not in self.reserved:
            return name
        candidate = "_" + name
        while candidate in scope or candidate in self.reserved:
            candidate = "_" + candidate
        return candidate
