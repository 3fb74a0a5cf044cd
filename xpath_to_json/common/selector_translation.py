"""XPath-subset to CSS selector translation.

Rule authors write selectors in a small subset of XPath. This module turns
them into CSS selectors that cssselect can compile, and rejects anything it
cannot represent faithfully. The subset:

- ``//`` and ``.//`` (descendant), ``/`` (child), leading ``/`` (root),
  leading ``./`` or a bare step (child of the evaluation scope);
- tag names and ``*``;
- ``[@a]``, ``[@a='v']``, ``[contains(@a, 'v')]``,
  ``[contains(concat(' ', @class, ' '), ' v ')]`` for a single
  word ``v``, ``[contains(., 'v')]`` and ``and`` between them;
- fixed-index predicates for the pairs in ``INDEXED_CHILD_LIMITS``;
- a trailing ``/text()`` or ``/@attr``, which is dropped.

Selectors relative to the evaluation scope's children are rendered with a
leading ``>`` combinator, e.g. ``./td`` becomes ``> td``.

Examples:
    >>> xpath_to_css("//div[contains(concat(' ', @class, ' '), ' card ')]/h2")
    'div.card > h2'
    >>> xpath_to_css("//a[contains(@href, '/p/')]/@href")
    'a[href*="/p/"]'
    >>> xpath_to_css("//table//tr[2]/td[1]/text()")
    'table tr:nth-child(2) > td:nth-child(1)'
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import NamedTuple, NoReturn

from xpath_to_json.common.exceptions import SelectorError

# Tags that accept a positional predicate, with the highest index allowed.
# Positions map to :nth-child(), i.e. the Nth child of the parent element.
INDEXED_CHILD_LIMITS: dict[str, int] = {
    "td": 2,
    "tr": 18,
    "font": 2,
}

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<string>'[^']*'|"[^"]*")
      | (?P<number>\d+(?:\.\d+)?)
      | (?P<op>//|::|!=|<=|>=|\.\.|[/\[\]()@,=|.*<>+-])
      | (?P<name>[A-Za-z_][\w-]*(?::[A-Za-z_][\w-]*)?)
    )
    """,
    re.VERBOSE,
)

_CSS_IDENTIFIER_RE = re.compile(r"^-?[_a-zA-Z][_a-zA-Z0-9-]*$")

_SEPARATORS = ("/", "//")


class Token(NamedTuple):
    kind: str
    value: str


def tokenize(expression: str) -> list[Token]:
    """Split an XPath expression into tokens.

    Raises:
        SelectorError: On characters that cannot start any token.
    """
    tokens: list[Token] = []
    pos = 0
    while pos < len(expression):
        if expression[pos:].strip() == "":
            break
        match = _TOKEN_RE.match(expression, pos)
        if match is None or match.end() == pos:
            char = expression[pos:].lstrip()[:1]
            raise SelectorError(expression, f"unexpected character {char!r}")
        kind = match.lastgroup
        assert kind is not None
        tokens.append(Token(kind, match.group(kind)))
        pos = match.end()
    return tokens


def _css_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class _XPathParser:
    """Recursive-descent parser producing a CSS selector string."""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self.tokens = tokenize(expression)
        self.pos = 0

    # -- token helpers -----------------------------------------------------

    def _peek(self, offset: int = 0) -> Token | None:
        index = self.pos + offset
        if index < len(self.tokens):
            return self.tokens[index]
        return None

    def _at(self, value: str, offset: int = 0) -> bool:
        token = self._peek(offset)
        return token is not None and token.value == value

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            self._fail("unexpected end of expression")
        self.pos += 1
        return token

    def _expect(self, value: str) -> Token:
        token = self._next()
        if token.value != value:
            self._fail(f"expected {value!r}, found {token.value!r}")
        return token

    def _expect_kind(self, kind: str, what: str) -> Token:
        token = self._next()
        if token.kind != kind:
            self._fail(f"expected {what}, found {token.value!r}")
        return token

    def _done(self) -> bool:
        return self.pos >= len(self.tokens)

    def _fail(self, reason: str) -> NoReturn:
        raise SelectorError(self.expression, reason)

    # -- grammar -----------------------------------------------------------

    def parse(self) -> str:
        if not self.tokens:
            self._fail("empty expression")

        prefix = ""
        at_root = False
        if self._at("."):
            self._next()
            if self._at("//"):
                self._next()
            elif self._at("/"):
                self._next()
                prefix = "> "
            else:
                self._fail("the context node '.' is not an element step")
        elif self._at("//"):
            self._next()
        elif self._at("/"):
            self._next()
            at_root = True
        elif self._at("("):
            self._fail("grouped expressions are not supported")
        else:
            prefix = "> "

        parts: list[str] = []
        while True:
            step = self._parse_step()
            if step is None:
                # text() or @attr: only valid as the final step
                if not self._done():
                    self._fail(
                        "text() and attribute steps must end the expression"
                    )
                break
            if at_root and not parts:
                step += ":root"
            parts.append(step)

            if self._done():
                break
            separator = self._next()
            if separator.value not in _SEPARATORS:
                if separator.value == "|":
                    self._fail("unions ('|') are not supported")
                self._fail(f"unexpected {separator.value!r} after a step")
            if self._done():
                self._fail("expression ends with a separator")
            parts.append(" > " if separator.value == "/" else " ")

        if not parts:
            self._fail("no element step to select")
        # Drop the combinator left before a stripped text()/@attr step.
        while parts and parts[-1] in (" > ", " "):
            parts.pop()
        return prefix + "".join(parts)

    def _parse_step(self) -> str | None:
        """Parse one location step.

        Returns:
            The CSS compound selector, or None for a terminal text()/@attr
            step.
        """
        token = self._next()

        if token.value == "@":
            name = self._expect_kind("name", "an attribute name")
            if ":" in name.value:
                self._fail(f"namespaced attribute {name.value!r}")
            return None
        if token.value == "..":
            self._fail("parent steps ('..') are not supported")
        if token.value == ".":
            self._fail("self steps ('.') are only supported as a prefix")

        if token.value == "*":
            tag = "*"
        elif token.kind == "name":
            if self._at("::"):
                self._fail(f"axis '{token.value}::' is not supported")
            if self._at("("):
                if token.value == "text":
                    self._next()
                    self._expect(")")
                    return None
                self._fail(f"function '{token.value}()' is not a step")
            if ":" in token.value:
                self._fail(f"namespaced name {token.value!r}")
            tag = token.value.lower()
        else:
            self._fail(f"expected an element step, found {token.value!r}")

        compound = tag
        while self._at("["):
            self._next()
            compound += self._parse_predicate(tag)
            self._expect("]")
        return compound

    def _parse_predicate(self, tag: str) -> str:
        token = self._peek()
        if token is not None and token.kind == "number":
            self._next()
            return self._index_predicate(tag, token.value)

        conditions = [self._parse_condition()]
        while self._at("and"):
            self._next()
            conditions.append(self._parse_condition())
        if self._at("or"):
            self._fail("'or' predicates are not supported")
        return "".join(conditions)

    def _index_predicate(self, tag: str, raw: str) -> str:
        limit = INDEXED_CHILD_LIMITS.get(tag)
        if not raw.isdigit():
            self._fail(f"non-integer position {raw}")
        index = int(raw)
        if limit is None or not 1 <= index <= limit:
            self._fail(f"positional predicate {tag}[{index}] is not supported")
        return f":nth-child({index})"

    def _parse_condition(self) -> str:
        token = self._next()

        if token.value == "@":
            attr = self._attribute_name()
            if self._at("="):
                self._next()
                value = self._string()
                return f"[{attr}={_css_string(value)}]"
            if self._at("!="):
                self._fail("'!=' comparisons are not supported")
            return f"[{attr}]"

        if token.kind == "name" and self._at("("):
            if token.value == "contains":
                return self._parse_contains()
            self._fail(f"function '{token.value}()' is not supported")

        if token.kind == "name" and self._at("::"):
            self._fail(f"axis '{token.value}::' is not supported")

        if token.value in ("/", "//", ".", "..") or token.kind == "name":
            self._fail("path predicates are not supported")
        self._fail(f"unexpected {token.value!r} in predicate")

    def _parse_contains(self) -> str:
        self._expect("(")
        token = self._next()

        if token.value == "@":
            attr = self._attribute_name()
            self._expect(",")
            value = self._string()
            self._expect(")")
            return f"[{attr}*={_css_string(value)}]"

        if token.value == "concat":
            attr = self._parse_padded_concat()
            self._expect(",")
            value = self._string()
            self._expect(")")
            return self._word_containment(attr, value)

        if token.value == "text" and self._at("("):
            # :contains() tests the whole string value, not the first
            # text node.
            self._fail("contains(text(), ...) is not supported; use '.'")

        if token.value == ".":
            self._expect(",")
            value = self._string()
            self._expect(")")
            return f":contains({_css_string(value)})"

        self._fail(f"unsupported contains() argument {token.value!r}")

    def _parse_padded_concat(self) -> str:
        """Parse ``concat(' ', @attr, ' ')`` and return the attribute name."""
        self._expect("(")
        if self._string() != " ":
            self._fail("concat() must pad the attribute with single spaces")
        self._expect(",")
        self._expect("@")
        attr = self._attribute_name()
        self._expect(",")
        if self._string() != " ":
            self._fail("concat() must pad the attribute with single spaces")
        self._expect(")")
        return attr

    def _word_containment(self, attr: str, value: str) -> str:
        word = value[1:-1]
        if (
            len(value) < 3
            or value[0] != " "
            or value[-1] != " "
            or word != word.strip()
            or len(word.split()) != 1
        ):
            self._fail(
                "contains(concat(...)) must search for one word padded "
                "with single spaces"
            )
        if attr == "class" and _CSS_IDENTIFIER_RE.match(word):
            return f".{word}"
        return f"[{attr}~={_css_string(word)}]"

    def _attribute_name(self) -> str:
        name = self._expect_kind("name", "an attribute name")
        if ":" in name.value:
            self._fail(f"namespaced attribute {name.value!r}")
        return name.value

    def _string(self) -> str:
        token = self._expect_kind("string", "a string literal")
        return token.value[1:-1]


@lru_cache(maxsize=512)
def xpath_to_css(expression: str) -> str:
    """Translate an XPath-subset expression into a CSS selector.

    Args:
        expression: The XPath expression from a rule.

    Returns:
        The equivalent CSS selector. Selectors anchored to the children of
        the evaluation scope start with ``>``.

    Raises:
        SelectorError: If the expression uses anything outside the
            supported subset.
    """
    return _XPathParser(expression.strip()).parse()
