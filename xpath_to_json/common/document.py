"""lxml-backed document elements queried with CSS selectors.

DocumentElement wraps an lxml HtmlElement and runs the CSS selectors
produced by the selector translator. Queries on the document root include
the root itself; queries on a matched element are confined to its
descendants, so nested rules never escape the element they were scoped to.
A selector starting with ``>`` selects among the element's children.
"""

from __future__ import annotations

from functools import lru_cache
from html import escape

from cssselect import HTMLTranslator
from cssselect import SelectorError as CssSelectorError
from lxml import etree, html
from lxml.html import HtmlElement

from xpath_to_json.common.exceptions import DocumentError, SelectorError

_translator = HTMLTranslator()

_DOCUMENT_PREFIX = "descendant-or-self::"
_SCOPED_PREFIX = "descendant::"
_CHILD_PREFIX = ""


@lru_cache(maxsize=512)
def compile_selector(selector: str, prefix: str) -> etree.XPath:
    """Compile a CSS selector into an lxml XPath evaluator.

    Args:
        selector: CSS selector, optionally starting with ``>``.
        prefix: Axis prefix used for a selector without a leading ``>``.

    Returns:
        A compiled XPath object.

    Raises:
        SelectorError: If cssselect or lxml reject the selector.
    """
    css = selector.strip()
    if css.startswith(">"):
        css = css[1:].strip()
        prefix = _CHILD_PREFIX
    try:
        expression = _translator.css_to_xpath(css, prefix=prefix)
        return etree.XPath(expression)
    except CssSelectorError as e:
        raise SelectorError(selector, f"invalid CSS selector: {e}") from e
    except etree.XPathSyntaxError as e:
        raise SelectorError(selector, f"invalid XPath: {e}") from e


class DocumentElement:
    """An element of a parsed HTML document.

    Attributes:
        _element: The underlying lxml HtmlElement.
        _scoped: True for elements returned by a query, whose own queries
            only look at their descendants.
    """

    def __init__(self, element: HtmlElement, scoped: bool = False) -> None:
        """Initialize DocumentElement.

        Args:
            element: The lxml element to wrap.
            scoped: Whether queries exclude the element itself.
        """
        self._element = element
        self._scoped = scoped

    @classmethod
    def from_html(cls, content: str) -> DocumentElement:
        """Parse an HTML string into a document root.

        Raises:
            DocumentError: If the content cannot be parsed.
        """
        if not content.strip():
            raise DocumentError("HTML document is empty")
        try:
            root = html.document_fromstring(content)
        except (etree.ParserError, ValueError) as e:
            raise DocumentError(
                "Failed to parse HTML document", {"error": str(e)}
            ) from e
        return cls(root)

    def select(self, selector: str) -> list[DocumentElement]:
        """Return the elements matching a CSS selector, in document order.

        Raises:
            SelectorError: If the selector cannot be compiled.
        """
        prefix = _SCOPED_PREFIX if self._scoped else _DOCUMENT_PREFIX
        xpath = compile_selector(selector, prefix)
        try:
            results = xpath(self._element)
        except etree.XPathEvalError as e:
            raise SelectorError(selector, f"evaluation failed: {e}") from e
        return [
            DocumentElement(result, scoped=True)
            for result in results
            if isinstance(result, HtmlElement)
        ]

    def text_content(self) -> str:
        """Concatenated text of the element and its descendants."""
        return self._element.text_content()

    def get_attribute(self, name: str) -> str | None:
        """Value of an attribute, or None if it is absent."""
        return self._element.get(name)

    def inner_html(self) -> str:
        """Serialized markup of the element's content, without its own tag."""
        elem = self._element
        leading = escape(elem.text, quote=False) if elem.text else ""
        return leading + "".join(
            html.tostring(child, encoding="unicode") for child in elem
        )

    def tag_name(self) -> str:
        """Lowercase tag name of the element."""
        return self._element.tag.lower()
