"""Exception types for extraction errors.

This module defines the exception hierarchy used while turning an HTML
document into JSON. Configuration and document errors are fatal to a run;
selector and rule evaluation errors are caught at the rule boundary and
reported in the result's ``errors`` list.
"""

from typing import Any


class ExtractionException(Exception):
    """Base class for all extraction errors.

    Carries a human-readable message plus an optional context dict that is
    rendered into the string form of the exception, so that a single line
    in the error list is enough to diagnose the failure.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the failure.
            context: Optional dict of additional context (selector, rule, ...).
        """
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context.

        Returns:
            Formatted error message string.
        """
        if not self.context:
            return self.message

        details = ", ".join(
            f"{key}: {value}" for key, value in self.context.items()
        )
        return f"{self.message} ({details})"


class ConfigurationError(ExtractionException):
    """Raised when the rule configuration is malformed.

    This is fatal: the run aborts before any rule is evaluated.
    """


class DocumentError(ExtractionException):
    """Raised when the HTML input cannot be read or parsed.

    This is fatal: without a document there is nothing to evaluate.
    """


class SelectorError(ExtractionException):
    """Raised when a selector expression cannot be translated or compiled.

    The translator raises this for any XPath construct outside the
    supported subset instead of guessing at an equivalent CSS selector.

    Attributes:
        expression: The selector expression that failed.
        reason: Short description of the unsupported or invalid construct.
    """

    def __init__(self, expression: str, reason: str) -> None:
        """Initialize the exception.

        Args:
            expression: The selector expression that failed.
            reason: Short description of what is wrong with it.
        """
        self.expression = expression
        self.reason = reason
        super().__init__(
            f"Unsupported selector: {reason}",
            {"selector": expression},
        )


class RuleEvaluationError(ExtractionException):
    """Raised when a rule is structurally unusable at evaluation time.

    Example: an ``object`` rule that declares no children.

    Attributes:
        rule_name: Name of the rule that could not be evaluated.
        reason: Description of the problem.
    """

    def __init__(self, rule_name: str, reason: str) -> None:
        """Initialize the exception.

        Args:
            rule_name: Name of the rule that could not be evaluated.
            reason: Description of the problem.
        """
        self.rule_name = rule_name
        self.reason = reason
        super().__init__(reason, {"rule": rule_name})
