"""End-to-end extraction: rules, raw data, projection, result.

Usage::

    from xpath_to_json.common.document import DocumentElement
    from xpath_to_json.common.loading import load_configuration
    from xpath_to_json.extraction import extract

    config = load_configuration("rules.json")
    document = DocumentElement.from_html(html_text)
    result = extract(config, document)
    print(result.to_dict())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from xpath_to_json.common.clock import Clock
from xpath_to_json.common.document import DocumentElement
from xpath_to_json.common.rule_models import RuleConfiguration
from xpath_to_json.evaluator import RuleEvaluator
from xpath_to_json.projection import TemplateProjector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one extraction run.

    Attributes:
        config_name: Name of the configuration that was applied.
        data: The projected output, or the raw data store when the
            configuration has no output sample.
        errors: One message per rule that failed, in rule order.
    """

    config_name: str
    data: Any
    errors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "config_name": self.config_name,
            "data": self.data,
            "errors": list(self.errors),
        }


def extract(
    config: RuleConfiguration,
    document: DocumentElement,
    clock: Clock | None = None,
) -> ExtractionResult:
    """Apply a configuration to a document.

    Args:
        config: The validated rule configuration.
        document: The parsed document root.
        clock: Clock for date placeholders; defaults to the system clock.

    Returns:
        The extraction result.
    """
    evaluator = RuleEvaluator(document, config.calendar)
    raw, errors = evaluator.run(config.rules)
    logger.info(
        "Evaluated %d rule(s) for %r with %d error(s)",
        len(config.rules),
        config.name,
        len(errors),
    )

    if config.output_sample is None:
        data: Any = raw
    else:
        projector = TemplateProjector(clock, evaluator.resolver)
        data = projector.project(config.output_sample, raw)

    return ExtractionResult(
        config_name=config.name, data=data, errors=tuple(errors)
    )
