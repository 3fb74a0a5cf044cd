"""Reading configurations and HTML files, writing results.

HTML files are read as bytes and decoded with the charset declared in the
document's ``charset=`` meta attribute. Only UTF-8 and the Western
single-byte charsets are recognised; anything else is decoded as UTF-8.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from xpath_to_json.common.exceptions import ConfigurationError, DocumentError
from xpath_to_json.common.rule_models import (
    RuleConfiguration,
    parse_configuration,
)

if TYPE_CHECKING:
    from xpath_to_json.extraction import ExtractionResult

logger = logging.getLogger(__name__)

_CHARSET_RE = re.compile(r"""charset=["']?([^"'>\s;/]+)""", re.IGNORECASE)

_ENCODINGS = {
    "utf-8": "utf-8",
    "utf8": "utf-8",
    "windows-1252": "cp1252",
    "iso-8859-1": "cp1252",
    "latin1": "cp1252",
}


def load_configuration(path: str | Path) -> RuleConfiguration:
    """Load and validate a JSON rule configuration file.

    Raises:
        ConfigurationError: If the file cannot be read, is not JSON or does
            not describe a valid configuration.
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            "Failed to read configuration file", {"path": str(path)}
        ) from e
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Failed to parse configuration JSON: {e.msg}",
            {"path": str(path), "line": e.lineno},
        ) from e

    config = parse_configuration(data)
    logger.debug(
        "Loaded configuration %r with %d rule(s)",
        config.name,
        len(config.rules),
    )
    return config


def detect_encoding(content: str) -> str:
    """Pick the codec named by the first ``charset=`` declaration.

    Examples:
        >>> detect_encoding('<meta charset="ISO-8859-1">')
        'cp1252'
        >>> detect_encoding("<html></html>")
        'utf-8'
    """
    match = _CHARSET_RE.search(content)
    if match is None:
        return "utf-8"
    return _ENCODINGS.get(match.group(1).strip().lower(), "utf-8")


def read_html_file(path: str | Path) -> str:
    """Read an HTML file, decoding it with its declared charset.

    Raises:
        DocumentError: If the file cannot be read.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise DocumentError(
            "Failed to read HTML file", {"path": str(path)}
        ) from e

    encoding = detect_encoding(raw.decode("utf-8", errors="replace"))
    logger.debug("Decoding %s as %s", path, encoding)
    return raw.decode(encoding, errors="replace")


def write_result(
    result: ExtractionResult, path: str | Path | None = None
) -> str:
    """Serialize a result as pretty-printed JSON.

    Args:
        result: The extraction result.
        path: Optional output file; when given the JSON is written there.

    Returns:
        The serialized JSON.
    """
    output = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
    if path is not None:
        Path(path).write_text(output, encoding="utf-8")
    return output
