"""xpath-to-json CLI: apply a rule configuration to an HTML file.

Usage:
    xpath-to-json --xpath-config rules.json --html page.html
    xpath-to-json --xpath-config rules.json --html page.html --output out.json
"""

from __future__ import annotations

import logging
from pathlib import Path

import click

from xpath_to_json.common.document import DocumentElement
from xpath_to_json.common.exceptions import ConfigurationError, DocumentError
from xpath_to_json.common.loading import (
    load_configuration,
    read_html_file,
    write_result,
)
from xpath_to_json.extraction import extract


@click.command()
@click.version_option(package_name="xpath-to-json")
@click.option(
    "--xpath-config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Path to the JSON rule configuration.",
)
@click.option(
    "--html",
    "html_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Path to the HTML file to process.",
)
@click.option(
    "--output",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the JSON result here instead of printing it.",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def cli(
    config_path: Path,
    html_path: Path,
    output_path: Path | None,
    verbose: bool,
) -> None:
    """Extract JSON from an HTML file using XPath rules.

    \b
    Examples:
        xpath-to-json --xpath-config rules.json --html page.html
        xpath-to-json --xpath-config rules.json --html page.html \\
            --output result.json
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_configuration(config_path)
        document = DocumentElement.from_html(read_html_file(html_path))
    except (ConfigurationError, DocumentError) as e:
        raise click.ClickException(str(e)) from e

    result = extract(config, document)

    if output_path is not None:
        write_result(result, output_path)
        click.echo(f"Results written to {output_path}")
    else:
        click.echo(write_result(result))


if __name__ == "__main__":
    cli()
