"""Shared fixtures for xpath-to-json tests."""

from __future__ import annotations

from datetime import date

import pytest
from click.testing import CliRunner

from xpath_to_json.common.clock import FixedClock
from xpath_to_json.common.document import DocumentElement

PRODUCT_HTML = """
<html>
<head><title>Shop</title></head>
<body>
    <h1>  Catalog  </h1>
    <div class="product card" data-id="p1">
        <h2>Widget</h2>
        <span class="price">$10</span>
        <a href="/p/1">More</a>
    </div>
    <div class="product card" data-id="p2">
        <h2>Gadget</h2>
        <span class="price">$20</span>
        <a href="/p/2">More</a>
    </div>
    <p class="empty"></p>
</body>
</html>
"""

CALENDAR_HTML = """
<html>
<body>
    <table class="calendar">
        <tr><td colspan="2">March 2025 - Ex-Dividend Calendar</td></tr>
        <tr>
            <td class="caltabletdnum">1</td>
            <td class="caltabletdnum">2</td>
        </tr>
        <tr>
            <td class="caltabletdevt"><a href="/s/aaa">AAA</a></td>
            <td class="caltabletdevt"><a href="/s/bbb">BBB</a></td>
        </tr>
    </table>
</body>
</html>
"""

TWO_MONTH_CALENDAR_HTML = """
<html>
<body>
    <table>
        <tr><td colspan="2">April 2025 - Ex-Dividend Calendar</td></tr>
        <tr>
            <td class="caltabletdnum">1</td>
            <td class="caltabletdnum">2</td>
        </tr>
        <tr>
            <td class="caltabletdevt"><a>CCC</a></td>
            <td class="caltabletdevt"><a>DDD</a><a>EEE</a></td>
        </tr>
    </table>
    <table>
        <tr><td colspan="2">March 2025 - Ex-Dividend Calendar</td></tr>
        <tr>
            <td class="caltabletdnum">1</td>
            <td class="caltabletdnum">2</td>
        </tr>
        <tr>
            <td class="caltabletdevt"><a>AAA</a></td>
            <td class="caltabletdevt"><a>BBB</a></td>
        </tr>
    </table>
    <table>
        <caption>Unrelated table</caption>
        <tr><td class="caltabletdnum">1</td></tr>
        <tr><td class="caltabletdevt"><a>ZZZ</a></td></tr>
    </table>
</body>
</html>
"""

DAY_CELL_XPATH = (
    "//td[contains(concat(' ', @class, ' '), ' caltabletdnum ')]/text()"
)


@pytest.fixture
def product_document() -> DocumentElement:
    """Two product cards plus a heading and an empty paragraph."""
    return DocumentElement.from_html(PRODUCT_HTML)


@pytest.fixture
def calendar_document() -> DocumentElement:
    """A single-month calendar with one item under each of two days."""
    return DocumentElement.from_html(CALENDAR_HTML)


@pytest.fixture
def two_month_document() -> DocumentElement:
    """Two month tables sharing day labels, plus an unmarked table."""
    return DocumentElement.from_html(TWO_MONTH_CALENDAR_HTML)


@pytest.fixture
def fixed_clock() -> FixedClock:
    """Clock pinned to 2025-03-07."""
    return FixedClock(date(2025, 3, 7))


@pytest.fixture
def calendar_config_data() -> dict:
    """Calendar configuration projecting items per month and day."""
    return {
        "name": "ex-dividend",
        "description": "Symbols by ex-dividend day",
        "rules": [
            {
                "name": "months",
                "xpath": "//table//tr[1]/td/text()",
                "extract_type": "text",
                "for-each-item": {
                    "name": "days",
                    "xpath": DAY_CELL_XPATH,
                    "extract_type": "text",
                    "map-item": {
                        "name": "symbol",
                        "xpath": ".//a/text()",
                        "extract_type": "text",
                    },
                },
            }
        ],
        "output_sample": {"{months}": {"{days1-2}": ["{symbol}"]}},
    }


@pytest.fixture
def runner() -> CliRunner:
    """Click test runner."""
    return CliRunner()


@pytest.fixture
def calendar_html() -> str:
    """Markup of the single-month calendar page."""
    return CALENDAR_HTML
