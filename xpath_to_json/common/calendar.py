"""Day/item association for grid calendar pages.

Calendar pages lay out a month as a table whose rows alternate between a
row of day-number cells and a row of item cells. Nothing in the markup
links an item cell to its day; the association is positional: the items
for the day in column ``c`` of row ``i`` are in column ``c`` of row
``i + 1``.

This only works for grids with exactly one items row immediately after
each day-numbers row and with the same column alignment in both rows.
The column of a day is counted among the non-blank day cells, while the
items row is indexed over all its item cells. Blank day cells before the
first day of a month (a month starting mid-week) therefore shift items
onto the wrong day unless the items row has no matching blank cells.
"""

from __future__ import annotations

import logging

from xpath_to_json.common.document import DocumentElement
from xpath_to_json.common.rule_models import CalendarLayout

logger = logging.getLogger(__name__)


class DayItemsResolver:
    """Finds the items listed under a day in calendar tables.

    Attributes:
        document: The document root to search.
        layout: Markup conventions of the calendar.
    """

    def __init__(
        self,
        document: DocumentElement,
        layout: CalendarLayout | None = None,
    ) -> None:
        self.document = document
        self.layout = layout or CalendarLayout()

    def calendar_tables(
        self, month: str | None = None
    ) -> list[DocumentElement]:
        """Tables marked as calendars, optionally for one month only."""
        tables = []
        for table in self.document.select("table"):
            text = table.text_content()
            if self.layout.table_marker not in text:
                continue
            if month is not None and month not in text:
                continue
            tables.append(table)
        return tables

    def items_for_day(self, day: str, month: str | None = None) -> list[str]:
        """Collect the items listed under a day.

        Args:
            day: The day label as it appears in the day-number cells.
            month: Optional month label; only tables whose text contains it
                are searched.

        Returns:
            Item values in table order, then row order, then cell order.
            Empty if the day has no items row or is not found.

        Raises:
            SelectorError: If a layout selector is invalid.
        """
        label = day.strip()
        items: list[str] = []

        for table in self.calendar_tables(month):
            rows = table.select("tr")
            for index, row in enumerate(rows):
                day_labels = [
                    text
                    for cell in row.select(self.layout.day_cell_selector)
                    if (text := cell.text_content().strip())
                ]
                if label not in day_labels:
                    continue
                column = day_labels.index(label)

                if index + 1 >= len(rows):
                    continue
                item_cells = rows[index + 1].select(
                    self.layout.item_cell_selector
                )
                if column >= len(item_cells):
                    continue
                for leaf in item_cells[column].select(
                    self.layout.item_leaf_selector
                ):
                    value = leaf.text_content().strip()
                    if value:
                        items.append(value)

        logger.debug(
            "Found %d item(s) for day %r (month=%r)", len(items), label, month
        )
        return items

    def day_items(
        self, days: list[str], month: str | None = None
    ) -> dict[str, list[str]]:
        """Map each day label to its items."""
        return {day: self.items_for_day(day, month) for day in days}
