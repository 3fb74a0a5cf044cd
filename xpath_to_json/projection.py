"""Template projection: shaping raw rule values into the final output.

An output template is any JSON value. Strings of the form ``{identifier}``
are placeholders resolved against the raw data store, and object keys are
placeholders too. Templates are compiled once into a tree of nodes, with
every placeholder parsed into its variant, and then rendered.

Special forms:

- ``{"{months}": tpl}``: render ``tpl`` once per month in ``months``, in
  calendar order, each time with ``day_items`` narrowed to that month.
  Months are keyed by name only, so labels for the same month in different
  years share one key; the later label wins and a warning is logged.
- ``{"{daysN-M}": ...}``: one entry per day ``N``..``M`` (day 0 skipped)
  holding that day's items; the template key and value are discarded.
- ``{"{daysN}": ...}``: the Nth day label mapped to its items.
- ``["{items}"]``: ``items`` distributed round-robin over ``days``.
- ``[{"{A}": "{B}"}]``: ``A`` and ``B`` zipped into one-entry objects.

Projection never raises. Unresolved placeholders are passed through as
literal strings.

The round-robin and even-split distributions used when no ``day_items``
mapping exists are approximations: they do not know which day an item
really belongs to.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from xpath_to_json.common.calendar import DayItemsResolver
from xpath_to_json.common.clock import CLOCK_FIELDS, Clock, SystemClock
from xpath_to_json.common.exceptions import SelectorError
from xpath_to_json.common.placeholders import (
    ClockField,
    DayIndex,
    DayRange,
    Lookup,
    MonthExpansion,
    Placeholder,
    parse_placeholder,
    placeholder_identifier,
)

logger = logging.getLogger(__name__)

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass(frozen=True)
class ProjectionContext:
    """Everything a template node needs to render.

    Attributes:
        raw: The raw data store.
        clock: Source of today's date for clock placeholders.
        resolver: Day/item resolver used to narrow ``day_items`` per month.
    """

    raw: Mapping[str, Any]
    clock: Clock = field(default_factory=SystemClock)
    resolver: DayItemsResolver | None = None

    def with_day_items(
        self, day_items: dict[str, list[Any]]
    ) -> ProjectionContext:
        raw = dict(self.raw)
        raw["day_items"] = day_items
        return ProjectionContext(raw, self.clock, self.resolver)


# -- raw data helpers -------------------------------------------------------


def _sequence(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _month_token(label: str) -> str:
    tokens = label.split()
    return tokens[0] if tokens else ""


def month_order(label: str) -> int:
    """Calendar position of a month label; unknown names sort last.

    Examples:
        >>> month_order("March 2025")
        2
        >>> month_order("Someday")
        12
    """
    token = _month_token(label)
    if token in MONTH_NAMES:
        return MONTH_NAMES.index(token)
    return len(MONTH_NAMES)


def month_filter(label: str) -> str:
    """Text identifying a month's table: the month name plus its year.

    Examples:
        >>> month_filter("October 2025  - Ex-Dividend Calendar")
        'October 2025'
        >>> month_filter("October")
        'October'
    """
    tokens = label.split()
    if len(tokens) > 1 and len(tokens[1]) == 4 and tokens[1].isdigit():
        return f"{tokens[0]} {tokens[1]}"
    return tokens[0] if tokens else ""


def _month_labels(ctx: ProjectionContext) -> list[str]:
    return [
        m
        for m in _sequence(ctx.raw.get("months"))
        if isinstance(m, str) and m.split()
    ]


def _day_items(ctx: ProjectionContext) -> dict[str, Any] | None:
    day_items = ctx.raw.get("day_items")
    return day_items if isinstance(day_items, dict) else None


def _even_split(ctx: ProjectionContext, index: int) -> list[Any]:
    """Items of the ``index``-th day, splitting ``items`` evenly by day.

    The last day absorbs the remainder.
    """
    days = _sequence(ctx.raw.get("days"))
    items = _sequence(ctx.raw.get("items"))
    if not days or not items or index >= len(days):
        return []
    per_day = len(items) // len(days)
    start = index * per_day
    end = len(items) if index == len(days) - 1 else start + per_day
    return copy.deepcopy(items[start:end])


def _day_label(ctx: ProjectionContext, index: int) -> str | None:
    days = _sequence(ctx.raw.get("days"))
    if index < len(days) and isinstance(days[index], str):
        return days[index].strip()
    return None


def _indexed_day_items(ctx: ProjectionContext, index: int) -> list[Any]:
    label = _day_label(ctx, index)
    if label is None:
        return []
    day_items = _day_items(ctx)
    if day_items is not None:
        return copy.deepcopy(_sequence(day_items.get(label)))
    return _even_split(ctx, index)


def _day_range(
    ctx: ProjectionContext, start: int, end: int
) -> dict[str, Any]:
    day_items = _day_items(ctx)
    labels = [
        d.strip() if isinstance(d, str) else None
        for d in _sequence(ctx.raw.get("days"))
    ]

    result: dict[str, Any] = {}
    for day in range(start, end + 1):
        if day == 0:
            continue
        key = str(day)
        if day_items is not None:
            result[key] = copy.deepcopy(_sequence(day_items.get(key)))
        elif key in labels:
            result[key] = _even_split(ctx, labels.index(key))
        else:
            result[key] = []
    return result


def _plain_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return copy.deepcopy(value)


# -- placeholder resolution -------------------------------------------------


def resolve_value(
    placeholder: Placeholder, source: str, ctx: ProjectionContext
) -> Any:
    """Resolve a placeholder used as a template value."""
    if isinstance(placeholder, ClockField):
        return CLOCK_FIELDS[placeholder.name](ctx.clock.today())
    if isinstance(placeholder, MonthExpansion):
        months = _month_labels(ctx)
        return _month_token(months[0]) if months else source
    if isinstance(placeholder, DayIndex):
        return _indexed_day_items(ctx, placeholder.index)
    if isinstance(placeholder, DayRange):
        return _day_range(ctx, placeholder.start, placeholder.end)

    assert isinstance(placeholder, Lookup)
    if placeholder.name not in ctx.raw:
        logger.debug("Unresolved placeholder %s", source)
        return source
    value = ctx.raw[placeholder.name]
    if isinstance(value, list):
        if not value:
            return source
        value = value[0]
    return _plain_value(value)


def resolve_key(
    placeholder: Placeholder | None, source: str, ctx: ProjectionContext
) -> str:
    """Resolve a placeholder used as an object key."""
    if placeholder is None or isinstance(placeholder, DayRange):
        return source
    if isinstance(placeholder, ClockField):
        return CLOCK_FIELDS[placeholder.name](ctx.clock.today())
    if isinstance(placeholder, MonthExpansion):
        months = _month_labels(ctx)
        return _month_token(months[0]) if months else source
    if isinstance(placeholder, DayIndex):
        label = _day_label(ctx, placeholder.index)
        return label if label is not None else source

    assert isinstance(placeholder, Lookup)
    value = ctx.raw.get(placeholder.name)
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, str):
        return value.strip()
    logger.debug("Unresolved key placeholder %s", source)
    return source


# -- template nodes ---------------------------------------------------------


class TemplateNode(Protocol):
    def render(self, ctx: ProjectionContext) -> Any: ...


class Entry(Protocol):
    def render_into(
        self, result: dict[str, Any], ctx: ProjectionContext
    ) -> None: ...


@dataclass(frozen=True)
class LiteralNode:
    value: Any

    def render(self, ctx: ProjectionContext) -> Any:
        return self.value


@dataclass(frozen=True)
class PlaceholderNode:
    placeholder: Placeholder
    source: str

    def render(self, ctx: ProjectionContext) -> Any:
        return resolve_value(self.placeholder, self.source, ctx)


@dataclass(frozen=True)
class ObjectNode:
    entries: tuple[Entry, ...]

    def render(self, ctx: ProjectionContext) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for entry in self.entries:
            entry.render_into(result, ctx)
        return result


@dataclass(frozen=True)
class ArrayNode:
    items: tuple[TemplateNode, ...]

    def render(self, ctx: ProjectionContext) -> list[Any]:
        return [item.render(ctx) for item in self.items]


@dataclass(frozen=True)
class ItemsByDayNode:
    """``["{items}"]``: items assigned to days round-robin."""

    def render(self, ctx: ProjectionContext) -> dict[str, list[Any]]:
        days = _sequence(ctx.raw.get("days"))
        items = _sequence(ctx.raw.get("items"))
        grouped: dict[str, list[Any]] = {}
        if not days:
            return grouped
        for index, item in enumerate(items):
            day = days[index % len(days)]
            if isinstance(day, str):
                grouped.setdefault(day.strip(), []).append(
                    copy.deepcopy(item)
                )
        return grouped


@dataclass(frozen=True)
class PairedZipNode:
    """``[{"{A}": "{B}"}]``: ``A[i]`` paired with ``B[i]``."""

    key_name: str
    value_name: str

    def render(self, ctx: ProjectionContext) -> list[dict[str, str]]:
        keys = _sequence(ctx.raw.get(self.key_name))
        values = _sequence(ctx.raw.get(self.value_name))
        return [
            {key.strip(): value.strip()}
            for key, value in zip(keys, values)
            if isinstance(key, str) and isinstance(value, str)
        ]


@dataclass(frozen=True)
class PlainEntry:
    key_source: str
    key_placeholder: Placeholder | None
    value: TemplateNode

    def render_into(
        self, result: dict[str, Any], ctx: ProjectionContext
    ) -> None:
        key = resolve_key(self.key_placeholder, self.key_source, ctx)
        result[key] = self.value.render(ctx)


@dataclass(frozen=True)
class MonthsEntry:
    """``{months}`` key: one rendering of the value per month."""

    key_source: str
    value: TemplateNode

    def render_into(
        self, result: dict[str, Any], ctx: ProjectionContext
    ) -> None:
        if ctx.raw.get("months") is None:
            PlainEntry(
                self.key_source, MonthExpansion(), self.value
            ).render_into(result, ctx)
            return

        for label in sorted(_month_labels(ctx), key=month_order):
            key = _month_token(label)
            if key in result:
                logger.warning(
                    "Month %r appears more than once; %r replaces it",
                    key,
                    label,
                )
            month_ctx = self._month_context(ctx, label)
            result[key] = self.value.render(month_ctx)

    @staticmethod
    def _month_context(
        ctx: ProjectionContext, label: str
    ) -> ProjectionContext:
        day_items = _day_items(ctx)
        if day_items is None or ctx.resolver is None:
            return ctx
        filter_text = month_filter(label)
        try:
            scoped = {
                day: ctx.resolver.items_for_day(day, filter_text)
                for day in day_items
            }
        except SelectorError as e:
            logger.warning(
                "Could not narrow day items to %r: %s", filter_text, e
            )
            return ctx
        return ctx.with_day_items(scoped)


@dataclass(frozen=True)
class DayRangeEntry:
    start: int
    end: int

    def render_into(
        self, result: dict[str, Any], ctx: ProjectionContext
    ) -> None:
        result.update(_day_range(ctx, self.start, self.end))


@dataclass(frozen=True)
class DayIndexEntry:
    key_source: str
    placeholder: DayIndex

    def render_into(
        self, result: dict[str, Any], ctx: ProjectionContext
    ) -> None:
        key = resolve_key(self.placeholder, self.key_source, ctx)
        result[key] = _indexed_day_items(ctx, self.placeholder.index)


# -- compilation ------------------------------------------------------------


def _compile_entry(key: str, value: Any) -> Entry:
    placeholder = parse_placeholder(key)
    if isinstance(placeholder, MonthExpansion):
        return MonthsEntry(key, compile_template(value))
    if isinstance(placeholder, DayRange):
        return DayRangeEntry(placeholder.start, placeholder.end)
    if isinstance(placeholder, DayIndex):
        return DayIndexEntry(key, placeholder)
    return PlainEntry(key, placeholder, compile_template(value))


def _paired_names(template: list[Any]) -> tuple[str, str] | None:
    if len(template) != 1 or not isinstance(template[0], dict):
        return None
    if len(template[0]) != 1:
        return None
    ((key, value),) = template[0].items()
    key_name = placeholder_identifier(key)
    value_name = placeholder_identifier(value)
    if key_name is None or value_name is None:
        return None
    return key_name, value_name


def compile_template(template: Any) -> TemplateNode:
    """Compile a JSON template into a renderable node tree."""
    if isinstance(template, dict):
        return ObjectNode(
            tuple(_compile_entry(k, v) for k, v in template.items())
        )
    if isinstance(template, list):
        if template == ["{items}"]:
            return ItemsByDayNode()
        if paired := _paired_names(template):
            return PairedZipNode(*paired)
        return ArrayNode(tuple(compile_template(item) for item in template))
    if isinstance(template, str):
        placeholder = parse_placeholder(template)
        if placeholder is not None:
            return PlaceholderNode(placeholder, template)
    return LiteralNode(template)


class TemplateProjector:
    """Renders output templates against raw data.

    Attributes:
        clock: Source of today's date for clock placeholders.
        resolver: Day/item resolver for month narrowing, if a document is
            available.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        resolver: DayItemsResolver | None = None,
    ) -> None:
        self.clock = clock or SystemClock()
        self.resolver = resolver

    def project(self, template: Any, raw_data: Mapping[str, Any]) -> Any:
        """Render a template against the raw data store."""
        ctx = ProjectionContext(raw_data, self.clock, self.resolver)
        return compile_template(template).render(ctx)


def project(
    template: Any,
    raw_data: Mapping[str, Any],
    clock: Clock | None = None,
    resolver: DayItemsResolver | None = None,
) -> Any:
    """Render a template against the raw data store.

    Args:
        template: The output template (any JSON value).
        raw_data: Rule values keyed by rule name.
        clock: Clock for date placeholders; defaults to the system clock.
        resolver: Optional resolver used to narrow day items per month.

    Returns:
        The projected JSON value.
    """
    return TemplateProjector(clock, resolver).project(template, raw_data)
