"""
Console output for work items and workflow results.
"""

import sys
from enum import Enum
from urllib.parse import quote

import pytz
from colorlog.escape_codes import parse_colors

from classes.exceptions import ConfigurationError
from config.config import Config


class StateCategory(Enum):
    """How a work item state is presented. Display only, never stored."""
    SUCCESS = "green"
    NEUTRAL = "white"
    ATTENTION = "yellow"


SUCCESS_STATES = {"in review", "resolved", "done", "closed"}
NEUTRAL_STATES = {"removed"}


def categorize_state(state):
    normalized = (state or "").strip().lower()
    if normalized in SUCCESS_STATES:
        return StateCategory.SUCCESS
    if normalized in NEUTRAL_STATES:
        return StateCategory.NEUTRAL
    return StateCategory.ATTENTION


class ConsoleRenderer:
    """Prints work items, pages and messages to a stream."""

    def __init__(self, organization=None, project=None, stream=None, use_color=None, timezone=None):
        self.organization = organization or Config.AZURE_DEVOPS_ORG
        self.project = project or Config.AZURE_DEVOPS_PROJECT
        self.stream = stream or sys.stdout
        if use_color is None:
            use_color = hasattr(self.stream, "isatty") and self.stream.isatty()
        self.use_color = use_color
        zone = timezone or Config.DISPLAY_TIMEZONE
        try:
            self.timezone = pytz.timezone(zone)
        except pytz.UnknownTimeZoneError as err:
            raise ConfigurationError(
                f"Unknown display timezone '{zone}'. "
                "Set AZURE_DEVOPS_DISPLAY_TIMEZONE to a tz database name such as 'Europe/Berlin'."
            ) from err

    def colorize(self, text, color):
        if not self.use_color:
            return text
        return f"{parse_colors(color)}{text}{parse_colors('reset')}"

    def _print(self, text=""):
        print(text, file=self.stream)

    def work_item_url(self, work_item_id):
        organization = self.organization.rstrip('/').rsplit('/', 1)[-1]
        return Config.WORK_ITEM_URL_TEMPLATE.format(
            organization=organization, project=quote(self.project), id=work_item_id)

    def format_created(self, record):
        if record.created_date is None:
            return "unknown"
        created = record.created_date
        if created.tzinfo is None:
            created = pytz.utc.localize(created)
        return created.astimezone(self.timezone).strftime("%Y-%m-%d")

    def render_record(self, record):
        category = categorize_state(record.state)
        self._print(f"{self.colorize(f'#{record.id}', 'bold')}: {record.title}")
        self._print(f"    State:   {self.colorize(record.state or 'Unknown', category.value)}")
        self._print(f"    Created: {self.format_created(record)}")
        self._print(f"    URL:     {self.work_item_url(record.id)}")

    def render_page(self, page, records):
        """Render one page; records missing from the fetch are simply not shown."""
        self._print(f"Work items {page.skip + 1}-{page.end} of {page.total} (page {page.number})")
        self._print("-" * 40)
        for record in records:
            self.render_record(record)
        self._print("-" * 40)

    def render_created(self, record, compact=False):
        if compact:
            self._print(record.compact())
            return
        self.success(f"Work item created: {record.compact()}")
        self._print(f"    Type:  {record.work_item_type or 'n/a'}")
        self._print(f"    State: {record.state}")
        self._print(f"    URL:   {self.work_item_url(record.id)}")

    def success(self, message):
        self._print(self.colorize(message, "green"))

    def notice(self, message):
        self._print(self.colorize(message, "cyan"))

    def error(self, message):
        self._print(self.colorize(message, "red"))
