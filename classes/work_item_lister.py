"""
Listing of the work items assigned to the signed-in user, five at a time.
"""

import logging
from typing import Callable, List, Optional

from config.config import Config
from classes.az_cli import AzureCli, json_body_file
from classes.detail_fetcher import WorkItemDetailFetcher
from classes.models import DEFAULT_PAGE_SIZE, Page
from classes.session import SessionGuarantor, SessionProvider, run_with_reauth

logger = logging.getLogger(__name__)

MY_WORK_ITEMS_WIQL = (
    "SELECT [System.Id], [System.Title], [System.State], [System.CreatedDate] "
    "FROM WorkItems "
    "WHERE [System.AssignedTo] = @Me "
    "ORDER BY [System.CreatedDate] DESC"
)

NEXT_PAGE_KEY = "n"


class WorkItemQuery:
    """Runs the WIQL query for the current user's work items."""

    def __init__(self, organization=None, project=None, cli: Optional[AzureCli] = None,
                 session: Optional[SessionProvider] = None, top: int = Config.QUERY_TOP):
        self.organization = organization or Config.AZURE_DEVOPS_ORG
        self.project = project or Config.AZURE_DEVOPS_PROJECT
        self.cli = cli or AzureCli()
        self.session = session or SessionGuarantor(self.cli)
        self.top = top

    def _execute(self, query: str) -> List[int]:
        with json_body_file({"query": query}) as body_path:
            response = self.cli.run([
                "devops", "invoke",
                "--area", "wit",
                "--resource", "wiql",
                "--route-parameters", f"project={self.project}",
                "--query-parameters", f"$top={self.top}",
                "--http-method", "POST",
                "--in-file", body_path,
                "--api-version", Config.get_api_version("wiql"),
                "--organization", Config.organization_url(self.organization),
            ])
        work_items = response.get("workItems", [])
        return [int(item["id"]) for item in work_items][:self.top]

    def my_work_item_ids(self) -> List[int]:
        """
        Ids of work items assigned to the signed-in user, newest first.

        Returns:
            At most `top` work item ids
        """
        ids = run_with_reauth(
            lambda: self._execute(MY_WORK_ITEMS_WIQL),
            self.session,
            "Querying assigned work items",
        )
        logger.info("Found %d work items assigned to you", len(ids))
        return ids


class WorkItemPager:
    """Client-side pagination over a fixed list of ids. `skip` never moves backwards."""

    def __init__(self, work_item_ids: List[int], page_size: int = DEFAULT_PAGE_SIZE):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.work_item_ids = list(work_item_ids)
        self.page_size = page_size
        self.skip = 0

    @property
    def total(self) -> int:
        return len(self.work_item_ids)

    def current_page(self) -> Page:
        return Page(skip=self.skip, total=self.total, size=self.page_size)

    def current_ids(self) -> List[int]:
        return self.work_item_ids[self.skip:self.skip + self.page_size]

    def has_more(self) -> bool:
        return self.current_page().has_more

    def advance(self) -> bool:
        """Move to the next page. Returns False when already on the last one."""
        if not self.has_more():
            return False
        self.skip += self.page_size
        return True


class MyWorkItemsLister:
    """Interactive pager: query once, render a page, continue on 'n'."""

    def __init__(self, query: WorkItemQuery, fetcher: WorkItemDetailFetcher, renderer,
                 prompt: Callable[[str], str] = input, page_size: int = Config.PAGE_SIZE):
        self.query = query
        self.fetcher = fetcher
        self.renderer = renderer
        self.prompt = prompt
        self.page_size = page_size

    def run(self) -> int:
        """
        Display pages until the user stops or no pages remain.

        Returns:
            Number of pages rendered
        """
        work_item_ids = self.query.my_work_item_ids()
        if not work_item_ids:
            self.renderer.notice("No work items are assigned to you.")
            return 0

        pager = WorkItemPager(work_item_ids, self.page_size)
        pages_shown = 0
        while True:
            records = self.fetcher.fetch_details(pager.current_ids())
            self.renderer.render_page(pager.current_page(), records)
            pages_shown += 1

            if not pager.has_more():
                break
            answer = self.prompt(f"Press '{NEXT_PAGE_KEY}' for the next page, any other key to stop: ")
            if answer.strip().lower() != NEXT_PAGE_KEY:
                break
            pager.advance()
        return pages_shown
