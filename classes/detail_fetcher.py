"""
Concurrent retrieval of work item details.

Every id is fetched by its own worker. Workers never trigger a login
themselves; when some of them fail, the session is ensured once for the
whole batch and only the missing ids are fetched again.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, List, Optional

from config.config import Config
from classes.az_cli import AzureCli
from classes.exceptions import PartialResultError, TransportError
from classes.models import WorkItemRecord
from classes.session import MAX_ATTEMPTS, SessionGuarantor, SessionProvider

logger = logging.getLogger(__name__)

DETAIL_FIELDS = ["System.Id", "System.Title", "System.State", "System.CreatedDate"]


@dataclass
class FetchResult:
    """Outcome of fetching one work item: either a record or the error that stopped it."""
    work_item_id: int
    record: Optional[WorkItemRecord] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


class WorkItemDetailFetcher:
    """Fetches id, title, state and creation date for many work items at once."""

    def __init__(self, organization=None, cli: Optional[AzureCli] = None,
                 session: Optional[SessionProvider] = None, max_workers: int = 8,
                 attempts: int = MAX_ATTEMPTS):
        """
        Args:
            organization: Azure DevOps organization name or URL
            cli: Azure CLI runner
            session: Session provider ensured once per batch after failures
            max_workers: Upper bound on concurrent workers
            attempts: Attempts per work item within one pass
        """
        self.organization = organization or Config.AZURE_DEVOPS_ORG
        self.cli = cli or AzureCli()
        self.session = session or SessionGuarantor(self.cli)
        self.max_workers = max_workers
        self.attempts = attempts

    def fetch_one(self, work_item_id: int) -> FetchResult:
        """Fetch a single work item. Failures are returned, not raised."""
        last_error = None
        for attempt in range(1, self.attempts + 1):
            try:
                response = self.cli.run([
                    "boards", "work-item", "show",
                    "--id", str(work_item_id),
                    "--fields", ",".join(DETAIL_FIELDS),
                    "--organization", Config.organization_url(self.organization),
                ])
                return FetchResult(work_item_id, record=WorkItemRecord.from_api(response))
            except (TransportError, ValueError) as err:
                last_error = err
                logger.debug("Fetching work item %s failed (attempt %d/%d): %s",
                             work_item_id, attempt, self.attempts, err)
        return FetchResult(work_item_id, error=last_error)

    def _fan_out(self, work_item_ids: List[int]) -> List[FetchResult]:
        workers = max(1, min(self.max_workers, len(work_item_ids)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self.fetch_one, work_item_id) for work_item_id in work_item_ids]
            # Joined in dispatch order
            return [future.result() for future in futures]

    def fetch_details(self, work_item_ids: Iterable[int], strict: bool = False) -> List[WorkItemRecord]:
        """
        Fetch details for the given ids.

        Args:
            work_item_ids: Ids to fetch; duplicates are collapsed
            strict: Raise PartialResultError instead of logging it when some
                ids could not be fetched

        Returns:
            Records that were fetched, in request order. May be shorter than
            the request.
        """
        ids = list(dict.fromkeys(int(i) for i in work_item_ids))
        if not ids:
            return []

        logger.info("Fetching details for %d work items", len(ids))
        records = {}
        missing = []
        for result in self._fan_out(ids):
            if result.ok:
                records[result.work_item_id] = result.record
            else:
                missing.append(result.work_item_id)

        if missing and len(records) < len(ids):
            logger.warning("%d of %d work items could not be fetched; re-authenticating and retrying",
                           len(missing), len(ids))
            self.session.ensure()
            for result in self._fan_out(missing):
                if result.ok:
                    records[result.work_item_id] = result.record

        fetched = [records[i] for i in ids if i in records]
        still_missing = [i for i in ids if i not in records]
        if still_missing:
            error = PartialResultError(fetched, still_missing)
            if strict:
                raise error
            logger.warning("%s", error)
        return fetched
