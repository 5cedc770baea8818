"""
Azure CLI session handling: making sure a usable login exists and retrying
CLI-backed operations once after re-authenticating.
"""

import logging
from typing import Callable, List, Optional, TypeVar

from classes.az_cli import AzureCli
from classes.exceptions import AuthError, AzCliError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Application id of Azure DevOps, used to request a DevOps scoped token
AZURE_DEVOPS_RESOURCE_ID = "499b84ac-1321-427f-aa17-267ca6975798"

MAX_ATTEMPTS = 2


class SessionProvider:
    """Something that can make sure the caller's credentials are usable."""

    def ensure(self) -> None:
        raise NotImplementedError


class SessionGuarantor(SessionProvider):
    """
    Ensures the Azure CLI is signed in before privileged calls.

    Two preconditions are checked in order and independently: the account
    session and the Azure DevOps token. Each failing check starts its own
    interactive login.
    """

    def __init__(self, cli: Optional[AzureCli] = None):
        self.cli = cli or AzureCli()

    def ensure(self) -> None:
        """
        Raises:
            AuthError: If a login attempt fails
        """
        self._check(
            "account",
            ["account", "show"],
            ["login"],
        )
        self._check(
            "Azure DevOps",
            ["account", "get-access-token", "--resource", AZURE_DEVOPS_RESOURCE_ID],
            ["login", "--scope", f"{AZURE_DEVOPS_RESOURCE_ID}/.default"],
        )

    def _check(self, name: str, status: List[str], login: List[str]) -> None:
        try:
            self.cli.run(status)
            logger.debug("%s session is valid", name)
            return
        except AzCliError as err:
            logger.warning("%s session is not valid (%s); starting login", name, err.stderr or err)

        try:
            self.cli.run(login)
        except AzCliError as err:
            raise AuthError(f"Azure CLI {name} login failed: {err.stderr or err}") from err
        logger.info("%s login completed", name)

    def current_user(self) -> str:
        """Name of the signed-in user, used as the default assignee."""
        account = self.cli.run(["account", "show"])
        return (account.get("user") or {}).get("name", "")


def run_with_reauth(operation: Callable[[], T], session: SessionProvider,
                    description: str, attempts: int = MAX_ATTEMPTS) -> T:
    """
    Run a CLI-backed operation, re-authenticating between attempts.

    The session is ensured once after each failed attempt except the last;
    the final failure is re-raised unchanged.

    Args:
        operation: Zero-argument callable performing the call
        session: Session provider to ensure after a failure
        description: What the operation does, for log messages
        attempts: Total number of attempts

    Returns:
        Whatever the operation returns
    """
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except TransportError as err:
            if attempt >= attempts:
                logger.error("%s failed after %d attempts: %s", description, attempt, err)
                raise
            logger.warning("%s failed (attempt %d/%d): %s. Re-authenticating.",
                           description, attempt, attempts, err)
            session.ensure()
    raise ValueError("attempts must be at least 1")
