"""
Thin runner around the Azure CLI (`az`) used by every CLI-backed operation.
"""

import json
import logging
import os
import subprocess
import tempfile
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence

from config.config import Config
from classes.exceptions import AzCliError, ConfigurationError, TransportError

logger = logging.getLogger(__name__)


class AzureCli:
    """Runs `az` commands and decodes their JSON output."""

    def __init__(self, executable: Optional[str] = None, runner=subprocess.run):
        """
        Args:
            executable: Name or path of the az binary
            runner: Callable with the subprocess.run signature, replaceable in tests
        """
        self.executable = executable or Config.AZ_EXECUTABLE
        self._runner = runner

    def run(self, args: Sequence[str], output_json: bool = True) -> Any:
        """
        Run one az command.

        Args:
            args: Arguments after the executable name
            output_json: Append `--output json` and decode stdout

        Returns:
            Decoded JSON ({} for empty output) or raw stdout

        Raises:
            AzCliError: On a non-zero exit code
            ConfigurationError: If the az executable cannot be found
        """
        command: List[str] = [self.executable] + list(args)
        if output_json:
            command += ["--output", "json"]

        logger.debug("Running: %s", " ".join(command))
        try:
            result = self._runner(command, capture_output=True, text=True)
        except FileNotFoundError as err:
            raise ConfigurationError(
                f"Azure CLI executable '{self.executable}' was not found. "
                "Install the Azure CLI or set AZ_EXECUTABLE."
            ) from err

        if result.returncode != 0:
            raise AzCliError(command, result.returncode, (result.stderr or "").strip())

        if not output_json:
            return result.stdout
        if not (result.stdout or "").strip():
            return {}
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as err:
            raise TransportError(f"Invalid JSON from '{' '.join(command[:4])}': {err}",
                                 target=" ".join(command)) from err


@contextmanager
def json_body_file(payload: Any) -> Iterator[str]:
    """
    Write a request body to a temporary file for `az devops invoke --in-file`.

    The file belongs to the caller's `with` block and is removed when it
    exits, whether normally or through an exception.
    """
    handle = tempfile.NamedTemporaryFile("w", suffix=".json", delete=False, encoding="utf-8")
    try:
        with handle:
            json.dump(payload, handle)
        yield handle.name
    finally:
        try:
            os.remove(handle.name)
        except FileNotFoundError:
            pass
        logger.debug("Removed request body file %s", handle.name)
