import base64
import logging

import requests

from config.config import Config
from classes.exceptions import TransportError

logger = logging.getLogger(__name__)


class AzureDevOps:
    """
    A wrapper class for Azure DevOps REST calls authenticated with a personal access token.
    """
    def __init__(self, organization=None, personal_access_token=None):
        self.organization = organization or Config.AZURE_DEVOPS_ORG
        self._pat = personal_access_token
        self.base_url = f"{Config.organization_url(self.organization)}/"

    @property
    def encoded_pat(self):
        """
        Basic auth credentials built from the token.

        The token comes from the environment when it was not passed in, and a
        missing one raises ConfigurationError before any request is sent.
        """
        pat = self._pat or Config.get_personal_access_token()
        return base64.b64encode(f":{pat}".encode()).decode()

    def handle_request(self, method, endpoint, data=None, content_type="application/json"):
        """
        Handles HTTP requests with error handling.

        Args:
            method (str): HTTP method (GET, POST, PUT, DELETE)
            endpoint (str): API endpoint relative to the organization URL
            data (dict | list): Request body
            content_type (str): Media type of the body

        Returns:
            dict: Response data

        Raises:
            ConfigurationError: If no token is available
            TransportError: If the request fails or the response is not valid JSON
        """
        url = f"{self.base_url}{endpoint}"
        headers = {
            "Authorization": f"Basic {self.encoded_pat}",
            "Content-Type": content_type
        }

        logger.info("Sending %s request to: %s", method, url)
        try:
            response = requests.request(method, url, headers=headers, json=data)
            response.raise_for_status()
        except requests.exceptions.HTTPError as http_err:
            body = http_err.response.text if http_err.response is not None else ""
            raise TransportError(f"{method} {url} failed: {http_err} {body}".strip(), target=url) from http_err
        except requests.exceptions.RequestException as err:
            raise TransportError(f"{method} {url} failed: {err}", target=url) from err

        # Handle empty responses
        if not response.content:
            return {}

        try:
            return response.json()
        except ValueError as json_err:
            raise TransportError(f"{method} {url} returned invalid JSON: {json_err}", target=url) from json_err

    def get_api_version(self, service):
        """Get the API version for a specific service."""
        return Config.get_api_version(service)
