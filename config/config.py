import os
from dotenv import load_dotenv

from classes.exceptions import ConfigurationError

# Load environment variables
load_dotenv(".env")


def _split_list(value):
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    """Configuration class for the Azure DevOps workflow tool."""

    # Azure DevOps settings
    AZURE_DEVOPS_ORG = os.getenv("AZURE_DEVOPS_ORG", "")
    AZURE_DEVOPS_PROJECT = os.getenv("AZURE_DEVOPS_PROJECT", "")

    # Name of the variable holding the REST/SDK token. Read at call time.
    PAT_ENV_VAR = "AZURE_DEVOPS_PAT"

    # Work item defaults
    DEFAULT_AREA_PATH = os.getenv("AZURE_DEVOPS_AREA_PATH", "")
    DEFAULT_ITERATION_PATH = os.getenv("AZURE_DEVOPS_ITERATION_PATH", "")
    DEFAULT_ASSIGNEE = os.getenv("AZURE_DEVOPS_ASSIGNEE", "")

    # Pull request defaults
    DEFAULT_REVIEWERS = _split_list(os.getenv("AZURE_DEVOPS_DEFAULT_REVIEWERS", ""))
    EMAIL_DOMAIN = os.getenv("AZURE_DEVOPS_EMAIL_DOMAIN", "example.com")
    TARGET_BRANCH = os.getenv("AZURE_DEVOPS_TARGET_BRANCH", "dev")

    # Console
    DISPLAY_TIMEZONE = os.getenv("AZURE_DEVOPS_DISPLAY_TIMEZONE", "UTC")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

    AZ_EXECUTABLE = os.getenv("AZ_EXECUTABLE", "az")

    # API versions
    API_VERSION = {
        "work_items": "7.1",
        "wiql": "7.1",
    }

    # Listing
    QUERY_TOP = 50
    PAGE_SIZE = 5

    WORK_ITEM_URL_TEMPLATE = "https://dev.azure.com/{organization}/{project}/_workitems/edit/{id}"

    @classmethod
    def organization_url(cls, organization=None):
        """Full organization URL expected by `az --organization`."""
        organization = organization or cls.AZURE_DEVOPS_ORG
        if organization.startswith("https://"):
            return organization.rstrip('/')
        return f"https://dev.azure.com/{organization}"

    @classmethod
    def get_personal_access_token(cls):
        """Return the token from the environment, failing fast when it is unset or blank."""
        token = os.getenv(cls.PAT_ENV_VAR, "")
        if not token.strip():
            raise ConfigurationError(
                f"Azure DevOps personal access token is required. Set the {cls.PAT_ENV_VAR} environment variable.")
        return token.strip()

    @classmethod
    def get_api_version(cls, service):
        return cls.API_VERSION.get(service, "7.1")

    @classmethod
    def validate_organization(cls, organization=None, project=None):
        """Validate that the organization and project are set."""
        if not (organization or cls.AZURE_DEVOPS_ORG):
            raise ConfigurationError(
                "Azure DevOps organization is required. Provide --organization or set AZURE_DEVOPS_ORG.")
        if not (project or cls.AZURE_DEVOPS_PROJECT):
            raise ConfigurationError(
                "Azure DevOps project is required. Provide --project or set AZURE_DEVOPS_PROJECT.")
