"""
Work item creation through the Azure CLI, the REST API, or the Azure DevOps SDK.

The CLI transport relies on the signed-in `az` session and re-authenticates
once when a submission fails. The REST and SDK transports use a static
personal access token and never retry: an expired token is the user's to
replace.
"""

import logging
from typing import Optional
from urllib.parse import quote

from azure.devops.connection import Connection
from azure.devops.v7_1.work_item_tracking.models import JsonPatchOperation
from msrest.authentication import BasicAuthentication
from msrest.exceptions import ClientException

from config.config import Config
from classes.AzureDevOps import AzureDevOps
from classes.az_cli import AzureCli, json_body_file
from classes.exceptions import TransportError
from classes.models import PatchDocument, WorkItemRecord, WorkItemRequest
from classes.session import SessionGuarantor, SessionProvider, run_with_reauth

logger = logging.getLogger(__name__)


class CliInvokeTransport:
    """Submits the patch document with `az devops invoke`."""

    name = "cli"
    includes_tags = True
    retries_with_reauth = True

    def __init__(self, organization=None, project=None, cli: Optional[AzureCli] = None):
        self.organization = organization or Config.AZURE_DEVOPS_ORG
        self.project = project or Config.AZURE_DEVOPS_PROJECT
        self.cli = cli or AzureCli()

    def submit(self, request: WorkItemRequest, document: PatchDocument) -> WorkItemRecord:
        with json_body_file(document.to_list()) as body_path:
            response = self.cli.run([
                "devops", "invoke",
                "--area", "wit",
                "--resource", "workitems",
                "--route-parameters", f"project={self.project}", f"type={request.work_item_type.value}",
                "--http-method", "POST",
                "--in-file", body_path,
                "--media-type", "application/json-patch+json",
                "--api-version", Config.get_api_version("work_items"),
                "--organization", Config.organization_url(self.organization),
            ])
        return WorkItemRecord.from_api(response)


class RestTransport(AzureDevOps):
    """Posts the patch document straight to the work items REST endpoint."""

    name = "rest"
    includes_tags = False
    retries_with_reauth = False

    def __init__(self, organization=None, project=None, personal_access_token=None):
        super().__init__(organization, personal_access_token)
        self.project = project or Config.AZURE_DEVOPS_PROJECT

    def endpoint_for(self, request: WorkItemRequest) -> str:
        return (f"{quote(self.project)}/_apis/wit/workitems/${quote(request.work_item_type.value)}"
                f"?api-version={self.get_api_version('work_items')}")

    def submit(self, request: WorkItemRequest, document: PatchDocument) -> WorkItemRecord:
        response = self.handle_request(
            "POST",
            self.endpoint_for(request),
            data=document.to_list(),
            content_type="application/json-patch+json",
        )
        return WorkItemRecord.from_api(response)


class SdkTransport:
    """Creates the work item with the azure-devops SDK work item tracking client."""

    name = "sdk"
    includes_tags = True
    retries_with_reauth = False

    def __init__(self, organization=None, project=None, personal_access_token=None):
        self.organization = organization or Config.AZURE_DEVOPS_ORG
        self.project = project or Config.AZURE_DEVOPS_PROJECT
        self._pat = personal_access_token
        self.wit_client = None

    def _get_client(self):
        if self.wit_client is None:
            credentials = BasicAuthentication('', self._pat or Config.get_personal_access_token())
            connection = Connection(base_url=Config.organization_url(self.organization), creds=credentials)
            self.wit_client = connection.clients.get_work_item_tracking_client()
        return self.wit_client

    def submit(self, request: WorkItemRequest, document: PatchDocument) -> WorkItemRecord:
        client = self._get_client()
        operations = [
            JsonPatchOperation(op=operation.op, path=operation.path, value=operation.value)
            for operation in document
        ]
        target = f"{Config.organization_url(self.organization)}/{self.project}/_apis/wit/workitems/${request.work_item_type.value}"
        try:
            created = client.create_work_item(
                document=operations,
                project=self.project,
                type=request.work_item_type.value,
            )
        except ClientException as err:
            raise TransportError(f"POST {target} failed: {err}", target=target) from err
        return WorkItemRecord.from_api({"id": created.id, "fields": created.fields or {}})


TRANSPORTS = {
    CliInvokeTransport.name: CliInvokeTransport,
    RestTransport.name: RestTransport,
    SdkTransport.name: SdkTransport,
}


def create_transport(name, organization=None, project=None, cli=None):
    """Build a transport by its command line name."""
    if name == CliInvokeTransport.name:
        return CliInvokeTransport(organization, project, cli=cli)
    if name in TRANSPORTS:
        return TRANSPORTS[name](organization, project)
    raise ValueError(f"Unknown transport '{name}'. Expected one of: {', '.join(TRANSPORTS)}")


class WorkItemSubmissionClient:
    """Builds patch documents and submits them through a transport."""

    def __init__(self, transport, session: Optional[SessionProvider] = None):
        """
        Args:
            transport: CliInvokeTransport, RestTransport or SdkTransport
            session: Session provider ensured between CLI attempts
        """
        self.transport = transport
        self.session = session or SessionGuarantor(getattr(transport, "cli", None))

    def build_document(self, request: WorkItemRequest) -> PatchDocument:
        return PatchDocument.from_request(request, include_tags=self.transport.includes_tags)

    def create_work_item(self, request: WorkItemRequest) -> WorkItemRecord:
        """
        Create a work item.

        Args:
            request: What to create

        Returns:
            The created WorkItemRecord

        Raises:
            TransportError: When the submission fails for good
            ConfigurationError: When a token based transport has no token
        """
        document = self.build_document(request)
        description = f"Creating {request.work_item_type.value} '{request.title}'"
        logger.info("%s via %s transport (%d fields)", description, self.transport.name, len(document))

        if self.transport.retries_with_reauth:
            record = run_with_reauth(
                lambda: self.transport.submit(request, document),
                self.session,
                description,
            )
        else:
            record = self.transport.submit(request, document)

        if not record.title:
            record.title = request.title
        logger.info("Created work item %s", record.compact())
        return record

    def create_work_item_compact(self, request: WorkItemRequest) -> str:
        """Create a work item and return it as '#<id>: <title>'."""
        return self.create_work_item(request).compact()
