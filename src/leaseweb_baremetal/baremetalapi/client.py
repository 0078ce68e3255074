"""Leaseweb bare-metal REST API client.

Provides an HTTP client with token authentication, thread safety, JSON
request encoding and response validation using Pydantic models. Every
endpoint follows the same pipeline: encode the request body, send the
request, then either decode the success body or decode and raise the API
error.
"""

import json
import threading
from pathlib import Path
from typing import Any, TypeVar

import httpx
import pydantic
import structlog

from .errors import (
    DecodingError,
    EncodingError,
    JobNotFoundError,
    decode_error,
    describe_decode_error,
    log_api_error,
)
from .types import (
    IP,
    ApiModel,
    ControlPanel,
    ControlPanelList,
    Credential,
    DHCPLease,
    Job,
    JobList,
    NetworkInterfaceInfo,
    NotificationSetting,
    OperatingSystem,
    OperatingSystemList,
    Payload,
    PowerInfo,
    Server,
    ServerList,
)

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.leaseweb.com"

API_PREFIX = "/bareMetals/v2"

AUTH_HEADER = "X-Lsw-Auth"

# Number of servers requested per page when listing all servers.
SERVERS_PAGE_SIZE = 20

ModelT = TypeVar("ModelT", bound=ApiModel)


def _strip_cidr(address: str) -> str:
    """Return the address part of ``address/prefix``."""
    return address.split("/", 1)[0]


def _normalize_server(server: Server) -> Server:
    interfaces = server.network_interfaces
    interfaces.public.ip = _strip_cidr(interfaces.public.ip)
    interfaces.remote_management.ip = _strip_cidr(interfaces.remote_management.ip)
    return server


class LeasewebClient:
    """HTTP client for the Leaseweb bare-metal REST API.

    Each instance carries its own base URL, token and transport, so clients
    with different credentials can be used side by side. Methods map one to
    one to API endpoints and raise the errors from
    :mod:`leaseweb_baremetal.baremetalapi.errors`. Network failures surface
    as ``httpx.HTTPError`` untouched.

    Thread-safe through thread-local storage of httpx.Client instances.
    Can be used as a context manager for automatic cleanup.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: str | None = None,
        token_file: str | Path | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the API client.

        Args:
            base_url: Base URL of the API (e.g., "https://api.leaseweb.com").
            token: API token sent in the X-Lsw-Auth header.
            token_file: Path to a file containing the API token, used when
                token is not given.
            timeout: Request timeout in seconds. No timeout when None.
            transport: Optional httpx transport, e.g. a proxy or mock.

        Raises:
            ValueError: If base_url is empty, no token is available or
                timeout is not positive.
            FileNotFoundError: If token_file is specified but doesn't exist.
        """
        if not base_url:
            msg = "base_url cannot be empty"
            raise ValueError(msg)
        if timeout is not None and timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)

        if not token and token_file:
            token_path = Path(token_file)
            if not token_path.exists():
                msg = f"Token file not found: {token_file}"
                raise FileNotFoundError(msg)
            token = token_path.read_text().strip()
        if not token:
            msg = "an API token or token file is required"
            raise ValueError(msg)

        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._headers = {
            "Accept": "application/json",
            AUTH_HEADER: token,
        }

        # Use thread-local storage for httpx.Client (thread safety)
        self._local = threading.local()

    @property
    def client(self) -> httpx.Client:
        """httpx client of the calling thread, opened on first use.

        It carries the base URL, the X-Lsw-Auth token and the timeout of
        this LeasewebClient, and is reopened if a previous close() shut it.
        """
        http_client = getattr(self._local, "client", None)
        if http_client is None or http_client.is_closed:
            http_client = httpx.Client(
                base_url=self.base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            )
            self._local.client = http_client
        return http_client

    def __enter__(self) -> "LeasewebClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Close this thread's connection pool to the API, if one is open."""
        http_client = getattr(self._local, "client", None)
        if http_client is not None and not http_client.is_closed:
            http_client.close()

    # ------------------------------------------------------------------
    # Request pipeline
    # ------------------------------------------------------------------

    def _do_request(
        self,
        method: str,
        endpoint: str,
        content: bytes | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a single request to the API.

        The response is returned as is, whatever its status code.

        Args:
            method: HTTP method.
            endpoint: Path relative to the base URL.
            content: Encoded JSON request body.
            params: Optional query parameters.

        Returns:
            The raw HTTP response.

        Raises:
            httpx.HTTPError: If the request could not be completed.
        """
        headers = {}
        if method in ("POST", "PUT"):
            headers["Content-Type"] = "application/json"

        request = self.client.build_request(
            method,
            endpoint,
            content=content,
            params=params,
            headers=headers,
        )
        logger.debug("Executing API request", url=str(request.url), method=method)
        return self.client.send(request)

    def _call(
        self,
        context: str,
        method: str,
        endpoint: str,
        expected_status: int,
        body: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Run one API call and check its status code.

        Args:
            context: Description of the operation, used in errors.
            method: HTTP method.
            endpoint: Path relative to the base URL.
            expected_status: Status code signalling success.
            body: Request body, a Pydantic model or JSON-compatible data.
            params: Optional query parameters.

        Returns:
            The successful HTTP response.

        Raises:
            EncodingError: If the request body cannot be encoded.
            ApiError: If the API answered with an error body.
            DecodingError: If the error body cannot be decoded.
            httpx.HTTPError: If the request could not be completed.
        """
        content = None
        if body is not None:
            content = self._encode(context, body)

        response = self._do_request(method, endpoint, content=content, params=params)

        if response.status_code != expected_status:
            error = decode_error(response.content, context)
            log_api_error(method, str(response.request.url), error)
            raise error

        return response

    def _encode(self, context: str, body: Any) -> bytes:
        try:
            if isinstance(body, pydantic.BaseModel):
                return body.model_dump_json(by_alias=True, exclude_none=True).encode()
            return json.dumps(body, allow_nan=False).encode()
        except (TypeError, ValueError) as exc:
            raise EncodingError(context, str(exc)) from exc

    def _decode(
        self,
        context: str,
        response: httpx.Response,
        model: type[ModelT],
    ) -> ModelT:
        try:
            return model.from_body(response.content)
        except ValueError as exc:
            error = DecodingError(context, describe_decode_error(exc))
            log_api_error(response.request.method, str(response.request.url), error)
            raise error from exc

    def _get(
        self,
        context: str,
        endpoint: str,
        model: type[ModelT],
        **kwargs: Any,
    ) -> ModelT:
        response = self._call(context, "GET", endpoint, httpx.codes.OK, **kwargs)
        return self._decode(context, response, model)

    # ------------------------------------------------------------------
    # Servers
    # ------------------------------------------------------------------

    def get_server(self, server_id: str) -> Server:
        """Fetch a single server.

        Network interface addresses are returned without CIDR suffix.
        """
        server = self._get(
            f"getting server {server_id}",
            f"{API_PREFIX}/servers/{server_id}",
            Server,
        )
        return _normalize_server(server)

    def get_servers_batch(
        self,
        offset: int,
        limit: int,
        site: str = "",
    ) -> list[Server]:
        """Fetch one page of servers.

        Args:
            offset: Index of the first server, omitted when negative.
            limit: Maximum number of servers, omitted when negative.
            site: Only return servers from this site when set.

        Returns:
            Servers of the page, with network addresses stripped of their
            CIDR suffix.
        """
        params: dict[str, Any] = {}
        if offset >= 0:
            params["offset"] = offset
        if limit >= 0:
            params["limit"] = limit
        if site:
            params["site"] = site

        server_list = self._get(
            "getting servers list",
            f"{API_PREFIX}/servers",
            ServerList,
            params=params,
        )
        return [_normalize_server(server) for server in server_list.servers]

    def get_all_servers(self, site: str = "") -> list[Server]:
        """Fetch all servers, page by page.

        Requests pages of SERVERS_PAGE_SIZE servers until the API returns an
        empty page. No total count is consulted, so servers deleted while
        paging can shift later ones out of the result.

        Args:
            site: Only return servers from this site when set.

        Returns:
            All servers in API order.
        """
        all_servers: list[Server] = []
        offset = 0

        while True:
            batch = self.get_servers_batch(offset, SERVERS_PAGE_SIZE, site)
            if not batch:
                break
            all_servers.extend(batch)
            offset += SERVERS_PAGE_SIZE

        logger.debug("Fetched all servers", count=len(all_servers), site=site)
        return all_servers

    def update_reference(self, server_id: str, reference: str) -> None:
        self._call(
            f"updating server {server_id} reference",
            "PUT",
            f"{API_PREFIX}/servers/{server_id}",
            httpx.codes.NO_CONTENT,
            body={"reference": reference},
        )

    # ------------------------------------------------------------------
    # IPs
    # ------------------------------------------------------------------

    def get_server_ip(self, server_id: str, ip: str) -> IP:
        return self._get(
            f"getting server {server_id} IP {ip}",
            f"{API_PREFIX}/servers/{server_id}/ips/{ip}",
            IP,
        )

    def update_reverse_lookup(
        self,
        server_id: str,
        ip: str,
        reverse_lookup: str,
    ) -> None:
        self._call(
            f"updating server {server_id} reverse lookup for IP {ip}",
            "PUT",
            f"{API_PREFIX}/servers/{server_id}/ips/{ip}",
            httpx.codes.OK,
            body={"reverseLookup": reverse_lookup},
        )

    def null_ip(self, server_id: str, ip: str) -> None:
        """Null route an IP. The API applies it asynchronously."""
        self._call(
            f"nulling server {server_id} IP {ip}",
            "POST",
            f"{API_PREFIX}/servers/{server_id}/ips/{ip}/null",
            httpx.codes.ACCEPTED,
        )

    def unnull_ip(self, server_id: str, ip: str) -> None:
        """Remove the null route of an IP. The API applies it asynchronously."""
        self._call(
            f"unnulling server {server_id} IP {ip}",
            "POST",
            f"{API_PREFIX}/servers/{server_id}/ips/{ip}/unnull",
            httpx.codes.ACCEPTED,
        )

    # ------------------------------------------------------------------
    # DHCP leases
    # ------------------------------------------------------------------

    def get_server_lease(self, server_id: str) -> DHCPLease:
        return self._get(
            f"getting server {server_id} lease",
            f"{API_PREFIX}/servers/{server_id}/leases",
            DHCPLease,
        )

    def add_dhcp_lease(self, server_id: str, bootfile: str) -> None:
        self._call(
            f"adding server {server_id} lease",
            "POST",
            f"{API_PREFIX}/servers/{server_id}/leases",
            httpx.codes.NO_CONTENT,
            body={"bootfile": bootfile},
        )

    def remove_dhcp_lease(self, server_id: str) -> None:
        self._call(
            f"removing server {server_id} lease",
            "DELETE",
            f"{API_PREFIX}/servers/{server_id}/leases",
            httpx.codes.NO_CONTENT,
        )

    # ------------------------------------------------------------------
    # Power
    # ------------------------------------------------------------------

    def get_power_info(self, server_id: str) -> PowerInfo:
        return self._get(
            f"getting server {server_id} power info",
            f"{API_PREFIX}/servers/{server_id}/powerInfo",
            PowerInfo,
        )

    def power_on_server(self, server_id: str) -> None:
        self._call(
            f"powering on server {server_id}",
            "POST",
            f"{API_PREFIX}/servers/{server_id}/powerOn",
            httpx.codes.ACCEPTED,
        )

    def power_off_server(self, server_id: str) -> None:
        self._call(
            f"powering off server {server_id}",
            "POST",
            f"{API_PREFIX}/servers/{server_id}/powerOff",
            httpx.codes.ACCEPTED,
        )

    # ------------------------------------------------------------------
    # Network interfaces
    # ------------------------------------------------------------------

    def get_network_interface_info(
        self,
        server_id: str,
        network_type: str,
    ) -> NetworkInterfaceInfo:
        return self._get(
            f"getting server {server_id} network interface {network_type} info",
            f"{API_PREFIX}/servers/{server_id}/networkInterfaces/{network_type}",
            NetworkInterfaceInfo,
        )

    def open_network_interface(self, server_id: str, network_type: str) -> None:
        self._call(
            f"opening server {server_id} network interface {network_type}",
            "POST",
            f"{API_PREFIX}/servers/{server_id}/networkInterfaces/{network_type}/open",
            httpx.codes.NO_CONTENT,
        )

    def close_network_interface(self, server_id: str, network_type: str) -> None:
        self._call(
            f"closing server {server_id} network interface {network_type}",
            "POST",
            f"{API_PREFIX}/servers/{server_id}/networkInterfaces/{network_type}/close",
            httpx.codes.NO_CONTENT,
        )

    # ------------------------------------------------------------------
    # Notification settings
    # ------------------------------------------------------------------

    def create_notification_setting(
        self,
        server_id: str,
        notification_type: str,
        notification_setting: NotificationSetting,
    ) -> NotificationSetting:
        """Create a notification setting of the given type (e.g. "bandwidth")."""
        context = f"creating server {server_id} notification setting {notification_type}"
        response = self._call(
            context,
            "POST",
            f"{API_PREFIX}/servers/{server_id}/notificationSettings/{notification_type}",
            httpx.codes.CREATED,
            body=notification_setting,
        )
        return self._decode(context, response, NotificationSetting)

    def get_notification_setting(
        self,
        server_id: str,
        notification_type: str,
        notification_setting_id: str,
    ) -> NotificationSetting:
        return self._get(
            f"getting server {server_id} notification setting {notification_type}",
            f"{API_PREFIX}/servers/{server_id}/notificationSettings/"
            f"{notification_type}/{notification_setting_id}",
            NotificationSetting,
        )

    def update_notification_setting(
        self,
        server_id: str,
        notification_type: str,
        notification_setting_id: str,
        notification_setting: NotificationSetting,
    ) -> NotificationSetting:
        context = f"updating server {server_id} notification setting {notification_type}"
        response = self._call(
            context,
            "PUT",
            f"{API_PREFIX}/servers/{server_id}/notificationSettings/"
            f"{notification_type}/{notification_setting_id}",
            httpx.codes.OK,
            body=notification_setting,
        )
        return self._decode(context, response, NotificationSetting)

    def delete_notification_setting(
        self,
        server_id: str,
        notification_type: str,
        notification_setting_id: str,
    ) -> None:
        self._call(
            f"deleting server {server_id} notification setting {notification_type}",
            "DELETE",
            f"{API_PREFIX}/servers/{server_id}/notificationSettings/"
            f"{notification_type}/{notification_setting_id}",
            httpx.codes.NO_CONTENT,
        )

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def create_credential(self, server_id: str, credential: Credential) -> Credential:
        context = f"creating server {server_id} credential {credential.type}"
        response = self._call(
            context,
            "POST",
            f"{API_PREFIX}/servers/{server_id}/credentials",
            httpx.codes.OK,
            body=credential,
        )
        return self._decode(context, response, Credential)

    def get_credential(
        self,
        server_id: str,
        credential_type: str,
        username: str,
    ) -> Credential:
        return self._get(
            f"getting server {server_id} credential {credential_type}",
            f"{API_PREFIX}/servers/{server_id}/credentials/{credential_type}/{username}",
            Credential,
        )

    def update_credential(self, server_id: str, credential: Credential) -> Credential:
        """Change the password of a credential.

        The credential type and username address the credential, only the
        password is sent.
        """
        context = f"updating server {server_id} credential {credential.type}"
        response = self._call(
            context,
            "PUT",
            f"{API_PREFIX}/servers/{server_id}/credentials/"
            f"{credential.type}/{credential.username}",
            httpx.codes.OK,
            body={"password": credential.password},
        )
        return self._decode(context, response, Credential)

    def delete_credential(self, server_id: str, credential: Credential) -> None:
        self._call(
            f"deleting server {server_id} credential {credential.type}",
            "DELETE",
            f"{API_PREFIX}/servers/{server_id}/credentials/"
            f"{credential.type}/{credential.username}",
            httpx.codes.NO_CONTENT,
        )

    # ------------------------------------------------------------------
    # Catalogs
    # ------------------------------------------------------------------

    def get_operating_systems(self) -> list[OperatingSystem]:
        """List the operating systems available for installation.

        Only the first page is requested; with the API defaults it holds
        the complete list.
        """
        operating_systems = self._get(
            "getting operating systems",
            f"{API_PREFIX}/operatingSystems",
            OperatingSystemList,
        )
        return operating_systems.operating_systems

    def get_control_panels(self, operating_system_id: str = "") -> list[ControlPanel]:
        """List control panels, optionally those supported by one operating system."""
        params = {}
        if operating_system_id:
            params["operatingSystemId"] = operating_system_id

        control_panels = self._get(
            "getting control panels",
            f"{API_PREFIX}/controlPanels",
            ControlPanelList,
            params=params,
        )
        return control_panels.control_panels

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def launch_installation_job(self, server_id: str, payload: Payload) -> Job:
        """Launch an installation on a server.

        Args:
            server_id: Server to install.
            payload: Installation parameters (operatingSystemId, hostname, ...),
                sent as is.

        Returns:
            The installation job accepted by the API.

        Raises:
            EncodingError: If the payload is not JSON serializable. No
                request is sent in that case.
        """
        context = f"launching installation job for server {server_id}"
        response = self._call(
            context,
            "POST",
            f"{API_PREFIX}/servers/{server_id}/install",
            httpx.codes.ACCEPTED,
            body=payload,
        )
        return self._decode(context, response, Job)

    def get_latest_installation_job(self, server_id: str) -> Job:
        """Fetch the most recent installation job of a server.

        Raises:
            JobNotFoundError: If the server has no installation job.
        """
        context = f"getting latest installation job for server {server_id}"
        job_list = self._get(
            context,
            f"{API_PREFIX}/servers/{server_id}/jobs",
            JobList,
            params={"type": "install"},
        )
        if not job_list.jobs:
            raise JobNotFoundError(context, "no installation job found")
        return job_list.jobs[0]

    def get_job(self, server_id: str, job_uuid: str) -> Job:
        return self._get(
            f"getting job status for server {server_id}",
            f"{API_PREFIX}/servers/{server_id}/jobs/{job_uuid}",
            Job,
        )

