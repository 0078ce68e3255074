"""API resource types for the Leaseweb bare-metal REST API.

Pydantic models representing the structure of data exchanged with the
bare-metal API. Attributes are snake_case and map to the camelCase keys
used on the wire. These models provide validation and type safety for
request and response bodies.
"""

import json
import math
from typing import Any, TypeAlias, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

# Installation job bodies are validated by the caller, not by this client.
Payload: TypeAlias = dict[str, Any]

ApiModelT = TypeVar("ApiModelT", bound="ApiModel")


class ApiModel(BaseModel):
    """Base model for API resources.

    Unknown keys are ignored and JSON ``null`` falls back to the field
    default, so every model decodes partial bodies.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None and info.field_name is not None:
            return cls.model_fields[info.field_name].get_default(
                call_default_factory=True,
            )
        return value

    @classmethod
    def from_body(cls: type[ApiModelT], body: bytes) -> ApiModelT:
        """Decode a response body. A JSON ``null`` body decodes to defaults.

        Raises:
            ValueError: If the body is not JSON or does not match the model
                (``json.JSONDecodeError`` or ``pydantic.ValidationError``).
        """
        data = json.loads(body)
        if data is None:
            data = {}
        return cls.model_validate(data)


# Server


class Contract(ApiModel):
    reference: str = ""


class NetworkInterface(ApiModel):
    ip: str = ""


class NetworkInterfaces(ApiModel):
    public: NetworkInterface = Field(default_factory=NetworkInterface)
    remote_management: NetworkInterface = Field(default_factory=NetworkInterface)


class Location(ApiModel):
    site: str = ""
    suite: str = ""
    rack: str = ""
    unit: str = ""


class Server(ApiModel):
    """Dedicated server as returned by the API.

    Network interface addresses may carry a CIDR suffix on the wire; the
    client strips it when fetching servers.
    """

    id: str = ""
    contract: Contract = Field(default_factory=Contract)
    network_interfaces: NetworkInterfaces = Field(default_factory=NetworkInterfaces)
    location: Location = Field(default_factory=Location)


class IP(ApiModel):
    ip: str = ""
    reverse_lookup: str = ""
    null_routed: bool = False


# DHCP


class Lease(ApiModel):
    ip: str = ""
    bootfile: str = ""


class DHCPLease(ApiModel):
    """DHCP leases of a server, in the order the API returns them."""

    leases: list[Lease] = Field(default_factory=list)

    @property
    def bootfile(self) -> str:
        """Bootfile of the first lease, or an empty string without leases."""
        if not self.leases:
            return ""
        return self.leases[0].bootfile


# Power and network status


class SubsystemStatus(ApiModel):
    status: str = ""


class PowerInfo(ApiModel):
    """Power state reported by the IPMI and PDU subsystems."""

    ipmi: SubsystemStatus = Field(default_factory=SubsystemStatus)
    pdu: SubsystemStatus = Field(default_factory=SubsystemStatus)

    @property
    def is_powered_on(self) -> bool:
        """True unless either subsystem reports exactly ``"off"``."""
        return self.pdu.status != "off" and self.ipmi.status != "off"


class NetworkInterfaceInfo(ApiModel):
    status: str = ""

    @property
    def is_opened(self) -> bool:
        return self.status == "OPEN"


# Notification settings and credentials


class NotificationSetting(ApiModel):
    """Notification setting of a server.

    The id is assigned by the API and left out of request bodies while
    unset. The threshold travels as a JSON string (``"90"``, ``"1.5"``).
    """

    id: str | None = None
    frequency: str = ""
    threshold: float = 0.0
    unit: str = ""

    @field_serializer("threshold")
    def _threshold_as_string(self, threshold: float) -> str:
        if not math.isfinite(threshold):
            msg = f"threshold must be a finite number, got {threshold}"
            raise ValueError(msg)
        if threshold.is_integer():
            return str(int(threshold))
        return repr(threshold)


class Credential(ApiModel):
    """Credential stored for a server.

    ``type`` and ``username`` identify the credential; only the password
    is mutable.
    """

    type: str = ""
    username: str = ""
    password: str = ""


# Catalogs


class OperatingSystem(ApiModel):
    id: str = ""
    name: str = ""


class ControlPanel(ApiModel):
    id: str = ""
    name: str = ""


# Jobs


class Job(ApiModel):
    uuid: str = ""
    status: str = ""
    payload: Payload = Field(default_factory=dict)


# List envelopes


class ServerList(ApiModel):
    servers: list[Server] = Field(default_factory=list)


class OperatingSystemList(ApiModel):
    operating_systems: list[OperatingSystem] = Field(default_factory=list)


class ControlPanelList(ApiModel):
    control_panels: list[ControlPanel] = Field(default_factory=list)


class JobList(ApiModel):
    jobs: list[Job] = Field(default_factory=list)


# Errors


class ErrorInfo(ApiModel):
    """Error body returned by the API for failed requests."""

    correlation_id: str = ""
    code: str = Field("", alias="errorCode")
    message: str = Field("", alias="errorMessage")
    details: dict[str, list[str]] = Field(default_factory=dict, alias="errorDetails")
