"""
Controller entity models.

The Campus Controller returns camelCase JSON with many optional and
deployment-specific fields, so every model accepts field aliases and keeps
unknown fields around.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ControllerModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Site(ControllerModel):
    """A site as returned by the sites API."""

    id: str
    name: str | None = None
    site_name: str | None = Field(default=None, alias="siteName")

    @property
    def display_name(self) -> str | None:
        return self.site_name or self.name or None


class Station(ControllerModel):
    """A connected client station. Owned by the controller; read-only here."""

    mac_address: str | None = Field(default=None, alias="macAddress")
    site_id: str | None = Field(default=None, alias="siteId")
    site_name: str | None = Field(default=None, alias="siteName")
    site: str | None = None
    service_id: str | None = Field(default=None, alias="serviceId")
    role_id: str | None = Field(default=None, alias="roleId")
    ap_serial: str | None = Field(default=None, alias="apSerial")
    ap_serial_number: str | None = Field(default=None, alias="apSerialNumber")
    access_point_serial_number: str | None = Field(
        default=None, alias="accessPointSerialNumber"
    )

    @property
    def inline_site_name(self) -> str | None:
        return self.site_name or self.site or None

    @property
    def access_point_serial(self) -> str | None:
        return (
            self.ap_serial
            or self.ap_serial_number
            or self.access_point_serial_number
            or None
        )


class AccessPoint(ControllerModel):
    serial_number: str | None = Field(default=None, alias="serialNumber")
    host_site: str | None = Field(default=None, alias="hostSite")
    site_id: str | None = Field(default=None, alias="siteId")
    name: str | None = Field(default=None, alias="apName")


class Service(ControllerModel):
    """A wireless service (WLAN)."""

    id: str
    name: str | None = None
    ssid: str | None = None
    vlan: int | str | None = None
    dot1d_port_number: int | str | None = Field(default=None, alias="dot1dPortNumber")


class Role(ControllerModel):
    """A network policy role."""

    id: str
    name: str | None = None


class ServiceDetails(BaseModel):
    """Presentable service details for a station row."""

    ssid: str
    network_name: str
    vlan: str

    @classmethod
    def unavailable(cls) -> "ServiceDetails":
        return cls(ssid="N/A", network_name="N/A", vlan="N/A")


class TrafficRecord(BaseModel):
    """Traffic counters for one station, keyed by MAC address."""

    mac_address: str
    in_bytes: int | float | None = None
    out_bytes: int | float | None = None
    rx_bytes: int | float | None = None
    tx_bytes: int | float | None = None
    packets_in: int | float | None = None
    packets_out: int | float | None = None
    signal_strength_dbm: float | None = None

    @property
    def total_bytes(self) -> int | float:
        return (self.in_bytes or 0) + (self.out_bytes or 0)


class QueryContext(BaseModel):
    """Snapshot of controller state used by the advisory/chat subsystem."""

    access_points: list[AccessPoint] = Field(default_factory=list)
    stations: list[Station] = Field(default_factory=list)
    sites: list[Site] = Field(default_factory=list)
    services: list[Service] = Field(default_factory=list)
    global_settings: dict[str, Any] | None = None
    traffic: dict[str, TrafficRecord] = Field(default_factory=dict)
    refreshed_at: datetime | None = None
