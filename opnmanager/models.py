from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .exceptions import DecodeError


def _field(raw: Mapping[str, Any], key: str, expected: type, source: str) -> Any:
    if not isinstance(raw, Mapping):
        raise DecodeError(f"Failed to parse {source}: expected an object, got {type(raw).__name__}")
    if key not in raw:
        raise DecodeError(f"Failed to parse {source}: missing field {key!r}")
    value = raw[key]
    # bool is a subclass of int; an int field must not accept true/false.
    if expected is int and isinstance(value, bool):
        raise DecodeError(f"Failed to parse {source}: field {key!r} must be int, got bool")
    if not isinstance(value, expected):
        raise DecodeError(
            f"Failed to parse {source}: field {key!r} must be {expected.__name__}, "
            f"got {type(value).__name__}"
        )
    return value


@dataclass
class ArpRecord:
    """One row of the appliance's ARP table (IPv4 neighbors with lease state)."""

    mac: str
    ip: str
    intf: str
    expired: bool
    expires: int  # seconds; may be negative for permanent entries
    permanent: bool
    device_type: str  # wire key "type"
    manufacturer: str
    hostname: str
    intf_description: str

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "ArpRecord":
        src = "ARP record"
        return cls(
            mac=_field(raw, "mac", str, src),
            ip=_field(raw, "ip", str, src),
            intf=_field(raw, "intf", str, src),
            expired=_field(raw, "expired", bool, src),
            expires=_field(raw, "expires", int, src),
            permanent=_field(raw, "permanent", bool, src),
            device_type=_field(raw, "type", str, src),
            manufacturer=_field(raw, "manufacturer", str, src),
            hostname=_field(raw, "hostname", str, src),
            intf_description=_field(raw, "intf_description", str, src),
        )


@dataclass
class NdpRecord:
    """One row of the IPv6 neighbor discovery table."""

    mac: str
    ip: str
    intf: str
    manufacturer: str
    intf_description: str

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "NdpRecord":
        src = "NDP record"
        return cls(
            mac=_field(raw, "mac", str, src),
            ip=_field(raw, "ip", str, src),
            intf=_field(raw, "intf", str, src),
            manufacturer=_field(raw, "manufacturer", str, src),
            intf_description=_field(raw, "intf_description", str, src),
        )


@dataclass(frozen=True)
class CombinedDevice:
    """
    Reconciled per-MAC device built from the ARP and NDP tables.

    - expired/expires/permanent/device_type are set only when the MAC was seen in ARP
    - address tuples never contain the same IP twice; their order carries no meaning
    """

    mac: str
    ipv4_addresses: Tuple[str, ...]
    ipv6_addresses: Tuple[str, ...]
    intf: str
    expired: Optional[bool]
    expires: Optional[int]
    permanent: Optional[bool]
    device_type: Optional[str]
    manufacturer: str
    hostname: str
    intf_description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mac": self.mac,
            "ipv4_addresses": list(self.ipv4_addresses),
            "ipv6_addresses": list(self.ipv6_addresses),
            "intf": self.intf,
            "expired": self.expired,
            "expires": self.expires,
            "permanent": self.permanent,
            "device_type": self.device_type,
            "manufacturer": self.manufacturer,
            "hostname": self.hostname,
            "intf_description": self.intf_description,
        }


@dataclass
class Snapshot:
    """ZFS boot environment snapshot as reported by the appliance."""

    uuid: str
    name: str
    active: str
    mountpoint: str
    size: str
    created_str: str
    created: int

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Snapshot":
        src = "snapshot"
        return cls(
            uuid=_field(raw, "uuid", str, src),
            name=_field(raw, "name", str, src),
            active=_field(raw, "active", str, src),
            mountpoint=_field(raw, "mountpoint", str, src),
            size=_field(raw, "size", str, src),
            created_str=_field(raw, "created_str", str, src),
            created=_field(raw, "created", int, src),
        )


@dataclass
class SnapshotPage:
    total: int
    row_count: int
    current: int
    rows: List[Snapshot] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "SnapshotPage":
        src = "snapshots"
        rows = _field(raw, "rows", list, src)
        return cls(
            total=_field(raw, "total", int, src),
            row_count=_field(raw, "rowCount", int, src),
            current=_field(raw, "current", int, src),
            rows=[Snapshot.from_dict(r) for r in rows],
        )


@dataclass
class NewSnapshot:
    """Name/uuid suggested by the appliance for a snapshot about to be created."""

    name: str
    uuid: str

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "NewSnapshot":
        src = "new snapshot info"
        return cls(
            name=_field(raw, "name", str, src),
            uuid=_field(raw, "uuid", str, src),
        )
