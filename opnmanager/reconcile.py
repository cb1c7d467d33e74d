import logging
from typing import Any, Dict, Iterable, List

from .models import ArpRecord, CombinedDevice, NdpRecord

logger = logging.getLogger(__name__)


def is_ipv6(ip: str) -> bool:
    # Dotted IPv4 never contains ':', textual IPv6 always does.
    return ":" in ip


def _new_entry(mac: str) -> Dict[str, Any]:
    return {
        "mac": mac,
        "ipv4_addresses": [],
        "ipv6_addresses": [],
        "intf": "",
        "expired": None,
        "expires": None,
        "permanent": None,
        "device_type": None,
        "manufacturer": "",
        "hostname": "",
        "intf_description": "",
    }


def _add_address(entry: Dict[str, Any], ip: str) -> None:
    bucket = entry["ipv6_addresses"] if is_ipv6(ip) else entry["ipv4_addresses"]
    if ip not in bucket:
        bucket.append(ip)


def merge_devices(arp: Iterable[ArpRecord], ndp: Iterable[NdpRecord]) -> List[CombinedDevice]:
    """
    Merge ARP and NDP rows into one CombinedDevice per MAC address.

    ARP rows are applied first and are the only source of the lease fields
    (expired/expires/permanent/device_type). Later rows for a known MAC only add
    addresses and fill an empty hostname (ARP) or an empty manufacturer (NDP);
    they never overwrite a non-empty value.

    MACs are used as given: the same MAC in a different case or notation ends
    up as a separate device. The order of the returned list is not meaningful.
    """
    entries: Dict[str, Dict[str, Any]] = {}

    for rec in arp:
        entry = entries.get(rec.mac)
        if entry is None:
            entry = _new_entry(rec.mac)
            entry.update(
                intf=rec.intf,
                expired=rec.expired,
                expires=rec.expires,
                permanent=rec.permanent,
                device_type=rec.device_type,
                manufacturer=rec.manufacturer,
                hostname=rec.hostname,
                intf_description=rec.intf_description,
            )
            entries[rec.mac] = entry
        elif not entry["hostname"] and rec.hostname:
            entry["hostname"] = rec.hostname
        _add_address(entry, rec.ip)

    for rec in ndp:
        entry = entries.get(rec.mac)
        if entry is None:
            entry = _new_entry(rec.mac)
            entry.update(
                intf=rec.intf,
                manufacturer=rec.manufacturer,
                intf_description=rec.intf_description,
            )
            entries[rec.mac] = entry
        elif not entry["manufacturer"] and rec.manufacturer:
            entry["manufacturer"] = rec.manufacturer
        _add_address(entry, rec.ip)

    devices = [
        CombinedDevice(
            mac=e["mac"],
            ipv4_addresses=tuple(e["ipv4_addresses"]),
            ipv6_addresses=tuple(e["ipv6_addresses"]),
            intf=e["intf"],
            expired=e["expired"],
            expires=e["expires"],
            permanent=e["permanent"],
            device_type=e["device_type"],
            manufacturer=e["manufacturer"],
            hostname=e["hostname"],
            intf_description=e["intf_description"],
        )
        for e in entries.values()
    ]
    logger.debug("Merged ARP/NDP tables into %s devices", len(devices))
    return devices
