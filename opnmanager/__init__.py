"""
OPNsense management API client.

This package provides:
- an HTTP gateway with Basic auth, per-request timeouts and classified errors
- ARP/NDP neighbor table retrieval merged into one device inventory per MAC
- thin wrappers for ARP flush, reboot and ZFS snapshot management
"""

from .config import ApiProfile, StaticProfileStore, load_settings
from .device_service import DeviceService
from .http_gateway import ApiCredentials, HttpGateway
from .models import ArpRecord, CombinedDevice, NdpRecord
from .power_service import PowerService
from .reconcile import merge_devices
from .snapshot_service import SnapshotService

__all__ = [
    "ApiCredentials",
    "ApiProfile",
    "ArpRecord",
    "CombinedDevice",
    "DeviceService",
    "HttpGateway",
    "NdpRecord",
    "PowerService",
    "SnapshotService",
    "StaticProfileStore",
    "load_settings",
    "merge_devices",
]
