"""Data models for drive records and status words."""

from .product_info import PRODUCT_INFO_SIZE, ProductInfo
from .status import (
    BridgeControl,
    BridgeStatus,
    DriveStatus,
    DriveStatus1,
    DriveStatus2,
    ProtectionStatus,
    SystemProtection,
)
