"""Database models — re-exports all models.

Import from here:  from smartify.models import Application, AvailableNumber, ...
Or from submodules: from smartify.models.applications import Application
"""

from .base import Base  # noqa: F401

# Locations
from .locations import Barangay, City, Province  # noqa: F401

# Catalog & Stores
from .catalog import Device, DeviceConfiguration, Plan, Store  # noqa: F401

# Agents
from .agents import Agent  # noqa: F401

# Applications & intake sections
from .applications import (  # noqa: F401
    Address,
    Application,
    CustomerInformation,
    EmploymentInformation,
    OrderItem,
    PrivacyPreferences,
)

# Number pool
from .numbers import AvailableNumber  # noqa: F401

# OTP & Audit
from .otp import OtpVerification  # noqa: F401
from .audit import AuditLog  # noqa: F401
