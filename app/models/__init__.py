"""Database models — re-exports all models.

Import from here:  from app.models import User, Property, ...
Or from submodules: from app.models.auth import User
"""

from .base import Base  # noqa: F401

# Auth & Users
from .auth import User  # noqa: F401

# Listings & Offers
from .property import Offer, Property  # noqa: F401

# Valuations & WOZ cache
from .valuation import Valuation, WozCache  # noqa: F401

# Audit trail
from .audit import AuditLog  # noqa: F401

# Energy renovation
from .energy import EnergyProject  # noqa: F401

# Club directory
from .club import Club  # noqa: F401
