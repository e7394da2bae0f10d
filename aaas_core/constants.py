# aaas_core/constants.py
from __future__ import annotations
from enum import Enum

SCHEMA_VERSION = "1.0"
PRODUCER = "aaas.ledger"

ZERO_ADDRESS = "0x" + "0" * 40

# RoleRegistry role that may assign/unassign any role
SUPERADMIN_ROLE = "superadmin"

# Management policies for add/remove authorization
POLICY_ANY_ACTIVE = "any_active"
POLICY_ADMIN_ONLY = "admin_only"
MANAGEMENT_POLICIES = (POLICY_ANY_ACTIVE, POLICY_ADMIN_ONLY)


class Role(str, Enum):
    """Closed set of per-asset authorization roles."""
    ADMIN = "admin"
    PERMANENT = "permanent"
    TEMPORARY = "temporary"

    def __str__(self) -> str:
        return self.value


# Event names (topic suffixes on the transport)
ASSET_CREATED = "AssetCreated"
CREATE_REJECTED = "CreateRejected"
AUTHORIZATION_CREATED = "AuthorizationCreated"
AUTHORIZATION_REMOVED = "AuthorizationRemoved"
ACCESS_LOG = "AccessLog"
OWNERSHIP_TRANSFERRED = "OwnershipTransferred"
ROLE_CHANGE = "RoleChange"

DUPLICATE_KEY_REASON = "Asset with this key already exists."
