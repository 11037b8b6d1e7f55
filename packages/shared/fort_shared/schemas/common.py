from enum import Enum


class UpdateOperation(str, Enum):
    """HTTP verb that produced a resource change."""
    CREATED = "POST"
    UPDATED = "PUT"
    DELETED = "DELETE"


class ResourceKind(str, Enum):
    APP = "SECURITY_APP"
    GROUP = "SECURITY_GROUP"
    ROLE = "SECURITY_ROLE"
    NAV = "SECURITY_NAV"
    RESOURCE = "SECURITY_RESOURCE_ENTITY"


# Search index names: lower-cased entity class names
INDEX_NAMES: dict[str, str] = {
    "SecurityApp": "securityapp",
    "SecurityGroup": "securitygroup",
    "SecurityRole": "securityrole",
    "SecurityResourceEntity": "securityresourceentity",
    "SecurityNav": "securitynav",
    "SecurityLoginEvent": "securityloginevent",
}

