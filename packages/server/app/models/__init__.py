# SQLModel definitions, imported here to ensure metadata is populated for Alembic.
from .base import IdMixin, AuditingMixin  # noqa: F401
from .app import SecurityApp  # noqa: F401
from .group import SecurityGroup  # noqa: F401
from .role import SecurityRole  # noqa: F401
from .resource import SecurityResourceEntity  # noqa: F401
from .nav import SecurityNav  # noqa: F401
from .login_event import SecurityLoginEvent  # noqa: F401
from .links import SecurityGroupRole, SecurityRoleResource, SecurityRoleNav  # noqa: F401
from .search_document import SearchDocument  # noqa: F401
