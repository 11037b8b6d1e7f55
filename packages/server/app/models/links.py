"""Many-to-many link tables between security entities."""

from sqlmodel import Field, SQLModel


class SecurityGroupRole(SQLModel, table=True):
    __tablename__ = "security_group_roles"

    group_id: int = Field(foreign_key="security_group.id", primary_key=True)
    role_id: int = Field(foreign_key="security_role.id", primary_key=True, index=True)


class SecurityRoleResource(SQLModel, table=True):
    __tablename__ = "security_role_resources"

    role_id: int = Field(foreign_key="security_role.id", primary_key=True)
    resource_id: int = Field(
        foreign_key="security_resource_entity.id", primary_key=True, index=True
    )


class SecurityRoleNav(SQLModel, table=True):
    __tablename__ = "security_role_navs"

    role_id: int = Field(foreign_key="security_role.id", primary_key=True)
    nav_id: int = Field(foreign_key="security_nav.id", primary_key=True, index=True)
