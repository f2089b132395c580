# This project was developed with assistance from AI tools.
"""
SIMS -- access control models

System users and their global roles, projects and surveys, per-project
participation with a single project role, and the administrative activity
(access request) queue.

Soft deletion is expressed through ``record_end_date``: a NULL end date
means the row is active.
"""

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from .enums import AdministrativeActivityStatus, AdministrativeActivityType, IdentitySource


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class SystemRole(Base):
    """Global role lookup (System Administrator, Data Administrator, Creator)."""

    __tablename__ = "system_role"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(String(250), nullable=True)
    record_effective_date = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    record_end_date = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<SystemRole(id={self.id}, name='{self.name}')>"


class SystemUser(Base):
    """Internal user record resolved from an identity-provider login."""

    __tablename__ = "system_user"
    __table_args__ = (UniqueConstraint("user_identifier", "identity_source"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_guid = Column(String(200), unique=True, nullable=True, index=True)
    user_identifier = Column(String(200), nullable=False)
    identity_source = Column(
        Enum(
            IdentitySource,
            name="identity_source",
            native_enum=False,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    display_name = Column(String(200), nullable=True)
    given_name = Column(String(100), nullable=True)
    family_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    agency = Column(String(200), nullable=True)
    record_effective_date = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    record_end_date = Column(DateTime(timezone=True), nullable=True)
    create_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    create_user = Column(Integer, ForeignKey("system_user.id"), nullable=True)
    update_date = Column(DateTime(timezone=True), nullable=True)
    update_user = Column(Integer, ForeignKey("system_user.id"), nullable=True)

    roles = relationship(
        "SystemUserRole",
        back_populates="system_user",
        cascade="all, delete-orphan",
        foreign_keys="SystemUserRole.system_user_id",
    )

    def __repr__(self):
        return (
            f"<SystemUser(id={self.id}, identifier='{self.user_identifier}', "
            f"source='{self.identity_source}')>"
        )


class SystemUserRole(Base):
    """Junction row granting a system role to a system user."""

    __tablename__ = "system_user_role"
    __table_args__ = (UniqueConstraint("system_user_id", "system_role_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    system_user_id = Column(Integer, ForeignKey("system_user.id"), nullable=False, index=True)
    system_role_id = Column(Integer, ForeignKey("system_role.id"), nullable=False)
    create_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    system_user = relationship("SystemUser", back_populates="roles", foreign_keys=[system_user_id])
    system_role = relationship("SystemRole")


class Project(Base):
    __tablename__ = "project"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(300), nullable=False)
    objectives = Column(Text, nullable=True)
    create_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    create_user = Column(Integer, ForeignKey("system_user.id"), nullable=True)

    surveys = relationship("Survey", back_populates="project", cascade="all, delete-orphan")
    participants = relationship(
        "ProjectParticipation", back_populates="project", cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}')>"


class Survey(Base):
    __tablename__ = "survey"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("project.id"), nullable=False, index=True)
    name = Column(String(300), nullable=False)
    create_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    project = relationship("Project", back_populates="surveys")


class ProjectRole(Base):
    """Project-scoped role lookup (Coordinator, Collaborator, Observer)."""

    __tablename__ = "project_role"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(String(250), nullable=True)


class ProjectPermission(Base):
    """Project-scoped permission lookup, granted through project roles."""

    __tablename__ = "project_permission"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), unique=True, nullable=False)
    description = Column(String(250), nullable=True)


class ProjectRolePermission(Base):
    __tablename__ = "project_role_permission"

    project_role_id = Column(Integer, ForeignKey("project_role.id"), primary_key=True)
    project_permission_id = Column(Integer, ForeignKey("project_permission.id"), primary_key=True)


class ProjectParticipation(Base):
    """A system user's membership in a project, holding one project role.

    Role changes are applied as delete-then-insert, so a row's id changes
    whenever its role does.
    """

    __tablename__ = "project_participation"
    __table_args__ = (UniqueConstraint("project_id", "system_user_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("project.id"), nullable=False, index=True)
    system_user_id = Column(Integer, ForeignKey("system_user.id"), nullable=False, index=True)
    project_role_id = Column(Integer, ForeignKey("project_role.id"), nullable=False)
    create_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    create_user = Column(Integer, ForeignKey("system_user.id"), nullable=True)

    project = relationship("Project", back_populates="participants")
    system_user = relationship("SystemUser", foreign_keys=[system_user_id])
    project_role = relationship("ProjectRole")

    def __repr__(self):
        return (
            f"<ProjectParticipation(id={self.id}, project={self.project_id}, "
            f"user={self.system_user_id}, role={self.project_role_id})>"
        )


class AdministrativeActivity(Base):
    """Tracked request needing admin action (e.g. a system access request)."""

    __tablename__ = "administrative_activity"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(
        Enum(
            AdministrativeActivityType,
            name="administrative_activity_type",
            native_enum=False,
            values_callable=_enum_values,
        ),
        nullable=False,
    )
    status = Column(
        Enum(
            AdministrativeActivityStatus,
            name="administrative_activity_status",
            native_enum=False,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=AdministrativeActivityStatus.PENDING,
    )
    reported_system_user_id = Column(Integer, ForeignKey("system_user.id"), nullable=True)
    assigned_system_user_id = Column(Integer, ForeignKey("system_user.id"), nullable=True)
    data = Column(JSON, nullable=False)
    notes = Column(Text, nullable=True)
    create_date = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    update_date = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<AdministrativeActivity(id={self.id}, type='{self.type}', status='{self.status}')>"
