# This project was developed with assistance from AI tools.
"""access control tables

Revision ID: 3f1c2a9d7b40
Revises:
Create Date: 2026-10-19 09:12:40.000000

"""

import sqlalchemy as sa
from alembic import op

revision = "3f1c2a9d7b40"
down_revision = None
branch_labels = None
depends_on = None

API_DB_USER_IDENTIFIER = "biohub_api"


def upgrade() -> None:
    op.create_table(
        "system_role",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(250), nullable=True),
        sa.Column(
            "record_effective_date",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("record_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "system_user",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_guid", sa.String(200), nullable=True),
        sa.Column("user_identifier", sa.String(200), nullable=False),
        sa.Column("identity_source", sa.String(50), nullable=False),
        sa.Column("display_name", sa.String(200), nullable=True),
        sa.Column("given_name", sa.String(100), nullable=True),
        sa.Column("family_name", sa.String(100), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("agency", sa.String(200), nullable=True),
        sa.Column(
            "record_effective_date",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("record_end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "create_date", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column("create_user", sa.Integer(), nullable=True),
        sa.Column("update_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("update_user", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["create_user"], ["system_user.id"]),
        sa.ForeignKeyConstraint(["update_user"], ["system_user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_guid"),
        sa.UniqueConstraint("user_identifier", "identity_source"),
    )
    op.create_index("ix_system_user_user_guid", "system_user", ["user_guid"])

    op.create_table(
        "system_user_role",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("system_user_id", sa.Integer(), nullable=False),
        sa.Column("system_role_id", sa.Integer(), nullable=False),
        sa.Column(
            "create_date", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["system_user_id"], ["system_user.id"]),
        sa.ForeignKeyConstraint(["system_role_id"], ["system_role.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("system_user_id", "system_role_id"),
    )
    op.create_index("ix_system_user_role_system_user_id", "system_user_role", ["system_user_id"])

    op.create_table(
        "project",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("objectives", sa.Text(), nullable=True),
        sa.Column(
            "create_date", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column("create_user", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["create_user"], ["system_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "survey",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column(
            "create_date", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_survey_project_id", "survey", ["project_id"])

    op.create_table(
        "project_role",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(250), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "project_permission",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(250), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "project_role_permission",
        sa.Column("project_role_id", sa.Integer(), nullable=False),
        sa.Column("project_permission_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["project_role_id"], ["project_role.id"]),
        sa.ForeignKeyConstraint(["project_permission_id"], ["project_permission.id"]),
        sa.PrimaryKeyConstraint("project_role_id", "project_permission_id"),
    )

    op.create_table(
        "project_participation",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("system_user_id", sa.Integer(), nullable=False),
        sa.Column("project_role_id", sa.Integer(), nullable=False),
        sa.Column(
            "create_date", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column("create_user", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["project_id"], ["project.id"]),
        sa.ForeignKeyConstraint(["system_user_id"], ["system_user.id"]),
        sa.ForeignKeyConstraint(["project_role_id"], ["project_role.id"]),
        sa.ForeignKeyConstraint(["create_user"], ["system_user.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "system_user_id"),
    )
    op.create_index("ix_project_participation_project_id", "project_participation", ["project_id"])
    op.create_index(
        "ix_project_participation_system_user_id", "project_participation", ["system_user_id"]
    )

    op.create_table(
        "administrative_activity",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(50), nullable=False, server_default="Pending"),
        sa.Column("reported_system_user_id", sa.Integer(), nullable=True),
        sa.Column("assigned_system_user_id", sa.Integer(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "create_date", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column("update_date", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["reported_system_user_id"], ["system_user.id"]),
        sa.ForeignKeyConstraint(["assigned_system_user_id"], ["system_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_administrative_activity_status", "administrative_activity", ["status"]
    )

    # Lookup rows
    op.execute(
        "INSERT INTO system_role (name, description) VALUES "
        "('System Administrator', 'Full access to every project and administrative function.'), "
        "('Data Administrator', 'Manages users, access requests and project participation.'), "
        "('Creator', 'May create projects.')"
    )
    op.execute(
        "INSERT INTO project_role (name, description) VALUES "
        "('Coordinator', 'Project lead; manages participants.'), "
        "('Collaborator', 'Edits project and survey data.'), "
        "('Observer', 'Read-only project access.')"
    )
    op.execute(
        "INSERT INTO project_permission (name, description) VALUES "
        "('Coordinator', 'Manage the project and its participants.'), "
        "('Collaborator', 'Edit project and survey data.'), "
        "('Observer', 'View project and survey data.')"
    )
    op.execute(
        "INSERT INTO project_role_permission (project_role_id, project_permission_id) "
        "SELECT pr.id, pp.id FROM project_role pr "
        "JOIN project_permission pp ON pp.name = pr.name"
    )

    # Service identity used for audit columns when provisioning callers
    op.execute(
        "INSERT INTO system_user (user_identifier, identity_source, display_name) "
        f"VALUES ('{API_DB_USER_IDENTIFIER}', 'DATABASE', 'SIMS API')"
    )


def downgrade() -> None:
    op.drop_table("administrative_activity")
    op.drop_table("project_participation")
    op.drop_table("project_role_permission")
    op.drop_table("project_permission")
    op.drop_table("project_role")
    op.drop_table("survey")
    op.drop_table("project")
    op.drop_table("system_user_role")
    op.drop_table("system_user")
    op.drop_table("system_role")
