"""
============================================================
TARJETA CRC (Class / Responsibilities / Collaborators)
============================================================
Class: 001_users (Alembic Migration)

Responsibilities:
  - Crear la tabla `users` (Credential Store) desde cero.

Collaborators:
  - PostgreSQL 16+
  - infrastructure/repositories/postgres/user.py (usa este esquema como contrato)

Policy:
  - Migración BASELINE. Downgrade NO soportado.
  - Convención de nombres:
      pk_<tabla>          - Primary keys
      uq_<tabla>_<col>    - Unique constraints
      ck_<nombre>         - Check constraints
============================================================
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_users"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        # phone es el nombre de login (único).
        sa.Column("phone", sa.String(32), nullable=False),
        sa.Column("password_hash", sa.Text, nullable=False),
        # roles como text[]: nunca vacío, default {USER}.
        sa.Column(
            "roles",
            postgresql.ARRAY(sa.Text),
            nullable=False,
            server_default=sa.text("'{USER}'::text[]"),
        ),
        sa.Column(
            "is_active",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("phone", name="uq_users_phone"),
        sa.CheckConstraint(
            "cardinality(roles) > 0", name="ck_users_roles_not_empty"
        ),
        sa.CheckConstraint(
            "roles <@ ARRAY['USER', 'ADMIN', 'SUPERUSER']::text[]",
            name="ck_users_roles_known",
        ),
    )


def downgrade() -> None:
    """Baseline: downgrade no soportado por política."""
    raise NotImplementedError(
        "Baseline: downgrade no soportado. Para resetear, recrear la base de datos."
    )
