"""procesos and carpetas schema

Revision ID: a3b7c9d2e4f6
Revises:
Create Date: 2026-10-17 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a3b7c9d2e4f6"
down_revision = None
branch_labels = None
depends_on = None

FOLDER_KINDS = ("CJ", "CJO", "CEMCI", "CEMS")
SENTENCIA_TIPOS = ("CONDENATORIA", "MIXTA", "ABSOLUTORIA", "OTRA", "SIN_SENTENCIA")
USER_ROLES = ("ADMIN", "JUZGADO", "JUZGADO_EJECUCION", "CONSULTA")


def _catalog(name: str, length: int) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("nombre", sa.String(length=length), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("nombre"),
    )


def upgrade():
    op.create_table(
        "user_account",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=120), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.Enum(*USER_ROLES, name="user_role"), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_table(
        "adolescente",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("nombre", sa.String(length=150), nullable=False),
        sa.Column("iniciales", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("sexo", sa.String(length=20), nullable=False, server_default="N/A"),
        sa.Column("fecha_nacimiento", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "domicilio",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("municipio", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("calle_numero", sa.String(length=150), nullable=False, server_default=""),
        sa.Column("colonia", sa.String(length=100), nullable=False, server_default=""),
        sa.PrimaryKeyConstraint("id"),
    )
    _catalog("status_proceso", 60)
    _catalog("estado_procesal", 80)
    op.create_table(
        "tipo_medida_cautelar",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("nombre", sa.String(length=150), nullable=False),
        sa.Column("genera_cemci", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("nombre"),
    )
    op.create_table(
        "proceso",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("adolescente_id", sa.Integer(), nullable=False),
        sa.Column("status_id", sa.Integer(), nullable=True),
        sa.Column("observaciones", sa.String(length=1000), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["adolescente_id"], ["adolescente.id"]),
        sa.ForeignKeyConstraint(["status_id"], ["status_proceso.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("adolescente_id"),
    )
    op.create_table(
        "cj",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("numero_cj", sa.String(length=50), nullable=False),
        sa.Column("fecha_ingreso", sa.Date(), nullable=True),
        sa.Column("tipo_fuero", sa.String(length=30), nullable=True),
        sa.Column("numero_ampea", sa.String(length=50), nullable=True),
        sa.Column("tipo_narcotico_asegurado", sa.String(length=100), nullable=True),
        sa.Column("peso_narcotico_gramos", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("control", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("lesiones", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fecha_control", sa.Date(), nullable=True),
        sa.Column("fecha_formulacion", sa.Date(), nullable=True),
        sa.Column("vinculacion", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fecha_vinculacion", sa.Date(), nullable=True),
        sa.Column("conducta_vinculacion", sa.String(length=200), nullable=True),
        sa.Column("declaro", sa.String(length=100), nullable=True),
        sa.Column("suspension_condicional_proceso_prueba", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("plazo_suspension", sa.String(length=50), nullable=True),
        sa.Column("fecha_suspension", sa.Date(), nullable=True),
        sa.Column("fecha_terminacion_suspension", sa.Date(), nullable=True),
        sa.Column("audiencia_intermedia", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fecha_audiencia_intermedia", sa.Date(), nullable=True),
        sa.Column("estatus_carpeta_preliminar", sa.String(length=100), nullable=True),
        sa.Column("reincidente", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sustraido", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fecha_sustraccion", sa.Date(), nullable=True),
        sa.Column("medidas_proteccion", sa.String(length=200), nullable=True),
        sa.Column("numero_toca_apelacion", sa.String(length=50), nullable=True),
        sa.Column("numero_total_audiencias", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("corporacion_ejecutora", sa.String(length=150), nullable=True),
        sa.Column("representante_pp_nnya", sa.String(length=150), nullable=True),
        sa.Column("tipo_representacion_pp_nnya", sa.String(length=100), nullable=True),
        sa.Column("observaciones", sa.Text(), nullable=True),
        sa.Column("observaciones_adicionales", sa.Text(), nullable=True),
        sa.Column("domicilio_hechos_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["domicilio_hechos_id"], ["domicilio.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("numero_cj"),
    )
    op.create_index("ix_cj_fuero_ingreso", "cj", ["tipo_fuero", "fecha_ingreso"], unique=False)
    op.create_table(
        "cjo",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("numero_cjo", sa.String(length=50), nullable=False),
        sa.Column("cj_id", sa.Integer(), nullable=False),
        sa.Column("fuero", sa.String(length=30), nullable=True),
        sa.Column("fecha_ingreso", sa.Date(), nullable=True),
        sa.Column("fecha_auto_apertura", sa.Date(), nullable=True),
        sa.Column("sentencia", sa.String(length=100), nullable=True),
        sa.Column(
            "sentencia_tipo",
            sa.Enum(*SENTENCIA_TIPOS, name="sentencia_tipo"),
            nullable=False,
            server_default="SIN_SENTENCIA",
        ),
        sa.Column("fecha_sentencia", sa.Date(), nullable=True),
        sa.Column("monto_reparacion_dano", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("fecha_causo_estado", sa.Date(), nullable=True),
        sa.Column("toca_apelacion", sa.String(length=50), nullable=True),
        sa.Column("fecha_sentencia_enviada_ejecucion", sa.Date(), nullable=True),
        sa.Column("juez_envia", sa.String(length=150), nullable=True),
        sa.Column("juez_recibe", sa.String(length=150), nullable=True),
        sa.Column("compurga_totalidad", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("representante_pp_nnya", sa.String(length=150), nullable=True),
        sa.Column("tipo_representacion_pp_nnya", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["cj_id"], ["cj.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("numero_cjo"),
        sa.UniqueConstraint("cj_id"),
    )
    op.create_table(
        "cemci",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("numero_cemci", sa.String(length=50), nullable=False),
        sa.Column("cj_id", sa.Integer(), nullable=False),
        sa.Column("cjo_id", sa.Integer(), nullable=True),
        sa.Column("fecha_recepcion_cemci", sa.Date(), nullable=True),
        sa.Column("estado_procesal_id", sa.Integer(), nullable=True),
        sa.Column("concluido", sa.Date(), nullable=True),
        sa.Column("observaciones", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["cj_id"], ["cj.id"]),
        sa.ForeignKeyConstraint(["cjo_id"], ["cjo.id"]),
        sa.ForeignKeyConstraint(["estado_procesal_id"], ["estado_procesal.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("numero_cemci"),
    )
    with op.batch_alter_table("cemci", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_cemci_cj_id"), ["cj_id"], unique=False)

    op.create_table(
        "cems",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("numero_cems", sa.String(length=50), nullable=False),
        sa.Column("cj_id", sa.Integer(), nullable=False),
        sa.Column("cjo_id", sa.Integer(), nullable=False),
        sa.Column("cemci_id", sa.Integer(), nullable=True),
        sa.Column("fecha_recepcion", sa.Date(), nullable=True),
        sa.Column("estado_procesal_id", sa.Integer(), nullable=True),
        sa.Column("status", sa.Boolean(), nullable=True),
        sa.Column("jto", sa.String(length=100), nullable=True),
        sa.Column("cmva", sa.String(length=100), nullable=True),
        sa.Column("ceip", sa.String(length=100), nullable=True),
        sa.Column("plan_actividad_fecha_inicio", sa.Date(), nullable=True),
        sa.Column("declinacion_competencia", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("estado_declina", sa.String(length=100), nullable=True),
        sa.Column("estado_recibe", sa.String(length=100), nullable=True),
        sa.Column("adolescentes_orden_comparecencia", sa.String(length=200), nullable=True),
        sa.Column("observaciones", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["cj_id"], ["cj.id"]),
        sa.ForeignKeyConstraint(["cjo_id"], ["cjo.id"]),
        sa.ForeignKeyConstraint(["cemci_id"], ["cemci.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["estado_procesal_id"], ["estado_procesal.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("numero_cems"),
    )
    with op.batch_alter_table("cems", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_cems_cj_id"), ["cj_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_cems_cjo_id"), ["cjo_id"], unique=False)

    op.create_table(
        "proceso_carpeta",
        sa.Column("proceso_id", sa.Integer(), nullable=False),
        sa.Column("cj_id", sa.Integer(), nullable=True),
        sa.Column("cjo_id", sa.Integer(), nullable=True),
        sa.Column("cemci_id", sa.Integer(), nullable=True),
        sa.Column("cems_id", sa.Integer(), nullable=True),
        sa.CheckConstraint(
            "cj_id IS NOT NULL OR (cjo_id IS NULL AND cemci_id IS NULL AND cems_id IS NULL)",
            name="ck_proceso_carpeta_requires_cj",
        ),
        sa.CheckConstraint("cems_id IS NULL OR cjo_id IS NOT NULL", name="ck_proceso_carpeta_cems_requires_cjo"),
        sa.ForeignKeyConstraint(["proceso_id"], ["proceso.id"]),
        sa.ForeignKeyConstraint(["cj_id"], ["cj.id"]),
        sa.ForeignKeyConstraint(["cjo_id"], ["cjo.id"]),
        sa.ForeignKeyConstraint(["cemci_id"], ["cemci.id"]),
        sa.ForeignKeyConstraint(["cems_id"], ["cems.id"]),
        sa.PrimaryKeyConstraint("proceso_id"),
        sa.UniqueConstraint("cj_id"),
        sa.UniqueConstraint("cjo_id"),
        sa.UniqueConstraint("cemci_id"),
        sa.UniqueConstraint("cems_id"),
    )
    op.create_table(
        "medida_cautelar",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("proceso_id", sa.Integer(), nullable=False),
        sa.Column("tipo_medida_cautelar_id", sa.Integer(), nullable=False),
        sa.Column("fecha_medida_cautelar", sa.Date(), nullable=False),
        sa.Column("revocada", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("fecha_revocacion", sa.Date(), nullable=True),
        sa.Column("observaciones", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "fecha_revocacion IS NULL OR fecha_revocacion >= fecha_medida_cautelar",
            name="ck_medida_cautelar_fechas",
        ),
        sa.ForeignKeyConstraint(["proceso_id"], ["proceso.id"]),
        sa.ForeignKeyConstraint(["tipo_medida_cautelar_id"], ["tipo_medida_cautelar.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("medida_cautelar", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_medida_cautelar_proceso_id"), ["proceso_id"], unique=False)
    op.create_index(
        "ix_medida_cautelar_proceso_fecha",
        "medida_cautelar",
        ["proceso_id", "fecha_medida_cautelar"],
        unique=False,
    )

    op.create_table(
        "contador_carpeta",
        sa.Column("tipo", sa.Enum(*FOLDER_KINDS, name="folder_kind"), nullable=False),
        sa.Column("anio", sa.Integer(), nullable=False),
        sa.Column("ultimo", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("tipo", "anio"),
    )


def downgrade():
    op.drop_table("contador_carpeta")
    op.drop_index("ix_medida_cautelar_proceso_fecha", table_name="medida_cautelar")
    with op.batch_alter_table("medida_cautelar", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_medida_cautelar_proceso_id"))
    op.drop_table("medida_cautelar")
    op.drop_table("proceso_carpeta")
    with op.batch_alter_table("cems", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_cems_cjo_id"))
        batch_op.drop_index(batch_op.f("ix_cems_cj_id"))
    op.drop_table("cems")
    with op.batch_alter_table("cemci", schema=None) as batch_op:
        batch_op.drop_index(batch_op.f("ix_cemci_cj_id"))
    op.drop_table("cemci")
    op.drop_table("cjo")
    op.drop_index("ix_cj_fuero_ingreso", table_name="cj")
    op.drop_table("cj")
    op.drop_table("proceso")
    op.drop_table("tipo_medida_cautelar")
    op.drop_table("estado_procesal")
    op.drop_table("status_proceso")
    op.drop_table("domicilio")
    op.drop_table("adolescente")
    op.drop_table("user_account")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for enum_name in ("folder_kind", "sentencia_tipo", "user_role"):
            op.execute(sa.text(f"DROP TYPE IF EXISTS {enum_name}"))
