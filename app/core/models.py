from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

from flask_login import UserMixin
from sqlalchemy import CheckConstraint, Enum as SAEnum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from werkzeug.security import generate_password_hash

from app.core.extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FolderKind(str, Enum):
    CJ = "CJ"
    CJO = "CJO"
    CEMCI = "CEMCI"
    CEMS = "CEMS"

    @property
    def bridge_column(self) -> str:
        return f"{self.value.lower()}_id"


class SentenciaTipo(str, Enum):
    CONDENATORIA = "CONDENATORIA"
    MIXTA = "MIXTA"
    ABSOLUTORIA = "ABSOLUTORIA"
    OTRA = "OTRA"
    SIN_SENTENCIA = "SIN_SENTENCIA"


class UserRole(str, Enum):
    ADMIN = "Administrador"
    JUZGADO = "Juzgado"
    JUZGADO_EJECUCION = "Juzgado Ejecución"
    CONSULTA = "Consulta"


class User(UserMixin, db.Model):
    __tablename__ = "user_account"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(db.String(255), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(db.String(120), nullable=False)
    password_hash: Mapped[str] = mapped_column(db.String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole, name="user_role"),
        nullable=False,
        default=UserRole.CONSULTA,
    )
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class Adolescente(db.Model):
    # Registro externo: solo los campos que el motor necesita
    __tablename__ = "adolescente"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(150), nullable=False)
    iniciales: Mapped[str] = mapped_column(db.String(20), nullable=False, default="")
    sexo: Mapped[str] = mapped_column(db.String(20), nullable=False, default="N/A")
    fecha_nacimiento: Mapped[date | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    proceso = relationship("Proceso", back_populates="adolescente", uselist=False)


class Domicilio(db.Model):
    __tablename__ = "domicilio"

    id: Mapped[int] = mapped_column(primary_key=True)
    municipio: Mapped[str] = mapped_column(db.String(100), nullable=False, default="")
    calle_numero: Mapped[str] = mapped_column(db.String(150), nullable=False, default="")
    colonia: Mapped[str] = mapped_column(db.String(100), nullable=False, default="")


class StatusProceso(db.Model):
    __tablename__ = "status_proceso"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(60), unique=True, nullable=False)


class EstadoProcesal(db.Model):
    __tablename__ = "estado_procesal"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(80), unique=True, nullable=False)


class TipoMedidaCautelar(db.Model):
    __tablename__ = "tipo_medida_cautelar"

    id: Mapped[int] = mapped_column(primary_key=True)
    nombre: Mapped[str] = mapped_column(db.String(150), unique=True, nullable=False)
    genera_cemci: Mapped[bool] = mapped_column(default=False, nullable=False)


class Proceso(db.Model):
    __tablename__ = "proceso"

    id: Mapped[int] = mapped_column(primary_key=True)
    adolescente_id: Mapped[int] = mapped_column(ForeignKey("adolescente.id"), unique=True, nullable=False)
    status_id: Mapped[int | None] = mapped_column(ForeignKey("status_proceso.id"), nullable=True)
    observaciones: Mapped[str] = mapped_column(db.String(1000), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    adolescente = relationship("Adolescente", back_populates="proceso")
    status = relationship("StatusProceso")
    carpeta = relationship("ProcesoCarpeta", back_populates="proceso", uselist=False)
    medidas = relationship("MedidaCautelar", back_populates="proceso", cascade="all, delete-orphan")


class ProcesoCarpeta(db.Model):
    # Puente proceso -> carpetas: a lo sumo una carpeta de cada tipo
    __tablename__ = "proceso_carpeta"
    __table_args__ = (
        CheckConstraint(
            "cj_id IS NOT NULL OR (cjo_id IS NULL AND cemci_id IS NULL AND cems_id IS NULL)",
            name="ck_proceso_carpeta_requires_cj",
        ),
        CheckConstraint("cems_id IS NULL OR cjo_id IS NOT NULL", name="ck_proceso_carpeta_cems_requires_cjo"),
    )

    proceso_id: Mapped[int] = mapped_column(ForeignKey("proceso.id"), primary_key=True)
    cj_id: Mapped[int | None] = mapped_column(ForeignKey("cj.id"), unique=True, nullable=True)
    cjo_id: Mapped[int | None] = mapped_column(ForeignKey("cjo.id"), unique=True, nullable=True)
    cemci_id: Mapped[int | None] = mapped_column(ForeignKey("cemci.id"), unique=True, nullable=True)
    cems_id: Mapped[int | None] = mapped_column(ForeignKey("cems.id"), unique=True, nullable=True)

    proceso = relationship("Proceso", back_populates="carpeta")
    cj = relationship("CJ", foreign_keys=[cj_id])
    cjo = relationship("CJO", foreign_keys=[cjo_id])
    cemci = relationship("CEMCI", foreign_keys=[cemci_id])
    cems = relationship("CEMS", foreign_keys=[cems_id])


class CJ(db.Model):
    # Carpeta judicial de origen
    __tablename__ = "cj"
    __table_args__ = (
        Index("ix_cj_fuero_ingreso", "tipo_fuero", "fecha_ingreso"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    numero_cj: Mapped[str] = mapped_column(db.String(50), unique=True, nullable=False)
    fecha_ingreso: Mapped[date | None] = mapped_column(nullable=True)
    tipo_fuero: Mapped[str | None] = mapped_column(db.String(30), nullable=True)
    numero_ampea: Mapped[str | None] = mapped_column(db.String(50), nullable=True)
    tipo_narcotico_asegurado: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    peso_narcotico_gramos: Mapped[Decimal | None] = mapped_column(db.Numeric(10, 2), nullable=True)
    control: Mapped[bool] = mapped_column(default=False, nullable=False)
    lesiones: Mapped[bool] = mapped_column(default=False, nullable=False)
    fecha_control: Mapped[date | None] = mapped_column(nullable=True)
    fecha_formulacion: Mapped[date | None] = mapped_column(nullable=True)
    vinculacion: Mapped[bool] = mapped_column(default=False, nullable=False)
    fecha_vinculacion: Mapped[date | None] = mapped_column(nullable=True)
    conducta_vinculacion: Mapped[str | None] = mapped_column(db.String(200), nullable=True)
    declaro: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    suspension_condicional_proceso_prueba: Mapped[bool] = mapped_column(default=False, nullable=False)
    plazo_suspension: Mapped[str | None] = mapped_column(db.String(50), nullable=True)
    fecha_suspension: Mapped[date | None] = mapped_column(nullable=True)
    fecha_terminacion_suspension: Mapped[date | None] = mapped_column(nullable=True)
    audiencia_intermedia: Mapped[bool] = mapped_column(default=False, nullable=False)
    fecha_audiencia_intermedia: Mapped[date | None] = mapped_column(nullable=True)
    estatus_carpeta_preliminar: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    reincidente: Mapped[bool] = mapped_column(default=False, nullable=False)
    sustraido: Mapped[bool] = mapped_column(default=False, nullable=False)
    fecha_sustraccion: Mapped[date | None] = mapped_column(nullable=True)
    medidas_proteccion: Mapped[str | None] = mapped_column(db.String(200), nullable=True)
    numero_toca_apelacion: Mapped[str | None] = mapped_column(db.String(50), nullable=True)
    numero_total_audiencias: Mapped[int] = mapped_column(default=0, nullable=False)
    corporacion_ejecutora: Mapped[str | None] = mapped_column(db.String(150), nullable=True)
    representante_pp_nnya: Mapped[str | None] = mapped_column(db.String(150), nullable=True)
    tipo_representacion_pp_nnya: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    observaciones: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    observaciones_adicionales: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    domicilio_hechos_id: Mapped[int | None] = mapped_column(ForeignKey("domicilio.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    domicilio_hechos = relationship("Domicilio")
    cjo = relationship("CJO", back_populates="cj", uselist=False)


class CJO(db.Model):
    # Carpeta de juicio oral, 1:1 con su CJ
    __tablename__ = "cjo"

    id: Mapped[int] = mapped_column(primary_key=True)
    numero_cjo: Mapped[str] = mapped_column(db.String(50), unique=True, nullable=False)
    cj_id: Mapped[int] = mapped_column(ForeignKey("cj.id"), unique=True, nullable=False)
    fuero: Mapped[str | None] = mapped_column(db.String(30), nullable=True)
    fecha_ingreso: Mapped[date | None] = mapped_column(nullable=True)
    fecha_auto_apertura: Mapped[date | None] = mapped_column(nullable=True)
    sentencia: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    sentencia_tipo: Mapped[SentenciaTipo] = mapped_column(
        SAEnum(SentenciaTipo, name="sentencia_tipo"),
        nullable=False,
        default=SentenciaTipo.SIN_SENTENCIA,
    )
    fecha_sentencia: Mapped[date | None] = mapped_column(nullable=True)
    monto_reparacion_dano: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2), nullable=True)
    fecha_causo_estado: Mapped[date | None] = mapped_column(nullable=True)
    toca_apelacion: Mapped[str | None] = mapped_column(db.String(50), nullable=True)
    fecha_sentencia_enviada_ejecucion: Mapped[date | None] = mapped_column(nullable=True)
    juez_envia: Mapped[str | None] = mapped_column(db.String(150), nullable=True)
    juez_recibe: Mapped[str | None] = mapped_column(db.String(150), nullable=True)
    compurga_totalidad: Mapped[bool] = mapped_column(default=False, nullable=False)
    representante_pp_nnya: Mapped[str | None] = mapped_column(db.String(150), nullable=True)
    tipo_representacion_pp_nnya: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    cj = relationship("CJ", back_populates="cjo")


class CEMCI(db.Model):
    # Carpeta de ejecucion de medida cautelar de internamiento
    __tablename__ = "cemci"

    id: Mapped[int] = mapped_column(primary_key=True)
    numero_cemci: Mapped[str] = mapped_column(db.String(50), unique=True, nullable=False)
    cj_id: Mapped[int] = mapped_column(ForeignKey("cj.id"), nullable=False, index=True)
    cjo_id: Mapped[int | None] = mapped_column(ForeignKey("cjo.id"), nullable=True)
    fecha_recepcion_cemci: Mapped[date | None] = mapped_column(nullable=True)
    estado_procesal_id: Mapped[int | None] = mapped_column(ForeignKey("estado_procesal.id"), nullable=True)
    concluido: Mapped[date | None] = mapped_column(nullable=True)
    observaciones: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    cj = relationship("CJ")
    cjo = relationship("CJO")
    estado_procesal = relationship("EstadoProcesal")


class CEMS(db.Model):
    # Carpeta de ejecucion de medidas sancionadoras
    __tablename__ = "cems"

    id: Mapped[int] = mapped_column(primary_key=True)
    numero_cems: Mapped[str] = mapped_column(db.String(50), unique=True, nullable=False)
    cj_id: Mapped[int] = mapped_column(ForeignKey("cj.id"), nullable=False, index=True)
    cjo_id: Mapped[int] = mapped_column(ForeignKey("cjo.id"), nullable=False, index=True)
    cemci_id: Mapped[int | None] = mapped_column(ForeignKey("cemci.id", ondelete="SET NULL"), nullable=True)
    fecha_recepcion: Mapped[date | None] = mapped_column(nullable=True)
    estado_procesal_id: Mapped[int | None] = mapped_column(ForeignKey("estado_procesal.id"), nullable=True)
    status: Mapped[bool | None] = mapped_column(nullable=True)
    jto: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    cmva: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    ceip: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    plan_actividad_fecha_inicio: Mapped[date | None] = mapped_column(nullable=True)
    declinacion_competencia: Mapped[bool] = mapped_column(default=False, nullable=False)
    estado_declina: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    estado_recibe: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    adolescentes_orden_comparecencia: Mapped[str | None] = mapped_column(db.String(200), nullable=True)
    observaciones: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    cj = relationship("CJ")
    cjo = relationship("CJO")
    cemci = relationship("CEMCI")
    estado_procesal = relationship("EstadoProcesal")


class MedidaCautelar(db.Model):
    __tablename__ = "medida_cautelar"
    __table_args__ = (
        CheckConstraint(
            "fecha_revocacion IS NULL OR fecha_revocacion >= fecha_medida_cautelar",
            name="ck_medida_cautelar_fechas",
        ),
        Index("ix_medida_cautelar_proceso_fecha", "proceso_id", "fecha_medida_cautelar"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    proceso_id: Mapped[int] = mapped_column(ForeignKey("proceso.id"), nullable=False, index=True)
    tipo_medida_cautelar_id: Mapped[int] = mapped_column(ForeignKey("tipo_medida_cautelar.id"), nullable=False)
    fecha_medida_cautelar: Mapped[date] = mapped_column(nullable=False)
    revocada: Mapped[bool] = mapped_column(default=False, nullable=False)
    fecha_revocacion: Mapped[date | None] = mapped_column(nullable=True)
    observaciones: Mapped[str] = mapped_column(db.String(500), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    proceso = relationship("Proceso", back_populates="medidas")
    tipo = relationship("TipoMedidaCautelar")


class ContadorCarpeta(db.Model):
    # Ultimo numero entregado por tipo de carpeta y año
    __tablename__ = "contador_carpeta"

    tipo: Mapped[FolderKind] = mapped_column(SAEnum(FolderKind, name="folder_kind"), primary_key=True)
    anio: Mapped[int] = mapped_column(primary_key=True)
    ultimo: Mapped[int] = mapped_column(nullable=False, default=0)


FOLDER_MODELS: dict[FolderKind, type] = {
    FolderKind.CJ: CJ,
    FolderKind.CJO: CJO,
    FolderKind.CEMCI: CEMCI,
    FolderKind.CEMS: CEMS,
}

STATUS_PROCESO_SEED = ("Post-Sancion", "Activa", "Concluida", "Archivo", "Reparacion del daño")

ESTADO_PROCESAL_SEED = (
    "Interno",
    "Externo",
    "Interno compurgado",
    "Externo compurgado",
    "Amparado",
    "Sustraido",
    "Suspendido",
    "Declinado",
    "Concluido",
    "Cambio de medida cautelar",
)

TIPO_MEDIDA_CAUTELAR_SEED: tuple[tuple[str, bool], ...] = (
    ("Firma periódica", False),
    ("Prohibición de salir del país o localidad", False),
    ("Someterse al cuidado o vigilancia", False),
    ("Prohibición de acercarse a ciertos lugares", False),
    ("Prohibición de comunicarse con las víctimas, ofendidos o testigos", False),
    ("Separación inmediata del domicilio", False),
    ("Colocación de localizadores electrónicos", False),
    ("Garantía económica", False),
    ("Resguardo en su domicilio", False),
    ("Libertad bajo simple promesa", False),
    ("Internamiento preventivo", True),
)


def seed_catalogs(session) -> None:
    session.add_all([StatusProceso(nombre=nombre) for nombre in STATUS_PROCESO_SEED])
    session.add_all([EstadoProcesal(nombre=nombre) for nombre in ESTADO_PROCESAL_SEED])
    session.add_all(
        [TipoMedidaCautelar(nombre=nombre, genera_cemci=genera) for nombre, genera in TIPO_MEDIDA_CAUTELAR_SEED]
    )
    session.flush()


def seed_demo_data(session) -> None:
    seed_catalogs(session)

    session.add_all(
        [
            User(
                email="admin@juzgado.local",
                full_name="Administrador",
                password_hash=generate_password_hash("admin123"),
                role=UserRole.ADMIN,
            ),
            User(
                email="juzgado@juzgado.local",
                full_name="Juzgado de Control",
                password_hash=generate_password_hash("juzgado123"),
                role=UserRole.JUZGADO,
            ),
            User(
                email="ejecucion@juzgado.local",
                full_name="Juzgado de Ejecucion",
                password_hash=generate_password_hash("ejecucion123"),
                role=UserRole.JUZGADO_EJECUCION,
            ),
            User(
                email="consulta@juzgado.local",
                full_name="Defensa Publica",
                password_hash=generate_password_hash("consulta123"),
                role=UserRole.CONSULTA,
            ),
        ]
    )

    session.add_all(
        [
            Adolescente(nombre="Juan Perez Lopez", iniciales="JPL", sexo="Hombre", fecha_nacimiento=date(2009, 3, 14)),
            Adolescente(nombre="Maria Gomez Ruiz", iniciales="MGR", sexo="Mujer", fecha_nacimiento=date(2008, 11, 2)),
            Adolescente(nombre="Luis Hernandez Diaz", iniciales="LHD", sexo="Hombre", fecha_nacimiento=date(2010, 6, 25)),
        ]
    )
    session.add(Domicilio(municipio="Centro", calle_numero="Av. Juarez 120", colonia="Centro"))
    session.commit()
