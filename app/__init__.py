from __future__ import annotations

import logging
from datetime import date

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from app.carpetas import carpetas_bp
from app.core.auth import auth_bp
from app.core.config import Config
from app.core.errors import CarpetaError
from app.core.extensions import db, login_manager, migrate
from app.core.models import FolderKind, User, seed_demo_data

logger = logging.getLogger(__name__)


def create_app(config_object: type[Config] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.json.sort_keys = False
    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(carpetas_bp)

    register_cli(app)
    register_error_handlers(app)
    return app


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(CarpetaError)
    def carpeta_error(error: CarpetaError):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({"success": False, "error": error.name, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def unexpected_error(error: Exception):
        logger.exception("Unhandled error", exc_info=error)
        return jsonify({"success": False, "error": "internal", "message": "Error interno del servidor"}), 500


def register_cli(app: Flask) -> None:
    @app.cli.command("seed-demo")
    @click.option("--reset", is_flag=True, help="Delete existing data before seed.")
    def seed_demo(reset: bool) -> None:
        """Seed catalogs, demo users and adolescents."""
        if reset:
            db.drop_all()
            db.create_all()
        if not User.query.first():
            seed_demo_data(db.session)
            click.echo("Demo data seeded.")
        else:
            click.echo("Seed skipped: existing users found.")

    @app.cli.command("carpetas-next-number")
    @click.option(
        "--kind",
        type=click.Choice([kind.value for kind in FolderKind]),
        required=True,
        help="Folder kind.",
    )
    @click.option("--year", type=int, default=None, help="Year, defaults to the current one.")
    def carpetas_next_number(kind: str, year: int | None) -> None:
        """Show the next folder number without reserving it."""
        from app.carpetas.numbering import format_folder_number, max_stored_sequence
        from app.core.models import ContadorCarpeta

        folder_kind = FolderKind(kind)
        year = year or date.today().year
        counter = ContadorCarpeta.query.filter_by(tipo=folder_kind, anio=year).first()
        last = max(counter.ultimo if counter else 0, max_stored_sequence(folder_kind, year))
        click.echo(format_folder_number(folder_kind, last + 1, year))

    @app.cli.command("carpetas-check")
    def carpetas_check() -> None:
        """Verify the folder bridge invariants for every case."""
        from app.carpetas.services import bridge_invariant_violations

        problems = bridge_invariant_violations()
        for problem in problems:
            click.echo(problem)
        if problems:
            raise click.ClickException(f"{len(problems)} inconsistencias encontradas")
        click.echo("Relaciones de carpetas consistentes.")


@login_manager.user_loader
def load_user(user_id: str) -> User | None:
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"success": False, "error": "unauthorized", "message": "Autenticacion requerida"}), 401
