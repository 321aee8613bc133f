from flask import Flask
from werkzeug.routing import IntegerConverter

from citasmedicas.config import Config
from citasmedicas.db import STORE_EXTENSION, Store, init_db
from citasmedicas.errors import register_error_handlers
from citasmedicas.estados import PoliticaEstados

# Las llaves primarias son columnas SERIAL (INTEGER de 32 bits)
MAX_ID = 2**31 - 1


class IdConverter(IntegerConverter):
    """Convertidor ``int`` acotado al rango de INTEGER: un id mayor no existe"""

    def __init__(self, map, *args, **kwargs):
        kwargs.setdefault("max", MAX_ID)
        super().__init__(map, *args, **kwargs)


def create_app(config=None, store=None):
    """Crea la aplicación con su almacén de datos.

    ``config`` es un diccionario que sobrescribe los valores de ``Config``.
    ``store`` permite inyectar un almacén ya construido (por ejemplo en
    pruebas); si no se indica se crea el pool de PostgreSQL.
    """
    app = Flask(__name__)
    app.url_map.converters["int"] = IdConverter
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    try:
        app.config["CITAS_POLITICA_ESTADOS"] = PoliticaEstados(
            app.config["CITAS_POLITICA_ESTADOS"]
        )
    except ValueError:
        raise ValueError(
            "CITAS_POLITICA_ESTADOS debe ser 'permisiva' o 'estricta', no "
            f"{app.config['CITAS_POLITICA_ESTADOS']!r}"
        )

    app.logger.setLevel(app.config["LOG_LEVEL"])

    if store is None:
        store = Store.from_config(app.config)
    app.extensions[STORE_EXTENSION] = store

    register_error_handlers(app)

    # Registrar blueprints
    from citasmedicas.citas import citas_bp
    from citasmedicas.historial import historial_bp
    from citasmedicas.hospital import hospital_bp
    from citasmedicas.medicos import medicos_bp
    from citasmedicas.pagos import pagos_bp
    from citasmedicas.usuarios import usuarios_bp

    app.register_blueprint(usuarios_bp)
    app.register_blueprint(medicos_bp)
    app.register_blueprint(citas_bp)
    app.register_blueprint(historial_bp)
    app.register_blueprint(pagos_bp)
    app.register_blueprint(hospital_bp)

    @app.cli.command("init-db")
    def init_db_command():
        """Crea las tablas si no existen."""
        init_db(app.extensions[STORE_EXTENSION])
        print("Base de datos inicializada")

    return app
