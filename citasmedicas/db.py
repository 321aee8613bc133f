import logging
import threading
from contextlib import contextmanager

import psycopg2
from flask import current_app
from psycopg2 import errors as pg_errors
from psycopg2 import pool as pg_pool
from psycopg2.extras import RealDictCursor

from citasmedicas.errors import InternalError, ValidationError

logger = logging.getLogger(__name__)

STORE_EXTENSION = "citasmedicas.store"

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS usuarios (
        id SERIAL PRIMARY KEY,
        nombre VARCHAR(100) NOT NULL,
        ape_paterno VARCHAR(100) NOT NULL,
        ape_materno VARCHAR(100) NOT NULL,
        correo VARCHAR(255) UNIQUE NOT NULL,
        contrase VARCHAR(255) NOT NULL,
        edad INTEGER,
        tipo_sangre VARCHAR(5),
        genero VARCHAR(20)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS medicos (
        id SERIAL PRIMARY KEY,
        nombre VARCHAR(100) NOT NULL,
        apellido VARCHAR(100) NOT NULL,
        especialidad VARCHAR(100),
        hospital VARCHAR(255),
        telefono VARCHAR(50),
        correo VARCHAR(255) UNIQUE NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS citas (
        id_cita SERIAL PRIMARY KEY,
        id_medico INT REFERENCES medicos(id),
        id_paciente INT REFERENCES usuarios(id),
        nombre_paciente VARCHAR(255) NOT NULL,
        descripcion TEXT,
        fecha DATE NOT NULL,
        hora TIME NOT NULL,
        estado VARCHAR(20)
            CHECK (estado IN ('confirmada', 'cancelada', 'finalizada'))
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS historial_medico (
        id SERIAL PRIMARY KEY,
        id_paciente INT REFERENCES usuarios(id),
        id_medico INT REFERENCES medicos(id),
        id_cita INT REFERENCES citas(id_cita) ON DELETE SET NULL,
        fecha TIMESTAMP NOT NULL DEFAULT NOW(),
        diagnostico TEXT,
        tratamiento TEXT,
        observaciones TEXT,
        edad_paciente INTEGER,
        tipo_sangre_paciente VARCHAR(5)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS hospital (
        id_hospital SERIAL PRIMARY KEY,
        nombre_hospital VARCHAR(255) NOT NULL,
        direccion VARCHAR(255) NOT NULL,
        estado VARCHAR(100) NOT NULL,
        municipio VARCHAR(100) NOT NULL,
        num_sucursal VARCHAR(50) NOT NULL,
        telefono VARCHAR(50) NOT NULL,
        nom_repres_hospital VARCHAR(255) NOT NULL,
        rfc_hospital VARCHAR(20) NOT NULL,
        monto NUMERIC(12, 2) NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS pagos (
        id_pago SERIAL PRIMARY KEY,
        numero_tarjeta VARCHAR(25) NOT NULL,
        nombre_titular VARCHAR(255) NOT NULL,
        fecha_expiracion VARCHAR(10) NOT NULL,
        codigo_seguridad VARCHAR(4) NOT NULL,
        monto NUMERIC(12, 2) NOT NULL,
        fecha_pago TIMESTAMP WITH TIME ZONE NOT NULL,
        id_hospital INT
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS login_attempts (
        id SERIAL PRIMARY KEY,
        usuario_id INT REFERENCES usuarios(id),
        exitoso BOOLEAN NOT NULL,
        fecha TIMESTAMP NOT NULL DEFAULT NOW()
    );
    """,
)


class StoreError(InternalError):
    """Fallo del almacén de datos (conexión o consulta)"""


class DuplicateKeyError(StoreError):
    """Violación de una restricción UNIQUE"""


class ForeignKeyError(StoreError):
    """Violación de una llave foránea"""


class InvalidValueError(ValidationError):
    """Un valor no cabe en su columna (longitud o rango numérico)"""

    message = "Un valor excede la longitud o el rango permitido"


class Transaction:
    """Cursor de una transacción abierta con consultas parametrizadas"""

    def __init__(self, cursor):
        self.cursor = cursor

    def fetch_one(self, sql, params=()):
        self.cursor.execute(sql, params)
        return self.cursor.fetchone()

    def fetch_all(self, sql, params=()):
        self.cursor.execute(sql, params)
        return self.cursor.fetchall()

    def execute(self, sql, params=()):
        """Ejecuta una sentencia y devuelve el número de filas afectadas"""
        self.cursor.execute(sql, params)
        return self.cursor.rowcount

    def insert(self, sql, params=()):
        """Ejecuta un INSERT ... RETURNING y devuelve el id generado"""
        self.cursor.execute(sql, params)
        row = self.cursor.fetchone()
        return next(iter(row.values()))


class Store:
    """Acceso a PostgreSQL a través de un pool de conexiones acotado.

    Cuando todas las conexiones están ocupadas, las nuevas peticiones
    esperan en el semáforo en lugar de fallar.
    """

    def __init__(self, connection_pool, max_connections):
        self._pool = connection_pool
        self._slots = threading.BoundedSemaphore(max_connections)

    @classmethod
    def from_config(cls, config):
        """Crea el pool a partir de la configuración de la aplicación"""
        try:
            connection_pool = pg_pool.ThreadedConnectionPool(
                config["DB_POOL_MIN"],
                config["DB_POOL_MAX"],
                host=config["DB_HOST"],
                port=config["DB_PORT"],
                user=config["DB_USER"],
                password=config["DB_PASSWORD"],
                dbname=config["DB_NAME"],
            )
        except psycopg2.Error as e:
            logger.error("No se pudo crear el pool de conexiones: %s", e)
            raise StoreError("No se pudo conectar a la base de datos") from e
        logger.info(
            "Pool de conexiones listo (%s@%s/%s, max=%s)",
            config["DB_USER"],
            config["DB_HOST"],
            config["DB_NAME"],
            config["DB_POOL_MAX"],
        )
        return cls(connection_pool, config["DB_POOL_MAX"])

    @contextmanager
    def connection(self):
        with self._slots:
            conn = self._pool.getconn()
            try:
                yield conn
            finally:
                self._pool.putconn(conn, close=bool(conn.closed))

    @contextmanager
    def transaction(self):
        """Abre una transacción: commit al salir, rollback ante cualquier error"""
        try:
            with self.connection() as conn:
                try:
                    with conn.cursor(cursor_factory=RealDictCursor) as cursor:
                        yield Transaction(cursor)
                    conn.commit()
                except BaseException:
                    conn.rollback()
                    raise
        except pg_errors.UniqueViolation as e:
            raise DuplicateKeyError(str(e)) from e
        except pg_errors.ForeignKeyViolation as e:
            raise ForeignKeyError(str(e)) from e
        except psycopg2.DataError as e:
            logger.warning("Valor rechazado por la base de datos: %s", e.pgcode)
            raise InvalidValueError() from e
        except psycopg2.Error as e:
            logger.error("Error en la base de datos: %s", e)
            raise StoreError(str(e)) from e

    def fetch_one(self, sql, params=()):
        with self.transaction() as tx:
            return tx.fetch_one(sql, params)

    def fetch_all(self, sql, params=()):
        with self.transaction() as tx:
            return tx.fetch_all(sql, params)

    def execute(self, sql, params=()):
        with self.transaction() as tx:
            return tx.execute(sql, params)

    def insert(self, sql, params=()):
        with self.transaction() as tx:
            return tx.insert(sql, params)

    def close(self):
        self._pool.closeall()


def get_store():
    """Devuelve el almacén inyectado en la aplicación actual"""
    return current_app.extensions[STORE_EXTENSION]


def init_db(store):
    """Crea las tablas si no existen"""
    with store.transaction() as tx:
        for statement in SCHEMA:
            tx.execute(statement)
    logger.info("Esquema inicializado (%d tablas)", len(SCHEMA))
