import os

from dotenv import load_dotenv

# Cargar las variables de entorno desde el archivo .env (si existe)
load_dotenv()


class Config:
    """Configuración por defecto para desarrollo local"""

    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", 5432))
    DB_USER = os.environ.get("DB_USER", "postgres")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "postgres")
    DB_NAME = os.environ.get("DB_NAME", "citasmedicas")

    # Capacidad fija del pool; las peticiones extra esperan turno
    DB_POOL_MIN = int(os.environ.get("DB_POOL_MIN", 1))
    DB_POOL_MAX = int(os.environ.get("DB_POOL_MAX", 10))

    PORT = int(os.environ.get("PORT", 3000))
    DEBUG = os.environ.get("DEBUG", "0").lower() in {"1", "true", "yes"}
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # "permisiva" o "estricta"
    CITAS_POLITICA_ESTADOS = os.environ.get("CITAS_POLITICA_ESTADOS", "permisiva")

    PASSWORD_HASH_METHOD = os.environ.get(
        "PASSWORD_HASH_METHOD", "pbkdf2:sha256:600000"
    )
