import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from unittest.mock import MagicMock
from citasmedicas import create_app

TEST_CONFIG = {
    "TESTING": True,
    # Hash rápido para las pruebas
    "PASSWORD_HASH_METHOD": "pbkdf2:sha256:1000",
}


@pytest.fixture
def store():
    """Almacén simulado que se inyecta en la aplicación."""
    return MagicMock()


@pytest.fixture
def tx(store):
    """Transacción que devuelve ``store.transaction()`` al entrar."""
    return store.transaction.return_value.__enter__.return_value


@pytest.fixture
def app(store):
    return create_app(TEST_CONFIG, store=store)


@pytest.fixture
def client(app):
    """Crea un cliente de pruebas de Flask."""
    with app.test_client() as client:
        yield client


@pytest.fixture
def client_estricto(store):
    """Cliente con la política de estados estricta."""
    app = create_app(dict(TEST_CONFIG, CITAS_POLITICA_ESTADOS="estricta"), store=store)
    with app.test_client() as client:
        yield client
