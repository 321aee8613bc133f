from datetime import date, datetime, time
from decimal import Decimal

import pytest
from unittest.mock import MagicMock, patch
from werkzeug.security import check_password_hash

from citasmedicas import create_app
from citasmedicas.errors import ConflictError, ValidationError
from citasmedicas.estados import (
    EstadoCita,
    PoliticaEstados,
    TransicionInvalida,
    transicionar,
    verificar_editable,
)
from citasmedicas.formato import (
    enmascarar_tarjeta,
    formatear_fecha,
    formatear_fecha_local,
    formatear_hora,
    formatear_monto,
)
from citasmedicas.usuarios import hash_password
from citasmedicas import validacion
from citasmedicas.__main__ import main
from citasmedicas.db import STORE_EXTENSION


# ==========================================
# TESTS DEL CICLO DE VIDA DE LA CITA
# ==========================================

def test_estado_desde_columna():
    assert EstadoCita.desde_columna(None) is EstadoCita.PENDIENTE
    assert EstadoCita.desde_columna("confirmada") is EstadoCita.CONFIRMADA
    assert EstadoCita.PENDIENTE.a_columna() is None
    assert EstadoCita.FINALIZADA.a_columna() == "finalizada"


def test_estado_desconocido():
    with pytest.raises(ValueError):
        EstadoCita.desde_columna("archivada")


@pytest.mark.parametrize("actual", list(EstadoCita))
@pytest.mark.parametrize(
    "destino", [EstadoCita.CONFIRMADA, EstadoCita.CANCELADA, EstadoCita.FINALIZADA]
)
def test_politica_permisiva_permite_todo(actual, destino):
    assert transicionar(actual, destino, PoliticaEstados.PERMISIVA) is destino


@pytest.mark.parametrize("actual", [EstadoCita.CANCELADA, EstadoCita.FINALIZADA])
@pytest.mark.parametrize(
    "destino", [EstadoCita.CONFIRMADA, EstadoCita.CANCELADA, EstadoCita.FINALIZADA]
)
def test_politica_estricta_estados_terminales(actual, destino):
    with pytest.raises(TransicionInvalida):
        transicionar(actual, destino, PoliticaEstados.ESTRICTA)


def test_politica_estricta_desde_pendiente_y_confirmada():
    estricta = PoliticaEstados.ESTRICTA
    assert transicionar(EstadoCita.PENDIENTE, EstadoCita.CONFIRMADA, estricta) is EstadoCita.CONFIRMADA
    assert transicionar(EstadoCita.CONFIRMADA, EstadoCita.FINALIZADA, estricta) is EstadoCita.FINALIZADA
    assert transicionar(EstadoCita.CONFIRMADA, EstadoCita.CANCELADA, estricta) is EstadoCita.CANCELADA


def test_no_se_vuelve_a_pendiente():
    with pytest.raises(TransicionInvalida):
        transicionar(EstadoCita.CONFIRMADA, EstadoCita.PENDIENTE)


def test_verificar_editable():
    verificar_editable(EstadoCita.FINALIZADA, PoliticaEstados.PERMISIVA)
    verificar_editable(EstadoCita.CONFIRMADA, PoliticaEstados.ESTRICTA)
    with pytest.raises(ConflictError):
        verificar_editable(EstadoCita.FINALIZADA, PoliticaEstados.ESTRICTA)


def test_transicion_invalida_es_409():
    assert TransicionInvalida.status_code == 409


# ==========================================
# TESTS DE VALIDACIÓN
# ==========================================

@pytest.mark.parametrize(
    "correo, valido",
    [
        ("ana@example.com", True),
        ("a.b+c@sub.dominio.mx", True),
        ("ana@example", False),
        ("ana.example.com", False),
        ("ana @example.com", False),
        ("", False),
        (None, False),
    ],
)
def test_correo_valido(correo, valido):
    assert validacion.correo_valido(correo) is valido


def test_entero():
    assert validacion.entero(5, "id") == 5
    assert validacion.entero("12", "id") == 12
    for valor in (True, "12a", 1.5, None, "²", "١٢"):
        with pytest.raises(ValidationError):
            validacion.entero(valor, "id")


def test_entero_opcional():
    assert validacion.entero_opcional(None, "edad") is None
    assert validacion.entero_opcional("", "edad") is None
    assert validacion.entero_opcional(30, "edad") == 30
    with pytest.raises(ValidationError):
        validacion.entero_opcional(-1, "edad")


def test_fecha_y_hora():
    assert validacion.fecha("2024-05-01") == date(2024, 5, 1)
    assert validacion.hora("10:00") == time(10, 0)
    assert validacion.hora("10:00:30") == time(10, 0, 30)
    with pytest.raises(ValidationError):
        validacion.fecha("2024-02-30")
    with pytest.raises(ValidationError):
        validacion.hora("25:00")
    with pytest.raises(ValidationError):
        validacion.fecha(20240501)


def test_monto():
    assert validacion.monto("99.90") == Decimal("99.90")
    assert validacion.monto(0, permitir_cero=True) == Decimal("0")
    for valor in (0, -5, "abc", True, "NaN"):
        with pytest.raises(ValidationError):
            validacion.monto(valor)


def test_requeridos():
    validacion.requeridos({"a": 1, "b": "x"}, ("a", "b"), "faltan")
    with pytest.raises(ValidationError) as excinfo:
        validacion.requeridos({"a": 1, "b": " "}, ("a", "b"), "faltan")
    assert excinfo.value.message == "faltan"


# ==========================================
# TESTS DE FORMATO
# ==========================================

def test_formatos():
    assert formatear_fecha(date(2024, 5, 1)) == "2024-05-01"
    assert formatear_fecha(datetime(2024, 5, 1, 8, 30)) == "2024-05-01T08:30:00"
    assert formatear_fecha(None) is None
    assert formatear_hora(time(9, 5, 59)) == "09:05"
    assert formatear_hora("10:00") == "10:00"
    assert formatear_fecha_local(date(2024, 5, 1)) == "01/05/2024"
    assert formatear_monto(Decimal("10.50")) == 10.5


def test_enmascarar_tarjeta():
    assert enmascarar_tarjeta("4111111111111111") == "************1111"
    assert enmascarar_tarjeta("123") == "123"
    assert enmascarar_tarjeta(None) is None


# ==========================================
# TESTS DE LA APLICACIÓN
# ==========================================

def test_hash_password(app):
    """El hash usa el método configurado y no contiene la contraseña."""
    with app.app_context():
        hashed = hash_password("test123")
    assert hashed.startswith("pbkdf2:sha256:1000$")
    assert "test123" not in hashed
    assert check_password_hash(hashed, "test123")


def test_politica_por_defecto_permisiva(app):
    assert app.config["CITAS_POLITICA_ESTADOS"] is PoliticaEstados.PERMISIVA


def test_politica_desconocida():
    with pytest.raises(ValueError):
        create_app({"CITAS_POLITICA_ESTADOS": "relajada"}, store=MagicMock())


@patch("citasmedicas.__main__.init_db")
@patch("citasmedicas.__main__.create_app")
def test_main_cierra_el_pool_al_terminar(mock_create_app, mock_init_db):
    """Al detener el servidor se cierran las conexiones del pool."""
    store = MagicMock()
    app = mock_create_app.return_value
    app.extensions = {STORE_EXTENSION: store}
    app.config = {"PORT": 3000, "DEBUG": False}
    app.run.side_effect = KeyboardInterrupt

    with pytest.raises(KeyboardInterrupt):
        main()

    mock_init_db.assert_called_once_with(store)
    store.close.assert_called_once()
