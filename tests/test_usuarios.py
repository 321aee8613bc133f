import pytest
from werkzeug.security import check_password_hash, generate_password_hash

from citasmedicas.db import DuplicateKeyError, StoreError

REGISTRO = {
    "nombre": "Ana",
    "apePaterno": "López",
    "apeMaterno": "Ruiz",
    "correo": "ana@example.com",
    "contrase": "secreta123",
}


# ==========================================
# TESTS DE REGISTRO
# ==========================================

def test_registro_exitoso(client, tx):
    """Registra un usuario y guarda la contraseña hasheada."""
    tx.fetch_one.return_value = None
    tx.insert.return_value = 5

    datos = dict(REGISTRO, edad=30, tipoSangre="O+", genero="F")
    response = client.post("/api/register", json=datos)

    assert response.status_code == 201
    body = response.get_json()
    assert body["message"] == "Usuario registrado exitosamente"
    assert body["id"] == 5
    assert body["usuario"]["correo"] == "ana@example.com"
    assert body["usuario"]["tipoSangre"] == "O+"
    assert "contrase" not in body["usuario"]

    params = tx.insert.call_args[0][1]
    assert params[3] == "ana@example.com"
    assert params[4] != "secreta123"
    assert check_password_hash(params[4], "secreta123")
    assert params[5:] == (30, "O+", "F")


def test_registro_campos_opcionales_nulos(client, tx):
    """Sin edad, tipo de sangre ni género se insertan como NULL."""
    tx.fetch_one.return_value = None
    tx.insert.return_value = 6

    response = client.post("/api/register", json=REGISTRO)

    assert response.status_code == 201
    assert tx.insert.call_args[0][1][5:] == (None, None, None)


def test_registro_correo_duplicado(client, tx):
    """Un correo ya registrado devuelve 409 y no inserta."""
    tx.fetch_one.return_value = {"id": 1}

    response = client.post("/api/register", json=dict(REGISTRO, nombre="Otra"))

    assert response.status_code == 409
    assert response.get_json() == {"error": "El correo electrónico ya está registrado"}
    tx.insert.assert_not_called()


def test_registro_duplicado_concurrente(client, tx):
    """Si la restricción UNIQUE salta en el INSERT también es 409."""
    tx.fetch_one.return_value = None
    tx.insert.side_effect = DuplicateKeyError("duplicate key value")

    response = client.post("/api/register", json=REGISTRO)

    assert response.status_code == 409


@pytest.mark.parametrize(
    "campo", ["nombre", "apePaterno", "apeMaterno", "correo", "contrase"]
)
def test_registro_campo_faltante(client, store, campo):
    datos = dict(REGISTRO)
    del datos[campo]

    response = client.post("/api/register", json=datos)

    assert response.status_code == 400
    assert response.get_json() == {"error": "Todos los campos son requeridos"}
    store.transaction.assert_not_called()


def test_registro_campo_vacio(client, store):
    response = client.post("/api/register", json=dict(REGISTRO, nombre="   "))

    assert response.status_code == 400
    store.transaction.assert_not_called()


@pytest.mark.parametrize(
    "correo", ["sin-arroba.com", "ana@dominio", "ana @example.com", "@example.com"]
)
def test_registro_correo_invalido(client, store, correo):
    response = client.post("/api/register", json=dict(REGISTRO, correo=correo))

    assert response.status_code == 400
    assert response.get_json() == {"error": "Formato de correo electrónico inválido"}
    store.transaction.assert_not_called()


def test_registro_edad_invalida(client, store):
    response = client.post("/api/register", json=dict(REGISTRO, edad="treinta"))

    assert response.status_code == 400
    store.transaction.assert_not_called()


def test_registro_sin_json(client, store):
    response = client.post("/api/register", data="nombre=Ana")

    assert response.status_code == 400
    store.transaction.assert_not_called()


# ==========================================
# TESTS DE CONSULTA DE USUARIOS
# ==========================================

def test_obtener_usuarios(client, store):
    store.fetch_all.return_value = [
        {"id": 1, "nombre": "Ana", "ape_paterno": "López", "ape_materno": "Ruiz", "correo": "ana@example.com"},
        {"id": 2, "nombre": "Luis", "ape_paterno": "Pérez", "ape_materno": "Gómez", "correo": "luis@example.com"},
    ]

    response = client.get("/api/usuarios")

    assert response.status_code == 200
    usuarios = response.get_json()
    assert [u["id"] for u in usuarios] == [1, 2]
    assert usuarios[0]["apePaterno"] == "López"


def test_obtener_usuario_por_id(client, store):
    store.fetch_one.return_value = {
        "id": 1, "nombre": "Ana", "ape_paterno": "López", "ape_materno": "Ruiz", "correo": "ana@example.com"
    }

    response = client.get("/api/usuarios/1")

    assert response.status_code == 200
    assert response.get_json()["correo"] == "ana@example.com"
    assert store.fetch_one.call_args[0][1] == (1,)


def test_obtener_usuario_inexistente(client, store):
    store.fetch_one.return_value = None

    response = client.get("/api/usuarios/999")

    assert response.status_code == 404
    assert response.get_json() == {"error": "Usuario no encontrado"}


# ==========================================
# TESTS DE LOGIN
# ==========================================

def _usuario(contrase="secreta123"):
    return {
        "id": 7,
        "nombre": "Ana",
        "contrase": generate_password_hash(contrase, method="pbkdf2:sha256:1000"),
    }


def test_login_exitoso(client, tx):
    tx.fetch_one.return_value = _usuario()

    response = client.post(
        "/api/login", json={"correo": "ana@example.com", "contrase": "secreta123"}
    )

    assert response.status_code == 200
    assert response.get_json() == {
        "isAuthenticated": True,
        "userId": "7",
        "userName": "Ana",
    }
    tx.execute.assert_called_once()
    assert tx.execute.call_args[0][1] == (7, True)


def test_login_contrasena_incorrecta(client, tx):
    tx.fetch_one.return_value = _usuario()

    response = client.post(
        "/api/login", json={"correo": "ana@example.com", "contrase": "otra"}
    )

    assert response.get_json() == {"isAuthenticated": False}
    tx.execute.assert_called_once()
    assert tx.execute.call_args[0][1] == (7, False)


def test_login_correo_desconocido(client, tx):
    """El intento se registra con usuario NULL y la respuesta es la misma."""
    tx.fetch_one.return_value = None

    response = client.post(
        "/api/login", json={"correo": "nadie@example.com", "contrase": "otra"}
    )

    assert response.get_json() == {"isAuthenticated": False}
    tx.execute.assert_called_once()
    sql, params = tx.execute.call_args[0]
    assert "login_attempts" in sql
    assert params == (None, False)


def test_login_campos_vacios(client, store):
    response = client.post("/api/login", json={"correo": "", "contrase": ""})

    assert response.status_code == 400
    store.transaction.assert_not_called()


def test_login_error_base_datos(client, store):
    """Un fallo del almacén es un 500 genérico sin detalles internos."""
    store.transaction.return_value.__enter__.side_effect = StoreError(
        "could not connect to server at 10.0.0.5"
    )

    response = client.post(
        "/api/login", json={"correo": "ana@example.com", "contrase": "secreta123"}
    )

    assert response.status_code == 500
    assert response.get_json() == {"error": "Error interno del servidor"}
    assert b"10.0.0.5" not in response.data
