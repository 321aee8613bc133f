from flask import Blueprint, current_app, jsonify
from werkzeug.security import check_password_hash, generate_password_hash

from citasmedicas.db import DuplicateKeyError, get_store
from citasmedicas.errors import ConflictError, NotFoundError, ValidationError
from citasmedicas.validacion import (
    correo_valido,
    entero_opcional,
    leer_json,
    requeridos,
    texto,
    texto_opcional,
)

usuarios_bp = Blueprint("usuarios", __name__, url_prefix="/api")

CAMPOS_REGISTRO = ("nombre", "apePaterno", "apeMaterno", "correo", "contrase")

CORREO_DUPLICADO = "El correo electrónico ya está registrado"


def hash_password(password):
    """Genera el hash de la contraseña con el factor de trabajo configurado"""
    return generate_password_hash(
        password, method=current_app.config["PASSWORD_HASH_METHOD"]
    )


def usuario_a_json(row):
    return {
        "id": row["id"],
        "nombre": row["nombre"],
        "apePaterno": row["ape_paterno"],
        "apeMaterno": row["ape_materno"],
        "correo": row["correo"],
    }


@usuarios_bp.route("/register", methods=["POST"])
def registrar_usuario():
    """Registra un nuevo paciente"""
    datos = leer_json()
    requeridos(datos, CAMPOS_REGISTRO, "Todos los campos son requeridos")

    correo = datos["correo"]
    if not correo_valido(correo):
        raise ValidationError("Formato de correo electrónico inválido")

    usuario = {
        "nombre": texto(datos["nombre"], "nombre"),
        "apePaterno": texto(datos["apePaterno"], "apePaterno"),
        "apeMaterno": texto(datos["apeMaterno"], "apeMaterno"),
        "correo": correo,
        "edad": entero_opcional(datos.get("edad"), "edad"),
        "tipoSangre": texto_opcional(datos.get("tipoSangre"), "tipoSangre"),
        "genero": texto_opcional(datos.get("genero"), "genero"),
    }
    contrase = texto(datos["contrase"], "contrase")
    current_app.logger.info("Registro de usuario recibido: %s", correo)

    store = get_store()
    try:
        with store.transaction() as tx:
            if tx.fetch_one("SELECT id FROM usuarios WHERE correo = %s", (correo,)):
                raise ConflictError(CORREO_DUPLICADO)
            id_usuario = tx.insert(
                """
                INSERT INTO usuarios
                    (nombre, ape_paterno, ape_materno, correo, contrase, edad, tipo_sangre, genero)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id
                """,
                (
                    usuario["nombre"],
                    usuario["apePaterno"],
                    usuario["apeMaterno"],
                    correo,
                    hash_password(contrase),
                    usuario["edad"],
                    usuario["tipoSangre"],
                    usuario["genero"],
                ),
            )
    except DuplicateKeyError:
        # Otro registro con el mismo correo ganó la carrera
        raise ConflictError(CORREO_DUPLICADO)

    current_app.logger.info("Usuario registrado: %s", id_usuario)
    return (
        jsonify(
            {
                "message": "Usuario registrado exitosamente",
                "id": id_usuario,
                "usuario": usuario,
            }
        ),
        201,
    )


@usuarios_bp.route("/usuarios", methods=["GET"])
@usuarios_bp.route("/usuarios/<int:id_usuario>", methods=["GET"])
def obtener_usuarios(id_usuario=None):
    """Devuelve todos los usuarios o uno específico"""
    store = get_store()
    if id_usuario is None:
        rows = store.fetch_all(
            "SELECT id, nombre, ape_paterno, ape_materno, correo FROM usuarios ORDER BY id"
        )
        current_app.logger.info("Usuarios obtenidos: %d", len(rows))
        return jsonify([usuario_a_json(row) for row in rows])

    row = store.fetch_one(
        "SELECT id, nombre, ape_paterno, ape_materno, correo FROM usuarios WHERE id = %s",
        (id_usuario,),
    )
    if row is None:
        raise NotFoundError("Usuario no encontrado")
    return jsonify(usuario_a_json(row))


@usuarios_bp.route("/login", methods=["POST"])
def login():
    """Verifica las credenciales de un paciente y registra el intento"""
    datos = leer_json()
    requeridos(datos, ("correo", "contrase"), "Correo y contraseña son requeridos")
    correo = texto(datos["correo"], "correo")
    contrase = texto(datos["contrase"], "contrase")

    with get_store().transaction() as tx:
        usuario = tx.fetch_one(
            "SELECT id, nombre, contrase FROM usuarios WHERE correo = %s", (correo,)
        )
        exitoso = usuario is not None and check_password_hash(
            usuario["contrase"], contrase
        )
        tx.execute(
            "INSERT INTO login_attempts (usuario_id, exitoso) VALUES (%s, %s)",
            (usuario["id"] if usuario else None, exitoso),
        )

    if not exitoso:
        current_app.logger.info("Inicio de sesión fallido para %s", correo)
        return jsonify({"isAuthenticated": False})

    return jsonify(
        {
            "isAuthenticated": True,
            "userId": str(usuario["id"]),
            "userName": usuario["nombre"],
        }
    )
