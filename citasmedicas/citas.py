from flask import Blueprint, current_app, jsonify

from citasmedicas.db import ForeignKeyError, get_store
from citasmedicas.errors import NotFoundError, ValidationError
from citasmedicas.estados import EstadoCita, transicionar, verificar_editable
from citasmedicas.formato import formatear_fecha, formatear_hora
from citasmedicas.validacion import (
    entero,
    fecha,
    hora,
    leer_json,
    requeridos,
    texto,
    texto_opcional,
)

citas_bp = Blueprint("citas", __name__, url_prefix="/api")

CITA_NO_ENCONTRADA = "Cita no encontrada"

SELECT_CITA_CON_MEDICO = """
    SELECT c.id_cita, c.id_medico, c.id_paciente, c.nombre_paciente, c.descripcion,
           c.fecha, c.hora, c.estado,
           m.nombre AS nombre_medico, m.especialidad, m.hospital,
           m.telefono AS telefono_medico, m.correo AS correo_medico
    FROM citas c
    LEFT JOIN medicos m ON c.id_medico = m.id
"""


def politica():
    return current_app.config["CITAS_POLITICA_ESTADOS"]


def cita_a_json(row):
    cita = {
        "idCita": row["id_cita"],
        "IdMedico": row["id_medico"],
        "idPaciente": row["id_paciente"],
        "nombrePaciente": row["nombre_paciente"],
        "descripcion": row["descripcion"],
        "fecha": formatear_fecha(row["fecha"]),
        "hora": formatear_hora(row["hora"]),
        "estado": row["estado"],
    }
    if "nombre_medico" in row:
        cita.update(
            {
                "nombreMedico": row["nombre_medico"],
                "especialidad": row["especialidad"],
                "hospital": row["hospital"],
                "telefonoMedico": row["telefono_medico"],
                "correoMedico": row["correo_medico"],
            }
        )
    return cita


def leer_campos_cita(datos):
    """Valida los campos editables de una cita"""
    requeridos(
        datos,
        ("nombrePaciente", "fecha", "hora"),
        "Fecha, hora y nombre del paciente son requeridos",
    )
    # Algunos clientes envían "motivo" en lugar de "descripcion"
    descripcion = datos.get("descripcion", datos.get("motivo"))
    return {
        "nombre_paciente": texto(datos["nombrePaciente"], "nombrePaciente"),
        "descripcion": texto_opcional(descripcion, "descripcion"),
        "fecha": fecha(datos["fecha"]),
        "hora": hora(datos["hora"]),
    }


def bloquear_cita(tx, id_cita):
    """Lee la cita con bloqueo de fila; NotFoundError si no existe"""
    cita = tx.fetch_one(
        "SELECT id_cita, estado FROM citas WHERE id_cita = %s FOR UPDATE",
        (id_cita,),
    )
    if cita is None:
        raise NotFoundError(CITA_NO_ENCONTRADA)
    return cita


def actualizar_estado(tx, id_cita, estado):
    filas = tx.execute(
        "UPDATE citas SET estado = %s WHERE id_cita = %s",
        (estado.a_columna(), id_cita),
    )
    if filas == 0:
        raise NotFoundError(CITA_NO_ENCONTRADA)


def cambiar_estado(id_cita, destino):
    with get_store().transaction() as tx:
        cita = bloquear_cita(tx, id_cita)
        actual = EstadoCita.desde_columna(cita["estado"])
        nuevo = transicionar(actual, destino, politica())
        actualizar_estado(tx, id_cita, nuevo)
    current_app.logger.info(
        "Cita %s: %s -> %s", id_cita, actual.value, nuevo.value
    )


@citas_bp.route("/citas", methods=["POST"])
def registrar_cita():
    """Registra una nueva cita (sin estado: pendiente)"""
    datos = leer_json()
    requeridos(datos, ("IdMedico", "idPaciente"), "Médico y paciente son requeridos")
    id_medico = entero(datos["IdMedico"], "IdMedico")
    id_paciente = entero(datos["idPaciente"], "idPaciente")
    campos = leer_campos_cita(datos)

    try:
        id_cita = get_store().insert(
            """
            INSERT INTO citas (id_medico, id_paciente, nombre_paciente, descripcion, fecha, hora)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING id_cita
            """,
            (
                id_medico,
                id_paciente,
                campos["nombre_paciente"],
                campos["descripcion"],
                campos["fecha"],
                campos["hora"],
            ),
        )
    except ForeignKeyError:
        raise ValidationError("El médico o el paciente no existen")

    current_app.logger.info("Cita registrada: %s", id_cita)
    return jsonify({"message": "Cita registrada exitosamente", "id": id_cita}), 201


@citas_bp.route("/citas/<int:id_paciente>", methods=["GET"])
def citas_paciente(id_paciente):
    """Citas de un paciente, de la más reciente a la más antigua"""
    rows = get_store().fetch_all(
        SELECT_CITA_CON_MEDICO
        + """
        WHERE c.id_paciente = %s
        ORDER BY c.fecha DESC, c.hora DESC
        """,
        (id_paciente,),
    )
    current_app.logger.info("Citas encontradas para %s: %d", id_paciente, len(rows))
    return jsonify([cita_a_json(row) for row in rows])


@citas_bp.route("/citas/idcita/<int:id_cita>", methods=["GET"])
def obtener_cita(id_cita):
    row = get_store().fetch_one(
        SELECT_CITA_CON_MEDICO + " WHERE c.id_cita = %s", (id_cita,)
    )
    if row is None:
        raise NotFoundError(CITA_NO_ENCONTRADA)
    return jsonify(cita_a_json(row))


@citas_bp.route("/citas/<int:id_cita>", methods=["PUT"])
def modificar_cita(id_cita):
    """Reescribe fecha, hora, nombre del paciente y descripción"""
    campos = leer_campos_cita(leer_json())

    with get_store().transaction() as tx:
        cita = bloquear_cita(tx, id_cita)
        verificar_editable(EstadoCita.desde_columna(cita["estado"]), politica())
        filas = tx.execute(
            """
            UPDATE citas
            SET fecha = %s, hora = %s, nombre_paciente = %s, descripcion = %s
            WHERE id_cita = %s
            """,
            (
                campos["fecha"],
                campos["hora"],
                campos["nombre_paciente"],
                campos["descripcion"],
                id_cita,
            ),
        )
        if filas == 0:
            raise NotFoundError(CITA_NO_ENCONTRADA)

    current_app.logger.info("Cita actualizada: %s", id_cita)
    return jsonify({"message": "Cita actualizada exitosamente"})


@citas_bp.route("/citas/<int:id_cita>", methods=["DELETE"])
def eliminar_cita(id_cita):
    filas = get_store().execute("DELETE FROM citas WHERE id_cita = %s", (id_cita,))
    if filas == 0:
        raise NotFoundError(CITA_NO_ENCONTRADA)
    current_app.logger.info("Cita eliminada: %s", id_cita)
    return jsonify({"message": "Cita eliminada exitosamente"})


@citas_bp.route("/citas/<int:id_cita>/confirmar", methods=["PUT"])
def confirmar_cita(id_cita):
    cambiar_estado(id_cita, EstadoCita.CONFIRMADA)
    return jsonify({"message": "Cita confirmada exitosamente"})


@citas_bp.route("/citas/<int:id_cita>/cancelar", methods=["PUT"])
def cancelar_cita(id_cita):
    """Marca la cita como cancelada sin borrarla"""
    cambiar_estado(id_cita, EstadoCita.CANCELADA)
    return jsonify({"message": "Cita cancelada exitosamente"})


@citas_bp.route("/citas/<int:id_cita>/finalizar", methods=["POST"])
def finalizar_cita(id_cita):
    """Finaliza la cita y registra su historial médico.

    La actualización del estado y el alta del historial van en la misma
    transacción: o se guardan ambas o ninguna. El historial toma una copia
    de la edad y el tipo de sangre del paciente en ese momento.
    """
    datos = leer_json(requerido=False)
    diagnostico = texto_opcional(datos.get("diagnostico"), "diagnostico")
    tratamiento = texto_opcional(datos.get("tratamiento"), "tratamiento")
    observaciones = texto_opcional(datos.get("observaciones"), "observaciones")

    with get_store().transaction() as tx:
        cita = tx.fetch_one(
            """
            SELECT c.id_cita, c.id_paciente, c.id_medico, c.estado,
                   u.edad, u.tipo_sangre
            FROM citas c
            LEFT JOIN usuarios u ON c.id_paciente = u.id
            WHERE c.id_cita = %s
            FOR UPDATE OF c
            """,
            (id_cita,),
        )
        if cita is None:
            raise NotFoundError(CITA_NO_ENCONTRADA)

        actual = EstadoCita.desde_columna(cita["estado"])
        nuevo = transicionar(actual, EstadoCita.FINALIZADA, politica())
        actualizar_estado(tx, id_cita, nuevo)

        id_historial = tx.insert(
            """
            INSERT INTO historial_medico
                (id_paciente, id_medico, id_cita, fecha, diagnostico, tratamiento,
                 observaciones, edad_paciente, tipo_sangre_paciente)
            VALUES (%s, %s, %s, NOW(), %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (
                cita["id_paciente"],
                cita["id_medico"],
                id_cita,
                diagnostico,
                tratamiento,
                observaciones,
                cita["edad"],
                cita["tipo_sangre"],
            ),
        )

    current_app.logger.info("Cita %s finalizada, historial %s", id_cita, id_historial)
    return jsonify(
        {
            "message": "Cita finalizada y historial médico registrado",
            "idHistorial": id_historial,
        }
    )
