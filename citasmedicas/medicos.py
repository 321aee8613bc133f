from flask import Blueprint, current_app, jsonify

from citasmedicas.db import get_store
from citasmedicas.formato import formatear_fecha, formatear_fecha_local, formatear_hora
from citasmedicas.validacion import entero, leer_json, requeridos, texto

medicos_bp = Blueprint("medicos", __name__, url_prefix="/api")


@medicos_bp.route("/medico-login", methods=["POST"])
def medico_login():
    """Inicio de sesión de médicos.

    Solo comprueba que exista un médico con ese correo e id; no hay
    ningún secreto de por medio, así que no es una autenticación real.
    """
    datos = leer_json()
    requeridos(datos, ("correo", "id"), "Correo e id son requeridos")
    correo = texto(datos["correo"], "correo")
    id_medico = entero(datos["id"], "id")

    medico = get_store().fetch_one(
        """
        SELECT id, nombre, apellido, especialidad, hospital
        FROM medicos
        WHERE correo = %s AND id = %s
        """,
        (correo, id_medico),
    )
    if medico is None:
        return jsonify({"isAuthenticated": False})

    return jsonify(
        {
            "isAuthenticated": True,
            "medicoId": medico["id"],
            "medicoNombre": medico["nombre"],
            "medicoApellido": medico["apellido"],
            "especialidad": medico["especialidad"],
            "hospital": medico["hospital"],
        }
    )


@medicos_bp.route("/citas-medico/<int:id_medico>", methods=["GET"])
def citas_medico(id_medico):
    """Agenda del médico con los datos de cada paciente"""
    rows = get_store().fetch_all(
        """
        SELECT c.id_cita, c.id_medico, c.id_paciente, c.nombre_paciente, c.descripcion,
               c.fecha, c.hora, c.estado,
               u.nombre, u.ape_paterno, u.ape_materno, u.edad, u.tipo_sangre, u.genero
        FROM citas c
        JOIN usuarios u ON c.id_paciente = u.id
        WHERE c.id_medico = %s
        ORDER BY c.fecha ASC, c.hora ASC
        """,
        (id_medico,),
    )
    current_app.logger.info("Citas del médico %s: %d", id_medico, len(rows))

    citas = [
        {
            "idCita": row["id_cita"],
            "IdMedico": row["id_medico"],
            "idPaciente": row["id_paciente"],
            "nombrePaciente": row["nombre_paciente"],
            "descripcion": row["descripcion"],
            "fecha": formatear_fecha(row["fecha"]),
            "hora": formatear_hora(row["hora"]),
            "estado": row["estado"],
            "nombre": row["nombre"],
            "apePaterno": row["ape_paterno"],
            "apeMaterno": row["ape_materno"],
            "edad": row["edad"],
            "tipoSangre": row["tipo_sangre"],
            "genero": row["genero"],
            "fechaFormateada": formatear_fecha_local(row["fecha"]),
            "horaFormateada": formatear_hora(row["hora"]),
        }
        for row in rows
    ]
    return jsonify(citas)
