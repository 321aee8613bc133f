from flask import Blueprint, current_app, jsonify

from citasmedicas.db import get_store
from citasmedicas.errors import NotFoundError
from citasmedicas.formato import formatear_fecha, formatear_hora
from citasmedicas.validacion import leer_json, texto_opcional

historial_bp = Blueprint("historial", __name__, url_prefix="/api")


def historial_a_json(row):
    return {
        "id": row["id"],
        "idPaciente": row["id_paciente"],
        "idMedico": row["id_medico"],
        "idCita": row["id_cita"],
        "fecha": formatear_fecha(row["fecha"]),
        "diagnostico": row["diagnostico"],
        "tratamiento": row["tratamiento"],
        "observaciones": row["observaciones"],
        "edadPaciente": row["edad_paciente"],
        "tipoSangrePaciente": row["tipo_sangre_paciente"],
        "fechaCita": formatear_fecha(row["fecha_cita"]),
        "horaCita": formatear_hora(row["hora_cita"]),
        "nombreMedico": row["nombre_medico"],
        "especialidad": row["especialidad"],
        "nombrePaciente": row["nombre_paciente"],
        "apePaterno": row["ape_paterno"],
        "apeMaterno": row["ape_materno"],
    }


@historial_bp.route("/historial-medico/<int:id_paciente>", methods=["GET"])
def historial_paciente(id_paciente):
    """Historial médico completo de un paciente"""
    current_app.logger.info("Historial médico solicitado para %s", id_paciente)
    rows = get_store().fetch_all(
        """
        SELECT hm.id, hm.id_paciente, hm.id_medico, hm.id_cita, hm.fecha,
               hm.diagnostico, hm.tratamiento, hm.observaciones,
               c.fecha AS fecha_cita, c.hora AS hora_cita,
               m.nombre AS nombre_medico, m.especialidad,
               u.nombre AS nombre_paciente, u.ape_paterno, u.ape_materno,
               COALESCE(hm.edad_paciente, u.edad) AS edad_paciente,
               COALESCE(hm.tipo_sangre_paciente, u.tipo_sangre) AS tipo_sangre_paciente
        FROM historial_medico hm
        LEFT JOIN citas c ON hm.id_cita = c.id_cita
        LEFT JOIN medicos m ON hm.id_medico = m.id
        LEFT JOIN usuarios u ON hm.id_paciente = u.id
        WHERE hm.id_paciente = %s
        ORDER BY c.fecha DESC NULLS LAST, c.hora DESC NULLS LAST, hm.id DESC
        """,
        (id_paciente,),
    )
    if not rows:
        raise NotFoundError("No se encontró historial médico para este paciente")
    return jsonify([historial_a_json(row) for row in rows])


@historial_bp.route("/historial-medico/<int:id_registro>", methods=["PUT"])
def modificar_historial(id_registro):
    datos = leer_json()
    filas = get_store().execute(
        """
        UPDATE historial_medico
        SET diagnostico = %s, tratamiento = %s, observaciones = %s
        WHERE id = %s
        """,
        (
            texto_opcional(datos.get("diagnostico"), "diagnostico"),
            texto_opcional(datos.get("tratamiento"), "tratamiento"),
            texto_opcional(datos.get("observaciones"), "observaciones"),
            id_registro,
        ),
    )
    if filas == 0:
        raise NotFoundError("No se encontró el registro para actualizar")
    current_app.logger.info("Historial %s actualizado", id_registro)
    return jsonify({"message": "Registro actualizado correctamente"})


@historial_bp.route("/historial-medico/<int:id_registro>", methods=["DELETE"])
def eliminar_historial(id_registro):
    filas = get_store().execute(
        "DELETE FROM historial_medico WHERE id = %s", (id_registro,)
    )
    if filas == 0:
        raise NotFoundError("No se encontró el registro para eliminar")
    current_app.logger.info("Historial %s eliminado", id_registro)
    return jsonify({"message": "Registro eliminado correctamente"})
