from flask import Blueprint, current_app, jsonify

from citasmedicas.db import get_store
from citasmedicas.errors import NotFoundError
from citasmedicas.formato import formatear_monto
from citasmedicas.validacion import leer_json, monto, requeridos, texto

hospital_bp = Blueprint("hospital", __name__, url_prefix="/api")

CAMPOS_HOSPITAL = (
    "nombreHospital",
    "direccion",
    "estado",
    "municipio",
    "numSucursal",
    "telefono",
    "nomRepresHospital",
    "rfcHospital",
)

HOSPITAL_NO_ENCONTRADO = "Hospital no encontrado"


def hospital_a_json(row):
    return {
        "idHospital": row["id_hospital"],
        "nombreHospital": row["nombre_hospital"],
        "direccion": row["direccion"],
        "estado": row["estado"],
        "municipio": row["municipio"],
        "numSucursal": row["num_sucursal"],
        "telefono": row["telefono"],
        "nomRepresHospital": row["nom_repres_hospital"],
        "rfcHospital": row["rfc_hospital"],
        "monto": formatear_monto(row["monto"]),
    }


def leer_hospital(datos, mensaje):
    """Valida el cuerpo y devuelve los valores en el orden de las columnas"""
    requeridos(datos, CAMPOS_HOSPITAL + ("monto",), mensaje)
    valores = []
    for campo in CAMPOS_HOSPITAL:
        valor = datos[campo]
        # numSucursal y telefono a veces llegan como números
        if isinstance(valor, int) and not isinstance(valor, bool):
            valor = str(valor)
        valores.append(texto(valor, campo))
    valores.append(monto(datos["monto"], permitir_cero=True))
    return tuple(valores)


@hospital_bp.route("/registrar-hospital", methods=["POST"])
@hospital_bp.route("/hospital", methods=["POST"])
def registrar_hospital():
    valores = leer_hospital(leer_json(), "Datos del hospital incompletos")
    id_hospital = get_store().insert(
        """
        INSERT INTO hospital
            (nombre_hospital, direccion, estado, municipio, num_sucursal, telefono,
             nom_repres_hospital, rfc_hospital, monto)
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id_hospital
        """,
        valores,
    )
    current_app.logger.info("Hospital registrado: %s", id_hospital)
    return (
        jsonify({"message": "Hospital registrado exitosamente", "idHospital": id_hospital}),
        201,
    )


@hospital_bp.route("/hospital", methods=["GET"])
def obtener_hospitales():
    rows = get_store().fetch_all("SELECT * FROM hospital ORDER BY id_hospital")
    if not rows:
        raise NotFoundError("No se encontraron hospitales")
    return jsonify([hospital_a_json(row) for row in rows])


@hospital_bp.route("/hospital/<int:id_hospital>", methods=["GET"])
def obtener_hospital(id_hospital):
    row = get_store().fetch_one(
        "SELECT * FROM hospital WHERE id_hospital = %s", (id_hospital,)
    )
    if row is None:
        raise NotFoundError(HOSPITAL_NO_ENCONTRADO)
    return jsonify(hospital_a_json(row))


@hospital_bp.route("/hospital/<int:id_hospital>", methods=["PUT"])
def modificar_hospital(id_hospital):
    valores = leer_hospital(leer_json(), "Datos incompletos para actualizar el hospital")
    filas = get_store().execute(
        """
        UPDATE hospital
        SET nombre_hospital = %s, direccion = %s, estado = %s, municipio = %s,
            num_sucursal = %s, telefono = %s, nom_repres_hospital = %s,
            rfc_hospital = %s, monto = %s
        WHERE id_hospital = %s
        """,
        valores + (id_hospital,),
    )
    if filas == 0:
        raise NotFoundError(HOSPITAL_NO_ENCONTRADO)
    return jsonify({"message": "Hospital actualizado exitosamente"})


@hospital_bp.route("/hospital/<int:id_hospital>", methods=["DELETE"])
def eliminar_hospital(id_hospital):
    filas = get_store().execute(
        "DELETE FROM hospital WHERE id_hospital = %s", (id_hospital,)
    )
    if filas == 0:
        raise NotFoundError(HOSPITAL_NO_ENCONTRADO)
    current_app.logger.info("Hospital %s eliminado", id_hospital)
    return jsonify({"message": "Hospital eliminado exitosamente"})
