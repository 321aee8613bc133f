"""Pagos con tarjeta.

Se guardan el número de tarjeta y el código de seguridad en claro para
mantener la compatibilidad con los clientes existentes. Esto viola PCI DSS;
un despliegue real debe sustituirlo por la tokenización de un procesador
de pagos. Como mínimo, las respuestas nunca devuelven el código de seguridad
y enmascaran el número de tarjeta, y ninguno de los dos se registra en logs.
"""
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify

from citasmedicas.db import get_store
from citasmedicas.errors import NotFoundError
from citasmedicas.formato import enmascarar_tarjeta, formatear_fecha, formatear_monto
from citasmedicas.validacion import entero, leer_json, monto, requeridos, texto

pagos_bp = Blueprint("pagos", __name__, url_prefix="/api")

CAMPOS_TARJETA = (
    "numeroTarjeta",
    "nombreTitular",
    "fechaExpiracion",
    "codigoSeguridad",
    "monto",
)

PAGO_NO_ENCONTRADO = "Pago no encontrado"


def pago_a_json(row):
    return {
        "idPago": row["id_pago"],
        "numeroTarjeta": enmascarar_tarjeta(row["numero_tarjeta"]),
        "nombreTitular": row["nombre_titular"],
        "fechaExpiracion": row["fecha_expiracion"],
        "monto": formatear_monto(row["monto"]),
        "fechaPago": formatear_fecha(row["fecha_pago"]),
        "idHospital": row["id_hospital"],
    }


def leer_tarjeta(datos):
    return (
        texto(datos["numeroTarjeta"], "numeroTarjeta"),
        texto(datos["nombreTitular"], "nombreTitular"),
        texto(datos["fechaExpiracion"], "fechaExpiracion"),
        texto(datos["codigoSeguridad"], "codigoSeguridad"),
        monto(datos["monto"]),
    )


@pagos_bp.route("/pagos", methods=["POST"])
@pagos_bp.route("/registrar-pagos", methods=["POST"])
def registrar_pago():
    datos = leer_json()
    requeridos(datos, CAMPOS_TARJETA + ("idHospital",), "Datos de pago incompletos")
    tarjeta = leer_tarjeta(datos)
    id_hospital = entero(datos["idHospital"], "idHospital")
    fecha_pago = datetime.now(timezone.utc)

    id_pago = get_store().insert(
        """
        INSERT INTO pagos
            (numero_tarjeta, nombre_titular, fecha_expiracion, codigo_seguridad,
             monto, fecha_pago, id_hospital)
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING id_pago
        """,
        tarjeta + (fecha_pago, id_hospital),
    )
    current_app.logger.info("Pago %s registrado para hospital %s", id_pago, id_hospital)
    return jsonify({"message": "Pago registrado exitosamente", "idPago": id_pago}), 201


@pagos_bp.route("/pagos", methods=["GET"])
def obtener_pagos():
    rows = get_store().fetch_all("SELECT * FROM pagos ORDER BY id_pago")
    if not rows:
        raise NotFoundError("No se encontraron pagos")
    return jsonify([pago_a_json(row) for row in rows])


@pagos_bp.route("/pagos/<int:id_pago>", methods=["GET"])
def obtener_pago(id_pago):
    row = get_store().fetch_one("SELECT * FROM pagos WHERE id_pago = %s", (id_pago,))
    if row is None:
        raise NotFoundError(PAGO_NO_ENCONTRADO)
    return jsonify(pago_a_json(row))


@pagos_bp.route("/pagos/<int:id_pago>", methods=["PUT"])
def modificar_pago(id_pago):
    datos = leer_json()
    requeridos(datos, CAMPOS_TARJETA, "Datos de pago incompletos")
    filas = get_store().execute(
        """
        UPDATE pagos
        SET numero_tarjeta = %s, nombre_titular = %s, fecha_expiracion = %s,
            codigo_seguridad = %s, monto = %s
        WHERE id_pago = %s
        """,
        leer_tarjeta(datos) + (id_pago,),
    )
    if filas == 0:
        raise NotFoundError(PAGO_NO_ENCONTRADO)
    return jsonify({"message": "Pago actualizado exitosamente"})


@pagos_bp.route("/pagos/<int:id_pago>", methods=["DELETE"])
def eliminar_pago(id_pago):
    filas = get_store().execute("DELETE FROM pagos WHERE id_pago = %s", (id_pago,))
    if filas == 0:
        raise NotFoundError(PAGO_NO_ENCONTRADO)
    current_app.logger.info("Pago %s eliminado", id_pago)
    return jsonify({"message": "Pago eliminado exitosamente"})
