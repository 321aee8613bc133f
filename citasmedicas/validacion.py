import re
from datetime import datetime
from decimal import Decimal, InvalidOperation

from flask import request

from citasmedicas.errors import ValidationError

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def leer_json(requerido=True):
    """Obtiene el cuerpo JSON de la petición como diccionario"""
    datos = request.get_json(silent=True)
    if datos is None and not requerido:
        return {}
    if not isinstance(datos, dict):
        raise ValidationError("El cuerpo de la solicitud debe ser un objeto JSON")
    return datos


def falta(valor):
    return valor is None or (isinstance(valor, str) and not valor.strip())


def requeridos(datos, campos, mensaje):
    """Lanza ValidationError si algún campo falta o está vacío"""
    faltantes = [campo for campo in campos if falta(datos.get(campo))]
    if faltantes:
        raise ValidationError(mensaje)


def correo_valido(correo):
    return isinstance(correo, str) and EMAIL_REGEX.match(correo) is not None


def texto(valor, campo):
    if valor is None:
        return None
    if not isinstance(valor, str):
        raise ValidationError(f"El campo {campo} debe ser texto")
    return valor


def texto_opcional(valor, campo):
    """Como texto(), pero una cadena vacía se guarda como NULL"""
    valor = texto(valor, campo)
    return valor or None


def entero(valor, campo):
    # bool es subclase de int; no se acepta como número
    if isinstance(valor, bool):
        raise ValidationError(f"El campo {campo} debe ser un número entero")
    if isinstance(valor, int):
        return valor
    # isdigit() también acepta dígitos Unicode como "²" que int() rechaza
    if isinstance(valor, str) and valor.strip().isascii() and valor.strip().isdigit():
        return int(valor)
    raise ValidationError(f"El campo {campo} debe ser un número entero")


def entero_opcional(valor, campo):
    if falta(valor):
        return None
    numero = entero(valor, campo)
    if numero < 0:
        raise ValidationError(f"El campo {campo} no puede ser negativo")
    return numero


def fecha(valor, campo="fecha"):
    """Valida una fecha YYYY-MM-DD y la devuelve como date"""
    try:
        return datetime.strptime(valor, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"El campo {campo} debe tener el formato YYYY-MM-DD")


def hora(valor, campo="hora"):
    """Valida una hora HH:MM o HH:MM:SS y la devuelve como time"""
    for formato in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(valor, formato).time()
        except (TypeError, ValueError):
            continue
    raise ValidationError(f"El campo {campo} debe tener el formato HH:MM")


def monto(valor, campo="monto", permitir_cero=False):
    if isinstance(valor, bool):
        raise ValidationError(f"El campo {campo} debe ser numérico")
    try:
        cantidad = Decimal(str(valor))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"El campo {campo} debe ser numérico")
    if not cantidad.is_finite():
        raise ValidationError(f"El campo {campo} debe ser numérico")
    if cantidad < 0:
        raise ValidationError(f"El campo {campo} no puede ser negativo")
    if cantidad == 0 and not permitir_cero:
        raise ValidationError(f"El campo {campo} debe ser mayor que cero")
    return cantidad
