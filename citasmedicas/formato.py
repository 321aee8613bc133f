from datetime import date, datetime, time
from decimal import Decimal


def formatear_fecha(valor):
    """date -> 'YYYY-MM-DD'; datetime -> ISO-8601"""
    if isinstance(valor, (date, datetime)):
        return valor.isoformat()
    return valor


def formatear_hora(valor):
    if isinstance(valor, time):
        return valor.strftime("%H:%M")
    return valor


def formatear_fecha_local(valor):
    """date -> 'dd/mm/YYYY', como lo muestra la agenda del médico"""
    if isinstance(valor, date):
        return valor.strftime("%d/%m/%Y")
    return valor


def formatear_monto(valor):
    if isinstance(valor, Decimal):
        return float(valor)
    return valor


def enmascarar_tarjeta(numero):
    """Deja visibles solo los últimos cuatro dígitos"""
    if not numero:
        return numero
    digitos = str(numero)
    return "*" * max(len(digitos) - 4, 0) + digitos[-4:]
