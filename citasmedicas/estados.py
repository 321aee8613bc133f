"""Ciclo de vida de una cita.

Una cita recién creada no tiene estado en la base de datos (NULL), lo que
aquí se modela como ``EstadoCita.PENDIENTE``. Los médicos la confirman,
cancelan o finalizan. Con la política permisiva (por defecto) cualquier
transición está permitida; con la estricta, ``cancelada`` y ``finalizada``
son estados terminales.
"""
from enum import Enum

from citasmedicas.errors import ConflictError


class EstadoCita(str, Enum):
    PENDIENTE = "pendiente"
    CONFIRMADA = "confirmada"
    CANCELADA = "cancelada"
    FINALIZADA = "finalizada"

    @classmethod
    def desde_columna(cls, valor):
        """Convierte el valor de la columna ``citas.estado`` en un estado"""
        if valor is None:
            return cls.PENDIENTE
        return cls(valor)

    def a_columna(self):
        if self is EstadoCita.PENDIENTE:
            return None
        return self.value


class PoliticaEstados(str, Enum):
    PERMISIVA = "permisiva"
    ESTRICTA = "estricta"


ESTADOS_TERMINALES = frozenset({EstadoCita.CANCELADA, EstadoCita.FINALIZADA})


class TransicionInvalida(ConflictError):
    pass


def transicionar(actual, destino, politica=PoliticaEstados.PERMISIVA):
    """Devuelve el nuevo estado o lanza TransicionInvalida"""
    if destino is EstadoCita.PENDIENTE:
        raise TransicionInvalida("Una cita no puede volver a estar pendiente")
    if politica is PoliticaEstados.ESTRICTA and actual in ESTADOS_TERMINALES:
        raise TransicionInvalida(
            f"La cita ya está {actual.value} y no puede pasar a {destino.value}"
        )
    return destino


def verificar_editable(actual, politica=PoliticaEstados.PERMISIVA):
    if politica is PoliticaEstados.ESTRICTA and actual in ESTADOS_TERMINALES:
        raise TransicionInvalida(f"La cita ya está {actual.value} y no puede modificarse")
