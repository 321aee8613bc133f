from flask import jsonify
from werkzeug.exceptions import HTTPException

MENSAJE_INTERNO = "Error interno del servidor"


class ApiError(Exception):
    """Error esperado que se traduce a una respuesta JSON"""

    status_code = 500
    message = MENSAJE_INTERNO

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    message = "Solicitud inválida"


class NotFoundError(ApiError):
    status_code = 404
    message = "Recurso no encontrado"


class ConflictError(ApiError):
    status_code = 409
    message = "Conflicto con el estado actual del recurso"


class InternalError(ApiError):
    status_code = 500


def register_error_handlers(app):
    """Registra la capa única de traducción de errores a respuestas HTTP"""

    @app.errorhandler(ApiError)
    def handle_api_error(error):
        if error.status_code >= 500:
            app.logger.error("Error interno: %s", error, exc_info=error)
            return jsonify({"error": MENSAJE_INTERNO}), error.status_code
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        app.logger.error("Error no controlado: %s", error, exc_info=error)
        return jsonify({"error": MENSAJE_INTERNO}), 500
