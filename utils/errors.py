class ApiError(Exception):
    """Error con código legible por máquina; se renderiza como {"success": false, "error": reason}."""

    def __init__(self, reason: str, status_code: int = 400):
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class SubmissionRejected(ApiError):
    """Envío de score rechazado (validación, duplicado, persistencia o anclaje obligatorio)."""
