"""
exceptions.py — Workflow error taxonomy

Services raise these; the handler registered in main.py turns each one into
the shared ErrorResponse JSON body with the matching HTTP status. Extra
keyword context (existing cart id, current status, ...) is passed through to
the response so the wizard can offer a resume / retry path.

Called by: services/*, dependencies.py, main.py
"""


class WorkflowError(Exception):
    status_code = 400

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationFailed(WorkflowError):
    """Missing or inconsistent input that passed schema validation."""

    status_code = 400


class InvalidState(WorkflowError):
    """Operation attempted from a status that does not permit it."""

    status_code = 400


class Unauthorized(WorkflowError):
    status_code = 401


class Forbidden(WorkflowError):
    """Agent acting outside their ownership."""

    status_code = 403


class NotFound(WorkflowError):
    status_code = 404


class Conflict(WorkflowError):
    """Duplicate pending application, section already saved, number taken."""

    status_code = 409
