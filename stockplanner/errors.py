class PlannerError(Exception):
    """Base app error."""

    code = "ERROR"
    status_code = 500


class NotFoundError(PlannerError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(PlannerError):
    code = "CONFLICT"
    status_code = 409


class ValidationError(PlannerError):
    code = "INVALID_INPUT"
    status_code = 400


class StoreError(PlannerError):
    code = "STORE_FAILURE"
    status_code = 500
