"""Custom exceptions for the POS order application."""


class PosError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['ok'] = False
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(PosError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(PosError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)


class InputValidationError(PosError):
    """Raised when a request is rejected before pricing runs."""
    def __init__(self, errors):
        self.errors = list(errors)
        message = self.errors[0] if len(self.errors) == 1 else f"{len(self.errors)} validation errors"
        super().__init__(message, 400, {'errors': self.errors})


class MissingPriceError(BusinessLogicError):
    """Raised when an order is submitted while a line has no resolvable price."""
    def __init__(self, line_ids):
        self.line_ids = list(line_ids)
        message = f"Missing price for line(s): {', '.join(self.line_ids)}"
        super().__init__(message, status_code=422, payload={'line_ids': self.line_ids})


class InvalidStatusTransitionError(BusinessLogicError):
    """Raised when an order status change breaks the lifecycle."""
    def __init__(self, current, requested):
        message = f"Cannot move order from {current} to {requested}"
        super().__init__(message, status_code=409, payload={'current': current, 'requested': requested})
