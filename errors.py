"""Domain errors surfaced to API callers."""


class PassportError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(PassportError):
    status_code = 404


class ValidationError(PassportError):
    status_code = 400
