"""
Error type shared by all services.

Every service operation raises ServiceError with a code taken from that
operation's own error-code enum. INTERNAL descriptions are meant for logs.
"""


class ServiceError(Exception):
    """Raised when a service operation fails."""

    def __init__(self, code, description=None):
        super().__init__(description or code.name.lower())
        self.code = code
        self.description = description

    def __repr__(self):
        return f'<ServiceError {self.code.name}: {self.description}>'
