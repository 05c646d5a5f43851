"""Domain exceptions."""


class GatewayError(Exception):
    """External service could not produce a result."""

    user_message = (
        "Entschuldigung, es ist ein Fehler aufgetreten. "
        "Bitte versuchen Sie es später erneut."
    )


class ModelConnectionError(GatewayError):
    """Model service unreachable."""

    user_message = (
        "Verbindungsfehler. Bitte überprüfen Sie Ihre Internetverbindung "
        "und versuchen Sie es erneut."
    )


class ModelTimeoutError(GatewayError):
    """Model service did not answer in time."""

    user_message = (
        "Die Anfrage hat zu lange gedauert. "
        "Bitte versuchen Sie es mit einer kürzeren Nachricht."
    )


class ModelQuotaError(GatewayError):
    """Model service rejected the request because of rate or quota limits."""

    user_message = "API-Limit erreicht. Bitte versuchen Sie es später erneut."


class ModelUnavailableError(GatewayError):
    """Model service failed for any other reason."""


class ActionNotFoundError(LookupError):
    """No pending action with the given id or group."""


class ActionStateError(RuntimeError):
    """Requested lifecycle transition is not allowed."""
