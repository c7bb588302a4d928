# chat_gateway/errors.py


class GatewayError(Exception):
    """Base class for failures that are answered with a JSON error body."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedRequest(GatewayError):
    status_code = 400


class EmptyConversation(GatewayError):
    status_code = 400


class MessageTooLong(GatewayError):
    status_code = 400


class ProviderInvocationFailure(GatewayError):
    """The model provider raised while the stream was being opened."""

    status_code = 500
