class EasyMemeError(Exception):
    pass


class EasyMemeApiError(EasyMemeError):
    """Backend answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = "", body: str = "") -> None:
        head = f"EasyMeme API {status_code} {reason}".rstrip()
        super().__init__(f"{head}: {body}" if body else head)
        self.status_code = status_code
        self.reason = reason
        self.body = body


class InvalidAnalysisError(EasyMemeError, ValueError):
    """Analysis payload is missing required fields."""


class TradeRequestError(EasyMemeError, ValueError):
    """Trade cannot be built from the given parameters."""
