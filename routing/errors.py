class RoutingProviderError(Exception):
    """Raised by a routing provider on transport errors, non-2xx or malformed payloads."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
