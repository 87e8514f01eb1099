class ServiceError(Exception):
    pass


class GeminiConfigurationError(ServiceError):
    pass


class GeminiPromptError(ServiceError):
    pass


class RateLimitedError(ServiceError):
    pass


class ModelUnavailableError(ServiceError):
    def __init__(self, reason: str):
        super().__init__(f"Recipe model unavailable: {reason}")
        self.reason = reason


class EmptyModelResponseError(ModelUnavailableError):
    def __init__(self) -> None:
        super().__init__("model response did not include text content")
