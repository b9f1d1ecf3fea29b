"""Error taxonomy. Every error knows the HTTP status and machine code it maps to."""

from __future__ import annotations

from typing import Any, Dict, Optional


class CallNotifyError(Exception):
    status = 500
    error = "internal_error"
    message = "An unexpected error occurred while processing the webhook"

    def payload(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message, "details": str(self)}


class ValidationError(CallNotifyError):
    status = 400
    error = "validation_error"
    message = "The request body is missing required fields"

    def __init__(self, detail: str, example: Optional[Dict[str, Any]] = None):
        super().__init__(detail)
        self.example = example or {}

    def payload(self) -> Dict[str, Any]:
        return {"error": self.error, "message": str(self), "example": self.example}


class MethodNotAllowedError(CallNotifyError):
    status = 405
    error = "method_not_allowed"
    message = "Only POST and GET methods are supported"

    def __init__(self, method: str, allowed: tuple = ("POST", "GET")):
        super().__init__(method)
        self.allowed = list(allowed)

    def payload(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message,
                "allowedMethods": self.allowed}


class ConfigurationError(CallNotifyError):
    error = "configuration_error"
    message = "Mail configuration is incomplete"

    def __init__(self, missing: list[str]):
        super().__init__("missing environment variables: " + ", ".join(missing))
        self.missing = list(missing)


class DirectoryLoadError(CallNotifyError):
    error = "directory_load_failed"
    message = "Contact directory could not be read"


class NoRecipientError(CallNotifyError):
    error = "no_recipient"
    message = "No recipient could be resolved for this call"


class InvalidRecipientError(CallNotifyError):
    error = "invalid_recipient"
    message = "Invalid recipient email address"


class DeliveryError(CallNotifyError):
    error = "delivery_failed"
    message = "Internal server error while sending email"

    def __init__(
        self,
        detail: str,
        code: Optional[str] = None,
        command: Optional[str] = None,
        response: Optional[str] = None,
        response_code: Optional[int] = None,
    ):
        super().__init__(detail)
        self.code = code
        self.command = command
        self.response = response
        self.response_code = response_code

    def payload(self) -> Dict[str, Any]:
        out = super().payload()
        if self.code:
            out["code"] = self.code
        return out


class EnrichmentError(CallNotifyError):
    error = "enrichment_failed"
    message = "Call details could not be fetched"


class UnexpectedError(CallNotifyError):
    pass
