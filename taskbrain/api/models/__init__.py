"""Request and response models for the HTTP boundary."""

from taskbrain.api.models.errors import ErrorBody, ErrorDetail, ErrorResponse
from taskbrain.api.models.requests import CompleteRequest, RescheduleRequest

__all__ = [
    "CompleteRequest",
    "ErrorBody",
    "ErrorDetail",
    "ErrorResponse",
    "RescheduleRequest",
]
