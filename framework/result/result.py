from http import HTTPStatus
from typing import Any, Dict, Generic, Optional, Sequence, Tuple, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

T = TypeVar("T")

Messages = Union[str, Sequence[str]]


class Result(BaseModel, Generic[T]):
    """
    Immutable success/failure value returned by services.

    A successful result carries ``data`` (possibly None) and no error messages;
    a failed one carries a status code and at least one error message, never
    data. Serializes to ``{"data", "isSuccessful", "statusCode", "errorMessages"}``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    data: Optional[T] = None
    is_successful: bool = Field(alias="isSuccessful")
    status_code: int = Field(alias="statusCode", ge=100, le=599)
    error_messages: Optional[Tuple[str, ...]] = Field(default=None, alias="errorMessages")

    @model_validator(mode="after")
    def _check_state(self) -> "Result[T]":
        if self.is_successful:
            if self.error_messages is not None:
                raise ValueError("successful result cannot carry error messages")
        else:
            if self.data is not None:
                raise ValueError("failed result cannot carry data")
            if not self.error_messages:
                raise ValueError("failed result needs at least one error message")
        return self

    # --- constructors ---

    @classmethod
    def success(cls, data: T) -> "Result[T]":
        return cls(data=data, is_successful=True, status_code=int(HTTPStatus.OK))

    @classmethod
    def failure(cls, status_code: Union[int, HTTPStatus], messages: Messages) -> "Result[T]":
        """Failed result; a single message is wrapped into a one-item list."""
        if isinstance(messages, str):
            messages = (messages,)
        return cls(
            is_successful=False,
            status_code=int(status_code),
            error_messages=tuple(messages),
        )

    @classmethod
    def not_found(cls, message: str = "Resource not found") -> "Result[T]":
        return cls.failure(HTTPStatus.NOT_FOUND, message)

    @classmethod
    def bad_request(cls, message: str) -> "Result[T]":
        return cls.failure(HTTPStatus.BAD_REQUEST, message)

    @classmethod
    def unauthorized(cls, message: str = "Unauthorized access") -> "Result[T]":
        return cls.failure(HTTPStatus.UNAUTHORIZED, message)

    @classmethod
    def forbidden(cls, message: str = "Forbidden access") -> "Result[T]":
        return cls.failure(HTTPStatus.FORBIDDEN, message)

    # --- wire format ---

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible dict with wire field names."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, indent: Optional[int] = None) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "Result[T]":
        return cls.model_validate_json(text)

    def __str__(self) -> str:
        return self.to_json(indent=2)
