"""Response envelope returned by every API call."""

from __future__ import annotations

from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError

from appsupport.errors import DecodeError

T = TypeVar("T")

SUCCESS_CODE = 0


class ApiResponse(BaseModel):
    """``{code, msg, debug_msg, data}``; ``code == 0`` means success."""

    model_config = ConfigDict(extra="ignore")

    code: int
    msg: Optional[str] = ""
    debug_msg: Optional[str] = ""
    data: Any = None

    @property
    def ok(self) -> bool:
        return self.code == SUCCESS_CODE

    @property
    def message(self) -> str:
        """Best human-readable message: debug message, then message."""
        return self.debug_msg or self.msg or "request failed"

    def parse_data(self, model: Type[T]) -> T:
        """Decode ``data`` into ``model`` (a pydantic model or any annotated type).

        Raises:
            DecodeError: if ``data`` does not fit ``model``
        """
        try:
            return TypeAdapter(model).validate_python(self.data)
        except ValidationError as e:
            raise DecodeError(f"Cannot decode response data as {model!r}: {e}") from e

    @classmethod
    def from_payload(cls, payload: Any) -> "ApiResponse":
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            raise DecodeError(f"Malformed response envelope: {e}") from e
