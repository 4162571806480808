"""Result envelopes returned across the API boundary.

Success is ``{"success": true, "data": ...}``; failure is ``{"success": false,
"error": {"code", "message", "details"}}``. Envelopes carry the error code and
a catalog message, never a traceback.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from gitswitch.errors import GitSwitchError
from gitswitch.errors.user_messages import get_recovery_suggestion, get_user_message
from gitswitch.privacy.redaction import sanitize_details

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "INTERNAL_ERROR"
VALIDATION = "VALIDATION"

_ANY = TypeAdapter(Any)


class ErrorInfo(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class Result(BaseModel):
    success: bool
    data: Any = None
    error: Optional[ErrorInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": to_jsonable(self.data)}
        info = self.error or ErrorInfo(code=INTERNAL_ERROR, message=get_user_message(INTERNAL_ERROR))
        error: Dict[str, Any] = {"code": info.code, "message": info.message}
        if info.details:
            error["details"] = to_jsonable(info.details)
        return {"success": False, "error": error}


def to_jsonable(value: Any) -> Any:
    """Plain JSON types for models, enums, datetimes and paths."""
    return _ANY.dump_python(value, mode="json")


def ok(data: Any = None) -> Result:
    return Result(success=True, data=data)


def error_result(exc: BaseException) -> Result:
    """Convert an exception raised below the boundary into a failure envelope."""

    if isinstance(exc, GitSwitchError):
        details = sanitize_details(exc.details)
        details["reason"] = exc.message
        details["suggestion"] = exc.recovery_suggestion
        logger.warning("Operation failed", extra={"error_code": exc.code, "reason": exc.message})
        return Result(success=False, error=ErrorInfo(code=exc.code, message=exc.user_message, details=details))

    if isinstance(exc, PydanticValidationError):
        problems: List[Dict[str, Any]] = [
            {"loc": [str(part) for part in item["loc"]], "msg": item["msg"]}
            for item in exc.errors(include_url=False, include_input=False)
        ]
        logger.warning("Invalid input", extra={"error_code": VALIDATION, "problems": len(problems)})
        return Result(
            success=False,
            error=ErrorInfo(
                code=VALIDATION,
                message=get_user_message(VALIDATION),
                details={"errors": problems, "suggestion": get_recovery_suggestion(VALIDATION)},
            ),
        )

    logger.error("Unhandled error at API boundary", exc_info=exc)
    return Result(
        success=False,
        error=ErrorInfo(code=INTERNAL_ERROR, message=get_user_message(INTERNAL_ERROR)),
    )
