"""Result envelope consumed by the HTTP layer.

Every engine and service call made on behalf of a request is wrapped so the
caller always gets ``{success, data, error: {code, message, details}}``.
Engine errors keep their code; anything unexpected is logged with its
traceback and reported as ``INTERNAL_ERROR``.
"""

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from formbuilder.engine import errors
from formbuilder.engine.errors import EngineError
from formbuilder.models.template import FormTemplate
from formbuilder.schemas.evaluation import ValidationResult
from formbuilder.schemas.template import TemplateResponse

logger = logging.getLogger(__name__)

ERROR_STATUS: Dict[str, int] = {
    errors.VALIDATION_ERROR: 400,
    errors.UNSUPPORTED_QUESTION_TYPE: 400,
    errors.DUPLICATE_QUESTION_ID: 400,
    errors.CYCLIC_DEPENDENCY: 400,
    errors.INVALID_REORDER_SET: 400,
    errors.TEMPLATE_NOT_FOUND: 404,
    errors.QUESTION_NOT_FOUND: 404,
    errors.VERSION_CONFLICT: 409,
    errors.INTERNAL_ERROR: 500,
}


class ApiError(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class ApiResponse(BaseModel):
    """Uniform result envelope."""
    success: bool
    data: Optional[Any] = None
    error: Optional[ApiError] = None

    @property
    def status_code(self) -> int:
        if self.success:
            return 200
        return ERROR_STATUS.get(self.error.code, 500)


def _serialize(data: Any) -> Any:
    if isinstance(data, FormTemplate):
        return TemplateResponse.model_validate(data)
    if isinstance(data, list):
        return [_serialize(item) for item in data]
    return data


def ok(data: Any = None) -> ApiResponse:
    return ApiResponse(success=True, data=_serialize(data))


def fail(exc: EngineError) -> ApiResponse:
    return ApiResponse(
        success=False,
        error=ApiError(code=exc.code, message=exc.message, details=exc.details or None),
    )


def call_engine(operation: Callable[..., Any], *args: Any, **kwargs: Any) -> ApiResponse:
    """Run an engine or service operation and shape its outcome as an envelope.

    A failed ``ValidationResult`` is reported as ``VALIDATION_ERROR`` with
    the per-question errors in ``details``; the result itself stays in
    ``data`` so callers can show effective state alongside the errors.
    """
    name = getattr(operation, "__qualname__", repr(operation))
    try:
        result = operation(*args, **kwargs)
    except EngineError as exc:
        logger.info("%s rejected: %s %s", name, exc.code, exc.message)
        return fail(exc)
    except Exception:
        logger.exception("Unexpected error in %s", name)
        return ApiResponse(
            success=False,
            error=ApiError(code=errors.INTERNAL_ERROR, message="An unexpected error occurred"),
        )

    if isinstance(result, ValidationResult) and not result.valid:
        return ApiResponse(
            success=False,
            data=result,
            error=ApiError(
                code=errors.VALIDATION_ERROR,
                message="Submitted responses failed validation",
                details={"errors": [e.model_dump() for e in result.errors]},
            ),
        )
    return ok(result)
