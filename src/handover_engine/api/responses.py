"""Map fail-soft ActionResults onto HTTP responses."""

from fastapi.responses import JSONResponse

from ..results import ActionResult

# Error code → HTTP status; anything unlisted is a 500
ERROR_STATUS = {
    "not_found": 404,
    "validation": 422,
    "configuration": 422,
    "conflict": 409,
    "stale_section": 409,
    "missing_dependency": 503,
}


def to_response(result: ActionResult, success_status: int = 200) -> JSONResponse:
    if result.success:
        return JSONResponse(status_code=success_status, content=result.to_dict())
    status = ERROR_STATUS.get(result.error_code or "", 500)
    return JSONResponse(status_code=status, content=result.to_dict())
