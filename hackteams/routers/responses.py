"""Map action results onto HTTP responses."""

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hackteams.identity import caller_id_from_request
from hackteams.schemas.results import ActionResult
from hackteams.services.actions import ErrorKind, FailureCode, validation_message

STATUS_BY_KIND = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_STATE: 409,
    ErrorKind.VALIDATION_FAILED: 422,
}


def status_for(result: ActionResult) -> int:
    if result.success:
        return 200
    code = FailureCode(result.code)
    if code is FailureCode.INTERNAL:
        return 500
    return STATUS_BY_KIND[code.kind]


def to_response(result: ActionResult, success_status: int = 200) -> JSONResponse:
    status_code = success_status if result.success else status_for(result)
    return JSONResponse(status_code=status_code, content=result.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Body and query errors caught by FastAPI before any action runs.
    Mutations still answer anonymous callers with UNAUTHENTICATED first,
    and every rejection carries the usual result body.
    """
    if request.method != "GET" and caller_id_from_request(request) is None:
        return to_response(ActionResult.fail(FailureCode.UNAUTHENTICATED))
    return to_response(
        ActionResult.fail(FailureCode.VALIDATION_FAILED, validation_message(exc.errors()))
    )
