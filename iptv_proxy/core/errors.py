from fastapi import Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

class ProxyError(Exception):
    """
    Base for every failure surfaced at the HTTP boundary.
    Rendered as {"error": code, "detail": message} with `status_code`.
    """
    status_code = 500
    code = "ProxyError"
    default_detail = "Server error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

class MissingToken(ProxyError):
    status_code = 401
    code = "MissingToken"
    default_detail = "No token provided"

class InvalidToken(ProxyError):
    # Unknown, expired and stream-mismatched tokens all land here
    status_code = 401
    code = "InvalidToken"
    default_detail = "Invalid or expired token"

class MissingStreamId(ProxyError):
    status_code = 400
    code = "MissingStreamId"
    default_detail = "Stream ID is required"

class InvalidRequest(ProxyError):
    status_code = 400
    code = "InvalidRequest"
    default_detail = "Malformed request"

class StreamNotFound(ProxyError):
    status_code = 404
    code = "StreamNotFound"
    default_detail = "Stream not found"

class ProcessSpawnError(ProxyError):
    code = "ProcessSpawnError"
    default_detail = "Failed to start extraction process"

class ProcessStartTimeout(ProxyError):
    code = "ProcessStartTimeout"
    default_detail = "Extraction process did not report a port in time"

class RelayIOError(ProxyError):
    code = "RelayIOError"
    default_detail = "Failed to proxy stream"

async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.detail}
    )

async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and parameters share the {"error", "detail"} shape with ProxyError."""
    detail = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    )
    return await proxy_error_handler(request, InvalidRequest(detail or None))
