from fastapi.responses import JSONResponse
from framework.result import Result

def to_response(result: Result) -> JSONResponse:
    """Render a Result as JSON, reusing its statusCode as the HTTP status."""
    return JSONResponse(status_code=result.status_code, content=result.to_dict())
