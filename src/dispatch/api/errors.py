"""HTTP mapping for dispatch errors.

Protean's own handlers cover ValidationError (400) and ObjectNotFoundError
(404); the conditions below carry their context in the response body.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from dispatch.errors import InvalidTransitionError, NoCourierAvailableError, SlotFullError

_STATUS_CODES = {
    InvalidTransitionError: 409,
    SlotFullError: 409,
    NoCourierAvailableError: 503,
}


def _handler(status_code: int):
    async def handle(request: Request, exc):
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    return handle


def register_error_handlers(app: FastAPI) -> None:
    """Install Protean's exception handlers plus the dispatch-specific ones."""
    register_exception_handlers(app)
    for exc_class, status_code in _STATUS_CODES.items():
        app.add_exception_handler(exc_class, _handler(status_code))
