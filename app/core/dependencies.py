from fastapi import Request

from app.gateway.dispatcher import FallbackDispatcher


def get_dispatcher(request: Request) -> FallbackDispatcher:
    """The process-wide dispatcher built in the app lifespan."""
    return request.app.state.dispatcher
