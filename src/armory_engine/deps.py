"""FastAPI dependencies resolving the per-application engine."""

from fastapi import Request

from armory_engine.engine import ArmoryEngine


def get_engine(request: Request) -> ArmoryEngine:
    return request.app.state.engine


def page_size(engine: ArmoryEngine, limit: int | None) -> int:
    """Requested page size, defaulted and capped by settings."""
    settings = engine.settings
    return min(limit or settings.default_page_size, settings.max_page_size)
