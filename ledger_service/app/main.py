from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from common.eventbus.kafka import close_kafka_event_bus
from common.logger import setup_logger
from common.middleware.request_trace import RequestTraceMiddleware

from .api.errors import register_error_handlers
from .api.health import router as health_router
from .api.v1 import api_router
from .config import get_port


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - framework hook
    yield
    # 종료 시 아직 전송되지 않은 이벤트를 flush
    close_kafka_event_bus()


def create_app() -> FastAPI:
    setup_logger("ledger-service")
    app = FastAPI(
        title="Kabayan Hub Ledger Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    # 공통 Request/Span ID 로그 미들웨어
    app.add_middleware(RequestTraceMiddleware)
    register_error_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run(
        "ledger_service.app.main:app",
        host="0.0.0.0",
        port=get_port(),
        reload=False,
        access_log=False,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
