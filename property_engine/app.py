"""FastAPI 앱 팩토리"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from property_engine.api import health_router, legacy_router, search_router
from property_engine.core.config import settings
from property_engine.core.database import init_db
from property_engine.core.logging import logger
from property_engine.engine.factory import build_engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """애플리케이션 생명주기

    시작 시 엔진 리소스(HTTP 클라이언트, 토큰 캐시, 응답 캐시)를 만들고
    종료 시 정리합니다. 테스트는 app.state.engine을 미리 넣어 둘 수 있습니다.
    """
    logger.info("Starting application...")
    init_db()
    owns_engine = getattr(app.state, "engine", None) is None
    if owns_engine:
        app.state.engine = build_engine(settings)
    logger.info("Application started")
    yield
    logger.info("Shutting down application...")
    if owns_engine:
        await app.state.engine.aclose()
        app.state.engine = None


def create_app() -> FastAPI:
    """
    FastAPI 앱 생성 (Factory Pattern)

    Returns:
        FastAPI 앱 인스턴스
    """
    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 라우터 등록
    app.include_router(health_router)
    app.include_router(search_router)
    app.include_router(legacy_router)

    return app


# 앱 인스턴스 생성 (uvicorn이 로드할 수 있도록)
app = create_app()
