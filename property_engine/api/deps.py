"""FastAPI 의존성 - 앱 수명 엔진 객체 제공"""
from fastapi import Depends, HTTPException, Request

from property_engine.engine.factory import EngineResources
from property_engine.engine.orchestrator import ResolutionOrchestrator


def get_engine(request: Request) -> EngineResources:
    """lifespan에서 만든 엔진 리소스

    Raises:
        HTTPException(503): 엔진이 아직 초기화되지 않은 경우
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine is not initialized")
    return engine


def get_orchestrator(engine: EngineResources = Depends(get_engine)) -> ResolutionOrchestrator:
    return engine.orchestrator
