"""리소스 파일(YAML) 로더 유틸리티"""
import os
import yaml
from typing import Any, Dict
from functools import lru_cache

from property_engine.core.logging import logger


def get_resource_path(relative_path: str) -> str:
    """패키지 resources/ 기준 리소스 절대 경로 반환"""
    # property_engine/utils/resource_loader.py -> property_engine/utils -> property_engine
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(base_dir, "resources", relative_path)


@lru_cache(maxsize=32)
def load_yaml_resource(relative_path: str) -> Dict[str, Any]:
    """YAML 리소스 로드 및 캐싱"""
    path = get_resource_path(relative_path)
    if not os.path.exists(path):
        logger.warning(f"Resource not found: {path}")
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to load YAML resource {path}: {e}")
        return {}


def load_street_suffixes() -> Dict[str, str]:
    """도로 접미사 약어 사전 로드 (street -> st)"""
    data = load_yaml_resource("address/street_suffixes.yaml")
    return {str(k).lower(): str(v).lower() for k, v in (data.get("suffixes") or {}).items()}


def load_directionals() -> Dict[str, str]:
    """방위 약어 사전 로드 (north -> n)"""
    data = load_yaml_resource("address/street_suffixes.yaml")
    return {str(k).lower(): str(v).lower() for k, v in (data.get("directionals") or {}).items()}


def load_unit_designators() -> set[str]:
    """호실 표기 (apt, unit, suite ...)"""
    data = load_yaml_resource("address/street_suffixes.yaml")
    return {str(v).lower() for v in data.get("unit_designators", [])}


def load_search_vocabulary() -> Dict[str, Any]:
    """일반 검색 어휘 로드"""
    data = load_yaml_resource("search/vocabulary.yaml")
    return {
        "general_terms": [str(t).lower() for t in data.get("general_terms", [])],
        "filler_terms": [str(t).lower() for t in data.get("filler_terms", [])],
        "status_terms": {
            str(k): [str(t).lower() for t in v]
            for k, v in (data.get("status_terms") or {}).items()
        },
    }


def load_property_types() -> Dict[str, list[str]]:
    """표준 부동산 유형과 동의어 로드"""
    data = load_yaml_resource("search/vocabulary.yaml")
    return {
        str(k): [str(t).lower() for t in v]
        for k, v in (data.get("property_types") or {}).items()
    }
