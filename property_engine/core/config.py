"""설정 관리 - 환경 변수 로드 및 검증"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator


class Settings(BaseSettings):
    """애플리케이션 설정"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # 데이터베이스 (해석 로그)
    database_url: str = "sqlite:///./property_engine.db"

    # 응답 캐시
    # - memory: 프로세스 로컬 캐시 (기본값)
    # - redis: 여러 워커가 공유하는 캐시
    response_cache_backend: str = "memory"
    response_cache_max_entries: int = 2048
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl_address_s: int = 3600  # 주소 조회 1시간
    cache_ttl_general_s: int = 900  # 일반 검색 15분

    # 프로바이더 선택 (providerId)
    property_provider: str = "corelogic"
    listings_provider: str = "zillow"

    # CoreLogic (OAuth2 client-credentials)
    corelogic_base_url: str = "https://property.corelogicapi.com"
    corelogic_token_url: str = "https://api-prod.corelogic.com/oauth/token"
    corelogic_client_id: str = ""
    corelogic_client_secret: str = ""
    corelogic_spatial_radius_m: int = 100

    # Zillow (RapidAPI, 정적 API 키 헤더)
    zillow_base_url: str = "https://zillow-com1.p.rapidapi.com"
    zillow_api_key: str = ""
    zillow_api_host: str = "zillow-com1.p.rapidapi.com"

    # 프로바이더 HTTP
    provider_timeout_s: float = 10.0
    provider_max_connections: int = 20
    token_refresh_margin_s: int = 30

    # 해석 예산 (요청 단위)
    resolution_total_budget_s: float = 25.0
    resolution_cache_timeout_s: float = 0.5
    resolution_primary_timeout_s: float = 12.0
    resolution_enrichment_timeout_s: float = 10.0

    # 일반 검색
    general_result_limit: int = 40
    general_enrich_top_n: int = 5
    enrichment_concurrency: int = 3

    # 검증
    verification_radius_m: float = 500.0

    # Enrichment 회로차단(CB): 연속 실패 시 잠깐 enrichment 스킵
    enrichment_fail_threshold: int = 5
    enrichment_open_seconds: int = 60

    # API
    api_title: str = "Property Data Resolution API"
    api_version: str = "1.0.0"
    api_description: str = "주소 조회와 일반 검색을 하나의 표준 부동산 레코드로 해석합니다."

    # 엔진 예산보다 약간 길게 서버 하드 캡을 겁니다.
    api_search_timeout_s: float = 30.0

    # 로깅
    log_level: str = "INFO"

    @field_validator("cache_ttl_address_s", "cache_ttl_general_s")
    @classmethod
    def validate_cache_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache TTLs must be positive")
        return v

    @field_validator(
        "provider_timeout_s",
        "resolution_total_budget_s",
        "resolution_cache_timeout_s",
        "resolution_primary_timeout_s",
        "resolution_enrichment_timeout_s",
        "api_search_timeout_s",
    )
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator(
        "general_result_limit",
        "enrichment_concurrency",
        "provider_max_connections",
        "response_cache_max_entries",
        "enrichment_fail_threshold",
    )
    @classmethod
    def validate_positive_counts(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("counts must be positive")
        return v

    @field_validator("general_enrich_top_n", "token_refresh_margin_s")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value must be >= 0")
        return v

    @field_validator("response_cache_backend")
    @classmethod
    def validate_cache_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("memory", "redis"):
            raise ValueError("response_cache_backend must be 'memory' or 'redis'")
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v:
            raise ValueError("database_url must not be empty")
        return v


settings = Settings()
