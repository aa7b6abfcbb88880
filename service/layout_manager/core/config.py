from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List, Union
import os


class Settings(BaseSettings):
    # 应用配置
    APP_NAME: str = "Layout Manager MCP"
    DEBUG: bool = False
    ENV: str = Field(default="development", description="development | production")
    LOG_LEVEL: str = Field(default="INFO", description="根日志级别")

    # 数据库配置（DATABASE_URL 非空时优先使用，测试环境使用 sqlite+aiosqlite）
    DATABASE_URL: str = Field(default="", description="完整的 SQLAlchemy 异步连接串")
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5433
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "password"
    POSTGRES_DB: str = "layout_manager"

    # Redis 配置（仅用于只读工具的活动布局快照缓存，不可用时自动降级）
    REDIS_ENABLED: bool = True
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0

    # MCP 服务监听地址
    MCP_HOST: str = "0.0.0.0"
    MCP_PORT: int = 9081

    # CORS 配置（从环境变量读取，支持逗号分隔）
    CORS_ORIGINS: Union[str, List[str]] = Field(
        default="*",
        description="CORS允许的源，逗号分隔"
    )

    # 布局引擎配置
    DEFAULT_BREAKPOINT: str = Field(default="lg", description="工具调用未指定断点时使用的断点")
    ENFORCE_COMPONENT_CONSTRAINTS: bool = Field(
        default=True,
        description="写入前是否按组件注册表校验尺寸、宽高比与 props",
    )
    ACTIVE_LAYOUT_CACHE_TTL: int = Field(default=30, description="活动布局快照缓存时间（秒）")

    # 审计日志：这些路径前缀下的 POST/PUT/PATCH/DELETE 请求会被记录（逗号分隔）
    AUDIT_PATH_PREFIXES: Union[str, List[str]] = Field(
        default_factory=lambda: ["/admin", "/mcp"],
        description="审计路径前缀",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if os.path.exists(".env") and not os.path.exists("/.dockerenv") else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("CORS_ORIGINS", "AUDIT_PATH_PREFIXES", mode="before")
    @classmethod
    def parse_comma_separated(cls, v):
        """将逗号分隔的字符串转换为列表"""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )


settings = Settings()
