"""
应用配置
从环境变量和 .env 文件读取配置
"""
from typing import List
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "Hotel PMS"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./hotel_pms.db"
    DB_READ_RETRY_ATTEMPTS: int = 3

    # JWT 配置
    SECRET_KEY: str = "hotel-pms-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24

    # 预订配置
    BOOKING_NUMBER_PREFIX: str = "BK"
    POST_CHECKOUT_ROOM_STATUS: str = "cleaning"   # 退房后房间状态：cleaning / maintenance
    PUBLIC_CANCEL_NOTICE_HOURS: int = 24          # 客人自助取消需提前的小时数

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    @field_validator("POST_CHECKOUT_ROOM_STATUS")
    @classmethod
    def validate_post_checkout_status(cls, v: str) -> str:
        if v not in ("cleaning", "maintenance"):
            raise ValueError("POST_CHECKOUT_ROOM_STATUS must be 'cleaning' or 'maintenance'")
        return v

    @field_validator("DB_READ_RETRY_ATTEMPTS")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("DB_READ_RETRY_ATTEMPTS must be at least 1")
        return v


# 全局设置实例
settings = Settings()
