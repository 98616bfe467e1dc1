"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。

模块级的 ``settings`` 只是默认值：所有 Provider 客户端和 AssistantClient
都接受显式传入的配置对象，测试中可以直接注入桩对象，无需改动进程环境。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("CODEBUDDY_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """CodeBuddy 配置（使用 Pydantic）。"""

    # ---- 主 Provider：Gemini ----
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "api_key"),
        description="Gemini API 密钥，兼容旧的 API_KEY 变量",
    )
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini 模型 ID")

    # ---- 备用 Provider：OpenRouter 风格的 chat/completions 端点 ----
    openrouter_api_key: Optional[str] = Field(
        default=None,
        description="配置后将完全替代 Gemini 调用路径",
    )
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        description="备用 Provider 基础URL",
    )
    openrouter_model: str = Field(
        default="google/gemini-2.0-flash-exp:free",
        description="备用 Provider 模型 ID",
    )
    app_url: str = Field(default="http://localhost:3000", description="HTTP-Referer 请求头")
    app_title: str = Field(default="CodeBuddy", description="X-Title 请求头")

    # ---- 生成与重试 ----
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="生成温度")
    max_retries: int = Field(default=3, ge=1, le=5, description="限流时的最大尝试次数")
    initial_backoff_ms: int = Field(default=2000, ge=0, description="首次退避时长（毫秒）")
    backoff_factor: float = Field(default=2.0, ge=1.5, le=2.0, description="每次退避后的放大倍数")
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")

    # ---- 存储与日志 ----
    storage_root: str = Field(default=".storage", description="会话/片段存储根目录")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("gemini_api_key", "openrouter_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip() or None
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
