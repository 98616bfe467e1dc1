"""模型可用性诊断。

依次向候选 Gemini 模型发送一个最简单的提示词，报告哪些模型可用。
"""

from typing import Any, Callable, Dict, Iterable, Optional

from codebuddy_core.config.settings import settings
from codebuddy_core.domain.exceptions import BusinessError, ConfigurationError
from codebuddy_core.infrastructure.logging.logger import logger
from codebuddy_core.providers.gemini_client import GeminiClient
from codebuddy_core.providers.registry import GEMINI_CANDIDATE_MODELS


def check_models(
    models: Optional[Iterable[str]] = None,
    cfg=None,
    client_factory: Optional[Callable[..., Any]] = None,
) -> Dict[str, Optional[str]]:
    """返回 {模型ID: None 表示可用，否则为错误信息}。

    密钥缺失时在发出任何请求前抛出 ConfigurationError。
    """

    cfg = cfg or settings
    if not getattr(cfg, "gemini_api_key", None):
        raise ConfigurationError(code="MISSING_API_KEY", message="GEMINI_API_KEY not set")
    client = GeminiClient(cfg, client_factory=client_factory)
    report: Dict[str, Optional[str]] = {}
    for model in models or GEMINI_CANDIDATE_MODELS:
        try:
            client.ping(model, prompt="Test")
            report[model] = None
        except BusinessError as e:
            report[model] = e.message
        logger.info("diagnostics.model", extra={"extra": {"model": model, "ok": report[model] is None}})
    return report


def main() -> None:
    try:
        report = check_models()
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}")
        raise SystemExit(1)
    for model, error in report.items():
        if error is None:
            print(f"OK      {model}")
        else:
            print(f"FAILED  {model}: {error}")


if __name__ == "__main__":
    main()
