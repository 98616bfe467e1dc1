"""限流退避重试。

只有 RateLimitError 会被重试；其他异常原样抛出。sleep 可注入，
测试中传入记录时长的假函数即可模拟时间流逝。
"""

import time
from dataclasses import dataclass
from typing import Callable, List, TypeVar

from codebuddy_core.domain.exceptions import RateLimitError
from codebuddy_core.infrastructure.logging.logger import logger


T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    initial_delay_ms: int = 2000
    factor: float = 2.0

    @classmethod
    def from_settings(cls, cfg) -> "RetryPolicy":
        return cls(
            max_attempts=max(1, int(getattr(cfg, "max_retries", cls.max_attempts))),
            initial_delay_ms=int(getattr(cfg, "initial_backoff_ms", cls.initial_delay_ms)),
            factor=float(getattr(cfg, "backoff_factor", cls.factor)),
        )

    def delays(self) -> List[float]:
        """各次重试前的等待秒数，共 max_attempts - 1 项。"""

        out: List[float] = []
        delay = self.initial_delay_ms / 1000.0
        for _ in range(self.max_attempts - 1):
            out.append(delay)
            delay *= self.factor
        return out


def call_with_backoff(
    call_name: str,
    fn: Callable[[], T],
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """执行 fn，遇到 RateLimitError 时按指数退避重试。

    最后一次尝试失败后不再等待，直接抛出最后一个 RateLimitError，
    并在其 extra["attempts"] 中记录实际尝试次数。
    """

    delays = policy.delays()
    attempt = 1
    while True:
        try:
            logger.info(
                f"{call_name}.attempt",
                extra={"extra": {"attempt": attempt, "max_attempts": policy.max_attempts}},
            )
            return fn()
        except RateLimitError as e:
            if attempt >= policy.max_attempts:
                e.extra["attempts"] = attempt
                logger.warning(
                    f"{call_name}.exhausted",
                    extra={"extra": {"attempts": attempt, "error": e.message}},
                )
                raise
            wait = delays[attempt - 1]
            logger.warning(
                f"{call_name}.retry",
                extra={"extra": {"attempt": attempt, "sleep_s": wait, "error": e.message}},
            )
            sleep(wait)
            attempt += 1
