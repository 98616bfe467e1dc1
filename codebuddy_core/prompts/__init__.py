"""系统提示词加载工具。

基础规则与各模式说明以 Markdown 文本保存在 prompts/<locale> 目录，
导入时一次性读入，MODE_PROMPTS 为只读映射，键是封闭的 Mode 枚举。
"""

from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from codebuddy_core.domain.models import Mode, PromptContext


PROMPTS_DIR = Path(__file__).resolve().parent


def load_prompt(name: str, locale: str = "en") -> str:
    """按名称读取提示词文本，去掉首尾空白。"""

    fname = PROMPTS_DIR / locale / f"{name}.md"
    return fname.read_text(encoding="utf-8").strip()


BASE_PROMPT: str = load_prompt("base")

MODE_PROMPTS: Mapping[Mode, str] = MappingProxyType({mode: load_prompt(mode.value) for mode in Mode})


def build_system_instruction(mode: Mode | str) -> str:
    """基础规则在前，模式说明在后。

    未知的 mode 会在 Mode(...) 处抛出 ValueError，属于调用方的编程错误。
    """

    return f"{BASE_PROMPT}\n\n{MODE_PROMPTS[Mode(mode)]}"


def build_prompt(message: str, code: str, language: str) -> str:
    return PromptContext(language=language, code=code, message=message).render()
