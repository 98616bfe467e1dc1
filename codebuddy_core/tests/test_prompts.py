import pytest

from codebuddy_core.domain.models import Mode, PromptContext
from codebuddy_core.prompts import BASE_PROMPT, MODE_PROMPTS, build_prompt, build_system_instruction


@pytest.mark.parametrize("mode", list(Mode))
def test_system_instruction_base_then_mode(mode):
    text = build_system_instruction(mode)
    assert BASE_PROMPT in text
    assert MODE_PROMPTS[mode] in text
    assert text.index(BASE_PROMPT) < text.index(MODE_PROMPTS[mode])


def test_system_instruction_accepts_mode_value():
    assert build_system_instruction("debug") == build_system_instruction(Mode.DEBUG)
    assert "Mode: DEBUG" in build_system_instruction("debug")


def test_unknown_mode_is_programming_error():
    with pytest.raises(ValueError):
        build_system_instruction("refactor")


def test_mode_prompts_is_read_only():
    assert set(MODE_PROMPTS) == set(Mode)
    with pytest.raises(TypeError):
        MODE_PROMPTS[Mode.EXPLAIN] = "changed"  # type: ignore[index]


def test_prompt_context_layout():
    text = build_prompt("why is this slow?", "x = 1", "python")
    assert text == PromptContext(language="python", code="x = 1", message="why is this slow?").render()
    assert text.startswith("LANGUAGE: python")
    assert "```python\nx = 1\n```" in text
    assert text.endswith("USER QUESTION:\nwhy is this slow?")


def test_prompt_context_empty_code_and_message():
    text = build_prompt("", "", "sql")
    assert "```sql\n\n```" in text
    assert text.endswith("USER QUESTION:\n")
