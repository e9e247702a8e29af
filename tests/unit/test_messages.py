# tests/unit/test_messages.py

from __future__ import annotations
import sys
from pathlib import Path

import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from ask.core.errors import ConfigError  # type: ignore
from ask.core.messages import build_messages, compose_inputs, load_system_prompt, split_question  # type: ignore
from ask.core.types import Message, Role  # type: ignore


def test_system_first_and_user_order_preserved():
    msgs = build_messages(["  translate to French ", "good morning"], system_prompt="sys")
    assert msgs[0] == Message(Role.SYSTEM, "sys")
    assert [m.role for m in msgs[1:]] == [Role.USER, Role.USER]
    assert [m.content for m in msgs[1:]] == ["translate to French", "good morning"]


def test_blank_inputs_are_dropped():
    msgs = build_messages(["", "   ", "question"], system_prompt="sys")
    assert [m.to_dict() for m in msgs] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "question"},
    ]


def test_nothing_to_ask_raises():
    with pytest.raises(ConfigError):
        build_messages(["  ", ""], system_prompt="sys")
    with pytest.raises(ConfigError):
        split_question([])


def test_default_system_prompt_is_the_assistant_persona():
    msgs = build_messages(["hi"])
    assert msgs[0].role is Role.SYSTEM
    assert "Ask" in msgs[0].content


def test_load_system_prompt_falls_back(tmp_path: Path):
    assert "command-line AI assistant" in load_system_prompt(tmp_path)
    (tmp_path / "system.txt").write_text("Be brief.\n", encoding="utf-8")
    assert load_system_prompt(tmp_path) == "Be brief."


def test_split_question():
    assert split_question(["why?"]) == ("", "why?")
    assert split_question(["tr", "bonjour", "le", "monde"]) == ("tr", "bonjour le monde")


def test_compose_inputs_known_preset():
    presets = {"tr": "Translate to English"}
    assert compose_inputs("tr", "bonjour", presets) == ["Translate to English", "bonjour"]


def test_compose_inputs_unknown_preset_rejoins_question():
    assert compose_inputs("why", "is the sky blue", {}) == ["why is the sky blue"]
    # single-word question: empty preset leaves a leading space that build_messages trims
    inputs = compose_inputs("", "hello", None)
    assert [m.content for m in build_messages(inputs, system_prompt="s")[1:]] == ["hello"]
