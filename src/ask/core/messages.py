from __future__ import annotations
from pathlib import Path
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import ConfigError
from .types import Message, Role

_FALLBACK_SYSTEM_PROMPT = (
    "Your name is Ask, and you are a fast, concise command-line AI assistant. "
    "If two inputs are given, treat the first as a prompt preset. "
    "Reply in the user's language."
)


def load_system_prompt(prompts_dir: Optional[Path] = None) -> str:
    prompts_dir = prompts_dir or Path(__file__).resolve().parents[1] / "prompts"
    path = prompts_dir / "system.txt"
    if path.exists():
        text = path.read_text(encoding="utf-8").strip()
        if text:
            return text
    return _FALLBACK_SYSTEM_PROMPT


def split_question(words: Sequence[str]) -> Tuple[str, str]:
    """
    `ask <question>` -> ("", question)
    `ask <preset> <question...>` -> (preset, "question ...")
    """
    if not words:
        raise ConfigError("Nothing to ask")
    if len(words) == 1:
        return "", words[0]
    return words[0], " ".join(words[1:])


def compose_inputs(preset: str, question: str, presets: Optional[Mapping[str, str]] = None) -> List[str]:
    # Unknown preset names are just the first word of the question
    prompt = (presets or {}).get(preset, "") if preset else ""
    if prompt:
        return [prompt, question]
    return [f"{preset} {question}"]


def build_messages(inputs: Iterable[str], system_prompt: Optional[str] = None) -> List[Message]:
    """
    Trim and drop blank inputs, then prepend the single system message.
    Relative order of the user inputs is preserved.
    """
    users = [s.strip() for s in inputs if s and s.strip()]
    if not users:
        raise ConfigError("Nothing to ask")
    system = Message(Role.SYSTEM, system_prompt if system_prompt is not None else load_system_prompt())
    return [system] + [Message(Role.USER, s) for s in users]
