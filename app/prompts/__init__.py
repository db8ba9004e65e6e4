"""System prompt selection."""

from app.prompts.manager import PromptManager, generate_system_prompt, get_schedule_prompt
from app.prompts.presets import DEFAULT_PRESET, PRESET_CONFIGS, PromptConfig, preset_names

__all__ = [
    "DEFAULT_PRESET",
    "PRESET_CONFIGS",
    "PromptConfig",
    "PromptManager",
    "generate_system_prompt",
    "get_schedule_prompt",
    "preset_names",
]
