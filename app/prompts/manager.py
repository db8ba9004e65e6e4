"""System prompt generation and per-conversation prompt state."""

from datetime import UTC, datetime
from typing import Any

from app.prompts.presets import DEFAULT_PRESET, PromptConfig, get_preset, preset_names
from app.prompts.templates import (
    BASE_PROMPTS,
    DOMAIN_EXTENSIONS,
    ROLEPLAY_MARKERS,
    ROLEPLAY_PROMPTS,
    SCHEDULE_PROMPT,
    SECTION_HEADINGS,
    TASK_INSTRUCTIONS,
    TOOL_USAGE_NOTES,
)
from app.utils.errors import UnknownPresetError
from app.utils.logging import get_logger

logger = get_logger(__name__)


def get_schedule_prompt(now: datetime | None = None) -> str:
    """Scheduling hint anchored at the given time."""
    now = now or datetime.now(UTC)
    return SCHEDULE_PROMPT.format(now=now.strftime("%a, %d %b %Y %H:%M:%S %Z").strip())


def find_roleplay_script(features: list[str]) -> str | None:
    """Return the role-play script selected by the first matching feature."""
    for feature in features:
        for marker, script_name in ROLEPLAY_MARKERS.items():
            if marker in feature:
                return ROLEPLAY_PROMPTS[script_name]
    return None


def generate_system_prompt(config: PromptConfig | None = None, now: datetime | None = None) -> str:
    """Compose a system prompt from a configuration.

    A role-play feature replaces the whole prompt with its script; nothing else
    in the configuration is used in that case.
    """
    config = config or PromptConfig()

    roleplay = find_roleplay_script(config.features)
    if roleplay is not None:
        return roleplay

    language = config.language
    base = BASE_PROMPTS[language][config.personality]
    headings = SECTION_HEADINGS[language]
    full_stop = "。" if language == "zh" else "."

    sections = [f"{base['identity']}{full_stop}"]
    sections.append("\n".join([headings["capabilities"], *(f"- {item}" for item in base["capabilities"])]))
    sections.append("\n".join([headings["tools"], *(f"- {item}" for item in TOOL_USAGE_NOTES[language])]))
    sections.append(get_schedule_prompt(now))

    if config.domain and config.domain != "general" and config.domain in DOMAIN_EXTENSIONS:
        extension = DOMAIN_EXTENSIONS[config.domain][language]
        separator = "、" if language == "zh" else ", "
        sections.append(
            "\n".join(
                [
                    headings["domain"],
                    extension["additional"],
                    f"{headings['domain_tools']}{separator.join(extension['tools'])}",
                ]
            )
        )

    sections.append("\n".join([headings["style"], *(f"- {item}" for item in base["style"])]))

    if config.features:
        sections.append("\n".join([headings["features"], *(f"- {item}" for item in config.features)]))

    sections.append(TASK_INSTRUCTIONS[language])

    return "\n\n".join(sections)


class PromptManager:
    """Holds the prompt configuration of one conversation."""

    def __init__(self, preset: str = DEFAULT_PRESET):
        config = get_preset(preset)
        if config is None:
            raise UnknownPresetError(preset, preset_names())
        self.config = config
        self.current_preset: str | None = preset

    def get_system_prompt(self, now: datetime | None = None) -> str:
        return generate_system_prompt(self.config, now)

    def reset_to_preset(self, name: str) -> None:
        """Replace the configuration wholesale with a preset.

        Raises:
            UnknownPresetError: If no preset has that name
        """
        config = get_preset(name)
        if config is None:
            raise UnknownPresetError(name, preset_names())
        logger.info(f"Switching prompt preset {self.current_preset} -> {name}")
        self.config = config
        self.current_preset = name

    switch_preset = reset_to_preset

    def update_config(self, **changes: Any) -> None:
        """Apply a partial update; the result no longer matches a preset."""
        self.config = PromptConfig.model_validate({**self.config.model_dump(), **changes})
        self.current_preset = None

    def add_feature(self, feature: str) -> None:
        self.config.features.append(feature)

    def remove_feature(self, feature: str) -> None:
        self.config.features = [f for f in self.config.features if f != feature]
