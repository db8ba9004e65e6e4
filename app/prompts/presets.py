"""Prompt configuration model and named presets."""

from typing import Literal

from pydantic import BaseModel, Field

Language = Literal["zh", "en"]
Personality = Literal["professional", "friendly", "casual", "technical", "creative"]
Domain = Literal["general", "customer-service", "education", "development"]


class PromptConfig(BaseModel):
    """Inputs to system prompt composition."""

    language: Language = "zh"
    personality: Personality = "friendly"
    domain: Domain | None = None
    features: list[str] = Field(default_factory=list)


DEFAULT_PRESET = "general"

PRESET_CONFIGS: dict[str, PromptConfig] = {
    "general": PromptConfig(
        language="zh",
        personality="friendly",
        features=["支持多轮对话", "提供实用建议", "友好交流"],
    ),
    "StoneMonkey": PromptConfig(
        language="zh",
        personality="creative",
        features=["西游记角色扮演", "古典神话风格", "互动式剧情", "原著情节再现"],
    ),
    "HarryPotter": PromptConfig(
        language="zh",
        personality="creative",
        features=["哈利波特角色扮演", "魔法世界体验", "霍格沃茨冒险", "互动式剧情"],
    ),
    "customerService": PromptConfig(
        language="zh",
        personality="professional",
        domain="customer-service",
        features=["客户问题解决", "服务质量保证", "耐心细致服务"],
    ),
    "technical": PromptConfig(
        language="zh",
        personality="technical",
        domain="development",
        features=["代码分析与优化", "技术方案建议", "最佳实践指导", "调试协助"],
    ),
    "education": PromptConfig(
        language="zh",
        personality="friendly",
        domain="education",
        features=["知识点解释", "学习方法指导", "练习题设计", "学习进度跟踪"],
    ),
    "english": PromptConfig(
        language="en",
        personality="professional",
        features=["English conversation practice", "Grammar assistance", "Writing improvement"],
    ),
    "creative": PromptConfig(
        language="zh",
        personality="casual",
        features=["创意写作", "故事创作", "头脑风暴", "艺术灵感"],
    ),
    "analyst": PromptConfig(
        language="zh",
        personality="professional",
        features=["数据分析", "逻辑推理", "问题诊断", "决策支持"],
    ),
}


def preset_names() -> list[str]:
    """Names of all registered presets, in declaration order."""
    return list(PRESET_CONFIGS)


def get_preset(name: str) -> PromptConfig | None:
    """Return a private copy of a preset, or None if unknown."""
    preset = PRESET_CONFIGS.get(name)
    return preset.model_copy(deep=True) if preset else None
