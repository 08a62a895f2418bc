"""Agent skill catalogs (Skills.sh and SkillsMP)."""

from .client import SKILL_PROVIDERS, SkillRecord, SkillsClient, SkillsMPClient

__all__ = ["SKILL_PROVIDERS", "SkillRecord", "SkillsClient", "SkillsMPClient"]
