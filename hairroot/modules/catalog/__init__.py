"""Creature catalog: immutable definitions and the registry service."""

from hairroot.modules.catalog.models import (
    CreatureDefinition,
    DotEffect,
    Element,
    Rarity,
    Skill,
    SkillType,
    StatBlock,
)
from hairroot.modules.catalog.service import CatalogService

__all__ = [
    "CatalogService",
    "CreatureDefinition",
    "DotEffect",
    "Element",
    "Rarity",
    "Skill",
    "SkillType",
    "StatBlock",
]
