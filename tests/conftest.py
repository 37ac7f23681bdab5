"""
Pytest Configuration and Fixtures for the Hair Root Engine Tests
================================================================

Purpose
-------
Reusable fixtures for config, services, game state and battle
participants.

Architecture Notes
------------------
- Services run against the real YAML balance files in ``config/`` so tests
  pin the shipped numbers; individual tests override values with
  ``config.set``
- Randomness always comes from a seeded ``random.Random``
- The event bus is a ``mocker`` mock unless a test needs real delivery
- Integration tests use an in-memory aiosqlite database
"""

from __future__ import annotations

import os
import random
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

import pytest

from hairroot.core.config.config import Config
from hairroot.core.config.manager import ConfigManager
from hairroot.core.event.bus import EventBus
from hairroot.core.logging.logger import get_logger
from hairroot.modules.catalog.models import (
    CreatureDefinition,
    Element,
    Rarity,
    Skill,
    SkillType,
    StatBlock,
)
from hairroot.modules.catalog.service import CatalogService
from hairroot.modules.combat.engine import SkillExecutor
from hairroot.modules.combat.rewards import BattleRewardService
from hairroot.modules.combat.service import BattleService
from hairroot.modules.combat.shared.effects import EffectExecutor
from hairroot.modules.combat.shared.elements import ElementResolver
from hairroot.modules.combat.shared.formulas import CombatFormulas
from hairroot.modules.combat.shared.participant import BattleParticipant, ParticipantFactory
from hairroot.modules.gacha.service import GachaService
from hairroot.modules.progression.service import ProgressionService
from hairroot.modules.rank.service import RankService
from hairroot.modules.state.service import GameStateService
from hairroot.modules.state.store import InMemoryStateStore

logger = get_logger(__name__)

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure pytest environment."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["LOG_LEVEL"] = "DEBUG"
    Config.load()


# ============================================================================
# CORE FIXTURES
# ============================================================================


@pytest.fixture
def config() -> ConfigManager:
    """Real balance config loaded from the repository ``config/`` directory."""
    return ConfigManager.from_directory(CONFIG_DIR)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def mock_event_bus(mocker):
    """
    Mock EventBus for unit tests.

    Uses: tests asserting which domain events were published
    """
    mock_bus = mocker.MagicMock(spec=EventBus)
    mock_bus.publish = mocker.MagicMock(return_value=[])
    return mock_bus


@pytest.fixture
def mock_config_manager(mocker):
    """ConfigManager double that answers every key with its default."""
    mock_config = mocker.MagicMock(spec=ConfigManager)
    mock_config.get = mocker.MagicMock(side_effect=lambda key, default=None: default)
    return mock_config


# ============================================================================
# DOMAIN SERVICES
# ============================================================================


@pytest.fixture
def catalog(config) -> CatalogService:
    return CatalogService(config)


@pytest.fixture
def progression(config, mock_event_bus) -> ProgressionService:
    return ProgressionService(config, mock_event_bus)


@pytest.fixture
def ranks(config) -> RankService:
    return RankService(config)


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def state(catalog, progression, ranks, config, mock_event_bus, store) -> GameStateService:
    return GameStateService(catalog, progression, ranks, config, mock_event_bus, store=store)


@pytest.fixture
def gacha(catalog, config, mock_event_bus, rng) -> GachaService:
    return GachaService(catalog, config, mock_event_bus, rng=rng)


@pytest.fixture
def battles(catalog, progression, ranks, config, mock_event_bus, rng) -> BattleService:
    return BattleService(catalog, progression, ranks, config, mock_event_bus, rng=rng)


@pytest.fixture
def rewards(state, catalog, config, mock_event_bus) -> BattleRewardService:
    return BattleRewardService(state, catalog, config, mock_event_bus)


# ============================================================================
# COMBAT BUILDING BLOCKS
# ============================================================================


@pytest.fixture
def elements(config) -> ElementResolver:
    return ElementResolver(config)


@pytest.fixture
def formulas(elements, config) -> CombatFormulas:
    return CombatFormulas(elements, config)


@pytest.fixture
def effects(config) -> EffectExecutor:
    return EffectExecutor(config)


@pytest.fixture
def factory(progression, config) -> ParticipantFactory:
    return ParticipantFactory(progression, config)


@pytest.fixture
def executor(formulas, effects, rng) -> SkillExecutor:
    return SkillExecutor(formulas, effects, rng)


# ============================================================================
# FACTORIES
# ============================================================================


def make_skill(
    skill_id: str = "test-strike",
    skill_type: SkillType = SkillType.ATTACK,
    damage: int = 100,
    cooldown: int = 2,
    **kwargs,
) -> Skill:
    return Skill(
        id=skill_id,
        name=kwargs.pop("name", skill_id),
        type=skill_type,
        damage=damage,
        cooldown=cooldown,
        **kwargs,
    )


def make_definition(
    creature_id: int = 900,
    element: Element = Element.FIRE,
    power: int = 50,
    speed: int = 50,
    grip: int = 50,
    skills: Sequence[Skill] = (),
    rarity: Rarity = Rarity.COMMON,
) -> CreatureDefinition:
    return CreatureDefinition(
        id=creature_id,
        name=f"test-{creature_id}",
        rarity=rarity,
        element=element,
        power=power,
        speed=speed,
        grip=grip,
        skills=tuple(skills),
    )


@pytest.fixture
def make_participant() -> Callable[..., BattleParticipant]:
    """
    Build a participant with exact stats (no level scaling).

    Usage:
        hero = make_participant(1, power=50, skills=[make_skill()])
    """

    def _make(
        participant_id: int,
        team: Optional[int] = None,
        element: Element = Element.FIRE,
        power: int = 50,
        speed: int = 50,
        grip: int = 50,
        hp: int = 500,
        skills: Sequence[Skill] = (),
        is_npc: bool = True,
        creature_id: Optional[int] = None,
        damage_multipliers: Optional[Dict[str, float]] = None,
    ) -> BattleParticipant:
        all_skills = tuple(skills) or (make_skill(),)
        definition = make_definition(
            900 + participant_id, element, power, speed, grip, all_skills
        )
        return BattleParticipant(
            id=participant_id,
            name=f"p{participant_id}",
            definition=definition,
            level=1,
            stats=StatBlock(power=power, speed=speed, grip=grip),
            max_hp=hp,
            team=participant_id if team is None else team,
            is_npc=is_npc,
            creature_id=creature_id,
            skills=all_skills,
            damage_multipliers=dict(damage_multipliers or {}),
        )

    return _make


@pytest.fixture
def own(state, catalog) -> Callable[..., None]:
    """Add catalog creatures to the state: ``own(1, 2, count=3, level=5)``."""

    def _own(*creature_ids: int, count: int = 1, level: int = 1) -> None:
        with state.transaction() as draft:
            for creature_id in creature_ids:
                holding = draft.add_copy(catalog.require(creature_id), count)
                holding.level = level

    return _own
