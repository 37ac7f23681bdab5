"""
Unit Tests for NpcGenerator
===========================

Test Coverage
-------------
- Id and name assignment
- Strength multiplier applied to stats and hp
- Boss-only creatures never generated
- Determinism under a seeded rng
"""

import random

import pytest

from hairroot.modules.catalog.models import Rarity
from hairroot.modules.combat.shared.participant import ParticipantFactory
from hairroot.modules.npc.generator import NpcGenerator
from hairroot.modules.shared.formulas import floor_int


@pytest.fixture
def npc_factory(catalog, progression, config):
    def _make(seed=99):
        factory = ParticipantFactory(progression, config)
        return NpcGenerator(catalog, factory, config, random.Random(seed))

    return _make


@pytest.mark.unit
@pytest.mark.domain
class TestNpcGenerator:
    """Test opponent generation."""

    def test_ids_offset_and_names_cycle(self, npc_factory):
        """Test participant ids and default name pool cycling."""
        # Arrange
        generator = npc_factory()

        # Act
        first = generator.generate(1, "bronze", 1.0)
        eighth = generator.generate(8, "bronze", 1.0)

        # Assert
        assert first.id == 101
        assert first.team == 101
        assert first.is_npc is True
        assert first.creature_id is None
        assert first.name == "ヘアハンター"
        assert eighth.name == "ヘアハンター"

    def test_team_and_name_pool(self, npc_factory):
        """Test explicit team and the team royale name pool."""
        npc = npc_factory().generate(0, "bronze", 1.0, team=2, name_pool="team_royale")

        assert npc.team == 2
        assert npc.name == "ハゲ田"

    def test_level_range(self, npc_factory):
        """Test that levels stay within the configured range."""
        generator = npc_factory()

        levels = {generator.generate(i, "gold", 1.0).level for i in range(200)}

        assert levels <= set(range(1, 6))

    def test_boss_never_generated(self, npc_factory):
        """Test that boss-only entries are excluded."""
        generator = npc_factory()

        ids = {generator.generate(i, "legend", 1.0).definition.id for i in range(500)}

        assert 53 not in ids

    def test_multiplier_scales_stats_and_hp(self, npc_factory, progression):
        """Test that a stronger multiplier yields stronger NPCs from the same roll."""
        # Arrange
        weak = npc_factory(seed=5).generate(1, "silver", 1.0)
        strong = npc_factory(seed=5).generate(1, "silver", 1.5)

        # Assert
        assert strong.definition.id == weak.definition.id
        assert strong.level == weak.level
        assert strong.stats.power >= weak.stats.power
        assert strong.max_hp > weak.max_hp
        expected_hp = floor_int(progression.max_hp(strong.stats) * 1.5)
        assert strong.max_hp == expected_hp

    def test_seeded_generation_is_deterministic(self, npc_factory):
        """Test identical output for identical seeds."""
        a = [npc_factory(seed=3).generate(i, "bronze", 1.0).to_dict() for i in range(1, 4)]
        b = [npc_factory(seed=3).generate(i, "bronze", 1.0).to_dict() for i in range(1, 4)]

        assert a == b

    def test_unlisted_rarity_weighs_one(self, npc_factory):
        """Test default weights."""
        generator = npc_factory()

        assert generator.rarity_weight("bronze", Rarity.COMMON) == 3
        assert generator.rarity_weight("bronze", Rarity.COSMIC) == 1
