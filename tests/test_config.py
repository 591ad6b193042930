"""Tests for EngineSettings."""

import pytest
from pydantic import ValidationError

from dungeon_arena.config import EngineSettings


class TestEngineSettings:
    def test_defaults(self):
        settings = EngineSettings()

        assert settings.session_idle_timeout_s == 900
        assert settings.flee_chance == 0.5
        assert settings.player_crit_chance == pytest.approx(0.15)
        assert settings.enemy_crit_chance == pytest.approx(0.12)
        assert settings.default_player_class == "warrior"
        assert settings.default_enemy_type == "goblin"

    def test_from_env_overrides(self):
        settings = EngineSettings.from_env({
            "DUNGEON_ARENA_FLEE_CHANCE": "0.25",
            "DUNGEON_ARENA_SESSION_IDLE_TIMEOUT_S": "60",
            "UNRELATED": "x",
        })

        assert settings.flee_chance == 0.25
        assert settings.session_idle_timeout_s == 60
        assert settings.enemy_crit_chance == pytest.approx(0.12)

    def test_from_env_empty(self):
        assert EngineSettings.from_env({}) == EngineSettings()

    def test_bad_env_value(self):
        with pytest.raises(ValidationError):
            EngineSettings.from_env({"DUNGEON_ARENA_FLEE_CHANCE": "1.5"})

    def test_frozen(self):
        settings = EngineSettings()
        with pytest.raises(ValidationError):
            settings.flee_chance = 0.9
