"""Tests for settings loading, validation and run snapshots."""

import pytest
import yaml

from auto_anki.core.config import Settings, load_config, save_config
from auto_anki.core.exceptions import ConfigError
from auto_anki.core.models import SamplingOptions


class TestSettingsFromDict:
    """Tests for building settings from config data."""

    def test_defaults(self):
        settings = Settings.from_dict({})
        assert settings.anki_connect_port == 8765
        assert settings.deck_name == "Default"
        assert settings.model == "gpt-3.5-turbo"
        assert settings.defaults.file.num_questions == 5
        assert settings.defaults.selection.num_questions == 1
        assert settings.sampling == SamplingOptions()

    def test_full_config(self):
        settings = Settings.from_dict({
            "api_key": "sk-abcdefgh",
            "deck_name": "Biology",
            "anki_connect_port": 9000,
            "sampling": {"temperature": 0.3, "max_tokens_per_question": 200},
            "defaults": {"file": {"num_questions": 10, "num_alternatives": 3}},
            "log_level": "debug",
        })
        assert settings.api_key == "sk-abcdefgh"
        assert settings.deck_name == "Biology"
        assert settings.anki_connect_port == 9000
        assert settings.sampling.temperature == 0.3
        assert settings.sampling.top_p == 1.0
        assert settings.sampling.max_tokens_per_question == 200
        assert settings.defaults.file.num_alternatives == 3
        assert settings.defaults.selection.num_questions == 1
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize("key, value", [
        ("temperature", 2.5),
        ("temperature", -0.1),
        ("top_p", 1.5),
        ("frequency_penalty", -3),
        ("presence_penalty", 2.1),
        ("max_tokens_per_question", 0),
        ("temperature", "hot"),
    ])
    def test_sampling_out_of_range(self, key, value):
        """Test that sampling options outside their range are refused."""
        with pytest.raises(ConfigError) as exc_info:
            Settings.from_dict({"sampling": {key: value}})
        assert exc_info.value.config_key == f"sampling.{key}"

    def test_negative_question_count(self):
        with pytest.raises(ConfigError):
            Settings.from_dict({"defaults": {"file": {"num_questions": -1}}})

    def test_fractional_question_count(self):
        with pytest.raises(ConfigError):
            Settings.from_dict({"defaults": {"file": {"num_questions": 2.5}}})

    def test_zero_port(self):
        with pytest.raises(ConfigError):
            Settings.from_dict({"anki_connect_port": 0})

    def test_blank_deck(self):
        with pytest.raises(ConfigError):
            Settings.from_dict({"deck_name": "  "})

    def test_to_dict_hides_key(self):
        settings = Settings.from_dict({"api_key": "sk-secret-value"})
        assert "api_key" not in settings.to_dict()
        assert settings.to_dict(include_secret=True)["api_key"] == "sk-secret-value"

    def test_round_trip(self):
        settings = Settings.from_dict({"deck_name": "Physics", "sampling": {"top_p": 0.5}})
        again = Settings.from_dict(settings.to_dict())
        assert again.deck_name == "Physics"
        assert again.sampling == settings.sampling


class TestApiKeyIdentifier:
    """Tests for the displayable key identifier."""

    def test_long_key(self):
        settings = Settings(api_key="sk-1234567890abcd")
        assert settings.api_key_identifier == "sk-...abcd"

    def test_short_key(self):
        assert Settings(api_key="abc").api_key_identifier == "xxxx"

    def test_no_key(self):
        assert Settings().api_key_identifier == "NO_KEY_ENTERED"


class TestLoadConfig:
    """Tests for loading settings from YAML files."""

    @pytest.fixture(autouse=True)
    def isolated(self, tmp_path, monkeypatch):
        """Keep the user's real config and key out of the tests."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text(yaml.safe_dump({"deck_name": "Chemistry"}))
        assert load_config(str(path)).deck_name == "Chemistry"

    def test_local_file(self, tmp_path):
        (tmp_path / "auto_anki.yaml").write_text("deck_name: History\n")
        assert load_config().deck_name == "History"

    def test_no_file_gives_defaults(self):
        settings = load_config()
        assert settings.deck_name == "Default"
        assert settings.api_key is None

    def test_env_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env-1234")
        assert load_config().api_key == "sk-from-env-1234"
        assert load_config(use_env=False).api_key is None

    def test_file_key_wins_over_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env-1234")
        (tmp_path / "auto_anki.yaml").write_text("api_key: sk-from-file-1234\n")
        assert load_config().api_key == "sk-from-file-1234"

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("deck_name: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        save_config(Settings.from_dict({"api_key": "sk-saved-1234", "deck_name": "Art"}), str(path))
        settings = load_config(str(path))
        assert settings.api_key == "sk-saved-1234"
        assert settings.deck_name == "Art"


class TestSnapshot:
    """Tests for freezing settings into a run snapshot."""

    @pytest.fixture
    def settings(self):
        return Settings.from_dict({
            "api_key": "sk-abcdefgh",
            "deck_name": "Biology",
            "defaults": {
                "file": {"num_questions": 5, "num_alternatives": 2},
                "selection": {"num_questions": 1, "num_alternatives": 0},
            },
        })

    def test_file_defaults(self, settings):
        snapshot = settings.snapshot("Some notes")
        assert snapshot.source_text == "Some notes"
        assert snapshot.num_questions == 5
        assert snapshot.num_alternatives == 2
        assert snapshot.deck_name == "Biology"
        assert snapshot.api_key == "sk-abcdefgh"
        assert snapshot.control_api_port == 8765

    def test_selection_defaults(self, settings):
        snapshot = settings.snapshot("Selected text", selection=True)
        assert snapshot.num_questions == 1
        assert snapshot.num_alternatives == 0

    def test_overrides(self, settings):
        snapshot = settings.snapshot(
            "Notes", deck_name="Default", num_questions=3, control_api_port=9999
        )
        assert snapshot.deck_name == "Default"
        assert snapshot.num_questions == 3
        assert snapshot.control_api_port == 9999

    def test_none_overrides_ignored(self, settings):
        snapshot = settings.snapshot("Notes", deck_name=None, num_questions=None)
        assert snapshot.deck_name == "Biology"
        assert snapshot.num_questions == 5

    def test_invalid_override(self, settings):
        with pytest.raises(ConfigError):
            settings.snapshot("Notes", num_alternatives=-1)

    def test_unknown_override(self, settings):
        with pytest.raises(ConfigError):
            settings.snapshot("Notes", colour="blue")

    def test_zero_questions_allowed(self, settings):
        """Zero is a valid setting; the pipeline refuses it, not the config."""
        assert settings.snapshot("Notes", num_questions=0).num_questions == 0

    @pytest.mark.parametrize("deck", ["", "   "])
    def test_blank_deck_override(self, settings, deck):
        with pytest.raises(ConfigError) as exc_info:
            settings.snapshot("Notes", deck_name=deck)
        assert exc_info.value.config_key == "deck_name"
