"""Configuration management for auto-anki.

Settings are the persisted, user-editable side of configuration. A
ConfigSnapshot is cut from them once per export run.
"""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Any
import os
import yaml

from .models import ConfigSnapshot, SamplingOptions
from .exceptions import ConfigError

ANKI_CONNECT_DEFAULT_PORT = 8765

# (min, max) for each sampling option
SAMPLING_RANGES = {
    "temperature": (0.0, 2.0),
    "top_p": (0.0, 1.0),
    "frequency_penalty": (-2.0, 2.0),
    "presence_penalty": (-2.0, 2.0),
}


@dataclass
class QuestionDefaults:
    """How many questions/alternatives to ask for by default."""
    num_questions: int = 5
    num_alternatives: int = 0


@dataclass
class ExportDefaults:
    """Separate defaults for whole files and for text selections."""
    file: QuestionDefaults = field(default_factory=QuestionDefaults)
    selection: QuestionDefaults = field(
        default_factory=lambda: QuestionDefaults(num_questions=1, num_alternatives=0)
    )


@dataclass
class Settings:
    """Main configuration for auto-anki."""
    # Provider settings
    api_key: Optional[str] = None
    model: str = "gpt-3.5-turbo"
    api_base: Optional[str] = None
    timeout: float = 60.0
    sampling: SamplingOptions = field(default_factory=SamplingOptions)
    prompt_file: Optional[str] = None

    # Anki settings
    anki_connect_port: int = ANKI_CONNECT_DEFAULT_PORT
    deck_name: str = "Default"

    defaults: ExportDefaults = field(default_factory=ExportDefaults)

    # Logging
    log_level: str = "INFO"

    @property
    def api_key_identifier(self) -> str:
        """Short, non-secret identifier of the stored key for display."""
        if not self.api_key:
            return "NO_KEY_ENTERED"
        if len(self.api_key) >= 7:
            return f"{self.api_key[:3]}...{self.api_key[-4:]}"
        return "xxxx"

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """Create settings from a dictionary, validating every range."""
        settings = cls()

        if "api_key" in data:
            settings.api_key = data["api_key"] or None
        settings.model = str(data.get("model", settings.model))
        settings.api_base = data.get("api_base")
        settings.timeout = _positive_number(data.get("timeout", settings.timeout), "timeout")
        settings.prompt_file = data.get("prompt_file")
        settings.anki_connect_port = _positive_int(
            data.get("anki_connect_port", ANKI_CONNECT_DEFAULT_PORT), "anki_connect_port"
        )
        settings.deck_name = str(data.get("deck_name", settings.deck_name))
        if not settings.deck_name.strip():
            raise ConfigError("deck_name must not be empty", config_key="deck_name")

        if "sampling" in data:
            sampling_data = data["sampling"] or {}
            values = {}
            for key, (low, high) in SAMPLING_RANGES.items():
                default = getattr(settings.sampling, key)
                values[key] = _bounded(sampling_data.get(key, default), low, high, f"sampling.{key}")
            values["max_tokens_per_question"] = _positive_int(
                sampling_data.get("max_tokens_per_question", settings.sampling.max_tokens_per_question),
                "sampling.max_tokens_per_question",
            )
            settings.sampling = SamplingOptions(**values)

        if "defaults" in data:
            defaults_data = data["defaults"] or {}
            for scope in ("file", "selection"):
                scope_data = defaults_data.get(scope) or {}
                current = getattr(settings.defaults, scope)
                setattr(settings.defaults, scope, QuestionDefaults(
                    num_questions=_non_negative_int(
                        scope_data.get("num_questions", current.num_questions),
                        f"defaults.{scope}.num_questions",
                    ),
                    num_alternatives=_non_negative_int(
                        scope_data.get("num_alternatives", current.num_alternatives),
                        f"defaults.{scope}.num_alternatives",
                    ),
                ))

        settings.log_level = str(data.get("log_level", "INFO")).upper()

        return settings

    def to_dict(self, include_secret: bool = False) -> dict:
        """Convert settings to dictionary. The API key is left out unless asked for."""
        data = {
            "model": self.model,
            "api_base": self.api_base,
            "timeout": self.timeout,
            "prompt_file": self.prompt_file,
            "anki_connect_port": self.anki_connect_port,
            "deck_name": self.deck_name,
            "sampling": {
                "temperature": self.sampling.temperature,
                "top_p": self.sampling.top_p,
                "frequency_penalty": self.sampling.frequency_penalty,
                "presence_penalty": self.sampling.presence_penalty,
                "max_tokens_per_question": self.sampling.max_tokens_per_question,
            },
            "defaults": {
                scope: {
                    "num_questions": getattr(self.defaults, scope).num_questions,
                    "num_alternatives": getattr(self.defaults, scope).num_alternatives,
                }
                for scope in ("file", "selection")
            },
            "log_level": self.log_level,
        }
        if include_secret:
            data["api_key"] = self.api_key
        return data

    def snapshot(
        self,
        source_text: str,
        selection: bool = False,
        **overrides: Any,
    ) -> ConfigSnapshot:
        """Freeze the settings for one export run.

        Args:
            source_text: Note text to generate questions from
            selection: Use the text-selection defaults instead of the file defaults
            **overrides: Per-run values (num_questions, num_alternatives,
                deck_name, control_api_port, model); None values are ignored

        Raises:
            ConfigError: If an override is out of range
        """
        defaults = self.defaults.selection if selection else self.defaults.file
        overrides = {k: v for k, v in overrides.items() if v is not None}

        snapshot = ConfigSnapshot(
            source_text=source_text,
            num_questions=defaults.num_questions,
            num_alternatives=defaults.num_alternatives,
            api_key=self.api_key or "",
            deck_name=self.deck_name,
            control_api_port=self.anki_connect_port,
            sampling=self.sampling,
            model=self.model,
            api_base=self.api_base,
            timeout=self.timeout,
        )
        try:
            snapshot = replace(snapshot, **overrides)
        except TypeError as e:
            raise ConfigError(f"Unknown run option: {e}")

        _non_negative_int(snapshot.num_questions, "num_questions")
        _non_negative_int(snapshot.num_alternatives, "num_alternatives")
        _positive_int(snapshot.control_api_port, "control_api_port")
        if not snapshot.deck_name.strip():
            raise ConfigError("deck_name must not be empty", config_key="deck_name")
        return snapshot


def _positive_int(value: Any, key: str) -> int:
    number = _non_negative_int(value, key)
    if number == 0:
        raise ConfigError(f"{key} must be a positive integer, got {value!r}", config_key=key)
    return number


def _non_negative_int(value: Any, key: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer, got {value!r}", config_key=key)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be an integer, got {value!r}", config_key=key)
    if number != value and str(number) != str(value).strip():
        raise ConfigError(f"{key} must be an integer, got {value!r}", config_key=key)
    if number < 0:
        raise ConfigError(f"{key} must not be negative, got {value!r}", config_key=key)
    return number


def _positive_number(value: Any, key: str) -> float:
    number = _bounded(value, 0.0, float("inf"), key)
    if number == 0:
        raise ConfigError(f"{key} must be positive, got {value!r}", config_key=key)
    return number


def _bounded(value: Any, low: float, high: float, key: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number, got {value!r}", config_key=key)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{key} must be a number, got {value!r}", config_key=key)
    if not low <= number <= high:
        raise ConfigError(f"{key} must be between {low} and {high}, got {number}", config_key=key)
    return number


def default_search_paths() -> list[Path]:
    return [
        Path("./auto_anki.yaml"),
        Path.home() / ".config" / "auto_anki" / "config.yaml",
    ]


def find_config(config_path: Optional[str] = None) -> Optional[Path]:
    """Return the first existing config file, or None."""
    search_paths = []

    if config_path:
        search_paths.append(Path(config_path))

    search_paths.extend(default_search_paths())

    for path in search_paths:
        if path.exists():
            return path
    return None


def load_config(config_path: Optional[str] = None, use_env: bool = True) -> Settings:
    """Load settings from YAML file or use defaults.

    Searches for config in:
    1. Provided path
    2. ./auto_anki.yaml
    3. ~/.config/auto_anki/config.yaml
    4. Falls back to defaults

    With `use_env`, OPENAI_API_KEY fills in a missing API key.
    """
    settings = _read_config(find_config(config_path))
    if use_env and not settings.api_key:
        settings.api_key = os.environ.get("OPENAI_API_KEY") or None
    return settings


def _read_config(path: Optional[Path]) -> Settings:
    if path is not None:
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file: {e}")
        except OSError as e:
            raise ConfigError(f"Error loading config from {path}: {e}")
        if data is not None and not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return Settings.from_dict(data or {})

    # Return default settings
    return Settings.from_dict({})


def save_config(settings: Settings, path: str) -> None:
    """Save settings to YAML file, including the API key."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(settings.to_dict(include_secret=True), f, default_flow_style=False)
