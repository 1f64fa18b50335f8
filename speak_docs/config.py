"""Configuration resolution: CLI flags > environment > speaker-config.yaml > defaults."""

import logging
import os
from dataclasses import dataclass

import yaml

from speak_docs.constants import (
    CONFIG_FILENAME,
    DEFAULT_COMPONENT_IMPORT,
    DEFAULT_COMPONENT_NAME,
    DEFAULT_PATH_PREFIX,
    DEFAULT_PATTERN,
    DEFAULT_S3_REGION,
    TTS_RATE,
)
from speak_docs.models import Voice

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Required settings are missing or inconsistent."""


@dataclass(frozen=True)
class Settings:
    voice_ids: tuple[str, ...] = ()
    voice_names: tuple[str, ...] = ()
    s3_bucket: str = ""
    s3_region: str = DEFAULT_S3_REGION
    s3_endpoint: str | None = None
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_public_url: str = ""
    s3_path_prefix: str = DEFAULT_PATH_PREFIX
    component_name: str = DEFAULT_COMPONENT_NAME
    component_import: str = DEFAULT_COMPONENT_IMPORT
    pattern: str = DEFAULT_PATTERN
    rate: str = TTS_RATE
    branch_paths: bool = False
    dry_run: bool = False
    verbose: bool = False

    @property
    def voices(self) -> list[Voice]:
        return [Voice(id=i, name=n) for i, n in zip(self.voice_ids, self.voice_names)]


def load_speaker_config(directory: str) -> dict:
    """Load speaker-config.yaml if it exists.

    Returns the config dict, or an empty dict if not found or malformed.
    """
    config_path = os.path.join(directory, CONFIG_FILENAME)
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError:
        logger.warning("Malformed config file: %s, ignoring", config_path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, ignoring", config_path)
        return {}
    return data


def _split(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def _resolve_voices(options, environ: dict, yaml_config: dict) -> tuple[list[str], list[str]]:
    cli_ids = getattr(options, "voices", None)
    cli_names = getattr(options, "voice_names", None)
    if cli_ids:
        ids = _split(cli_ids)
        names = _split(cli_names) if cli_names else None
    elif environ.get("SPEAK_VOICES"):
        ids = _split(environ["SPEAK_VOICES"])
        env_names = cli_names or environ.get("SPEAK_VOICE_NAMES")
        names = _split(env_names) if env_names else None
    elif isinstance(yaml_config.get("voices"), dict):
        voices = yaml_config["voices"]
        ids = [str(k) for k in voices]
        names = [str(v) for v in voices.values()]
    else:
        return [], []

    if names is None:
        names = [f"Voice {i + 1}" for i in range(len(ids))]
    if len(ids) != len(names):
        raise ConfigError("Number of voice IDs must match number of voice names")
    return ids, names


def resolve_config(
    options,
    directory: str,
    environ: dict | None = None,
    require_voices: bool = True,
    require_storage: bool = True,
) -> Settings:
    """Merge CLI options (an argparse namespace), environment and YAML config.

    Raises ConfigError listing every missing setting.
    """
    if environ is None:
        environ = dict(os.environ)
    yaml_config = load_speaker_config(directory)
    component = yaml_config.get("component") or {}
    if not isinstance(component, dict):
        component = {}

    def pick(option: str, env_var: str | None = None, default=None):
        value = getattr(options, option, None)
        if value:
            return value
        if env_var and environ.get(env_var):
            return environ[env_var]
        return default

    voice_ids, voice_names = _resolve_voices(options, environ, yaml_config)
    if require_voices and not voice_ids:
        raise ConfigError(
            "Voices must be specified via --voices, SPEAK_VOICES or in " + CONFIG_FILENAME
        )

    settings = Settings(
        voice_ids=tuple(voice_ids),
        voice_names=tuple(voice_names),
        s3_bucket=pick("s3_bucket", "S3_BUCKET", ""),
        s3_region=pick("s3_region", "S3_REGION", DEFAULT_S3_REGION),
        s3_endpoint=pick("s3_endpoint", "S3_ENDPOINT"),
        s3_access_key_id=pick("s3_access_key_id", "S3_ACCESS_KEY_ID", ""),
        s3_secret_access_key=pick("s3_secret_access_key", "S3_SECRET_ACCESS_KEY", ""),
        s3_public_url=pick("s3_public_url", "S3_PUBLIC_URL", ""),
        s3_path_prefix=pick("s3_path_prefix", default=DEFAULT_PATH_PREFIX),
        component_name=pick("component_name", default=component.get("name") or DEFAULT_COMPONENT_NAME),
        component_import=pick("component_import", default=component.get("import") or DEFAULT_COMPONENT_IMPORT),
        pattern=pick("pattern", default=DEFAULT_PATTERN),
        rate=pick("rate", default=TTS_RATE),
        branch_paths=bool(getattr(options, "branch_paths", False)),
        dry_run=bool(getattr(options, "dry_run", False)),
        verbose=bool(getattr(options, "verbose", False)),
    )

    if require_storage:
        missing = []
        if not settings.s3_bucket:
            missing.append("S3_BUCKET (--s3-bucket or env var)")
        if not settings.s3_access_key_id:
            missing.append("S3_ACCESS_KEY_ID (--s3-access-key-id or env var)")
        if not settings.s3_secret_access_key:
            missing.append("S3_SECRET_ACCESS_KEY (--s3-secret-access-key or env var)")
        if not settings.s3_public_url:
            missing.append("S3_PUBLIC_URL (--s3-public-url or env var)")
        if missing:
            raise ConfigError(
                "Missing required configuration:\n  - " + "\n  - ".join(missing)
                + "\n\nSet these via CLI flags or environment variables."
            )
    return settings
