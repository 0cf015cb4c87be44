"""Configuration loading and validation.

Non-secret settings (directories, merge strategies, concurrency, cache and
staging options) are read from a YAML file, by default
``.feature-sync/config.yaml``. Credentials are never read from that file:
they come from environment variables, loaded from a .env file with
python-dotenv.

Configuration file structure:
    features_dir: "features"
    staging_dir: "featureSyncStage"
    remote_dir: "../remote-mirror/features"
    project_id: "12345"
    environment: "development"
    merge_strategies: ["ignore-space-change", "ignore-all-space", "ignore-blank-lines"]
    validation_concurrency: 5
    cache_enabled: true
    wipe_on_fetch_failure: false
    history_size: 1000
"""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from src.conflicts.models import DEFAULT_MERGE_STRATEGIES, MergeStrategy
from src.core.errors import SyncConfigurationError

logger = logging.getLogger(__name__)

PRODUCTION_ENVIRONMENT = "production"

# Environment variable names
ENV_PROJECT_ID = "ASSERTTHAT_PROJECT_ID"
ENV_ACCESS_KEY = "ASSERTTHAT_ACCESS_KEY"
ENV_SECRET_KEY = "ASSERTTHAT_SECRET_KEY"
ENV_TOKEN = "ASSERTTHAT_TOKEN"
ENV_JIRA_SERVER_URL = "JIRA_SERVER_URL"
ENV_ENVIRONMENT = "FEATURE_SYNC_ENV"

MISSING_AUTH_FIELD = f"{ENV_ACCESS_KEY} & {ENV_SECRET_KEY} (or {ENV_TOKEN})"


@dataclass
class ConfigValidation:
    """Result of SyncConfiguration.validate_configuration().

    Attributes:
        is_valid: True when a project and some form of authentication exist
        missing_fields: Names of the missing settings
    """

    is_valid: bool
    missing_fields: List[str] = field(default_factory=list)


@dataclass
class SyncConfiguration:
    """Settings for one sync run.

    Attributes:
        features_dir: Local, versioned features directory
        staging_dir: Ephemeral staging directory for the remote snapshot
        remote_dir: Mirror directory read by DirectoryTransport (demo data if unset)
        project_id: Remote project identifier
        access_key: Remote access key (paired with secret_key)
        secret_key: Remote secret key
        token: Remote API token (alternative to the key pair)
        jira_server_url: Ticket tracker URL
        environment: Deployment environment; "production" disables demo fallback
        merge_strategies: Automatic merge strategies, in the order tried
        validation_concurrency: Maximum documents validated at once
        cache_enabled: Whether in-memory caching is active
        wipe_on_fetch_failure: Remove a partial download when fetching fails
        history_size: Maximum events kept in the event history
    """

    features_dir: str = "features"
    staging_dir: str = "featureSyncStage"
    remote_dir: Optional[str] = None
    project_id: Optional[str] = None
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    token: Optional[str] = None
    jira_server_url: Optional[str] = None
    environment: str = "development"
    merge_strategies: List[str] = field(default_factory=lambda: list(DEFAULT_MERGE_STRATEGIES))
    validation_concurrency: int = 5
    cache_enabled: bool = True
    wipe_on_fetch_failure: bool = False
    history_size: int = 1000

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == PRODUCTION_ENVIRONMENT

    def validate_configuration(self) -> ConfigValidation:
        """Check that a project id and some form of authentication are set.

        Either an access/secret key pair or a token satisfies authentication.
        """
        missing = []
        if not self.project_id:
            missing.append(ENV_PROJECT_ID)

        has_key_pair = bool(self.access_key and self.secret_key)
        if not has_key_pair and not self.token:
            missing.append(MISSING_AUTH_FIELD)

        return ConfigValidation(is_valid=not missing, missing_fields=missing)

    def with_demo_credentials(self) -> "SyncConfiguration":
        """Return a copy with demo values filling any missing credentials."""
        return replace(
            self,
            project_id=self.project_id or "demo-project",
            token=self.token or "demo-token",
            jira_server_url=self.jira_server_url or "https://demo.atlassian.net",
        )

    @classmethod
    def create_demo_configuration(cls, **overrides: Any) -> "SyncConfiguration":
        return cls(**overrides).with_demo_credentials()

    def redacted(self) -> Dict[str, Any]:
        """Settings as a dict with secrets masked, safe to log."""
        data = dict(self.__dict__)
        for secret in ("access_key", "secret_key", "token"):
            if data.get(secret):
                data[secret] = "***"
        return data


class ConfigLoader:
    """Builds a SyncConfiguration from YAML settings and the environment."""

    DEFAULT_CONFIG_DIR = ".feature-sync"
    DEFAULT_CONFIG_FILE = "config.yaml"

    # YAML key -> accepted types
    FIELD_TYPES: Dict[str, tuple] = {
        "features_dir": (str,),
        "staging_dir": (str,),
        "remote_dir": (str, type(None)),
        "project_id": (str, int),
        "jira_server_url": (str,),
        "environment": (str,),
        "merge_strategies": (list,),
        "validation_concurrency": (int,),
        "cache_enabled": (bool,),
        "wipe_on_fetch_failure": (bool,),
        "history_size": (int,),
    }

    SECRET_FIELDS = {"access_key", "secret_key", "token"}

    @classmethod
    def default_path(cls) -> str:
        return os.path.join(cls.DEFAULT_CONFIG_DIR, cls.DEFAULT_CONFIG_FILE)

    @classmethod
    def load(cls, config_path: Optional[str] = None, env_file: Optional[str] = None) -> SyncConfiguration:
        """Load configuration.

        Args:
            config_path: YAML settings file. A missing file is an error only when
                the path was given explicitly.
            env_file: .env file to load (python-dotenv searches upward if None)

        Returns:
            SyncConfiguration combining defaults, YAML settings and environment

        Raises:
            SyncConfigurationError: If the YAML file is unreadable or invalid
        """
        load_dotenv(env_file)

        explicit = config_path is not None
        path = config_path or cls.default_path()
        settings: Dict[str, Any] = {}

        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            if explicit:
                raise SyncConfigurationError(f"Configuration file not found: {path}")
            logger.debug(f"No configuration file at {path}, using defaults")
            content = ""
        except OSError as e:
            raise SyncConfigurationError(f"Cannot read configuration file {path}: {e}") from e

        if content.strip():
            settings = cls._parse(content, path)

        config = SyncConfiguration(**settings)
        return cls.apply_environment(config)

    @classmethod
    def apply_environment(cls, config: SyncConfiguration) -> SyncConfiguration:
        """Overlay credentials and environment name from environment variables."""
        return replace(
            config,
            project_id=os.getenv(ENV_PROJECT_ID) or config.project_id,
            access_key=os.getenv(ENV_ACCESS_KEY) or config.access_key,
            secret_key=os.getenv(ENV_SECRET_KEY) or config.secret_key,
            token=os.getenv(ENV_TOKEN) or config.token,
            jira_server_url=os.getenv(ENV_JIRA_SERVER_URL) or config.jira_server_url,
            environment=os.getenv(ENV_ENVIRONMENT) or config.environment,
        )

    @classmethod
    def _parse(cls, content: str, path: str) -> Dict[str, Any]:
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise SyncConfigurationError(f"Invalid YAML syntax in {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise SyncConfigurationError(
                f"Configuration must be a YAML dictionary, got {type(data).__name__}"
            )

        secrets = cls.SECRET_FIELDS & set(data)
        if secrets:
            raise SyncConfigurationError(
                f"Credentials must come from environment variables, not {path}: "
                f"{', '.join(sorted(secrets))}"
            )

        unknown = set(data) - set(cls.FIELD_TYPES)
        if unknown:
            raise SyncConfigurationError(f"Unknown configuration field(s): {', '.join(sorted(unknown))}")

        for key, value in data.items():
            expected = cls.FIELD_TYPES[key]
            # bool is an int subclass and is never a valid count
            if not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected):
                raise SyncConfigurationError(
                    f"Field '{key}' must be {' or '.join(t.__name__ for t in expected)}, "
                    f"got {type(value).__name__}"
                )

        if "project_id" in data:
            data["project_id"] = str(data["project_id"])

        for key in ("validation_concurrency", "history_size"):
            if key in data and data[key] < 1:
                raise SyncConfigurationError(f"Field '{key}' must be at least 1")

        if "merge_strategies" in data:
            valid = {strategy.value for strategy in MergeStrategy}
            invalid = [s for s in data["merge_strategies"] if s not in valid]
            if invalid:
                raise SyncConfigurationError(
                    f"Unknown merge strategies: {', '.join(map(str, invalid))}. "
                    f"Expected any of {', '.join(DEFAULT_MERGE_STRATEGIES)}"
                )

        return data
