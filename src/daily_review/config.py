"""Configuration management for daily-review."""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from daily_review.ai.models import AiProvider, AiSettings
from daily_review.errors import ConfigurationError
from daily_review.models import RepositoryRef
from daily_review.progress import ProgressCallback, ProgressNotifier

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "DAILY_REVIEW_HOME"


def default_config_dir() -> Path:
    """Config directory: $DAILY_REVIEW_HOME, or ~/.daily-review."""
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".daily-review"


DEFAULT_CUSTOM_RULES = """# Role: Efficient reporting assistant

# Profile
- Turns fragmented daily work notes into a clear, concise professional daily report.
- Tone: professional, rational, results oriented, brief.

# Workflow
1. Input analysis: read the raw notes and commits, identify completed tasks,
   blockers and the solutions applied.
2. Transformation:
   - Filter: drop filler words and trivial details, keep actions and results.
   - Restructure: turn a running log into "completed items" (verb + object),
     pair each problem with its resolution.
   - Elevate: use professional wording ("fixed a system fault, improving
     stability" rather than "fixed a bug").
   - Condense: keep it short enough to skim on a phone.
3. Output: follow the report template.

# Constraints
- Stay objective, no emotional venting.
- If a problem is unresolved, give the expected resolution time or the support needed.
- At most 5 list items, most important first."""

DEFAULT_REPORT_TEMPLATE = """**[Daily Report - MM/DD]**

**Done today**
* [Item 1]: [result/progress]
* [Item 2]: [result/progress]

**Problems and actions**
* **Problem**: [core problem in one line]
    **Resolution**: [action taken or next step]"""


class AppConfig(BaseModel):
    """Persisted application settings."""

    api_key: str = ""
    provider: AiProvider = AiProvider.OPENAI_COMPATIBLE
    model: str = "gpt-4o"
    base_url: str | None = None
    repo_paths: list[str] = []
    repo_aliases: dict[str, str] = {}
    deep_analysis: bool = False
    custom_rules: str = DEFAULT_CUSTOM_RULES
    report_template: str = DEFAULT_REPORT_TEMPLATE

    @field_validator("provider", mode="before")
    @classmethod
    def parse_provider(cls, v: Any) -> AiProvider:
        return AiProvider.parse(v)

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("model must not be empty")
        return v.strip()

    @property
    def repositories(self) -> list[RepositoryRef]:
        return [
            RepositoryRef(path=path, alias=self.repo_aliases.get(path))
            for path in self.repo_paths
        ]

    def ai_settings(self, api_key: str | None = None) -> AiSettings:
        """AI settings for a review, optionally overriding the stored key."""
        return AiSettings(
            provider=self.provider,
            model=self.model,
            api_key=api_key or self.api_key,
            base_url=self.base_url,
        )


class Config:
    """Manage the daily-review configuration file."""

    def __init__(
        self,
        config_dir: Path | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize config.

        Args:
            config_dir: Directory holding config.json (defaults to ~/.daily-review)
            progress_callback: Optional callback notified of configuration changes
        """
        self.config_dir = config_dir or default_config_dir()
        self.config_file = self.config_dir / "config.json"
        self.notifier = ProgressNotifier(progress_callback)
        self._ensure_config_dir()

    def _ensure_config_dir(self) -> None:
        """Create config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        # Set restrictive permissions on the config directory
        self.config_dir.chmod(0o700)

    def load(self) -> AppConfig:
        """Load the stored configuration.

        Returns:
            Stored settings, or defaults if the file is missing or unreadable
        """
        if not self.config_file.exists():
            return AppConfig()

        try:
            with self.config_file.open(encoding="utf-8") as f:
                return AppConfig.model_validate(json.load(f))
        except (json.JSONDecodeError, OSError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable config file {self.config_file}: {e}")
            return AppConfig()

    def save(self, app_config: AppConfig) -> None:
        """Write settings to disk with owner-only permissions."""
        with self.config_file.open("w", encoding="utf-8") as f:
            json.dump(app_config.model_dump(mode="json"), f, indent=2, ensure_ascii=False)

        # Set restrictive permissions on the config file
        self.config_file.chmod(0o600)
        logger.debug(f"Saved configuration to {self.config_file}")

    def update(self, **changes: Any) -> AppConfig:
        """Apply ``changes`` to the stored settings and save them.

        Raises:
            ConfigurationError: If a changed value is invalid
        """
        current = self.load()
        try:
            updated = AppConfig.model_validate({**current.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

        self.save(updated)
        self.notifier.completed(
            f"Updated {', '.join(sorted(changes))}", fields=sorted(changes)
        )
        return updated

    def add_repository(self, path: str, alias: str | None = None) -> bool:
        """Add a repository path (stored absolute).

        Returns:
            True if the path was added, False if it was already configured
        """
        resolved = str(Path(path).expanduser().resolve())
        current = self.load()
        if resolved in current.repo_paths:
            self.notifier.info(f"Repository already configured: {resolved}")
            return False

        aliases = dict(current.repo_aliases)
        if alias:
            aliases[resolved] = alias
        self.save(
            current.model_copy(
                update={"repo_paths": [*current.repo_paths, resolved], "repo_aliases": aliases}
            )
        )
        self.notifier.completed(f"Added repository {resolved}")
        return True

    def remove_repository(self, path: str) -> bool:
        """Remove a repository path, matching either the stored or the resolved form."""
        current = self.load()
        candidates = {path, str(Path(path).expanduser().resolve())}
        remaining = [p for p in current.repo_paths if p not in candidates]
        if len(remaining) == len(current.repo_paths):
            self.notifier.info(f"No repository configured at {path}")
            return False

        aliases = {p: a for p, a in current.repo_aliases.items() if p in remaining}
        self.save(
            current.model_copy(update={"repo_paths": remaining, "repo_aliases": aliases})
        )
        self.notifier.completed(f"Removed repository {path}")
        return True

    def get_config_info(self) -> dict[str, Any]:
        """Get information about current configuration.

        Returns:
            Dictionary with config status information (never the key itself)
        """
        app_config = self.load()
        config_exists = self.config_file.exists()

        return {
            "config_file": str(self.config_file),
            "config_exists": config_exists,
            "has_api_key": bool(app_config.api_key),
            "provider": app_config.provider.value,
            "model": app_config.model,
            "base_url": app_config.base_url,
            "repositories": len(app_config.repo_paths),
            "deep_analysis": app_config.deep_analysis,
            "config_file_permissions": oct(self.config_file.stat().st_mode)[-3:]
            if config_exists
            else None,
        }
