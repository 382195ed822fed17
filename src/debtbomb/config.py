from __future__ import annotations
import os, copy, yaml
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

CONFIG_DIR = ".debtbomb"
CONFIG_NAMES = ("config.yml", "config.yaml")

CHANNELS = ("slack", "discord", "teams")
WEBHOOK_ENV = {
    "slack": "SLACK_WEBHOOK_URL",
    "discord": "DISCORD_WEBHOOK_URL",
    "teams": "TEAMS_WEBHOOK_URL",
}

DEFAULT_CONFIG = {
    "jira": {
        "default_project": "",
        "issue_type": "Task",
    },
    "owners": {},
    "notify": [],
}


class ConfigError(Exception):
    """The config file exists but cannot be used."""


@dataclass(frozen=True)
class NotifyRule:
    on: str  # expired|expiring_soon
    via: str  # jira|slack|discord|teams
    days: Optional[int] = None


@dataclass
class JiraSettings:
    default_project: str = ""
    issue_type: str = "Task"
    base_url: str = ""
    email: str = ""
    api_token: str = ""


@dataclass
class Config:
    data: Dict[str, Any] = field(default_factory=lambda: copy.deepcopy(DEFAULT_CONFIG))
    env: Mapping[str, str] = field(default_factory=lambda: os.environ)

    @property
    def jira(self) -> JiraSettings:
        section = self.data.get("jira") or {}
        return JiraSettings(
            default_project=str(section.get("default_project") or ""),
            issue_type=str(section.get("issue_type") or "Task"),
            base_url=self.env.get("JIRA_BASE_URL", ""),
            email=self.env.get("JIRA_EMAIL", ""),
            api_token=self.env.get("JIRA_API_TOKEN", ""),
        )

    def jira_enabled(self) -> bool:
        j = self.jira
        return bool(j.base_url and j.email and j.api_token)

    @property
    def owners(self) -> Dict[str, str]:
        return {str(k): str(v) for k, v in (self.data.get("owners") or {}).items()}

    def contact_for(self, owner: str) -> str:
        return self.owners.get(owner, "") if owner else ""

    @property
    def notify_rules(self) -> List[NotifyRule]:
        return [_rule(raw) for raw in self.data.get("notify") or []]

    def webhooks(self) -> Dict[str, str]:
        return {ch: self.env.get(var, "") for ch, var in WEBHOOK_ENV.items() if self.env.get(var)}


def _rule(raw: Any) -> NotifyRule:
    if not isinstance(raw, dict):
        raise ConfigError(f"notify rule must be a mapping: {raw!r}")
    # YAML 1.1 loads a bare `on:` key as boolean True.
    on = raw.get("on", raw.get(True))
    if on is None or "via" not in raw:
        raise ConfigError(f"notify rule needs 'on' and 'via': {raw!r}")
    days = raw.get("days")
    if days is not None:
        try:
            days = int(days)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"notify rule 'days' must be an integer: {raw!r}") from e
    return NotifyRule(on=str(on), via=str(raw["via"]).lower(), days=days)


def find_config(repo_root: str) -> Optional[str]:
    for name in CONFIG_NAMES:
        path = os.path.join(repo_root, CONFIG_DIR, name)
        if os.path.exists(path):
            return path
    return None


def load_config(repo_root: str, env: Optional[Mapping[str, str]] = None) -> Config:
    merged = copy.deepcopy(DEFAULT_CONFIG)
    path = find_config(repo_root)
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                user = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"failed to parse config file {path}: {e}") from e
        if not isinstance(user, dict):
            raise ConfigError(f"config file {path} must contain a mapping")
        for k, v in user.items():
            if isinstance(v, dict) and isinstance(merged.get(k), dict):
                merged[k].update(v)
            else:
                merged[k] = v
    if not isinstance(merged.get("owners") or {}, dict):
        raise ConfigError("'owners' must map owner names to contacts")
    if not isinstance(merged.get("notify") or [], list):
        raise ConfigError("'notify' must be a list of rules")
    for raw in merged.get("notify") or []:
        _rule(raw)
    return Config(merged, env if env is not None else os.environ)
