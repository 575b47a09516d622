"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = "refview.toml"
CLASSIFICATION_STRATEGIES = ("auto", "oracle", "heuristic")
UNRESOLVED_POLICIES = ("unknown", "read")
PREVIEW_MODES = ("peek", "goto", "gotoAndPeek")


@dataclass(slots=True, frozen=True)
class FilterDefaults:
    """Initial classification flags."""

    read: bool = True
    write: bool = True
    text: bool = True


@dataclass(slots=True, frozen=True)
class ClassificationConfig:
    """Classification strategy selection."""

    strategy: str = "auto"
    unresolved: str = "unknown"


@dataclass(slots=True, frozen=True)
class PreviewConfig:
    """Preview presentation settings."""

    mode: str = "peek"


@dataclass(slots=True, frozen=True)
class ViewConfig:
    """Fully merged reference view configuration."""

    workspace_root: Path
    data_dir: Path
    filters: FilterDefaults
    classification: ClassificationConfig
    preview: PreviewConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot."""
        return {
            "workspace_root": str(self.workspace_root),
            "data_dir": str(self.data_dir),
            "filters": {
                "read": self.filters.read,
                "write": self.filters.write,
                "text": self.filters.text,
            },
            "classification": {
                "strategy": self.classification.strategy,
                "unresolved": self.classification.unresolved,
            },
            "preview": {"mode": self.preview.mode},
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    strategy: str | None = None
    unresolved: str | None = None
    preview_mode: str | None = None


def default_config(workspace_root: Path) -> ViewConfig:
    """Build default config for a given workspace root."""
    resolved_root = workspace_root.resolve()
    return ViewConfig(
        workspace_root=resolved_root,
        data_dir=resolved_root / ".refview",
        filters=FilterDefaults(),
        classification=ClassificationConfig(),
        preview=PreviewConfig(),
    )


def load_config_file(workspace_root: Path) -> dict[str, object]:
    """Load optional refview.toml from the workspace root."""
    config_path = workspace_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def merge_config(
    base: ViewConfig, payload: dict[str, object], overrides: CliOverrides
) -> ViewConfig:
    """Merge defaults, file config, then startup overrides."""
    filters_payload = _get_table(payload, "filters")
    classification_payload = _get_table(payload, "classification")
    preview_payload = _get_table(payload, "preview")

    filters = FilterDefaults(
        read=_optional_bool(filters_payload.get("read"), "filters.read", base.filters.read),
        write=_optional_bool(filters_payload.get("write"), "filters.write", base.filters.write),
        text=_optional_bool(filters_payload.get("text"), "filters.text", base.filters.text),
    )
    classification = ClassificationConfig(
        strategy=_optional_choice(
            classification_payload.get("strategy"),
            "classification.strategy",
            base.classification.strategy,
            CLASSIFICATION_STRATEGIES,
        ),
        unresolved=_optional_choice(
            classification_payload.get("unresolved"),
            "classification.unresolved",
            base.classification.unresolved,
            UNRESOLVED_POLICIES,
        ),
    )
    preview = PreviewConfig(
        mode=_optional_choice(
            preview_payload.get("mode"), "preview.mode", base.preview.mode, PREVIEW_MODES
        )
    )
    merged = ViewConfig(
        workspace_root=base.workspace_root,
        data_dir=base.data_dir,
        filters=filters,
        classification=classification,
        preview=preview,
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: ViewConfig, overrides: CliOverrides) -> ViewConfig:
    """Apply startup overrides at highest precedence."""
    classification = ClassificationConfig(
        strategy=_optional_choice(
            overrides.strategy,
            "overrides.strategy",
            config.classification.strategy,
            CLASSIFICATION_STRATEGIES,
        ),
        unresolved=_optional_choice(
            overrides.unresolved,
            "overrides.unresolved",
            config.classification.unresolved,
            UNRESOLVED_POLICIES,
        ),
    )
    preview = PreviewConfig(
        mode=_optional_choice(
            overrides.preview_mode, "overrides.preview_mode", config.preview.mode, PREVIEW_MODES
        )
    )
    data_dir = overrides.data_dir or config.data_dir
    return ViewConfig(
        workspace_root=config.workspace_root,
        data_dir=data_dir.resolve(),
        filters=config.filters,
        classification=classification,
        preview=preview,
    )


def load_effective_config(
    workspace_root: Path, overrides: CliOverrides | None = None
) -> ViewConfig:
    """Load effective config using merge order defaults -> file config -> overrides."""
    resolved_root = workspace_root.resolve()
    base = default_config(resolved_root)
    payload = load_config_file(resolved_root)
    return merge_config(base, payload, overrides or CliOverrides())


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _optional_bool(value: object, name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"Config field '{name}' must be a boolean.")
    return value


def _optional_choice(value: object, name: str, default: str, choices: tuple[str, ...]) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or value not in choices:
        raise ValueError(f"Config field '{name}' must be one of {', '.join(choices)}.")
    return value
