"""Whole-document validation.

All rules run on every pass and their findings are collected, so users see
every problem at once instead of fixing them one at a time.
"""

from __future__ import annotations

from modelctl.config.models import SUPPORTED_VERSIONS, Config, parse_duration
from modelctl.config.references import TIER_NAMES, provider_name_problem
from modelctl.config.tiers import validate_tiers
from modelctl.exceptions import (
    ConfigValidationError,
    InvalidInputError,
    InvalidTierReferenceError,
    ModelNotFoundError,
    ProviderNotFoundError,
    ValidationIssue,
)
from modelctl.secrets.references import is_reference, parse_reference

__all__ = [
    "LOG_FORMATS",
    "LOG_LEVELS",
    "check_config",
    "validate_config",
]

LOG_LEVELS = frozenset({"debug", "info", "warn", "warning", "error"})
LOG_FORMATS = frozenset({"json", "text"})

PORT_MIN = 1024
PORT_MAX = 65535


def validate_config(config: Config) -> list[ValidationIssue]:
    """Run every rule against ``config``.

    Returns:
        All findings, in a stable order. Empty when the document is valid.
    """
    issues: list[ValidationIssue] = []
    issues.extend(_check_version(config))
    issues.extend(_check_sections(config))
    issues.extend(_check_providers(config))
    issues.extend(_check_default_provider(config))
    issues.extend(_check_agent_mappings(config))
    issues.extend(_check_tiers(config))
    return issues


def check_config(config: Config) -> None:
    """Validate ``config`` and raise if anything is wrong.

    Raises:
        ConfigValidationError: With every finding of the pass.
    """
    issues = validate_config(config)
    if issues:
        raise ConfigValidationError(issues)


def _check_version(config: Config) -> list[ValidationIssue]:
    if config.version is None:
        return [ValidationIssue("version", "is required", "version_missing")]
    if config.version not in SUPPORTED_VERSIONS:
        supported = ", ".join(str(v) for v in sorted(SUPPORTED_VERSIONS))
        return [
            ValidationIssue(
                "version",
                f"unsupported version {config.version} (supported: {supported})",
                "version_unsupported",
            )
        ]
    return []


def _duration_issue(path: str, value: str | None) -> ValidationIssue | None:
    if value is None:
        return None
    try:
        seconds = parse_duration(value)
    except ValueError as e:
        return ValidationIssue(path, str(e), "invalid_duration")
    if seconds <= 0:
        return ValidationIssue(path, "must be a positive duration", "invalid_duration")
    return None


def _check_sections(config: Config) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    level = config.log.level
    if level is not None and level.lower() not in LOG_LEVELS:
        issues.append(
            ValidationIssue(
                "log.level",
                f"invalid level '{level}' (expected one of: debug, info, warn, warning, error)",
                "invalid_log_level",
            )
        )
    fmt = config.log.format
    if fmt is not None and fmt.lower() not in LOG_FORMATS:
        issues.append(
            ValidationIssue(
                "log.format",
                f"invalid format '{fmt}' (expected json or text)",
                "invalid_log_format",
            )
        )

    durations = {
        "llm.default_timeout": config.llm.default_timeout,
        "llm.retry_backoff": config.llm.retry_backoff,
        "daemon.idle_timeout": config.daemon.idle_timeout,
        "daemon.default_timeout": config.daemon.default_timeout,
        "daemon.shutdown_timeout": config.daemon.shutdown_timeout,
        "daemon.drain_timeout": config.daemon.drain_timeout,
        "daemon.run_retention": config.daemon.run_retention,
    }
    for path, value in durations.items():
        issue = _duration_issue(path, value)
        if issue is not None:
            issues.append(issue)

    if config.llm.max_retries is not None and config.llm.max_retries < 0:
        issues.append(
            ValidationIssue("llm.max_retries", "must be non-negative", "invalid_retries")
        )

    port = config.daemon.port
    if port is not None and not PORT_MIN <= port <= PORT_MAX:
        issues.append(
            ValidationIssue(
                "daemon.port",
                f"port {port} out of range [{PORT_MIN}, {PORT_MAX}]",
                "invalid_port",
            )
        )

    runs = config.daemon.max_concurrent_runs
    if runs is not None and runs < 1:
        issues.append(
            ValidationIssue(
                "daemon.max_concurrent_runs", "must be at least 1", "invalid_concurrency"
            )
        )
    return issues


def _check_providers(config: Config) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for name in sorted(config.providers):
        provider = config.providers[name]
        path = f"providers.{name}"

        problem = provider_name_problem(name)
        if problem is not None:
            issues.append(ValidationIssue(path, problem, "invalid_provider_name"))

        if not provider.type:
            issues.append(
                ValidationIssue(f"{path}.type", "is required", "provider_type_missing")
            )

        if provider.api_key:
            if not is_reference(provider.api_key):
                issues.append(
                    ValidationIssue(
                        f"{path}.api_key",
                        "contains a literal credential; use $secret:<key> or $env:<NAME>",
                        "plaintext_api_key",
                    )
                )
            else:
                try:
                    parse_reference(provider.api_key)
                except InvalidInputError as e:
                    issues.append(
                        ValidationIssue(f"{path}.api_key", e.message, "invalid_secret_reference")
                    )
    return issues


def _check_default_provider(config: Config) -> list[ValidationIssue]:
    name = config.default_provider
    if not name or not config.providers or name in config.providers:
        return []
    return [
        ValidationIssue(
            "default_provider",
            f"references unknown provider '{name}'. "
            f"Available: {', '.join(config.provider_names())}",
            "unknown_default_provider",
        )
    ]


def _check_agent_mappings(config: Config) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for agent in sorted(config.agent_mappings):
        provider = config.agent_mappings[agent]
        if provider not in config.providers:
            available = ", ".join(config.provider_names()) or "(none)"
            issues.append(
                ValidationIssue(
                    f"agent_mappings.{agent}",
                    f"references unknown provider '{provider}'. Available: {available}",
                    "unknown_agent_provider",
                )
            )
    return issues


def _check_tiers(config: Config) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for tier, error in validate_tiers(config):
        path = f"tiers.{tier}"
        if tier not in TIER_NAMES:
            issues.append(
                ValidationIssue(
                    path,
                    f"unknown tier '{tier}' (expected one of: {', '.join(TIER_NAMES)})",
                    "unknown_tier",
                )
            )
        elif isinstance(error, InvalidTierReferenceError):
            issues.append(ValidationIssue(path, error.message, "invalid_tier_reference"))
        elif isinstance(error, ProviderNotFoundError):
            issues.append(
                ValidationIssue(
                    path,
                    f"references unknown provider '{error.provider}'",
                    f"orphaned_tier:{tier}",
                )
            )
        elif isinstance(error, ModelNotFoundError):
            issues.append(
                ValidationIssue(
                    path,
                    f"references unknown model '{error.provider}/{error.model}'",
                    f"orphaned_tier:{tier}",
                )
            )
        else:
            issues.append(ValidationIssue(path, error.message, "tier_unresolvable"))
    return issues
