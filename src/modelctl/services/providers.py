"""Provider lifecycle operations.

Each operation takes an :class:`~modelctl.context.AppContext`, performs its
mutation through :meth:`SettingsStore.mutate` and returns a plain result
object for the CLI to render. Errors propagate as
:class:`~modelctl.exceptions.ModelctlError` subclasses.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any

from modelctl.config.models import Config, ProviderConfig
from modelctl.config.references import (
    provider_name_problem,
    validate_api_key,
    validate_env_var_name,
    validate_provider_name,
)
from modelctl.config.tiers import get_primary_provider, tiers_for_provider
from modelctl.context import AppContext
from modelctl.exceptions import (
    InvalidInputError,
    ModelctlError,
    OperationError,
    ProbeError,
    ProbeFailureKind,
    ProviderNotFoundError,
    SecretStoreError,
    SecretStoreUnavailableError,
    URLValidationError,
)
from modelctl.pricing import get_model_metadata
from modelctl.providers.health import (
    STEP_CONFIGURED,
    Deadline,
    HealthCheckResult,
    ProbeRequest,
)
from modelctl.providers.registry import (
    ProviderType,
    all_providers_enabled,
    get_provider_type,
    get_visible_provider_types,
    is_supported_provider,
    warn_unsupported_provider,
)
from modelctl.secrets.references import (
    env_reference,
    mask_secret,
    parse_reference,
    provider_secret_key,
    resolve_api_key,
    secret_reference,
)
from modelctl.secrets.store import keychain_remediation
from modelctl.security.urls import validate_base_url

logger = logging.getLogger(__name__)

__all__ = [
    "LIST_DEADLINE",
    "PROBE_DEADLINE",
    "TEST_DEADLINE",
    "AddProviderResult",
    "DryRunChange",
    "EditProviderResult",
    "ProviderRow",
    "ProviderTestReport",
    "RemoveProviderResult",
    "add_provider",
    "check_provider_health",
    "edit_provider",
    "list_providers",
    "remove_provider",
    "require_provider",
    "run_provider_tests",
    "set_default_provider",
]

LIST_DEADLINE = 5.0
TEST_DEADLINE = 60.0
PROBE_DEADLINE = 10.0
DETECT_DEADLINE = 5.0

SHELL_HISTORY_WARNING = (
    "Using --api-key exposes the key in shell history. "
    "Consider using --api-key-env instead"
)


@dataclass
class DryRunChange:
    """A change that would be made, described without making it."""

    action: str
    path: str
    description: str
    problems: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "path": self.path,
            "description": self.description,
            "problems": list(self.problems),
        }


@dataclass
class AddProviderResult:
    name: str
    type: str
    api_key: str | None = None
    base_url: str | None = None
    models: list[str] = field(default_factory=list)
    set_as_default: bool = False
    warnings: list[str] = field(default_factory=list)
    dry_run: DryRunChange | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "api_key": self.api_key,
            "base_url": self.base_url,
            "models": list(self.models),
            "default": self.set_as_default,
            "warnings": list(self.warnings),
        }
        if self.dry_run is not None:
            data["dry_run"] = self.dry_run.to_dict()
        return data


@dataclass
class RemoveProviderResult:
    name: str
    removed_tiers: list[str] = field(default_factory=list)
    removed_agent_mappings: list[str] = field(default_factory=list)
    cleared_default: bool = False
    cancelled: bool = False
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "removed_tiers": list(self.removed_tiers),
            "removed_agent_mappings": list(self.removed_agent_mappings),
            "cleared_default": self.cleared_default,
            "cancelled": self.cancelled,
            "warnings": list(self.warnings),
        }


@dataclass
class EditProviderResult:
    name: str
    changes: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "changes": list(self.changes),
            "warnings": list(self.warnings),
        }


@dataclass
class ProviderRow:
    name: str
    type: str
    is_default: bool
    health: HealthCheckResult | None = None

    @property
    def status(self) -> str:
        if self.health is None:
            return "unknown"
        return "ok" if self.health.healthy else "error"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "default": self.is_default,
            "status": self.status,
            "error": None if self.health is None or self.health.healthy else self.health.short_error(),
        }


@dataclass
class ProviderTestReport:
    name: str
    type: str
    result: HealthCheckResult

    def to_dict(self) -> dict[str, Any]:
        data = self.result.to_dict()
        data["name"] = self.name
        data["type"] = self.type
        return data


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def require_provider(config: Config, name: str) -> ProviderConfig:
    provider = config.providers.get(name)
    if provider is None:
        raise ProviderNotFoundError(name, config.providers)
    return provider


def _check_type_allowed(ctx: AppContext, type_name: str) -> ProviderType:
    provider_type = get_provider_type(type_name)
    visible = ", ".join(get_visible_provider_types(ctx.environ))
    if provider_type is None:
        raise InvalidInputError(
            f"unknown provider type '{type_name}'",
            suggestions=[f"Available types: {visible}"],
        )
    if not is_supported_provider(type_name):
        if not all_providers_enabled(ctx.environ):
            raise InvalidInputError(
                f"provider type '{type_name}' is not supported in this build",
                suggestions=[
                    f"Supported types: {visible}",
                    "Set MODELCTL_ALL_PROVIDERS=1 to enable experimental types",
                ],
            )
        warn_unsupported_provider(type_name)
    return provider_type


def _validate_url(provider_type: ProviderType | None, base_url: str) -> str:
    validator = provider_type.validate_url if provider_type else validate_base_url
    try:
        validator(base_url)
    except URLValidationError as e:
        raise URLValidationError(f"invalid base URL: {e.reason}", code=e.code) from e
    return base_url


@dataclass
class _Credential:
    """A credential supplied on the command line, before it is stored."""

    value: str
    env_name: str | None = None

    @property
    def masked(self) -> str:
        return mask_secret(self.value)


def _read_credential(
    ctx: AppContext,
    api_key: str | None,
    api_key_env: str | None,
    warnings: list[str],
    prompted: bool = False,
) -> _Credential | None:
    if api_key and api_key_env:
        raise InvalidInputError(
            "cannot specify both --api-key and --api-key-env",
            suggestions=["Use --api-key-env to keep the key out of shell history"],
        )
    if api_key:
        validate_api_key(api_key)
        if not prompted:
            warnings.append(SHELL_HISTORY_WARNING)
        return _Credential(api_key)
    if api_key_env:
        validate_env_var_name(api_key_env)
        value = ctx.environ.get(api_key_env, "")
        if not value:
            raise InvalidInputError(
                f"environment variable {api_key_env} is not set or empty",
                suggestions=[f"export {api_key_env}=<your key> and retry"],
            )
        validate_api_key(value)
        return _Credential(value, env_name=api_key_env)
    return None


@dataclass
class _SecretWrite:
    """A keychain entry overwritten by an operation, with what it held before."""

    key: str
    previous: str | None = None


def _store_credential(
    ctx: AppContext, provider: str, credential: _Credential, warnings: list[str]
) -> tuple[str, _SecretWrite | None]:
    """Put the credential in the keychain and return the reference to persist.

    Returns:
        Tuple of (reference, the keychain write to undo if the save fails, or
        None when nothing was written).

    Raises:
        SecretStoreUnavailableError: If the keychain is unavailable and the
            credential was given literally.
    """
    key = provider_secret_key(provider)
    if ctx.secrets.available():
        write = _SecretWrite(key, ctx.secrets.get(key))
        ctx.secrets.set(key, credential.value)
        return secret_reference(key), write
    if credential.env_name:
        warnings.append(
            f"Keychain is not available; storing a reference to ${credential.env_name} "
            "instead. The variable must be set whenever the provider is used"
        )
        return env_reference(credential.env_name), None
    raise SecretStoreUnavailableError(
        "keychain backend not available - please ensure your system keychain is accessible",
        suggestions=keychain_remediation(),
    )


def _undo_secret_write(ctx: AppContext, write: _SecretWrite) -> None:
    """Put back the value a failed operation overwrote, or drop the new entry."""
    if write.previous is None:
        _forget_secret(ctx, write.key)
        return
    try:
        ctx.secrets.set(write.key, write.previous)
    except SecretStoreError as e:
        logger.warning(f"Could not restore secret {write.key} in keychain: {e.message}")


def _forget_secret(ctx: AppContext, key: str | None) -> None:
    if key is None:
        return
    try:
        ctx.secrets.delete(key)
    except SecretStoreError as e:
        logger.warning(f"Could not delete secret {key} from keychain: {e.message}")


def _secret_key_of(reference: str | None) -> str | None:
    if not reference:
        return None
    with contextlib.suppress(InvalidInputError):
        parsed = parse_reference(reference)
        if parsed.kind == "secret":
            return parsed.target
    return None


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def add_provider(
    ctx: AppContext,
    name: str | None,
    provider_type: str,
    api_key: str | None = None,
    api_key_env: str | None = None,
    base_url: str | None = None,
    dry_run: bool = False,
    api_key_prompted: bool = False,
) -> AddProviderResult:
    """Register a new provider.

    The credential, if any, goes to the keychain; only a ``$secret:``
    reference (or ``$env:`` when the keychain is unavailable and the key
    came from an environment variable) is written to the settings file.

    Args:
        ctx: Application context.
        name: Provider name; defaults to the type name.
        provider_type: One of the registered provider types.
        api_key: Literal key (discouraged, ends up in shell history).
        api_key_env: Name of an environment variable holding the key.
        base_url: Endpoint override, checked against the SSRF policy.
        dry_run: Describe the change without touching the keychain or file.
        api_key_prompted: The literal key was typed at a hidden prompt
            rather than passed on the command line.

    Returns:
        AddProviderResult describing what was (or would be) done.

    Raises:
        InvalidInputError: Bad name, type, key or flag combination.
        URLValidationError: Unsafe or malformed base URL.
        SecretStoreUnavailableError: Literal key and no keychain.
        ConfigError: Settings file problems.
    """
    name = name or provider_type
    warnings: list[str] = []
    ptype = _check_type_allowed(ctx, provider_type)
    if not dry_run:
        validate_provider_name(name)
    if base_url:
        _validate_url(ptype, base_url)
    elif ptype.pin_base_url:
        base_url = ptype.default_base_url
    credential = _read_credential(
        ctx, api_key, api_key_env, warnings, prompted=api_key_prompted
    )
    if ptype.requires_api_key and credential is None:
        hint = f"--api-key-env {ptype.api_key_env}" if ptype.api_key_env else "--api-key-env NAME"
        raise InvalidInputError(
            f"provider type '{provider_type}' requires an API key",
            suggestions=[f"Pass {hint}"],
        )

    if ptype.detect is not None:
        detection = ptype.detect(Deadline(DETECT_DEADLINE, clock=ctx.clock))
        if not detection.installed:
            warnings.append(
                f"{ptype.display_name} CLI not found ({detection.error}); "
                "the provider is added but will not work until it is installed"
            )
        elif detection.error:
            warnings.append(f"{ptype.display_name} CLI is not healthy: {detection.error}")

    model_names = list(ptype.default_models)
    result = AddProviderResult(
        name=name,
        type=provider_type,
        base_url=base_url,
        models=model_names,
        warnings=warnings,
    )

    if dry_run:
        return _describe_add(ctx, result, credential)

    writes: list[_SecretWrite] = []

    def mutate(config: Config) -> None:
        validate_provider_name(name, config.providers)
        reference = None
        if credential is not None:
            reference, write = _store_credential(ctx, name, credential, warnings)
            if write:
                writes.append(write)
        config.providers[name] = ProviderConfig(
            type=provider_type,
            api_key=reference,
            base_url=base_url,
            models={m: get_model_metadata(provider_type, m) for m in model_names},
        )
        result.api_key = reference
        if not config.default_provider or config.default_provider not in config.providers:
            config.default_provider = name
            result.set_as_default = True

    try:
        ctx.store().mutate(mutate)
    except ModelctlError:
        # The settings file was not replaced; leave the keychain as it was
        for write in writes:
            _undo_secret_write(ctx, write)
        raise
    logger.info(f"Added provider {name} ({provider_type})")
    return result


def _describe_add(
    ctx: AppContext, result: AddProviderResult, credential: _Credential | None
) -> AddProviderResult:
    store = ctx.store()
    config = store.load()
    problems = []
    problem = provider_name_problem(result.name)
    if problem is not None:
        problems.append(problem)
    elif result.name in config.providers:
        problems.append(f"provider '{result.name}' already exists")

    parts = [f"add provider '{result.name}' (type: {result.type})"]
    if credential is not None:
        parts.append(f"api_key: {credential.masked}")
        result.api_key = secret_reference(provider_secret_key(result.name))
    if result.base_url:
        parts.append(f"base_url: {result.base_url}")
    if not config.default_provider or not config.providers:
        parts.append("set as default")
        result.set_as_default = True

    result.dry_run = DryRunChange(
        action="MODIFY",
        path=ctx.paths.placeholder(store.path),
        description=", ".join(parts),
        problems=problems,
    )
    return result


def remove_provider(ctx: AppContext, name: str, force: bool = False) -> RemoveProviderResult:
    """Remove a provider.

    Without ``force`` the removal is refused while tiers still reference the
    provider, and interactive sessions are asked to confirm. With ``force``
    dependent tiers and agent mappings are deleted as well.

    Raises:
        ProviderNotFoundError: If the provider does not exist.
        OperationError: If tiers reference it and ``force`` is not set.
        UserAbortedError: If the confirmation prompt is interrupted.
    """
    result = RemoveProviderResult(name=name)

    def blocking_tiers(config: Config) -> None:
        require_provider(config, name)
        tiers = tiers_for_provider(config, name)
        if tiers and not force:
            raise OperationError(
                f"provider '{name}' is referenced by tier(s) [{', '.join(tiers)}]",
                suggestions=[
                    "Reassign those tiers with 'modelctl model set-tier <tier> <provider/model>'",
                    f"Or remove everything with 'modelctl provider remove {name} --force'",
                ],
            )

    # Confirm before taking the lock; preconditions are re-checked under it
    blocking_tiers(ctx.load_config())
    prompter = ctx.prompter if ctx.can_prompt else None
    if not force and prompter is not None:
        if not prompter.confirm(f"Remove provider '{name}'?", default=False):
            result.cancelled = True
            return result

    removed_reference: list[str | None] = []

    def mutate(config: Config) -> None:
        blocking_tiers(config)
        for tier in tiers_for_provider(config, name):
            del config.tiers[tier]
            result.removed_tiers.append(tier)
        for agent in sorted(config.agent_mappings):
            if config.agent_mappings[agent] == name:
                del config.agent_mappings[agent]
                result.removed_agent_mappings.append(agent)
        removed_reference.append(config.providers.pop(name).api_key)
        if config.default_provider == name:
            config.default_provider = None
            result.cleared_default = True
            suggestion = get_primary_provider(config)
            hint = (
                f"; run 'modelctl provider set-default {suggestion}'" if suggestion else ""
            )
            result.warnings.append(f"'{name}' was the default provider{hint}")

    ctx.store().mutate(mutate)
    _forget_secret(ctx, _secret_key_of(removed_reference[0] if removed_reference else None))
    logger.info(f"Removed provider {name}")
    return result


def edit_provider(
    ctx: AppContext,
    name: str,
    api_key: str | None = None,
    api_key_env: str | None = None,
    base_url: str | None = None,
) -> EditProviderResult:
    """Change a provider's credential or base URL.

    Raises:
        ProviderNotFoundError: If the provider does not exist.
        InvalidInputError: Nothing to change, or both key flags given.
        URLValidationError: Unsafe or malformed base URL.
    """
    result = EditProviderResult(name=name)
    credential = _read_credential(ctx, api_key, api_key_env, result.warnings)
    if credential is None and base_url is None:
        raise InvalidInputError(
            "nothing to change",
            suggestions=["Pass --api-key-env, --api-key or --base-url"],
        )

    snapshot = ctx.load_config()
    ptype = get_provider_type(require_provider(snapshot, name).type)
    if base_url:
        _validate_url(ptype, base_url)

    writes: list[_SecretWrite] = []

    def mutate(config: Config) -> None:
        provider = require_provider(config, name)
        if credential is not None:
            reference, write = _store_credential(ctx, name, credential, result.warnings)
            if write:
                writes.append(write)
            provider.api_key = reference
            result.changes.append(f"api_key: {reference}")
        if base_url is not None:
            provider.base_url = base_url or None
            result.changes.append(f"base_url: {base_url or '(default)'}")

    try:
        ctx.store().mutate(mutate)
    except ModelctlError:
        for write in writes:
            _undo_secret_write(ctx, write)
        raise
    return result


def set_default_provider(ctx: AppContext, name: str) -> str | None:
    """Make ``name`` the default provider.

    Returns:
        The previous default, if any.
    """

    def mutate(config: Config) -> str | None:
        require_provider(config, name)
        previous = config.default_provider
        config.default_provider = name
        return previous

    return ctx.store().mutate(mutate)


def check_provider_health(
    ctx: AppContext, name: str, provider: ProviderConfig, deadline: Deadline
) -> HealthCheckResult:
    """Run the type's three-step probe for one provider.

    Never raises for probe problems; they are recorded in the result.
    """
    start = ctx.clock()
    ptype = get_provider_type(provider.type)
    if ptype is None or ptype.health_check is None:
        result = HealthCheckResult().fail(
            STEP_CONFIGURED,
            ProbeError(
                f"health checks are not available for type '{provider.type}'",
                ProbeFailureKind.UNSUPPORTED,
            ),
        )
    else:
        try:
            api_key = resolve_api_key(provider.api_key, ctx.read_secrets, ctx.environ)
        except ModelctlError as e:
            result = HealthCheckResult().fail(
                STEP_CONFIGURED, ProbeError(e.message, ProbeFailureKind.CONFIG)
            )
        else:
            request = ProbeRequest(
                name=name,
                provider=provider,
                api_key=api_key,
                base_url=provider.base_url or ptype.default_base_url,
                deadline=deadline,
            )
            try:
                result = ptype.health_check(request)
            except ProbeError as e:
                result = HealthCheckResult().fail(STEP_CONFIGURED, e)
    result.latency_ms = int((ctx.clock() - start) * 1000)
    logger.debug(f"Health check for {name}: healthy={result.healthy} in {result.latency_ms}ms")
    return result


def list_providers(ctx: AppContext, check_health: bool = True) -> list[ProviderRow]:
    """List providers, probing each under an overall 5 second deadline.

    Probe failures degrade the row; they never fail the listing.
    """
    config = ctx.load_config()
    deadline = Deadline(LIST_DEADLINE, clock=ctx.clock)
    rows = []
    for name in config.provider_names():
        provider = config.providers[name]
        health = None
        if check_health:
            health = check_provider_health(
                ctx, name, provider, deadline.child(PROBE_DEADLINE)
            )
        rows.append(
            ProviderRow(
                name=name,
                type=provider.type,
                is_default=name == config.default_provider,
                health=health,
            )
        )
    return rows


def run_provider_tests(
    ctx: AppContext, name: str | None = None, all_providers: bool = False
) -> list[ProviderTestReport]:
    """Run the full probe against one provider or all of them.

    The run is bounded by 60 seconds overall and 10 seconds per provider.
    Every attempted probe is reported; callers decide how to fail.

    Raises:
        InvalidInputError: Neither a name nor ``all_providers`` was given, or
            there is nothing to test.
        ProviderNotFoundError: If ``name`` is not configured.
    """
    config = ctx.load_config()
    if name and all_providers:
        raise InvalidInputError("specify either a provider name or --all, not both")
    if name:
        require_provider(config, name)
        names = [name]
    elif all_providers:
        names = config.provider_names()
        if not names:
            raise InvalidInputError(
                "no providers configured",
                suggestions=["Run 'modelctl provider add' first"],
            )
    else:
        raise InvalidInputError(
            "specify a provider name or --all",
            suggestions=["modelctl provider test <NAME>", "modelctl provider test --all"],
        )

    deadline = Deadline(TEST_DEADLINE, clock=ctx.clock)
    reports = []
    for provider_name in names:
        provider = config.providers[provider_name]
        result = check_provider_health(
            ctx, provider_name, provider, deadline.child(PROBE_DEADLINE)
        )
        reports.append(ProviderTestReport(provider_name, provider.type, result))
    return reports
