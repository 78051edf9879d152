"""Settings store: the single owner of ``settings.yaml``.

Mutations always run as lock -> load -> validate -> mutate -> validate ->
save -> unlock:

- The lock is an OS advisory exclusive lock on ``settings.yaml.lock``,
  acquired by polling with a hard deadline.
- Saves write ``settings.yaml.tmp`` (mode 0600), fsync it, then rename it
  over ``settings.yaml``. A concurrent reader therefore sees either the old
  or the new document, never a partial one.

Readers that do not intend to mutate may call :meth:`SettingsStore.load`
without the lock.
"""

from __future__ import annotations

import contextlib
import errno
import logging
import os
import time
from pathlib import Path
from typing import Callable, Iterable, Iterator, TypeVar

import yaml
from pydantic import ValidationError

from modelctl.config.defaults import apply_defaults, default_config
from modelctl.config.models import Config
from modelctl.config.validation import validate_config
from modelctl.exceptions import (
    ConfigIOError,
    ConfigParseError,
    ConfigValidationError,
    LockTimeoutError,
    ValidationIssue,
)
from modelctl.paths import PathResolver
from modelctl.secrets.references import is_reference

if os.name == "nt":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_LOCK_TIMEOUT",
    "DEFAULT_POLL_INTERVAL",
    "SettingsStore",
    "dump_config",
]

T = TypeVar("T")

DEFAULT_LOCK_TIMEOUT = 5.0
DEFAULT_POLL_INTERVAL = 0.1

_CONTENDED_ERRNOS = frozenset(
    code
    for code in (
        errno.EAGAIN,
        errno.EACCES,
        getattr(errno, "EWOULDBLOCK", None),
        getattr(errno, "EDEADLOCK", None),
        errno.EDEADLK,
    )
    if code is not None
)


def _try_lock(fd: int) -> None:
    if os.name == "nt":
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_NBLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)


def _release_lock(fd: int) -> None:
    if os.name == "nt":
        os.lseek(fd, 0, os.SEEK_SET)
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(fd, fcntl.LOCK_UN)


def _fsync_directory(path: Path) -> None:
    if os.name == "nt":
        return
    with contextlib.suppress(OSError):
        fd = os.open(path, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)


def dump_config(config: Config) -> str:
    """Serialize a document to YAML text.

    Declared fields keep their declaration order and unknown keys follow,
    so the output is deterministic for a given document.
    """
    data = config.model_dump(mode="python")
    return yaml.safe_dump(
        data,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


class SettingsStore:
    """Load and save ``settings.yaml`` under an exclusive cross-process lock.

    Example:
        >>> store = SettingsStore(Path("~/.config/modelctl/settings.yaml"))
        >>> def add_tier(config):
        ...     config.tiers["fast"] = "anthropic/claude-3-5-haiku-20241022"
        >>> store.mutate(add_tier)
    """

    def __init__(
        self,
        path: Path,
        paths: PathResolver | None = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the store.

        Args:
            path: Location of ``settings.yaml``.
            paths: Resolver used for path-valued defaults.
            lock_timeout: Seconds to wait for the lock before giving up.
            poll_interval: Seconds between lock attempts.
            clock: Monotonic clock, injectable for tests.
            sleep: Sleep function, injectable for tests.
        """
        self.path = Path(path)
        self.paths = paths
        self.lock_timeout = lock_timeout
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep
        self._lock_fd: int | None = None

    @property
    def lock_path(self) -> Path:
        return self.path.with_name(f"{self.path.name}.lock")

    @property
    def tmp_path(self) -> Path:
        return self.path.with_name(f"{self.path.name}.tmp")

    @property
    def is_locked(self) -> bool:
        return self._lock_fd is not None

    def exists(self) -> bool:
        return self.path.exists()

    # -- locking ----------------------------------------------------------

    def _ensure_parent(self) -> None:
        parent = self.path.parent
        if parent.is_dir():
            return
        try:
            parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigIOError(parent, e) from e

    def lock(self) -> None:
        """Acquire the exclusive lock, polling until the deadline.

        Raises:
            LockTimeoutError: If another process holds the lock past the
                deadline.
            ConfigIOError: If the lock file cannot be opened.
        """
        if self._lock_fd is not None:
            return
        self._ensure_parent()
        try:
            fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as e:
            raise ConfigIOError(self.lock_path, e) from e

        deadline = self._clock() + self.lock_timeout
        while True:
            try:
                _try_lock(fd)
                break
            except OSError as e:
                if e.errno not in _CONTENDED_ERRNOS:
                    os.close(fd)
                    raise ConfigIOError(self.lock_path, e) from e
            if self._clock() >= deadline:
                os.close(fd)
                raise LockTimeoutError(self.lock_path, self.lock_timeout)
            self._sleep(self.poll_interval)

        self._lock_fd = fd
        logger.debug(f"Acquired lock {self.lock_path}")

    def unlock(self) -> None:
        """Release the lock and close the lock file. Safe to call repeatedly."""
        fd, self._lock_fd = self._lock_fd, None
        if fd is None:
            return
        try:
            _release_lock(fd)
        except OSError as e:
            logger.debug(f"Failed to release lock {self.lock_path}: {e}")
        finally:
            # Closing the descriptor drops the lock even if release failed
            os.close(fd)
        logger.debug(f"Released lock {self.lock_path}")

    @contextlib.contextmanager
    def locked(self) -> Iterator[SettingsStore]:
        """Context manager holding the lock for the duration of the block."""
        self.lock()
        try:
            yield self
        finally:
            self.unlock()

    def with_lock(self, fn: Callable[[], T]) -> T:
        """Run ``fn`` while holding the lock; the lock is released on any exit."""
        with self.locked():
            return fn()

    # -- load / save -------------------------------------------------------

    def load(self) -> Config:
        """Read the document, or return defaults when the file does not exist.

        Raises:
            ConfigIOError: If the file exists but cannot be read.
            ConfigParseError: If the file is not a YAML mapping.
            ConfigValidationError: If values have the wrong type or violate
                field constraints.
        """
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"{self.path} does not exist, using defaults")
            return default_config(self.paths)
        except OSError as e:
            raise ConfigIOError(self.path, e) from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigParseError(self.path, str(e)) from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigParseError(
                self.path,
                f"expected a mapping at the top level, got {type(data).__name__}",
            )

        try:
            config = Config.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(
                [
                    ValidationIssue(
                        ".".join(str(part) for part in error["loc"]),
                        error["msg"],
                        f"schema:{error['type']}",
                    )
                    for error in e.errors()
                ]
            ) from e

        apply_defaults(config, self.paths)
        for name, provider in config.providers.items():
            if provider.api_key and not is_reference(provider.api_key):
                logger.warning(
                    f"Provider '{name}' has a plaintext api_key in {self.path}; "
                    f"run 'modelctl provider edit {name} --api-key-env NAME' to fix it"
                )
        return config

    def save(self, config: Config) -> None:
        """Atomically replace the settings file with ``config``.

        Unset fields are written with their defaults, so saving a loaded
        document reproduces the file byte for byte.

        Raises:
            ConfigIOError: If writing or renaming fails. The previous file is
                left untouched and the temporary file is removed.
        """
        text = dump_config(apply_defaults(config.model_copy(deep=True), self.paths))
        self._ensure_parent()
        tmp = self.tmp_path
        try:
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            if os.name != "nt":
                os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise ConfigIOError(self.path, e) from e
        _fsync_directory(self.path.parent)
        logger.debug(f"Saved {self.path}")

    def mutate(self, fn: Callable[[Config], T], allow: Iterable[str] = ()) -> T:
        """Apply ``fn`` to the document under the lock and save the result.

        The document is validated before and after ``fn``. The mutation is
        rejected if it introduces a validation issue that was not already
        present, unless the issue code is listed in ``allow`` (an entry
        ``orphaned_tier`` also matches ``orphaned_tier:<tier>``).

        Args:
            fn: Callback that edits the document in place. Its return value
                is passed through.
            allow: Issue codes the caller deliberately introduces.

        Returns:
            Whatever ``fn`` returned.

        Raises:
            ConfigValidationError: If ``fn`` introduced new issues.
            ModelctlError: Anything raised by ``fn``; nothing is saved.
        """
        allowed = set(allow)
        with self.locked():
            config = self.load()
            baseline = {(issue.path, issue.code) for issue in validate_config(config)}
            if baseline:
                logger.debug(f"{self.path} has {len(baseline)} pre-existing issue(s)")

            result = fn(config)

            introduced = [
                issue
                for issue in validate_config(config)
                if (issue.path, issue.code) not in baseline
                and not _is_allowed(issue.code, allowed)
            ]
            if introduced:
                raise ConfigValidationError(introduced)
            self.save(config)
            return result


def _is_allowed(code: str, allowed: set[str]) -> bool:
    return code in allowed or code.split(":", 1)[0] in allowed
