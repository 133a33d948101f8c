"""
Re-index Hook — rebuild the data file's indexes after a repair run.

Zero-detection blanks whole records with 0xFF; the database's ITEST
utility must run afterwards to drop them and rebuild the index files.

Version selection (newest installed wins):
  • /ppro/src/cf/ITEST3.PRG  →  DBC ITEST3 <NAME> ALL DUP
  • /ppro/src/cf/ITEST2.PRG  →  DBC ITEST2 <NAME> ALL DUP
  • otherwise                →  DBC ITEST

DBC_IKEYS / DBC_ICHRS are passed through to the command's environment.
"""

from __future__ import annotations

import os
import logging
import subprocess
from typing import Mapping, Optional, Sequence

from .errors import ExternalHookError

logger = logging.getLogger(__name__)

ITEST1_PATH = "/ppro/src/cffp/ITEST.PRG"
ITEST2_PATH = "/ppro/src/cf/ITEST2.PRG"
ITEST3_PATH = "/ppro/src/cf/ITEST3.PRG"

DBC_ENV_VARS = ("DBC_IKEYS", "DBC_ICHRS")

HOOK_TIMEOUT = 3600


def dbc_environment(environ: Optional[Mapping[str, str]] = None) -> dict:
    """Pick the DBC_* settings out of `environ` (default: os.environ)."""
    if environ is None:
        environ = os.environ
    return {k: environ[k] for k in DBC_ENV_VARS if k in environ}


class ReindexHook:
    """Runs once after all records are processed."""

    def trigger(self, data_file: str) -> None:
        """Raise ExternalHookError if the re-index fails."""
        raise NotImplementedError


def _run(argv: list[str], env: Mapping[str, str], timeout: int) -> None:
    try:
        r = subprocess.run(
            argv, capture_output=True, text=True, timeout=timeout,
            env=dict(env),
        )
    except FileNotFoundError as e:
        raise ExternalHookError(f"{argv[0]} not found: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise ExternalHookError(
            f"{' '.join(argv)} timed out after {timeout}s") from e
    except OSError as e:
        raise ExternalHookError(f"{' '.join(argv)} failed: {e}") from e

    if r.stdout:
        logger.info("%s", r.stdout.rstrip())
    if r.returncode != 0:
        raise ExternalHookError(
            f"{' '.join(argv)} exited with status {r.returncode}: "
            f"{r.stderr.strip()}")


class CommandHook(ReindexHook):
    """Run an arbitrary command with the data file path appended."""

    def __init__(self, argv: Sequence[str],
                 environ: Optional[Mapping[str, str]] = None,
                 timeout: int = HOOK_TIMEOUT):
        if not argv:
            raise ValueError("CommandHook needs a command")
        self.argv = list(argv)
        self.environ = dict(os.environ if environ is None else environ)
        self.timeout = timeout

    def trigger(self, data_file: str) -> None:
        argv = self.argv + [data_file]
        logger.info("Running re-index command: %s", " ".join(argv))
        _run(argv, self.environ, self.timeout)


class ItestHook(ReindexHook):
    """Roll out the newest installed ITEST for the repaired file."""

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        itest2_path: str = ITEST2_PATH,
        itest3_path: str = ITEST3_PATH,
        dbc: str = "DBC",
        timeout: int = HOOK_TIMEOUT,
    ):
        base = dict(os.environ if environ is None else environ)
        self.environ = base
        self.dbc_settings = dbc_environment(base)
        self.itest2_path = itest2_path
        self.itest3_path = itest3_path
        self.dbc = dbc
        self.timeout = timeout

    def detect_version(self) -> int:
        if os.path.exists(self.itest3_path):
            return 3
        if os.path.exists(self.itest2_path):
            return 2
        return 1

    def command(self, data_file: str) -> list[str]:
        name = os.path.basename(data_file)
        version = self.detect_version()
        if version == 3:
            return [self.dbc, "ITEST3", name, "ALL", "DUP"]
        if version == 2:
            return [self.dbc, "ITEST2", name, "ALL", "DUP"]
        return [self.dbc, "ITEST"]

    def trigger(self, data_file: str) -> None:
        argv = self.command(data_file)
        logger.info("Rolling out the current ITEST command: %s",
                    " ".join(argv))
        if self.dbc_settings:
            logger.debug("DBC settings: %s", self.dbc_settings)
        _run(argv, self.environ, self.timeout)
