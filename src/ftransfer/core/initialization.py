"""
ftransfer startup initialization.

Orchestrates initialization of all components in the correct order:
1. Config (with validation)
2. Logging
3. Connections (validation, one-shot reachability probe)
4. Download folder (optionally recreated)
5. Ledger (optionally truncated)
6. Scheduler (group split, runner)
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path

import yaml

from ftransfer.config.loader import Config, load_config
from ftransfer.connections.manager import probe_connections
from ftransfer.core.scheduler import GroupScheduler, split_connections
from ftransfer.core.types import Connection
from ftransfer.exceptions import ConfigurationError, FtransferError, InitializationError
from ftransfer.sync.ledger import DownloadLedger
from ftransfer.sync.runner import SyncRunner
from ftransfer.utils.logging import get_logger, setup_logging_from_config

logger = get_logger("ftransfer.initialization")


@dataclass
class Runtime:
    """Everything a running agent needs, wired together."""

    project_dir: Path
    config: Config
    connections: list[Connection]
    groups: dict[str, list[Connection]]
    ledger: DownloadLedger
    runner: SyncRunner
    scheduler: GroupScheduler
    download_dir: Path
    retention_days: int = 7
    shutdown_grace_s: float = 30.0


class FtransferInitializer:
    """Handles complete initialization of an ftransfer project."""

    def __init__(
        self,
        project_dir: Path,
        env: str | None = None,
        config_file: Path | None = None,
        *,
        debug: bool = False,
        groups: int | None = None,
        download_dir: Path | None = None,
        truncate: bool = False,
        clean: bool = False,
        probe: bool = True,
    ):
        self.project_dir = Path(project_dir)
        self.env = env or os.environ.get("FTRANSFER_ENV")
        self.config_file = config_file
        self.debug = debug
        self.groups_override = groups
        self.download_override = download_dir
        self.truncate = truncate
        self.clean = clean
        self.probe = probe

        self.config: Config | None = None
        self.ledger: DownloadLedger | None = None

    def initialize_all(self) -> Runtime:
        """
        Initialize all components in the correct order.

        Raises:
            InitializationError: If any initialization step fails
        """
        self.config = self._initialize_config()
        self._initialize_logging()
        connections = self._initialize_connections()
        download_dir = self._initialize_download_dir()
        self.ledger = self._initialize_ledger()

        try:
            return self._initialize_scheduler(connections, download_dir)
        except Exception:
            self.ledger.close()
            raise

    def _resolve(self, path: str | Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.project_dir / path

    def _initialize_config(self) -> Config:
        """Initialize and validate configuration."""
        try:
            config = load_config(self.project_dir, env=self.env, config_file=self.config_file)
            if self.groups_override is not None:
                config.data["scheduler"]["groups"] = self.groups_override
            config.validate()
            return config
        except ConfigurationError as e:
            raise InitializationError(e.message, step="config") from None
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise InitializationError(str(e), step="config") from None

    def _initialize_logging(self) -> None:
        try:
            setup_logging_from_config(self.config.data, project_dir=self.project_dir, debug=self.debug)
        except (OSError, ValueError) as e:
            raise InitializationError(f"Failed to initialize logging: {e}", step="logging") from None
        logger.info(f"ftransfer starting in {self.project_dir}" + (f" (env: {self.env})" if self.env else ""))

    def _initialize_connections(self) -> list[Connection]:
        connections = self.config.connections
        if not connections:
            logger.warning("No connections configured")
        if self.probe and connections:
            connections = probe_connections(connections, timeout_s=float(self.config.get("scheduler.probe_timeout_s", 2)))
        return connections

    def _initialize_download_dir(self) -> Path:
        download_dir = self._resolve(self.download_override or self.config.get("download.path", "download"))
        try:
            if self.clean and download_dir.exists():
                logger.info(f"Cleaning download folder {download_dir}")
                shutil.rmtree(download_dir)
            download_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InitializationError(f"Failed to prepare download folder {download_dir}: {e}", step="download") from None
        return download_dir

    def _initialize_ledger(self) -> DownloadLedger:
        ledger_path = self.config.get("ledger.path", "downloads.duckdb")
        if ledger_path != ":memory:":
            ledger_path = self._resolve(ledger_path)
        try:
            ledger = DownloadLedger(ledger_path)
            if self.truncate:
                ledger.clear()
            return ledger
        except FtransferError as e:
            raise InitializationError(f"Failed to initialize ledger: {e.message}", step="ledger") from None

    def _initialize_scheduler(self, connections: list[Connection], download_dir: Path) -> Runtime:
        groups = split_connections(connections, int(self.config.get("scheduler.groups", 5)))
        runner = SyncRunner(download_dir, self.ledger)
        scheduler = GroupScheduler(
            groups, runner, cycle_interval_s=float(self.config.get("scheduler.cycle_interval_s", 10))
        )
        for group_name, members in groups.items():
            logger.debug(f"{group_name}: {', '.join(c.name for c in members) or '(empty)'}")

        return Runtime(
            project_dir=self.project_dir,
            config=self.config,
            connections=connections,
            groups=groups,
            ledger=self.ledger,
            runner=runner,
            scheduler=scheduler,
            download_dir=download_dir,
            retention_days=int(self.config.get("ledger.retention_days", 7)),
            shutdown_grace_s=float(self.config.get("scheduler.shutdown_grace_s", 30)),
        )


def initialize(project_dir: Path, env: str | None = None, config_file: Path | None = None, **options) -> Runtime:
    """
    Initialize an ftransfer project.

    Args:
        project_dir: Project directory path
        env: Environment name (selects config.<env>.yaml)
        config_file: Explicit config file
        **options: debug, groups, download_dir, truncate, clean, probe

    Returns:
        Wired Runtime

    Raises:
        InitializationError: If any initialization step fails
    """
    return FtransferInitializer(project_dir, env=env, config_file=config_file, **options).initialize_all()
