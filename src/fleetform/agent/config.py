"""Configuration management for the agent."""

import asyncio
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple
import hashlib

from ruamel.yaml import YAML
from pydantic import ValidationError

from fleetform.models.config import FleetformConfig
from fleetform.models.container import ContainerMap, ContainerPlan
from fleetform.utils.dedup import filter_duplicates


logger = logging.getLogger(__name__)


class ConfigManager:
    """Loads the agent configuration and the declared fleet."""

    def __init__(self, config_dir: Path):
        """Initialize configuration manager."""
        self.config_dir = Path(config_dir)
        self.yaml = YAML(typ="safe")
        self.config: Optional[FleetformConfig] = None
        self.containers: ContainerMap = {}
        self.errors: List[str] = []
        self._config_hashes: Dict[str, str] = {}

    async def load(self):
        """Load all configuration files."""
        logger.info(f"Loading configuration from {self.config_dir}")
        self.errors = []
        self._config_hashes = {}

        await self._load_main_config()
        await self._load_containers()

        logger.info(
            f"Configuration loaded successfully ({len(self.containers)} containers)"
        )

    async def _load_main_config(self):
        """Load main configuration file."""
        config_file = self.config_dir / "config.yaml"
        if not config_file.exists():
            raise FileNotFoundError(f"Main config not found: {config_file}")

        try:
            data = await self._read_yaml(config_file)
            self.config = FleetformConfig(**(data or {}))
            logger.debug(f"Loaded main config: {config_file}")
        except ValidationError as e:
            logger.error(f"Invalid main config: {e}")
            raise

    async def _load_containers(self):
        """Load container plans from node files."""
        nodes_dir = self.config_dir / "nodes"
        if not nodes_dir.exists():
            logger.warning(f"Nodes directory not found: {nodes_dir}")
            self.containers = {}
            return

        declared: List[Tuple[str, Path, Any]] = []
        for yaml_file in sorted(nodes_dir.glob("*.yaml")):
            try:
                data = await self._read_yaml(yaml_file)
            except Exception as e:
                self._record_error(f"Error loading {yaml_file}: {e}")
                continue
            if not isinstance(data, dict):
                self._record_error(f"Ignoring {yaml_file}: expected a mapping")
                continue
            for name, entry in (data.get("containers") or {}).items():
                declared.append((str(name), yaml_file, entry))
            logger.debug(f"Loaded containers from {yaml_file}")

        def _duplicate(name: str):
            self._record_error(
                f"Container {name} declared more than once, keeping first declaration",
                level=logging.WARNING,
            )

        filter_duplicates([name for name, _, _ in declared], _duplicate)

        containers: ContainerMap = {}
        handled = set()
        for name, yaml_file, entry in declared:
            if name in handled:
                continue
            handled.add(name)
            try:
                containers[name] = ContainerPlan(**(entry or {}))
            except (ValidationError, TypeError) as e:
                self._record_error(f"Invalid container {name} in {yaml_file}: {e}")
        self.containers = containers

    def _record_error(self, message: str, level: int = logging.ERROR):
        logger.log(level, message)
        self.errors.append(message)

    async def _read_yaml(self, file_path: Path) -> Dict[str, Any]:
        """Read and parse YAML file."""
        content = await asyncio.to_thread(file_path.read_text)
        # Store hash for change detection
        self._config_hashes[str(file_path)] = hashlib.md5(content.encode()).hexdigest()
        return self.yaml.load(content)

    async def watch_for_changes(self) -> bool:
        """Check if configuration files have changed."""
        current = {}
        for yaml_file in await asyncio.to_thread(self._tracked_files):
            content = await asyncio.to_thread(yaml_file.read_text)
            current[str(yaml_file)] = hashlib.md5(content.encode()).hexdigest()

        return current != self._config_hashes

    def _tracked_files(self) -> List[Path]:
        """Files that make up the configuration."""
        files = [self.config_dir / "config.yaml"]
        files.extend(sorted((self.config_dir / "nodes").glob("*.yaml")))
        return [f for f in files if f.exists()]

    @property
    def prefix(self) -> str:
        """Resource name prefix."""
        return self.config.prefix if self.config else FleetformConfig().prefix

    def get_container_plan(self, name: str) -> Optional[ContainerPlan]:
        """Get container plan by logical name."""
        return self.containers.get(name)
