"""Startup folder collector.

Lists files directly inside the machine-wide and current-user startup
folders. Subdirectories are not descended into.
"""

from collections.abc import Iterator
from pathlib import Path
from typing import ClassVar

from hosttriage.collectors.base import BaseCollector, CollectorRegistry
from hosttriage.core import logging as log
from hosttriage.core.config import TriageConfig
from hosttriage.models.finding import Finding, FindingCategory
from hosttriage.normalizer import FindingNormalizer
from hosttriage.sources.base import SourceSet


@CollectorRegistry.register
class StartupFolderCollector(BaseCollector):
    """One Finding per file in each startup folder."""

    name: ClassVar[str] = "startup_folder"
    category: ClassVar[FindingCategory] = FindingCategory.STARTUP_FOLDER
    description: ClassVar[str] = "Files in the machine and user startup folders"

    def __init__(self, folders: list[Path], normalizer: FindingNormalizer) -> None:
        super().__init__(normalizer)
        self.folders = folders

    @classmethod
    def from_config(
        cls,
        sources: SourceSet,
        config: TriageConfig,
        normalizer: FindingNormalizer,
    ) -> "StartupFolderCollector":
        return cls(config.resolved_startup_folders(), normalizer)

    def collect(self) -> Iterator[Finding]:
        for folder in self.folders:
            yield from self._collect_folder(folder)

    def _collect_folder(self, folder: Path) -> Iterator[Finding]:
        try:
            present = folder.is_dir()
        except OSError as e:
            log.debug("Startup folder not accessible", folder=str(folder), error=str(e))
            return
        if not present:
            log.debug("Startup folder not present", folder=str(folder))
            return

        try:
            entries = sorted(folder.iterdir(), key=lambda p: p.name.lower())
        except OSError as e:
            log.debug("Startup folder not readable", folder=str(folder), error=str(e))
            return

        for path in entries:
            try:
                is_file = path.is_file()
            except OSError as e:
                log.debug("Startup entry not accessible", path=str(path), error=str(e))
                continue
            if not is_file:
                continue
            yield self.normalizer.normalize(
                self.category,
                location=str(folder),
                name=path.name,
                value=str(path.absolute()),
            )
