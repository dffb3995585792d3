"""File-system adapter that loads knowledge assets from a YAML tree.

One malformed file is logged and skipped; an unreadable root disables
knowledge rules entirely but never stops the bot.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

import yaml

from core.config import KnowledgeConfig
from core.errors import IngestionFault
from core.knowledge import KnowledgeAsset, knowledge_rule, parse_asset
from core.rules import RuleRegistry

LOGGER = logging.getLogger(__name__)


def find_rule_files(root: Path, extensions: Iterable[str]) -> List[Path]:
    """Return every rule file below ``root`` in a stable order."""

    if not root.is_dir():
        raise IngestionFault(str(root), "error reading knowledge prompts directory")
    wanted = {extension.lower() for extension in extensions}
    try:
        return sorted(path for path in root.rglob("*") if path.is_file() and path.suffix.lower() in wanted)
    except OSError as exc:
        raise IngestionFault(str(root), f"error reading knowledge prompts directory: {exc}") from exc


def load_asset(path: Path, root: Path) -> KnowledgeAsset:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise IngestionFault(str(path), f"error reading file: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise IngestionFault(str(path), f"error decoding file: {exc}") from exc
    except yaml.YAMLError as exc:
        raise IngestionFault(str(path), f"error unmarshalling file: {exc}") from exc
    relative = path.relative_to(root).parent.as_posix()
    return parse_asset(raw, str(path), relative)


def load_knowledge_assets(config: KnowledgeConfig) -> List[KnowledgeAsset]:
    """Load every asset under the root, ordered by priority then path."""

    root = Path(config.root)
    assets: List[KnowledgeAsset] = []
    for path in find_rule_files(root, config.extensions):
        LOGGER.debug("loading knowledge entry from %s", path)
        try:
            assets.append(load_asset(path, root))
        except IngestionFault as exc:
            LOGGER.error("skipping knowledge entry %s", exc)
    # Stable sort keeps path order among equal priorities.
    assets.sort(key=lambda asset: -asset.priority)
    return assets


def register_knowledge(registry: RuleRegistry, config: KnowledgeConfig) -> int:
    """Register knowledge rules; return how many were added."""

    try:
        assets = load_knowledge_assets(config)
    except IngestionFault as exc:
        LOGGER.debug("error loading knowledge entries: %s", exc)
        LOGGER.info("Skipping adding of knowledge-based rules.")
        return 0
    for asset in assets:
        registry.register(knowledge_rule(asset))
    LOGGER.info("%s knowledge assets are loaded from %s", len(assets), config.root)
    return len(assets)
