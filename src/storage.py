"""
Filesystem-based draft storage for Stepwise.

Unfinished wizard sessions are saved as YAML drafts so they can be resumed
later with WizardController.from_snapshot.
Drafts are stored in <DRAFTS_DIR>/<wizard-id>/<slug>.yaml
"""

import logging
import re
import yaml
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from app.core.config import DRAFTS_DIR

logger = logging.getLogger(__name__)


def init_storage(drafts_dir: Optional[Path] = None) -> Path:
    """
    Ensure the drafts directory exists.

    Args:
        drafts_dir: Custom drafts directory (default: DRAFTS_DIR)

    Returns:
        The drafts directory path
    """
    drafts_path = Path(drafts_dir or DRAFTS_DIR)
    drafts_path.mkdir(parents=True, exist_ok=True)
    return drafts_path


def slugify(name: str) -> str:
    """
    Convert a draft name to a filesystem-safe slug.

    Args:
        name: The draft name (e.g., "Web Server (prod)")

    Returns:
        A slug (e.g., "web-server-prod")
    """
    # Lowercase
    slug = name.lower()
    # Replace spaces and underscores with hyphens
    slug = re.sub(r'[\s_]+', '-', slug)
    # Remove non-alphanumeric characters (except hyphens)
    slug = re.sub(r'[^a-z0-9-]', '', slug)
    # Collapse multiple hyphens
    slug = re.sub(r'-+', '-', slug)
    # Strip leading/trailing hyphens
    slug = slug.strip('-')

    return slug or "unnamed-draft"


def get_draft_path(wizard_id: str, slug: str, drafts_dir: Optional[Path] = None) -> Path:
    return Path(drafts_dir or DRAFTS_DIR) / wizard_id / f"{slug}.yaml"


def save_draft(
    definition,
    name: str,
    snapshot: Dict[str, Any],
    drafts_dir: Optional[Path] = None,
) -> Path:
    """
    Save a configuration snapshot as a draft.

    Secret fields are written as null; the user re-enters them on resume.
    Values for fields the definition does not know are dropped.

    Args:
        definition: WizardDefinition the snapshot belongs to
        name: Human-readable draft name, slugified for the file name
        snapshot: Field values (e.g. WizardController.snapshot())
        drafts_dir: Custom drafts directory

    Returns:
        Path to the saved YAML file

    Raises:
        ValueError: If the name is blank
    """
    if not name or not name.strip():
        raise ValueError("A draft name is required")

    values = {}
    for spec in definition.fields:
        if spec.id not in snapshot:
            continue
        values[spec.id] = None if spec.secret else snapshot[spec.id]

    document = {
        "draft": {
            "name": name.strip(),
            "wizard_id": definition.id,
            "saved_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        },
        "values": values,
    }

    file_path = get_draft_path(definition.id, slugify(name), drafts_dir)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    with open(file_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Saved draft {file_path}")
    return file_path


def load_draft(wizard_id: str, slug: str, drafts_dir: Optional[Path] = None) -> Optional[dict]:
    """
    Load the field values of a draft.

    Returns:
        The saved values, or None if the draft does not exist
    """
    file_path = get_draft_path(wizard_id, slug, drafts_dir)
    if not file_path.exists():
        return None
    return read_values(file_path)


def read_values(file_path: Path) -> dict:
    """
    Field values from a draft file.

    Accepts both full drafts (with a `values` section) and plain mappings of
    field id to value, as written by hand for the CLI.

    Raises:
        ValueError: If the file does not hold a mapping
    """
    with open(file_path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{file_path} does not contain a mapping")
    values = data.get("values", data) if "draft" in data else data
    if not isinstance(values, dict):
        raise ValueError(f"{file_path} has no field values")
    return values


def list_drafts(drafts_dir: Optional[Path] = None) -> list[dict]:
    """
    List all drafts.

    Returns:
        List of draft summaries:
        [{"slug": "...", "wizard_id": "...", "name": "...", "saved_at": "...", "status": "...", "path": "..."}]
    """
    drafts_path = Path(drafts_dir or DRAFTS_DIR)
    if not drafts_path.exists():
        return []

    drafts = []
    for file_path in sorted(drafts_path.glob("*/*.yaml")):
        slug = file_path.stem
        wizard_id = file_path.parent.name
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)

            info = data.get("draft", {})
            drafts.append({
                "slug": slug,
                "wizard_id": info.get("wizard_id", wizard_id),
                "name": info.get("name", slug),
                "saved_at": info.get("saved_at", ""),
                "status": "draft",
                "path": str(file_path),
            })
        except (yaml.YAMLError, AttributeError) as e:
            # Include broken drafts with error status
            logger.warning("Could not read draft %s: %s", file_path, e)
            drafts.append({
                "slug": slug,
                "wizard_id": wizard_id,
                "name": slug,
                "saved_at": "",
                "status": "error",
                "error": f"Error loading: {e}",
                "path": str(file_path),
            })

    return drafts


def delete_draft(wizard_id: str, slug: str, drafts_dir: Optional[Path] = None) -> bool:
    """
    Delete a draft from disk.

    Returns:
        True if deleted, False if not found
    """
    file_path = get_draft_path(wizard_id, slug, drafts_dir)
    if not file_path.exists():
        return False
    file_path.unlink()
    return True
