"""Persistence of completed inquiries.

Completed inquiries are written twice: as an entry in the agent's
growth-vectors JSON document, and as a standalone markdown insight file.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from contemplation.core.config import OutputConfig
from contemplation.inquiries.models import Inquiry, pass_label, utcnow

logger = logging.getLogger(__name__)


@dataclass
class OutputPaths:
    """Where one agent's insights are written."""

    growth_vectors_path: Path
    insights_path: Optional[Path] = None


def resolve_output_paths(
    agent_id: str,
    workspace: Optional[str | Path] = None,
    output: Optional[OutputConfig] = None,
) -> OutputPaths:
    """Resolve output paths for an agent.

    Explicit config paths win when both are set. Otherwise paths live under
    the agent's workspace: ~/.openclaw/workspace for "main",
    ~/.openclaw/workspace-<agent_id> for any other agent.
    """
    if output and output.growth_vectors_path and output.insights_path:
        return OutputPaths(output.growth_vectors_path, output.insights_path)

    if workspace:
        root = Path(workspace)
    else:
        name = "workspace" if agent_id == "main" else f"workspace-{agent_id}"
        root = Path.home() / ".openclaw" / name

    return OutputPaths(
        growth_vectors_path=root / "memory" / "growth-vectors.json",
        insights_path=root / "memory" / "insights",
    )


def build_growth_vector(inquiry: Inquiry) -> dict[str, Any]:
    """Growth-vector entry for a completed inquiry."""
    return {
        "id": inquiry.id,
        "type": "contemplation",
        "question": inquiry.question,
        "insight": inquiry.final_output,
        "source": inquiry.source,
        "tags": inquiry.tags,
        "created": (inquiry.completed or utcnow()).isoformat(),
    }


def append_growth_vector(path: str | Path, inquiry: Inquiry) -> None:
    """Append a completed inquiry to a growth-vectors document.

    The document is ``{"vectors": [...]}``; a file holding a bare list is
    kept as a list.

    Raises:
        ValueError: If the existing file is not valid JSON or has another shape
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.exists():
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Corrupt growth vectors file {path}: {e}") from e
    else:
        document = {"vectors": []}

    entry = build_growth_vector(inquiry)
    if isinstance(document, list):
        document.append(entry)
    elif isinstance(document, dict):
        document.setdefault("vectors", []).append(entry)
        document["last_updated"] = utcnow().isoformat()
    else:
        raise ValueError(f"Unexpected growth vectors format in {path}")

    path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")


def render_insight(inquiry: Inquiry) -> str:
    """Markdown rendering of an inquiry and all its passes."""
    lines = [
        f"# {inquiry.question}",
        "",
        f"- **Source:** {inquiry.source}",
        f"- **Created:** {inquiry.created.isoformat()}",
    ]
    if inquiry.completed:
        lines.append(f"- **Completed:** {inquiry.completed.isoformat()}")
    if inquiry.tags:
        lines.append(f"- **Tags:** {', '.join(inquiry.tags)}")

    for p in inquiry.passes:
        lines.extend(["", f"## Pass {p.number} ({pass_label(p.number)})", "", p.output or "_(no output)_"])

    return "\n".join(lines) + "\n"


def write_insight_file(directory: str | Path, inquiry: Inquiry) -> Path:
    """Write ``<date>-<inquiry id>.md`` into directory and return its path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    stamp = (inquiry.completed or utcnow()).strftime("%Y-%m-%d")
    path = directory / f"{stamp}-{inquiry.id}.md"
    path.write_text(render_insight(inquiry), encoding="utf-8")
    logger.debug(f"Wrote insight file {path}")
    return path
