"""Fragment merge engine for the main instructions document.

The main template carries one comment marker per insertion point plus a
template marker line. Merging splices fragment text after each insertion-point
marker (the marker itself stays so the structure survives later merges) and
removes the template marker, turning the template into a project instance.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence

from .models import InsertionPoint

logger = logging.getLogger(__name__)

_MARKER_PATTERN = re.compile("|".join(re.escape(point.marker) for point in InsertionPoint))

TEMPLATE_MARKER = (
    "<!-- VIBE-CHECK-TEMPLATE: This marker indicates an unmerged template. "
    "Do not remove manually. -->"
)


def is_customized(installed_text: str) -> bool:
    """Check whether an installed main document is a project instance.

    Only the literal template marker is consulted. Any file without it has
    been merged or edited and must not be overwritten without force.
    """
    return TEMPLATE_MARKER not in installed_text


def strip_template_marker(text: str) -> str:
    """Remove the template marker line once."""
    marker_line = f"{TEMPLATE_MARKER}\n"
    if marker_line in text:
        return text.replace(marker_line, "", 1)
    return text.replace(TEMPLATE_MARKER, "", 1)


def format_mission(mission: str) -> str:
    """Render custom mission text as a mission fragment."""
    return f"## Mission Statement\n\n{mission.strip()}"


def render_insertion(point: InsertionPoint, fragments: Sequence[str]) -> str:
    """Build the text that replaces an insertion-point marker.

    Returns:
        The marker followed by the trimmed fragments, one blank line apart
    """
    combined = "\n\n".join(fragment.strip() for fragment in fragments)
    return f"{point.marker}\n\n{combined}"


def merge(
    main_template: str,
    fragments: Mapping[InsertionPoint, Sequence[str]],
    mission: str | None = None,
) -> str:
    """Merge fragments into the main template.

    Args:
        main_template: Unmerged main document text
        fragments: Fragment texts per insertion point, in manifest order
        mission: Custom mission text that replaces the mission fragments

    Returns:
        Merged document without the template marker
    """
    content = strip_template_marker(main_template)

    insertions: dict[str, str] = {}
    for point in InsertionPoint:
        if point is InsertionPoint.MISSION and mission is not None:
            texts: Sequence[str] = [format_mission(mission)]
        else:
            texts = fragments.get(point, ())
        if texts:
            insertions[point.marker] = render_insertion(point, texts)

    for point in missing_insertion_points(content):
        if point.marker in insertions:
            logger.warning(
                "Insertion point %s not found in main template, fragments dropped",
                point.marker,
            )

    # Single pass over the template: inserted text is never rescanned and
    # only the first occurrence of each marker receives its fragments.
    parts: list[str] = []
    position = 0
    for match in _MARKER_PATTERN.finditer(content):
        replacement = insertions.pop(match.group(0), None)
        if replacement is None:
            continue
        parts.append(content[position:match.start()])
        parts.append(replacement)
        position = match.end()
    parts.append(content[position:])

    return "".join(parts)


def missing_insertion_points(main_template: str) -> list[InsertionPoint]:
    """List insertion points whose marker is absent from a template."""
    return [point for point in InsertionPoint if point.marker not in main_template]
