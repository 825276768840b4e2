"""Placeholder resolution for manifest target paths."""

from __future__ import annotations

from pathlib import Path

WORKSPACE_TOKEN = "$workspace"
USERPROFILE_TOKEN = "$userprofile"
INSTRUCTIONS_TOKEN = "$instructions"


def is_merge_target(target: str) -> bool:
    """Check whether a target means "merge into the main document"."""
    return target.startswith(INSTRUCTIONS_TOKEN)


def resolve(target: str, workspace: Path, userprofile: Path) -> Path:
    """Rewrite a target path template into a concrete path.

    A leading token is joined onto its root so separators stay native; a token
    further into the string is replaced literally, once. The merge sentinel and
    unknown tokens are returned unchanged.

    Args:
        target: Target path from templates.yml
        workspace: Workspace root directory
        userprofile: User home directory

    Returns:
        Resolved path
    """
    if is_merge_target(target):
        return Path(target)

    for token, root in ((WORKSPACE_TOKEN, workspace), (USERPROFILE_TOKEN, userprofile)):
        if target.startswith(token):
            suffix = target[len(token):].lstrip("/\\")
            return Path(root) / suffix if suffix else Path(root)
        if token in target:
            target = target.replace(token, str(root), 1)

    return Path(target)
