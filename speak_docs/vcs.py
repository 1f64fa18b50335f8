"""Git branch detection for namespacing storage keys."""

import logging
import subprocess

from speak_docs.constants import DEFAULT_BRANCH

logger = logging.getLogger(__name__)


def current_branch(directory: str = ".") -> str:
    """Name of the checked-out branch, or the default when git cannot tell."""
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--abbrev-ref", "HEAD"],
            cwd=directory,
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        logger.debug("Could not detect git branch (%s), using %s", e, DEFAULT_BRANCH)
        return DEFAULT_BRANCH
    branch = result.stdout.strip()
    if not branch or branch == "HEAD":
        return DEFAULT_BRANCH
    return branch
