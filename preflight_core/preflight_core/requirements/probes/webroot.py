"""Detect sensitive folders that are reachable through the public web root.

The document root is derived from the running entry script: its absolute
filesystem path minus its public URL path.  A folder whose canonical path
lies under that root can be served to anyone.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping, Sequence
from pathlib import Path

from preflight_core.requirements.models import ProbeOutcome, WebrootContext

logger = logging.getLogger(__name__)


def normalize_path(path: str | os.PathLike[str]) -> str:
    """Collapse separators and ``.``/``..`` segments, dropping any trailing slash."""
    text = os.path.normpath(os.fspath(path))
    if len(text) > 1:
        text = text.rstrip(os.sep)
    return text


def document_root(context: WebrootContext) -> str:
    """Return the filesystem directory the web server maps to ``/``."""
    script_file = os.fspath(context.script_file)
    script_url = context.script_url.replace("/", os.sep)

    if script_url and script_file.endswith(script_url):
        base = script_file[: -len(script_url)]
    else:
        base = os.path.dirname(script_file)

    return normalize_path(base or os.sep)


def is_path_inside(path: str | os.PathLike[str], root: str) -> bool:
    """Return True if *path* is *root* or lies underneath it."""
    candidate = normalize_path(path)
    root = normalize_path(root)
    if candidate == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return candidate.startswith(prefix)


def find_exposed_folders(
    folders: Mapping[str, str | os.PathLike[str]],
    root: str,
    *,
    resolve: bool = True,
) -> list[str]:
    """Return the names of *folders* under *root*, in mapping order.

    With *resolve* set, folders that do not exist are skipped and the rest
    are compared by their canonical (symlink-free) path.
    """
    if resolve and os.path.exists(root):
        root = os.fspath(Path(root).resolve())

    exposed: list[str] = []
    for name, path in folders.items():
        if resolve:
            if not os.path.exists(path):
                logger.debug("Skipping missing folder %s (%s)", name, path)
                continue
            path = Path(path).resolve()
        if is_path_inside(path, root):
            exposed.append(name)
    return exposed


def describe_folders(names: Sequence[str], label_prefix: str = "") -> str:
    """List folder names as an English phrase.

    ``["a"]`` gives ``“a” folder``, ``["a", "b"]`` gives ``“a” and “b”
    folders``, three or more use a serial comma: ``“a”, “b”, and “c”
    folders``.
    """
    quoted = [f"“{label_prefix}{name}”" for name in names]

    if not quoted:
        return ""
    if len(quoted) == 1:
        return f"{quoted[0]} folder"
    if len(quoted) == 2:
        return f"{quoted[0]} and {quoted[1]} folders"
    return f"{', '.join(quoted[:-1])}, and {quoted[-1]} folders"


def check_webroot(
    folders: Mapping[str, str | os.PathLike[str]],
    context: WebrootContext,
    *,
    app_name: str = "application",
    label_prefix: str = "",
    resolve: bool = True,
) -> ProbeOutcome:
    """Check that none of *folders* is served from the web root.

    With *resolve* set (the default) each folder is canonicalized first, so
    folders that do not exist on disk are never reported, the same as a
    realpath lookup that fails.  Pass ``resolve=False`` to compare the
    given paths literally, e.g. for hosts whose filesystem is not mounted
    locally.
    """
    root = document_root(context)
    exposed = find_exposed_folders(folders, root, resolve=resolve)

    if not exposed:
        return ProbeOutcome(True, "")

    logger.warning("Folders reachable under web root %s: %s", root, ", ".join(exposed))
    verb, pronoun = ("appears", "it") if len(exposed) == 1 else ("appear", "them")
    return ProbeOutcome(
        False,
        f"Your {app_name} {describe_folders(exposed, label_prefix)} {verb} to be publicly accessible, "
        f"which is a security risk. You should strongly consider moving {pronoun} above your web root "
        f"or blocking access to {pronoun} in the web server configuration.",
    )
