# remote_explorer/explorer/paths.py
"""Pure helpers over POSIX-style remote paths.

Nothing here touches the network or the listing cache; every function is
deterministic so breadcrumbs can always be rebuilt from a path alone.
"""

from dataclasses import dataclass
from typing import List

from ..settings.config import ExplorerConstants
from ..utils.translation_utils import _

ROOT = ExplorerConstants.ROOT_PATH


@dataclass(frozen=True)
class Breadcrumb:
    """One path segment between the root and the displayed directory."""

    label: str
    path: str
    is_navigable: bool


def _segments(path: str) -> List[str]:
    return [part for part in path.split("/") if part]


def is_current_dir_marker(path: str) -> bool:
    return path in ExplorerConstants.CURRENT_DIR_MARKERS


def is_absolute(path: str) -> bool:
    return path.startswith("/")


def normalize_path(path: str) -> str:
    """Collapse repeated slashes and drop any trailing slash.

    ``.`` and ``..`` segments are kept verbatim; the remote side resolves them.
    """
    if is_current_dir_marker(path):
        return path
    joined = "/".join(_segments(path))
    if is_absolute(path):
        return "/" + joined
    return joined or ExplorerConstants.HOME_PATH


def parent_of(path: str) -> str:
    if is_current_dir_marker(path) or path == ROOT:
        return ROOT

    parts = _segments(path)
    if len(parts) <= 1:
        return ROOT
    if is_absolute(path):
        return "/" + "/".join(parts[:-1])
    # Relative fallback, only seen before the working directory is resolved
    return "/".join(parts[:-1])


def join_path(base: str, name: str) -> str:
    name = name.strip("/")
    if base == ROOT:
        return f"/{name}"
    if not base:
        return name
    return f"{base.rstrip('/')}/{name}"


def base_name(path: str) -> str:
    parts = _segments(path)
    return parts[-1] if parts else path


def breadcrumbs_of(path: str) -> List[Breadcrumb]:
    """Decompose ``path`` into breadcrumbs; all but the last are navigable."""
    if is_absolute(path) or is_current_dir_marker(path):
        crumbs = [(_("Root"), ROOT)]
        prefix = ""
        if is_absolute(path):
            for part in _segments(path):
                prefix = f"{prefix}/{part}"
                crumbs.append((part, prefix))
    else:
        crumbs = [(_("Home"), ExplorerConstants.HOME_PATH)]
        prefix = ""
        for part in _segments(path):
            prefix = f"{prefix}/{part}" if prefix else part
            crumbs.append((part, prefix))

    last = len(crumbs) - 1
    return [
        Breadcrumb(label=label, path=crumb_path, is_navigable=index != last)
        for index, (label, crumb_path) in enumerate(crumbs)
    ]


def path_from_breadcrumbs(crumbs: List[Breadcrumb]) -> str:
    """Join breadcrumb labels back into a normalized path."""
    if not crumbs:
        return ""
    labels = [crumb.label for crumb in crumbs[1:]]
    if crumbs[0].path == ROOT:
        return "/" + "/".join(labels)
    return "/".join(labels) or ExplorerConstants.HOME_PATH
