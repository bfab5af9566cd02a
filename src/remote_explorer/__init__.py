# remote_explorer/__init__.py
"""Remote file explorer core: session coordination, listing cache, transfers and elevation."""

from .app import RemoteExplorer, create_command_explorer, create_explorer

__all__ = ["RemoteExplorer", "create_command_explorer", "create_explorer"]
