# remote_explorer/explorer/__init__.py
