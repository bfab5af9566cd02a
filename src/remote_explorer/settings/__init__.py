# remote_explorer/settings/__init__.py
