# remote_explorer/remote/__init__.py
