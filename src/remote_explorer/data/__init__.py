# remote_explorer/data/__init__.py
