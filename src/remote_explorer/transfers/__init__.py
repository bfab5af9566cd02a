# remote_explorer/transfers/__init__.py
