# pathpicker_sync/Browser/__init__.py
from .file_system_model import FileSystemModel

__all__ = ["FileSystemModel"]
