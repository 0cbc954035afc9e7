# pathpicker_sync/__init__.py
from pathpicker_sync.Constants import APP_NAME, APP_VERSION

__version__ = APP_VERSION
