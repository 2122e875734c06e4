"""AIxcel grid client: collaborative spreadsheet grid on PySide6."""
__version__ = "0.1.0"
