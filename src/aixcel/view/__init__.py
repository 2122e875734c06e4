"""
The VIEW layer contains the PySide6 widgets.
Widgets only paint and forward user input to the GridController.
"""
