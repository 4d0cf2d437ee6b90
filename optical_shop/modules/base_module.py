from PySide6.QtCore import QObject
from PySide6.QtWidgets import QWidget


class BaseModule(QObject):
    """A page of the main window, listed in the navigation under `title`."""

    title = ""

    def get_widget(self) -> QWidget:
        raise NotImplementedError
