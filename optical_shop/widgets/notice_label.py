from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QLabel

_STYLES = {
    "success": "color: #1b5e20; background: #e8f5e9; padding: 4px 8px; border-radius: 4px;",
    "error": "color: #b71c1c; background: #ffebee; padding: 4px 8px; border-radius: 4px;",
}


class NoticeLabel(QLabel):
    """Transient status line: show(message, severity) then clear after `timeout_ms`."""

    def __init__(self, parent=None, timeout_ms: int = 4000):
        super().__init__(parent)
        self.severity = ""
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(timeout_ms)
        self._timer.timeout.connect(self.clear_notice)
        self.setVisible(False)

    def show_notice(self, message: str, severity: str = "success") -> None:
        self.severity = severity
        self.setText(message)
        self.setStyleSheet(_STYLES.get(severity, ""))
        self.setVisible(True)
        self._timer.start()

    def clear_notice(self) -> None:
        self._timer.stop()
        self.severity = ""
        self.clear()
        self.setVisible(False)
