"""
BeamMP Server Console - GUI (PySide6)
"""

import logging
import sys
from pathlib import Path
from typing import Callable, Optional

from PySide6.QtCore import QEvent, QObject, Qt, Signal
from PySide6.QtGui import QFont, QIntValidator
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QSplitter,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from event_log import EventLog
from mod_repository import ModRepository
from navigation import MenuItem, NavigationEngine, Prompt, Screen
from provisioning import SERVER_RELEASE_URL, ServerSetup, StartupError
from server_config import CONFIG_FILENAME, ConfigStore

MOD_FILE_FILTER = "Compressed Mod File (*.zip *.ZIP)"


# ── Main Window ───────────────────────────────────────────────────────

class ConsoleWindow(QMainWindow):
    """Menu or prompt on the left, event log on the right."""

    # Background tasks append to the event log from worker threads; Qt queues
    # cross-thread signal emissions onto the main thread.
    _log_message = Signal(str)

    def __init__(self, window_title_suffix: str | None = None):
        super().__init__()
        title = "BeamMP Server Console"
        if window_title_suffix:
            title += f" {window_title_suffix}"
        self.setWindowTitle(title)
        self.setMinimumSize(900, 520)

        self.engine: Optional[NavigationEngine] = None

        self._build_ui()
        self._log_message.connect(self._append_log_line)

    def _build_ui(self):
        splitter = QSplitter(Qt.Horizontal)
        self.setCentralWidget(splitter)

        self.stack = QStackedWidget()

        # Menu page
        self.menu_page = QWidget()
        menu_layout = QVBoxLayout(self.menu_page)
        self.menu_title = QLabel()
        menu_layout.addWidget(self.menu_title)
        self.menu_list = QListWidget()
        self.menu_list.setFont(QFont("Consolas", 10))
        self.menu_list.itemActivated.connect(self._on_item_activated)
        self.menu_list.installEventFilter(self)
        menu_layout.addWidget(self.menu_list, 1)
        self.stack.addWidget(self.menu_page)

        # Prompt page
        self.prompt_page = QWidget()
        prompt_layout = QVBoxLayout(self.prompt_page)
        self.prompt_label = QLabel()
        self.prompt_label.setWordWrap(True)
        prompt_layout.addWidget(self.prompt_label)
        self.prompt_input = QLineEdit()
        self.prompt_input.returnPressed.connect(self._on_prompt_submitted)
        prompt_layout.addWidget(self.prompt_input)
        prompt_layout.addStretch()
        self.stack.addWidget(self.prompt_page)

        splitter.addWidget(self.stack)

        self.log_text = QPlainTextEdit()
        self.log_text.setReadOnly(True)
        self.log_text.setFont(QFont("Consolas", 9))
        splitter.addWidget(self.log_text)

        splitter.setChildrenCollapsible(False)
        splitter.setSizes([380, 520])

    def attach(self, engine: NavigationEngine):
        self.engine = engine

    # ── Logging ───────────────────────────────────────────────────────

    def post_log_line(self, line: str):
        self._log_message.emit(line)  # thread-safe

    def _append_log_line(self, line: str):
        self.log_text.appendPlainText(line)
        bar = self.log_text.verticalScrollBar()
        bar.setValue(bar.maximum())

    # ── UI surface ────────────────────────────────────────────────────

    def show_menu(self, screen: Screen, items: list[MenuItem]):
        self.menu_title.setText(f"<b>{screen.value}</b>")
        self.menu_list.clear()
        for index, item in enumerate(items):
            key = f"({item.shortcut}) " if item.shortcut else ""
            row = QListWidgetItem(f"{key}{item.label}\n      {item.description}")
            row.setData(Qt.UserRole, index)
            self.menu_list.addItem(row)
        self.menu_list.setCurrentRow(0)
        self.stack.setCurrentWidget(self.menu_page)
        self.menu_list.setFocus()

    def show_prompt(self, prompt: Prompt):
        self.prompt_label.setText(prompt.label)
        self.prompt_input.clear()
        self.prompt_input.setValidator(QIntValidator(self.prompt_input) if prompt.expects_integer else None)
        self.prompt_input.setEchoMode(QLineEdit.Normal if prompt.echo else QLineEdit.Password)
        self.stack.setCurrentWidget(self.prompt_page)
        self.prompt_input.setFocus()

    def pick_file(self, on_chosen: Callable[[Optional[str]], None]):
        path, _ = QFileDialog.getOpenFileName(self, "Select Mod", str(Path.home()), MOD_FILE_FILTER)
        on_chosen(path or None)

    def quit(self):
        self.close()

    # ── Input ─────────────────────────────────────────────────────────

    def _on_item_activated(self, row: QListWidgetItem):
        if self.engine:
            self.engine.activate(row.data(Qt.UserRole))

    def _on_prompt_submitted(self):
        if self.engine:
            self.engine.submit(self.prompt_input.text())

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:
        if (
            watched is self.menu_list
            and event.type() == QEvent.KeyPress
            and self.engine
            and event.text()
            and self.engine.press(event.text())
        ):
            return True
        return super().eventFilter(watched, event)


# ── Entry Point ───────────────────────────────────────────────────────

def main(
    logger: logging.Logger | None = None,
    *,
    server_dir: str | Path = ".",
    server_url: str = SERVER_RELEASE_URL,
    check_updates: bool = True,
    window_title_suffix: str | None = None,
):
    app = QApplication(sys.argv)
    app.setStyle("Fusion")

    logger = logger or logging.getLogger("beammpconsole")
    window = ConsoleWindow(window_title_suffix=window_title_suffix)

    events = EventLog()
    events.subscribe(window.post_log_line)
    events.append("Welcome to BeamMP Server Console")

    server_dir = Path(server_dir).resolve()
    logger.info("Server directory: %s", server_dir)
    config_store = ConfigStore(server_dir / CONFIG_FILENAME, log_callback=events.append)
    repository = ModRepository(server_dir, log_callback=events.append)
    setup = ServerSetup(server_dir, events.append, server_url=server_url)

    try:
        setup.run(config_store, check_binary=check_updates)
    except StartupError as e:
        QMessageBox.critical(window, "Startup Failed", str(e))
        sys.exit(1)

    engine = NavigationEngine(
        repository, config_store, events.append, window, on_update=setup.start_update
    )
    window.attach(engine)
    engine.start()
    window.show()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
