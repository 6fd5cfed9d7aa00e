import logging
import sys
from typing import Optional

import cv2
from PySide6 import QtCore, QtGui, QtWidgets

from accessory_registry import group_by_category
from app import config_from_args, parse_args
from config import ViewerConfig
from session import TryOnSession
from visualization import draw_landmarks


class TryOnPage(QtWidgets.QWidget):
    def __init__(self, config: ViewerConfig, parent=None, session_factory=TryOnSession):
        super().__init__(parent)
        self.config = config
        self.session_factory = session_factory
        self._setup_ui()
        self._setup_runtime()

    def _setup_ui(self):
        self.setObjectName("TryOnPage")
        layout = QtWidgets.QHBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(16)

        self.video_label = QtWidgets.QLabel("Camera feed")
        self.video_label.setAlignment(QtCore.Qt.AlignCenter)
        self.video_label.setMinimumSize(640, 480)
        self.video_label.setStyleSheet("background:#101214; border-radius:12px;")

        right_panel = QtWidgets.QVBoxLayout()
        right_panel.setSpacing(12)

        list_style = (
            "QListWidget{background:#15181b;border:1px solid #2b2f33;border-radius:10px;color:#e6e6e6;}"
            "QListWidget::item{padding:8px;border-radius:6px;}"
            "QListWidget::item:selected{background:#1f6f5f;color:#ffffff;}"
        )
        self.category_list = QtWidgets.QListWidget()
        self.category_list.setMinimumWidth(240)
        self.category_list.setMaximumHeight(160)
        self.category_list.setStyleSheet(list_style)
        self.accessory_list = QtWidgets.QListWidget()
        self.accessory_list.setStyleSheet(list_style)

        self.stats_box = QtWidgets.QFrame()
        self.stats_box.setStyleSheet(
            "QFrame{background:#15181b;border:1px solid #2b2f33;border-radius:10px;color:#e6e6e6;}"
        )
        stats_layout = QtWidgets.QVBoxLayout(self.stats_box)
        stats_layout.setContentsMargins(12, 12, 12, 12)
        stats_layout.setSpacing(8)

        self.tracking_label = QtWidgets.QLabel("Tracking: -")
        self.accessory_label = QtWidgets.QLabel("Accessory: -")
        self.status_label = QtWidgets.QLabel("Status: -")
        self.status_label.setWordWrap(True)
        self.debug_label = QtWidgets.QLabel("")
        self.debug_label.setStyleSheet("color:#9aa3a8;")
        for lbl in [self.tracking_label, self.accessory_label, self.status_label, self.debug_label]:
            lbl.setStyleSheet(lbl.styleSheet() + "font-size:13px;")
            stats_layout.addWidget(lbl)

        self.reset_button = QtWidgets.QPushButton("Reset Accessory")
        self.reset_button.setStyleSheet(
            "QPushButton{background:#1f6f5f;color:white;padding:8px 16px;border-radius:8px;}"
            "QPushButton:hover{background:#249b84;}"
        )

        right_panel.addWidget(QtWidgets.QLabel("Category"))
        right_panel.addWidget(self.category_list)
        right_panel.addWidget(QtWidgets.QLabel("Accessories"))
        right_panel.addWidget(self.accessory_list, 1)
        right_panel.addWidget(self.stats_box)
        right_panel.addWidget(self.reset_button)

        layout.addWidget(self.video_label, 1)
        layout.addLayout(right_panel)

    def _setup_runtime(self):
        self.session: Optional[TryOnSession] = None
        self.groups = {}
        self.timer = QtCore.QTimer(self)
        self.timer.timeout.connect(self._update_frame)
        self.category_list.currentRowChanged.connect(self._on_category_changed)
        self.accessory_list.currentRowChanged.connect(self._on_accessory_changed)
        self.reset_button.clicked.connect(self._on_reset)

    def start_camera(self):
        if self.session is not None:
            return
        session = self.session_factory(self.config, status_callback=self._on_status)
        if not session.open():
            self.status_label.setText("Status: Camera access denied")
            session.close()
            return
        self.session = session
        self.groups = group_by_category(session.catalog)

        self.category_list.blockSignals(True)
        self.category_list.clear()
        for category in self.groups:
            self.category_list.addItem(QtWidgets.QListWidgetItem(category.value.title()))
        self.category_list.blockSignals(False)
        self.category_list.setCurrentRow(0)
        self.timer.start(int(1000 / max(1, self.config.target_fps)))

    def stop_camera(self):
        self.timer.stop()
        if self.session is not None:
            self.session.close()
            self.session = None

    def _current_entries(self):
        row = self.category_list.currentRow()
        categories = list(self.groups)
        if row < 0 or row >= len(categories):
            return []
        return self.groups[categories[row]]

    def _on_category_changed(self, row: int):
        entries = self._current_entries()
        self.accessory_list.blockSignals(True)
        self.accessory_list.clear()
        for entry in entries:
            self.accessory_list.addItem(QtWidgets.QListWidgetItem(entry.name))
        self.accessory_list.blockSignals(False)
        if entries:
            self.accessory_list.setCurrentRow(0)

    def _on_accessory_changed(self, idx: int):
        entries = self._current_entries()
        if self.session is None or idx < 0 or idx >= len(entries):
            return
        entry = entries[idx]
        # open() already loaded the first catalog entry.
        if entry == self.session.orchestrator.accessory:
            return
        self.session.select(entry)

    def _on_reset(self):
        if self.session is not None:
            self.session.orchestrator.reset_accessory()

    def _on_status(self, text: str):
        self.status_label.setText(f"Status: {text}")

    def _update_frame(self):
        if self.session is None:
            return
        frame = self.session.step()
        if frame is None:
            return

        orchestrator = self.session.orchestrator
        if self.config.show_landmarks and orchestrator.latest is not None:
            draw_landmarks(frame, orchestrator.latest)

        tracking = "Active" if orchestrator.detector_available else "Simulation"
        self.tracking_label.setText(f"Tracking: {tracking}")
        accessory = orchestrator.accessory
        if accessory is not None:
            loaded = "Loaded" if orchestrator.accessory_loaded else "Loading..."
            self.accessory_label.setText(f"{accessory.category.value.title()}: {accessory.name} ({loaded})")
        self.debug_label.setText(orchestrator.debug_info)

        frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        h, w, ch = frame_rgb.shape
        bytes_per_line = ch * w
        image = QtGui.QImage(frame_rgb.data, w, h, bytes_per_line, QtGui.QImage.Format_RGB888)
        pixmap = QtGui.QPixmap.fromImage(image)
        self.video_label.setPixmap(pixmap.scaled(self.video_label.size(), QtCore.Qt.KeepAspectRatio))


class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, config: ViewerConfig):
        super().__init__()
        self.setWindowTitle("Virtual Try-On")
        self.resize(1100, 640)
        self.setStyleSheet("QMainWindow{background:#0f1113;} QLabel{color:#e6e6e6;}")
        self.page = TryOnPage(config)
        self.setCentralWidget(self.page)

    def showEvent(self, event):
        super().showEvent(event)
        self.page.start_camera()

    def closeEvent(self, event):
        self.page.stop_camera()
        super().closeEvent(event)


def main():
    args = parse_args(sys.argv[1:])
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = QtWidgets.QApplication(sys.argv[:1])
    window = MainWindow(config_from_args(args))
    window.show()
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
