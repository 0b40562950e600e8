"""
Main application window.

Orchestrates image loading (file picker, drag & drop), crop editing with
shape presets and position anchors, and the result actions: download or
share (upload, then open the composer).  All collaborator errors are
caught here and shown to the user; none of them alter the crop state.
"""

import logging
from pathlib import Path

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QGridLayout,
    QPushButton, QLabel, QFileDialog, QGroupBox, QMessageBox, QStatusBar,
    QToolBar, QInputDialog,
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QKeySequence, QShortcut, QDragEnterEvent, QDropEvent

from kroppit.config import APP_TITLE, IMAGE_EXTENSIONS
from kroppit.crop_widget import ImageCropWidget, ImageLoaderThread
from kroppit.errors import (
    ComposerCancelled, ComposerError, DecodeFailureError, InvalidCropStateError,
    InvalidInputError, KroppitError,
)
from kroppit.image_io import read_image_source, save_download
from kroppit.models import ANCHORS, PRESETS
from kroppit.session import EditorSession
from kroppit.settings import load_settings, save_settings
from kroppit.sharing import CloudinaryHost, ShareThread, WarpcastComposer

logger = logging.getLogger(__name__)

_PRESET_LABELS = {
    "square": "⬛ Square",
    "landscape": "▭ Landscape",
    "portrait": "▯ Portrait",
    "circle": "⚪ Circle",
}

_ANCHOR_ARROWS = {
    "top-left": "↖", "top-center": "↑", "top-right": "↗",
    "center-left": "←", "center": "•", "center-right": "→",
    "bottom-left": "↙", "bottom-center": "↓", "bottom-right": "↘",
}


class MainWindow(QMainWindow):
    def __init__(self, initial_path: Path | None = None):
        super().__init__()
        self.setWindowTitle(f"{APP_TITLE} - Photo Cropper")
        self.setMinimumSize(720, 480)
        self.resize(900, 560)
        self.setAcceptDrops(True)

        self._settings = load_settings()
        self._session = EditorSession(
            self._settings["display_max_width"], self._settings["display_max_height"],
        )
        self._loader: ImageLoaderThread | None = None
        self._load_generation = 0
        self._share_thread: ShareThread | None = None
        self._host = CloudinaryHost(
            cloud_name=self._settings["cloudinary_cloud_name"],
            upload_preset=self._settings["cloudinary_upload_preset"],
            timeout_s=self._settings["upload_timeout_s"],
        )
        self._composer = WarpcastComposer(edit_caption=self._edit_caption)

        self._build_ui()
        self._update_button_states()

        if initial_path is not None:
            self._open_path(initial_path)

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        self._build_toolbar()

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout(central)
        main_layout.setContentsMargins(4, 4, 4, 4)

        self._crop_widget = ImageCropWidget()
        self._crop_widget.set_overlay_policy(self._settings["overlay_policy"])
        self._crop_widget.set_session(self._session)
        self._crop_widget.region_changed.connect(self._update_crop_info)
        main_layout.addWidget(self._crop_widget, stretch=1)

        main_layout.addWidget(self._build_right_panel())

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._status.showMessage("Open or drop a photo to begin.  PNG, JPG, GIF up to 10MB")

        # --- Keyboard Shortcuts ---
        QShortcut(QKeySequence(QKeySequence.StandardKey.Open), self, self._select_image)
        QShortcut(QKeySequence(Qt.Key.Key_Return), self, self._perform_crop)
        QShortcut(QKeySequence(Qt.Key.Key_K), self, self._perform_crop)
        QShortcut(QKeySequence(Qt.Key.Key_R), self, self._reset_crop)
        QShortcut(QKeySequence(QKeySequence.StandardKey.Save), self, self._download)

    def _build_toolbar(self):
        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        act_open = QAction("📂 Open Photo", self)
        act_open.triggered.connect(self._select_image)
        toolbar.addAction(act_open)

        toolbar.addSeparator()

        self._act_crop = QAction("✂️ Krop Photo", self)
        self._act_crop.triggered.connect(self._perform_crop)
        toolbar.addAction(self._act_crop)

        self._act_reset = QAction("↺ Reset", self)
        self._act_reset.triggered.connect(self._reset_crop)
        toolbar.addAction(self._act_reset)

        toolbar.addSeparator()

        self._act_download = QAction("💾 Download", self)
        self._act_download.triggered.connect(self._download)
        toolbar.addAction(self._act_download)

        self._act_share = QAction("🚀 Share to Farcaster", self)
        self._act_share.triggered.connect(self._share)
        toolbar.addAction(self._act_share)

    def _build_right_panel(self) -> QWidget:
        right_panel = QWidget()
        right_panel.setFixedWidth(240)
        layout = QVBoxLayout(right_panel)
        layout.setContentsMargins(4, 0, 0, 0)

        self._shape_group = self._build_shape_group()
        layout.addWidget(self._shape_group)
        self._position_group = self._build_position_group()
        layout.addWidget(self._position_group)

        self._crop_info_label = QLabel("Crop: —")
        self._crop_info_label.setWordWrap(True)
        layout.addWidget(self._crop_info_label)

        layout.addWidget(self._build_result_group())
        layout.addWidget(self._build_shortcuts_group())
        layout.addStretch()
        return right_panel

    def _build_shape_group(self) -> QGroupBox:
        group = QGroupBox("Crop Shape")
        grid = QGridLayout(group)
        for i, preset in enumerate(PRESETS):
            btn = QPushButton(_PRESET_LABELS[preset])
            btn.clicked.connect(lambda checked, p=preset: self._apply_preset(p))
            grid.addWidget(btn, i // 2, i % 2)
        return group

    def _build_position_group(self) -> QGroupBox:
        group = QGroupBox("Position")
        grid = QGridLayout(group)
        for i, anchor in enumerate(ANCHORS):
            btn = QPushButton(_ANCHOR_ARROWS[anchor])
            btn.setToolTip(anchor.replace("-", " ").title())
            btn.clicked.connect(lambda checked, a=anchor: self._apply_anchor(a))
            grid.addWidget(btn, i // 3, i % 3)
        return group

    def _build_result_group(self) -> QGroupBox:
        group = QGroupBox("Result")
        layout = QVBoxLayout(group)

        self._btn_edit_again = QPushButton("✏️ Edit Crop Again")
        self._btn_edit_again.setToolTip("Back to the editor with the same image")
        self._btn_edit_again.clicked.connect(self._reset_crop)
        layout.addWidget(self._btn_edit_again)

        btn_another = QPushButton("📷 Krop Another Photo")
        btn_another.clicked.connect(self._crop_another)
        layout.addWidget(btn_another)
        return group

    def _build_shortcuts_group(self) -> QGroupBox:
        help_group = QGroupBox("Shortcuts")
        help_layout = QVBoxLayout(help_group)
        help_label = QLabel(
            "Arrow keys: nudge crop (1px)\n"
            "Shift+Arrow: nudge (10px)\n"
            "Drag handles: resize crop\n"
            "Drag body: move crop\n"
            "\n"
            "Ctrl+O: open photo\n"
            "Enter / K: krop\n"
            "R: reset\n"
            "Ctrl+S: download"
        )
        help_label.setStyleSheet("color: #888; font-size: 8pt;")
        help_layout.addWidget(help_label)
        return help_group

    # =========================================================================
    # Image loading
    # =========================================================================

    def _select_image(self):
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        path, _ = QFileDialog.getOpenFileName(
            self, "Choose a Photo", str(Path.home()), f"Images ({patterns});;All files (*)",
        )
        if path:
            self._open_path(Path(path))

    def _open_path(self, path: Path):
        try:
            data, mime_type = read_image_source(path)
        except InvalidInputError as e:
            QMessageBox.warning(self, "Invalid File", str(e))
            return
        except DecodeFailureError as e:
            QMessageBox.warning(self, "Load Error", str(e))
            return
        logger.info("Loading %s (%s, %d bytes)", path.name, mime_type, len(data))
        self._start_loading(data, mime_type, path.name)

    def _start_loading(self, data: bytes, mime_type: str, name: str):
        # Loading cancels any in-flight gesture and result
        self._session.clear()
        self._crop_widget.set_session(self._session)
        self._crop_widget.set_loading(True)
        self._status.showMessage(f"Processing {name}…")

        # Cancel any previous loader
        if self._loader is not None:
            try:
                self._loader.loaded.disconnect()
                self._loader.error.disconnect()
            except (TypeError, RuntimeError):
                pass  # Already disconnected or destroyed
            if self._loader.isRunning():
                self._loader.quit()
                self._loader.wait(500)

        self._load_generation += 1
        generation = self._load_generation
        self._loader = ImageLoaderThread(data, mime_type, self)
        self._loader.loaded.connect(lambda image, g=generation, n=name: self._on_image_loaded(g, n, image))
        self._loader.error.connect(self._on_image_load_error)
        self._loader.start()
        self._update_button_states()

    def _on_image_loaded(self, generation: int, name: str, image):
        """Called when background decoding completes."""
        if generation != self._load_generation:
            return  # A newer image was picked meanwhile
        self._session.load_image(image)
        self._crop_widget.set_session(self._session)
        self._crop_widget.setFocus()
        self._status.showMessage(f"Loaded {name} ({image.width} × {image.height})")
        self._update_crop_info()
        self._update_button_states()

    def _on_image_load_error(self, error: KroppitError):
        """Called when background decoding fails: back to the upload prompt."""
        self._session.clear()
        self._crop_widget.set_session(self._session)
        self._status.showMessage("Failed to load image")
        QMessageBox.warning(self, "Load Error", f"{error}\nPlease try a different file.")
        self._update_button_states()

    def dragEnterEvent(self, event: QDragEnterEvent):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()

    def dropEvent(self, event: QDropEvent):
        files = [url.toLocalFile() for url in event.mimeData().urls() if url.isLocalFile()]
        if not files:
            return
        event.acceptProposedAction()
        self._open_path(Path(files[0]))

    # =========================================================================
    # Editing
    # =========================================================================

    def _apply_preset(self, preset: str):
        self._session.set_preset(preset)
        self._crop_widget.refresh()
        self._update_crop_info()

    def _apply_anchor(self, anchor: str):
        self._session.set_anchor(anchor)
        self._crop_widget.refresh()
        self._update_crop_info()

    def _reset_crop(self):
        if not self._session.has_image:
            return
        self._session.reset()
        self._crop_widget.refresh()
        self._update_crop_info()
        self._update_button_states()

    def _crop_another(self):
        self._session.clear()
        self._crop_widget.set_session(self._session)
        self._update_crop_info()
        self._update_button_states()
        self._select_image()

    def _perform_crop(self):
        try:
            result = self._session.crop()
        except InvalidCropStateError as e:
            QMessageBox.information(self, "Nothing to Krop", str(e))
            return
        self._crop_widget.refresh()
        self._update_button_states()

        check = self._session.check_shareable()
        size_kb = len(result.png_bytes) / 1024
        msg = f"Kropped {result.width} × {result.height} ({size_kb:.0f} KB)"
        if not check.ok:
            msg += f"  ⚠ {check.details}"
        self._status.showMessage(msg)

    def _update_crop_info(self):
        if not self._session.has_image:
            self._crop_info_label.setText("Crop: —")
            return
        r = self._session.region
        scale = self._session.scale
        self._crop_info_label.setText(
            f"Crop ({r.shape}): {round(r.width / scale)} × {round(r.height / scale)} px\n"
            f"at ({round(r.x / scale)}, {round(r.y / scale)})"
        )

    def _update_button_states(self):
        has_image = self._session.has_image
        has_result = self._session.show_cropped_result
        sharing = self._share_thread is not None and self._share_thread.isRunning()
        self._act_crop.setEnabled(has_image and not has_result)
        self._act_reset.setEnabled(has_image)
        self._shape_group.setEnabled(has_image and not has_result)
        self._position_group.setEnabled(has_image and not has_result)
        self._btn_edit_again.setEnabled(has_result)
        self._act_download.setEnabled(has_result)
        self._act_share.setEnabled(has_result and not sharing)

    # =========================================================================
    # Download & share
    # =========================================================================

    def _download(self):
        result = self._session.extracted
        if result is None:
            return
        start_dir = self._settings["download_dir"] or str(Path.home() / "Downloads")
        folder = QFileDialog.getExistingDirectory(self, "Save Kropped Photo To", start_dir)
        if not folder:
            return
        try:
            out_path = save_download(result.png_bytes, Path(folder))
        except OSError as e:
            QMessageBox.warning(self, "Download Failed", f"Could not save image:\n{e}")
            return
        self._status.showMessage(f"📸 Photo Kropped! Saved to {out_path}")

        if folder != self._settings["download_dir"]:
            self._settings["download_dir"] = folder
            try:
                save_settings(self._settings)
            except (ValueError, OSError) as exc:
                logger.warning("Could not remember download folder: %s", exc)

    def _share(self):
        if self._session.extracted is None:
            QMessageBox.information(self, "No Image", "Please crop an image first!")
            return
        check = self._session.check_shareable()
        if not check.ok:
            QMessageBox.warning(self, "Cannot Share", check.details)
            return

        result = self._session.extracted
        self._share_thread = ShareThread(self._host, result.png_bytes, result.mime_type, self)
        self._share_thread.uploaded.connect(self._on_uploaded)
        self._share_thread.error.connect(self._on_share_error)
        self._share_thread.finished.connect(self._update_button_states)
        self._share_thread.start()
        self._status.showMessage("Uploading…")
        self._update_button_states()

    def _on_uploaded(self, url: str):
        try:
            self._composer.compose(self._settings["share_text"], [url])
        except ComposerCancelled:
            self._status.showMessage("Share cancelled")
            return
        except ComposerError as e:
            self._status.showMessage("Share failed")
            QMessageBox.warning(self, "Share Failed", str(e))
            return
        self._status.showMessage("🚀 Ready to Share! Opening Farcaster with your cropped image.")

    def _on_share_error(self, error: KroppitError):
        self._status.showMessage("Upload failed")
        QMessageBox.warning(
            self, "❌ Upload Failed",
            f"{error}\n\nCould not upload image. Try downloading instead.",
        )

    def _edit_caption(self, text: str) -> str | None:
        caption, ok = QInputDialog.getMultiLineText(self, "Share to Farcaster", "Caption:", text)
        return caption if ok else None

    def closeEvent(self, event):
        """Let background threads finish before closing."""
        for thread in (self._loader, self._share_thread):
            if thread is not None and thread.isRunning():
                thread.wait(2000)
        super().closeEvent(event)
