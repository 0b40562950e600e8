import pytest

pytest.importorskip("PyQt6.QtWidgets", reason="PyQt6 is required for window tests")

from kroppit import main_window as main_window_mod  # noqa: E402
from kroppit import settings as settings_mod  # noqa: E402
from kroppit.errors import ComposerCancelled, ComposerError, HostUploadError  # noqa: E402
from kroppit.main_window import MainWindow  # noqa: E402
from kroppit.settings import load_settings  # noqa: E402


class FakeMessageBox:
    shown = []

    @classmethod
    def warning(cls, parent, title, text):
        cls.shown.append(("warning", title, text))

    @classmethod
    def information(cls, parent, title, text):
        cls.shown.append(("information", title, text))


class FakeComposer:
    def __init__(self, exc=None):
        self.exc = exc
        self.calls = []

    def compose(self, text, image_urls):
        self.calls.append((text, image_urls))
        if self.exc is not None:
            raise self.exc


@pytest.fixture
def window(qapp, tmp_path, monkeypatch):
    monkeypatch.setattr(settings_mod, "config_dir", lambda: tmp_path)
    FakeMessageBox.shown = []
    monkeypatch.setattr(main_window_mod, "QMessageBox", FakeMessageBox)
    w = MainWindow()
    yield w
    w.close()
    w.deleteLater()


def _load(window, gradient):
    window._on_image_loaded(window._load_generation, "test.png", gradient(640, 480))


def test_actions_follow_session_state(window, gradient):
    assert not window._act_crop.isEnabled()
    assert not window._act_download.isEnabled()

    _load(window, gradient)
    assert window._act_crop.isEnabled()
    assert not window._act_share.isEnabled()

    window._perform_crop()
    assert window._session.show_cropped_result
    assert window._act_download.isEnabled()
    assert window._act_share.isEnabled()
    assert not window._act_crop.isEnabled()
    assert "400 × 336" in window._status.currentMessage()


def test_stale_load_is_ignored(window, gradient):
    window._on_image_loaded(window._load_generation - 1, "old.png", gradient(50, 50))
    assert not window._session.has_image


def test_crop_without_image_informs_user(window):
    window._perform_crop()
    assert FakeMessageBox.shown[0][0] == "information"


def test_open_non_image_warns(window, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("hi")
    window._open_path(path)
    assert [(kind, title) for kind, title, _ in FakeMessageBox.shown] == [("warning", "Invalid File")]
    assert not window._session.has_image


def test_download_saves_png_and_remembers_folder(window, gradient, tmp_path, monkeypatch):
    out_dir = tmp_path / "out"

    class FakeFileDialog:
        @staticmethod
        def getExistingDirectory(parent, caption, start):
            return str(out_dir)

    monkeypatch.setattr(main_window_mod, "QFileDialog", FakeFileDialog)
    _load(window, gradient)
    window._perform_crop()
    window._download()

    saved = list(out_dir.glob("kropped-image-*.png"))
    assert len(saved) == 1
    assert saved[0].read_bytes() == window._session.extracted.png_bytes
    assert load_settings()["download_dir"] == str(out_dir)


def test_share_outcomes_leave_crop_intact(window, gradient):
    _load(window, gradient)
    window._perform_crop()
    result = window._session.extracted
    region = window._session.region

    window._composer = FakeComposer()
    window._on_uploaded("https://cdn/x.png")
    assert window._composer.calls == [(window._settings["share_text"], ["https://cdn/x.png"])]
    assert "Ready to Share" in window._status.currentMessage()

    window._composer = FakeComposer(exc=ComposerCancelled("Share cancelled"))
    window._on_uploaded("https://cdn/x.png")
    assert window._status.currentMessage() == "Share cancelled"
    assert FakeMessageBox.shown == []

    window._composer = FakeComposer(exc=ComposerError("nope"))
    window._on_uploaded("https://cdn/x.png")
    assert FakeMessageBox.shown[-1][:2] == ("warning", "Share Failed")

    window._on_share_error(HostUploadError("Upload timed out"))
    assert "Upload timed out" in FakeMessageBox.shown[-1][2]

    assert window._session.extracted is result
    assert window._session.region == region


def test_reset_returns_to_editor(window, gradient):
    _load(window, gradient)
    window._apply_preset("circle")
    window._perform_crop()
    window._reset_crop()
    assert not window._session.show_cropped_result
    assert window._act_crop.isEnabled()
    assert window._session.region.shape == "rectangle"
