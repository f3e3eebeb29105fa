import importlib.util
from pathlib import Path

import pytest

from tryon.exceptions import ProcessingError
from tryon.models import ProcessResult

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "try_on.py"


@pytest.fixture
def script():
    spec = importlib.util.spec_from_file_location("try_on_script", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def images(tmp_path, jpeg_bytes, png_bytes):
    user = tmp_path / "me.jpg"
    outfit = tmp_path / "jacket.png"
    user.write_bytes(jpeg_bytes)
    outfit.write_bytes(png_bytes)
    return str(user), str(outfit)


def test_prints_image_url(script, images, monkeypatch, capsys):
    captured = {}

    async def fake_process(user, outfit, on_progress, *, settings, user_mime, outfit_mime):
        captured.update(settings=settings, user_mime=user_mime, outfit_mime=outfit_mime)
        on_progress(50)
        return ProcessResult(message="Image processed successfully", imageUrl="https://cdn.test/out.png")

    monkeypatch.setattr(script, "process_images", fake_process)
    code = script.main([*images, "--endpoint", "https://api.test/process", "--max-attempts", "3"])

    out, err = capsys.readouterr()
    assert code == 0
    assert out.strip() == "https://cdn.test/out.png"
    assert "progress: 50%" in err
    assert captured["settings"].TRYON_API_ENDPOINT == "https://api.test/process"
    assert captured["settings"].POLL_MAX_ATTEMPTS == 3
    assert (captured["user_mime"], captured["outfit_mime"]) == ("image/jpeg", "image/png")


def test_reports_error_and_exits_nonzero(script, images, monkeypatch, capsys):
    async def fake_process(*args, **kwargs):
        raise ProcessingError("bad pose")

    monkeypatch.setattr(script, "process_images", fake_process)
    code = script.main(list(images))

    assert code == 1
    assert "Error: bad pose" in capsys.readouterr().err


def test_rejects_unsupported_input(script, tmp_path, images, capsys):
    notes = tmp_path / "notes.txt"
    notes.write_text("not an image")
    code = script.main([str(notes), images[1]])
    assert code == 1
    assert "Unsupported image type" in capsys.readouterr().err
