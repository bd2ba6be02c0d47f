"""Shared test fixtures for the transcoder."""

import json
import logging
import os
import stat
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from transcoder.config.models import AppConfig, ProcessingConfig, ToolPathsConfig

# Fake ffmpeg. The output path is the last argument. MODE selects the
# behavior: ok, no-output, fail, hang.
FAKE_FFMPEG = """
import sys
import time

MODE = __MODE__
DELAY = __DELAY__

args = sys.argv[1:]
output = args[-1]

sys.stderr.write("Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'input.mp4':\\n")
sys.stderr.write("  Duration: 00:00:10.00, start: 0.000000, bitrate: 1200 kb/s\\n")
sys.stderr.flush()

if MODE == "hang":
    time.sleep(60)

for step in (1, 2, 3):
    if DELAY:
        time.sleep(DELAY)
    sys.stdout.write(
        "frame=%d\\nfps=30.0\\nbitrate=800.0kbits/s\\ntotal_size=%d\\n"
        "out_time=00:00:%02d.000000\\nspeed=2.0x\\nprogress=continue\\n"
        % (step * 75, step * 4096, step * 2 + 1)
    )
    sys.stdout.flush()
    sys.stderr.write(
        "frame=%4d fps=30 q=28.0 size=%8dkB time=00:00:%02d.00 bitrate= 800.0kbits/s speed=2.0x\\r"
        % (step * 75, step * 4, step * 2 + 1)
    )
    sys.stderr.flush()

if MODE == "fail":
    sys.stderr.write("input.mp4: Invalid data found when processing input\\n")
    sys.exit(3)

if MODE != "no-output":
    with open(output, "wb") as f:
        f.write(b"fake media")

sys.stdout.write("progress=end\\n")
sys.exit(0)
"""

FAKE_FFPROBE = """
import json
import sys

print(json.dumps(__PAYLOAD__))
"""

FAKE_IDENTIFY = """
import sys

fmt = sys.argv[sys.argv.index("-format") + 1]
print(fmt.replace("%w", "800").replace("%h", "600").replace("%m", "PNG"))
"""

VIDEO_PROBE = {
    "format": {
        "filename": "input.mp4",
        "format_name": "mov,mp4,m4a,3gp,3g2,mj2",
        "duration": "10.000000",
        "size": "1500000",
        "bit_rate": "1200000",
    },
    "streams": [
        {
            "index": 0,
            "codec_type": "video",
            "codec_name": "h264",
            "profile": "High",
            "width": 640,
            "height": 360,
            "r_frame_rate": "30/1",
            "pix_fmt": "yuv420p",
            "duration": "10.000000",
        },
        {
            "index": 1,
            "codec_type": "audio",
            "codec_name": "aac",
            "sample_rate": "44100",
            "channels": 2,
            "channel_layout": "stereo",
            "duration": "10.000000",
        },
    ],
}


def write_script(path: Path, body: str) -> Path:
    """Write an executable Python script run by the test interpreter."""
    path.write_text(f"#!{sys.executable}\n{body}", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_ffmpeg(tmp_path: Path) -> Callable[..., Path]:
    """Factory for fake ffmpeg executables."""

    def factory(mode: str = "ok", delay: float = 0.0, name: str = "ffmpeg") -> Path:
        body = FAKE_FFMPEG.replace("__MODE__", repr(mode)).replace("__DELAY__", repr(delay))
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir(exist_ok=True)
        return write_script(bin_dir / f"{name}-{mode}", body)

    return factory


@pytest.fixture
def fake_ffprobe(tmp_path: Path) -> Callable[..., Path]:
    """Factory for fake ffprobe executables printing a fixed JSON payload."""

    def factory(payload: dict | None = None) -> Path:
        body = FAKE_FFPROBE.replace("__PAYLOAD__", repr(payload or VIDEO_PROBE))
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir(exist_ok=True)
        return write_script(bin_dir / "ffprobe", body)

    return factory


@pytest.fixture
def fake_identify(tmp_path: Path) -> Path:
    """Fake identify reporting an 800x600 PNG for any file."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)
    return write_script(bin_dir / "identify", FAKE_IDENTIFY)


@pytest.fixture
def input_video(tmp_path: Path) -> Path:
    """An input file with a video extension (content is never decoded)."""
    path = tmp_path / "input.mp4"
    path.write_bytes(b"not really a video")
    return path


@pytest.fixture
def fake_config(
    fake_ffmpeg: Callable[..., Path], fake_ffprobe: Callable[..., Path]
) -> AppConfig:
    """AppConfig pointing ffmpeg and ffprobe at working fakes."""
    return AppConfig(
        tools=ToolPathsConfig(ffmpeg=fake_ffmpeg("ok"), ffprobe=fake_ffprobe()),
        processing=ProcessingConfig(probe_timeout=30),
    )


@pytest.fixture
def ffprobe_json() -> str:
    """ffprobe output for a 10 second 640x360 H.264/AAC file."""
    return json.dumps(VIDEO_PROBE)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user config files and TRANSCODER_* variables out of tests."""
    for var in list(os.environ):
        if var.startswith("TRANSCODER_"):
            monkeypatch.delenv(var)
    monkeypatch.setenv("TRANSCODER_CONFIG_PATH", str(tmp_path / "no-config.toml"))


@pytest.fixture
def restore_root_logger() -> Iterator[logging.Logger]:
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
