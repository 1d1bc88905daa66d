"""Test the cross-cutting utilities.

Tests for mandelbrot_gpu.utils:
    - fs: YAML roundtrip, atomic writes, strided RGBA → PNG
    - hashing: pixel digests ignore row padding
    - logging_config: human/JSON formats, context push/pop, idempotent setup
    - profiler: timer sink, accumulator statistics
    - torch_utils: device resolution

Run:
    pytest tests/test_utils.py -v
"""

import json
import logging
import logging.handlers

import numpy as np
import pytest
import torch
import yaml
from PIL import Image

from mandelbrot_gpu.renderer.cpu_reference import render_reference
from mandelbrot_gpu.utils import fs, hashing, logging_config, profiler, torch_utils


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def restore_logging():
    """Undo root logger changes made by setup_logging()."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(logging_config._installed_handlers):
        root.removeHandler(handler)
        handler.close()
    logging_config._installed_handlers.clear()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.captureWarnings(False)
    logging_config.pop_context()


def make_record(msg: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord("mandelbrot_gpu.test", level, __file__, 1, msg, None, None)


# ============================================================================
# FS
# ============================================================================

def test_yaml_roundtrip(tmp_path):
    data = {'schema': 'renderer.v1', 'device': 'cpu', 'logging': {'level': 'INFO'}}
    path = tmp_path / "nested" / "cfg.yaml"
    fs.atomic_yaml_dump(data, path)

    assert fs.load_yaml(path) == data
    assert list(fs.load_yaml(path)) == ['schema', 'device', 'logging']


def test_load_yaml_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.load_yaml(tmp_path / "nope.yaml")


def test_load_yaml_malformed(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("device: [cpu\n")
    with pytest.raises(yaml.YAMLError):
        fs.load_yaml(path)


def test_atomic_write_bytes_leaves_no_tmp(tmp_path):
    path = tmp_path / "out.bin"
    fs.atomic_write_bytes(path, b"\x00\x01\x02")
    assert path.read_bytes() == b"\x00\x01\x02"
    assert list(tmp_path.iterdir()) == [path]


def test_ensure_dir_creates_parents(tmp_path):
    target = fs.ensure_dir(tmp_path / "a" / "b" / "c")
    assert target.is_dir()


def test_atomic_save_rgba_drops_padding(tmp_path):
    width, height, stride = 5, 3, 28
    buf = render_reference(width, height, stride=stride)
    for y in range(height):
        buf[y * stride + width * 4:(y + 1) * stride] = b'\xff' * (stride - width * 4)

    path = tmp_path / "img" / "render.png"
    fs.atomic_save_rgba(buf, width, height, stride, path)

    with Image.open(path) as img:
        assert img.mode == "RGBA"
        assert img.size == (width, height)
        pixels = np.asarray(img)
    assert pixels.tobytes() == bytes(render_reference(width, height))
    assert not (tmp_path / "img" / "render.tmp.png").exists()


# ============================================================================
# HASHING
# ============================================================================

def test_sha256_pixels_ignores_padding():
    tight = render_reference(9, 4)
    padded = render_reference(9, 4, stride=9 * 4 + 20)
    padded[9 * 4:9 * 4 + 20] = b'\x77' * 20

    assert hashing.sha256_pixels(tight, 9, 4, 36) == hashing.sha256_pixels(padded, 9, 4, 56)


def test_sha256_pixels_detects_change():
    buf = render_reference(4, 4)
    before = hashing.sha256_pixels(buf, 4, 4, 16)
    buf[0] ^= 1
    assert hashing.sha256_pixels(buf, 4, 4, 16) != before
    assert len(before) == 64


def test_sha256_file(tmp_path):
    a = tmp_path / "a.bin"
    b = tmp_path / "b.bin"
    a.write_bytes(b"abc")
    b.write_bytes(b"abd")

    assert hashing.sha256_file(a) == (
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )
    assert hashing.sha256_file(a) != hashing.sha256_file(b)
    with pytest.raises(FileNotFoundError):
        hashing.sha256_file(tmp_path / "c.bin")


# ============================================================================
# LOGGING
# ============================================================================

def test_json_formatter_includes_context(restore_logging):
    logging_config.push_context(app="render", width=64)
    line = logging_config.ContextFormatter("json").format(make_record("Render complete"))

    payload = json.loads(line)
    assert payload['msg'] == "Render complete"
    assert payload['lvl'] == "INFO"
    assert payload['app'] == "render"
    assert payload['width'] == 64


def test_human_formatter_layout(restore_logging):
    logging_config.push_context(app="render")
    line = logging_config.ContextFormatter("human", use_color=False).format(make_record("hello"))
    assert line.endswith("| INFO     | app=render | hello")


def test_formatter_rejects_unknown_mode():
    with pytest.raises(ValueError):
        logging_config.ContextFormatter("xml")


def test_push_and_pop_context(restore_logging):
    logging_config.push_context(app="render", width=1, height=2)
    logging_config.pop_context(keys=["width"])
    assert logging_config.get_context() == {'app': 'render', 'height': 2}

    logging_config.pop_context()
    assert logging_config.get_context() == {}


def test_setup_logging_is_idempotent(restore_logging, tmp_path):
    root = logging.getLogger()
    log_file = tmp_path / "logs" / "render.log"

    logging_config.setup_logging("DEBUG", str(log_file), color=False)
    count = len(root.handlers)
    logging_config.setup_logging("DEBUG", str(log_file), color=False)

    assert len(root.handlers) == count
    assert root.level == logging.DEBUG

    logging.getLogger("mandelbrot_gpu.test").info("written to file")
    for handler in logging_config._installed_handlers:
        handler.flush()
    assert "written to file" in log_file.read_text()


def test_setup_logging_rotating_file(restore_logging, tmp_path):
    info = logging_config.setup_logging(
        "INFO", str(tmp_path / "r.log"), to_stderr=False, rotate={'max_bytes': 1024}
    )
    assert len(info['handlers']) == 1
    assert isinstance(info['handlers'][0], logging.handlers.RotatingFileHandler)


# ============================================================================
# PROFILER
# ============================================================================

def test_timer_reports_to_sink():
    acc = profiler.TimerAccumulator()
    for _ in range(3):
        with profiler.timer("launch", sink=acc):
            pass
    with profiler.timer("copy", sink=acc):
        pass

    assert acc.counts == {'launch': 3, 'copy': 1}
    assert acc.mean("launch") >= 0.0
    assert acc.mean("free") == 0.0
    assert acc.summary().splitlines()[0].startswith("copy:")

    acc.reset()
    assert acc.totals == {}


def test_timer_logs_without_sink(caplog):
    with caplog.at_level(logging.DEBUG, logger="mandelbrot_gpu.utils.profiler"):
        with profiler.timer("allocate"):
            pass
    assert "allocate:" in caplog.text


def test_nvtx_range_is_transparent():
    with profiler.nvtx_range("noop"):
        value = 1
    assert value == 1


# ============================================================================
# DEVICES
# ============================================================================

def test_resolve_cpu():
    assert torch_utils.resolve_device("cpu") == torch.device("cpu")


def test_resolve_auto():
    expected = "cuda" if torch.cuda.is_available() else "cpu"
    assert torch_utils.resolve_device("auto").type == expected


@pytest.mark.parametrize("name", ["tpu", "not a device", "meta"])
def test_resolve_rejects_unsupported(name):
    with pytest.raises(ValueError):
        torch_utils.resolve_device(name)


@pytest.mark.skipif(torch.cuda.is_available(), reason="CUDA is available")
def test_resolve_cuda_without_cuda():
    with pytest.raises(ValueError, match="CUDA is not available"):
        torch_utils.resolve_device("cuda")


def test_describe_cpu():
    assert torch_utils.describe_device(torch.device("cpu")) == "cpu"
