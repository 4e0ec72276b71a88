"""Tests for the headless command-line interface."""

import json

import numpy as np
import pytest
from PIL import Image

from fsdither.cli import _auto_output_path, _build_parser, main


@pytest.fixture
def sample_png(tmp_path):
    path = tmp_path / "pic.png"
    Image.new("RGB", (16, 11), (120, 120, 120)).save(path)
    return path


class TestParser:
    def test_convert_defaults(self):
        args = _build_parser().parse_args(["convert", "in.png"])
        assert args.strategy == "banded"
        assert args.workers == 10
        assert args.remainder == "extend"
        assert args.json is False

    def test_serve_options(self):
        args = _build_parser().parse_args(
            ["serve", "--port", "9000", "--strategy", "wavefront"]
        )
        assert args.port == 9000
        assert args.strategy == "wavefront"

    def test_unknown_strategy(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["convert", "in.png", "--strategy", "bayer"])

    def test_auto_output_path(self, tmp_path):
        assert _auto_output_path(tmp_path / "a.jpg") == tmp_path / "a_dithered.jpg"


class TestConvert:
    def test_json_success(self, sample_png, capsys):
        main(["convert", str(sample_png), "--json", "--workers", "2"])
        result = json.loads(capsys.readouterr().out)

        assert result["status"] == "success"
        assert result["settings"] == {
            "strategy": "banded",
            "workers": 2,
            "remainder": "extend",
        }
        assert result["metadata"]["width"] == 16
        assert result["metadata"]["height"] == 11

        out = sample_png.parent / "pic_dithered.png"
        assert result["output"] == str(out)
        pixels = np.asarray(Image.open(out))
        assert set(np.unique(pixels)) <= {0, 255}

    def test_explicit_output(self, sample_png, tmp_path, capsys):
        target = tmp_path / "result.jpg"
        main(
            [
                "convert",
                str(sample_png),
                "-o",
                str(target),
                "--strategy",
                "wavefront",
                "--json",
            ]
        )
        result = json.loads(capsys.readouterr().out)
        assert result["metadata"]["output_format"] == "jpg"
        assert target.read_bytes()[:2] == b"\xff\xd8"

    def test_drop_remainder(self, sample_png, capsys):
        # 11 rows over 2 workers leaves the last row gray
        main(["convert", str(sample_png), "--json", "--workers", "2", "--remainder", "drop"])
        capsys.readouterr()
        pixels = np.asarray(Image.open(sample_png.parent / "pic_dithered.png"))
        assert np.all(pixels[10] == 120)

    def test_file_not_found(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["convert", str(tmp_path / "missing.png"), "--json"])
        assert exc.value.code == 1
        err = json.loads(capsys.readouterr().err)
        assert err["code"] == "FILE_NOT_FOUND"

    def test_invalid_image(self, tmp_path, capsys):
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"nope")
        with pytest.raises(SystemExit):
            main(["convert", str(bad), "--json"])
        err = json.loads(capsys.readouterr().err)
        assert err["code"] == "INVALID_INPUT"

    def test_unsupported_input_format(self, tmp_path, capsys):
        gif = tmp_path / "anim.gif"
        Image.new("RGB", (4, 4)).save(gif)
        with pytest.raises(SystemExit):
            main(["convert", str(gif), "--json"])
        err = json.loads(capsys.readouterr().err)
        assert err["code"] == "INVALID_INPUT"

    def test_bad_worker_count(self, sample_png, capsys):
        with pytest.raises(SystemExit):
            main(["convert", str(sample_png), "--json", "--workers", "0"])
        err = json.loads(capsys.readouterr().err)
        assert err["code"] == "INVALID_INPUT"

    def test_unsupported_output_format(self, sample_png, tmp_path, capsys):
        with pytest.raises(SystemExit):
            main(["convert", str(sample_png), "-o", str(tmp_path / "o.bmp"), "--json"])
        err = json.loads(capsys.readouterr().err)
        assert err["code"] == "PROCESSING_ERROR"

    def test_human_mode_exit_code(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["convert", str(tmp_path / "missing.png")])
        assert exc.value.code == 1


class TestServe:
    def test_bad_worker_count(self, tmp_path, monkeypatch):
        started = []
        monkeypatch.setattr("fsdither.web.run_server", lambda **kw: started.append(kw))
        with pytest.raises(SystemExit) as exc:
            main(["serve", "--workers", "0", "--output-dir", str(tmp_path)])
        assert exc.value.code == 1
        assert started == []

    def test_starts_with_valid_options(self, tmp_path, monkeypatch):
        started = []
        monkeypatch.setattr("fsdither.web.run_server", lambda **kw: started.append(kw))
        main(["serve", "--workers", "2", "--output-dir", str(tmp_path)])
        assert started[0]["config"]["DITHER_WORKERS"] == 2
