"""Tests for the subcommand dispatcher and the CLI entry points."""

import json
import tempfile

import pytest
import yaml

from blocktrack.main import main
from blocktrack.timeline import TimelineImportError


def _write_manifest(content) -> str:
    f = tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False)
    yaml.dump(content, f)
    f.close()
    return f.name


def _manifest():
    return {
        "timeline": {"initial_tracks": 1},
        "preview": {"resolution": [64, 36]},
        "blocks": [
            {"id": "bg", "name": "Background", "parameters": {"duration": 2000}},
            {"id": "dot", "name": "Dot", "kind": "Animation",
             "parameters": {"startTime": 500, "duration": 1000}},
            {"id": "beep", "name": "Beep", "kind": "Sound",
             "parameters": {"startTime": 3000, "duration": 500}},
        ],
    }


def _arranged(tmp_path):
    out = tmp_path / "timeline.json"
    main(["arrange", "--manifest", _write_manifest(_manifest()), "--output", str(out)])
    return out


class TestMainDispatcher:
    def test_no_subcommand_shows_help(self):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code != 0

    @pytest.mark.parametrize("command", ["arrange", "generate", "inspect"])
    def test_subcommand_exists(self, command):
        # Recognized, then fails on its own missing required args.
        with pytest.raises(SystemExit) as exc_info:
            main([command])
        assert exc_info.value.code == 2

    def test_invalid_subcommand_errors(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["render"])
        assert exc_info.value.code != 0


class TestArrange:
    def test_writes_timeline(self, tmp_path, capsys):
        out = _arranged(tmp_path)
        data = json.loads(out.read_text())
        ids = [[b["id"] for b in track] for track in data["tracks"]]
        # One initial track; dot overlaps bg so the allocator adds a second.
        assert ids == [["bg", "beep"], ["dot"]]
        assert "Arranged 3 blocks on 2 tracks" in capsys.readouterr().out

    def test_validate_writes_nothing(self, tmp_path, capsys):
        main(["arrange", "--manifest", _write_manifest(_manifest()), "--validate"])
        assert list(tmp_path.iterdir()) == []
        assert "Arranged 3 blocks" in capsys.readouterr().out

    def test_output_required(self):
        with pytest.raises(SystemExit):
            main(["arrange", "--manifest", _write_manifest(_manifest())])


class TestGenerate:
    def test_exports_frames(self, tmp_path, capsys):
        timeline = _arranged(tmp_path)
        out_dir = tmp_path / "frames"
        main(["generate", "--timeline", str(timeline), "--output", str(out_dir)])
        names = sorted(p.name for p in out_dir.iterdir())
        assert names == ["frame-0000-bg.png", "frame-0001-dot.png", "frame-0002-beep.png"]
        assert "Done: 3 frames" in capsys.readouterr().out

    def test_refuses_to_overwrite_without_force(self, tmp_path):
        timeline = _arranged(tmp_path)
        out_dir = tmp_path / "frames"
        main(["generate", "--timeline", str(timeline), "--output", str(out_dir)])
        with pytest.raises(FileExistsError, match="--force"):
            main(["generate", "--timeline", str(timeline), "--output", str(out_dir)])
        main(["generate", "--timeline", str(timeline), "--output", str(out_dir), "--force"])
        assert len(list(out_dir.glob("frame-*.png"))) == 3

    def test_bad_timeline_keeps_old_frames(self, tmp_path):
        out_dir = tmp_path / "frames"
        out_dir.mkdir()
        old = out_dir / "frame-0000-old.png"
        old.write_bytes(b"png")
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        with pytest.raises(TimelineImportError):
            main(["generate", "--timeline", str(bad), "--output", str(out_dir), "--force"])
        assert old.exists()

    def test_strict_failure_keeps_old_frames(self, tmp_path):
        data = json.loads(_arranged(tmp_path).read_text())
        data["tracks"][0][0]["template"] = "nonexistent"
        broken = tmp_path / "broken.json"
        broken.write_text(json.dumps(data))
        out_dir = tmp_path / "frames"
        out_dir.mkdir()
        old = out_dir / "frame-0000-old.png"
        old.write_bytes(b"png")
        with pytest.raises(KeyError):
            main([
                "generate", "--timeline", str(broken),
                "--output", str(out_dir), "--force", "--strict",
            ])
        assert old.exists()

    def test_manifest_sets_resolution(self, tmp_path):
        from PIL import Image

        manifest = _write_manifest(_manifest())
        timeline = _arranged(tmp_path)
        out_dir = tmp_path / "frames"
        main([
            "generate", "--timeline", str(timeline), "--manifest", manifest,
            "--output", str(out_dir),
        ])
        with Image.open(out_dir / "frame-0000-bg.png") as img:
            assert img.size == (64, 36)

    def test_strict_stops_on_failure(self, tmp_path):
        data = json.loads(_arranged(tmp_path).read_text())
        data["tracks"][0][0]["template"] = "nonexistent"
        broken = tmp_path / "broken.json"
        broken.write_text(json.dumps(data))

        main(["generate", "--timeline", str(broken), "--output", str(tmp_path / "lenient")])
        assert len(list((tmp_path / "lenient").glob("*.png"))) == 2

        with pytest.raises(KeyError):
            main([
                "generate", "--timeline", str(broken),
                "--output", str(tmp_path / "strict"), "--strict",
            ])


class TestInspect:
    def test_prints_tracks_and_active_blocks(self, tmp_path, capsys):
        timeline = _arranged(tmp_path)
        capsys.readouterr()
        main(["inspect", "--timeline", str(timeline), "--at", "600"])
        out = capsys.readouterr().out
        assert "Timeline: 2 tracks, 3 blocks, ends at 00:00:03.500" in out
        assert "No overlaps." in out
        assert "Active at 00:00:00.600: 2" in out

    def test_reports_overlaps(self, tmp_path, capsys):
        data = json.loads(_arranged(tmp_path).read_text())
        data["tracks"][0].extend(data["tracks"].pop(1))
        path = tmp_path / "overlapping.json"
        path.write_text(json.dumps(data))
        capsys.readouterr()
        main(["inspect", "--timeline", str(path)])
        assert "track 0: bg <-> dot" in capsys.readouterr().out

    def test_negative_time_rejected(self, tmp_path):
        timeline = _arranged(tmp_path)
        with pytest.raises(SystemExit):
            main(["inspect", "--timeline", str(timeline), "--at", "-1"])
