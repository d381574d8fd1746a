import json

from qrc_client.adapters.local_files import LocalFileSink, LocalFileSource


class TestLocalFiles:
    def test_reads_relative_to_base_dir(self, tmp_path):
        (tmp_path / "code.lua").write_text("-- lua", encoding="utf-8")
        assert LocalFileSource(str(tmp_path)).read_text("code.lua") == "-- lua"

    def test_absolute_path_ignores_base_dir(self, tmp_path):
        target = tmp_path / "code.lua"
        target.write_text("x = 1", encoding="utf-8")
        assert LocalFileSource("/nonexistent").read_text(str(target)) == "x = 1"

    def test_sink_creates_parent_directories(self, tmp_path):
        sink = LocalFileSink(str(tmp_path))
        sink.write_text("reports/today.json", json.dumps({"ok": True}))
        assert json.loads((tmp_path / "reports" / "today.json").read_text()) == {"ok": True}
