import json

import pytest

from precachegen.cli import main

SW = "importScripts('wb.js');\nprecache(self.__WB_MANIFEST);\n"


def _output(tmp_path):
    dist = tmp_path / "dist"
    (dist / "img").mkdir(parents=True)
    (dist / "app.js").write_text("app", encoding="utf-8")
    (dist / "app.js.map").write_text("{}", encoding="utf-8")
    (dist / "img" / "logo.png").write_bytes(b"\x89PNG")
    return dist


def test_inject_writes_worker_into_output(tmp_path):
    dist = _output(tmp_path)
    sw = tmp_path / "sw.js"
    sw.write_text(SW, encoding="utf-8")

    code = main(["-r", "silent", "inject", str(sw), str(dist), "--no-compile"])
    assert code == 0
    text = (dist / "sw.js").read_text(encoding="utf-8")
    assert "self.__WB_MANIFEST" not in text
    assert '"url":"app.js"' in text
    assert '"url":"img/logo.png"' in text
    assert "app.js.map" not in text
    assert "sw.js" not in text.split("precache(")[1]


def test_inject_with_yaml_config(tmp_path):
    dist = _output(tmp_path)
    sw = tmp_path / "worker.js"
    sw.write_text("precache(__MANIFEST__);", encoding="utf-8")
    config = tmp_path / "precache.yaml"
    config.write_text(
        "injectionPoint: __MANIFEST__\n"
        "swDest: generated/service-worker.js\n"
        "modifyURLPrefix:\n  'img/': '/static/img/'\n",
        encoding="utf-8",
    )
    code = main(
        ["-r", "silent", "inject", str(sw), str(dist), "--config", str(config)]
    )
    assert code == 0
    text = (dist / "generated" / "service-worker.js").read_text(encoding="utf-8")
    assert "'url':'/static/img/logo.png'" in text
    assert "'url':'app.js'" in text


def test_inject_fails_without_injection_point(tmp_path):
    dist = _output(tmp_path)
    sw = tmp_path / "sw.js"
    sw.write_text("precache([]);", encoding="utf-8")
    assert main(["-r", "silent", "inject", str(sw), str(dist), "--no-compile"]) == 1
    assert not (dist / "sw.js").exists()


def test_inject_json_summary(tmp_path, capsys):
    dist = _output(tmp_path)
    sw = tmp_path / "sw.js"
    sw.write_text(SW, encoding="utf-8")
    assert main(["-r", "json", "inject", str(sw), str(dist), "--hook-api", "legacy"]) == 0
    events = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    summary = [e for e in events if e["event"] == "summary"]
    assert summary[-1]["summary_type"] == "inject"
    assert summary[-1]["dest"] == "sw.js"
    assert summary[-1]["urls"] == "2"
    assert summary[-1]["errors"] == "0"


def test_locate_reports_position(tmp_path, capsys):
    sw = tmp_path / "sw.js"
    sw.write_text("import x;\n  go(self.__WB_MANIFEST);\n", encoding="utf-8")
    assert main(["-r", "json", "locate", str(sw)]) == 0
    events = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    summary = next(e for e in events if e["event"] == "summary")
    assert summary["summary_type"] == "locate"
    assert summary["line"] == "2"
    assert summary["column"] == "5"


def test_locate_missing_marker(tmp_path):
    sw = tmp_path / "sw.js"
    sw.write_text("nothing here", encoding="utf-8")
    assert main(["-r", "silent", "locate", str(sw)]) == 1


def test_missing_config_file(tmp_path):
    dist = _output(tmp_path)
    sw = tmp_path / "sw.js"
    sw.write_text(SW, encoding="utf-8")
    code = main(
        [
            "-r",
            "silent",
            "inject",
            str(sw),
            str(dist),
            "--config",
            str(tmp_path / "nope.yaml"),
        ]
    )
    assert code == 2


def test_invalid_options_exit_before_building(tmp_path):
    dist = _output(tmp_path)
    sw = tmp_path / "sw.js"
    sw.write_text(SW, encoding="utf-8")
    code = main(
        ["-r", "silent", "inject", str(sw), str(dist), "--injection-point", ""]
    )
    assert code == 2
    assert not (dist / "sw.js").exists()


@pytest.mark.parametrize(
    "name,content",
    [("broken.json", "{not json"), ("broken.yaml", "a: [1,")],
)
def test_unparseable_config_file(tmp_path, name, content):
    dist = _output(tmp_path)
    sw = tmp_path / "sw.js"
    sw.write_text(SW, encoding="utf-8")
    config = tmp_path / name
    config.write_text(content, encoding="utf-8")
    code = main(
        ["-r", "silent", "inject", str(sw), str(dist), "--config", str(config)]
    )
    assert code == 2
    assert not (dist / "sw.js").exists()
