from pathlib import Path
import json
import sys
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import cli  # noqa: E402

AIRSPACE = {
    "name": "TEST D",
    "type": "D",
    "id": "ED-D1",
    "geometry": [
        {
            "seqno": 1,
            "upper": "4500 ft",
            "lower": "SFC",
            "boundary": [{"circle": {"radius": "2 NM", "centre": "500000N 0100000E"}}],
        }
    ],
}

BOWTIE_AIRSPACE = {
    "name": "BOWTIE",
    "type": "R",
    "geometry": [
        {
            "seqno": 1,
            "upper": "FL100",
            "lower": "SFC",
            "boundary": [
                {
                    "line": [
                        "000000N 0000000E",
                        "020000N 0040000E",
                        "000000N 0040000E",
                        "010000N 0000000E",
                    ]
                }
            ],
        }
    ],
}


def test_cli_writes_geojson(tmp_path: Path):
    src = tmp_path / "airspaces.json"
    out = tmp_path / "airspaces.geojson"
    services = [{"callsign": "INFO", "frequency": "123.45", "controls": ["ED-D1"]}]
    src.write_text(json.dumps({"airspaces": [AIRSPACE], "services": services}), encoding="utf-8")

    assert cli.main([str(src), "-o", str(out), "--detail", "16", "-q"]) == 0
    fc = json.loads(out.read_text(encoding="utf-8"))
    assert len(fc["features"]) == 1
    feature = fc["features"][0]
    assert feature["properties"]["type"] == "DANGER"
    assert feature["properties"]["groundService"]["callsign"] == "INFO"
    assert len(feature["geometry"]["coordinates"][0]) == 17


def test_cli_reports_conversion_error(tmp_path: Path, capsys):
    src = tmp_path / "airspaces.json"
    src.write_text(json.dumps([BOWTIE_AIRSPACE]), encoding="utf-8")

    assert cli.main([str(src), "-q"]) == 1
    err = capsys.readouterr().err
    assert "Conversion error" in err
    assert "BOWTIE" in err


def test_cli_fix_geometry(tmp_path: Path, capsys):
    src = tmp_path / "airspaces.json"
    src.write_text(json.dumps([BOWTIE_AIRSPACE]), encoding="utf-8")

    assert cli.main([str(src), "--fix-geometry", "-q"]) == 0
    fc = json.loads(capsys.readouterr().out)
    assert fc["features"][0]["properties"]["name"] == "BOWTIE"


def test_cli_skip_invalid(tmp_path: Path, capsys):
    src = tmp_path / "airspaces.json"
    src.write_text(json.dumps([BOWTIE_AIRSPACE, AIRSPACE]), encoding="utf-8")

    assert cli.main([str(src), "--skip-invalid", "-q"]) == 0
    fc = json.loads(capsys.readouterr().out)
    assert [f["properties"]["name"] for f in fc["features"]] == ["TEST D"]


def test_cli_rejects_bad_input(tmp_path: Path, capsys):
    src = tmp_path / "airspaces.json"
    src.write_text('{"nope": 1}', encoding="utf-8")
    assert cli.main([str(src), "-q"]) == 2
    assert "invalid input document" in capsys.readouterr().err

    assert cli.main([str(src), "--detail", "0", "-q"]) == 2


def test_cli_missing_file(tmp_path: Path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main([str(tmp_path / "missing.json")])
    assert excinfo.value.code == 2
    assert "could not read file" in capsys.readouterr().err


def test_cli_validate_flag(tmp_path: Path, capsys):
    src = tmp_path / "airspaces.json"
    src.write_text(json.dumps([BOWTIE_AIRSPACE]), encoding="utf-8")

    assert cli.main([str(src), "--validate", "-q"]) == 1
    capsys.readouterr()
    assert cli.main([str(src), "--no-validate", "-q"]) == 0
    fc = json.loads(capsys.readouterr().out)
    assert len(fc["features"][0]["geometry"]["coordinates"][0]) == 5


@pytest.mark.parametrize(
    "document",
    ["[1]", '{"airspaces": ["x"]}', '{"airspaces": [], "services": 3}'],
)
def test_cli_rejects_malformed_entries(tmp_path: Path, capsys, document):
    src = tmp_path / "airspaces.json"
    src.write_text(document, encoding="utf-8")
    assert cli.main([str(src), "--skip-invalid", "-q"]) == 2
    assert "invalid input document" in capsys.readouterr().err


def test_cli_non_finite_radius(tmp_path: Path, capsys):
    src = tmp_path / "airspaces.json"
    airspace = json.loads(json.dumps(AIRSPACE))
    airspace["geometry"][0]["boundary"][0]["circle"]["radius"] = float("nan")
    # json writes NaN, which json.loads reads back as a float
    src.write_text(json.dumps([airspace]), encoding="utf-8")

    assert cli.main([str(src), "-q"]) == 1
    assert "Invalid arc 'radius'" in capsys.readouterr().err
