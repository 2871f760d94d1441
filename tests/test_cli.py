import json

import ezdxf
import pytest

from cadkernel.cli import build_parser, main
from cadkernel.document import Drawing, load_drawing, save_drawing
from cadkernel.models import BlockRef, Circle, Line, make_entity

pytestmark = pytest.mark.usefixtures("root_logging")


@pytest.fixture
def drawing_path(tmp_path):
    line = make_entity(Line((0, 0), (10, 0)), entity_id="ent-line")
    circle = make_entity(Circle((20, 0), 5.0), entity_id="ent-circle")
    path = tmp_path / "drawing.json"
    save_drawing(Drawing(entities=[line, circle]), path)
    return path


def test_parser_requires_a_command() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_info(drawing_path, capsys) -> None:
    assert main(["info", str(drawing_path)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == [
        "entities: 2",
        "  circle: 1",
        "  line: 1",
        "blocks: 0",
        "layers: 4",
        "bounds: (0, -5) - (25, 5)",
    ]


def test_info_empty_drawing(tmp_path, capsys) -> None:
    path = tmp_path / "empty.json"
    path.write_text(json.dumps({"entities": []}), encoding="utf-8")
    assert main(["info", str(path)]) == 0
    assert "bounds: empty" in capsys.readouterr().out


def test_export(drawing_path, tmp_path) -> None:
    out = tmp_path / "out.dxf"
    assert main(["export", str(drawing_path), str(out), "--unit", "inch"]) == 0
    doc = ezdxf.readfile(str(out))
    assert doc.units == 1
    assert len(doc.modelspace().query("LINE CIRCLE")) == 2


def test_export_without_flip(tmp_path) -> None:
    src = tmp_path / "in.json"
    save_drawing(Drawing(entities=[make_entity(Line((0, 0), (10, 5)))]), src)
    out = tmp_path / "out.dxf"
    assert main(["export", str(src), str(out), "--no-flip-y"]) == 0
    line = ezdxf.readfile(str(out)).modelspace().query("LINE")[0]
    assert abs(line.dxf.end.y - 5.0) < 1e-9


def test_pick(drawing_path, capsys) -> None:
    assert main(["pick", str(drawing_path), "5", "1"]) == 0
    assert capsys.readouterr().out.strip() == "ent-line"
    assert main(["pick", str(drawing_path), "50", "50", "--tolerance", "1"]) == 0
    assert capsys.readouterr().out.strip() == "none"


def test_explode(tmp_path, block) -> None:
    src = tmp_path / "blocks.json"
    dst = tmp_path / "exploded.json"
    ref = make_entity(BlockRef(block.id, (10.0, 0.0)))
    save_drawing(Drawing(entities=[ref], blocks=[block]), src)
    assert main(["explode", str(src), str(dst)]) == 0
    exploded = load_drawing(dst)
    assert sorted(e.type for e in exploded.entities) == ["circle", "line"]
    assert len(exploded.blocks) == 1


def test_failure_returns_one(tmp_path, capsys) -> None:
    assert main(["info", str(tmp_path / "missing.json")]) == 1
    assert "info failed:" in capsys.readouterr().err
