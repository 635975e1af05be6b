from __future__ import annotations

import ast
import json

from pydefuse.analysis.cfg import CFGDumper, build_cfg, dump_cfg


CODE = """
i = 0
while i < 3:
    i += 1
print(i)
"""


def _cfg():
    return build_cfg(ast.parse(CODE))


def test_text_lists_reachable_blocks():
    text = CFGDumper(_cfg()).dump_text("loop")
    assert text.startswith("loop\n")
    assert "while loop head" in text
    assert "exceptional exit" not in text
    assert "i += 1" in text


def test_text_with_postdominators():
    text = CFGDumper(_cfg(), with_postdominators=True).dump_text()
    assert "ipdom:" in text


def test_dot_has_one_node_per_block():
    cfg = _cfg()
    dot = CFGDumper(cfg, with_postdominators=True).dump_dot()
    for block in cfg.blocks:
        assert "b_%d" % block.id in dot
    assert "dashed" in dot


def test_json_edges_match_graph():
    cfg = _cfg()
    data = json.loads(CFGDumper(cfg).dump_json())
    by_id = {b["id"]: b for b in data["blocks"]}
    for pred, succ in cfg.edges():
        assert succ.id in by_id[pred.id]["successors"]
    assert data["exit"] == cfg.exit.id


def test_dump_cfg_writes_file(tmp_path):
    path = tmp_path / "cfg.json"
    dump_cfg(_cfg(), path, fmt="json", title="loop")
    assert json.loads(path.read_text())["title"] == "loop"
