from __future__ import annotations

import json

from pydefuse.cli import main


BRANCHY = """
x = 1
if x > 0:
    y = x
else:
    y = 0
print(y)
"""

MUTATING = """
import random

def setx(obj, v):
    obj.x = v

class Deck:
    def __init__(self, cards):
        self.cards = list(cards)
    def shuffle(self):
        random.shuffle(self.cards)
    def top(self):
        return self.cards[0]
"""


def test_cfg_text(write_source, capsys):
    path = write_source(BRANCHY)
    assert main(["cfg", str(path)]) == 0
    out = capsys.readouterr().out
    assert "if cond" in out
    assert "conditional join" in out


def test_cfg_json_with_postdominators(write_source, capsys):
    path = write_source(BRANCHY)
    assert main(["cfg", str(path), "--format", "json", "-p"]) == 0
    data = json.loads(capsys.readouterr().out)
    hints = {b["hint"]: b for b in data["blocks"]}
    assert hints["if cond"]["immediate_postdominator"] == hints["conditional join"]["id"]
    assert data["entry"] == data["blocks"][0]["id"]


def test_cfg_dot(write_source, capsys):
    path = write_source(BRANCHY)
    assert main(["cfg", str(path), "-f", "dot"]) == 0
    out = capsys.readouterr().out
    assert out.lstrip().startswith("digraph")


def test_dataflow_json(write_source, capsys):
    path = write_source(BRANCHY)
    assert main(["dataflow", str(path), "--format", "json"]) == 0
    data = json.loads(capsys.readouterr().out)
    kinds = {flow["kind"] for flow in data["dataflows"]}
    assert kinds == {"use", "control"}
    assert {ref["name"] for ref in data["free_references"]} == {"print"}
    assert all(s["id"].startswith(str(path)) for s in data["statements"])


def test_dataflow_text_to_file(write_source, tmp_path, capsys):
    path = write_source(BRANCHY)
    out_path = tmp_path / "flows.txt"
    assert main(["dataflow", str(path), "-o", str(out_path), "-v"]) == 0
    assert "Output written" in capsys.readouterr().out
    text = out_path.read_text()
    assert "Free references:" in text
    assert "[y]" in text


def test_specs(write_source, capsys):
    path = write_source(MUTATING, name="cards.py")
    assert main(["specs", str(path)]) == 0
    data = json.loads(capsys.readouterr().out)
    module = data["cards"]
    assert module["functions"] == [{"name": "setx", "updates": [1]}]
    methods = {m["name"]: m for m in module["types"]["Deck"]["methods"]}
    assert methods["shuffle"]["updates"] == [0]
    assert methods["top"]["updates"] == []
    assert methods["__init__"]["returns"] == "Deck"


def test_specs_round_trip(write_source, tmp_path, capsys):
    lib = write_source(MUTATING, name="cards.py")
    spec_path = tmp_path / "cards.json"
    assert main(["specs", str(lib), "-o", str(spec_path)]) == 0

    user = write_source("""
        from cards import setx
        p = make()
        setx(p, 1)
        print(p)
        """, name="user.py")
    assert main(["dataflow", str(user), "-f", "json", "--specs", str(spec_path)]) == 0
    data = json.loads(capsys.readouterr().out)
    updates = [f for f in data["dataflows"] if f["kind"] == "update"]
    assert [f["name"] for f in updates] == ["p"]


def test_no_bundled_specs(write_source, capsys):
    path = write_source("""
        xs = []
        n = len(xs)
        print(n)
        """)
    assert main(["dataflow", str(path), "-f", "json", "--no-bundled-specs"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert "update" in {f["kind"] for f in data["dataflows"]}


def test_missing_file(tmp_path, capsys):
    assert main(["cfg", str(tmp_path / "nope.py")]) == 1
    assert "not found" in capsys.readouterr().err


def test_syntax_error(write_source, capsys):
    path = write_source("def broken(:\n")
    assert main(["dataflow", str(path)]) == 1
    assert "Error:" in capsys.readouterr().err


def test_bad_spec_file(write_source, tmp_path, capsys):
    path = write_source("x = 1\n")
    bad = tmp_path / "bad.json"
    bad.write_text("[1, 2]")
    assert main(["dataflow", str(path), "--specs", str(bad)]) == 1
    assert "must contain a JSON object" in capsys.readouterr().err
