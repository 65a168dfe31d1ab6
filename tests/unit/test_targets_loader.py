from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from xts_client.io_adapters.targets_loader import load_equities, load_targets


def _write(p: Path, body: str) -> Path:
    p.write_text(textwrap.dedent(body).strip(), encoding="utf-8")
    return p


def test_load_targets(tmp_path: Path) -> None:
    yml = _write(
        tmp_path / "underlyings.yaml",
        """
        underlyings:
          NIFTY:
            kind: index
            aliases: ["Nifty 50"]
          HDFCBANK:
            kind: stock
            series: [FUTSTK, FUTIDX]
          RELIANCE:
        equities:
          RELIANCE: 2885
          TCS: "11536"
        """,
    )

    targets = load_targets(yml)
    assert [t.symbol for t in targets] == ["NIFTY", "HDFCBANK", "RELIANCE"]

    nifty, hdfc, rel = targets
    assert nifty.kind == "index"
    assert nifty.series == ("FUTIDX",)
    assert nifty.match_keys() == {"NIFTY", "Nifty 50"}
    assert hdfc.series == ("FUTSTK", "FUTIDX")
    assert rel.kind == "stock" and rel.series == ("FUTSTK",)

    assert load_equities(yml) == {"RELIANCE": 2885, "TCS": 11536}


def test_rejects_bad_structure(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        load_targets(_write(tmp_path / "a.yaml", "- just\n- a list"))
    with pytest.raises(ValueError):
        load_targets(_write(tmp_path / "b.yaml", "underlyings: [NIFTY]"))
    with pytest.raises(ValueError):
        load_targets(_write(tmp_path / "c.yaml", "underlyings:\n  NIFTY:\n    kind: commodity"))
    with pytest.raises(ValueError):
        load_targets(_write(tmp_path / "d.yaml", "underlyings:\n  NIFTY:\n    aliases: Nifty 50"))
    with pytest.raises(ValueError):
        load_equities(_write(tmp_path / "e.yaml", "equities:\n  TCS: abc"))


def test_equities_section_optional(tmp_path: Path) -> None:
    yml = _write(tmp_path / "u.yaml", "underlyings:\n  NIFTY:\n    kind: index")
    assert load_equities(yml) == {}
