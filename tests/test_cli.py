import os

import pytest

from main import build_parser, main


def test_parser_accepts_repeatable_options():
    args = build_parser().parse_args([
        "--headless", "--paint", "5,5", "--paint", "10,10,3",
        "--track", "5,5", "--input", "TGFBin=0.5",
    ])
    assert args.paint == [(5, 5), (10, 10, 3)]
    assert args.track == [(5, 5)]
    assert args.input == [("TGFBin", 0.5)]


def test_parser_rejects_malformed_cells():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--track", "5"])
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--input", "TGFBin"])


def test_headless_run_writes_exports(tmp_path):
    code = main([
        "--headless", "--steps", "3", "--molecule", "fibronectin",
        "--paint", "50,50,2", "--track", "50,50", "--track", "10,10",
        "--input", "TGFBin=0.5", "--export-dir", str(tmp_path), "--seed", "1",
    ])
    assert code == 0
    names = sorted(os.listdir(tmp_path))
    assert names == [
        "ecm-heatmap-3-600x600.png", "ecm-heatmap-3-600x600.svg",
        "ecm-lineplot-3.png", "ecm-lineplot-3.svg",
    ]


def test_headless_run_rejects_unknown_molecule(tmp_path):
    assert main(["--headless", "--steps", "1", "--molecule", "nope", "--export-dir", str(tmp_path)]) == 2
