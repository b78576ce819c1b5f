from __future__ import annotations

import json

import pytest

from trackfix.domain.model import MergePolicy
from trackfix.ui import cli as cli_module


def _capture(monkeypatch: pytest.MonkeyPatch, name: str) -> dict[str, object]:
    captured: dict[str, object] = {}

    def fake_run(*args: object, **kwargs: object) -> dict[str, object]:
        captured["args"] = args
        captured.update(kwargs)
        return {"ok": True}

    monkeypatch.setattr(cli_module, name, fake_run)
    return captured


def test_duplicates_defaults(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    captured = _capture(monkeypatch, "run_duplicates")

    cli_module.main(["duplicates", "library.json"])

    assert captured["args"] == ("library.json",)
    assert captured["threshold"] is None
    assert captured["policy"] is MergePolicy.KEEP_HIGHEST_BITRATE
    assert captured["apply"] is False
    assert captured["output"] is None
    assert captured["store"] is False
    assert json.loads(capsys.readouterr().out) == {"ok": True}


def test_duplicates_with_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _capture(monkeypatch, "run_duplicates")

    cli_module.main(
        [
            "duplicates",
            "library.json",
            "--threshold",
            "Medium",
            "--policy",
            "keep-newest",
            "--apply",
            "--output",
            "out.json",
            "--store",
        ]
    )

    assert captured["threshold"] == "medium"
    assert captured["policy"] is MergePolicy.KEEP_NEWEST
    assert captured["apply"] is True
    assert captured["output"] == "out.json"
    assert captured["store"] is True


def test_relocate_collects_search_paths(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = _capture(monkeypatch, "run_relocate")

    cli_module.main(
        [
            "relocate",
            "library.json",
            "--search-path",
            "/a",
            "--search-path",
            "/b",
            "--threshold",
            "0.9",
            "--limit",
            "3",
        ]
    )

    assert captured["search_paths"] == ("/a", "/b")
    assert captured["threshold"] == 0.9
    assert captured["limit"] == 3


def test_cloud_sync_and_ownership_dispatch(monkeypatch: pytest.MonkeyPatch) -> None:
    cloud = _capture(monkeypatch, "run_cloud_sync")
    ownership = _capture(monkeypatch, "run_ownership")
    missing = _capture(monkeypatch, "run_missing")

    cli_module.main(["cloud-sync", "lib.json", "--cloud-root", "/Dropbox"])
    cli_module.main(["ownership", "lib.json", "--apply"])
    cli_module.main(["missing", "lib.json"])

    assert cloud["cloud_roots"] == ("/Dropbox",)
    assert ownership["apply"] is True
    assert missing["args"] == ("lib.json",)


@pytest.mark.parametrize(
    "argv",
    [
        ["duplicates", "lib.json", "--threshold", "1.5"],
        ["relocate", "lib.json", "--search-path", "/a", "--limit", "0"],
        ["relocate", "lib.json"],
        ["duplicates", "lib.json", "--policy", "keep-explicit-choice"],
    ],
)
def test_invalid_arguments_exit_with_code_2(
    monkeypatch: pytest.MonkeyPatch, argv: list[str]
) -> None:
    _capture(monkeypatch, "run_duplicates")
    _capture(monkeypatch, "run_relocate")

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(argv)

    assert excinfo.value.code == 2


def test_failures_exit_with_code_1(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(*_: object, **__: object) -> dict[str, object]:
        raise FileNotFoundError("lib.json")

    monkeypatch.setattr(cli_module, "run_missing", broken)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["missing", "lib.json"])

    assert excinfo.value.code == 1
