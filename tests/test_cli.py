from __future__ import annotations

import json
from pathlib import Path

import pytest

from chartfeed import cli
from chartfeed.cli import apply_cli_overrides, build_backend, build_parser, main
from chartfeed.backend.csv_backend import CsvChartingBackend
from chartfeed.backend.http_backend import HttpChartingBackend
from chartfeed.config import Settings
from chartfeed.errors import ConfigError

JAN_1_2024 = 1_704_067_200


@pytest.fixture
def replay_dir(tmp_path: Path) -> Path:
    (tmp_path / "A1.csv").write_text(
        "date,open,high,low,close,volume\n"
        "2024-01-01,1,2,0.5,1.5,100\n"
        "2024-01-02,2,3,1,2.5,50\n",
        encoding="utf-8",
    )
    (tmp_path / "B2.csv").write_text("date,open,high,low,close,volume\n", encoding="utf-8")
    return tmp_path


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("chartfeed.config.load_dotenv", lambda *args, **kwargs: None)
    monkeypatch.setattr(cli, "setup_logger", lambda *args, **kwargs: None)
    for key in ("CHARTFEED_DATA_SOURCE", "CHARTFEED_DATA_DIR", "CHARTFEED_RESOLUTION"):
        monkeypatch.delenv(key, raising=False)


def test_cli_overrides_produce_expected_settings() -> None:
    args = build_parser().parse_args(
        [
            "--bars",
            "A1",
            "--from",
            "10",
            "--to",
            "20",
            "--resolution",
            "1W",
            "--data-source",
            "csv",
            "--data-dir",
            "replays",
            "--account-type",
            "savings",
            "--events",
            "runs/events.jsonl",
        ]
    )
    settings = apply_cli_overrides(Settings(), args)

    assert settings.data_source == "csv"
    assert settings.data_dir == "replays"
    assert settings.account_type == "savings"
    assert settings.resolution == "1W"
    assert settings.events_path == "runs/events.jsonl"


def test_bars_requires_range() -> None:
    args = build_parser().parse_args(["--bars", "A1", "--from", "10"])

    with pytest.raises(ConfigError):
        apply_cli_overrides(Settings(), args)


def test_inverted_range_is_rejected() -> None:
    args = build_parser().parse_args(["--bars", "A1", "--from", "20", "--to", "10"])

    with pytest.raises(ConfigError):
        apply_cli_overrides(Settings(), args)


def test_an_action_is_required() -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_build_backend_follows_data_source() -> None:
    assert isinstance(build_backend(Settings(data_source="csv")), CsvChartingBackend)
    assert isinstance(build_backend(Settings()), HttpChartingBackend)


def test_main_lists_accounts(replay_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["--accounts", "--data-source", "csv", "--data-dir", str(replay_dir)])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == ["A1", "B2"]


def test_main_searches_accounts(replay_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["--search", "b", "--data-source", "csv", "--data-dir", str(replay_dir)])

    assert code == 0
    results = json.loads(capsys.readouterr().out)
    assert [result["symbol"] for result in results] == ["B2"]


def test_main_fetches_bars(replay_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(
        [
            "--bars",
            "A1",
            "--from",
            str(JAN_1_2024),
            "--to",
            str(JAN_1_2024 + 86_400),
            "--data-source",
            "csv",
            "--data-dir",
            str(replay_dir),
        ]
    )

    assert code == 0
    output = json.loads(capsys.readouterr().out)
    assert [bar["time"] for bar in output["bars"]] == [JAN_1_2024 * 1000, (JAN_1_2024 + 86_400) * 1000]
    assert output["meta"] == {"noData": False}


def test_main_preflight_reports_ready(replay_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["--preflight", "--data-source", "csv", "--data-dir", str(replay_dir)])

    assert code == 0
    assert json.loads(capsys.readouterr().out) == {"symbol": "A1", "state": "ready"}


def test_main_preflight_without_data_exits_with_error(
    replay_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    code = main(["--preflight", "B2", "--data-source", "csv", "--data-dir", str(replay_dir)])

    assert code == 1
    assert "No initial data available for B2" in capsys.readouterr().out


def test_main_reports_configuration_errors(capsys: pytest.CaptureFixture[str]) -> None:
    code = main(["--bars", "A1"])

    assert code == 2
    assert "Configuration error" in capsys.readouterr().out


def test_main_writes_event_trail(
    replay_dir: Path,
    tmp_path: Path,
) -> None:
    events = tmp_path / "events.jsonl"

    code = main(
        [
            "--search",
            "",
            "--data-source",
            "csv",
            "--data-dir",
            str(replay_dir),
            "--events",
            str(events),
        ]
    )

    assert code == 0
    assert '"event_type": "search"' in events.read_text(encoding="utf-8")


def test_main_closes_backend(replay_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    closed: list[str] = []

    class ClosingBackend(CsvChartingBackend):
        def close(self) -> None:
            closed.append("closed")
            super().close()

    monkeypatch.setattr(cli, "build_backend", lambda settings: ClosingBackend(settings.data_dir))

    assert main(["--accounts", "--data-source", "csv", "--data-dir", str(replay_dir)]) == 0
    assert main(["--preflight", "B2", "--data-source", "csv", "--data-dir", str(replay_dir)]) == 1
    assert closed == ["closed", "closed"]


def test_main_summarizes_event_trail(
    replay_dir: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    events = tmp_path / "trail" / "events.jsonl"
    source = ["--data-source", "csv", "--data-dir", str(replay_dir), "--events", str(events)]
    main(["--search", "a", *source])
    main(["--resolve", "A1", *source])
    capsys.readouterr()

    code = main(["--event-summary", str(events), "--data-source", "csv", "--data-dir", str(replay_dir)])

    assert code == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["total"] == 2
    assert summary["by_type"] == {"resolve": 1, "search": 1}
    assert summary["by_symbol"] == {"A1": 1}
