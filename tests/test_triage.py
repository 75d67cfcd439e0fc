import csv
import json
import os
from pathlib import Path

import pytest

from conftest import (
    FIXED_STAMP,
    HKCU_RUN,
    HKLM_RUN,
    FakeProcessSource,
    FakeRegistry,
    FakeTaskScheduler,
    FakeWmi,
    fixed_clock,
    make_sources,
)
from hosttriage.core.config import TriageConfig
from hosttriage.core.errors import OutputDirectoryError
from hosttriage.core.triage import collect_connections, collect_processes, run_persistence, run_snapshot
from hosttriage.normalizer import FindingNormalizer
from hosttriage.sources.base import RawConnection, RawProcess, RegistryValue


@pytest.fixture
def startup(tmp_path: Path) -> Path:
    folder = tmp_path / "Startup"
    folder.mkdir()
    (folder / "backup.lnk").write_bytes(b"L\x00\x00\x00")
    return folder


def test_persistence_run_end_to_end(tmp_path: Path, startup: Path) -> None:
    registry = FakeRegistry(
        values={
            HKCU_RUN: [RegistryValue("Updater", "C:\\Tools\\upd.exe -silent")],
            HKLM_RUN: [RegistryValue("Sync", "C:\\Tools\\sync.exe")],
        }
    )
    config = TriageConfig(output_root=tmp_path / "runs", startup_folders=[startup])

    summary = run_persistence(make_sources(registry=registry), config, clock=fixed_clock, hostname="WS01")

    run_dir = tmp_path / "runs" / "WS01_20261019_120000"
    assert summary.output_dir == str(run_dir)
    assert summary.total_records == 3
    assert summary.by_category == {"RegistryRun": 2, "StartupFolder": 1}
    assert [c["status"] for c in summary.collectors] == ["ok"] * 6

    with open(run_dir / "persistence.csv", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert [(r["Category"], r["Location"], r["Name"], r["Value"]) for r in rows] == [
        ("RegistryRun", HKCU_RUN, "Updater", "C:\\Tools\\upd.exe -silent"),
        ("RegistryRun", HKLM_RUN, "Sync", "C:\\Tools\\sync.exe"),
        ("StartupFolder", str(startup), "backup.lnk", str((startup / "backup.lnk").absolute())),
    ]
    assert {r["Timestamp"] for r in rows} == {FIXED_STAMP}
    assert json.loads((run_dir / "persistence.json").read_text(encoding="utf-8")) == rows


def test_undecodable_names_export_to_both_files(tmp_path: Path) -> None:
    startup = tmp_path / "Startup"
    startup.mkdir()
    try:
        (startup / os.fsdecode(b"bad\xff.lnk")).write_bytes(b"L")
    except (OSError, UnicodeEncodeError):
        pytest.skip("filesystem rejects non-UTF-8 file names")
    registry = FakeRegistry(values={HKCU_RUN: [RegistryValue("Evil\ud800", "C:\\evil.exe")]})
    config = TriageConfig(output_root=tmp_path / "runs", startup_folders=[startup])

    summary = run_persistence(
        make_sources(registry=registry), config, output_dir=tmp_path / "out", clock=fixed_clock
    )

    with open(tmp_path / "out" / "persistence.csv", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert summary.total_records == 2
    assert [r["Name"] for r in rows] == ["Evil\\ud800", "bad\\udcff.lnk"]
    assert json.loads((tmp_path / "out" / "persistence.json").read_text(encoding="utf-8")) == rows


def test_failed_collectors_leave_markers(config: TriageConfig, tmp_path: Path) -> None:
    sources = make_sources(
        tasks=FakeTaskScheduler(error="RPC server unavailable"),
        wmi=FakeWmi(unavailable=True),
    )

    summary = run_persistence(sources, config, output_dir=tmp_path / "out", clock=fixed_clock)

    rows = json.loads((tmp_path / "out" / "persistence.json").read_text(encoding="utf-8"))
    assert [(r["Category"], r["Location"], r["Name"]) for r in rows] == [
        ("ScheduledTask", "TaskScheduler", "ERROR"),
        ("WMI", "root\\subscription", "INFO"),
    ]
    assert "RPC server unavailable" in rows[0]["Value"]
    statuses = {c["collector"]: c["status"] for c in summary.collectors}
    assert statuses["scheduled_tasks"] == "error"
    assert statuses["wmi"] == "ok"


def test_collector_selection(config: TriageConfig, tmp_path: Path) -> None:
    config = config.merged(collectors=["services"])

    summary = run_persistence(make_sources(), config, output_dir=tmp_path / "out")

    assert [c["collector"] for c in summary.collectors] == ["services"]
    assert summary.total_records == 0


def test_output_directory_failure_runs_nothing(config: TriageConfig, tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x")

    class ExplodingRegistry(FakeRegistry):
        def iter_values(self, key_path):
            raise AssertionError("collector ran before the output directory existed")

    with pytest.raises(OutputDirectoryError):
        run_persistence(make_sources(registry=ExplodingRegistry()), config, output_dir=blocker / "run")


PROCESSES = [
    RawProcess(pid=4321, ppid=800, name="beacon.exe", path="C:\\Users\\Public\\beacon.exe",
               command_line=["beacon.exe", "-c2", "10.0.0.5"], user="WS01\\alice"),
    RawProcess(pid=4, ppid=0, name="System"),
]

CONNECTIONS = [
    RawConnection("10.0.0.2", 49812, "10.0.0.5", 443, "ESTABLISHED", 4321),
    RawConnection("0.0.0.0", 135, "", None, "LISTEN", 900),
    RawConnection("10.0.0.2", 49900, "93.184.216.34", 80, "ESTABLISHED", 7777),
]


def test_process_snapshot_sorted_by_pid(normalizer: FindingNormalizer) -> None:
    records = collect_processes(FakeProcessSource(PROCESSES), normalizer)

    assert [p.pid for p in records] == [4, 4321]
    assert records[1].command_line == "beacon.exe -c2 10.0.0.5"
    assert records[1].timestamp == FIXED_STAMP


def test_connections_join_owning_process(normalizer: FindingNormalizer) -> None:
    source = FakeProcessSource(PROCESSES, CONNECTIONS)
    processes = collect_processes(source, normalizer)

    records = collect_connections(source, processes, normalizer)

    assert [(c.remote_address, c.pid, c.process_name, c.process_path) for c in records] == [
        ("10.0.0.5", 4321, "beacon.exe", "C:\\Users\\Public\\beacon.exe"),
        ("93.184.216.34", 7777, "", ""),
    ]
    assert len(collect_connections(source, processes, normalizer, established_only=False)) == 3


def test_snapshot_run_exports_both_tables(config: TriageConfig, tmp_path: Path) -> None:
    sources = make_sources(processes=FakeProcessSource(PROCESSES, CONNECTIONS))

    summary = run_snapshot(sources, config, output_dir=tmp_path / "snap", clock=fixed_clock)

    assert summary.by_category == {"connections": 2, "processes": 2}
    assert sorted(p.name for p in (tmp_path / "snap").iterdir()) == [
        "connections.csv",
        "connections.json",
        "processes.csv",
        "processes.json",
    ]
    connections = json.loads((tmp_path / "snap" / "connections.json").read_text(encoding="utf-8"))
    assert connections[0]["ProcessName"] == "beacon.exe"


def test_snapshot_without_process_source(config: TriageConfig, tmp_path: Path) -> None:
    summary = run_snapshot(make_sources(processes=None), config, output_dir=tmp_path / "snap")

    assert [c["status"] for c in summary.collectors] == ["error", "error"]
    assert summary.total_records == 0
    assert (tmp_path / "snap" / "processes.csv").exists()
