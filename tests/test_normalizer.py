from datetime import datetime

import pytest
from pydantic import ValidationError

from conftest import FIXED_STAMP, fixed_clock
from hosttriage.models.finding import FINDING_FIELDS, Finding, FindingCategory
from hosttriage.normalizer import FindingNormalizer, registry_text, to_text


class Unprintable:
    def __str__(self) -> str:
        raise RuntimeError("no text form")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, ""),
        ("  C:\\Tools\\upd.exe -silent \r\n", "C:\\Tools\\upd.exe -silent"),
        (42, "42"),
        (["C:\\a.dll", "", "C:\\b.dll"], "C:\\a.dll C:\\b.dll"),
        ({"b": 1, "a": "x"}, '{"a": "x", "b": 1}'),
        (b"plain bytes ", "plain bytes"),
        (b"L\x00\x00\x00\x01\x14\x02\x00", "4c00000001140200"),
        (b"\xff\xfe\x00", "fffe00"),
        ("Evil\ud800", "Evil\\ud800"),
        ("bad\udcff.lnk", "bad\\udcff.lnk"),
        ({"k": "v\udcff"}, '{"k": "v\\udcff"}'),
        (Unprintable(), ""),
    ],
)
def test_to_text(raw, expected) -> None:
    assert to_text(raw) == expected


def test_normalize_defaults_user_and_extra(normalizer: FindingNormalizer) -> None:
    finding = normalizer.normalize(
        FindingCategory.REGISTRY_RUN,
        location="HKCU\\Run",
        name="Updater",
        value="C:\\Tools\\upd.exe",
    )

    assert finding.timestamp == FIXED_STAMP
    assert finding.user == ""
    assert finding.extra == ""
    assert list(finding.to_row()) == list(FINDING_FIELDS)
    assert finding.to_row()["Category"] == "RegistryRun"


def test_normalize_never_raises_on_bad_values(normalizer: FindingNormalizer) -> None:
    finding = normalizer.normalize(
        FindingCategory.SERVICE,
        location=Unprintable(),
        name="svc",
        value=Unprintable(),
        user=Unprintable(),
    )

    assert finding.location == ""
    assert finding.value == ""
    assert finding.user == ""


def test_failing_clock_leaves_timestamp_empty() -> None:
    def broken_clock() -> datetime:
        raise OSError("clock unavailable")

    finding = FindingNormalizer(clock=broken_clock).normalize(
        FindingCategory.IFEO, "root", "sethc.exe", "cmd.exe"
    )
    assert finding.timestamp == ""
    assert finding.value == "cmd.exe"


def test_naive_clock_is_treated_as_utc() -> None:
    normalizer = FindingNormalizer(clock=lambda: fixed_clock().replace(tzinfo=None))
    assert normalizer.timestamp() == FIXED_STAMP


def test_markers(normalizer: FindingNormalizer) -> None:
    error = normalizer.error_marker(FindingCategory.SCHEDULED_TASK, "TaskScheduler", "  ")
    info = normalizer.info_marker(FindingCategory.WMI, "root\\subscription", "denied")

    assert error.name == "ERROR"
    assert error.value == "unknown error"
    assert error.is_marker
    assert info.name == "INFO"
    assert info.category is FindingCategory.WMI


def test_finding_is_immutable(normalizer: FindingNormalizer) -> None:
    finding = normalizer.normalize(FindingCategory.IFEO, "root", "utilman.exe", "cmd.exe")

    with pytest.raises(ValidationError):
        finding.value = "other"


def test_finding_requires_value_field() -> None:
    with pytest.raises(ValidationError):
        Finding(
            timestamp=FIXED_STAMP,
            category=FindingCategory.IFEO,
            location="root",
            name="x",
        )


@pytest.mark.parametrize(
    ("data", "value_type", "expected"),
    [
        ("C:\\Tools\\upd.exe", 1, "C:\\Tools\\upd.exe"),
        ("cmd.exe".encode("utf-16-le") + b"\x00\x00", 1, "cmd.exe"),
        ("%SystemRoot%\\a.exe".encode("utf-16-le") + b"\x00\x00junk", 2, "%SystemRoot%\\a.exe"),
        ("a.exe\x00/q\x00\x00".encode("utf-16-le"), 7, "a.exe /q"),
        (b"\x01\x00\x02\x00", 3, "01000200"),
        (b"\x01\x00\x02\x00", 0, "01000200"),
        (b"\x00\xd8", 1, "\ufffd"),
    ],
)
def test_registry_text(data, value_type, expected) -> None:
    assert registry_text(data, value_type) == expected


def test_normalized_text_always_encodes(normalizer: FindingNormalizer) -> None:
    finding = normalizer.normalize(
        FindingCategory.STARTUP_FOLDER,
        location="C:\\Startup\ud800",
        name="bad\udcff.lnk",
        value=["x\udc80", b"\xc3"],
    )

    for text in finding.to_row().values():
        text.encode("utf-8")
    assert finding.value == "x\\udc80 c3"
