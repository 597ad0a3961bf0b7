"""Tests for the upload_verify CLI and end-to-end workflows"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from tests.assertions import assert_equal
from tests.fake_transport import FakeTransport
from upload_verify.args_parser import parse_args
from upload_verify.cli import main
from upload_verify.transport import ListPage


def _tree(make_tree):
    return make_tree(
        {
            "a.txt": b"alpha",
            "nested/b.bin": b"b" * (4 * 1024 * 1024),
            "nested/deeper/c.txt": b"gamma",
        }
    )


def _factory(transport):
    return lambda config: transport


class _ListingTransport(FakeTransport):
    """FakeTransport whose listing serves the objects it has stored, one per page."""

    def list_objects(self, bucket, prefix=None, marker=None):
        keys = sorted(key for key in self.objects if key.startswith(prefix or ""))
        if marker is not None:
            keys = [key for key in keys if key > marker]
        if not keys:
            return ListPage([], is_truncated=False)
        return ListPage([self.objects[keys[0]]], is_truncated=len(keys) > 1)


def test_missing_root_is_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        main(["upload"], transport_factory=_factory(FakeTransport()))

    assert_equal(excinfo.value.code, 2)


def test_missing_command_is_usage_error():
    with pytest.raises(SystemExit) as excinfo:
        parse_args([])

    assert_equal(excinfo.value.code, 2)


def test_negative_retry_limit_rejected(tmp_path):
    with pytest.raises(SystemExit):
        parse_args(["upload", str(tmp_path), "--retry-limit", "-1"])


def test_configuration_error_aborts_before_remote_calls(make_tree, tmp_path):
    root = _tree(make_tree)
    env_file = tmp_path / "nobucket.env"
    env_file.write_text("")
    factory = MagicMock()

    exit_code = main(["upload", str(root), "--env-file", str(env_file)], transport_factory=factory)

    assert_equal(exit_code, 1)
    factory.assert_not_called()


def test_upload_command_uploads_every_file(make_tree, tmp_path):
    root = _tree(make_tree)
    transport = FakeTransport()

    exit_code = main(
        ["upload", str(root), "--output-dir", str(tmp_path / "out"), "--concurrency", "2"],
        transport_factory=_factory(transport),
    )

    assert_equal(exit_code, 0)
    assert_equal(sorted(transport.objects), ["a.txt", "nested/b.bin", "nested/deeper/c.txt"])
    chunk_by_key = {call[1]: call[2] for call in transport.put_calls}
    assert_equal(chunk_by_key["nested/b.bin"], 3 * 1024 * 1024)
    assert chunk_by_key["a.txt"] is None


def test_upload_verify_writes_reports(make_tree, tmp_path, capsys):
    root = _tree(make_tree)
    out = tmp_path / "out"

    exit_code = main(
        ["upload-verify", str(root), "--output-dir", str(out)],
        transport_factory=_factory(FakeTransport()),
    )

    assert_equal(exit_code, 0)
    report = (out / "verification_report.txt").read_text()
    assert_equal(report.count("Status: Verified"), 3)
    assert_equal((out / "failed_verifications.txt").read_text(), "")
    assert "Succeeded: 3" in capsys.readouterr().out


def test_partial_failure_exits_zero_unless_strict(make_tree, tmp_path):
    root = _tree(make_tree)
    out = tmp_path / "out"

    relaxed = main(
        ["upload", str(root), "--output-dir", str(out), "--retry-limit", "1"],
        transport_factory=_factory(FakeTransport(failures={"a.txt": -1})),
    )
    strict = main(
        ["upload", str(root), "--output-dir", str(out), "--strict"],
        transport_factory=_factory(FakeTransport(failures={"a.txt": -1})),
    )

    assert_equal(relaxed, 0)
    assert_equal(strict, 1)
    assert (out / "failed_uploads.txt").read_text().startswith("a.txt - attempts: ")


def test_verify_after_upload_round_trip(make_tree, tmp_path):
    root = _tree(make_tree)
    transport = _ListingTransport()
    main(["upload", str(root), "--output-dir", str(tmp_path)], transport_factory=_factory(transport))
    (root / "new.txt").write_bytes(b"not uploaded")
    (root / "a.txt").write_bytes(b"changed")

    exit_code = main(
        ["verify", str(root), "--output-dir", str(tmp_path), "--strict"],
        transport_factory=_factory(transport),
    )

    assert_equal(exit_code, 1)
    failures = (tmp_path / "failed_verifications.txt").read_text()
    assert "a.txt - Status: MD5 Mismatch" in failures
    assert "new.txt - Status: Missing in S3" in failures
    assert "nested/b.bin" not in failures
    full = (tmp_path / "verification_report.txt").read_text()
    assert "nested/b.bin - Status: Verified" in full


def test_verify_missing_root_exits_one(tmp_path):
    exit_code = main(
        ["verify", str(tmp_path / "absent"), "--output-dir", str(tmp_path)],
        transport_factory=_factory(_ListingTransport()),
    )

    assert_equal(exit_code, 1)


def test_list_command_writes_listing(make_tree, tmp_path):
    root = _tree(make_tree)
    transport = _ListingTransport()
    main(["upload", str(root), "--output-dir", str(tmp_path)], transport_factory=_factory(transport))

    exit_code = main(["list", "--output-dir", str(tmp_path)], transport_factory=_factory(transport))

    assert_equal(exit_code, 0)
    listing = (tmp_path / "s3_file_list.txt").read_text().splitlines()
    assert_equal(listing[0], "Total Files: 3")
    assert "Directory: nested/deeper" in listing


@pytest.mark.parametrize("error", [OSError("connection reset"), KeyError("Contents")])
def test_list_error_exits_one(tmp_path, error):
    transport = MagicMock()
    transport.list_objects.side_effect = error

    exit_code = main(["list", "--output-dir", str(tmp_path)], transport_factory=_factory(transport))

    assert_equal(exit_code, 1)
    assert not (tmp_path / "s3_file_list.txt").exists()
